"""Document stores — explicit load/save handles for the jsondb engine.

Every request loads a fresh copy; there is no cross-request cache. Writes
replace the whole file and take no lock: two requests that interleave
their load/save steps race, and the last save wins.
"""

from __future__ import annotations

import json as json_module
import logging
from pathlib import Path
from typing import Any, Protocol

import anyio

from perch.errors import DocumentError

logger = logging.getLogger("perch.jsondb")

type Document = dict[str, Any]


class DocumentStore(Protocol):
    """Anything the engine can load a document from and save it to.

    ``load(tolerant=True)`` is used by read-only requests: an unreadable
    source yields an empty document instead of an error.
    """

    async def load(self, *, tolerant: bool = False) -> Document: ...

    async def save(self, document: Document) -> None: ...


def decode_document(text: str, source: str) -> Document:
    """Parse *text*; the top-level value must be a JSON object."""
    if not text.strip():
        return {}
    try:
        document = json_module.loads(text)
    except ValueError as exc:
        msg = f"{source} is not valid JSON: {exc}"
        raise DocumentError(msg) from exc
    if not isinstance(document, dict):
        msg = f"{source} must hold a JSON object at the top level, not {type(document).__name__}"
        raise DocumentError(msg)
    return document


def encode_document(document: Document) -> str:
    return json_module.dumps(document, indent=2, ensure_ascii=False) + "\n"


class FileDocumentStore:
    """A JSON document in a UTF-8 file, read and written through anyio.

    A missing file loads as an empty document and is created on first save.
    """

    __slots__ = ("path",)

    def __init__(self, path: str | Path) -> None:
        self.path = anyio.Path(path)

    def __repr__(self) -> str:
        return f"FileDocumentStore({str(self.path)!r})"

    async def load(self, *, tolerant: bool = False) -> Document:
        try:
            text = await self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("%s does not exist yet; starting from an empty document", self.path)
            return {}
        except OSError as exc:
            if tolerant:
                logger.warning("Cannot read %s (%s); serving an empty document", self.path, exc)
                return {}
            msg = f"Cannot read {self.path}: {exc}"
            raise DocumentError(msg) from exc
        return decode_document(text, str(self.path))

    async def save(self, document: Document) -> None:
        await self.path.write_text(encode_document(document), encoding="utf-8")


class MemoryDocumentStore:
    """An in-memory stand-in holding the serialized document text.

    Behaves like ``FileDocumentStore``: each load parses a fresh copy, so
    mutations never leak between requests unless saved.
    """

    __slots__ = ("saves", "text")

    def __init__(self, document: Document | str | None = None) -> None:
        if isinstance(document, str):
            self.text = document
        else:
            self.text = encode_document(document or {})
        self.saves = 0

    def __repr__(self) -> str:
        return f"MemoryDocumentStore(saves={self.saves})"

    @property
    def document(self) -> Document:
        return decode_document(self.text, "memory document")

    async def load(self, *, tolerant: bool = False) -> Document:
        return decode_document(self.text, "memory document")

    async def save(self, document: Document) -> None:
        self.text = encode_document(document)
        self.saves += 1
