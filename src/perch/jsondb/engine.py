"""The jsondb responder: a JSON document served as a small REST API.

Mounted under a prefix, it classifies the rest of the path (see
``perch.jsondb.addressing``), loads the document, applies the operation
for ``(method, address)``, and saves the document back unless the
engine runs in dry-run mode::

    app = App()
    app.mount("/api", jsondb("db.json"))

Operation matrix (``doc`` is the loaded document, ``body`` the request body):

    ======  ========  ==============  =====================  ===========
    method  root      collection      item                   byindex
    ======  ========  ==============  =====================  ===========
    GET     doc       doc[name] (+q)  by id / object key     doc[name][i]
    POST    merge     append          422                    422
    PUT     replace   replace         replace                replace
    PATCH   merge     400             merge / set key        400
    DELETE  400       delete key      remove                 remove
    ======  ========  ==============  =====================  ===========
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from perch.errors import BadRequest, NotFound, UnprocessableEntity
from perch.http.reply import JSON_TYPE, Reply
from perch.jsondb.addressing import Address, Collection, Item, ItemByIndex, Root, parse_address
from perch.jsondb.store import Document, DocumentStore, FileDocumentStore

logger = logging.getLogger("perch.jsondb")

READ_METHODS = frozenset({"GET"})
WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def as_text(value: Any) -> str:
    """Render a JSON value the way it compares against path and query strings."""
    match value:
        case bool():
            return "true" if value else "false"
        case None:
            return "null"
        case float() if value.is_integer():
            return str(int(value))
        case _:
            return str(value)


def _require_object(body: Any, what: str) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise BadRequest(f"{what} requires a JSON object body")
    return body


def _collection(doc: Document, name: str) -> Any:
    try:
        return doc[name]
    except KeyError:
        raise NotFound(f"Collection {name!r} not found") from None


def _find_by_id(items: list[Any], key: str) -> int:
    for position, element in enumerate(items):
        if isinstance(element, dict) and "id" in element and as_text(element["id"]) == key:
            return position
    raise NotFound(f"No element with id {key!r}")


def _check_index(items: Any, address: ItemByIndex) -> list[Any]:
    if not isinstance(items, list) or address.index >= len(items):
        raise NotFound(f"No element at index {address.index} in {address.name!r}")
    return items


class JsonDB:
    """Responder serving one JSON document.

    Args:
        store: Where the document lives (``FileDocumentStore`` for a path).
        dry_run: Compute mutations but never save them.
    """

    __slots__ = ("dry_run", "store")

    def __init__(self, store: DocumentStore, *, dry_run: bool = False) -> None:
        self.store = store
        self.dry_run = dry_run

    def __repr__(self) -> str:
        return f"JsonDB({self.store!r}, dry_run={self.dry_run})"

    async def __call__(self, props: Mapping[str, Any]) -> Reply:
        method = props["method"]
        address = parse_address(_remainder(props["path"], props.get("path_pattern", "")))

        if method not in READ_METHODS | WRITE_METHODS:
            raise BadRequest(f"Method {method} is not supported by jsondb")
        body = props.get("body")
        # An empty request body and a JSON null body both parse to None.
        if method in BODY_METHODS and not props.get("has_body", body is not None):
            raise BadRequest(f"{method} requires a request body")

        doc = await self.store.load(tolerant=method in READ_METHODS)
        result = self.apply(method, address, doc, body, props.get("query") or {})
        logger.debug("%s %s -> %r", method, props["path"], address)

        if method in WRITE_METHODS:
            await self._persist(doc)
        if result is None:
            return Reply("null", status=200, type=JSON_TYPE)
        return Reply(result, status=200)

    def apply(
        self,
        method: str,
        address: Address,
        doc: Document,
        body: Any = None,
        query: Mapping[str, str] | None = None,
    ) -> Any:
        """Apply *method* to *doc* in place and return the response value."""
        match method:
            case "GET":
                return self._get(address, doc, query or {})
            case "POST":
                return self._post(address, doc, body)
            case "PUT":
                return self._put(address, doc, body)
            case "PATCH":
                return self._patch(address, doc, body)
            case "DELETE":
                return self._delete(address, doc)
            case _:
                raise BadRequest(f"Method {method} is not supported by jsondb")

    async def _persist(self, doc: Document) -> None:
        if self.dry_run:
            logger.debug("Dry run: not saving %r", self.store)
            return
        try:
            await self.store.save(doc)
        except OSError:
            # The reply is already computed; report the failure without altering it.
            logger.exception("Failed to save document to %r", self.store)

    # -- Operations --

    def _get(self, address: Address, doc: Document, query: Mapping[str, str]) -> Any:
        match address:
            case Root():
                return doc
            case Collection(name=name):
                value = _collection(doc, name)
                if query and isinstance(value, list):
                    return [
                        element
                        for element in value
                        if isinstance(element, dict)
                        and all(k in element and as_text(element[k]) == v for k, v in query.items())
                    ]
                return value
            case Item(name=name, key=key):
                value = _collection(doc, name)
                if isinstance(value, list):
                    return value[_find_by_id(value, key)]
                if isinstance(value, dict) and key in value:
                    return value[key]
                raise NotFound(f"{name}/{key} not found")
            case ItemByIndex(name=name, index=index):
                return _check_index(_collection(doc, name), address)[index]

    def _post(self, address: Address, doc: Document, body: Any) -> Any:
        match address:
            case Root():
                doc.update(_require_object(body, "POST to the document root"))
                return body
            case Collection(name=name):
                items = doc.setdefault(name, [])
                if not isinstance(items, list):
                    raise BadRequest(f"Cannot append to {name!r}: it is not an array")
                items.append(body)
                return body
            case Item() | ItemByIndex():
                raise UnprocessableEntity("Items cannot be created at an item address")

    def _put(self, address: Address, doc: Document, body: Any) -> Any:
        match address:
            case Root():
                replacement = _require_object(body, "PUT to the document root")
                doc.clear()
                doc.update(replacement)
            case Collection(name=name):
                doc[name] = body
            case Item(name=name, key=key):
                value = _collection(doc, name)
                if isinstance(value, list):
                    value[_find_by_id(value, key)] = body
                elif isinstance(value, dict):
                    value[key] = body
                else:
                    raise NotFound(f"{name}/{key} not found")
            case ItemByIndex(name=name, index=index):
                _check_index(_collection(doc, name), address)[index] = body
        return body

    def _patch(self, address: Address, doc: Document, body: Any) -> Any:
        match address:
            case Root():
                doc.update(_require_object(body, "PATCH to the document root"))
                return doc
            case Collection():
                raise BadRequest("A collection cannot be patched as a whole; address an item")
            case Item(name=name, key=key):
                value = _collection(doc, name)
                if isinstance(value, list):
                    position = _find_by_id(value, key)
                    element = value[position]
                    patch = _require_object(body, "PATCH of an array element")
                    merged = {**element, **patch} if isinstance(element, dict) else patch
                    value[position] = merged
                    return merged
                if isinstance(value, dict):
                    value[key] = body
                    return body
                raise NotFound(f"{name}/{key} not found")
            case ItemByIndex():
                raise BadRequest("PATCH addresses items by id, not by index")

    def _delete(self, address: Address, doc: Document) -> Any:
        match address:
            case Root():
                raise BadRequest("The whole document cannot be deleted")
            case Collection(name=name):
                _collection(doc, name)
                return doc.pop(name)
            case Item(name=name, key=key):
                value = _collection(doc, name)
                if isinstance(value, list):
                    return value.pop(_find_by_id(value, key))
                if isinstance(value, dict) and key in value:
                    return value.pop(key)
                raise NotFound(f"{name}/{key} not found")
            case ItemByIndex(name=name, index=index):
                return _check_index(_collection(doc, name), address).pop(index)


def _remainder(path: str, prefix: str) -> str:
    if prefix and path.startswith(prefix):
        return path[len(prefix) :]
    return path


def jsondb(source: str | Path | DocumentStore, *, dry_run: bool = False) -> JsonDB:
    """Build a jsondb responder for a file path or an existing store."""
    store = FileDocumentStore(source) if isinstance(source, str | Path) else source
    return JsonDB(store, dry_run=dry_run)
