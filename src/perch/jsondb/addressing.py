"""Addressing kinds — where in the document a request points.

The path remainder under a jsondb mount is classified as::

    ""                       -> Root()
    "/laptops"               -> Collection("laptops")
    "/laptops/123"           -> Item("laptops", "123")
    "/genres/0/byindex"      -> ItemByIndex("genres", 0)

``Item`` is resolved lazily: by ``id`` when the collection is an array,
by key when it is an object.
"""

from dataclasses import dataclass

from perch.errors import BadRequest


@dataclass(frozen=True, slots=True)
class Root:
    """The whole document."""


@dataclass(frozen=True, slots=True)
class Collection:
    """A top-level key of the document."""

    name: str


@dataclass(frozen=True, slots=True)
class Item:
    """An element of a collection, by ``id`` (arrays) or by key (objects)."""

    name: str
    key: str


@dataclass(frozen=True, slots=True)
class ItemByIndex:
    """An array element, by position."""

    name: str
    index: int


type Address = Root | Collection | Item | ItemByIndex


def parse_address(remainder: str) -> Address:
    """Classify the path *remainder* left after the mount prefix.

    Raises ``BadRequest`` for deeper paths, for a third segment other than
    ``byindex``, and for an index that is not a non-negative integer.
    """
    parts = [part for part in remainder.split("/") if part]
    match parts:
        case []:
            return Root()
        case [name]:
            return Collection(name)
        case [name, key]:
            return Item(name, key)
        case [name, index, "byindex"]:
            if not (index.isascii() and index.isdigit()):
                raise BadRequest(f"Index {index!r} is not a non-negative integer")
            return ItemByIndex(name, int(index))
        case _:
            raise BadRequest(f"Unsupported document path {remainder!r}")
