"""jsondb — serve one JSON document as a miniature REST API.

Top-level keys are collections, their elements are items::

    from perch import App
    from perch.jsondb import jsondb

    app = App()
    app.mount("/api", jsondb("db.json", dry_run=False))

    # GET    /api                    -> the whole document
    # GET    /api/laptops?brand=acer -> filtered collection
    # GET    /api/laptops/123        -> element with id 123
    # DELETE /api/genres/0/byindex   -> remove the first genre

Concurrent writers are not coordinated: each request loads, mutates,
and saves the whole file, and the last save wins.
"""

from perch.jsondb.addressing import Address, Collection, Item, ItemByIndex, Root, parse_address
from perch.jsondb.engine import JsonDB, as_text, jsondb
from perch.jsondb.store import DocumentStore, FileDocumentStore, MemoryDocumentStore

__all__ = [
    "Address",
    "Collection",
    "DocumentStore",
    "FileDocumentStore",
    "Item",
    "ItemByIndex",
    "JsonDB",
    "MemoryDocumentStore",
    "Root",
    "as_text",
    "jsondb",
    "parse_address",
]
