"""Shared fixtures: a sample document on disk and an app serving it."""

import json
from pathlib import Path
from typing import Any

import pytest

from perch.app import App
from perch.jsondb import jsondb


@pytest.fixture
def sample_document() -> dict[str, Any]:
    return {
        "laptops": [
            {"id": 123, "brand": "lenovo"},
            {"id": 456, "brand": "lenovo"},
        ],
        "genres": ["sci-fi"],
        "color": {"dark": "#000"},
    }


@pytest.fixture
def db_path(tmp_path: Path, sample_document: dict[str, Any]) -> Path:
    path = tmp_path / "db.json"
    path.write_text(json.dumps(sample_document), encoding="utf-8")
    return path


@pytest.fixture
def api_app(db_path: Path) -> App:
    """An app mounting the sample document under ``/api``."""
    app = App()
    app.mount("/api", jsondb(db_path))
    return app
