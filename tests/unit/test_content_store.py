"""Unit tests for content document storage

Tests cover:
- Missing and corrupt files load as an empty document
- A leading BOM is tolerated
- Save backs up the previous file before replacing it
- Project extraction from list and mapping documents
"""

from __future__ import annotations

import json

from folio.content.store import ContentStore, extract_projects


def test_missing_file_loads_empty(tmp_path):
    """No file yet: empty document"""
    store = ContentStore(tmp_path / "content.json", tmp_path / "backups")

    assert store.load() == {}


def test_corrupt_file_loads_empty(tmp_path):
    """Unparseable JSON does not take the endpoint down"""
    path = tmp_path / "content.json"
    path.write_text("{not json", encoding="utf-8")

    assert ContentStore(path, tmp_path / "backups").load() == {}


def test_bom_tolerated(tmp_path):
    """A UTF-8 BOM is stripped"""
    path = tmp_path / "content.json"
    path.write_text("\ufeff" + json.dumps({"a": 1}), encoding="utf-8")

    assert ContentStore(path, tmp_path / "backups").load() == {"a": 1}


def test_save_backs_up_previous(tmp_path):
    """First save has nothing to back up; second save keeps the old file"""
    store = ContentStore(tmp_path / "content.json", tmp_path / "backups")

    assert store.save({"version": 1}) is None
    backup = store.save({"version": 2})

    assert backup is not None
    assert json.loads(backup.read_text(encoding="utf-8")) == {"version": 1}
    assert store.load() == {"version": 2}


def test_extract_projects_from_list_document():
    """The blogs section of a list document becomes prompt projects"""
    document = [
        {"type": "profile", "name": "Ann"},
        {
            "type": "blogs",
            "blogs": [
                {"title": "Folio", "content": "Backend", "blog": "https://example.com"},
                {"title": "Notes", "content": {"rich": True}},
                "not a blog",
            ],
        },
    ]

    assert extract_projects(document) == [
        {"title": "Folio", "description": "Backend", "link": "https://example.com"},
        {"title": "Notes", "description": '{"rich": true}', "link": ""},
    ]


def test_extract_projects_from_mapping_document():
    """A mapping document with a blogs key works too"""
    assert extract_projects({"blogs": [{"title": "A"}]}) == [
        {"title": "A", "description": "", "link": ""}
    ]


def test_extract_projects_nothing_visible():
    """Blocked (None) or blog-less documents yield no projects"""
    assert extract_projects(None) == []
    assert extract_projects([{"type": "profile"}]) == []
