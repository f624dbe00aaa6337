from __future__ import annotations

import json
import pathlib


def test_app_smoke_routes(client):
    r = client.get("/api/test")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "success"
    assert body["data_dir_writable"] is True
    assert "timestamp" in body

    r = client.get("/api/load")
    assert r.status_code == 200
    assert r.json()["data"]["books"] == []


def test_save_merges_and_reports_books_count(client):
    r = client.post("/api/save", json={"books": [{"title": "A"}, {"title": "B"}, {"title": "C"}]})
    assert r.status_code == 200
    assert r.json()["books_count"] == 3

    r = client.post("/api/save", json={"settings": {"theme": "dark"}, "unknown": 1})
    assert r.status_code == 200
    assert r.json()["books_count"] == 3

    data = client.get("/api/load").json()["data"]
    assert [b["title"] for b in data["books"]] == ["A", "B", "C"]
    assert data["settings"] == {"theme": "dark", "autoBackup": True}
    assert "unknown" not in data


def test_save_rejects_invalid_json(client):
    r = client.post("/api/save", content=b"{invalid", headers={"Content-Type": "application/json"})
    assert r.status_code == 500
    body = r.json()
    assert body["status"] == "error"
    assert body["error"] == "ParseError"
    assert body["message"]


def test_wrong_method_is_405(client):
    assert client.get("/api/save").status_code == 405
    assert client.get("/api/backup").status_code == 405
    assert client.get("/api/restore").status_code == 405


def test_backup_list_and_restore_flow(client):
    client.post("/api/save", json={"books": [{"title": "Keep me"}]})

    r = client.post("/api/backup")
    assert r.status_code == 200
    filename = r.json()["filename"]
    assert filename.startswith("backup_")
    assert r.json()["filesize"] > 0

    client.post("/api/save", json={"books": []})

    r = client.post("/api/restore", json={"filename": filename})
    assert r.status_code == 200
    assert r.json()["books_count"] == 1

    r = client.get("/api/backups")
    assert r.status_code == 200
    listing = r.json()
    assert listing["count"] == 2
    assert {b["kind"] for b in listing["backups"]} == {"backup", "pre_restore"}
    assert all("created_formatted" in b for b in listing["backups"])


def test_restore_unknown_backup_is_not_found(client):
    client.post("/api/save", json={"books": [{"title": "A"}]})

    r = client.post("/api/restore", json={"filename": "backup_2000-01-01_00-00-00.json"})
    assert r.status_code == 500
    assert r.json()["error"] == "NotFound"
    assert client.get("/api/load").json()["data"]["books"] == [{"title": "A"}]


def test_restore_requires_filename(client):
    r = client.post("/api/restore", json={})
    assert r.status_code == 500
    assert r.json()["error"] == "ParseError"


def test_backup_without_document_is_not_found(client):
    r = client.post("/api/backup")
    assert r.status_code == 500
    assert r.json()["error"] == "NotFound"


def test_export_csv_and_json(client):
    client.post(
        "/api/save",
        json={"books": [{"title": "Süß", "author": "X", "progress": 50}]},
    )

    r = client.get("/api/export", params={"format": "csv"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "attachment" in r.headers["content-disposition"]
    text = r.content.decode("utf-8")
    assert text.startswith("\ufeff")
    assert '"Süß","X","","50%"' in text

    r = client.get("/api/export")
    assert r.status_code == 200
    assert json.loads(r.content)["books"][0]["title"] == "Süß"

    r = client.get("/api/export", params={"format": "xml"})
    assert r.status_code == 500
    assert r.json()["error"] == "ParseError"


def test_cors_headers_present(client):
    r = client.options(
        "/api/save",
        headers={"Origin": "https://example.com", "Access-Control-Request-Method": "POST"},
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"


def test_unreadable_backup_dir_is_json_io_error(client, monkeypatch):
    client.post("/api/save", json={"books": [{"title": "A"}]})
    client.post("/api/backup")

    def _denied(self):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(pathlib.Path, "iterdir", _denied)

    r = client.get("/api/backups")
    assert r.status_code == 500
    assert r.headers["content-type"].startswith("application/json")
    body = r.json()
    assert body["status"] == "error"
    assert body["error"] == "IOError"
    assert body["message"]
