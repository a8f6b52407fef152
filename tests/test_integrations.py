import json

import pytest

import integrations
from config import settings


class FakeRequest:
    def __init__(self, calls, kwargs):
        self.calls = calls
        self.kwargs = kwargs

    def execute(self):
        self.calls.append(self.kwargs)
        return {"updates": {"updatedRows": 1}}


class FakeSheetsService:
    def __init__(self):
        self.calls = []

    def spreadsheets(self):
        return self

    def values(self):
        return self

    def append(self, **kwargs):
        return FakeRequest(self.calls, kwargs)


RENTAL = {
    "full_name": "Asha Rao",
    "address": "12 MG Road",
    "city": "Dehradun",
    "zip_code": "248001",
    "quantity": 2,
    "rental_days": 5,
    "current_date": "2024-05-01",
}


@pytest.fixture
def sheets(monkeypatch):
    service = FakeSheetsService()
    monkeypatch.setattr(integrations, "get_sheets_service", lambda: service)
    monkeypatch.setattr(settings, "GOOGLE_SHEET_ID", "sheet-123")
    return service


def test_rental_request_appends_row(client, sheets):
    resp = client.post("/send-message", json=RENTAL)
    assert resp.status_code == 200

    assert len(sheets.calls) == 1
    call = sheets.calls[0]
    assert call["spreadsheetId"] == "sheet-123"
    assert call["range"] == "Data!A:F"
    assert call["body"] == {"values": [list(RENTAL.values())]}


def test_rental_request_validation(client, sheets):
    resp = client.post("/send-message", json={**RENTAL, "quantity": "lots"})
    assert resp.status_code == 422
    assert sheets.calls == []


def test_rental_request_without_sheet_config(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_SHEET_ID", None)
    resp = client.post("/send-message", json=RENTAL)
    assert resp.status_code == 500


def test_add_short_appends_to_file(client, tmp_path, monkeypatch):
    path = tmp_path / "shorts" / "blogs.json"
    monkeypatch.setattr(settings, "SHORTS_FILE", str(path))
    short = {"title": "Tungnath", "description": "Highest Shiva temple", "location": "Chopta", "img_src": "t.jpg"}

    assert client.post("/addShort", json=short).status_code == 200
    assert client.post("/addShort", json={**short, "title": "Deoria Tal"}).status_code == 200

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert [s["title"] for s in stored] == ["Tungnath", "Deoria Tal"]


def test_add_short_recovers_from_invalid_file(client, tmp_path, monkeypatch):
    path = tmp_path / "blogs.json"
    path.write_text("{not json", encoding="utf-8")
    monkeypatch.setattr(settings, "SHORTS_FILE", str(path))

    resp = client.post("/addShort", json={"title": "Sar Pass", "description": "Snow", "location": "Kasol", "img_src": "s.jpg"})
    assert resp.status_code == 200
    assert json.loads(path.read_text(encoding="utf-8"))[0]["title"] == "Sar Pass"
