"""
HTTP API end to end with an in-memory store.
"""
import io

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from edubook_pricing.api import state
from edubook_pricing.api.main import app
from edubook_pricing.data.tabular import export_workbook
from edubook_pricing.services.store import InMemoryStore

USER = {"X-User-Id": "shop-1"}


@pytest.fixture
def client():
    state.reset_state(InMemoryStore())
    return TestClient(app)


def start_mock(client, headers=USER):
    response = client.post("/session/mock", json={}, headers=headers)
    assert response.status_code == 200
    return response.json()


def test_root(client):
    assert client.get("/").json()["status"] == "online"
    assert client.get("/settings/defaults").json()["textbookDiscount"] == 10


def test_mock_session_totals(client):
    body = start_mock(client)
    
    assert len(body["textbooks"]) == 5
    assert len(body["notebooks"]) == 4
    assert body["totals"]["grandTotal"] == pytest.approx(745 * 0.9 * 1.05 + 160 * 0.85 * 1.05)
    assert body["summary"]["textbooks"]["avgDiscount"] == 10


def test_session_before_load(client):
    assert client.get("/session", headers=USER).status_code == 409


def test_rename_keeps_final_price(client):
    before = start_mock(client)["textbooks"][0]
    response = client.patch("/session/textbooks/1", json={"field": "bookName", "value": "New Name"}, headers=USER)
    
    after = response.json()["textbooks"][0]
    assert after["bookName"] == "New Name"
    assert after["finalPrice"] == before["finalPrice"]


def test_price_edit_and_filters(client):
    start_mock(client)
    client.patch("/session/textbooks/1", json={"field": "price", "value": 200}, headers=USER)
    
    body = client.get("/session", params={"book_name": "PHYS"}, headers=USER).json()
    assert [b["bookName"] for b in body["textbooks"]] == ["Physics Part 1"]
    assert body["totals"]["textbookTotal"] == pytest.approx(200 * 0.9 * 1.05)
    assert body["totals"]["notebookTotal"] == 0


def test_bulk_operations(client):
    start_mock(client)
    
    body = client.post("/session/notebooks/apply-all", json={"field": "tax", "value": 0}, headers=USER).json()
    assert all(b["tax"] == 0 for b in body["notebooks"])
    
    body = client.post(
        "/session/textbooks/bulk-edit", json={"names": ["physics part 1"], "discount": 20}, headers=USER
    ).json()
    assert body["updatedCount"] == 1
    assert body["textbooks"][0]["discount"] == 20


def test_operation_errors(client):
    start_mock(client)
    
    response = client.post("/session/textbooks/publisher-discount", json={"publisher": "Nobody", "discount": 5},
                           headers=USER)
    assert response.status_code == 404
    
    response = client.post("/session/textbooks/bulk-edit", json={"names": []}, headers=USER)
    assert response.status_code == 400
    
    response = client.post("/session/magazines/apply-all", json={"field": "tax", "value": 1}, headers=USER)
    assert response.status_code == 400


def test_save_requires_user(client):
    start_mock(client, headers={})
    assert client.post("/session/save").status_code == 401
    assert client.get("/explorer/snapshots").status_code == 401


def test_save_and_explore(client):
    start_mock(client)
    saved = client.post("/session/save", headers=USER).json()
    assert saved["success"] is True
    
    body = client.get("/explorer/snapshots", headers=USER).json()
    assert len(body["books"]) == 9
    assert body["classes"] == ["12"]
    
    groups = client.get("/explorer/groups", params={"by": "class"}, headers=USER).json()
    assert groups[0]["key"] == "12"
    assert groups[0]["count"] == 9
    
    assert len(client.get("/ledger", headers=USER).json()) == 9
    assert client.delete("/ledger", headers=USER).json()["deleted"] == 9


def test_upload_and_export(client, mock_lists):
    data = export_workbook(mock_lists.textbooks, mock_lists.notebooks, headers='machine')
    response = client.post(
        "/session/upload",
        files={"file": ("books.xlsx", data, "application/octet-stream")},
        data={"class_name": "9", "course": "Commerce", "textbook_discount": "0", "textbook_tax": "0"},
        headers=USER,
    )
    assert response.status_code == 200
    assert response.json()["textbooks"][0]["finalPrice"] == 150
    
    export = client.get("/session/export", headers=USER)
    assert export.status_code == 200
    assert "9_Commerce_EduBook_Calculated.xlsx" in export.headers["content-disposition"]


def test_upload_invalid_file(client):
    response = client.post(
        "/session/upload",
        files={"file": ("books.xlsx", b"garbage", "application/octet-stream")},
        headers=USER,
    )
    assert response.status_code == 400


def test_anonymous_clients_keep_separate_sessions(client):
    first = client.post("/session/mock", json={})
    second = client.post("/session/mock", json={})
    token_a = first.headers["x-session-id"]
    token_b = second.headers["x-session-id"]
    assert token_a != token_b
    
    assert client.delete("/session", headers={"X-Session-Id": token_b}).status_code == 200
    
    assert client.get("/session", headers={"X-Session-Id": token_a}).status_code == 200
    assert client.get("/session", headers={"X-Session-Id": token_b}).status_code == 409
    assert client.get("/session").status_code == 409


def test_anonymous_token_is_reused_for_edits(client):
    token = client.post("/session/mock", json={}).headers["x-session-id"]
    headers = {"X-Session-Id": token}
    
    client.patch("/session/notebooks/2", json={"field": "price", "value": 50}, headers=headers)
    
    body = client.get("/session", headers=headers).json()
    assert body["notebooks"][1]["price"] == 50


def test_upload_with_non_finite_price(client):
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        pd.DataFrame([{"bookName": "A", "price": "inf"}, {"bookName": "B", "price": 100}]).to_excel(
            writer, sheet_name="Textbooks", index=False
        )
    
    response = client.post(
        "/session/upload",
        files={"file": ("books.xlsx", buffer.getvalue(), "application/octet-stream")},
        headers=USER,
    )
    
    assert response.status_code == 200
    body = response.json()
    assert [b["finalPrice"] for b in body["textbooks"]] == [0, pytest.approx(94.5)]
    assert len(body["warnings"]) == 1
