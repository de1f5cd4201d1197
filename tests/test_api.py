"""
Tests for the HTTP and WebSocket surface
"""

import io
import pytest
import pandas as pd
from datetime import date, timedelta
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.api.deps import get_booking_engine
from app.core.config import settings
from app.core.db import get_db
from app.services.booking_service import BookingEngine
from app.services.repositories import SqlReservationStore
from app.services.table_locks import TableLockRegistry
from app.utils.security import rate_limiter
from app.utils.time_window import venue_hours
from main import app

NIGHT = date.today() + timedelta(days=14)
ADMIN_HEADERS = {"Authorization": f"Bearer {settings.ADMIN_TOKEN}"}

@pytest.fixture
def client(session_factory, booking_engine):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_booking_engine] = lambda: booking_engine
    rate_limiter.reset()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        rate_limiter.reset()

def booking_payload(venue, numbers=("6", "7"), party_size=7, **overrides):
    payload = {
        "venue_id": venue["id"],
        "table_ids": [venue["tables"][n] for n in numbers],
        "booking_date": NIGHT.isoformat(),
        "start_time": "23:00",
        "end_time": "03:00",
        "party_size": party_size,
        "customer_name": "Jane Doe",
        "customer_email": "jane@example.com",
        "customer_phone": "07700900123",
        "occasion": "Birthday",
    }
    payload.update(overrides)
    return payload

def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}

def test_venue_lookup(client, venue):
    response = client.get("/venues/backroom", params={"date": NIGHT.isoformat()})
    
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == venue["id"]
    assert data["hours"] == venue_hours(NIGHT)
    
    assert client.get("/venues/nowhere").status_code == 404

def test_tables_with_counts(client, venue):
    client.post("/bookings", json=booking_payload(venue, numbers=("15",), party_size=3))
    
    response = client.get(f"/venues/{venue['id']}/tables", params={"date": NIGHT.isoformat()})
    
    assert response.status_code == 200
    data = response.json()["data"]
    hours = venue_hours(NIGHT)
    assert (data["start_time"], data["end_time"]) == (hours["open"], hours["close"])
    assert data["counts"] == {"total": 3, "upstairs": 2, "downstairs": 1, "available": 2}
    unavailable = [t["number"] for t in data["tables"] if not t["is_available"]]
    assert unavailable == ["15"]

def test_recommendations(client, venue):
    params = {"date": NIGHT.isoformat(), "start_time": "23:00", "end_time": "03:00", "party_size": 7}
    response = client.get(f"/venues/{venue['id']}/recommendations", params=params)
    
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["has_candidates"] is True
    assert len(data["recommendations"]) == 1
    best = data["recommendations"][0]
    assert best["rank"] == 1
    assert best["combination_type"] == "combination"
    assert best["table_numbers"] == ["6", "7"]
    assert best["total_capacity"] == 8

def test_recommendations_empty_for_large_party(client, venue):
    params = {"date": NIGHT.isoformat(), "party_size": 20}
    response = client.get(f"/venues/{venue['id']}/recommendations", params=params)
    
    assert response.status_code == 200
    assert response.json()["data"]["has_candidates"] is False
    assert response.json()["data"]["recommendations"] == []

def test_recommendations_reject_bad_time(client, venue):
    params = {"date": NIGHT.isoformat(), "start_time": "25:00", "end_time": "03:00", "party_size": 4}
    response = client.get(f"/venues/{venue['id']}/recommendations", params=params)
    
    assert response.status_code == 422
    assert response.json()["error_code"] == "invalid_request"

def test_create_booking_then_conflict(client, venue):
    created = client.post("/bookings", json=booking_payload(venue))
    
    assert created.status_code == 201
    data = created.json()["data"]
    assert data["booking_reference"].startswith("BR" + NIGHT.strftime("%y%m%d"))
    assert data["total_deposit"] == 75
    assert data["status"] == "pending"
    
    clash = client.post("/bookings", json=booking_payload(venue, numbers=("7",), party_size=5, start_time="23:30"))
    
    assert clash.status_code == 409
    body = clash.json()
    assert body["error_code"] == "table_conflict"
    assert body["retryable"] is False
    assert body["details"]["table_ids"] == [venue["tables"]["7"]]

@pytest.mark.parametrize("overrides", [
    {"customer_email": "not-an-email"},
    {"customer_name": "J"},
    {"customer_phone": "12345"},
    {"party_size": 0},
    {"party_size": 26},
    {"table_ids": []},
    {"booking_date": (date.today() - timedelta(days=1)).isoformat()},
    {"booking_date": (date.today() + timedelta(days=400)).isoformat()},
])
def test_create_booking_validation(client, venue, overrides):
    response = client.post("/bookings", json=booking_payload(venue, **overrides))
    
    assert response.status_code == 422

def test_create_booking_zero_length_window(client, venue):
    response = client.post("/bookings", json=booking_payload(venue, end_time="23:00"))
    
    assert response.status_code == 422
    assert response.json()["error_code"] == "invalid_request"

def test_commit_lock_timeout_is_retryable(client, venue, store):
    impatient = BookingEngine(store, lock_timeout=0.05)
    app.dependency_overrides[get_booking_engine] = lambda: impatient
    keys = TableLockRegistry.keys_for([venue["tables"]["6"]], [NIGHT])
    
    with impatient.locks.hold(keys):
        response = client.post("/bookings", json=booking_payload(venue, numbers=("6",), party_size=5))
    
    assert response.status_code == 503
    assert response.json()["error_code"] == "commit_timeout"
    assert response.json()["retryable"] is True

def test_store_outage_is_retryable(client, venue, tmp_path):
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    
    broken = create_engine(f"sqlite:///{tmp_path / 'missing' / 'booking.db'}")
    app.dependency_overrides[get_booking_engine] = lambda: BookingEngine(SqlReservationStore(sessionmaker(bind=broken)))
    
    params = {"date": NIGHT.isoformat(), "party_size": 4}
    response = client.get(f"/venues/{venue['id']}/recommendations", params=params)
    
    assert response.status_code == 503
    assert response.json()["error_code"] == "store_unavailable"
    assert response.json()["retryable"] is True

def test_booking_lookup_and_qr(client, venue):
    reference = client.post("/bookings", json=booking_payload(venue)).json()["data"]["booking_reference"]
    
    response = client.get(f"/bookings/{reference.lower()}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["table_numbers"] == ["6", "7"]
    assert (data["start_time"], data["end_time"]) == ("23:00", "03:00")
    
    qr = client.get(f"/bookings/{reference}/qr.png")
    assert qr.status_code == 200
    assert qr.headers["content-type"] == "image/png"
    assert qr.content.startswith(b"\x89PNG")
    
    assert client.get("/bookings/BR000000ZZZZ").status_code == 404

def test_admin_requires_token(client, venue):
    reference = client.post("/bookings", json=booking_payload(venue)).json()["data"]["booking_reference"]
    
    missing = client.patch(f"/admin/bookings/{reference}/status", json={"status": "confirmed"})
    wrong = client.patch(
        f"/admin/bookings/{reference}/status",
        json={"status": "confirmed"},
        headers={"Authorization": "Bearer nope"}
    )
    
    assert missing.status_code in (401, 403)
    assert wrong.status_code == 401

def test_admin_status_update(client, venue):
    reference = client.post("/bookings", json=booking_payload(venue)).json()["data"]["booking_reference"]
    
    confirmed = client.patch(f"/admin/bookings/{reference}/status", json={"status": "confirmed"}, headers=ADMIN_HEADERS)
    assert confirmed.status_code == 200
    assert confirmed.json()["data"]["status"] == "confirmed"
    
    back = client.patch(f"/admin/bookings/{reference}/status", json={"status": "pending"}, headers=ADMIN_HEADERS)
    assert back.status_code == 422
    
    unknown = client.patch("/admin/bookings/BR000000ZZZZ/status", json={"status": "confirmed"}, headers=ADMIN_HEADERS)
    assert unknown.status_code == 404

def test_cancelled_booking_frees_tables(client, venue):
    reference = client.post("/bookings", json=booking_payload(venue)).json()["data"]["booking_reference"]
    client.patch(f"/admin/bookings/{reference}/status", json={"status": "cancelled"}, headers=ADMIN_HEADERS)
    
    assert client.post("/bookings", json=booking_payload(venue)).status_code == 201

def test_door_list_export(client, venue):
    reference = client.post("/bookings", json=booking_payload(venue)).json()["data"]["booking_reference"]
    
    response = client.get(
        f"/admin/venues/{venue['id']}/door-list.xlsx",
        params={"date": NIGHT.isoformat()},
        headers=ADMIN_HEADERS
    )
    
    assert response.status_code == 200
    df = pd.read_excel(io.BytesIO(response.content))
    assert list(df["Reference"]) == [reference]
    assert df.iloc[0]["Tables"] == "6, 7"
    assert df.iloc[0]["Party Size"] == 7

def test_rate_limit(client, venue, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_PER_MINUTE", 2)
    
    statuses = [client.get("/venues/backroom").status_code for _ in range(3)]
    
    assert statuses == [200, 200, 429]

def test_websocket_ping(client, venue):
    with client.websocket_connect(f"/ws/venues/{venue['id']}/{NIGHT.isoformat()}") as websocket:
        welcome = websocket.receive_json()
        assert welcome["type"] == "connection"
        assert welcome["connection_count"] == 1
        
        websocket.send_json({"type": "ping", "timestamp": 1})
        assert websocket.receive_json() == {"type": "pong", "timestamp": 1}

def test_websocket_unknown_venue_is_closed(client, venue):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/venues/9999/{NIGHT.isoformat()}") as websocket:
            websocket.receive_json()

def test_missing_end_time_defaults_to_closing(client, venue):
    params = {"date": NIGHT.isoformat(), "start_time": "22:00"}
    response = client.get(f"/venues/{venue['id']}/tables", params=params)
    
    assert response.status_code == 200
    data = response.json()["data"]
    assert (data["start_time"], data["end_time"]) == ("22:00", venue_hours(NIGHT)["close"])
