"""
Tests for the door list export and booking QR codes
"""

import io
import pandas as pd
from datetime import date, datetime
from decimal import Decimal

from app.services.excel_service import ExcelService
from app.services.qr_service import QRService
from app.services.repositories import ReservationRecord
from app.utils.time_window import BookingWindow

def make_record(reference, start, end, tables, **extra):
    fields = dict(
        id=1,
        venue_id=1,
        booking_reference=reference,
        customer_name="Jane Doe",
        customer_email="jane@example.com",
        customer_phone="07700900123",
        window=BookingWindow.build(date(2030, 3, 1), start, end),
        party_size=5,
        status="confirmed",
        table_ids=list(range(len(tables))),
        table_numbers=tables,
        total_deposit=Decimal("75.00"),
        total_min_spend=Decimal("350.00"),
        created_at=datetime(2030, 2, 1, 12, 0),
    )
    fields.update(extra)
    return ReservationRecord(**fields)

def test_rows_ordered_by_arrival():
    rows = ExcelService.door_list_rows([
        make_record("BR300301LATE", "23:30", "04:00", ["6", "7"]),
        make_record("BR300301ERLY", "20:00", "23:00", ["15"], occasion="Birthday"),
    ])
    
    assert [r["Reference"] for r in rows] == ["BR300301ERLY", "BR300301LATE"]
    assert rows[0]["Occasion"] == "Birthday"
    assert rows[1]["Tables"] == "6, 7"
    assert rows[1]["End"] == "04:00"

def test_export_workbook():
    excel_bytes = ExcelService.export_door_list([make_record("BR300301ABCD", "23:00", "03:00", ["6"])])
    
    df = pd.read_excel(io.BytesIO(excel_bytes), sheet_name="Door List")
    assert list(df.columns) == ExcelService.DOOR_LIST_COLUMNS
    assert df.iloc[0]["Deposit"] == 75.0

def test_empty_night_still_has_headers():
    df = pd.read_excel(io.BytesIO(ExcelService.export_door_list([])))
    
    assert list(df.columns) == ExcelService.DOOR_LIST_COLUMNS
    assert len(df) == 0

def test_qr_points_at_booking():
    assert QRService.get_booking_url("BR300301ABCD").endswith("/bookings/BR300301ABCD")
    assert QRService.generate_booking_qr("BR300301ABCD").startswith(b"\x89PNG")
