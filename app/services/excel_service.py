"""
Excel export of a night's bookings for door staff
"""

import io
from typing import Iterable, List
import pandas as pd

from app.services.repositories import ReservationRecord

class ExcelService:
    """Service for handling Excel operations"""
    
    DOOR_LIST_COLUMNS = [
        'Reference', 'Name', 'Phone', 'Party Size', 'Start', 'End',
        'Tables', 'Status', 'Deposit', 'Min Spend', 'Occasion', 'Special Requests'
    ]
    
    @staticmethod
    def door_list_rows(reservations: Iterable[ReservationRecord]) -> List[dict]:
        """Flatten reservations into spreadsheet rows, earliest arrival first"""
        ordered = sorted(reservations, key=lambda r: (r.window.start, r.booking_reference))
        return [
            {
                'Reference': r.booking_reference,
                'Name': r.customer_name,
                'Phone': r.customer_phone,
                'Party Size': r.party_size,
                'Start': r.window.start_time.strftime('%H:%M'),
                'End': r.window.end_time.strftime('%H:%M'),
                'Tables': ', '.join(r.table_numbers),
                'Status': r.status,
                'Deposit': float(r.total_deposit),
                'Min Spend': float(r.total_min_spend),
                'Occasion': r.occasion or '',
                'Special Requests': r.special_requests or '',
            }
            for r in ordered
        ]
    
    @staticmethod
    def export_door_list(reservations: Iterable[ReservationRecord], sheet_name: str = 'Door List') -> bytes:
        """Export bookings to an Excel workbook"""
        df = pd.DataFrame(ExcelService.door_list_rows(reservations), columns=ExcelService.DOOR_LIST_COLUMNS)
        
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name=sheet_name)
        
        return buffer.getvalue()
