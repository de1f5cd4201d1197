"""
Reservation change broadcasting

Clients watching a venue night re-query availability when told something
changed. Results never depend on whether anyone is listening.
"""

import logging
from datetime import datetime
from typing import Iterable, List

from app.api.ws import WebSocketManager, room_key
from app.utils.time_window import BookingWindow

logger = logging.getLogger(__name__)

class BookingNotifier:
    """Fans reservation changes out to WebSocket rooms"""
    
    def __init__(self, websocket_manager: WebSocketManager):
        self.websocket_manager = websocket_manager
    
    async def reservations_changed(
        self,
        venue_id: int,
        window: BookingWindow,
        table_ids: Iterable[int],
        status: str,
        booking_reference: str = None
    ) -> int:
        """Broadcast to every night the window touches, returns deliveries"""
        affected: List[int] = sorted(set(table_ids))
        delivered = 0
        for day in window.calendar_days:
            message = {
                "type": "reservations_changed",
                "venue_id": venue_id,
                "booking_date": day.isoformat(),
                "status": status,
                "affected_tables": affected,
                "booking_reference": booking_reference,
                "timestamp": datetime.utcnow().isoformat()
            }
            delivered += await self.websocket_manager.broadcast(room_key(venue_id, day), message)
        
        logger.info(f"Reservation change for venue {venue_id} ({status}) sent to {delivered} clients")
        return delivered
