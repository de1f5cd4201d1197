"""
Tests for reservation change broadcasting
"""

import asyncio
from datetime import date

from app.api.ws import WebSocketManager, room_key
from app.services.notification_service import BookingNotifier
from app.utils.time_window import BookingWindow

class FakeWebSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail
    
    async def accept(self):
        pass
    
    async def send_text(self, text):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(text)

def test_room_key():
    assert room_key(3, date(2030, 3, 1)) == "3:2030-03-01"
    assert room_key(3, "2030-03-01") == "3:2030-03-01"

def test_wrapped_window_notifies_both_nights():
    manager = WebSocketManager()
    tonight, tomorrow, other = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
    
    async def scenario():
        await manager.connect(tonight, room_key(1, "2030-03-01"))
        await manager.connect(tomorrow, room_key(1, "2030-03-02"))
        await manager.connect(other, room_key(2, "2030-03-01"))
        window = BookingWindow.build("2030-03-01", "23:00", "03:00")
        return await BookingNotifier(manager).reservations_changed(1, window, [7, 6], "pending", "BR300301ABCD")
    
    delivered = asyncio.run(scenario())
    
    assert delivered == 2
    assert len(tonight.sent) == 1 and len(tomorrow.sent) == 1
    assert other.sent == []
    assert '"affected_tables": [6, 7]' in tonight.sent[0]
    assert '"booking_date": "2030-03-02"' in tomorrow.sent[0]

def test_broken_socket_is_dropped():
    manager = WebSocketManager()
    healthy, broken = FakeWebSocket(), FakeWebSocket(fail=True)
    room = room_key(1, "2030-03-01")
    
    async def scenario():
        await manager.connect(healthy, room)
        await manager.connect(broken, room)
        return await manager.broadcast(room, {"type": "reservations_changed"})
    
    assert asyncio.run(scenario()) == 1
    assert manager.get_connection_count(room) == 1

def test_nobody_listening():
    window = BookingWindow.build("2030-03-01", "20:00", "23:00")
    
    assert asyncio.run(BookingNotifier(WebSocketManager()).reservations_changed(1, window, [1], "cancelled")) == 0
