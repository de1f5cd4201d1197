"""
WebSocket manager for real-time availability updates
"""

import json
import logging
from datetime import date
from typing import Dict, List
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.models import Venue

logger = logging.getLogger(__name__)

def room_key(venue_id: int, booking_date) -> str:
    """Room name for one venue night"""
    if isinstance(booking_date, date):
        booking_date = booking_date.isoformat()
    return f"{venue_id}:{booking_date}"

class WebSocketManager:
    """Manages WebSocket connections for real-time updates"""
    
    def __init__(self):
        # room key -> list of websockets
        self.active_connections: Dict[str, List[WebSocket]] = {}
    
    async def connect(self, websocket: WebSocket, room: str):
        """Accept WebSocket connection and add to room"""
        await websocket.accept()
        
        if room not in self.active_connections:
            self.active_connections[room] = []
        
        self.active_connections[room].append(websocket)
        logger.info(f"WebSocket connected to {room}. Total connections: {len(self.active_connections[room])}")
    
    def disconnect(self, websocket: WebSocket, room: str):
        """Remove WebSocket connection from room"""
        if room in self.active_connections:
            try:
                self.active_connections[room].remove(websocket)
                logger.info(f"WebSocket disconnected from {room}. Remaining connections: {len(self.active_connections[room])}")
                
                # Clean up empty rooms
                if not self.active_connections[room]:
                    del self.active_connections[room]
            except ValueError:
                # WebSocket was not in the list
                pass
    
    async def send_personal_message(self, message: dict, websocket: WebSocket):
        """Send message to specific WebSocket"""
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.error(f"Error sending personal message: {e}")
    
    async def broadcast(self, room: str, message: dict) -> int:
        """Broadcast message to every WebSocket in a room, returns deliveries"""
        if room not in self.active_connections:
            logger.debug(f"No active connections for {room}")
            return 0
        
        # Copy so disconnects during iteration are safe
        connections = self.active_connections[room].copy()
        
        delivered = 0
        disconnected = []
        for websocket in connections:
            try:
                await websocket.send_text(json.dumps(message))
                delivered += 1
            except Exception as e:
                logger.error(f"Error broadcasting to websocket: {e}")
                disconnected.append(websocket)
        
        for websocket in disconnected:
            self.disconnect(websocket, room)
        return delivered
    
    def get_connection_count(self, room: str) -> int:
        """Get number of active connections for a room"""
        return len(self.active_connections.get(room, []))
    
    def get_all_connection_counts(self) -> Dict[str, int]:
        """Get connection counts for all rooms"""
        return {
            room: len(connections)
            for room, connections in self.active_connections.items()
        }

# Global WebSocket manager instance
websocket_manager = WebSocketManager()

# Router for WebSocket endpoints
router = APIRouter()

@router.websocket("/venues/{venue_id}/{booking_date}")
async def websocket_endpoint(
    websocket: WebSocket,
    venue_id: int,
    booking_date: str,
    db: Session = Depends(get_db)
):
    """Push reservation changes for one venue night"""
    
    venue = db.query(Venue).filter(Venue.id == venue_id, Venue.is_active == True).first()
    venue_name = venue.name if venue else None
    # release the read transaction before the long-lived socket loop
    db.close()
    if venue_name is None:
        await websocket.close(code=4004, reason="Venue not found")
        return
    try:
        date.fromisoformat(booking_date)
    except ValueError:
        await websocket.close(code=4000, reason="Invalid date")
        return
    
    room = room_key(venue_id, booking_date)
    await websocket_manager.connect(websocket, room)
    
    try:
        welcome_message = {
            "type": "connection",
            "message": f"Watching {venue_name} on {booking_date}",
            "venue_id": venue_id,
            "booking_date": booking_date,
            "connection_count": websocket_manager.get_connection_count(room)
        }
        await websocket_manager.send_personal_message(welcome_message, websocket)
        
        # Keep connection alive and answer heartbeats
        while True:
            try:
                data = await websocket.receive_text()
                
                try:
                    client_message = json.loads(data)
                    
                    if client_message.get("type") == "ping":
                        pong_message = {
                            "type": "pong",
                            "timestamp": client_message.get("timestamp")
                        }
                        await websocket_manager.send_personal_message(pong_message, websocket)
                
                except json.JSONDecodeError:
                    logger.warning(f"Invalid JSON received from WebSocket: {data}")
                    
            except WebSocketDisconnect:
                break
            except Exception as e:
                logger.error(f"Error in WebSocket loop: {e}")
                break
    
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        websocket_manager.disconnect(websocket, room)

@router.get("/stats")
async def websocket_stats():
    """Get WebSocket connection statistics (for debugging)"""
    counts = websocket_manager.get_all_connection_counts()
    return {
        "total_rooms_with_connections": len(counts),
        "connection_counts": counts,
        "total_connections": sum(counts.values())
    }
