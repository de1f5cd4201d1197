"""
Security utilities: staff token check and per-IP rate limiting
"""

from fastapi import HTTPException, Depends, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Dict, List
import secrets
import threading
import time
from collections import defaultdict

from app.core.config import settings

security = HTTPBearer()

def verify_admin_token(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Verify venue staff token"""
    if not secrets.compare_digest(credentials.credentials, settings.ADMIN_TOKEN):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token"
        )
    return credentials.credentials

class RateLimiter:
    """Sliding one-minute window per client IP"""
    
    def __init__(self, window_seconds: int = 60):
        self.window_seconds = window_seconds
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._lock = threading.Lock()
    
    def allow(self, client_ip: str, limit: int = None) -> bool:
        if limit is None:
            limit = settings.RATE_LIMIT_PER_MINUTE
        
        current_time = time.time()
        window_start = current_time - self.window_seconds
        
        with self._lock:
            # Clean old requests
            recent = [t for t in self._requests[client_ip] if t > window_start]
            if len(recent) >= limit:
                self._requests[client_ip] = recent
                return False
            recent.append(current_time)
            self._requests[client_ip] = recent
            return True
    
    def reset(self):
        with self._lock:
            self._requests.clear()

rate_limiter = RateLimiter()

def rate_limit_check(client_ip: str, limit: int = None) -> bool:
    """Simple rate limiting by IP address"""
    return rate_limiter.allow(client_ip, limit)

def get_client_ip(request: Request) -> str:
    """Extract client IP from request"""
    # Check for forwarded IP first (for reverse proxy setups)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    
    return request.client.host if request.client else "unknown"
