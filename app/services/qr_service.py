"""
QR code generation service
"""

import io
import qrcode

from app.core.config import settings

class QRService:
    """Service for generating booking QR codes shown at the door"""
    
    @staticmethod
    def get_booking_url(booking_reference: str) -> str:
        """URL the QR code points at"""
        return f"{settings.BASE_URL}/bookings/{booking_reference}"
    
    @staticmethod
    def generate_booking_qr(booking_reference: str, format: str = 'PNG') -> bytes:
        """Generate QR code for a booking reference"""
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(QRService.get_booking_url(booking_reference))
        qr.make(fit=True)
        
        img = qr.make_image(fill_color="black", back_color="white")
        
        buffer = io.BytesIO()
        img.save(buffer, format=format)
        
        return buffer.getvalue()
