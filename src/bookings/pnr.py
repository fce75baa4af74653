import secrets
from datetime import date
from typing import Optional

def generate_pnr(today: Optional[date] = None) -> str:
    """Booking reference: day of month, month, then six random digits.

    Not collision-free; the unique constraint on bookings.pnr is the guard.
    """
    today = today or date.today()
    return f"{today.day:02d}{today.month:02d}{secrets.randbelow(1_000_000):06d}"
