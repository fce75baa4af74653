from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from src.models import Booking, Passenger

def format_seat_number(class_type: str, ordinal: int) -> str:
    return f"{class_type}-{ordinal:03d}"

def parse_seat_ordinal(seat_number: str) -> Optional[int]:
    """Ordinal part of a `<class>-<NNN>` seat number, or None if malformed"""
    _, sep, ordinal = seat_number.rpartition("-")
    if not sep or not ordinal.isdigit():
        return None
    return int(ordinal)

class SeatAssigner:
    """Hands out seat numbers per (train, class, travel date) scope.

    Numbers only ever move forward: the next seat is one past the highest
    ordinal ever issued in the scope, cancelled bookings included, so seats
    freed by a cancellation leave a gap instead of being handed out again.
    Must be called while holding the scope lock.
    """

    @staticmethod
    def highest_ordinal(db: Session, train_id: int, class_type: str, travel_date: date) -> int:
        rows = db.query(Passenger.seat_number).join(
            Booking, Passenger.booking_id == Booking.id
        ).filter(
            Booking.train_id == train_id,
            Booking.class_type == class_type,
            Booking.travel_date == travel_date
        ).all()

        ordinals = [parse_seat_ordinal(row.seat_number) for row in rows]
        return max((o for o in ordinals if o is not None), default=0)

    @staticmethod
    def next_seat_number(db: Session, train_id: int, class_type: str, travel_date: date) -> str:
        highest = SeatAssigner.highest_ordinal(db, train_id, class_type, travel_date)
        return format_seat_number(class_type, highest + 1)

    @staticmethod
    def allocate(db: Session, train_id: int, class_type: str, travel_date: date, count: int) -> List[str]:
        """Consecutive seat numbers for `count` passengers, in order"""
        highest = SeatAssigner.highest_ordinal(db, train_id, class_type, travel_date)
        return [format_seat_number(class_type, highest + i) for i in range(1, count + 1)]
