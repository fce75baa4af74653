from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.exceptions import NotFoundError
from src.models import Booking, Passenger, TrainClass, BOOKING_STATUS_CONFIRMED

class AvailabilityCalculator:
    """Seats left in a (train, class, travel date) scope.

    Always derived from the Confirmed passenger rows; there is no stored
    counter to drift. Callers making a reservation decision must run this
    inside the same transaction that holds the scope lock.
    """

    @staticmethod
    def confirmed_passenger_count(
        db: Session,
        train_id: int,
        class_type: str,
        travel_date: date
    ) -> int:
        count = db.query(func.count(Passenger.id)).join(
            Booking, Passenger.booking_id == Booking.id
        ).filter(
            Booking.train_id == train_id,
            Booking.class_type == class_type,
            Booking.travel_date == travel_date,
            Booking.status == BOOKING_STATUS_CONFIRMED
        ).scalar()
        return count or 0

    @staticmethod
    def get_available_seats(
        db: Session,
        train_id: int,
        class_type: str,
        travel_date: date,
        train_class: Optional[TrainClass] = None
    ) -> int:
        """Total seats of the class minus passengers on Confirmed bookings"""
        if train_class is None:
            train_class = db.query(TrainClass).filter(
                TrainClass.train_id == train_id,
                TrainClass.class_type == class_type
            ).first()
        if train_class is None:
            raise NotFoundError("Train class not found")

        booked = AvailabilityCalculator.confirmed_passenger_count(db, train_id, class_type, travel_date)
        return train_class.total_seats - booked
