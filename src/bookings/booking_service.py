from typing import Callable, Dict, List, Optional, TypeVar
from datetime import date
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, selectinload

from src.config import settings
from src.exceptions import (
    AlreadyCancelledError, BookingValidationError, CapacityExceededError,
    NotFoundError, TransientPersistenceError
)
from src.models import (
    Booking, Passenger, TrainClass, BOOKING_STATUS_CANCELLED, BOOKING_STATUS_CONFIRMED
)
from src.bookings.availability import AvailabilityCalculator
from src.bookings.locking import acquire_scope_lock
from src.bookings.pnr import generate_pnr
from src.bookings.schemas import BookingCreateRequest
from src.bookings.seat_assigner import SeatAssigner
from src.trains.service import TrainRegistry

T = TypeVar("T")

class BookingService:
    """Service for the booking lifecycle: create, read and cancel.

    Every mutation is a single all-or-nothing transaction. Creation holds the
    scope lock for its whole duration so the availability check, seat
    numbering and inserts cannot interleave with another booking for the same
    train, class and travel date.
    """

    def __init__(self, db: Session, pnr_generator: Callable[[], str] = generate_pnr):
        self.db = db
        self.pnr_generator = pnr_generator

    def create_booking(self, user_id: int, request: BookingCreateRequest) -> Booking:
        """Reserve seats for every passenger of the request or fail without writing anything"""
        if not request.passengers:
            raise BookingValidationError("passengers", "At least one passenger is required")

        booking = self._run_in_transaction(
            lambda: self._reserve(user_id, request),
            action="create booking"
        )

        logger.info(
            f"Booking {booking.pnr} confirmed: train={booking.train_id} class={booking.class_type} "
            f"date={booking.travel_date} passengers={len(request.passengers)} fare={booking.total_fare}"
        )
        return booking

    def cancel_booking(self, booking_id: int) -> Booking:
        """Flip a Confirmed booking to Cancelled; its seats stop counting immediately"""
        booking = self._run_in_transaction(
            lambda: self._cancel(booking_id),
            action="cancel booking"
        )

        logger.info(f"Booking {booking.pnr} cancelled")
        return booking

    def get_booking(self, booking_id: int) -> Booking:
        """Get booking by ID with its passengers"""
        booking = self.db.query(Booking).options(
            selectinload(Booking.passengers),
            selectinload(Booking.train)
        ).filter(Booking.id == booking_id).first()

        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def get_user_bookings(self, user_id: int, today: Optional[date] = None) -> Dict[str, List[Booking]]:
        """Get all bookings for a user, split into upcoming, past and cancelled"""
        today = today or date.today()

        bookings = self.db.query(Booking).options(
            selectinload(Booking.passengers),
            selectinload(Booking.train)
        ).filter(
            Booking.user_id == user_id
        ).order_by(Booking.travel_date.desc(), Booking.id.desc()).all()

        return {
            "upcoming": [
                b for b in bookings
                if b.status == BOOKING_STATUS_CONFIRMED and b.travel_date >= today
            ],
            "past": [
                b for b in bookings
                if b.status == BOOKING_STATUS_CONFIRMED and b.travel_date < today
            ],
            "cancelled": [b for b in bookings if b.status == BOOKING_STATUS_CANCELLED],
            "all": bookings,
        }

    def get_all_bookings(self) -> List[Booking]:
        return self.db.query(Booking).options(
            selectinload(Booking.passengers),
            selectinload(Booking.train)
        ).order_by(Booking.booking_date.desc(), Booking.id.desc()).all()

    def _run_in_transaction(self, work: Callable[[], T], action: str) -> T:
        """Run `work` and commit, retrying the whole transaction on lock timeouts"""
        max_attempts = settings.TRANSACTION_MAX_RETRIES

        for attempt in range(1, max_attempts + 1):
            try:
                result = work()
                self.db.commit()
            except OperationalError as e:
                self.db.rollback()
                logger.warning(f"Transient failure during {action} (attempt {attempt}/{max_attempts}): {e.orig}")
                continue
            except Exception:
                self.db.rollback()
                raise

            self.db.refresh(result)
            return result

        raise TransientPersistenceError(f"Could not {action} right now, please retry")

    def _reserve(self, user_id: int, request: BookingCreateRequest) -> Booking:
        passenger_count = len(request.passengers)

        acquire_scope_lock(self.db, request.train_id, request.class_type, request.travel_date)

        train_class = TrainRegistry.lookup(self.db, request.train_id, request.class_type)
        if not train_class:
            raise NotFoundError("Train class not found")

        available = AvailabilityCalculator.get_available_seats(
            self.db,
            request.train_id,
            request.class_type,
            request.travel_date,
            train_class=train_class
        )
        if available < passenger_count:
            logger.warning(
                f"Capacity exceeded: train={request.train_id} class={request.class_type} "
                f"date={request.travel_date} requested={passenger_count} available={available}"
            )
            raise CapacityExceededError(passenger_count, available)

        # Flat per-seat pricing
        total_fare = Decimal(train_class.fare) * passenger_count

        booking = self._insert_booking(user_id, request, train_class, total_fare)

        seat_numbers = SeatAssigner.allocate(
            self.db,
            request.train_id,
            request.class_type,
            request.travel_date,
            passenger_count
        )
        for passenger, seat_number in zip(request.passengers, seat_numbers):
            self.db.add(Passenger(
                booking_id=booking.id,
                name=passenger.name,
                age=passenger.age,
                gender=passenger.gender,
                seat_number=seat_number
            ))

        self.db.flush()
        return booking

    def _insert_booking(
        self,
        user_id: int,
        request: BookingCreateRequest,
        train_class: TrainClass,
        total_fare: Decimal
    ) -> Booking:
        """Insert the booking row, regenerating the PNR when it collides"""
        train = train_class.train
        max_attempts = settings.PNR_MAX_ATTEMPTS

        for attempt in range(1, max_attempts + 1):
            booking = Booking(
                user_id=user_id,
                train_id=request.train_id,
                pnr=self.pnr_generator(),
                class_type=request.class_type,
                travel_date=request.travel_date,
                status=BOOKING_STATUS_CONFIRMED,
                total_fare=total_fare,
                source_station=request.source_station or train.source,
                source_code=request.source_code,
                destination_station=request.destination_station or train.destination,
                destination_code=request.destination_code,
                departure_time=request.departure_time,
                arrival_time=request.arrival_time,
                duration=request.duration,
                distance=request.distance
            )

            # Savepoint keeps the scope lock when only this insert fails
            try:
                with self.db.begin_nested():
                    self.db.add(booking)
            except IntegrityError:
                logger.warning(f"PNR {booking.pnr} already issued, regenerating (attempt {attempt}/{max_attempts})")
                continue

            return booking

        raise TransientPersistenceError("Could not allocate a unique booking reference, please retry")

    def _cancel(self, booking_id: int) -> Booking:
        booking = self.db.query(Booking).filter(
            Booking.id == booking_id
        ).with_for_update().first()

        if not booking:
            raise NotFoundError("Booking not found")

        if booking.status == BOOKING_STATUS_CANCELLED:
            raise AlreadyCancelledError()

        booking.status = BOOKING_STATUS_CANCELLED
        self.db.flush()
        return booking
