from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from src.bookings import booking_service as booking_service_module
from src.bookings.availability import AvailabilityCalculator
from src.bookings.booking_service import BookingService
from src.bookings.schemas import BookingCreateRequest
from src.config import settings
from src.exceptions import (
    AlreadyCancelledError, BookingValidationError, CapacityExceededError,
    NotFoundError, TransientPersistenceError
)
from src.models import Booking, Passenger, BOOKING_STATUS_CANCELLED, BOOKING_STATUS_CONFIRMED
from tests.conftest import TRAVEL_DATE, TEST_USER_ID, booking_request


def available(db, train_id, class_type="CLS", travel_date=TRAVEL_DATE):
    return AvailabilityCalculator.get_available_seats(db, train_id, class_type, travel_date)


class TestCreateBooking:
    def test_total_fare_is_fare_times_passengers(self, db, train_id):
        booking = BookingService(db).create_booking(TEST_USER_ID, booking_request(train_id, count=2))

        assert booking.total_fare == Decimal("500")
        assert booking.status == BOOKING_STATUS_CONFIRMED
        assert booking.user_id == TEST_USER_ID
        assert len(booking.pnr) == 10

    def test_booking_reduces_availability(self, db, train_id):
        assert available(db, train_id) == 10

        BookingService(db).create_booking(TEST_USER_ID, booking_request(train_id, count=3))

        assert available(db, train_id) == 7

    def test_segment_defaults_to_train_route(self, db, train_id):
        booking = BookingService(db).create_booking(TEST_USER_ID, booking_request(train_id))

        assert booking.source_station == "Mumbai Central"
        assert booking.destination_station == "New Delhi"
        assert booking.source_code is None

    def test_segment_override_is_stored(self, db, train_id):
        request = booking_request(
            train_id,
            source_station="Surat", source_code="ST",
            destination_station="Kota", destination_code="KOTA",
            departure_time="19:45", distance="600 km"
        )

        booking = BookingService(db).create_booking(TEST_USER_ID, request)

        assert booking.source_station == "Surat"
        assert booking.destination_code == "KOTA"
        assert booking.departure_time == "19:45"
        assert booking.distance == "600 km"

    def test_capacity_exceeded_writes_nothing(self, db, train_id):
        with pytest.raises(CapacityExceededError) as exc_info:
            BookingService(db).create_booking(TEST_USER_ID, booking_request(train_id, class_type="SL", count=3))

        assert exc_info.value.requested == 3
        assert exc_info.value.available == 2
        assert db.query(Booking).count() == 0
        assert db.query(Passenger).count() == 0

    def test_last_seats_can_be_booked(self, db, train_id):
        service = BookingService(db)
        service.create_booking(TEST_USER_ID, booking_request(train_id, class_type="SL", count=2))

        assert available(db, train_id, "SL") == 0
        with pytest.raises(CapacityExceededError):
            service.create_booking(TEST_USER_ID, booking_request(train_id, class_type="SL", count=1))

    def test_unknown_class_is_not_found(self, db, train_id):
        with pytest.raises(NotFoundError):
            BookingService(db).create_booking(TEST_USER_ID, booking_request(train_id, class_type="XX"))

        assert db.query(Booking).count() == 0

    def test_unknown_train_is_not_found(self, db, train_id):
        with pytest.raises(NotFoundError):
            BookingService(db).create_booking(TEST_USER_ID, booking_request(train_id + 999))

    def test_empty_passenger_list_is_rejected(self, db, train_id):
        request = BookingCreateRequest.model_construct(
            train_id=train_id, class_type="CLS", travel_date=TRAVEL_DATE, passengers=[]
        )

        with pytest.raises(BookingValidationError) as exc_info:
            BookingService(db).create_booking(TEST_USER_ID, request)

        assert exc_info.value.field == "passengers"
        assert db.query(Booking).count() == 0

    def test_request_model_rejects_empty_passenger_list(self, train_id):
        with pytest.raises(ValueError):
            BookingCreateRequest(train_id=train_id, class_type="CLS", travel_date=TRAVEL_DATE, passengers=[])


class TestPnrCollision:
    def test_collision_is_retried_with_a_new_pnr(self, db, train_id):
        BookingService(db, pnr_generator=lambda: "1910000001").create_booking(
            TEST_USER_ID, booking_request(train_id)
        )

        codes = iter(["1910000001", "1910000001", "1910000002"])
        booking = BookingService(db, pnr_generator=lambda: next(codes)).create_booking(
            TEST_USER_ID, booking_request(train_id, count=2)
        )

        assert booking.pnr == "1910000002"
        assert db.query(Booking).count() == 2
        assert db.query(Passenger).filter(Passenger.booking_id == booking.id).count() == 2

    def test_exhausted_retries_leave_no_partial_writes(self, db, train_id):
        BookingService(db, pnr_generator=lambda: "1910000001").create_booking(
            TEST_USER_ID, booking_request(train_id)
        )

        with pytest.raises(TransientPersistenceError):
            BookingService(db, pnr_generator=lambda: "1910000001").create_booking(
                TEST_USER_ID, booking_request(train_id, count=2)
            )

        assert db.query(Booking).count() == 1
        assert db.query(Passenger).count() == 1


class TestLockTimeouts:
    @staticmethod
    def failing_lock(failures):
        calls = []

        def acquire(db, train_id, class_type, travel_date):
            calls.append(train_id)
            if len(calls) <= failures:
                raise OperationalError("SELECT pg_advisory_xact_lock(:key)", {}, Exception("lock timeout"))

        return acquire, calls

    def test_lock_timeout_is_retried(self, db, train_id, monkeypatch):
        acquire, calls = self.failing_lock(failures=1)
        monkeypatch.setattr(booking_service_module, "acquire_scope_lock", acquire)

        booking = BookingService(db).create_booking(TEST_USER_ID, booking_request(train_id, count=2))

        assert len(calls) == 2
        assert [p.seat_number for p in booking.passengers] == ["CLS-001", "CLS-002"]
        assert db.query(Booking).count() == 1

    def test_exhausted_lock_retries_write_nothing(self, db, train_id, monkeypatch):
        acquire, calls = self.failing_lock(failures=settings.TRANSACTION_MAX_RETRIES)
        monkeypatch.setattr(booking_service_module, "acquire_scope_lock", acquire)

        with pytest.raises(TransientPersistenceError) as exc_info:
            BookingService(db).create_booking(TEST_USER_ID, booking_request(train_id, count=2))

        assert exc_info.value.status_code == 503
        assert len(calls) == settings.TRANSACTION_MAX_RETRIES
        assert db.query(Booking).count() == 0
        assert db.query(Passenger).count() == 0
        assert available(db, train_id) == 10


class TestCancelBooking:
    def test_cancel_releases_exactly_the_booked_seats(self, db, train_id):
        service = BookingService(db)
        service.create_booking(TEST_USER_ID, booking_request(train_id, count=1))
        booking = service.create_booking(TEST_USER_ID, booking_request(train_id, count=2))
        before = available(db, train_id)

        cancelled = service.cancel_booking(booking.id)

        assert cancelled.status == BOOKING_STATUS_CANCELLED
        assert available(db, train_id) == before + 2

    def test_cancel_twice_reports_already_cancelled_and_changes_nothing(self, db, train_id):
        service = BookingService(db)
        booking = service.create_booking(TEST_USER_ID, booking_request(train_id, count=2))
        service.cancel_booking(booking.id)
        seats_after_first_cancel = available(db, train_id)

        with pytest.raises(AlreadyCancelledError):
            service.cancel_booking(booking.id)

        reloaded = service.get_booking(booking.id)
        assert reloaded.status == BOOKING_STATUS_CANCELLED
        assert len(reloaded.passengers) == 2
        assert available(db, train_id) == seats_after_first_cancel

    def test_cancel_unknown_booking(self, db, train_id):
        with pytest.raises(NotFoundError):
            BookingService(db).cancel_booking(12345)

    def test_passengers_are_kept_after_cancel(self, db, train_id):
        service = BookingService(db)
        booking = service.create_booking(TEST_USER_ID, booking_request(train_id, count=2))

        service.cancel_booking(booking.id)

        assert db.query(Passenger).filter(Passenger.booking_id == booking.id).count() == 2


class TestReadBookings:
    def test_get_booking_includes_passengers_and_train(self, db, train_id):
        service = BookingService(db)
        created = service.create_booking(TEST_USER_ID, booking_request(train_id, count=2))

        booking = service.get_booking(created.id)

        assert booking.train_name == "Express 12951"
        assert booking.train_number == "12951"
        assert [p.seat_number for p in booking.passengers] == ["CLS-001", "CLS-002"]

    def test_get_unknown_booking(self, db, train_id):
        with pytest.raises(NotFoundError):
            BookingService(db).get_booking(999)

    def test_user_bookings_are_partitioned(self, db, train_id):
        service = BookingService(db)
        today = date(2026, 10, 19)
        upcoming = service.create_booking(
            TEST_USER_ID, booking_request(train_id, travel_date=today)
        )
        past = service.create_booking(
            TEST_USER_ID, booking_request(train_id, travel_date=today - timedelta(days=3))
        )
        cancelled = service.create_booking(
            TEST_USER_ID, booking_request(train_id, travel_date=today + timedelta(days=5))
        )
        service.cancel_booking(cancelled.id)
        service.create_booking(999, booking_request(train_id, travel_date=today))

        result = service.get_user_bookings(TEST_USER_ID, today=today)

        assert [b.id for b in result["upcoming"]] == [upcoming.id]
        assert [b.id for b in result["past"]] == [past.id]
        assert [b.id for b in result["cancelled"]] == [cancelled.id]
        assert [b.id for b in result["all"]] == [cancelled.id, upcoming.id, past.id]

    def test_all_bookings_lists_every_user(self, db, train_id):
        service = BookingService(db)
        service.create_booking(TEST_USER_ID, booking_request(train_id))
        service.create_booking(999, booking_request(train_id))

        assert {b.user_id for b in service.get_all_bookings()} == {TEST_USER_ID, 999}
