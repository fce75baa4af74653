from datetime import timedelta

from src.bookings.booking_service import BookingService
from src.bookings.seat_assigner import SeatAssigner, format_seat_number, parse_seat_ordinal
from src.models import Passenger
from tests.conftest import TRAVEL_DATE, TEST_USER_ID, booking_request


def seat_numbers(db, booking_id):
    return [
        p.seat_number
        for p in db.query(Passenger).filter(Passenger.booking_id == booking_id).order_by(Passenger.id)
    ]


def test_format_seat_number_pads_to_three_digits():
    assert format_seat_number("CLS", 1) == "CLS-001"
    assert format_seat_number("2A", 42) == "2A-042"
    assert format_seat_number("SL", 1000) == "SL-1000"


def test_parse_seat_ordinal():
    assert parse_seat_ordinal("CLS-007") == 7
    assert parse_seat_ordinal("SL-1000") == 1000
    assert parse_seat_ordinal("garbage") is None
    assert parse_seat_ordinal("CLS-") is None


def test_first_seat_in_empty_scope(db, train_id):
    assert SeatAssigner.next_seat_number(db, train_id, "CLS", TRAVEL_DATE) == "CLS-001"


def test_new_booking_continues_after_existing_seats_in_input_order(db, train_id):
    service = BookingService(db)
    first = service.create_booking(TEST_USER_ID, booking_request(train_id, count=3))
    assert seat_numbers(db, first.id) == ["CLS-001", "CLS-002", "CLS-003"]

    second = service.create_booking(TEST_USER_ID, booking_request(train_id, count=3))

    passengers = db.query(Passenger).filter(Passenger.booking_id == second.id).order_by(Passenger.id).all()
    assert [p.seat_number for p in passengers] == ["CLS-004", "CLS-005", "CLS-006"]
    assert [p.name for p in passengers] == ["Passenger 1", "Passenger 2", "Passenger 3"]


def test_cancelled_seats_leave_gaps(db, train_id):
    service = BookingService(db)
    first = service.create_booking(TEST_USER_ID, booking_request(train_id, count=2))
    service.create_booking(TEST_USER_ID, booking_request(train_id, count=1))

    service.cancel_booking(first.id)
    third = service.create_booking(TEST_USER_ID, booking_request(train_id, count=1))

    assert seat_numbers(db, third.id) == ["CLS-004"]


def test_cancelling_latest_booking_does_not_reissue_its_seats(db, train_id):
    service = BookingService(db)
    service.create_booking(TEST_USER_ID, booking_request(train_id, count=1))
    latest = service.create_booking(TEST_USER_ID, booking_request(train_id, count=2))

    service.cancel_booking(latest.id)
    next_booking = service.create_booking(TEST_USER_ID, booking_request(train_id, count=1))

    assert seat_numbers(db, next_booking.id) == ["CLS-004"]


def test_numbering_is_per_scope(db, train_id):
    service = BookingService(db)
    service.create_booking(TEST_USER_ID, booking_request(train_id, count=2))

    other_date = service.create_booking(
        TEST_USER_ID, booking_request(train_id, count=1, travel_date=TRAVEL_DATE + timedelta(days=1))
    )
    other_class = service.create_booking(TEST_USER_ID, booking_request(train_id, class_type="SL", count=1))

    assert seat_numbers(db, other_date.id) == ["CLS-001"]
    assert seat_numbers(db, other_class.id) == ["SL-001"]
