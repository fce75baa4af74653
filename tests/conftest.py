import os
from datetime import date, time, timedelta
from decimal import Decimal

# Settings are read at import time; point them at throwaway values first
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite:///./test_bootstrap.db"
os.environ["DEBUG"] = "false"
os.environ["LOCK_TIMEOUT_SECONDS"] = "10"

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from src.auth.utils import create_access_token  # noqa: E402
from src.bookings.schemas import BookingCreateRequest, PassengerInfo  # noqa: E402
from src.database import build_engine, get_db, init_db  # noqa: E402
from src.main import app  # noqa: E402
from src.models import Train, TrainClass  # noqa: E402

TEST_USER_ID = 101
OTHER_USER_ID = 202
ADMIN_USER_ID = 1

TRAVEL_DATE = date.today() + timedelta(days=30)


def auth_headers(user_id: int, role: str = "user") -> dict:
    token = create_access_token({"sub": str(user_id), "role": role})
    return {"Authorization": f"Bearer {token}"}


def passengers(count: int, prefix: str = "Passenger") -> list:
    return [
        PassengerInfo(name=f"{prefix} {i}", age=20 + i, gender="F" if i % 2 else "M")
        for i in range(1, count + 1)
    ]


def booking_request(train_id: int, class_type: str = "CLS", count: int = 1,
                    travel_date: date = TRAVEL_DATE, **segment) -> BookingCreateRequest:
    return BookingCreateRequest(
        train_id=train_id,
        class_type=class_type,
        travel_date=travel_date,
        passengers=passengers(count),
        **segment
    )


def create_train(session_factory, number: str = "12951", classes=None,
                 running_days=None, source_code: str = "MMCT",
                 destination_code: str = "NDLS") -> int:
    """Insert a train and return its id, using a session that is closed on return"""
    classes = classes or [("CLS", 10, "250.00")]
    session = session_factory()
    try:
        train = Train(
            number=number,
            name=f"Express {number}",
            source="Mumbai Central",
            source_code=source_code,
            destination="New Delhi",
            destination_code=destination_code,
            departure_time=time(17, 0),
            arrival_time=time(8, 35),
            duration="15h 35m",
            distance="1386 km",
            running_days=running_days or ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"],
            classes=[
                TrainClass(class_type=class_type, total_seats=seats, fare=Decimal(fare))
                for class_type, seats, fare in classes
            ],
        )
        session.add(train)
        session.commit()
        return train.id
    finally:
        session.close()


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def train_id(session_factory):
    return create_train(session_factory, classes=[("CLS", 10, "250.00"), ("SL", 2, "100.00")])


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers():
    return auth_headers(TEST_USER_ID)


@pytest.fixture
def other_user_headers():
    return auth_headers(OTHER_USER_ID)


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN_USER_ID, role="admin")
