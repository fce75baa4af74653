from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Date, Time, ForeignKey, Numeric, JSON, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.database import Base

# BIGINT primary keys do not autoincrement on SQLite
Identifier = BigInteger().with_variant(Integer, "sqlite")

BOOKING_STATUS_CONFIRMED = "Confirmed"
BOOKING_STATUS_CANCELLED = "Cancelled"

# ================================
# Trains, Classes & Stoppages
# ================================
class Train(Base):
    __tablename__ = "trains"

    id = Column(Identifier, primary_key=True, index=True)
    number = Column(String(10), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    source = Column(String(100), nullable=False)
    source_code = Column(String(10), nullable=False, index=True)
    destination = Column(String(100), nullable=False)
    destination_code = Column(String(10), nullable=False, index=True)
    departure_time = Column(Time, nullable=False)
    arrival_time = Column(Time, nullable=False)
    duration = Column(String(20), nullable=False)
    distance = Column(String(20), nullable=False)
    running_days = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    classes = relationship(
        "TrainClass",
        back_populates="train",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TrainClass.class_type",
    )
    stoppages = relationship(
        "TrainStoppage",
        back_populates="train",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TrainStoppage.stop_number",
    )
    bookings = relationship("Booking", back_populates="train", cascade="all, delete", passive_deletes=True)

class TrainClass(Base):
    __tablename__ = "train_classes"
    __table_args__ = (
        UniqueConstraint("train_id", "class_type", name="uq_train_classes_train_class"),
    )

    id = Column(Identifier, primary_key=True, index=True)
    train_id = Column(Identifier, ForeignKey("trains.id", ondelete="CASCADE"), nullable=False, index=True)
    class_type = Column(String(5), nullable=False)
    total_seats = Column(Integer, nullable=False)
    fare = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    train = relationship("Train", back_populates="classes")

class TrainStoppage(Base):
    __tablename__ = "train_stoppages"
    __table_args__ = (
        UniqueConstraint("train_id", "stop_number", name="uq_train_stoppages_train_stop"),
    )

    id = Column(Identifier, primary_key=True, index=True)
    train_id = Column(Identifier, ForeignKey("trains.id", ondelete="CASCADE"), nullable=False, index=True)
    station_name = Column(String(100), nullable=False)
    station_code = Column(String(10), nullable=False, index=True)
    arrival_time = Column(Time)
    departure_time = Column(Time)
    stop_number = Column(Integer, nullable=False)
    platform_number = Column(String(10))
    halt_duration = Column(Integer, nullable=False, default=0)  # minutes
    distance_from_source = Column(Integer, nullable=False, default=0)  # km

    # Relationships
    train = relationship("Train", back_populates="stoppages")

# ================================
# Bookings & Passengers
# ================================
class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_scope_status", "train_id", "class_type", "travel_date", "status"),
    )

    id = Column(Identifier, primary_key=True, index=True)
    user_id = Column(BigInteger, nullable=False, index=True)
    train_id = Column(Identifier, ForeignKey("trains.id", ondelete="CASCADE"), nullable=False)
    pnr = Column(String(10), unique=True, nullable=False)
    class_type = Column(String(5), nullable=False)
    travel_date = Column(Date, nullable=False)
    booking_date = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    status = Column(String(20), nullable=False, default=BOOKING_STATUS_CONFIRMED)
    total_fare = Column(Numeric(10, 2), nullable=False)

    # Segment overrides
    source_station = Column(String(100))
    source_code = Column(String(10))
    destination_station = Column(String(100))
    destination_code = Column(String(10))
    departure_time = Column(String(20))
    arrival_time = Column(String(20))
    duration = Column(String(20))
    distance = Column(String(20))

    # Relationships
    train = relationship("Train", back_populates="bookings")
    passengers = relationship(
        "Passenger",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Passenger.id",
    )

    @property
    def train_name(self):
        return self.train.name if self.train else None

    @property
    def train_number(self):
        return self.train.number if self.train else None

class Passenger(Base):
    __tablename__ = "passengers"

    id = Column(Identifier, primary_key=True, index=True)
    booking_id = Column(Identifier, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    age = Column(Integer, nullable=False)
    gender = Column(String(10), nullable=False)
    seat_number = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    booking = relationship("Booking", back_populates="passengers")
