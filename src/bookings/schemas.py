from pydantic import BaseModel, Field, validator
from typing import List, Optional, Dict, Any
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"

class BookingReportType(str, Enum):
    """Administrative report types"""
    DAILY = "daily"
    REVENUE = "revenue"
    TRAIN_PERFORMANCE = "train-performance"

# Passenger Information
class PassengerInfo(BaseModel):
    """Individual passenger information"""
    name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=0, le=150)
    gender: str = Field(..., min_length=1, max_length=10)

class PassengerResponse(PassengerInfo):
    id: int
    seat_number: str

    class Config:
        from_attributes = True

# Booking Request Models
class SegmentInfo(BaseModel):
    """Optional route segment overriding the train's end-to-end route"""
    source_station: Optional[str] = Field(None, max_length=100)
    source_code: Optional[str] = Field(None, max_length=10)
    destination_station: Optional[str] = Field(None, max_length=100)
    destination_code: Optional[str] = Field(None, max_length=10)
    departure_time: Optional[str] = Field(None, max_length=20)
    arrival_time: Optional[str] = Field(None, max_length=20)
    duration: Optional[str] = Field(None, max_length=20)
    distance: Optional[str] = Field(None, max_length=20)

class BookingCreateRequest(SegmentInfo):
    """Request to book seats in one class of a train on a travel date"""
    train_id: int
    class_type: str = Field(..., min_length=1, max_length=5)
    travel_date: date
    passengers: List[PassengerInfo]

    @validator('passengers')
    def validate_passengers(cls, v):
        if not v:
            raise ValueError('At least one passenger is required')
        return v

# Booking Response Models
class BookingResponse(SegmentInfo):
    """Persisted booking"""
    id: int
    user_id: int
    train_id: int
    pnr: str
    class_type: str
    travel_date: date
    booking_date: Optional[datetime] = None
    status: BookingStatus
    total_fare: Decimal

    class Config:
        from_attributes = True

class BookingDetail(BookingResponse):
    """Booking with its train and passengers"""
    train_name: Optional[str] = None
    train_number: Optional[str] = None
    passengers: List[PassengerResponse] = []

class UserBookings(BaseModel):
    """A user's bookings partitioned by travel date and status"""
    upcoming: List[BookingDetail]
    past: List[BookingDetail]
    cancelled: List[BookingDetail]
    all: List[BookingDetail]

# Reporting
class BookingReport(BaseModel):
    report_type: BookingReportType
    start_date: date
    end_date: date
    rows: List[Dict[str, Any]]
