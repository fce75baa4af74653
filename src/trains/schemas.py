from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime, date, time
from decimal import Decimal

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

class TrainClassBase(BaseModel):
    class_type: str = Field(..., min_length=1, max_length=5)
    total_seats: int = Field(..., ge=1)
    fare: Decimal = Field(..., ge=0)

class TrainClassCreate(TrainClassBase):
    pass

class TrainClassResponse(TrainClassBase):
    id: int

    class Config:
        from_attributes = True

# Stoppages
class TrainStoppageBase(BaseModel):
    """Intermediate halt; the train's own source and destination are not listed"""
    station_name: str = Field(..., min_length=1, max_length=100)
    station_code: str = Field(..., min_length=1, max_length=10)
    arrival_time: Optional[time] = None
    departure_time: Optional[time] = None
    stop_number: int = Field(..., ge=1)
    platform_number: Optional[str] = Field(None, max_length=10)
    halt_duration: int = Field(0, ge=0, description="Halt in minutes")
    distance_from_source: int = Field(0, ge=0, description="Kilometres from the source station")

class TrainStoppageCreate(TrainStoppageBase):
    pass

class TrainStoppageResponse(TrainStoppageBase):
    id: int

    class Config:
        from_attributes = True

class TrainBase(BaseModel):
    number: str = Field(..., min_length=1, max_length=10)
    name: str = Field(..., min_length=1, max_length=100)
    source: str = Field(..., min_length=1, max_length=100)
    source_code: str = Field(..., min_length=1, max_length=10)
    destination: str = Field(..., min_length=1, max_length=100)
    destination_code: str = Field(..., min_length=1, max_length=10)
    departure_time: time
    arrival_time: time
    duration: str = Field(..., min_length=1, max_length=20)
    distance: str = Field(..., min_length=1, max_length=20)
    running_days: List[str]

class TrainCreate(TrainBase):
    classes: List[TrainClassCreate]
    stoppages: List[TrainStoppageCreate] = []

    @validator('running_days')
    def validate_running_days(cls, v):
        if not v:
            raise ValueError('At least one running day is required')
        unknown = [day for day in v if day not in WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown running days: {', '.join(unknown)}")
        return v

    @validator('classes')
    def validate_classes(cls, v):
        if not v:
            raise ValueError('At least one class is required')
        class_types = [c.class_type for c in v]
        if len(set(class_types)) != len(class_types):
            raise ValueError('Class types must be unique within a train')
        return v

    @validator('stoppages')
    def validate_stoppages(cls, v):
        stop_numbers = [s.stop_number for s in v]
        if len(set(stop_numbers)) != len(stop_numbers):
            raise ValueError('Stop numbers must be unique within a train')
        return v

class TrainUpdate(TrainCreate):
    """Full replacement of a train, its classes and its stoppages"""
    pass

class TrainResponse(TrainBase):
    id: int
    classes: List[TrainClassResponse] = []
    stoppages: List[TrainStoppageResponse] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ClassAvailability(BaseModel):
    """Seats left in one class of a train on a travel date"""
    train_id: int
    class_type: str
    travel_date: date
    total_seats: int
    booked_seats: int
    available_seats: int
    fare: Decimal

class TrainSearchResult(TrainBase):
    id: int
    availability: List[ClassAvailability]
    stoppages: List[TrainStoppageResponse] = []

class JourneySegment(BaseModel):
    """The boarded part of a route, in the shape a booking request takes it"""
    source_station: str
    source_code: str
    destination_station: str
    destination_code: str
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None
    duration: Optional[str] = None
    distance: Optional[str] = None

class TrainSegmentSearchResult(TrainSearchResult):
    segment: JourneySegment
