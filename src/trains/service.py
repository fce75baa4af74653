from datetime import date, datetime, time
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from src.bookings.availability import AvailabilityCalculator
from src.exceptions import ConflictError, NotFoundError
from src.models import Train, TrainClass, TrainStoppage
from src.trains.schemas import (
    ClassAvailability, JourneySegment, TrainCreate, TrainSearchResult,
    TrainSegmentSearchResult, TrainStoppageResponse, TrainUpdate
)

# A stop on a train's full route: (stop number, name, code, arrival, departure, km from source)
RouteStop = Tuple[int, str, str, Optional[time], Optional[time], Optional[int]]

def _build_classes(train: TrainCreate) -> List[TrainClass]:
    return [
        TrainClass(class_type=c.class_type, total_seats=c.total_seats, fare=c.fare)
        for c in train.classes
    ]

def _build_stoppages(train: TrainCreate) -> List[TrainStoppage]:
    return [
        TrainStoppage(
            station_name=s.station_name,
            station_code=s.station_code,
            arrival_time=s.arrival_time,
            departure_time=s.departure_time,
            stop_number=s.stop_number,
            platform_number=s.platform_number,
            halt_duration=s.halt_duration,
            distance_from_source=s.distance_from_source,
        )
        for s in train.stoppages
    ]

def _distance_km(distance: str) -> Optional[int]:
    """Leading number of a distance such as '1386 km'"""
    head = distance.split()[0] if distance else ""
    return int(head) if head.isdigit() else None

def _format_duration(departure: Optional[time], arrival: Optional[time]) -> Optional[str]:
    if departure is None or arrival is None:
        return None
    start = datetime.combine(date.min, departure)
    end = datetime.combine(date.min, arrival)
    minutes = int((end - start).total_seconds() // 60) % (24 * 60)
    return f"{minutes // 60}h {minutes % 60:02d}m"

def _format_time(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value else None

class TrainRegistry:
    """Trains and their fare classes; the capacity ceiling for every booking scope"""

    @staticmethod
    def create_train(db: Session, train: TrainCreate) -> Train:
        """Create a train with all of its classes and stoppages"""
        db_train = Train(
            number=train.number,
            name=train.name,
            source=train.source,
            source_code=train.source_code,
            destination=train.destination,
            destination_code=train.destination_code,
            departure_time=train.departure_time,
            arrival_time=train.arrival_time,
            duration=train.duration,
            distance=train.distance,
            running_days=list(train.running_days),
            classes=_build_classes(train),
            stoppages=_build_stoppages(train),
        )

        try:
            db.add(db_train)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError(f"Train number {train.number} already exists")
        except Exception:
            db.rollback()
            raise

        db.refresh(db_train)
        logger.info(f"Registered train {db_train.number} with {len(db_train.classes)} classes")
        return db_train

    @staticmethod
    def update_train(db: Session, train_id: int, train: TrainUpdate) -> Train:
        """Replace a train's details, classes and stoppages in one transaction.

        Existing bookings keep the fare and segment they were priced with.
        """
        db_train = TrainRegistry.get_train(db, train_id)

        try:
            db_train.number = train.number
            db_train.name = train.name
            db_train.source = train.source
            db_train.source_code = train.source_code
            db_train.destination = train.destination
            db_train.destination_code = train.destination_code
            db_train.departure_time = train.departure_time
            db_train.arrival_time = train.arrival_time
            db_train.duration = train.duration
            db_train.distance = train.distance
            db_train.running_days = list(train.running_days)

            # Old rows must be gone before re-inserting the same class types and stop numbers
            db_train.classes.clear()
            db_train.stoppages.clear()
            db.flush()

            db_train.classes = _build_classes(train)
            db_train.stoppages = _build_stoppages(train)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError(f"Train number {train.number} already exists")
        except Exception:
            db.rollback()
            raise

        db.refresh(db_train)
        logger.info(f"Updated train {db_train.number}")
        return db_train

    @staticmethod
    def delete_train(db: Session, train_id: int) -> None:
        """Delete a train together with its classes, stoppages, bookings and passengers"""
        db_train = TrainRegistry.get_train(db, train_id)
        number = db_train.number

        try:
            db.delete(db_train)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Deleted train {number}")

    @staticmethod
    def get_train(db: Session, train_id: int) -> Train:
        """Get train by ID with its classes and stoppages"""
        train = db.query(Train).options(
            selectinload(Train.classes),
            selectinload(Train.stoppages)
        ).filter(Train.id == train_id).first()
        if not train:
            raise NotFoundError("Train not found")
        return train

    @staticmethod
    def list_trains(db: Session) -> List[Train]:
        return db.query(Train).options(
            selectinload(Train.classes),
            selectinload(Train.stoppages)
        ).order_by(Train.id).all()

    @staticmethod
    def lookup(db: Session, train_id: int, class_type: str) -> Optional[TrainClass]:
        """Find the class of a train, or None"""
        return db.query(TrainClass).options(
            selectinload(TrainClass.train)
        ).filter(
            TrainClass.train_id == train_id,
            TrainClass.class_type == class_type
        ).first()

    @staticmethod
    def search_trains(
        db: Session,
        source_code: str,
        destination_code: str,
        travel_date: date
    ) -> List[TrainSearchResult]:
        """Trains between two stations running on the travel date, with seats left per class"""

        weekday = travel_date.strftime("%a")
        trains = db.query(Train).options(
            selectinload(Train.classes),
            selectinload(Train.stoppages)
        ).filter(
            func.lower(Train.source_code) == source_code.lower(),
            func.lower(Train.destination_code) == destination_code.lower()
        ).order_by(Train.departure_time).all()

        return [
            TrainSearchResult(**TrainRegistry._search_fields(db, train, travel_date))
            for train in trains
            if weekday in (train.running_days or [])
        ]

    @staticmethod
    def search_by_stoppage(
        db: Session,
        source: str,
        destination: str,
        travel_date: date
    ) -> List[TrainSegmentSearchResult]:
        """Trains that stop at `source` and later at `destination` on the travel date.

        Stations match on name or code, case-insensitively. The train's own
        source and destination count as the first and last stops.
        """
        weekday = travel_date.strftime("%a")
        source_key = source.strip().lower()
        destination_key = destination.strip().lower()

        def serves(key, name_column, code_column):
            return or_(func.lower(name_column) == key, func.lower(code_column) == key)

        trains = db.query(Train).options(
            selectinload(Train.classes),
            selectinload(Train.stoppages)
        ).filter(
            or_(
                serves(source_key, Train.source, Train.source_code),
                Train.stoppages.any(serves(source_key, TrainStoppage.station_name, TrainStoppage.station_code))
            ),
            or_(
                serves(destination_key, Train.destination, Train.destination_code),
                Train.stoppages.any(serves(destination_key, TrainStoppage.station_name, TrainStoppage.station_code))
            )
        ).order_by(Train.departure_time).all()

        results = []
        for train in trains:
            if weekday not in (train.running_days or []):
                continue

            segment = TrainRegistry._find_segment(train, source_key, destination_key)
            if segment is None:
                continue

            results.append(TrainSegmentSearchResult(
                **TrainRegistry._search_fields(db, train, travel_date),
                segment=segment
            ))

        return results

    @staticmethod
    def get_availability(
        db: Session,
        train_id: int,
        class_type: str,
        travel_date: date
    ) -> ClassAvailability:

        train_class = TrainRegistry.lookup(db, train_id, class_type)
        if not train_class:
            raise NotFoundError("Train class not found")

        booked = AvailabilityCalculator.confirmed_passenger_count(db, train_id, class_type, travel_date)
        return TrainRegistry._class_availability(train_class, travel_date, booked)

    @staticmethod
    def _route(train: Train) -> List[RouteStop]:
        last_stop = max((s.stop_number for s in train.stoppages), default=0) + 1
        return (
            [(0, train.source, train.source_code, None, train.departure_time, 0)]
            + [
                (s.stop_number, s.station_name, s.station_code,
                 s.arrival_time, s.departure_time, s.distance_from_source)
                for s in train.stoppages
            ]
            + [(last_stop, train.destination, train.destination_code,
                train.arrival_time, None, _distance_km(train.distance))]
        )

    @staticmethod
    def _find_segment(train: Train, source_key: str, destination_key: str) -> Optional[JourneySegment]:
        """First boarding stop with a later alighting stop, or None if the order is wrong"""
        route = TrainRegistry._route(train)

        def matches(stop: RouteStop, key: str) -> bool:
            return key in (stop[1].lower(), stop[2].lower())

        for i, board in enumerate(route):
            if not matches(board, source_key):
                continue
            for alight in route[i + 1:]:
                if not matches(alight, destination_key):
                    continue

                distance = None
                if board[5] is not None and alight[5] is not None:
                    distance = f"{alight[5] - board[5]} km"

                return JourneySegment(
                    source_station=board[1],
                    source_code=board[2],
                    destination_station=alight[1],
                    destination_code=alight[2],
                    departure_time=_format_time(board[4]),
                    arrival_time=_format_time(alight[3]),
                    duration=_format_duration(board[4], alight[3]),
                    distance=distance
                )
        return None

    @staticmethod
    def _search_fields(db: Session, train: Train, travel_date: date) -> dict:
        availability = [
            TrainRegistry._class_availability(
                train_class,
                travel_date,
                AvailabilityCalculator.confirmed_passenger_count(
                    db, train.id, train_class.class_type, travel_date
                ),
            )
            for train_class in train.classes
        ]

        return dict(
            id=train.id,
            number=train.number,
            name=train.name,
            source=train.source,
            source_code=train.source_code,
            destination=train.destination,
            destination_code=train.destination_code,
            departure_time=train.departure_time,
            arrival_time=train.arrival_time,
            duration=train.duration,
            distance=train.distance,
            running_days=train.running_days,
            availability=availability,
            stoppages=[TrainStoppageResponse.model_validate(s) for s in train.stoppages]
        )

    @staticmethod
    def _class_availability(train_class: TrainClass, travel_date: date, booked: int) -> ClassAvailability:
        return ClassAvailability(
            train_id=train_class.train_id,
            class_type=train_class.class_type,
            travel_date=travel_date,
            total_seats=train_class.total_seats,
            booked_seats=booked,
            available_seats=train_class.total_seats - booked,
            fare=train_class.fare
        )
