from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from src.database import get_db
from src.exceptions import TrainBookingError
from src.auth.dependencies import require_admin
from src.auth.schemas import CurrentUser
from src.trains.schemas import (
    TrainCreate, TrainUpdate, TrainResponse, TrainSearchResult,
    TrainSegmentSearchResult, ClassAvailability
)
from src.trains.service import TrainRegistry

router = APIRouter()

@router.post("/", response_model=TrainResponse, status_code=status.HTTP_201_CREATED)
def create_train(
    train: TrainCreate,
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Register a train with its classes (admin only)"""
    try:
        return TrainRegistry.create_train(db, train)
    except TrainBookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

@router.get("/", response_model=List[TrainResponse])
def list_trains(db: Session = Depends(get_db)):
    """Get all trains with their classes"""
    return TrainRegistry.list_trains(db)

@router.get("/search", response_model=List[TrainSearchResult])
def search_trains(
    source: str = Query(..., min_length=1, description="Source station code"),
    destination: str = Query(..., min_length=1, description="Destination station code"),
    travel_date: date = Query(..., alias="date", description="Travel date"),
    db: Session = Depends(get_db)
):
    """Search trains running between two stations on a date, with seats left per class"""
    return TrainRegistry.search_trains(db, source, destination, travel_date)

@router.get("/search-by-stoppage", response_model=List[TrainSegmentSearchResult])
def search_trains_by_stoppage(
    source: str = Query(..., min_length=1, description="Boarding station name or code"),
    destination: str = Query(..., min_length=1, description="Alighting station name or code"),
    travel_date: date = Query(..., alias="date", description="Travel date"),
    db: Session = Depends(get_db)
):
    """Search trains serving any two stops in order, including intermediate stoppages"""
    return TrainRegistry.search_by_stoppage(db, source, destination, travel_date)

@router.get("/{train_id}", response_model=TrainResponse)
def get_train(train_id: int, db: Session = Depends(get_db)):
    """Get train details by ID"""
    try:
        return TrainRegistry.get_train(db, train_id)
    except TrainBookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

@router.get("/{train_id}/availability", response_model=ClassAvailability)
def get_availability(
    train_id: int,
    class_type: str = Query(..., min_length=1, max_length=5, description="Class type"),
    travel_date: date = Query(..., alias="date", description="Travel date"),
    db: Session = Depends(get_db)
):
    """Seats left in one class of a train on a travel date"""
    try:
        return TrainRegistry.get_availability(db, train_id, class_type, travel_date)
    except TrainBookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

@router.put("/{train_id}", response_model=TrainResponse)
def update_train(
    train_id: int,
    train: TrainUpdate,
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Replace a train, its classes and its stoppages (admin only)"""
    try:
        return TrainRegistry.update_train(db, train_id, train)
    except TrainBookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

@router.delete("/{train_id}")
def delete_train(
    train_id: int,
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a train with its bookings (admin only)"""
    try:
        TrainRegistry.delete_train(db, train_id)
    except TrainBookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    return {"message": "Train deleted successfully"}
