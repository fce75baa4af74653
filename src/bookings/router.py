from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from loguru import logger

from src.database import get_db
from src.exceptions import ForbiddenError, TrainBookingError
from src.auth.dependencies import get_current_user, require_admin
from src.auth.schemas import CurrentUser
from src.bookings.schemas import (
    BookingCreateRequest, BookingResponse, BookingDetail, UserBookings,
    BookingReport, BookingReportType
)
from src.bookings.booking_service import BookingService
from src.bookings.report_service import ReportService

router = APIRouter()

def _raise_http_error(error: TrainBookingError):
    headers = {"Retry-After": "1"} if error.status_code == status.HTTP_503_SERVICE_UNAVAILABLE else None
    raise HTTPException(status_code=error.status_code, detail=error.detail, headers=headers)

def _ensure_can_access(owner_id: int, current_user: CurrentUser):
    if owner_id != current_user.id and not current_user.is_admin:
        raise ForbiddenError()

# Booking Management Endpoints
@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Book seats for one or more passengers"""

    booking_service = BookingService(db)

    try:
        return booking_service.create_booking(current_user.id, request)
    except TrainBookingError as e:
        _raise_http_error(e)
    except Exception:
        logger.exception("Create booking failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create booking"
        )

@router.get("/", response_model=List[BookingDetail])
def get_all_bookings(
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get every booking (admin only)"""

    booking_service = BookingService(db)
    return booking_service.get_all_bookings()

# Reporting Endpoints
@router.get("/report", response_model=BookingReport)
def generate_booking_report(
    start_date: date = Query(..., alias="startDate", description="First booking day included"),
    end_date: date = Query(..., alias="endDate", description="Last booking day included"),
    report_type: BookingReportType = Query(..., alias="type", description="Report type"),
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Generate an aggregated booking report (admin only)"""

    report_service = ReportService(db)

    try:
        rows = report_service.generate_report(report_type, start_date, end_date)
    except TrainBookingError as e:
        _raise_http_error(e)

    return BookingReport(
        report_type=report_type,
        start_date=start_date,
        end_date=end_date,
        rows=rows
    )

@router.get("/report/export")
def export_bookings(
    start_date: date = Query(..., alias="startDate", description="First booking day included"),
    end_date: date = Query(..., alias="endDate", description="Last booking day included"),
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Export bookings in the date range as CSV (admin only)"""

    report_service = ReportService(db)
    content = report_service.export_bookings_csv(start_date, end_date)

    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=bookings_{start_date}_{end_date}.csv"}
    )

@router.get("/user/{user_id}", response_model=UserBookings)
def get_user_bookings(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a user's bookings split into upcoming, past and cancelled"""

    try:
        _ensure_can_access(user_id, current_user)
    except TrainBookingError as e:
        _raise_http_error(e)

    booking_service = BookingService(db)
    return booking_service.get_user_bookings(user_id)

@router.get("/{booking_id}", response_model=BookingDetail)
def get_booking(
    booking_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get booking details by ID"""

    booking_service = BookingService(db)

    try:
        booking = booking_service.get_booking(booking_id)
        _ensure_can_access(booking.user_id, current_user)
    except TrainBookingError as e:
        _raise_http_error(e)

    return booking

@router.put("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cancel a confirmed booking"""

    booking_service = BookingService(db)

    try:
        booking = booking_service.get_booking(booking_id)
        _ensure_can_access(booking.user_id, current_user)
        return booking_service.cancel_booking(booking_id)
    except TrainBookingError as e:
        _raise_http_error(e)
    except Exception:
        logger.exception(f"Cancel booking {booking_id} failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel booking"
        )
