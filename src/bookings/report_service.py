from typing import Any, Dict, List
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from collections import defaultdict
import csv
import io

from sqlalchemy.orm import Session, selectinload

from src.exceptions import BookingValidationError
from src.models import Booking, BOOKING_STATUS_CANCELLED, BOOKING_STATUS_CONFIRMED
from src.bookings.schemas import BookingReportType

EXPORT_FIELDS = [
    "id", "pnr", "user_id", "train_id", "class_type", "travel_date",
    "status", "total_fare", "passenger_count", "booking_date"
]

class ReportService:
    """Read-only reporting over booking history"""

    def __init__(self, db: Session):
        self.db = db

    def generate_report(
        self,
        report_type: BookingReportType,
        start_date: date,
        end_date: date
    ) -> List[Dict[str, Any]]:
        if start_date > end_date:
            raise BookingValidationError("start_date", "start_date must not be after end_date")

        bookings = self._bookings_in_range(start_date, end_date)

        if report_type == BookingReportType.DAILY:
            return self._daily_report(bookings)
        if report_type == BookingReportType.REVENUE:
            return self._revenue_report(bookings)
        if report_type == BookingReportType.TRAIN_PERFORMANCE:
            return self._train_performance_report(bookings)

        raise BookingValidationError("type", f"Invalid report type: {report_type}")

    def export_bookings_csv(self, start_date: date, end_date: date) -> str:
        """Generate CSV content for bookings made in the date range"""
        bookings = self._bookings_in_range(start_date, end_date)
        if not bookings:
            return ""

        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        writer.writerows(
            {
                "id": b.id,
                "pnr": b.pnr,
                "user_id": b.user_id,
                "train_id": b.train_id,
                "class_type": b.class_type,
                "travel_date": b.travel_date.isoformat(),
                "status": b.status,
                "total_fare": str(b.total_fare),
                "passenger_count": len(b.passengers),
                "booking_date": b.booking_date.isoformat() if b.booking_date else "",
            }
            for b in bookings
        )
        return output.getvalue()

    def _bookings_in_range(self, start_date: date, end_date: date) -> List[Booking]:
        start_datetime = datetime.combine(start_date, datetime.min.time())
        end_datetime = datetime.combine(end_date, datetime.max.time())

        return self.db.query(Booking).options(
            selectinload(Booking.passengers),
            selectinload(Booking.train)
        ).filter(
            Booking.booking_date >= start_datetime,
            Booking.booking_date <= end_datetime
        ).order_by(Booking.booking_date, Booking.id).all()

    def _daily_report(self, bookings: List[Booking]) -> List[Dict[str, Any]]:
        days = defaultdict(lambda: {"total_bookings": 0, "total_revenue": Decimal("0"), "cancellations": 0})

        for booking in bookings:
            day = days[booking.booking_date.date()]
            day["total_bookings"] += 1
            day["total_revenue"] += booking.total_fare
            if booking.status == BOOKING_STATUS_CANCELLED:
                day["cancellations"] += 1

        return [
            {"date": day.isoformat(), **data}
            for day, data in sorted(days.items())
        ]

    def _revenue_report(self, bookings: List[Booking]) -> List[Dict[str, Any]]:
        months = defaultdict(lambda: {"revenue": Decimal("0"), "bookings": 0})

        for booking in bookings:
            if booking.status != BOOKING_STATUS_CONFIRMED:
                continue
            month = months[booking.booking_date.strftime("%Y-%m")]
            month["revenue"] += booking.total_fare
            month["bookings"] += 1

        return [
            {
                "month": month,
                "revenue": data["revenue"],
                "bookings": data["bookings"],
                "avg_fare": (data["revenue"] / data["bookings"]).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
            }
            for month, data in sorted(months.items())
        ]

    def _train_performance_report(self, bookings: List[Booking]) -> List[Dict[str, Any]]:
        trains = defaultdict(lambda: {"total_bookings": 0, "revenue": Decimal("0"), "cancellations": 0})
        names = {}

        for booking in bookings:
            train = trains[booking.train_id]
            names[booking.train_id] = (booking.train_name, booking.train_number)
            train["total_bookings"] += 1
            train["revenue"] += booking.total_fare
            if booking.status == BOOKING_STATUS_CANCELLED:
                train["cancellations"] += 1

        rows = [
            {
                "train_id": train_id,
                "name": names[train_id][0],
                "number": names[train_id][1],
                **data
            }
            for train_id, data in trains.items()
        ]
        return sorted(rows, key=lambda r: (-r["total_bookings"], r["train_id"]))
