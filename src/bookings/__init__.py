"""
Booking Module

Seat reservation for train classes on a travel date. It includes:

- Availability derived from Confirmed passenger rows
- Atomic booking creation under a per-scope lock
- Monotonic seat numbering per (train, class, travel date)
- PNR booking references with collision retry
- Cancellation that releases seats without any counter bookkeeping
- Read-only reports and CSV export over booking history

Key Components:
- availability.py: Remaining seats for a scope
- locking.py: Scope lock held for the length of a reservation transaction
- seat_assigner.py: Seat number generation
- pnr.py: Booking reference generation
- booking_service.py: Create, read and cancel bookings
- report_service.py: Aggregated reports and export
- router.py: FastAPI endpoints
- schemas.py: Pydantic models for requests and responses
"""
