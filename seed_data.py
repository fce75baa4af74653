#!/usr/bin/env python3

import sys
import os
from datetime import time
from decimal import Decimal

# Add project root to path
sys.path.append(os.path.dirname(__file__))

from src.database import SessionLocal, init_db
from src.models import Train, TrainClass, TrainStoppage, Passenger, Booking

ALL_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

def create_seed_data():
    init_db()
    db = SessionLocal()

    try:
        print("🚆 Creating seed data for the train seat reservation service...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(Passenger).delete()
        db.query(Booking).delete()
        db.query(TrainStoppage).delete()
        db.query(TrainClass).delete()
        db.query(Train).delete()

        print("Creating trains, classes and stoppages...")
        trains = [
            Train(
                number="12951", name="Rajdhani Express",
                source="Mumbai Central", source_code="MMCT",
                destination="New Delhi", destination_code="NDLS",
                departure_time=time(17, 0), arrival_time=time(8, 35),
                duration="15h 35m", distance="1386 km",
                running_days=ALL_DAYS,
                classes=[
                    TrainClass(class_type="1A", total_seats=18, fare=Decimal("4755.00")),
                    TrainClass(class_type="2A", total_seats=46, fare=Decimal("2825.00")),
                    TrainClass(class_type="3A", total_seats=64, fare=Decimal("2015.00")),
                ],
            ),
            Train(
                number="12002", name="Shatabdi Express",
                source="New Delhi", source_code="NDLS",
                destination="Bhopal", destination_code="BPL",
                departure_time=time(6, 0), arrival_time=time(14, 25),
                duration="8h 25m", distance="702 km",
                running_days=["Mon", "Tue", "Wed", "Thu", "Fri", "Sat"],
                classes=[
                    TrainClass(class_type="EC", total_seats=56, fare=Decimal("2350.00")),
                    TrainClass(class_type="CC", total_seats=78, fare=Decimal("1185.00")),
                ],
                stoppages=[
                    TrainStoppage(station_name="Agra Cantt", station_code="AGC", arrival_time=time(7, 50),
                                  departure_time=time(7, 55), stop_number=1, platform_number="1",
                                  halt_duration=5, distance_from_source=195),
                    TrainStoppage(station_name="Gwalior", station_code="GWL", arrival_time=time(9, 23),
                                  departure_time=time(9, 28), stop_number=2, platform_number="2",
                                  halt_duration=5, distance_from_source=313),
                    TrainStoppage(station_name="Jhansi", station_code="VGLJ", arrival_time=time(10, 45),
                                  departure_time=time(10, 50), stop_number=3, platform_number="3",
                                  halt_duration=5, distance_from_source=410),
                ],
            ),
            Train(
                number="22439", name="Vande Bharat Express",
                source="New Delhi", source_code="NDLS",
                destination="Shri Mata Vaishno Devi Katra", destination_code="SVDK",
                departure_time=time(6, 0), arrival_time=time(14, 0),
                duration="8h 00m", distance="655 km",
                running_days=["Mon", "Wed", "Thu", "Fri", "Sat", "Sun"],
                classes=[
                    TrainClass(class_type="EC", total_seats=52, fare=Decimal("3015.00")),
                    TrainClass(class_type="CC", total_seats=78, fare=Decimal("1630.00")),
                ],
            ),
        ]
        db.add_all(trains)
        db.commit()

        print(f"✅ Created {len(trains)} trains")
        for train in trains:
            classes = ", ".join(f"{c.class_type}({c.total_seats})" for c in train.classes)
            print(f"   {train.number} {train.name}: {classes}")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
