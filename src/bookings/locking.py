import hashlib
from datetime import date

from sqlalchemy import text
from sqlalchemy.orm import Session

from src.models import TrainClass

def scope_lock_key(train_id: int, class_type: str, travel_date: date) -> int:
    """Stable signed 64-bit key for a booking scope"""
    scope = f"{train_id}:{class_type}:{travel_date.isoformat()}".encode()
    digest = hashlib.blake2b(scope, digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)

def acquire_scope_lock(db: Session, train_id: int, class_type: str, travel_date: date) -> None:
    """Serialize reservation decisions for one (train, class, date) scope.

    The lock lives until the surrounding transaction commits or rolls back.
    """
    dialect = db.get_bind().dialect.name

    if dialect == "postgresql":
        db.execute(
            text("SELECT pg_advisory_xact_lock(:key)"),
            {"key": scope_lock_key(train_id, class_type, travel_date)}
        )
    elif dialect == "sqlite":
        # Transactions open with BEGIN IMMEDIATE and already hold the write lock
        return
    else:
        db.query(TrainClass.id).filter(
            TrainClass.train_id == train_id,
            TrainClass.class_type == class_type
        ).with_for_update().first()
