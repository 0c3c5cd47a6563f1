"""
Typed record store.

Each repository wraps one table and offers the get / create / update /
conditional-update / query / subscribe operations the payment core needs.
Every write commits immediately (single-record, last-writer-wins) and, once
committed, is announced on the Redis change feed for live admin views.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.redis import publish_change, listen_changes
from app.models.admin import Admin
from app.models.booking import Booking
from app.models.coach_appointment import CoachAppointment
from app.models.notification import Notification


def utcnow():
    return datetime.now(timezone.utc)


def _value(value):
    return value.value if isinstance(value, Enum) else value


class RecordRepository:
    model = None
    collection = None

    def __init__(self, db: Session):
        self.db = db

    # -------- READ --------
    def get(self, record_id: str):
        if not record_id:
            return None
        return self.db.get(self.model, record_id)

    def query(self, **equals):
        q = self.db.query(self.model)
        for field, value in equals.items():
            q = q.filter(getattr(self.model, field) == _value(value))
        return q.order_by(self.model.created_at.desc()).all()

    def query_in(self, field: str, values, **equals):
        q = self.db.query(self.model).filter(
            getattr(self.model, field).in_([_value(v) for v in values])
        )
        for key, value in equals.items():
            q = q.filter(getattr(self.model, key) == _value(value))
        return q.order_by(self.model.created_at.desc()).all()

    # -------- WRITE --------
    def create(self, record_id: str | None = None, **fields):
        record = self.model(
            id=record_id or uuid.uuid4().hex,
            **{k: _value(v) for k, v in fields.items()},
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        publish_change(self.collection, record.id, fields)
        return record

    def update(self, record_id: str, **fields) -> bool:
        return self.conditional_update(record_id, {}, **fields)

    def conditional_update(self, record_id: str, expected: dict, **fields) -> bool:
        """
        Apply ``fields`` only if every ``expected`` column still holds one of
        the allowed values. Returns False when the record is missing or moved
        on since it was read; nothing is written in that case.
        """
        stmt = update(self.model).where(self.model.id == record_id)

        for field, allowed in expected.items():
            column = getattr(self.model, field)
            if allowed is None:
                stmt = stmt.where(column.is_(None))
            elif isinstance(allowed, (set, frozenset, list, tuple)):
                stmt = stmt.where(column.in_([_value(v) for v in allowed]))
            else:
                stmt = stmt.where(column == _value(allowed))

        values = {k: _value(v) for k, v in fields.items()}
        if hasattr(self.model, "updated_at"):
            values["updated_at"] = utcnow()

        result = self.db.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        self.db.commit()

        changed = result.rowcount == 1
        if changed:
            publish_change(self.collection, record_id, fields)
        return changed

    # -------- LISTEN --------
    def subscribe(self):
        return listen_changes(self.collection)


class BookingRepository(RecordRepository):
    model = Booking
    collection = "bookings"


class AppointmentRepository(RecordRepository):
    model = CoachAppointment
    collection = "coach_appointments"


class NotificationRepository(RecordRepository):
    model = Notification
    collection = "notifications"

    def create_once(self, notification_id: str, **fields):
        """Insert under a deterministic id; None if that id already exists."""
        if self.get(notification_id) is not None:
            return None
        try:
            return self.create(record_id=notification_id, **fields)
        except IntegrityError:
            # lost an insert race with a concurrent duplicate
            self.db.rollback()
            return None

    def for_user(self, user_id: str):
        return self.query(user_id=user_id)


class AdminRepository(RecordRepository):
    model = Admin
    collection = "admin"

    def query(self, **equals):
        q = self.db.query(self.model)
        for field, value in equals.items():
            q = q.filter(getattr(self.model, field) == value)
        return q.all()

    def get_by_email(self, email: str):
        return self.db.query(Admin).filter(Admin.email == email).first()


def repository_for(booking_type: str, db: Session) -> RecordRepository:
    """"coach" targets coach appointments; anything else is a court booking."""
    if booking_type == "coach":
        return AppointmentRepository(db)
    return BookingRepository(db)
