"""
SQLAlchemy models for events, their files and fast forward requests.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from groundcontrol.shared.clock import utcnow
from groundcontrol.shared.database import Base


class EventType(Base):
    __tablename__ = "bsd_event_types"

    event_type_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class Event(Base):
    """An event mirrored from BSD."""

    __tablename__ = "bsd_events"

    event_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    event_id_obfuscated: Mapped[str | None] = mapped_column(String(50), unique=True, index=True)
    event_type_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("bsd_event_types.event_type_id"), index=True
    )
    creator_cons_id: Mapped[int | None] = mapped_column(Integer, index=True)
    creator_name: Mapped[str | None] = mapped_column(String(255))
    flag_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_official: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    name: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    venue_name: Mapped[str | None] = mapped_column(String(255))
    venue_zip: Mapped[str | None] = mapped_column(String(10))
    venue_city: Mapped[str | None] = mapped_column(String(255))
    venue_state_cd: Mapped[str | None] = mapped_column(String(100))
    venue_addr1: Mapped[str | None] = mapped_column(String(255))
    venue_addr2: Mapped[str | None] = mapped_column(String(255))
    venue_country: Mapped[str | None] = mapped_column(String(2))
    venue_directions: Mapped[str | None] = mapped_column(Text)
    start_dt: Mapped[datetime | None] = mapped_column(DateTime, index=True)
    start_tz: Mapped[str | None] = mapped_column(String(40))
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
    duration: Mapped[int | None] = mapped_column(Integer)
    capacity: Mapped[int | None] = mapped_column(Integer)
    latitude: Mapped[float | None] = mapped_column(Float, index=True)
    longitude: Mapped[float | None] = mapped_column(Float, index=True)
    attendee_volunteer_show: Mapped[int | None] = mapped_column(Integer)
    attendee_volunteer_message: Mapped[str | None] = mapped_column(Text)
    attendee_require_phone: Mapped[int | None] = mapped_column(Integer)
    is_searchable: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    public_phone: Mapped[bool | None] = mapped_column(Boolean)
    contact_phone: Mapped[str | None] = mapped_column(String(25))
    host_receive_rsvp_emails: Mapped[bool | None] = mapped_column(Boolean)
    rsvp_use_reminder_email: Mapped[bool | None] = mapped_column(Boolean)
    rsvp_email_reminder_hours: Mapped[int | None] = mapped_column(Integer)

    def __repr__(self) -> str:
        return f"<Event(event_id={self.event_id}, obfuscated={self.event_id_obfuscated})>"


class GCEvent(Base):
    """Ground Control's own bookkeeping for an event."""

    __tablename__ = "gc_bsd_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_events.event_id", ondelete="CASCADE"), unique=True, index=True
    )
    pending_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    turn_out_assignment: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("bsd_call_assignments.id", ondelete="SET NULL")
    )
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class EventAttendee(Base):
    __tablename__ = "bsd_event_attendees"

    event_attendee_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_events.event_id", ondelete="CASCADE"), index=True
    )
    attendee_cons_id: Mapped[int] = mapped_column(Integer, index=True)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class EventFileType(Base):
    __tablename__ = "event_file_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class EventFile(Base):
    """A file uploaded to S3 for an event; only the key is stored here."""

    __tablename__ = "event_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_events.event_id", ondelete="CASCADE"), index=True
    )
    event_file_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("event_file_types.id"), nullable=False
    )
    uploader_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"))
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    s3_key: Mapped[str] = mapped_column(String(1024), nullable=False)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class FastFwdRequest(Base):
    """A host's request to have volunteers near their event invited by email."""

    __tablename__ = "fast_fwd_request"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_events.event_id", ondelete="CASCADE"), unique=True, index=True
    )
    host_message: Mapped[str] = mapped_column(Text, nullable=False)
    email_sent_dt: Mapped[datetime | None] = mapped_column(DateTime)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
