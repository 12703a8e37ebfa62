"""
SQLAlchemy models for groups, surveys, call assignments and calls.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from groundcontrol.shared.clock import utcnow
from groundcontrol.shared.database import Base

EVERYONE_GROUP = "everyone"


class CallFailureReason(str, Enum):
    """Why a call did not complete."""

    NO_PICKUP = "NO_PICKUP"
    CALL_BACK = "CALL_BACK"
    NOT_INTERESTED = "NOT_INTERESTED"
    OTHER_LANGUAGE = "OTHER_LANGUAGE"
    WRONG_NUMBER = "WRONG_NUMBER"
    DISCONNECTED_NUMBER = "DISCONNECTED_NUMBER"


class SurveyProcessor(str, Enum):
    """Post-processing steps run on a completed call survey."""

    EVENT_RSVPER = "bsd-event-rsvper"
    FORM_SUBMITTER = "bsd-form-submitter"


class BSDGroup(Base):
    """A BSD constituent group."""

    __tablename__ = "bsd_groups"

    cons_group_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class GCGroup(Base):
    """An interviewee group: either a BSD constituent group or a saved SQL query."""

    __tablename__ = "gc_bsd_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cons_group_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("bsd_groups.cons_group_id"), index=True
    )
    query: Mapped[str | None] = mapped_column(Text)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class PersonBSDGroup(Base):
    __tablename__ = "bsd_person_bsd_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cons_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_people.cons_id", ondelete="CASCADE"), index=True
    )
    cons_group_id: Mapped[int] = mapped_column(Integer, index=True)


class PersonGCGroup(Base):
    """Materialized membership of a saved-query group."""

    __tablename__ = "bsd_person_gc_bsd_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cons_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_people.cons_id", ondelete="CASCADE"), index=True
    )
    gc_bsd_group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("gc_bsd_groups.id", ondelete="CASCADE"), index=True
    )


class BSDSurvey(Base):
    """A BSD signup form used as a call survey."""

    __tablename__ = "bsd_surveys"

    signup_form_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    signup_form_slug: Mapped[str | None] = mapped_column(String(255))
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class BSDSurveyField(Base):
    __tablename__ = "bsd_survey_fields"

    signup_form_field_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    signup_form_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_surveys.signup_form_id", ondelete="CASCADE"), index=True
    )
    format: Mapped[int | None] = mapped_column(Integer)
    label: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text)
    display_order: Mapped[int | None] = mapped_column(Integer)
    is_shown: Mapped[bool | None] = mapped_column(Boolean)
    is_required: Mapped[bool | None] = mapped_column(Boolean)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class GCSurvey(Base):
    """A BSD survey plus the processors run when a call completes."""

    __tablename__ = "gc_bsd_surveys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    signup_form_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_surveys.signup_form_id"), nullable=False
    )
    processors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class CallAssignment(Base):
    """A mass calling assignment."""

    __tablename__ = "bsd_call_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    instructions: Mapped[str | None] = mapped_column(Text)
    renderer: Mapped[str] = mapped_column(String(255), nullable=False)
    interviewee_group: Mapped[int] = mapped_column(
        Integer, ForeignKey("gc_bsd_groups.id"), nullable=False
    )
    gc_bsd_survey_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("gc_bsd_surveys.id"), nullable=False
    )
    caller_group: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("user_groups.id", ondelete="SET NULL")
    )
    start_dt: Mapped[datetime | None] = mapped_column(DateTime)
    end_dt: Mapped[datetime | None] = mapped_column(DateTime, index=True)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<CallAssignment(id={self.id}, name={self.name})>"


class Call(Base):
    """A completed or attempted call between a caller and an interviewee."""

    __tablename__ = "bsd_calls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    attempted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    left_voicemail: Mapped[bool | None] = mapped_column(Boolean)
    sent_text: Mapped[bool | None] = mapped_column(Boolean)
    reason_not_completed: Mapped[str | None] = mapped_column(String(50), index=True)
    caller_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    interviewee_id: Mapped[int] = mapped_column(Integer, index=True)
    call_assignment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_call_assignments.id", ondelete="CASCADE"), index=True
    )
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class AssignedCall(Base):
    """An interviewee currently handed to a caller; at most one per caller."""

    __tablename__ = "bsd_assigned_calls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    caller_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    interviewee_id: Mapped[int] = mapped_column(Integer, index=True)
    call_assignment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_call_assignments.id", ondelete="CASCADE"), index=True
    )
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
