"""
SQLAlchemy models for constituents mirrored from BSD.
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


class Person(Base):
    """A BSD constituent."""

    __tablename__ = "bsd_people"

    cons_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    prefix: Mapped[str | None] = mapped_column(String(255))
    firstname: Mapped[str | None] = mapped_column(String(255), index=True)
    middlename: Mapped[str | None] = mapped_column(String(255))
    lastname: Mapped[str | None] = mapped_column(String(255), index=True)
    suffix: Mapped[str | None] = mapped_column(String(255))
    gender: Mapped[str | None] = mapped_column(String(1))
    birth_dt: Mapped[datetime | None] = mapped_column(DateTime)
    title: Mapped[str | None] = mapped_column(String(255))
    employer: Mapped[str | None] = mapped_column(String(255))
    occupation: Mapped[str | None] = mapped_column(String(255))
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Person(cons_id={self.cons_id}, name={self.firstname} {self.lastname})>"


class Address(Base):
    __tablename__ = "bsd_addresses"

    cons_addr_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cons_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_people.cons_id", ondelete="CASCADE"), index=True
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    addr1: Mapped[str | None] = mapped_column(String(255))
    addr2: Mapped[str | None] = mapped_column(String(255))
    addr3: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(255))
    state_cd: Mapped[str | None] = mapped_column(String(100))
    zip: Mapped[str | None] = mapped_column(String(5), index=True)
    country: Mapped[str | None] = mapped_column(String(2))
    latitude: Mapped[float | None] = mapped_column(Float, index=True)
    longitude: Mapped[float | None] = mapped_column(Float, index=True)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class Phone(Base):
    __tablename__ = "bsd_phones"

    cons_phone_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cons_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_people.cons_id", ondelete="CASCADE"), index=True
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    phone: Mapped[str] = mapped_column(String(25), index=True)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class Email(Base):
    __tablename__ = "bsd_emails"

    cons_email_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cons_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_people.cons_id", ondelete="CASCADE"), index=True
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    email: Mapped[str] = mapped_column(String(255), index=True)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    modified_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class Subscription(Base):
    __tablename__ = "bsd_subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cons_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_people.cons_id", ondelete="CASCADE"), index=True
    )
    isunsub: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class ZipCode(Base):
    """Zip centroid and standard UTC offset (hours)."""

    __tablename__ = "zip_codes"

    zip: Mapped[str] = mapped_column(String(5), primary_key=True)
    city: Mapped[str | None] = mapped_column(String(255))
    state: Mapped[str | None] = mapped_column(String(2))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)
    timezone_offset: Mapped[int | None] = mapped_column(Integer, index=True)
    has_dst: Mapped[bool] = mapped_column(Boolean, default=True)


class Communication(Base):
    """Outreach already sent to a person; such people are skipped by invite searches."""

    __tablename__ = "communications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    person_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bsd_people.cons_id", ondelete="CASCADE"), index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="EMAIL")
    notes: Mapped[str | None] = mapped_column(Text)
    create_dt: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
