"""ORM models for bookings, guests, rooms and the notification ledger."""

from datetime import date, datetime
from enum import StrEnum
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base, UTCDateTime, utcnow


def _uuid() -> str:
    return str(uuid4())


class UserRole(StrEnum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    TENANT = "TENANT"


STAFF_ROLES = (UserRole.ADMIN, UserRole.MANAGER, UserRole.STAFF)


class BookingStatus(StrEnum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"


class NotificationType(StrEnum):
    SEVENTY_FIVE_PERCENT_STAY = "SEVENTY_FIVE_PERCENT_STAY"
    OVERDUE_ALERT = "OVERDUE_ALERT"
    GENERAL_ANNOUNCEMENT = "GENERAL_ANNOUNCEMENT"


class NotificationChannel(StrEnum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    EMAIL_SMS = "EMAIL_SMS"
    WHATSAPP = "WHATSAPP"
    VOICE = "VOICE"
    MULTI = "MULTI"
    NONE = "NONE"


class NotificationStatus(StrEnum):
    PENDING = "PENDING"
    SENT = "SENT"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


def _enum(enum_cls):
    return Enum(enum_cls, native_enum=False, length=40)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100), default="")
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[UserRole] = mapped_column(_enum(UserRole), default=UserRole.TENANT, index=True)

    bookings: Mapped[list["Booking"]] = relationship(back_populates="user")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Block(Base):
    __tablename__ = "blocks"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(50), unique=True)


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    number: Mapped[str] = mapped_column(String(20))
    block_id: Mapped[str | None] = mapped_column(ForeignKey("blocks.id"), nullable=True)

    block: Mapped[Block | None] = relationship()

    @property
    def label(self) -> str:
        if self.block is not None:
            return f"{self.block.name}-{self.number}"
        return self.number


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("check_out > check_in", name="ck_booking_checkout_after_checkin"),
        Index("ix_bookings_status_check_out", "status", "check_out"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"))
    room_id: Mapped[str] = mapped_column(ForeignKey("rooms.id"))
    check_in: Mapped[datetime] = mapped_column(UTCDateTime)
    check_out: Mapped[datetime] = mapped_column(UTCDateTime)
    status: Mapped[BookingStatus] = mapped_column(
        _enum(BookingStatus), default=BookingStatus.PENDING
    )

    user: Mapped[User] = relationship(back_populates="bookings")
    room: Mapped[Room] = relationship()


class Notification(Base):
    """One notification of a given type for a booking on a local calendar day."""

    __tablename__ = "notifications"
    __table_args__ = (
        UniqueConstraint("booking_id", "type", "sent_on", name="uq_notification_booking_type_day"),
        Index("ix_notifications_booking_type_created", "booking_id", "type", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    booking_id: Mapped[str | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    type: Mapped[NotificationType] = mapped_column(_enum(NotificationType))
    title: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(Text)
    channel: Mapped[NotificationChannel] = mapped_column(
        _enum(NotificationChannel), default=NotificationChannel.NONE
    )
    status: Mapped[NotificationStatus] = mapped_column(
        _enum(NotificationStatus), default=NotificationStatus.PENDING, index=True
    )
    sent_on: Mapped[date] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
