"""
SQLAlchemy ORM models for the order portal.
"""
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, DateTime,
    ForeignKey, JSON, UniqueConstraint, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from orderportal.db.session import Base


# ============= ENUMS =============

class UserRole(str, enum.Enum):
    ADMIN = "admin"
    CLIENT = "client"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    RECEIVED = "received"


class LogType(str, enum.Enum):
    INFO = "info"
    STATUS_CHECK = "status_check"
    EMAIL = "email"
    ERROR = "error"


def enum_values(enum_cls):
    return [e.value for e in enum_cls]


ORDER_STATUS_CHECK = "status IN ({})".format(
    ", ".join(f"'{v}'" for v in enum_values(OrderStatus))
)


# ============= USERS =============

class User(Base):
    """Portal accounts (admins and client users)."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    company_name = Column(String(255))
    role = Column(String(20), default=UserRole.CLIENT.value)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    orders = relationship(
        "TrackedOrder",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# ============= ORDERS =============

class TrackedOrder(Base):
    """A client purchase order monitored against the inventory system."""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    po_number = Column(String(100), nullable=False)
    date_required = Column(Date, nullable=False, index=True)
    client_name = Column(String(255))  # matched against the inventory clientName
    status = Column(String(50), nullable=False, default=OrderStatus.PENDING.value, index=True)
    notes = Column(Text)
    last_checked_at = Column(DateTime(timezone=True))
    last_status_change_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())  # set explicitly on edits and transitions

    owner = relationship("User", back_populates="orders")
    history = relationship(
        "StatusHistoryEntry",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StatusHistoryEntry.id",
    )

    __table_args__ = (
        UniqueConstraint('user_id', 'po_number', name='uq_orders_user_po'),
        CheckConstraint(ORDER_STATUS_CHECK, name='ck_orders_status'),
    )


class StatusHistoryEntry(Base):
    """Append-only audit row, one per detected status transition."""
    __tablename__ = "status_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    old_status = Column(String(50))
    new_status = Column(String(50), nullable=False)
    changed_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("TrackedOrder", back_populates="history")

    __table_args__ = (
        Index('ix_status_history_order_changed', 'order_id', 'changed_at'),
    )


# ============= ALERT SETTINGS =============

class EmailSetting(Base):
    """Key/value settings edited from the admin panel."""
    __tablename__ = "email_settings"

    id = Column(Integer, primary_key=True, index=True)
    setting_key = Column(String(100), unique=True, nullable=False)
    setting_value = Column(Text)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AlertRecipient(Base):
    """Admin address that receives the deadline summary."""
    __tablename__ = "alert_recipients"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# ============= SYSTEM LOGS =============

class SystemLog(Base):
    """Operational events from scheduled jobs and run-now requests."""
    __tablename__ = "system_logs"

    id = Column(Integer, primary_key=True, index=True)
    log_type = Column(String(50), nullable=False, index=True)
    message = Column(Text, nullable=False)
    details = Column(JSON)
    created_by = Column(String(100), default="system")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
