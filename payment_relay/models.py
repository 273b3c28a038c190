"""
Database models for Payment Relay.

These SQLAlchemy models define the three tables the relay reads and writes:
stores (each mapped to the Slack channel its staff submit from), vendors,
and the payment requests themselves.  Migrations are intentionally omitted;
the schema can be initialised via :func:`payment_relay.database.init_db`.
"""

import datetime as _dt
import enum
import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


def _new_request_id() -> str:
    return str(uuid.uuid4())


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


DECISIONS = (RequestStatus.APPROVED, RequestStatus.REJECTED)


class Store(Base):
    """A physical location whose staff submit requests from one Slack channel."""

    __tablename__ = "stores"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    channel_id = Column(String, nullable=True, unique=True)

    requests = relationship("PaymentRequest", back_populates="store")

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name} channel={self.channel_id}>"


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} name={self.name}>"


class PaymentRequest(Base):
    """A payment request awaiting (or past) a reviewer's decision."""

    __tablename__ = "payment_requests"

    id = Column(String(36), primary_key=True, default=_new_request_id)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=True)
    requester_name = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)
    category = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    status = Column(
        String(16),
        nullable=False,
        default=RequestStatus.PENDING.value,  # pending -> approved | rejected, once
    )
    origin_channel_id = Column(String, nullable=True)
    origin_message_ts = Column(String, nullable=True)
    approval_message_ts = Column(String, nullable=True)
    processed_by = Column(String, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    store = relationship("Store", back_populates="requests")
    vendor = relationship("Vendor")

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    def __repr__(self) -> str:
        return f"<PaymentRequest id={self.id} store={self.store_id} amount={self.amount} status={self.status}>"
