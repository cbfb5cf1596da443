"""SQLAlchemy ORM models for clients, installments, payments and notifications"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

Money = Numeric(12, 2, asdecimal=True)


class Client(Base):
    """
    Buyer of a financed property.

    Owned by the client lifecycle; the payment workflow only touches
    remaining_balance and contract_signed.
    """

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    assigned_seller_id = Column(Integer, nullable=True, index=True)
    real_estate_id = Column(Integer, nullable=True, index=True)
    property_id = Column(Integer, nullable=True)
    total_down_payment = Column(Money, nullable=False, default=0)
    remaining_balance = Column(Money, nullable=False, default=0)
    contract_signed = Column(Boolean, nullable=False, default=False)
    contract_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    installments = relationship("Installment", back_populates="client", cascade="all, delete-orphan")


class Installment(Base):
    """One scheduled fixed-amount obligation in a client's payment plan"""

    __tablename__ = "installments"
    __table_args__ = (UniqueConstraint("client_id", "installment_number", name="uq_installment_client_number"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    installment_number = Column(Integer, nullable=False)
    amount = Column(Money, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(String(32), nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="installments")
    payments = relationship("Payment", back_populates="installment")


class Payment(Base):
    """Uploaded proof-of-payment attempt against an installment"""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    installment_id = Column(Integer, ForeignKey("installments.id", ondelete="RESTRICT"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    payment_method = Column(String(32), nullable=False)
    reference_number = Column(String(100), nullable=True)
    proof_file_path = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="pending", index=True)
    approved_by = Column(Integer, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(String(500), nullable=True)
    payment_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    installment = relationship("Installment", back_populates="payments")
    client = relationship("Client")


class Notification(Base):
    """Inbox message for sellers and clients"""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_id = Column(Integer, nullable=False, index=True)
    sender_id = Column(Integer, nullable=True)
    type = Column(String(32), nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    related_client_id = Column(Integer, nullable=True)
    related_payment_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
