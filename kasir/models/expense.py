from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from kasir.core.database import Base
from kasir.models.account import generate_custom_id
from kasir.utils.timezone import utc_now


class Expense(Base):
    """Expense paid from an account. Category decides the ledger source type."""
    __tablename__ = "expenses"

    id = Column(String(20), primary_key=True, default=lambda: generate_custom_id("EXP"))
    description = Column(Text, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    account_id = Column(String(20), ForeignKey("accounts.id"), nullable=True)
    account_name = Column(String(100), nullable=True)
    category = Column(String(50), nullable=False, default="Lain-lain")
    date = Column(DateTime(timezone=True), default=utc_now)

    created_at = Column(DateTime(timezone=True), default=utc_now)

    account = relationship("Account")


class EmployeeAdvance(Base):
    """Cash advance (panjar) given to an employee; repaid in installments."""
    __tablename__ = "employee_advances"

    id = Column(String(20), primary_key=True, default=lambda: generate_custom_id("ADV"))
    employee_id = Column(String(40), nullable=False)
    employee_name = Column(String(100), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    remaining_amount = Column(Numeric(15, 2), nullable=False)
    account_id = Column(String(20), ForeignKey("accounts.id"), nullable=False)
    account_name = Column(String(100), nullable=True)
    date = Column(DateTime(timezone=True), default=utc_now)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    repayments = relationship(
        "AdvanceRepayment",
        back_populates="advance",
        cascade="all, delete-orphan",
        lazy="joined",
    )


class AdvanceRepayment(Base):
    __tablename__ = "advance_repayments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    advance_id = Column(String(20), ForeignKey("employee_advances.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    date = Column(DateTime(timezone=True), default=utc_now)
    recorded_by = Column(String(100), nullable=True)

    advance = relationship("EmployeeAdvance", back_populates="repayments")
