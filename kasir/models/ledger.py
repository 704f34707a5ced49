import enum
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from kasir.core.database import Base
from kasir.models.account import generate_custom_id
from kasir.utils.timezone import utc_now


class LedgerCategory(str, enum.Enum):
    """Normalized classification of a ledger entry, stored at write time."""
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"


class ReferenceType(str, enum.Enum):
    TRANSACTION = "transaction"
    PURCHASE_ORDER = "purchase_order"
    EMPLOYEE_ADVANCE = "employee_advance"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    MANUAL = "manual"


class LedgerEntry(Base):
    """
    One row of the append-only cash movement log.

    `amount` is always a non-negative magnitude; direction comes from the
    classification. `type`, `transaction_type` and `source_type` are the
    legacy schemes (at most one reliably populated on historical rows);
    `category` is the normalized one. `reference_id` points at the
    transaction / purchase order / advance / expense that produced the row.
    """
    __tablename__ = "cash_history"

    id = Column(String(20), primary_key=True,
                default=lambda: generate_custom_id("CH"))
    account_id = Column(String(20), ForeignKey("accounts.id"), nullable=True, index=True)
    account_name = Column(String(100), nullable=True)

    amount = Column(Numeric(15, 2), nullable=False)
    description = Column(Text, nullable=False, default="")
    reference_number = Column(String(60), nullable=True, index=True)
    reference_id = Column(String(40), nullable=True, index=True)
    reference_type = Column(String(30), nullable=True)

    # Legacy classification fields
    transaction_type = Column(String(20), nullable=True)   # income / expense
    type = Column(String(40), nullable=True)               # orderan / pengeluaran / ...
    source_type = Column(String(40), nullable=True)        # pos_direct / manual_expense / ...

    category = Column(String(20), nullable=True, index=True)

    created_by = Column(String(40), nullable=True)
    created_by_name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, index=True)

    account = relationship("Account", back_populates="ledger_entries")

    def __repr__(self):
        return (
            f"<LedgerEntry(id='{self.id}', account_id='{self.account_id}', "
            f"amount={self.amount}, category='{self.category}')>"
        )
