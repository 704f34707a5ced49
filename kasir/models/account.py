import enum
import secrets
import string
from sqlalchemy import Boolean, Column, DateTime, Enum, Numeric, String
from sqlalchemy.orm import relationship
from kasir.core.database import Base
from kasir.utils.timezone import utc_now


class AccountType(str, enum.Enum):
    ASET = "Aset"
    KEWAJIBAN = "Kewajiban"
    MODAL = "Modal"
    PENDAPATAN = "Pendapatan"
    BEBAN = "Beban"


def generate_custom_id(prefix: str, length: int = 8) -> str:
    random_part = ''.join(secrets.choice(string.ascii_uppercase + string.digits)
                          for _ in range(length))
    return f"{prefix}-{random_part}"


class Account(Base):
    """
    Financial account snapshot. `balance` is mutated in place by every
    cash-affecting operation; `initial_balance` is the owner-set baseline.
    Expected: balance == initial_balance + sum of signed ledger entries.
    """
    __tablename__ = "accounts"

    id = Column(String(20), primary_key=True,
                default=lambda: generate_custom_id("ACC"))
    name = Column(String(100), unique=True, nullable=False)
    type = Column(Enum(AccountType), nullable=False, default=AccountType.ASET)
    balance = Column(Numeric(15, 2), nullable=False, default=0)
    initial_balance = Column(Numeric(15, 2), nullable=False, default=0)
    is_payment_account = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    ledger_entries = relationship("LedgerEntry", back_populates="account")

    def __repr__(self):
        return f"<Account(id='{self.id}', name='{self.name}', balance={self.balance})>"
