"""
Sales transactions (orders) and their line items.

Status lifecycle: Pesanan Masuk -> Proses Design -> ACC Costumer -> Proses Produksi
-> Pesanan Selesai, or Dibatalkan from any open state. Materials are consumed the
first time an order reaches Proses Produksi or Pesanan Selesai.
"""

import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from kasir.core.database import Base
from kasir.models.account import generate_custom_id
from kasir.utils.timezone import utc_now


class TransactionStatus(str, enum.Enum):
    PESANAN_MASUK = "Pesanan Masuk"
    PROSES_DESIGN = "Proses Design"
    ACC_COSTUMER = "ACC Costumer"
    PROSES_PRODUKSI = "Proses Produksi"
    PESANAN_SELESAI = "Pesanan Selesai"
    DIBATALKAN = "Dibatalkan"


class PaymentStatus(str, enum.Enum):
    LUNAS = "Lunas"
    BELUM_LUNAS = "Belum Lunas"
    KREDIT = "Kredit"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(30), primary_key=True, default=lambda: generate_custom_id("TRX"))
    customer_name = Column(String(150), nullable=False)
    cashier_id = Column(String(40), nullable=True)
    cashier_name = Column(String(100), nullable=True)
    payment_account_id = Column(String(20), ForeignKey("accounts.id"), nullable=True)

    order_date = Column(DateTime(timezone=True), default=utc_now)
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(15, 2), nullable=False, default=0)
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.BELUM_LUNAS)
    status = Column(Enum(TransactionStatus), nullable=False, default=TransactionStatus.PESANAN_MASUK)

    # Set once materials have been consumed for this order
    materials_processed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    items = relationship(
        "TransactionItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        lazy="joined",
    )
    payment_account = relationship("Account", foreign_keys=[payment_account_id])

    @property
    def remaining_amount(self):
        return (self.total or 0) - (self.paid_amount or 0)


class TransactionItem(Base):
    __tablename__ = "transaction_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String(30), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(20), ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Numeric(15, 2), nullable=False)
    price = Column(Numeric(15, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    transaction = relationship("Transaction", back_populates="items")
    product = relationship("Product", lazy="joined")
