import enum
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from kasir.core.database import Base
from kasir.models.account import generate_custom_id
from kasir.utils.timezone import utc_now


class PurchaseOrderStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    DIBAYAR = "Dibayar"
    SELESAI = "Selesai"


class PurchaseOrder(Base):
    """Material purchase request: Pending -> Approved -> Dibayar (paid) -> Selesai (received)."""
    __tablename__ = "purchase_orders"

    id = Column(String(20), primary_key=True, default=lambda: generate_custom_id("PO"))
    material_id = Column(String(20), ForeignKey("materials.id"), nullable=False)
    material_name = Column(String(100), nullable=False)
    quantity = Column(Numeric(15, 2), nullable=False)
    unit = Column(String(20), nullable=False, default="pcs")
    requested_by = Column(String(100), nullable=False)
    status = Column(Enum(PurchaseOrderStatus), nullable=False, default=PurchaseOrderStatus.PENDING)
    notes = Column(Text, nullable=True)

    total_cost = Column(Numeric(15, 2), nullable=True)
    payment_account_id = Column(String(20), ForeignKey("accounts.id"), nullable=True)
    payment_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)

    material = relationship("Material")
