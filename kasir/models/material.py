"""
Material and material movement models.

`Material.stock` keeps its historical double meaning: remaining quantity for
Stock-type materials, cumulative usage counter for Beli/Jasa-type materials
(purchased per job or service contracts). `remaining_stock` and
`cumulative_usage` expose the two readings explicitly; exactly one of them is
non-null for any material.
"""

import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from kasir.core.database import Base
from kasir.models.account import generate_custom_id
from kasir.utils.timezone import utc_now


class MaterialType(str, enum.Enum):
    STOCK = "Stock"   # physical inventory, stock decreases when consumed
    BELI = "Beli"     # bought per job, stock counts usage
    JASA = "Jasa"     # service contract, stock counts usage


USAGE_COUNTER_TYPES = (MaterialType.BELI, MaterialType.JASA)


class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


class MovementReason(str, enum.Enum):
    PURCHASE = "PURCHASE"
    PRODUCTION_CONSUMPTION = "PRODUCTION_CONSUMPTION"
    PRODUCTION_ACQUISITION = "PRODUCTION_ACQUISITION"
    ADJUSTMENT = "ADJUSTMENT"
    RETURN = "RETURN"


class Material(Base):
    __tablename__ = "materials"

    id = Column(String(20), primary_key=True, default=lambda: generate_custom_id("MAT"))
    name = Column(String(100), nullable=False)
    type = Column(Enum(MaterialType), nullable=False, default=MaterialType.STOCK)
    unit = Column(String(20), nullable=False, default="pcs")
    price_per_unit = Column(Numeric(15, 2), nullable=False, default=0)
    stock = Column(Numeric(15, 2), nullable=False, default=0)
    min_stock = Column(Numeric(15, 2), nullable=False, default=0)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    movements = relationship("MaterialMovement", back_populates="material")

    @property
    def is_usage_counter(self) -> bool:
        return self.type in USAGE_COUNTER_TYPES

    @property
    def remaining_stock(self):
        return None if self.is_usage_counter else self.stock

    @property
    def cumulative_usage(self):
        return self.stock if self.is_usage_counter else None

    def __repr__(self):
        return f"<Material(id='{self.id}', name='{self.name}', type={self.type}, stock={self.stock})>"


class MaterialMovement(Base):
    """
    Audit row for one stock change. new_stock == previous_stock + quantity for IN,
    previous_stock - quantity for OUT, except usage-counter materials where an OUT
    (consumption) increases the counter.
    """

    __tablename__ = "material_stock_movements"

    id = Column(String(20), primary_key=True, default=lambda: generate_custom_id("MM"))
    material_id = Column(String(20), ForeignKey("materials.id", ondelete="CASCADE"), nullable=False, index=True)
    material_name = Column(String(100), nullable=False)
    type = Column(Enum(MovementType), nullable=False)
    reason = Column(Enum(MovementReason), nullable=False)
    quantity = Column(Numeric(15, 2), nullable=False)
    previous_stock = Column(Numeric(15, 2), nullable=False)
    new_stock = Column(Numeric(15, 2), nullable=False)
    reference_id = Column(String(40), nullable=True, index=True)
    reference_type = Column(String(30), nullable=True)
    notes = Column(Text, nullable=True)
    user_id = Column(String(40), nullable=True)
    user_name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, index=True)

    material = relationship("Material", back_populates="movements")
