"""
Products sold at the counter and their bill of materials.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from kasir.core.database import Base
from kasir.models.account import generate_custom_id
from kasir.utils.timezone import utc_now


class Product(Base):
    __tablename__ = "products"

    id = Column(String(20), primary_key=True, default=lambda: generate_custom_id("PRD"))
    name = Column(String(150), nullable=False)
    category = Column(String(50), nullable=True)
    base_price = Column(Numeric(15, 2), nullable=False, default=0)
    unit = Column(String(20), nullable=False, default="pcs")

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    materials = relationship(
        "ProductMaterial",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="joined",
    )


class ProductMaterial(Base):
    """One BOM line: `quantity` of a material consumed per 1 unit of product."""

    __tablename__ = "product_materials"
    __table_args__ = (UniqueConstraint("product_id", "material_id", name="uq_product_material"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(String(20), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    material_id = Column(String(20), ForeignKey("materials.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Numeric(15, 4), nullable=False)

    product = relationship("Product", back_populates="materials")
    material = relationship("Material", lazy="joined")
