"""
Product service: products and their bill of materials (BOM).
"""

from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kasir.common.exceptions import NotFoundError
from kasir.logger_config import logger
from kasir.models.material import Material
from kasir.models.product import Product, ProductMaterial


def get_product(db: Session, product_id: str) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f"Product not found: {product_id}")
    return product


def list_products(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    search: Optional[str] = None,
) -> Tuple[List[Product], int]:
    query = db.query(Product)
    if search:
        query = query.filter(Product.name.ilike(f"%{search}%"))
    total = query.count()
    return query.order_by(Product.name).offset(skip).limit(limit).all(), total


def _validate_bom(db: Session, materials: List[Dict]) -> List[ProductMaterial]:
    rows = []
    seen = set()
    for line in materials:
        material_id = line["material_id"]
        quantity = Decimal(str(line["quantity"]))
        if quantity <= 0:
            raise ValueError(f"BOM quantity for {material_id} must be greater than zero")
        if material_id in seen:
            raise ValueError(f"Material {material_id} appears more than once in the BOM")
        if db.query(Material.id).filter(Material.id == material_id).first() is None:
            raise NotFoundError(f"Material not found: {material_id}")
        seen.add(material_id)
        rows.append(ProductMaterial(material_id=material_id, quantity=quantity))
    return rows


def create_product(
    db: Session,
    name: str,
    base_price: Decimal,
    unit: str = "pcs",
    category: Optional[str] = None,
    materials: Optional[List[Dict]] = None,
) -> Product:
    """Create a product; `materials` is [{material_id, quantity}] per unit produced."""
    product = Product(name=name, base_price=base_price, unit=unit, category=category)
    product.materials = _validate_bom(db, materials or [])
    db.add(product)

    try:
        db.commit()
        db.refresh(product)
        logger.info(f"Product created: {product.id} ({name}) with {len(product.materials)} BOM line(s)")
        return product
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Product create integrity error: {e}")
        raise ValueError("Failed to create product")


def set_product_materials(db: Session, product_id: str, materials: List[Dict]) -> Product:
    """Replace the product's BOM."""
    product = get_product(db, product_id)
    rows = _validate_bom(db, materials)

    # Old rows must be gone before the new ones hit the unique constraint
    product.materials.clear()
    db.flush()
    product.materials = rows

    try:
        db.commit()
        db.refresh(product)
        logger.info(f"BOM of {product_id} replaced ({len(product.materials)} line(s))")
        return product
    except IntegrityError as e:
        db.rollback()
        logger.error(f"BOM update integrity error: {e}")
        raise ValueError("Failed to update product materials")
