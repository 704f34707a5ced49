"""
Product API: products and their bill of materials.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from kasir.common.exceptions import NotFoundError
from kasir.core.dependencies import Actor, get_current_actor, get_db
from kasir.schemas.product import (
    ProductCreate,
    ProductListResponse,
    ProductMaterialResponse,
    ProductMaterialsUpdate,
    ProductResponse,
)
from kasir.services.product_service import (
    create_product,
    get_product,
    list_products,
    set_product_materials,
)
from kasir.logger_config import logger

router = APIRouter()


def _build_product_response(product) -> ProductResponse:
    """Build ProductResponse from ORM product, resolving each BOM line's material."""
    materials = []
    for pm in product.materials:
        material = pm.material
        materials.append(
            ProductMaterialResponse(
                material_id=pm.material_id,
                material_name=material.name if material else "-",
                material_type=material.type.value if material else "-",
                unit=material.unit if material else "-",
                quantity=pm.quantity,
            )
        )
    return ProductResponse(
        id=product.id,
        name=product.name,
        category=product.category,
        base_price=product.base_price,
        unit=product.unit,
        materials=materials,
        created_at=product.created_at,
    )


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product_route(
    data: ProductCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Create a product with its BOM (quantity of each material per unit)."""
    try:
        materials = [{"material_id": m.material_id, "quantity": m.quantity} for m in data.materials]
        product = create_product(
            db,
            name=data.name,
            base_price=data.base_price,
            unit=data.unit,
            category=data.category,
            materials=materials,
        )
        logger.info(f"Product {product.id} created by {actor.display_name}")
        return _build_product_response(product)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("", response_model=ProductListResponse)
def list_products_route(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    search: Optional[str] = Query(None),
):
    products, total = list_products(db, skip=skip, limit=limit, search=search)
    return ProductListResponse(
        total=total,
        products=[_build_product_response(p) for p in products],
    )


@router.get("/{product_id}", response_model=ProductResponse)
def get_product_route(product_id: str, db: Session = Depends(get_db)):
    try:
        return _build_product_response(get_product(db, product_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{product_id}/materials", response_model=ProductResponse)
def update_product_materials_route(
    product_id: str,
    data: ProductMaterialsUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Replace the product's BOM."""
    try:
        materials = [{"material_id": m.material_id, "quantity": m.quantity} for m in data.materials]
        product = set_product_materials(db, product_id, materials)
        logger.info(f"BOM of {product_id} replaced by {actor.display_name}")
        return _build_product_response(product)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
