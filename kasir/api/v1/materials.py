"""
Materials API: material master data, stock opname and the movement log.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from kasir.common.exceptions import NotFoundError
from kasir.core.dependencies import Actor, get_current_actor, get_db
from kasir.logger_config import logger
from kasir.models.material import MaterialType, MovementReason
from kasir.schemas.material import (
    MaterialCreate,
    MaterialListResponse,
    MaterialMovementListResponse,
    MaterialMovementResponse,
    MaterialResponse,
    MaterialUsageSummary,
    StockAdjustment,
)
from kasir.services.material_movement_service import (
    adjust_stock,
    create_material,
    get_low_stock_materials,
    get_material,
    list_materials,
    list_movements,
    material_usage_summary,
)

router = APIRouter()


@router.get("", response_model=MaterialListResponse)
def list_materials_route(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    search: Optional[str] = Query(None),
    type: Optional[MaterialType] = Query(None),
):
    materials, total = list_materials(db, skip=skip, limit=limit, search=search, type=type)
    return MaterialListResponse(
        total=total,
        materials=[MaterialResponse.model_validate(m) for m in materials],
    )


@router.get("/low-stock", response_model=List[MaterialResponse])
def low_stock_route(db: Session = Depends(get_db)):
    """Stock-type materials at or below their minimum stock."""
    return [MaterialResponse.model_validate(m) for m in get_low_stock_materials(db)]


@router.get("/movements", response_model=MaterialMovementListResponse)
def list_movements_route(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    material_id: Optional[str] = Query(None),
    reference_id: Optional[str] = Query(None, description="Transaction or purchase order id"),
    reason: Optional[MovementReason] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    """Stock movement log newest first; consumption rows carry their order summary."""
    items, total = list_movements(
        db,
        skip=skip,
        limit=limit,
        material_id=material_id,
        reference_id=reference_id,
        reason=reason,
        start_date=start_date,
        end_date=end_date,
    )
    return MaterialMovementListResponse(
        data=[MaterialMovementResponse(**item) for item in items],
        count=total,
    )


@router.get("/{material_id}", response_model=MaterialResponse)
def get_material_route(material_id: str, db: Session = Depends(get_db)):
    try:
        return MaterialResponse.model_validate(get_material(db, material_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{material_id}/usage", response_model=MaterialUsageSummary)
def material_usage_route(material_id: str, db: Session = Depends(get_db)):
    try:
        return MaterialUsageSummary(**material_usage_summary(db, material_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=MaterialResponse, status_code=status.HTTP_201_CREATED)
def create_material_route(
    data: MaterialCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    try:
        material = create_material(
            db,
            name=data.name,
            type=data.type,
            unit=data.unit,
            price_per_unit=data.price_per_unit,
            stock=data.stock,
            min_stock=data.min_stock,
            description=data.description,
        )
        logger.info(f"Material {material.id} created by {actor.display_name}")
        return MaterialResponse.model_validate(material)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{material_id}/adjust", response_model=MaterialMovementResponse)
def adjust_stock_route(
    material_id: str,
    data: StockAdjustment,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Stock opname: replace the stock with the counted quantity."""
    try:
        movement = adjust_stock(db, material_id, data.new_stock, actor=actor, notes=data.notes)
        return MaterialMovementResponse.model_validate(movement)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
