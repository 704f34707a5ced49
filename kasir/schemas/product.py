from decimal import Decimal
from pydantic import BaseModel, Field, field_serializer
from typing import List, Optional
from datetime import datetime
from kasir.schemas.common import decimal_two_places


class ProductMaterialCreate(BaseModel):
    """One BOM line: quantity of the material consumed per 1 unit of product."""
    material_id: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0)


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    base_price: Decimal = Field(..., ge=0)
    unit: str = Field("pcs", min_length=1, max_length=20)
    category: Optional[str] = Field(None, max_length=50)
    materials: List[ProductMaterialCreate] = []


class ProductMaterialsUpdate(BaseModel):
    materials: List[ProductMaterialCreate]


class ProductMaterialResponse(BaseModel):
    material_id: str
    material_name: str
    material_type: str
    unit: str
    quantity: Decimal

    @field_serializer("quantity")
    def _serialize_quantity(self, v):
        return str(v)


class ProductResponse(BaseModel):
    id: str
    name: str
    category: Optional[str] = None
    base_price: Decimal
    unit: str
    materials: List[ProductMaterialResponse]
    created_at: datetime

    @field_serializer("base_price")
    def _serialize_price(self, v):
        return decimal_two_places(v)


class ProductListResponse(BaseModel):
    total: int
    products: List[ProductResponse]
