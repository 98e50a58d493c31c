"""Menu catalog schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class OptionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    extra_price: Decimal = Field(default=Decimal("0"), ge=0)
    sort_order: int = 0


class OptionResponse(BaseModel):
    id: int
    name: str
    extra_price: Decimal
    sort_order: int

    model_config = {"from_attributes": True}


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    sort_order: int = 0


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    sort_order: Optional[int] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    sort_order: int

    model_config = {"from_attributes": True}


class ProductBase(BaseModel):
    """Base product schema."""

    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0)
    category_id: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    tag: Optional[str] = Field(default=None, max_length=50)
    is_available: bool = True
    sort_order: int = 0


class ProductCreate(ProductBase):
    """Product creation schema."""

    options: List[OptionCreate] = []


class ProductUpdate(BaseModel):
    """Product update schema."""

    name: Optional[str] = Field(default=None, max_length=200)
    price: Optional[Decimal] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    tag: Optional[str] = Field(default=None, max_length=50)
    is_available: Optional[bool] = None
    sort_order: Optional[int] = None


class AvailabilityUpdate(BaseModel):
    is_available: bool


class ProductResponse(ProductBase):
    """Product response schema."""

    id: int
    options: List[OptionResponse] = []
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MenuSection(BaseModel):
    category: Optional[CategoryResponse] = None
    products: List[ProductResponse]

    model_config = {"from_attributes": True}


class MenuResponse(BaseModel):
    sections: List[MenuSection]
    product_count: int
