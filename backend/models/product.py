"""
Product data models and schemas
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductBase(BaseModel):
    """Base product model with common fields"""
    name: str = Field(..., min_length=1, max_length=200, description="Product display name")
    price: float = Field(..., ge=0, description="Unit price")
    description: Optional[str] = Field(None, max_length=2000, description="Free text description")


class ProductCreate(ProductBase):
    """Schema for creating a new product"""
    pass


class Product(ProductBase):
    """Stored product"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
