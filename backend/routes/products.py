"""
Product routes
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
import structlog

from backend.models.product import Product, ProductCreate
from backend.utils.database import ProductDatabase

logger = structlog.get_logger(__name__)

router = APIRouter()


def get_database(request: Request) -> ProductDatabase:
    """Dependency to get database instance"""
    return request.app.state.db


@router.post("", response_model=Product, status_code=201)
async def create_product(
    product_data: ProductCreate,
    db: ProductDatabase = Depends(get_database)
):
    """Create a new product"""
    try:
        logger.info("Creating product", name=product_data.name)
        return await db.create_product(product_data)
    except Exception as e:
        logger.error("Failed to create product", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to create product")


@router.get("", response_model=List[Product])
async def list_products(
    limit: int = Query(100, ge=1, le=500, description="Maximum products to return"),
    offset: int = Query(0, ge=0, description="Products to skip"),
    db: ProductDatabase = Depends(get_database)
):
    """List products, newest first"""
    try:
        return await db.list_products(limit=limit, offset=offset)
    except Exception as e:
        logger.error("Failed to list products", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to list products")
