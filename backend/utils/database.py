"""
Database utilities for the backend service
"""

from typing import List, Optional

import asyncpg
import structlog
from asyncpg import Pool

from backend.config import BackendSettings
from backend.models.product import Product, ProductCreate

logger = structlog.get_logger(__name__)

CREATE_PRODUCTS_TABLE = """
    CREATE TABLE IF NOT EXISTS products (
        id SERIAL PRIMARY KEY,
        name TEXT NOT NULL,
        price DOUBLE PRECISION NOT NULL,
        description TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
"""

PRODUCT_COLUMNS = "id, name, price, description, created_at"


class ProductDatabase:
    """Database connection and operations for the product store"""

    def __init__(self, settings: BackendSettings):
        self.pool: Optional[Pool] = None
        self.connect_config = settings.database_config
        self.db_config = {
            **self.connect_config,
            "min_size": settings.db_pool_min_size,
            "max_size": settings.db_pool_max_size,
            "command_timeout": settings.db_command_timeout,
        }

    async def ping(self) -> bool:
        """Open a one-off connection and run a trivial query"""
        conn = await asyncpg.connect(**self.connect_config)
        try:
            await conn.execute("SELECT 1")
        finally:
            await conn.close()
        return True

    async def initialize(self):
        """Initialize database connection pool and schema"""
        try:
            self.pool = await asyncpg.create_pool(**self.db_config)
            logger.info("Database pool created", database=self.db_config["database"])

            async with self.pool.acquire() as conn:
                await conn.execute(CREATE_PRODUCTS_TABLE)
                logger.info("Products table ready")

        except Exception as e:
            logger.error("Failed to initialize database", error=str(e))
            raise

    async def close(self):
        """Close database connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database pool closed")

    def _require_pool(self) -> Pool:
        if not self.pool:
            raise RuntimeError("Database pool not initialized")
        return self.pool

    # ===== PRODUCT OPERATIONS =====

    async def create_product(self, product_data: ProductCreate) -> Product:
        """Create a new product"""
        async with self._require_pool().acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO products (name, price, description)
                VALUES ($1, $2, $3)
                RETURNING {PRODUCT_COLUMNS}
                """,
                product_data.name,
                product_data.price,
                product_data.description
            )

        product = Product(**dict(row))
        logger.info("Product created", product_id=product.id)
        return product

    async def list_products(self, limit: int = 100, offset: int = 0) -> List[Product]:
        """List products, newest first"""
        async with self._require_pool().acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {PRODUCT_COLUMNS} FROM products
                ORDER BY created_at DESC, id DESC
                LIMIT $1 OFFSET $2
                """,
                limit,
                offset
            )

        return [Product(**dict(row)) for row in rows]
