"""ProductRepository: read-only raw SQL access to products for checkout."""
from decimal import Decimal
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_catalog.domain.models import Product
from src.sf_catalog.domain.weight import Weight, WeightUnit

_GET_PRODUCTS_SQL = text("""
    SELECT id, name, price, discount_price, weight_value, weight_unit
    FROM products WHERE id IN :ids
""").bindparams(bindparam("ids", expanding=True))

_GET_VARIANTS_SQL = text("""
    SELECT id, product_id, price FROM product_variants WHERE product_id IN :ids
""").bindparams(bindparam("ids", expanding=True))

_GET_SPECS_SQL = text("""
    SELECT product_id, name, value FROM product_specifications
    WHERE product_id IN :ids ORDER BY product_id, position
""").bindparams(bindparam("ids", expanding=True))


def _row_to_product(row: Any) -> Product:
    weight = None
    if row.weight_value is not None:
        weight = Weight(value=Decimal(row.weight_value), unit=WeightUnit(row.weight_unit or "kg"))
    return Product(
        id=row.id,
        name=row.name,
        price=row.price,
        discount_price=row.discount_price,
        weight=weight,
    )


class ProductRepository:
    async def get_many(self, product_ids: list[str], db: AsyncSession) -> dict[str, Product]:
        """Products keyed by id, with variant prices and spec rows attached."""
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        rows = (await db.execute(_GET_PRODUCTS_SQL, {"ids": ids})).fetchall()
        products = {row.id: _row_to_product(row) for row in rows}

        for row in (await db.execute(_GET_VARIANTS_SQL, {"ids": ids})).fetchall():
            if row.product_id in products:
                products[row.product_id].variant_prices[row.id] = row.price
        for row in (await db.execute(_GET_SPECS_SQL, {"ids": ids})).fetchall():
            if row.product_id in products:
                products[row.product_id].specifications.append((row.name, row.value))
        return products
