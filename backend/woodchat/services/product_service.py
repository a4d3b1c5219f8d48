"""Product correlator: catalog entries whose tags mention cited video titles."""

from __future__ import annotations

import logging

from sqlalchemy import Text, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from woodchat.models.orm import CatalogProduct
from woodchat.models.rag import Product


logger = logging.getLogger(__name__)


def _to_product(row: CatalogProduct) -> Product:
    tags = [t.strip() for t in (row.tags or "").split(",") if t.strip()]
    return Product(id=str(row.id), title=row.title, tags=tags, link=row.link)


async def find_related_products(
    session: AsyncSession, video_titles: list[str]
) -> list[Product]:
    """Case-insensitive substring match of each title against product tags.

    Products are de-duplicated by id. Store errors are logged and produce an
    empty list, since product links are optional for an answer.
    """
    titles = list(dict.fromkeys(t.strip().lower() for t in video_titles if t.strip()))
    if not titles:
        return []

    tags = func.lower(CatalogProduct.tags, type_=Text)
    stmt = (
        select(CatalogProduct)
        .where(or_(*(tags.contains(title, autoescape=True) for title in titles)))
        .order_by(CatalogProduct.id)
    )
    try:
        result = await session.execute(stmt)
        rows = result.scalars().all()
    except Exception:
        logger.exception("Related product lookup failed for %d titles", len(titles))
        return []

    products: dict[str, Product] = {}
    for row in rows:
        product = _to_product(row)
        products.setdefault(product.id, product)
    logger.info("Related products: %d for titles %s", len(products), titles)
    return list(products.values())
