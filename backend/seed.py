"""Seed catalog products and starter questions.

The products and questions tables are dropped and recreated on each run. The
transcript chunk table is only created if missing, so ingested chunks survive.
"""

from __future__ import annotations

import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from woodchat.database import async_session, engine
from woodchat.models.orm import Base, CatalogProduct, Question


PRODUCTS = [
    CatalogProduct(
        title="Narex Richter Bench Chisel Set",
        tags="Workshop Tour, Chisel Sharpening Basics, hand tools",
        link="https://www.bentswoodworking.com/products/narex-richter-chisels",
    ),
    CatalogProduct(
        title="Diamond Sharpening Plate 300/1000",
        tags="Chisel Sharpening Basics, Plane Iron Tune-Up, sharpening",
        link="https://www.bentswoodworking.com/products/diamond-plate",
    ),
    CatalogProduct(
        title="Track Saw with 55in Rail",
        tags="Breaking Down Sheet Goods, Building a Workbench, power tools",
        link="https://www.bentswoodworking.com/products/track-saw",
    ),
    CatalogProduct(
        title="Parallel Clamp Pack (4)",
        tags="Glue-Up Tips, Building a Workbench, clamps",
        link="https://www.bentswoodworking.com/products/parallel-clamps",
    ),
    CatalogProduct(
        title="Cyclone Dust Separator",
        tags="Workshop Tour, Dust Collection Upgrade, shop setup",
        link="https://www.bentswoodworking.com/products/cyclone-separator",
    ),
]

QUESTIONS = [
    Question(question_text="What chisel should I buy first?"),
    Question(question_text="How do I sharpen a chisel without a jig?"),
    Question(question_text="What is the best way to break down plywood sheets?"),
    Question(question_text="How many clamps do I need for a tabletop glue-up?"),
    Question(question_text="How should I lay out a small one-car garage shop?"),
    Question(question_text="Which dust collection setup works for a hobby shop?"),
]


SEED_TABLES = [CatalogProduct.__table__, Question.__table__]


async def reset_seed_tables(conn: AsyncConnection) -> None:
    """Recreate the seeded tables and create any other missing table."""
    await conn.run_sync(
        lambda sync_conn: Base.metadata.drop_all(sync_conn, tables=SEED_TABLES)
    )
    await conn.run_sync(Base.metadata.create_all)


async def main() -> None:
    async with engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await reset_seed_tables(conn)

    async with async_session() as session:
        session.add_all(PRODUCTS)
        session.add_all(QUESTIONS)
        await session.commit()

    print(f"Seeded {len(PRODUCTS)} products and {len(QUESTIONS)} questions.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
