"""Test fixtures and configuration."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from woodchat.database import get_session, get_session_factory
from woodchat.main import app
from woodchat.models.orm import Base, CatalogProduct, Question
from woodchat.services import format_validator
from woodchat.services.pending_context import pending_contexts

test_engine = create_async_engine("sqlite+aiosqlite://", echo=False)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


async def override_get_session() -> AsyncIterator[AsyncSession]:
    async with test_session_factory() as session:
        yield session


app.dependency_overrides[get_session] = override_get_session
app.dependency_overrides[get_session_factory] = lambda: test_session_factory


@pytest.fixture(autouse=True)
async def setup_database() -> AsyncIterator[None]:
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
async def reset_pipeline_state() -> AsyncIterator[None]:
    await pending_contexts.clear()
    format_validator.format_counters.clear()
    yield
    await pending_contexts.clear()


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    return test_session_factory


@pytest.fixture
async def seed_products() -> list[CatalogProduct]:
    async with test_session_factory() as session:
        products = [
            CatalogProduct(
                title="Bench Chisel Set",
                tags="workshop tour, hand tools",
                link="https://shop.example.com/chisels",
            ),
            CatalogProduct(
                title="Track Saw",
                tags="Breaking Down Sheet Goods, power tools",
                link="https://shop.example.com/track-saw",
            ),
            CatalogProduct(
                title="Shop Vacuum",
                tags="Workshop Tour Part 2, Dust Collection",
                link="https://shop.example.com/vacuum",
            ),
        ]
        session.add_all(products)
        await session.commit()
        for p in products:
            await session.refresh(p)
        return products


@pytest.fixture
async def seed_questions() -> list[Question]:
    async with test_session_factory() as session:
        questions = [
            Question(question_text=f"Seeded question {i}?") for i in range(1, 6)
        ]
        session.add_all(questions)
        await session.commit()
        return questions
