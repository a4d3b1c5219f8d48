"""SQLAlchemy ORM models."""

from __future__ import annotations

from pgvector.sqlalchemy import Vector
from sqlalchemy import String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from woodchat.config import settings


class Base(DeclarativeBase):
    pass


class TranscriptChunk(Base):
    __tablename__ = settings.chunk_table

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(Text)
    title: Mapped[str] = mapped_column(String(500))
    url: Mapped[str] = mapped_column(String(500))
    chunk_id: Mapped[str] = mapped_column(String(100))
    vector: Mapped[list[float] | None] = mapped_column(
        Vector(settings.embedding_dimensions), nullable=True
    )


class CatalogProduct(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300))
    # Comma separated; matched against video titles
    tags: Mapped[str] = mapped_column(Text, default="")
    link: Mapped[str] = mapped_column(String(500))


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    question_text: Mapped[str] = mapped_column(Text)
