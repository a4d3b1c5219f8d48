"""CLI script to embed transcript chunks into the Postgres chunk table.

Input is JSON Lines, one chunk per line:
    {"title": "...", "url": "https://youtube.com/...", "chunk_id": "...", "text": "..."}

Usage:
    cd backend
    uv run python ../scripts/ingest_transcripts.py --file ../data/transcripts.jsonl
    uv run python ../scripts/ingest_transcripts.py --directory ../data/transcripts/
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add backend to path so imports work when run from backend/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from sqlalchemy import text

from woodchat.database import async_session, engine
from woodchat.models.orm import Base, TranscriptChunk
from woodchat.services.embedding_service import embed_batch

BATCH_SIZE = 50
REQUIRED_FIELDS = ("title", "url", "chunk_id", "text")


def load_chunks(path: Path) -> list[dict]:
    """Read JSONL records, skipping blank lines and records missing fields."""
    records = []
    for lineno, line in enumerate(path.read_text().splitlines(), start=1):
        if not line.strip():
            continue
        record = json.loads(line)
        missing = [f for f in REQUIRED_FIELDS if not record.get(f)]
        if missing:
            print(f"  {path.name}:{lineno} skipped (missing {', '.join(missing)})")
            continue
        records.append(record)
    return records


async def ingest_file(path: Path) -> int:
    """Ingest a single JSONL file. Returns number of chunks inserted."""
    records = load_chunks(path)
    if not records:
        print(f"  Skipped {path.name} (no chunks)")
        return 0

    print(f"  Loaded {path.name} -> {len(records)} chunks")
    async with async_session() as session:
        for start in range(0, len(records), BATCH_SIZE):
            batch = records[start : start + BATCH_SIZE]
            print(f"  Embedding chunks {start + 1}-{start + len(batch)}...")
            vectors = embed_batch([r["text"] for r in batch])
            session.add_all(
                TranscriptChunk(
                    text=r["text"],
                    title=r["title"],
                    url=r["url"],
                    chunk_id=str(r["chunk_id"]),
                    vector=vector,
                )
                for r, vector in zip(batch, vectors, strict=True)
            )
            await session.commit()
    return len(records)


async def run(files: list[Path]) -> int:
    async with engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)

    total_chunks = 0
    for f in files:
        print(f"\nIngesting {f.name}...")
        total_chunks += await ingest_file(f)
    await engine.dispose()
    return total_chunks


def main() -> None:
    parser = argparse.ArgumentParser(description="Ingest transcript chunks into Postgres")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--directory", type=Path, help="Directory of .jsonl files to ingest")
    group.add_argument("--file", type=Path, help="Single .jsonl file to ingest")
    args = parser.parse_args()

    if args.file:
        if not args.file.exists():
            print(f"Error: File not found: {args.file}")
            sys.exit(1)
        files = [args.file]
    else:
        if not args.directory.exists():
            print(f"Error: Directory not found: {args.directory}")
            sys.exit(1)
        files = sorted(args.directory.glob("*.jsonl"))
        if not files:
            print(f"No .jsonl files found in {args.directory}")
            sys.exit(1)
        print(f"Found {len(files)} transcript files")

    total_chunks = asyncio.run(run(files))
    print(f"\nDone! Ingested {total_chunks} total chunks.")


if __name__ == "__main__":
    main()
