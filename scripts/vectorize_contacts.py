#!/usr/bin/env python3
"""Vectorize stored contacts whose embeddings are missing or stale"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import get_settings
from app.logging_utils import setup_logging
from app.orchestrator import Orchestrator

async def vectorize_contacts(limit: int, force: bool) -> dict:
    orchestrator = Orchestrator()
    await orchestrator.start()
    try:
        result = await orchestrator.vectorize_all(limit=limit, force=force)
        result["summary"] = await orchestrator.vectorization_stats()
        return result
    finally:
        await orchestrator.stop()

def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--limit", type=int, default=settings.batch_max_limit)
    parser.add_argument("--force", action="store_true", help="re-embed contacts that are already current")
    args = parser.parse_args()

    setup_logging()
    result = asyncio.run(vectorize_contacts(args.limit, args.force))
    print(json.dumps({"stats": result["stats"], "summary": result["summary"]}, indent=2))
    return 0 if not result["stats"]["failed"] else 1

if __name__ == "__main__":
    sys.exit(main())
