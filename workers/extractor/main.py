"""
Extraction CLI.

    python -m workers.extractor.main extract <url> [creator] [--dry]
    python -m workers.extractor.main batch <videos.json> [--dry]

The batch file is a JSON array of {"url": ..., "creatorName": ...} objects.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent.parent))
load_dotenv(find_dotenv(usecwd=True))

from authentik.app.config import get_settings
from authentik.app.deps import build_pipeline, close_http_client, get_http_client, get_lookup_cache, get_storage, get_supabase
from authentik.app.infra.db.supabase_catalog_repo import SupabaseCatalogRepository
from authentik.services.errors import ServiceError
from authentik.services.extraction_pipeline import BatchItem, ExtractionPipeline, ExtractionResult
from workers.extractor.config import WorkerConfig, get_config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("extractor-cli")


def load_batch_file(path: Path, default_creator: str) -> list[BatchItem]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array")

    items = []
    for entry in data:
        if isinstance(entry, str):
            items.append(BatchItem(url=entry, creator_name=default_creator))
        elif isinstance(entry, dict) and entry.get("url"):
            creator = entry.get("creatorName") or entry.get("creator_name") or default_creator
            items.append(BatchItem(url=str(entry["url"]), creator_name=str(creator)))
        else:
            logger.warning("Skipping invalid batch entry: %r", entry)
    return items


def print_summary(result: ExtractionResult) -> None:
    stats = result.stats
    label = "Would import" if result.preview else "Imported"
    print(f"\nCollection: {result.collection.get('name_vi')} ({result.collection.get('id')})")
    for outcome in result.restaurants:
        if outcome.verified is None:
            print(f"  x {outcome.mention.name}")
            continue
        line = f"  + {outcome.verified.name} - {outcome.verified.formatted_address}"
        if outcome.authenticity is not None:
            line += f" [{outcome.authenticity.badge_label}, level {outcome.authenticity.level}/5]"
        print(line)
    print(
        f"Total mentions: {stats.total_mentions} | Verified: {stats.verified} | "
        f"{label}: {stats.imported} | Failed: {stats.failed}"
    )


def create_pipeline(config: WorkerConfig) -> ExtractionPipeline:
    settings = get_settings()
    return build_pipeline(
        settings,
        get_http_client(),
        get_lookup_cache(),
        catalog=SupabaseCatalogRepository(get_supabase()),
        storage=get_storage() if config.photos_enabled else None,
    )


async def run(args: argparse.Namespace, config: WorkerConfig) -> int:
    pipeline = create_pipeline(config)
    try:
        if args.command == "extract":
            creator = args.creator or config.default_creator_name
            result = await pipeline.extract(args.url, creator, preview=args.dry)
            print_summary(result)
            return 0

        items = load_batch_file(Path(args.file), config.default_creator_name)
        outcomes = await pipeline.batch_extract(
            items,
            preview=args.dry,
            delay_seconds=config.batch_delay_seconds,
        )
        for outcome in outcomes:
            if outcome.result is not None:
                print_summary(outcome.result)
            else:
                print(f"\nFAILED {outcome.item.url}: {outcome.error}")
        return 0 if all(outcome.succeeded for outcome in outcomes) else 1
    finally:
        await close_http_client()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Extract restaurant collections from food videos")
    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", help="Extract a single video")
    extract.add_argument("url")
    extract.add_argument("creator", nargs="?", default=None)
    extract.add_argument("--dry", action="store_true", help="Preview only, write nothing")

    batch = sub.add_parser("batch", help="Extract every video listed in a JSON file")
    batch.add_argument("file")
    batch.add_argument("--dry", action="store_true", help="Preview only, write nothing")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    config = get_config()

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error("Configuration error: %s", error)
        sys.exit(1)

    try:
        code = asyncio.run(run(args, config))
    except ServiceError as exc:
        logger.error("Extraction failed: %s", exc)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
