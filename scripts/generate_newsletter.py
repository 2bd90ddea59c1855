"""
Generate today's newsletter once, outside the scheduler.

Usage:
    python scripts/generate_newsletter.py [--no-notify]
"""
import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Make the package importable when run from a checkout
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root))

from technewsletter.domain.models import CATEGORY_KEYS
from technewsletter.infrastructure import setup_logging
from technewsletter.infrastructure.llm import get_model_api_key
from technewsletter.services.pipeline import PipelineState, build_orchestrator


def check_environment() -> list:
    missing = []
    if not get_model_api_key():
        missing.append("LLM_API_KEY (or GEMINI_API_KEY)")
    return missing


async def run(notify: bool) -> int:
    orchestrator = build_orchestrator()
    try:
        result = await orchestrator.run(notify=notify)
    except Exception as e:  # noqa: BLE001
        logger.error(f"Newsletter generation failed: {e}")
        return 1

    if result.state == PipelineState.SKIPPED:
        logger.error("Another newsletter run is in progress")
        return 1
    if result.state == PipelineState.ABORTED:
        logger.warning("No new articles in the last 24 hours, nothing generated")
        return 0

    stats = result.stats
    logger.info("=" * 60)
    logger.info(f"Newsletter {result.date} generated in {result.elapsed:.2f}s")
    logger.info(f"  Raw articles:     {stats.raw_articles}")
    logger.info(f"  Curated articles: {stats.curated_articles}")
    logger.info(f"  Highlights:       {stats.highlights}")
    for key in CATEGORY_KEYS:
        logger.info(f"  {key:<17} {stats.categories.get(key, 0)}")
    logger.info(f"  Saved to:         {result.path}")
    if result.notified is not None:
        logger.info(f"  Notified:         {'yes' if result.notified else 'FAILED'}")
    logger.info("=" * 60)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate the tech newsletter once")
    parser.add_argument("--no-notify", action="store_true", help="do not send notifications")
    args = parser.parse_args()

    load_dotenv()
    setup_logging()

    missing = check_environment()
    if missing:
        logger.error(f"Missing environment variables: {', '.join(missing)}")
        return 1

    return asyncio.run(run(notify=not args.no_notify))


if __name__ == "__main__":
    sys.exit(main())
