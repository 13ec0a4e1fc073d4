"""
Script to run a TMDb harvest from a JSON input document
"""

import argparse
import asyncio
import json
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import build_engine, build_session_maker
from core.exceptions import ConfigurationError, HarvestException
from core.logging import setup_logging
from schemas.harvest import HarvestInput
from ingestion.runner import HarvestRunner
from scripts.init_db import create_tables

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Harvest TMDb metadata into the database")
    parser.add_argument("--input", dest="input_path", help="Path to the JSON input document")
    parser.add_argument("--init-db", action="store_true", help="Create database tables before running")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    return parser.parse_args(argv)


def load_input(path) -> dict:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ConfigurationError("Input document must be a JSON object", context={"path": path})
    return payload


async def run_harvest(args: argparse.Namespace) -> int:
    """Run one harvest; returns the process exit code"""
    try:
        harvest_input = HarvestInput.from_payload(load_input(args.input_path))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read input document {args.input_path}: {e}")
        return 1
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e.message}", extra={"error_context": e.to_dict()})
        return 1

    engine = build_engine(args.database_url)
    try:
        if args.init_db:
            await create_tables(engine)

        runner = HarvestRunner(harvest_input, build_session_maker(engine))
        try:
            await runner.run()
        except asyncio.CancelledError:
            if runner.interrupted:
                logger.info("Harvest interrupted; run again with the same input to resume")
                return 0
            raise
        except HarvestException as e:
            logger.error(f"Harvest failed: {e.message}", extra={"error_context": e.to_dict()})
            return 1
        return 0
    finally:
        await engine.dispose()


def main(argv=None) -> int:
    setup_logging()
    return asyncio.run(run_harvest(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
