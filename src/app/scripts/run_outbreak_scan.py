import argparse
import asyncio
import logging
import sys
import os



project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
sys.path.append(project_root)

from app.db.session import AsyncSessionFactory, engine
from app.services.outbreak_service import (
    InvalidScanFilterError,
    OutbreakDetectionError,
    OutbreakDetectionService,
    ScanFilters,
)
from app.services.outbreak_sources import SqlOutbreakDataSource
from app.core.config import settings

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("run_outbreak_scan")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Runs a single outbreak detection scan and prints the result.")
    parser.add_argument("--disease-type", default=None, help="Only evaluate rules for this disease type")
    parser.add_argument("--geographic-unit-id", default=None, help="Only report alerts for this geographic unit")
    parser.add_argument("--auto-notify", action="store_true", help="Notify active administrators")
    return parser.parse_args(argv)


async def main(argv=None) -> int:

    args = parse_args(argv)

    try:
        filters = ScanFilters.from_raw(args.disease_type, args.geographic_unit_id)
    except InvalidScanFilterError as e:
        logger.error(str(e))
        return 2

    logger.info(f"--- OUTBREAK SCAN ({filters}) ---")

    service = OutbreakDetectionService(SqlOutbreakDataSource(AsyncSessionFactory))
    try:
        response = await service.run_scan(
            filters,
            auto_notify=args.auto_notify,
            timeout=settings.OUTBREAK_SCAN_TIMEOUT_SECONDS,
        )
    except (OutbreakDetectionError, asyncio.TimeoutError) as e:
        logger.error(f"Outbreak scan failed: {e}", exc_info=True)
        return 1
    finally:
        await engine.dispose()

    print(response.model_dump_json(indent=2))
    logger.info(f"--- SCAN FINISHED: {response.metadata.total_outbreaks} outbreaks ---")
    return 0

if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
