import asyncio
import logging
import httpx
import pandas as pd
import io
import sys
import os
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import OperationalError



project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
sys.path.append(project_root)

from app.db.session import AsyncSessionFactory
from app.models.models import GeographicUnit
from app.core.config import settings


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("seed_geographic_units")

async def load_units_csv(source: str) -> pd.DataFrame:
    """Reads the unit table from a local CSV or downloads it when ``source`` is a URL."""
    if not source.startswith(("http://", "https://")):
        logger.info(f"Reading geographic units from {source}...")
        return pd.read_csv(source)

    logger.info(f"Downloading geographic units from {source}...")
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(source)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to download the CSV file: {e}")
            raise

    df = pd.read_csv(io.StringIO(response.text))
    logger.info(f"Downloaded {len(df)} geographic units.")
    return df

def prepare_data(df: pd.DataFrame) -> list[dict]:

    missing = {"id", "name"} - set(df.columns)
    if missing:
        raise ValueError(f"CSV is missing columns: {sorted(missing)}")

    df_clean = df[["id", "name"]].dropna().copy()
    df_clean["id"] = df_clean["id"].astype(int)
    df_clean["name"] = df_clean["name"].astype(str).str.strip()
    df_clean = df_clean[df_clean["name"] != ""]
    df_clean.drop_duplicates(subset=["id"], inplace=True)

    logger.info(f"{len(df_clean)} unique geographic units ready for insert.")
    return df_clean.to_dict("records")

async def seed_database(units_data: list[dict]):

    if not units_data:
        logger.warning("No geographic units to insert.")
        return

    async with AsyncSessionFactory() as session:
        try:
            stmt = pg_insert(GeographicUnit).values(units_data)
            stmt = stmt.on_conflict_do_nothing(index_elements=["id"])

            await session.execute(stmt)
            await session.commit()
            logger.info("Geographic units seeded.")

        except OperationalError as e:
            logger.error(f"Database connection error. Check DATABASE_URL and that the database is running. Error: {e}")
            await session.rollback()
        except Exception as e:
            logger.error(f"Error inserting geographic units: {e}")
            await session.rollback()
            raise

async def main(source: str):

    try:
        df = await load_units_csv(source)
        units_data = prepare_data(df)
        await seed_database(units_data)
    except Exception as e:
        logger.error(f"Seeding failed: {e}")
        sys.exit(1)

if __name__ == "__main__":

    if not settings.DATABASE_URL:
        logger.error("DATABASE_URL not found. Check your .env file")
        sys.exit(1)

    source = sys.argv[1] if len(sys.argv) > 1 else settings.GEOGRAPHIC_UNITS_SOURCE
    asyncio.run(main(source))
