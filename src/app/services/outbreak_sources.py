import datetime
import logging
from typing import Any, Callable, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select, select

from app.core.config import settings
from app.models import models
from app.models.models import Account, DiseaseCase, DiseaseStatistic, Notification
from app.services.outbreak_types import (
    ACTIVE_STATUS,
    CaseRecord,
    DiseaseType,
    GeographicUnit,
    HistoricalStatistic,
    NotificationRecord,
    Severity,
)

logger = logging.getLogger(__name__)


ADMINISTRATOR_ROLE = "super_admin"


class DataSourceError(Exception):

    pass


class OutbreakDataSource(Protocol):
    """Reads and writes the detection engine needs from the data store."""

    async def list_active_cases(
        self, disease_type: Optional[DiseaseType], since: datetime.date
    ) -> List[CaseRecord]: ...

    async def list_historical_statistics(self, since: datetime.date) -> List[HistoricalStatistic]: ...

    async def list_geographic_units(self) -> List[GeographicUnit]: ...

    async def list_active_administrators(self) -> List[str]: ...

    async def find_recent_notification(
        self, recipient_id: str, title: str, since: datetime.datetime
    ) -> bool: ...

    async def insert_notification(self, record: NotificationRecord) -> None: ...


class SqlOutbreakDataSource:

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        page_size: Optional[int] = None,
    ):
        # One session per call: the aggregator issues its reads concurrently.
        self.session_factory = session_factory
        self.page_size = page_size or settings.OUTBREAK_FETCH_PAGE_SIZE

    async def _fetch_all(self, stmt: Select, label: str) -> List[Any]:

        rows: List[Any] = []
        offset = 0
        try:
            async with self.session_factory() as session:
                while True:
                    result = await session.execute(stmt.offset(offset).limit(self.page_size))
                    page = result.scalars().all()
                    rows.extend(page)
                    if len(page) < self.page_size:
                        break
                    offset += self.page_size
        except SQLAlchemyError as e:
            logger.error(f"Failed to read {label}: {e}")
            raise DataSourceError(f"Failed to read {label}") from e

        logger.debug(f"Read {len(rows)} rows from {label}.")
        return rows

    async def list_active_cases(
        self, disease_type: Optional[DiseaseType], since: datetime.date
    ) -> List[CaseRecord]:

        stmt = (
            select(DiseaseCase)
            .where(DiseaseCase.status == ACTIVE_STATUS)
            .where(DiseaseCase.diagnosis_date >= since)
            .order_by(DiseaseCase.id)
        )
        if disease_type is not None:
            stmt = stmt.where(DiseaseCase.disease_type == disease_type.value)

        records = []
        for row in await self._fetch_all(stmt, "disease_cases"):
            try:
                records.append(CaseRecord(
                    id=row.id,
                    geographic_unit_id=row.geographic_unit_id,
                    diagnosis_date=row.diagnosis_date,
                    severity=Severity(row.severity),
                    disease_type=DiseaseType(row.disease_type),
                    custom_disease_name=row.custom_disease_name,
                    status=row.status,
                ))
            except ValueError as e:
                logger.warning(f"Skipping disease case {row.id} with unexpected values: {e}")
        return records

    async def list_historical_statistics(self, since: datetime.date) -> List[HistoricalStatistic]:

        stmt = (
            select(DiseaseStatistic)
            .where(DiseaseStatistic.record_date >= since)
            .order_by(DiseaseStatistic.record_date.desc(), DiseaseStatistic.id)
        )

        statistics = []
        for row in await self._fetch_all(stmt, "disease_statistics"):
            try:
                statistics.append(HistoricalStatistic(
                    record_date=row.record_date,
                    case_count=row.case_count,
                    disease_type=DiseaseType(row.disease_type),
                    geographic_unit_id=row.geographic_unit_id,
                    severity=Severity(row.severity) if row.severity else None,
                    custom_disease_name=row.custom_disease_name,
                ))
            except ValueError as e:
                logger.warning(f"Skipping disease statistic {row.id} with unexpected values: {e}")
        return statistics

    async def list_geographic_units(self) -> List[GeographicUnit]:

        stmt = select(models.GeographicUnit).order_by(models.GeographicUnit.id)
        rows = await self._fetch_all(stmt, "geographic_units")
        return [GeographicUnit(id=row.id, name=row.name) for row in rows]

    async def list_active_administrators(self) -> List[str]:

        stmt = (
            select(Account.id)
            .where(Account.role == ADMINISTRATOR_ROLE, Account.status == ACTIVE_STATUS)
            .order_by(Account.id)
        )
        return list(await self._fetch_all(stmt, "accounts"))

    async def find_recent_notification(
        self, recipient_id: str, title: str, since: datetime.datetime
    ) -> bool:

        stmt = (
            select(Notification.id)
            .where(
                Notification.user_id == recipient_id,
                Notification.title == title,
                Notification.created_at >= since,
            )
            .limit(1)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def insert_notification(self, record: NotificationRecord) -> None:

        async with self.session_factory() as session:
            try:
                session.add(Notification(
                    user_id=record.user_id,
                    type=record.type,
                    title=record.title,
                    message=record.message,
                    data=record.data,
                    read=record.read,
                    created_at=record.created_at,
                ))
                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                raise
