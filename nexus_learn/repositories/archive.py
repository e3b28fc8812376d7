"""Archive persistence: SavedRecordRepository + SqlArchiveStore.

The repository takes an AsyncSession and calls add()/flush() only, never
commit(). SqlArchiveStore is the long-lived ArchiveStore used by
simulation sessions that outlive a request: it opens its own session per
operation and commits it, like a worker task.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nexus_learn.db.tables import SavedRecordRow
from nexus_learn.models.simulation import AnalysisReport, HistoryEntry, SavedRecord
from nexus_learn.repositories.base import ArchiveStore


def row_to_record(row: SavedRecordRow) -> SavedRecord:
    return SavedRecord(
        id=row.id,
        timestamp=row.timestamp,
        scenario_kind=row.scenario_kind,
        topic=row.topic,
        report=AnalysisReport.model_validate(row.report),
        transcript=[HistoryEntry.model_validate(e) for e in row.transcript],
    )


class SavedRecordRepository:
    """Repository for archived simulation runs."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, record: SavedRecord) -> SavedRecordRow:
        row = SavedRecordRow(
            id=record.id,
            timestamp=record.timestamp,
            scenario_kind=record.scenario_kind.value,
            topic=record.topic,
            report=record.report.model_dump(mode="json", by_alias=True),
            transcript=[
                e.model_dump(mode="json", by_alias=True) for e in record.transcript
            ],
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, record_id: str) -> SavedRecordRow | None:
        return await self._session.get(SavedRecordRow, record_id)

    async def list_all(self) -> list[SavedRecordRow]:
        result = await self._session.execute(
            select(SavedRecordRow).order_by(SavedRecordRow.timestamp.desc())
        )
        return list(result.scalars().all())

    async def delete(self, record_id: str) -> bool:
        row = await self.get(record_id)
        if row is None:
            return False
        await self._session.delete(row)
        await self._session.flush()
        return True


class SqlArchiveStore(ArchiveStore):
    """ArchiveStore over a session factory; one committed session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(self, record: SavedRecord) -> None:
        async with self._session_factory() as session:
            await SavedRecordRepository(session).create(record)
            await session.commit()

    async def get(self, record_id: str) -> SavedRecord | None:
        async with self._session_factory() as session:
            row = await SavedRecordRepository(session).get(record_id)
            return None if row is None else row_to_record(row)

    async def list_all(self) -> list[SavedRecord]:
        async with self._session_factory() as session:
            rows = await SavedRecordRepository(session).list_all()
            return [row_to_record(r) for r in rows]

    async def delete(self, record_id: str) -> bool:
        async with self._session_factory() as session:
            deleted = await SavedRecordRepository(session).delete(record_id)
            await session.commit()
            return deleted
