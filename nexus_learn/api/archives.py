"""FastAPI archive endpoints.

GET    /v1/archives               - all archived runs, newest first
GET    /v1/archives/{record_id}   - one archived run
DELETE /v1/archives/{record_id}   - remove an archived run
"""

from fastapi import APIRouter, Depends, HTTPException

from nexus_learn.api.dependencies import get_archive_store
from nexus_learn.models.simulation import SavedRecord
from nexus_learn.repositories.base import ArchiveStore

router = APIRouter(prefix="/v1/archives", tags=["archives"])


def _not_found(record_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=f"Archived run {record_id} not found.",
    )


@router.get("", response_model=list[SavedRecord])
async def list_archives(
    archive: ArchiveStore = Depends(get_archive_store),
) -> list[SavedRecord]:
    return await archive.list_all()


@router.get("/{record_id}", response_model=SavedRecord)
async def get_archive(
    record_id: str,
    archive: ArchiveStore = Depends(get_archive_store),
) -> SavedRecord:
    record = await archive.get(record_id)
    if record is None:
        raise _not_found(record_id)
    return record


@router.delete("/{record_id}", status_code=204)
async def delete_archive(
    record_id: str,
    archive: ArchiveStore = Depends(get_archive_store),
) -> None:
    if not await archive.delete(record_id):
        raise _not_found(record_id)
