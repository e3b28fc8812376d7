"""SQLAlchemy ORM table models for Nexus Learn.

Uses FlexJSON (JSONB on Postgres, JSON on SQLite) for the nested report and
transcript payloads.

Categories:
- IMMUTABLE: SavedRecord (rows are created and deleted, never updated)
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from nexus_learn.db.session import Base

# JSONB on PostgreSQL, plain JSON on SQLite (for tests)
FlexJSON = JSONB().with_variant(JSON(), "sqlite")


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------


class SavedRecordRow(Base):
    """Immutable: one completed simulation run with its report and transcript."""

    __tablename__ = "saved_records"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
    )
    scenario_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    topic: Mapped[str] = mapped_column(Text, nullable=False)
    report = mapped_column(FlexJSON, nullable=False)
    transcript = mapped_column(FlexJSON, nullable=False)
