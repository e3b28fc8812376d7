"""Archive of completed simulation runs.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_JSON = JSONB().with_variant(sa.JSON(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "saved_records",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scenario_kind", sa.String(20), nullable=False),
        sa.Column("topic", sa.Text, nullable=False),
        sa.Column("report", _JSON, nullable=False),
        sa.Column("transcript", _JSON, nullable=False),
    )
    op.create_index("ix_saved_records_timestamp", "saved_records", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_saved_records_timestamp", table_name="saved_records")
    op.drop_table("saved_records")
