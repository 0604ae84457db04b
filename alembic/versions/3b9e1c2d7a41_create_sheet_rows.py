"""create sheet_rows

Revision ID: 3b9e1c2d7a41
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9e1c2d7a41"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "sheet_rows",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("sheet", sa.String(length=64), nullable=False),
        sa.Column(
            "is_header", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "cells",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sheet_rows_sheet_id", "sheet_rows", ["sheet", "id"])


def downgrade() -> None:
    op.drop_index("ix_sheet_rows_sheet_id", table_name="sheet_rows")
    op.drop_table("sheet_rows")
