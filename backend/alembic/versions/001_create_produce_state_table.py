"""Create produce_state table

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates the `produce_state` key/value table backing the ledger.
Rollback: downgrade() drops the table (all ledger state lost).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "produce_state",
        sa.Column("key", sa.String(64), nullable=False, comment="Ledger key of the produce record"),
        sa.Column("value", sa.Text(), nullable=False, comment="JSON-encoded produce record"),
        sa.Column("tx_id", sa.String(64), nullable=False, comment="Transaction id of the most recent write"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
            comment="When this key was last written (UTC)",
        ),
        sa.PrimaryKeyConstraint("key", name="pk_produce_state"),
    )


def downgrade() -> None:
    op.drop_table("produce_state")
