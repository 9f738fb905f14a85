"""003: create addresses table

Revision ID: 003
Revises: 002
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE addresses (
            id          UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id     UUID            NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            full_name   VARCHAR(128)    NOT NULL,
            phone       VARCHAR(32)     NOT NULL,
            province    VARCHAR(64)     NOT NULL,
            city        VARCHAR(64)     NOT NULL,
            street      VARCHAR(255)    NOT NULL,
            is_default  BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_addresses_user ON addresses (user_id);")
    # At most one default address per user.
    op.execute("""
        CREATE UNIQUE INDEX uq_addresses_default
            ON addresses (user_id) WHERE is_default;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS addresses CASCADE;")
