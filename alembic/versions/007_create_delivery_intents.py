"""007: create delivery_intents table

Revision ID: 007
Revises: 006
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE delivery_intents (
            id          VARCHAR(32)     PRIMARY KEY,
            order_id    VARCHAR(32)     NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            action      VARCHAR(10)     NOT NULL,
            provider    VARCHAR(32)     NOT NULL,
            state       VARCHAR(12)     NOT NULL DEFAULT 'PENDING',
            remote_id   VARCHAR(64),
            detail      TEXT,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_delivery_intents_action CHECK (action IN ('ASSIGN', 'CANCEL')),
            CONSTRAINT ck_delivery_intents_state CHECK (
                state IN ('PENDING', 'REMOTE_DONE', 'COMPLETED', 'FAILED')
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_delivery_intents_open
            ON delivery_intents (order_id, created_at)
            WHERE state IN ('PENDING', 'REMOTE_DONE');
    """)
    op.execute("""
        CREATE TRIGGER trg_delivery_intents_updated_at
            BEFORE UPDATE ON delivery_intents
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS delivery_intents CASCADE;")
