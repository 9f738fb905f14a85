"""005: create coupons table

Revision ID: 005
Revises: 004
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE coupons (
            id              VARCHAR(32)     PRIMARY KEY,
            code            VARCHAR(64)     NOT NULL,
            type            VARCHAR(10)     NOT NULL,
            value           BIGINT          NOT NULL,
            max_discount    BIGINT,
            min_order       BIGINT,
            start_date      TIMESTAMPTZ,
            expires_at      TIMESTAMPTZ,
            usage_limit     INTEGER,
            used_count      INTEGER         NOT NULL DEFAULT 0,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_coupons_code      UNIQUE (code),
            CONSTRAINT ck_coupons_type      CHECK (type IN ('PERCENTAGE', 'FIXED')),
            CONSTRAINT ck_coupons_value     CHECK (value > 0),
            CONSTRAINT ck_coupons_percent   CHECK (type <> 'PERCENTAGE' OR value <= 100),
            CONSTRAINT ck_coupons_usage     CHECK (usage_limit IS NULL OR used_count <= usage_limit)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_coupons_updated_at
            BEFORE UPDATE ON coupons
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS coupons CASCADE;")
