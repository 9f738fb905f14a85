"""008: create store_settings table and seed the default row

Revision ID: 008
Revises: 007
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE store_settings (
            id                      VARCHAR(16)     PRIMARY KEY DEFAULT 'default',
            store_name              VARCHAR(128)    NOT NULL DEFAULT 'Our Store',
            shipping_charge         BIGINT          NOT NULL DEFAULT 15000,
            shipping_markup         BIGINT          NOT NULL DEFAULT 0,
            shipping_markup_type    VARCHAR(10)     NOT NULL DEFAULT 'FLAT',
            free_shipping_threshold BIGINT,
            enable_cod              BOOLEAN         NOT NULL DEFAULT TRUE,
            enable_esewa            BOOLEAN         NOT NULL DEFAULT FALSE,
            esewa_sandbox           BOOLEAN         NOT NULL DEFAULT TRUE,
            esewa_merchant_code     VARCHAR(64),
            esewa_secret            VARCHAR(255),
            enable_khalti           BOOLEAN         NOT NULL DEFAULT FALSE,
            khalti_sandbox          BOOLEAN         NOT NULL DEFAULT TRUE,
            khalti_secret           VARCHAR(255),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_store_settings_singleton CHECK (id = 'default'),
            CONSTRAINT ck_store_settings_markup_type CHECK (
                shipping_markup_type IN ('FLAT', 'PERCENT')
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_store_settings_updated_at
            BEFORE UPDATE ON store_settings
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("INSERT INTO store_settings (id) VALUES ('default') ON CONFLICT DO NOTHING;")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS store_settings CASCADE;")
