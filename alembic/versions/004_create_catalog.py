"""004: create products, product_variants, product_specifications

Revision ID: 004
Revises: 003
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE products (
            id              VARCHAR(64)     PRIMARY KEY,
            name            VARCHAR(255)    NOT NULL,
            price           BIGINT          NOT NULL,
            discount_price  BIGINT,
            weight_value    NUMERIC(10, 3),
            weight_unit     VARCHAR(2),
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_products_price        CHECK (price >= 0),
            CONSTRAINT ck_products_discount     CHECK (discount_price IS NULL OR discount_price >= 0),
            CONSTRAINT ck_products_weight_unit  CHECK (weight_unit IS NULL OR weight_unit IN ('kg', 'g')),
            CONSTRAINT ck_products_weight       CHECK (weight_value IS NULL OR weight_value >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_products_updated_at
            BEFORE UPDATE ON products
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)

    op.execute("""
        CREATE TABLE product_variants (
            id          VARCHAR(64)     PRIMARY KEY,
            product_id  VARCHAR(64)     NOT NULL REFERENCES products(id) ON DELETE CASCADE,
            name        VARCHAR(128)    NOT NULL DEFAULT '',
            price       BIGINT          NOT NULL,
            CONSTRAINT ck_product_variants_price CHECK (price >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_product_variants_product ON product_variants (product_id);")

    op.execute("""
        CREATE TABLE product_specifications (
            id          BIGSERIAL       PRIMARY KEY,
            product_id  VARCHAR(64)     NOT NULL REFERENCES products(id) ON DELETE CASCADE,
            name        VARCHAR(128)    NOT NULL,
            value       VARCHAR(255)    NOT NULL,
            position    INTEGER         NOT NULL DEFAULT 0
        );
    """)
    op.execute("""
        CREATE INDEX idx_product_specifications_product
            ON product_specifications (product_id, position);
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS product_specifications CASCADE;")
    op.execute("DROP TABLE IF EXISTS product_variants CASCADE;")
    op.execute("DROP TABLE IF EXISTS products CASCADE;")
