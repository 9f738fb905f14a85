"""006: create orders and order_items tables

Revision ID: 006
Revises: 005
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                  VARCHAR(32)     PRIMARY KEY,
            user_id             UUID            NOT NULL REFERENCES users(id),
            status              VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            payment_status      VARCHAR(10)     NOT NULL DEFAULT 'UNPAID',
            payment_method      VARCHAR(10)     NOT NULL DEFAULT 'COD',
            delivery_type       VARCHAR(10)     NOT NULL DEFAULT 'INTERNAL',
            courier             VARCHAR(64),
            tracking_code       VARCHAR(64),
            rider_id            UUID            REFERENCES users(id),
            coupon_code         VARCHAR(64),
            sub_total           BIGINT          NOT NULL,
            shipping_cost       BIGINT          NOT NULL DEFAULT 0,
            discount            BIGINT          NOT NULL DEFAULT 0,
            total_amount        BIGINT          NOT NULL,
            shipping_address    JSONB           NOT NULL,
            phone               VARCHAR(32)     NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_status CHECK (status IN (
                'PENDING', 'PROCESSING', 'READY_TO_SHIP', 'SHIPPED',
                'DELIVERED', 'CANCELLED', 'RETURNED'
            )),
            CONSTRAINT ck_orders_payment_status CHECK (
                payment_status IN ('UNPAID', 'PAID', 'REFUNDED')
            ),
            CONSTRAINT ck_orders_payment_method CHECK (
                payment_method IN ('COD', 'ESEWA', 'KHALTI')
            ),
            CONSTRAINT ck_orders_delivery_type CHECK (
                delivery_type IN ('INTERNAL', 'EXTERNAL')
            ),
            CONSTRAINT ck_orders_amounts CHECK (
                sub_total >= 0 AND shipping_cost >= 0 AND discount >= 0
            ),
            CONSTRAINT ck_orders_total CHECK (
                total_amount = sub_total + shipping_cost - discount
            ),
            CONSTRAINT ck_orders_courier_tracking CHECK (
                (courier IS NULL) = (tracking_code IS NULL)
            ),
            CONSTRAINT ck_orders_rider_internal CHECK (
                rider_id IS NULL OR delivery_type = 'INTERNAL'
            )
        );
    """)
    op.execute("CREATE INDEX idx_orders_user ON orders (user_id, id DESC);")
    op.execute("CREATE INDEX idx_orders_rider ON orders (rider_id, id DESC) WHERE rider_id IS NOT NULL;")
    op.execute("CREATE INDEX idx_orders_status ON orders (status);")
    op.execute("CREATE UNIQUE INDEX uq_orders_tracking_code ON orders (tracking_code) WHERE tracking_code IS NOT NULL;")
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)

    op.execute("""
        CREATE TABLE order_items (
            id          VARCHAR(32)     PRIMARY KEY,
            order_id    VARCHAR(32)     NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            product_id  VARCHAR(64)     NOT NULL,
            variant_id  VARCHAR(64),
            name        VARCHAR(255)    NOT NULL,
            quantity    INTEGER         NOT NULL,
            price       BIGINT          NOT NULL,
            CONSTRAINT ck_order_items_quantity  CHECK (quantity > 0),
            CONSTRAINT ck_order_items_price     CHECK (price >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_order_items_order ON order_items (order_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS order_items CASCADE;")
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
