"""OrderNotifier: customer emails for order events."""
import html
import logging

from src.sf_common.money import paisa_to_display
from src.sf_notify.mailer import Mailer
from src.sf_order.domain.models import Order

logger = logging.getLogger(__name__)

_STATUS_LINES = {
    "PROCESSING": "We are preparing your order.",
    "READY_TO_SHIP": "Your order is packed and waiting for pickup.",
    "SHIPPED": "Your order is on its way.",
    "DELIVERED": "Your order has been delivered. Thank you for shopping with us!",
    "CANCELLED": "Your order has been cancelled.",
    "RETURNED": "Your order has been returned.",
}


def _short_id(order_id: str) -> str:
    return order_id[-6:]


def render_confirmation(order: Order, store_name: str) -> str:
    rows = "".join(
        f"<tr><td>{html.escape(item.name)} &times; {item.quantity}</td>"
        f"<td align=\"right\">{paisa_to_display(item.line_total)}</td></tr>"
        for item in order.items
    )
    discount_row = (
        f"<tr><td>Discount</td><td align=\"right\">-{paisa_to_display(order.discount)}</td></tr>"
        if order.discount
        else ""
    )
    return f"""
<h2>Thank you for your order!</h2>
<p>Hi {html.escape(order.shipping_address.full_name)}, {html.escape(store_name)} has received
order <strong>#{_short_id(order.id)}</strong>.</p>
<table width="100%">
{rows}
<tr><td>Subtotal</td><td align="right">{paisa_to_display(order.sub_total)}</td></tr>
<tr><td>Shipping</td><td align="right">{paisa_to_display(order.shipping_cost)}</td></tr>
{discount_row}
<tr><td><strong>Total</strong></td><td align="right"><strong>{paisa_to_display(order.total_amount)}</strong></td></tr>
</table>
<p>Payment: {order.payment_method}</p>
<p>Ship to: {html.escape(order.shipping_address.one_line)}</p>
"""


def render_status_update(order: Order, status: str) -> str:
    line = _STATUS_LINES.get(status, f"Your order is now {status}.")
    tracking = ""
    if order.courier and order.tracking_code:
        tracking = (
            f"<p>Courier: {html.escape(order.courier)}<br>"
            f"Tracking code: <strong>{html.escape(order.tracking_code)}</strong></p>"
        )
    return f"""
<h2>Order #{_short_id(order.id)} update</h2>
<p>Hi {html.escape(order.shipping_address.full_name)},</p>
<p>{line}</p>
{tracking}
"""


class OrderNotifier:
    def __init__(self, mailer: Mailer | None = None) -> None:
        self._mailer = mailer or Mailer()

    async def order_confirmation(self, to: str | None, order: Order, store_name: str) -> bool:
        if not to:
            logger.info("Order %s has no customer email; skipping confirmation", order.id)
            return False
        return await self._mailer.send(
            to,
            f"Order confirmation #{_short_id(order.id)}",
            render_confirmation(order, store_name),
            sender_name=store_name,
        )

    async def status_changed(self, to: str | None, order: Order, status: str, store_name: str) -> bool:
        if not to:
            return False
        return await self._mailer.send(
            to,
            f"Order #{_short_id(order.id)} is {status.replace('_', ' ').lower()}",
            render_status_update(order, status),
            sender_name=store_name,
        )
