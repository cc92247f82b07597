"""
Order Notifications

Renders the customer confirmation and the admin new-order alert and sends
them in the background. Sends are scheduled only after the order has
committed; a failed send is logged and never reaches the caller.
"""

import asyncio
import html
import logging
from typing import Optional, Set, Tuple

from .models import Order
from .protocols import EmailClientProtocol

logger = logging.getLogger(__name__)

CUSTOMER_SUBJECT = "🎉 Your Order Confirmation - SuperMart"
ADMIN_SUBJECT = "🛒 New Order Received - SuperMart"


def format_payment_method(order: Order) -> str:
    return order.payment_method.value.replace("-", " ", 1)


def format_total(order: Order) -> str:
    return f"${order.total_price:.2f}"


def render_customer_confirmation(order: Order) -> Tuple[str, str]:
    """Subject and HTML body of the customer confirmation"""
    e = html.escape
    body = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: auto; padding: 20px; border: 1px solid #eee; border-radius: 10px;">
  <h2 style="color: #2e86de;">Thank you for your order, {e(order.billing_info.full_name)}!</h2>
  <p>We've received your order and are preparing it for shipment.</p>
  <table style="width: 100%; border-collapse: collapse; margin-top: 20px;">
    <tr style="background-color: #f6f6f6;">
      <td style="padding: 10px;">Order ID:</td>
      <td style="padding: 10px;"><strong>{e(order.order_id)}</strong></td>
    </tr>
    <tr>
      <td style="padding: 10px;">Total Amount:</td>
      <td style="padding: 10px;"><strong>{e(format_total(order))}</strong></td>
    </tr>
    <tr style="background-color: #f6f6f6;">
      <td style="padding: 10px;">Payment Method:</td>
      <td style="padding: 10px;">{e(format_payment_method(order))}</td>
    </tr>
    <tr>
      <td style="padding: 10px;">Shipping Address:</td>
      <td style="padding: 10px;">{e(order.shipping_address)}</td>
    </tr>
  </table>
  <p style="margin-top: 20px;">We'll notify you once it's shipped. If you have questions, just reply to this email.</p>
  <p style="color: #999; font-size: 12px; margin-top: 40px;">SuperMart Team</p>
</div>
"""
    return CUSTOMER_SUBJECT, body


def render_admin_alert(order: Order) -> Tuple[str, str]:
    """Subject and HTML body of the back-office new-order alert"""
    e = html.escape
    body = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: auto; padding: 20px; border: 1px solid #ddd; border-radius: 10px;">
  <h2 style="color: #e67e22;">📦 New Order Placed</h2>
  <table style="width: 100%; border-collapse: collapse; margin-top: 20px;">
    <tr style="background-color: #f9f9f9;">
      <td style="padding: 10px;">Customer:</td>
      <td style="padding: 10px;"><strong>{e(order.billing_info.full_name)}</strong> ({e(order.billing_info.email)})</td>
    </tr>
    <tr>
      <td style="padding: 10px;">Order ID:</td>
      <td style="padding: 10px;">{e(order.order_id)}</td>
    </tr>
    <tr style="background-color: #f9f9f9;">
      <td style="padding: 10px;">Payment Method:</td>
      <td style="padding: 10px;">{e(format_payment_method(order))}</td>
    </tr>
    <tr>
      <td style="padding: 10px;">Total Amount:</td>
      <td style="padding: 10px;"><strong>{e(format_total(order))}</strong></td>
    </tr>
  </table>
  <p style="margin-top: 20px;">Check the dashboard for more order details.</p>
  <p style="color: #aaa; font-size: 12px; margin-top: 40px;">SuperMart Order Notification</p>
</div>
"""
    return ADMIN_SUBJECT, body


class OrderNotifier:
    """Fire-and-forget order emails"""

    def __init__(self, email_client: Optional[EmailClientProtocol], admin_email: Optional[str] = None):
        self.email_client = email_client
        self.admin_email = admin_email
        self._pending: Set[asyncio.Task] = set()

        if email_client is None:
            logger.warning("Email client not configured. Order emails disabled.")
        if not admin_email:
            logger.warning("ADMIN_EMAIL not configured. Admin order alerts disabled.")

    def notify_order_placed(self, order: Order) -> int:
        """
        Schedule the confirmation and admin alert for a committed order.

        Returns:
            Number of emails scheduled
        """
        if self.email_client is None:
            return 0

        scheduled = 0
        subject, body = render_customer_confirmation(order)
        self._dispatch(order.billing_info.email, subject, body, order.order_id)
        scheduled += 1

        if self.admin_email:
            subject, body = render_admin_alert(order)
            self._dispatch(self.admin_email, subject, body, order.order_id)
            scheduled += 1

        return scheduled

    def notify_payment_captured(self, order: Order) -> int:
        """Same pair of emails, sent once an online payment is captured"""
        return self.notify_order_placed(order)

    async def drain(self) -> None:
        """Wait for every scheduled send to finish"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _dispatch(self, to: str, subject: str, body: str, order_id: str) -> None:
        task = asyncio.create_task(self._send(to, subject, body, order_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, to: str, subject: str, body: str, order_id: str) -> None:
        try:
            await self.email_client.send_email(to=to, subject=subject, html=body)
        except Exception as e:
            logger.error(f"Failed to send order email for {order_id} to {to}: {e}")
