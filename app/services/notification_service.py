"""
Order Notification Service

Renders email templates for lifecycle events and records them as EmailLog
rows. Actual delivery (SMTP, SendGrid, SES) is handled by an external
worker that reads the log; nothing here talks to a mail provider.
"""
import logging
from datetime import datetime
from typing import Optional, Dict, Any

from app.models.email_log import EmailLog, EmailType, EmailStatus
from app.models.order import Order
from app.services.order_store import OrderStore


logger = logging.getLogger(__name__)


# Email templates ({{var}} placeholders)
EMAIL_TEMPLATES: Dict[EmailType, Dict[str, str]] = {
    EmailType.ORDER_CONFIRMATION: {
        "subject": "Order Confirmation - {{order_number}}",
        "body": (
            "Dear {{manufacturer_name}},\n\n"
            "A new order has been assigned to you.\n\n"
            "Order: {{order_number}}\n"
            "Product: {{product_name}}\n"
            "Quantity: {{quantity}}\n"
            "Shipping Address: {{shipping_address}}\n\n"
            "Please confirm receipt and provide an estimated ship date.\n\n"
            "Best regards,\nFulfillment Team"
        ),
    },
    EmailType.SHIPPING_NOTIFICATION: {
        "subject": "Shipping Update - Order {{order_number}}",
        "body": (
            "Dear {{customer_name}},\n\n"
            "Great news! Your order {{order_number}} has been shipped.\n\n"
            "Carrier: {{carrier}}\n"
            "Tracking Number: {{tracking_number}}\n\n"
            "You can track your shipment using the tracking number above.\n\n"
            "Thank you for your purchase!\nFulfillment Team"
        ),
    },
    EmailType.DELAY_ALERT: {
        "subject": "URGENT: Order {{order_number}} Delayed",
        "body": (
            "Dear {{manufacturer_name}},\n\n"
            "Order {{order_number}} has exceeded the expected shipping window.\n\n"
            "Please provide an update on the status immediately.\n\n"
            "Best regards,\nFulfillment Team"
        ),
    },
    EmailType.REMINDER: {
        "subject": "Fulfillment Reminder - Order {{order_number}}",
        "body": (
            "Dear {{manufacturer_name}},\n\n"
            "This is a friendly reminder that order {{order_number}} is pending fulfillment.\n\n"
            "Order Date: {{order_date}}\n"
            "Days Since Assigned: {{days_since_assigned}}\n\n"
            "Please update the order status at your earliest convenience.\n\n"
            "Best regards,\nFulfillment Team"
        ),
    },
    EmailType.ESCALATION: {
        "subject": "URGENT: Escalation - Order {{order_number}}",
        "body": (
            "Dear {{manufacturer_name}},\n\n"
            "Order {{order_number}} has been escalated for immediate attention.\n\n"
            "Please respond with an update within 24 hours.\n\n"
            "Regards,\nFulfillment Management"
        ),
    },
}


def render_template(template: str, variables: Dict[str, Any]) -> str:
    """Render template with variables ({{var}} syntax)."""
    result = template
    for key, value in variables.items():
        result = result.replace(f"{{{{{key}}}}}", str(value))
    return result


def order_variables(order: Order) -> Dict[str, Any]:
    """Template variables available for every order email."""
    manufacturer = order.manufacturer
    product = order.product
    return {
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "quantity": order.quantity,
        "shipping_address": order.shipping_address,
        "product_name": product.name if product else "",
        "manufacturer_name": manufacturer.name if manufacturer else "",
        "carrier": order.carrier or "",
        "tracking_number": order.tracking_number or "",
        "order_date": order.created_at.strftime("%Y-%m-%d") if order.created_at else "",
    }


class NotificationService:
    """
    Notification sink for order emails.

    Each send_* call stages one EmailLog in the caller's unit of work, so the
    record commits or rolls back together with the transition that caused it.
    """

    def __init__(self, store: OrderStore):
        self.store = store

    def record_email(
        self,
        email_type: EmailType,
        recipient: str,
        variables: Dict[str, Any],
        order_id=None,
        manufacturer_id=None,
        created_at: Optional[datetime] = None,
    ) -> EmailLog:
        template = EMAIL_TEMPLATES[email_type]
        email = EmailLog(
            type=email_type.value,
            subject=render_template(template["subject"], variables),
            body=render_template(template["body"], variables),
            recipient=recipient,
            status=EmailStatus.SENT.value,
            order_id=order_id,
            manufacturer_id=manufacturer_id,
        )
        if created_at is not None:
            email.created_at = created_at
        self.store.add(email)

        logger.info(f"[EMAIL] {email_type.value} to {recipient}: {email.subject}")
        return email

    def _manufacturer_email(
        self,
        email_type: EmailType,
        order: Order,
        now: Optional[datetime],
        **extra: Any,
    ) -> Optional[EmailLog]:
        manufacturer = order.manufacturer
        if manufacturer is None:
            return None
        variables = order_variables(order)
        variables.update(extra)
        return self.record_email(
            email_type,
            recipient=manufacturer.contact_email,
            variables=variables,
            order_id=order.id,
            manufacturer_id=manufacturer.id,
            created_at=now,
        )

    def send_order_confirmation(self, order: Order, now: Optional[datetime] = None) -> Optional[EmailLog]:
        """Tell the assigned manufacturer about a new order."""
        return self._manufacturer_email(EmailType.ORDER_CONFIRMATION, order, now)

    def send_shipping_notification(self, order: Order, now: Optional[datetime] = None) -> EmailLog:
        """Tell the customer their order shipped."""
        return self.record_email(
            EmailType.SHIPPING_NOTIFICATION,
            recipient=order.customer_email,
            variables=order_variables(order),
            order_id=order.id,
            manufacturer_id=order.manufacturer_id,
            created_at=now,
        )

    def send_delay_alert(self, order: Order, now: Optional[datetime] = None) -> Optional[EmailLog]:
        return self._manufacturer_email(EmailType.DELAY_ALERT, order, now)

    def send_escalation(self, order: Order, now: Optional[datetime] = None) -> Optional[EmailLog]:
        return self._manufacturer_email(EmailType.ESCALATION, order, now)

    def send_reminder(
        self,
        order: Order,
        days_since_assigned: int,
        now: Optional[datetime] = None,
    ) -> Optional[EmailLog]:
        return self._manufacturer_email(
            EmailType.REMINDER,
            order,
            now,
            days_since_assigned=days_since_assigned,
        )
