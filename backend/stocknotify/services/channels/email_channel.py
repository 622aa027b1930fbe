"""
Email channel via SMTP (Google Gmail or other).
Set SMTP_USER, SMTP_PASSWORD in .env. Use a Gmail App Password (not your normal password).
"""
from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from sqlalchemy.orm import Session

from stocknotify.config import settings
from stocknotify.core.errors import DeliveryFailure
from stocknotify.models.product import Product
from stocknotify.models.user import User
from stocknotify.services.channels.base import Delivery

logger = logging.getLogger(__name__)


def _from_address() -> str:
    if (settings.notify_from or "").strip():
        return settings.notify_from.strip()
    user = (settings.smtp_user or "").strip()
    if user:
        return f"Restock Alerts <{user}>"
    return "Restock Alerts <noreply@localhost>"


def build_restock_email(to_email: str, product_name: str, message: str, from_email: str | None = None) -> MIMEMultipart:
    body = f"{product_name}\n\n{message}"
    msg = MIMEMultipart("alternative")
    msg["Subject"] = f"Back in stock: {product_name}"
    msg["From"] = (from_email or "").strip() or _from_address()
    msg["To"] = to_email
    msg.attach(MIMEText(body, "plain"))
    msg.attach(MIMEText(f"<pre style='font-family:sans-serif'>{body}</pre>", "html"))
    return msg


class EmailChannel:
    name = "email"

    def deliver(self, db: Session, delivery: Delivery) -> bool:
        user = db.query(User).filter(User.id == delivery.user_id).first()
        to_email = ((user.email if user else "") or "").strip()
        if not to_email:
            raise DeliveryFailure(f"user {delivery.user_id} has no email address")
        smtp_user = (settings.smtp_user or "").strip()
        password = (settings.smtp_password or "").strip()
        if not smtp_user or not password:
            raise DeliveryFailure("SMTP_USER or SMTP_PASSWORD not set")
        product = db.query(Product).filter(Product.id == delivery.product_id).first()
        product_name = product.name if product else f"Product {delivery.product_id}"
        msg = build_restock_email(to_email, product_name, delivery.message)
        try:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
                server.starttls()
                server.login(smtp_user, password)
                server.sendmail(smtp_user, [to_email], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Failed to send restock email to user %s: %s", delivery.user_id, e)
            return False
        logger.info("Email sent to user %s for product %s", delivery.user_id, delivery.product_id)
        return True
