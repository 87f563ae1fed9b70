"""Dispatcher used when no mail server is configured: logs instead of sending."""

from __future__ import annotations

import uuid

import structlog

from storefront.application.notifications import DeliveryReceipt, NotificationDispatcher

logger = structlog.get_logger(__name__)


class LogNotificationDispatcher(NotificationDispatcher):

    def send(self, to_address: str, subject: str, html_body: str) -> DeliveryReceipt:
        message_id = uuid.uuid4().hex
        logger.info(
            "notification.logged",
            to=to_address,
            subject=subject,
            size=len(html_body),
            message_id=message_id,
        )
        return DeliveryReceipt(success=True, message_id=message_id)
