"""Messaging webhook client with exponential backoff retry logic"""

import httpx
import asyncio
from typing import Dict, Any
from khata_gateway.config import settings
from khata_gateway.domain.exceptions import MessagingError
from khata_gateway.domain.models import Reminder
from khata_gateway.infrastructure.observability.metrics import reminder_latency_histogram, reminder_failure_counter


def reminder_payload(reminder: Reminder) -> Dict[str, Any]:
    return {
        "event": "LOAN_PAYMENT_REMINDER",
        "loan_number": reminder.loan_number,
        "phone": reminder.phone,
        "amount_due": str(reminder.amount_due),
        "due_date": reminder.due_date.isoformat(),
        "message": reminder.message,
    }


class ReminderClient:
    """Client for handing payment reminders to the messaging service"""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = webhook_url or settings.messaging_webhook_url
        self.max_retries = settings.reminder_max_retries
        self.backoff_base = settings.reminder_backoff_base

    async def send_reminder(self, reminder: Reminder) -> None:
        """
        Deliver a reminder with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s (base * 2^attempt)
        - Retries on 5xx errors and network failures; 4xx fails at once
        - Tracks latency histogram and failure counter

        Reminders carry no money movement, so retrying is safe here.

        Raises:
            MessagingError: after the final attempt fails
        """
        payload = reminder_payload(reminder)
        attempt = 0
        async with httpx.AsyncClient() as client:
            while attempt < self.max_retries:
                try:
                    with reminder_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=settings.http_timeout_seconds,
                        )
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    reminder_failure_counter.inc()

                    if isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500:
                        raise MessagingError(f"Reminder rejected by messaging service: {e}") from e
                    if attempt >= self.max_retries:
                        raise MessagingError(f"Reminder delivery failed after {attempt} attempts: {e}") from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
