from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor

import httpx

from app.application.ports.notifier import NotifierPort
from app.domain.entities.booking_event import BookingEvent
from app.infrastructure.notifications.signing import SIGNATURE_HEADER, sign_payload


class WebhookNotifier(NotifierPort):
    """
    POSTs each booking event as JSON to a subscriber URL.

    publish() only queues the event; a single worker thread delivers in
    order, so a slow subscriber never holds up the request that caused the
    event. close() drains the queue and then closes the HTTP client.
    """

    def __init__(
        self,
        url: str,
        secret: str | None = None,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._secret = secret
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="booking_webhook")
        self._logger = logging.getLogger(__name__)

    def publish(self, event: BookingEvent) -> Future:
        return self._executor.submit(self._deliver_logged, event)

    def deliver(self, event: BookingEvent) -> None:
        body = json.dumps(event.to_dict(), ensure_ascii=False).encode("utf-8")
        headers = {"Content-Type": "application/json", "X-Event-Type": event.type.value}
        if self._secret:
            headers[SIGNATURE_HEADER] = sign_payload(body, self._secret)

        resp = self._client.post(self._url, content=body, headers=headers)
        if resp.status_code >= 400:
            self._logger.error(
                "Booking event delivery failed",
                extra={
                    "status": resp.status_code,
                    "event": event.type.value,
                    "booking_id": event.booking_id,
                    "reason": resp.text[:200],
                },
            )
            resp.raise_for_status()

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        if self._owns_client:
            self._client.close()
        self._logger.info("Webhook notifier closed")

    def _deliver_logged(self, event: BookingEvent) -> None:
        try:
            self.deliver(event)
        except Exception:
            self._logger.exception(
                "Booking event delivery raised",
                extra={"event": event.type.value, "booking_id": event.booking_id},
            )
