"""
Webhook subsystem for the checkindex system.

Provides webhook registration with SSRF protection, HMAC-SHA256 payload
signing, and asynchronous delivery with fixed-delay retries and a bounded
delivery log.

Delivery contract:
- POST with a JSON body ``{event, data, timestamp}``
- ``X-Checkindex-Signature`` (hex HMAC-SHA256 of the body) when a secret is set
- Up to 4 attempts, waiting 1 s, 5 s and 30 s between them
- A webhook whose attempts all fail is marked ``failing``; the next 2xx
  delivery brings it back to ``active``
"""

import asyncio
import hashlib
import hmac
import ipaddress
import json
import socket
import uuid
from collections import deque
from typing import Any, Optional, Union
from urllib.parse import urlsplit

import httpx

from .config import WebhookConfig
from .enums import WebhookStatus
from .models import DeliveryAttempt, Webhook, WebhookPayload, iso_timestamp
from .scheduler import Clock, SystemClock

USER_AGENT = "checkindex-webhook/1.0"
SIGNATURE_HEADER = "X-Checkindex-Signature"
RETRY_DELAYS = (1.0, 5.0, 30.0)

ERROR_NOT_HTTPS = "Webhook URL must use HTTPS"
ERROR_PRIVATE_URL = "Webhook URL cannot point to private/internal addresses"
ERROR_NOT_FOUND = "Webhook not found"

_PRIVATE_HOSTNAMES = frozenset({"localhost", "0.0.0.0", "::1"})
_PRIVATE_NETWORKS = (
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)


def _parse_ip_host(host: str) -> Optional[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]]:
    """
    Parse a URL host as an IP address, or return None for a DNS name.

    Besides dotted quads this accepts the shorthand, decimal, hex and octal
    IPv4 forms (``127.1``, ``2130706433``, ``0x7f000001``, ``0177.0.0.1``)
    that the system resolver also maps to an address.
    """
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass

    try:
        packed = socket.inet_aton(host)
    except (OSError, ValueError):
        return None
    return ipaddress.IPv4Address(packed)


def is_private_url(url: str) -> bool:
    """
    Check whether a URL points at a loopback or private-network host.

    Unparseable URLs count as private.

    Args:
        url: Candidate webhook URL

    Returns:
        True if the URL must be rejected
    """
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return True

    if not host:
        return True

    host = host.lower().rstrip(".")
    if host in _PRIVATE_HOSTNAMES:
        return True

    address = _parse_ip_host(host)
    if address is None:
        return False

    if address.version == 6 and address.ipv4_mapped is not None:
        address = address.ipv4_mapped

    if address.is_unspecified or (address.version == 6 and address.is_loopback):
        return True

    return any(address in network for network in _PRIVATE_NETWORKS)


def validate_webhook_url(url: str) -> Optional[str]:
    """
    Validate a webhook URL.

    Returns:
        None if the URL is acceptable, otherwise the error message
    """
    if not url.startswith("https://"):
        return ERROR_NOT_HTTPS
    if is_private_url(url):
        return ERROR_PRIVATE_URL
    return None


def sign_payload(body: str, secret: str) -> str:
    """Compute the hex HMAC-SHA256 signature of a serialized payload."""
    return hmac.new(
        secret.encode("utf-8"),
        body.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def serialize_payload(payload: WebhookPayload) -> str:
    """Serialize a payload to the exact body that is signed and sent."""
    return json.dumps(
        payload.to_dict(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


class WebhookRegistry:
    """In-memory registry of webhook endpoints."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or SystemClock()
        self._webhooks: dict[str, Webhook] = {}

    def register(self, url: str, secret: Optional[str] = None) -> Union[Webhook, str]:
        """
        Register a new webhook.

        Returns:
            The created Webhook, or an error message if the URL is rejected
        """
        error = validate_webhook_url(url)
        if error:
            return error

        webhook = Webhook(
            id=str(uuid.uuid4()),
            url=url,
            secret=secret,
            created_at=iso_timestamp(self._clock.now()),
        )
        self._webhooks[webhook.id] = webhook
        return webhook

    def list(self) -> list[Webhook]:
        return list(self._webhooks.values())

    def get(self, webhook_id: str) -> Optional[Webhook]:
        return self._webhooks.get(webhook_id)

    def update(
        self,
        webhook_id: str,
        url: Optional[str] = None,
        secret: Optional[str] = None,
        status: Optional[WebhookStatus] = None,
    ) -> Union[Webhook, str]:
        """
        Update a webhook's URL, secret or status.

        Any update without an explicit ``status`` re-activates the webhook.
        A rejected URL leaves the webhook unchanged.

        Returns:
            The updated Webhook, or an error message
        """
        webhook = self._webhooks.get(webhook_id)
        if webhook is None:
            return ERROR_NOT_FOUND

        if url is not None:
            error = validate_webhook_url(url)
            if error:
                return error
            webhook.url = url

        if secret is not None:
            webhook.secret = secret

        webhook.status = status if status is not None else WebhookStatus.ACTIVE
        return webhook

    def delete(self, webhook_id: str) -> bool:
        return self._webhooks.pop(webhook_id, None) is not None

    def __len__(self) -> int:
        return len(self._webhooks)


class DeliveryLog:
    """Ring buffer of recent delivery attempts across all webhooks."""

    def __init__(self, capacity: int = 1000) -> None:
        self._entries: deque[DeliveryAttempt] = deque(maxlen=capacity)

    def append(self, attempt: DeliveryAttempt) -> None:
        self._entries.append(attempt)

    def for_webhook(self, webhook_id: str, limit: int = 20) -> list[DeliveryAttempt]:
        """Most recent attempts for one webhook, oldest first."""
        if limit <= 0:
            return []
        matching = [entry for entry in self._entries if entry.webhook_id == webhook_id]
        return matching[-limit:]

    def __len__(self) -> int:
        return len(self._entries)


class WebhookDispatcher:
    """
    Delivers events to registered webhooks.

    Each delivery runs as an independent asyncio task, so a slow or failing
    endpoint never delays the caller or other webhooks.
    """

    def __init__(
        self,
        registry: WebhookRegistry,
        log: Optional[DeliveryLog] = None,
        clock: Optional[Clock] = None,
        logger=None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        config: Optional[WebhookConfig] = None,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            registry: Source of webhook endpoints
            log: Delivery log (a new one is created when omitted)
            clock: Time source for timestamps and retry delays
            logger: Optional audit logger
            transport: Optional httpx transport (tests use httpx.MockTransport)
            config: Retry delays, per-attempt timeout and log capacity
        """
        self._config = config or WebhookConfig(retry_delays=RETRY_DELAYS)
        self._registry = registry
        self._log = log if log is not None else DeliveryLog(self._config.log_capacity)
        self._clock = clock or SystemClock()
        self._logger = logger
        self._transport = transport
        self._tasks: set[asyncio.Task] = set()

    @property
    def registry(self) -> WebhookRegistry:
        return self._registry

    @property
    def delivery_log(self) -> DeliveryLog:
        return self._log

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight."""
        return len(self._tasks)

    async def deliver(self, webhook: Webhook, event: str, data: Any) -> None:
        """
        Deliver one event to one webhook, retrying on failure.

        Never raises; the outcome is recorded in the delivery log and in the
        webhook's status.
        """
        if webhook.status == WebhookStatus.DISABLED:
            return

        payload = WebhookPayload(
            event=event,
            data=data,
            timestamp=iso_timestamp(self._clock.now()),
        )
        body = serialize_payload(payload)

        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if webhook.secret:
            headers[SIGNATURE_HEADER] = sign_payload(body, webhook.secret)

        delays = self._config.retry_delays
        max_attempts = len(delays) + 1
        last_error = ""

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(self._config.timeout_seconds),
        ) as client:
            for attempt in range(1, max_attempts + 1):
                if attempt > 1:
                    await self._clock.sleep(delays[attempt - 2])
                    if webhook.status == WebhookStatus.DISABLED:
                        return

                try:
                    response = await client.post(
                        webhook.url,
                        content=body.encode("utf-8"),
                        headers=headers,
                    )
                except (httpx.HTTPError, httpx.InvalidURL) as e:
                    last_error = str(e) or type(e).__name__
                    self._record(webhook, payload, attempt, error=last_error)
                    continue

                self._record(webhook, payload, attempt, http_status=response.status_code)

                if response.is_success:
                    if webhook.status == WebhookStatus.FAILING:
                        webhook.status = WebhookStatus.ACTIVE
                    self._log_debug(
                        f"Delivered '{event}' to webhook {webhook.id}",
                        {"webhook_id": webhook.id, "attempt": attempt},
                    )
                    return

                last_error = f"HTTP {response.status_code}"

        if webhook.status == WebhookStatus.DISABLED:
            return

        webhook.status = WebhookStatus.FAILING
        self._log_warn(
            f"All retries failed for webhook {webhook.id}: {last_error}",
            {
                "webhook_id": webhook.id,
                "event": event,
                "attempts": max_attempts,
                "last_error": last_error,
            },
        )

    def fire(self, event: str, data: Any) -> list[asyncio.Task]:
        """
        Start a delivery task for every non-disabled webhook.

        Must be called from a running event loop. Returns immediately.
        """
        loop = asyncio.get_running_loop()
        tasks = []
        for webhook in self._registry.list():
            if webhook.status == WebhookStatus.DISABLED:
                continue
            task = loop.create_task(self.deliver(webhook, event, data))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        return tasks

    async def drain(self) -> None:
        """Wait for all in-flight deliveries to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _record(
        self,
        webhook: Webhook,
        payload: WebhookPayload,
        attempt: int,
        http_status: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        self._log.append(DeliveryAttempt(
            webhook_id=webhook.id,
            payload=payload,
            attempt=attempt,
            timestamp=iso_timestamp(self._clock.now()),
            http_status=http_status,
            error=error,
        ))

    def _log_debug(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.debug("WebhookDispatcher", message, data)

    def _log_warn(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.warn("WebhookDispatcher", message, data)
