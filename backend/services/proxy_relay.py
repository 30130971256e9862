"""Stateless fetch-and-relay proxy for browser clients blocked by CORS."""
import json
import time
import logging
from typing import List, Optional
from urllib.parse import urlsplit

import httpx

from config import RELAY_TIMEOUT, RELAY_ALLOWED_HOSTS
from models.relay import BodyKind, RelayMessages, RelayRequest, RelayResponse

logger = logging.getLogger(__name__)

DEFAULT_MESSAGES = RelayMessages(
    missing="No URL provided.",
    upstream_error="Failed to fetch upstream resource.",
    transport_error="An error occurred while fetching the upstream resource."
)


class ProxyRelay:
    """Forward a single GET to a caller-supplied URL and hand the result back verbatim."""

    def __init__(
        self,
        name: str,
        body_kind: BodyKind = BodyKind.RAW_TEXT,
        messages: RelayMessages = DEFAULT_MESSAGES,
        timeout: float = RELAY_TIMEOUT,
        allowed_hosts: Optional[List[str]] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize a relay instance.

        Args:
            name: Relay name used in logs
            body_kind: How successful upstream bodies are relayed
            messages: Short bodies returned for each failure class
            timeout: Outbound request timeout in seconds
            allowed_hosts: Optional host allow-list (defaults to RELAY_ALLOWED_HOSTS;
                empty means any host is accepted)
            transport: Optional httpx transport, mainly for tests
        """
        self.name = name
        self.body_kind = body_kind
        self.messages = messages
        self.timeout = timeout
        hosts = RELAY_ALLOWED_HOSTS if allowed_hosts is None else allowed_hosts
        self.allowed_hosts = [host.lower() for host in hosts]
        self.transport = transport

        if not self.allowed_hosts:
            logger.info(f"Relay '{name}' initialized as an open proxy ({body_kind.value})")
        else:
            logger.info(f"Relay '{name}' restricted to hosts: {', '.join(self.allowed_hosts)}")

    def relay(self, target_url: Optional[str], body_kind: Optional[BodyKind] = None) -> RelayResponse:
        """
        Fetch target_url once and relay the outcome.

        The URL is expected to be decoded exactly once already (by query-string
        parsing); it is used as-is here.

        Args:
            target_url: Absolute upstream URL
            body_kind: Overrides the relay's configured body kind

        Returns:
            RelayResponse. Never raises: 400 for a missing URL, 403 for a host
            outside the allow-list, the upstream status for non-2xx upstream
            responses, 500 for transport or parse failures.
        """
        kind = body_kind or self.body_kind
        request = RelayRequest(target_url=target_url or "")

        if not request.is_present:
            logger.warning(
                f"Relay '{self.name}' called without a target URL",
                extra={"relay": self.name, "status": 400}
            )
            return self._error(400, self.messages.missing, kind)

        url = request.target_url.strip()
        host = self._host_of(url)

        if not self._host_allowed(host):
            logger.warning(
                f"Relay '{self.name}' refused host {host!r}",
                extra={"relay": self.name, "status": 403, "upstream_host": host}
            )
            return self._error(403, self.messages.forbidden, kind)

        start_time = time.time()

        try:
            with httpx.Client(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True
            ) as client:
                response = client.get(url)
        except httpx.TimeoutException as e:
            return self._transport_failure(f"Timeout after {self.timeout}s", e, host, kind, start_time)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return self._transport_failure("Transport error", e, host, kind, start_time)

        latency_ms = int((time.time() - start_time) * 1000)
        log_extra = {
            "relay": self.name,
            "status": response.status_code,
            "upstream_host": host,
            "latency_ms": latency_ms
        }

        if not 200 <= response.status_code < 300:
            logger.warning(
                f"Relay '{self.name}' upstream returned {response.status_code}",
                extra=log_extra
            )
            return self._error(response.status_code, self.messages.upstream_error, kind)

        if kind == BodyKind.JSON:
            try:
                data = response.json()
                # Relayed JSON must be strict: no NaN or Infinity
                json.dumps(data, allow_nan=False)
            except ValueError as e:
                logger.error(
                    f"Relay '{self.name}' could not relay upstream JSON: {e}",
                    extra={**log_extra, "status": 500}
                )
                return self._error(500, self.messages.transport_error, kind)

            logger.info(f"Relay '{self.name}' relayed JSON in {latency_ms}ms", extra=log_extra)
            return RelayResponse(
                status=200,
                body_kind=kind,
                body=data,
                media_type="application/json"
            )

        media_type = response.headers.get("content-type", "text/plain; charset=utf-8")
        logger.info(
            f"Relay '{self.name}' relayed {len(response.content)} bytes in {latency_ms}ms",
            extra=log_extra
        )
        return RelayResponse(
            status=200,
            body_kind=kind,
            body=response.content,
            media_type=media_type
        )

    def _transport_failure(
        self,
        reason: str,
        error: Exception,
        host: str,
        kind: BodyKind,
        start_time: float
    ) -> RelayResponse:
        latency_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"Relay '{self.name}' failed: {reason}: {error}",
            extra={
                "relay": self.name,
                "status": 500,
                "upstream_host": host,
                "latency_ms": latency_ms
            }
        )
        return self._error(500, self.messages.transport_error, kind)

    def _host_allowed(self, host: str) -> bool:
        if not self.allowed_hosts:
            return True
        return host in self.allowed_hosts

    @staticmethod
    def _host_of(url: str) -> str:
        try:
            return (urlsplit(url).hostname or "").lower()
        except ValueError:
            return ""

    @staticmethod
    def _error(status: int, message: str, kind: BodyKind) -> RelayResponse:
        return RelayResponse(status=status, body_kind=kind, body=message)
