"""HTTP transport for the directions service."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from fleetsim._constants import MAX_RESPONSE_BYTES, USER_AGENT
from fleetsim._redact import redact_for_log
from fleetsim.exceptions import RoutingError, RoutingResponseError

_logger = logging.getLogger(__name__)


class RoutingTransport(Protocol):
    """Structural transport interface used by the route provider.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpRoutingTransport`) concrete.
    """

    async def post_json(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        headers: Mapping[str, str],
    ) -> dict[str, Any]:
        ...


class HttpRoutingTransport:
    """JSON-over-HTTP transport bound to a base URL and a shared aiohttp session."""

    def __init__(
        self,
        base_url: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 10.0,
        max_response_bytes: int = MAX_RESPONSE_BYTES,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._max_response_bytes = max_response_bytes

    async def _read_body(self, resp: aiohttp.ClientResponse, endpoint: str) -> bytes:
        limit = self._max_response_bytes
        if resp.content_length is not None and resp.content_length > limit:
            raise RoutingResponseError(
                f"Response from {endpoint} too large ({resp.content_length} bytes, limit {limit})",
                endpoint=endpoint,
            )
        chunks: list[bytes] = []
        size = 0
        async for chunk in resp.content.iter_chunked(64 * 1024):
            size += len(chunk)
            if size > limit:
                raise RoutingResponseError(
                    f"Response from {endpoint} exceeds {limit} bytes",
                    endpoint=endpoint,
                )
            chunks.append(chunk)
        return b"".join(chunks)

    async def post_json(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        headers: Mapping[str, str],
    ) -> dict[str, Any]:
        """POST *payload* as JSON and return the decoded JSON object.

        Raises :class:`RoutingError` for network failures, timeouts and
        non-2xx replies (``status_code`` set for the latter), and
        :class:`RoutingResponseError` for bodies that are oversized, not
        decodable text, or not a JSON object.
        """
        url = f"{self._base_url}{endpoint}"
        request_headers = {"user-agent": USER_AGENT, **headers}

        _logger.debug("POST %s headers=%s body=%s", url, redact_for_log(request_headers), redact_for_log(payload))

        try:
            async with self._http.post(
                url,
                data=json.dumps(payload, separators=(",", ":")),
                headers=request_headers,
                timeout=self._timeout,
            ) as resp:
                raw = await self._read_body(resp, endpoint)
                charset = resp.charset or "utf-8"
                if not 200 <= resp.status < 300:
                    raise RoutingError(
                        f"HTTP {resp.status} from {endpoint}: {raw[:200].decode('utf-8', errors='replace')}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except RoutingError:
            raise
        except TimeoutError as exc:
            raise RoutingError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc
        except aiohttp.ClientError as exc:
            raise RoutingError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

        try:
            text = raw.decode(charset)
        except (UnicodeDecodeError, LookupError) as exc:
            raise RoutingResponseError(f"Undecodable {charset} body from {endpoint}", endpoint=endpoint) from exc

        try:
            body: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RoutingResponseError(f"Invalid JSON from {endpoint}: {text[:200]}", endpoint=endpoint) from exc

        if not isinstance(body, dict):
            raise RoutingResponseError(f"Expected a JSON object from {endpoint}", endpoint=endpoint)

        _logger.debug("Response from %s: %s", endpoint, redact_for_log(body))
        return body
