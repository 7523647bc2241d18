"""HTTP transport for the ride-data provider REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from uberpane._constants import USER_AGENT
from uberpane._redact import redact_for_log
from uberpane.config import ProviderConfig
from uberpane.exceptions import ProviderApiError, ProviderAuthenticationError, ProviderTransportError
from uberpane.session import Session

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Endpoint functions only depend on this protocol, so tests can pass
    plain fakes while production uses :class:`HttpTransport`.
    """

    async def request_json(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        ...


def _error_details(payload: Any) -> tuple[str, str]:
    """Pull ``(code, message)`` out of a provider error body."""
    if not isinstance(payload, dict):
        return "", ""
    code = payload.get("code")
    message = payload.get("message")
    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        code = code or errors[0].get("code")
        message = message or errors[0].get("title")
    return str(code or ""), str(message or "")


class HttpTransport:
    """aiohttp transport that adds bearer auth and maps failures to exceptions."""

    def __init__(
        self,
        config: ProviderConfig,
        session: Session,
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._config = config
        self._session = session
        self._http = http_session

    async def request_json(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Returns ``None`` for empty (``204``) responses.

        Raises
        ------
        ProviderTransportError
            Network failure, unexpected status without an error body, or
            invalid JSON.
        ProviderAuthenticationError
            HTTP 401/403.
        ProviderApiError
            Any other non-2xx status with a provider error body.
        """
        url = f"{self._config.api_base}{endpoint}"
        headers = {
            "authorization": self._session.authorization_header(),
            "accept-language": "en_US",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)

        _logger.debug("%s %s params=%s body=%s", method, url, dict(params or {}), redact_for_log(body))

        try:
            async with self._http.request(
                method,
                url,
                params=dict(params) if params else None,
                data=json.dumps(body) if body is not None else None,
                headers=headers,
                timeout=timeout,
            ) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise ProviderTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc
        except TimeoutError as exc:
            raise ProviderTransportError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc

        if not text.strip():
            payload: Any = None
        else:
            try:
                payload = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ProviderTransportError(
                    f"Invalid JSON from {endpoint} (HTTP {status}): {text[:200]}",
                    status_code=status,
                    endpoint=endpoint,
                ) from exc

        _logger.debug("%s %s -> %d %s", method, url, status, redact_for_log(payload))

        if 200 <= status < 300:
            return payload

        code, message = _error_details(payload)
        if status in (401, 403):
            raise ProviderAuthenticationError(
                f"{endpoint} rejected credentials: HTTP {status} {message}".rstrip(),
                code=code or str(status),
                endpoint=endpoint,
            )
        if code or message:
            raise ProviderApiError(
                f"{endpoint} failed: code={code} message={message}",
                code=code,
                endpoint=endpoint,
            )
        raise ProviderTransportError(
            f"HTTP {status} from {endpoint}: {text[:200]}",
            status_code=status,
            endpoint=endpoint,
        )
