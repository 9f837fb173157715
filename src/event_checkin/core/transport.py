"""Signed HTTP transport for the attendance backend."""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlencode

import aiohttp

from ..config.settings import ClientConfig
from ..errors import (
    CheckinError,
    ConfigurationError,
    ProtocolError,
    ServerError,
    UnreachableError,
)
from ..utils.logger import get_logger
from .signing import sign

TIMESTAMP_HEADER = "X-App-Timestamp"
SIGNATURE_HEADER = "X-App-Signature"

LOGGER = get_logger("transport")


def canonical_json(payload: Any) -> bytes:
    """Compact UTF-8 JSON; these exact bytes are both signed and sent."""
    if payload is None:
        return b""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class SignedRequest:
    """One outbound call; built fresh for every request, never reused."""

    method: str
    path: str
    body: bytes
    timestamp: str
    signature: str

    def headers(self) -> Dict[str, str]:
        headers = {
            TIMESTAMP_HEADER: self.timestamp,
            SIGNATURE_HEADER: self.signature,
        }
        if self.body:
            headers["Content-Type"] = "application/json"
        return headers


class TransportClient:
    """Issue signed requests and translate every failure into a :class:`CheckinError`.

    The client never retries; callers decide whether to resubmit.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._session = session
        self._owns_session = session is None
        self._clock = clock

    async def __aenter__(self) -> "TransportClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _client_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    def build_request(
        self,
        method: str,
        path: str,
        payload: Any = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> SignedRequest:
        body = canonical_json(payload)
        timestamp = str(int(self._clock() * 1000))
        if params:
            path = f"{path}?{urlencode(params)}"
        return SignedRequest(
            method=method.upper(),
            path=path,
            body=body,
            timestamp=timestamp,
            signature=sign(body, timestamp, self._config.secret),
        )

    async def request(
        self,
        method: str,
        path: str,
        payload: Any = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        signed = self.build_request(method, path, payload, params=params)
        url = self._config.url_for(signed.path)
        timeout = aiohttp.ClientTimeout(total=self._config.timeout)
        LOGGER.debug("%s %s", signed.method, signed.path)
        try:
            async with self._client_session().request(
                signed.method,
                url,
                data=signed.body or None,
                headers=signed.headers(),
                timeout=timeout,
            ) as response:
                return await self._decode(signed, response)
        except CheckinError:
            raise
        except aiohttp.InvalidURL as exc:
            raise ConfigurationError(f"Invalid API URL: {url}") from exc
        except asyncio.TimeoutError as exc:
            LOGGER.warning("%s %s timed out after %gs", signed.method, signed.path, self._config.timeout)
            raise UnreachableError(
                f"Server did not respond within {self._config.timeout:g} seconds.", cause=exc
            ) from exc
        except aiohttp.ClientConnectionError as exc:
            LOGGER.warning("%s %s failed to connect: %s", signed.method, signed.path, exc)
            raise UnreachableError(cause=exc) from exc
        except aiohttp.ClientError as exc:
            raise ProtocolError(f"Failed to read response: {exc}") from exc

    async def get(self, path: str, **params: Any) -> Any:
        return await self.request("GET", path, params=params or None)

    async def post(self, path: str, payload: Any) -> Any:
        return await self.request("POST", path, payload)

    async def _decode(self, signed: SignedRequest, response: aiohttp.ClientResponse) -> Any:
        status = response.status
        body = await response.read()
        try:
            raw = body.decode(response.charset or "utf-8", errors="replace")
        except LookupError:
            LOGGER.debug("Unknown charset %r from %s; decoding as utf-8", response.charset, signed.path)
            raw = body.decode("utf-8", errors="replace")
        LOGGER.debug("%s %s -> HTTP %s", signed.method, signed.path, status)

        if "json" not in (response.content_type or ""):
            LOGGER.warning("Non-JSON response from %s (HTTP %s)", signed.path, status)
            LOGGER.debug("Raw body: %s", raw)
            raise ProtocolError(
                f"Server returned non-JSON response (HTTP {status})", status=status, raw_body=raw
            )

        try:
            data = json.loads(raw) if raw.strip() else None
        except ValueError as exc:
            LOGGER.debug("Undecodable body from %s: %s", signed.path, raw)
            raise ProtocolError(
                f"Server returned malformed JSON (HTTP {status})", status=status, raw_body=raw
            ) from exc

        if not 200 <= status < 300:
            raise ServerError(status, _error_detail(data, status))
        return data


def _error_detail(data: Any, status: int) -> str:
    detail = data.get("detail") if isinstance(data, Mapping) else None
    if isinstance(detail, str) and detail.strip():
        return detail
    if detail:
        return json.dumps(detail, ensure_ascii=False)
    return f"Request failed with status {status}"
