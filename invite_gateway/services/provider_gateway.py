"""
Gateway to the iCalendar generation provider.

A single ProviderGateway serves both provider response modes:

- ``ResponseFormat.FILE``: the provider answers with a binary ``.ics`` body
  which is relayed to the caller chunk by chunk, never buffered whole.
- ``ResponseFormat.URL``: the provider answers with a JSON envelope whose
  ``data`` field holds a link to the hosted file.

Non-success statuses are surfaced to the caller with the provider's status
code and status text. Nothing is retried.
"""

import logging
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, Optional

import anyio
import httpx

from invite_gateway.core.config import AppConfig, load_config, require_provider_credentials
from invite_gateway.core.errors import ProviderError, ProviderTransportError, RelayInterruptedError
from invite_gateway.observability.logger import RelayTimer, log_relay, log_relay_failure


class ResponseFormat(str, Enum):
    FILE = "file"
    URL = "url"


class CalendarFileStream:
    """Open provider response whose body is relayed to the caller."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        chunks: AsyncIterator[bytes],
        first_chunk: bytes,
        filename: str,
        on_finish: Optional[Callable[[bool, Optional[str]], None]] = None,
    ):
        self.client = client
        self.response = response
        self.filename = filename
        self.on_finish = on_finish
        self.bytes_sent = 0
        self.closed = False
        self._chunks = chunks
        self._first_chunk = first_chunk

    @property
    def media_type(self) -> str:
        return "text/calendar"

    @property
    def headers(self) -> Dict[str, str]:
        return {"Content-Disposition": f"attachment; filename={self.filename}"}

    async def relay(self) -> AsyncIterator[bytes]:
        """
        Yield the provider body as it arrives.

        ``on_finish(completed, error)`` is called once the relay ends, whether
        the body went through, the provider failed, or the caller went away.

        Raises:
            RelayInterruptedError: if the provider stream fails after the
                caller's response headers have gone out
        """
        completed = False
        error: Optional[str] = None
        with RelayTimer() as timer:
            try:
                if self._first_chunk:
                    self.bytes_sent += len(self._first_chunk)
                    yield self._first_chunk
                async for chunk in self._chunks:
                    self.bytes_sent += len(chunk)
                    yield chunk
                completed = True
            except httpx.HTTPError as e:
                error = f"Calendar stream interrupted after {self.bytes_sent} bytes"
                log_relay_failure(
                    e,
                    action="interrupted",
                    mode=ResponseFormat.FILE.value,
                    provider_status=self.response.status_code,
                    bytes_relayed=self.bytes_sent,
                )
                raise RelayInterruptedError(error) from e
            finally:
                await self.aclose()
                if not completed and error is None:
                    error = "Caller disconnected before the calendar was relayed"
                if self.on_finish is not None:
                    self.on_finish(completed, error)
        log_relay(
            action="relayed",
            mode=ResponseFormat.FILE.value,
            provider_status=self.response.status_code,
            bytes_relayed=self.bytes_sent,
            duration_ms=timer.elapsed_ms,
        )

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Runs during caller disconnects too, when the task is being cancelled.
        with anyio.CancelScope(shield=True):
            await self.response.aclose()
            await self.client.aclose()


class ProviderGateway:
    """HTTP client for the provider's iCalendar generation endpoints."""

    def __init__(
        self,
        api_key: str,
        api_token: str,
        base_url: str = "https://api.apyhub.com",
        timeout_seconds: float = 15.0,
        filename: str = "invite.ics",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key or not api_token:
            raise ValueError("api_key and api_token are required")
        self.api_key = api_key
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.filename = filename
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        # The provider expects the API key as both header name and value.
        return {
            self.api_key: self.api_key,
            "apy-token": self.api_token,
            "Content-Type": "application/json",
        }

    def _endpoint(self, response_format: ResponseFormat) -> str:
        return f"{self.base_url}/generate/ical/{response_format.value}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport)

    async def generate(self, payload: Dict[str, Any], response_format: ResponseFormat):
        """
        Call the provider in the requested mode.

        Returns:
            CalendarFileStream for ResponseFormat.FILE, the link string for
            ResponseFormat.URL
        """
        if response_format is ResponseFormat.FILE:
            return await self.generate_file(payload)
        return await self.generate_link(payload)

    async def _send(
        self,
        client: httpx.AsyncClient,
        payload: Dict[str, Any],
        response_format: ResponseFormat,
    ) -> httpx.Response:
        params = {"output": self.filename} if response_format is ResponseFormat.FILE else None
        request = client.build_request(
            "POST",
            self._endpoint(response_format),
            headers=self._headers(),
            params=params,
            json=payload,
        )
        try:
            response = await client.send(request, stream=True)
        except httpx.TimeoutException as e:
            log_relay_failure(e, action="failed", mode=response_format.value)
            raise ProviderTransportError(504, "Calendar provider timed out") from e
        except httpx.HTTPError as e:
            log_relay_failure(e, action="failed", mode=response_format.value)
            raise ProviderTransportError(502, "Calendar provider unreachable") from e

        if not response.is_success:
            await response.aclose()
            status_text = response.reason_phrase or "Calendar provider request failed"
            log_relay(
                action="failed",
                mode=response_format.value,
                provider_status=response.status_code,
                level=logging.WARNING,
                error=status_text,
                organizer=payload.get("organizer_email", ""),
            )
            raise ProviderError(response.status_code, status_text)
        return response

    async def generate_file(
        self,
        payload: Dict[str, Any],
        on_finish: Optional[Callable[[bool, Optional[str]], None]] = None,
    ) -> CalendarFileStream:
        """
        Request a calendar file and open it for relaying.

        The first body chunk is read here so that a provider that fails
        before sending anything still produces a clean error response.
        """
        client = self._client()
        try:
            response = await self._send(client, payload, ResponseFormat.FILE)
        except ProviderError:
            await client.aclose()
            raise

        chunks = response.aiter_bytes()
        try:
            first_chunk = await anext(chunks)
        except StopAsyncIteration:
            first_chunk = b""
        except httpx.HTTPError as e:
            await response.aclose()
            await client.aclose()
            log_relay_failure(e, action="failed", mode=ResponseFormat.FILE.value, provider_status=response.status_code)
            raise ProviderTransportError(502, "Calendar provider stream failed") from e

        return CalendarFileStream(
            client=client,
            response=response,
            chunks=chunks,
            first_chunk=first_chunk,
            filename=self.filename,
            on_finish=on_finish,
        )

    async def generate_link(self, payload: Dict[str, Any]) -> str:
        """Request a hosted calendar file and return its URL."""
        body = {**payload, "responseFormat": ResponseFormat.URL.value}
        with RelayTimer() as timer:
            async with self._client() as client:
                response = await self._send(client, body, ResponseFormat.URL)
                try:
                    await response.aread()
                except httpx.HTTPError as e:
                    log_relay_failure(e, action="failed", mode=ResponseFormat.URL.value, provider_status=response.status_code)
                    raise ProviderTransportError(502, "Calendar provider stream failed") from e
                finally:
                    await response.aclose()

        try:
            data = response.json()
        except ValueError:
            data = None
        url = data.get("data") if isinstance(data, dict) else None
        if not isinstance(url, str) or not url:
            log_relay(
                action="failed",
                mode=ResponseFormat.URL.value,
                provider_status=response.status_code,
                level=logging.WARNING,
                error="link response without data field",
            )
            raise ProviderError(502, "Calendar provider returned no link")

        log_relay(
            action="linked",
            mode=ResponseFormat.URL.value,
            provider_status=response.status_code,
            duration_ms=timer.elapsed_ms,
        )
        return url


def create_provider_gateway(cfg: Optional[AppConfig] = None) -> ProviderGateway:
    """Factory function to create a ProviderGateway from environment configuration."""
    cfg = cfg or load_config()
    require_provider_credentials(cfg)
    return ProviderGateway(
        api_key=cfg.apy_cred,
        api_token=cfg.apy_token,
        base_url=cfg.provider_base_url,
        timeout_seconds=cfg.provider_timeout_seconds,
        filename=cfg.ics_filename,
    )
