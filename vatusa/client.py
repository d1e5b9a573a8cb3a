"""
vatusa.client: Async VATUSA REST API client.

Design notes:
- Async-only: public methods are coroutines. Synchronous callers (the sync
  engine, the CLI runner) drive them with asyncio.run().
- Uses httpx.AsyncClient. Caller must call close() or use ``async with``.
- The API key travels as the ``apikey`` query parameter, which is how VATUSA
  authenticates facility-scoped endpoints.
- Temporary failures (connection, timeout, 429, 5xx) are retried with
  exponential backoff; permanent failures raise immediately.

Exports:
    VatusaClient -- async REST client
"""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx
from pydantic import ValidationError

from shared.log import create_logger
from validation.errors import classify_exception, classify_http_error
from vatusa.exceptions import (
    VatusaConnectionError,
    VatusaError,
    VatusaPermanentError,
    is_retryable,
)
from vatusa.models import VatusaTrainingRecord, VatusaTrainingRecordsResponse
from worker.backoff import calculate_delay

_, log_debug, log_info, log_warn, _ = create_logger("VATUSA")

DEFAULT_BASE_URL = "https://api.vatusa.net/v2"


class VatusaClient:
    """
    Async client for the VATUSA v2 REST API.

    Usage (synchronous context)::

        import asyncio
        from vatusa.client import VatusaClient

        async def fetch():
            async with VatusaClient(api_key="key", facility="ZAU") as client:
                return await client.fetch_training_records()

        records = asyncio.run(fetch())
    """

    def __init__(
        self,
        api_key: str,
        facility: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_base_delay: float = 2.0,
        retry_max_delay: float = 60.0,
    ) -> None:
        """
        Create the async VATUSA client.

        Args:
            api_key:          VATUSA facility API key.
            facility:         Facility code, e.g. ``ZAU``.
            base_url:         API root; trailing slashes are stripped.
            timeout:          Total request timeout in seconds. Connect timeout
                              is capped at 5 seconds.
            max_retries:      Retries after the first attempt for temporary errors.
            retry_base_delay: Backoff base delay in seconds.
            retry_max_delay:  Backoff cap in seconds.
        """
        self.facility = facility.upper()
        self._base_url = base_url.rstrip("/")
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            params={"apikey": api_key},
            headers={"Accept": "application/json", "User-Agent": "vZAU Training Sync"},
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
        )
        log_debug(f"VatusaClient initialised (url={self._base_url}, facility={self.facility})")

    async def __aenter__(self) -> "VatusaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying httpx client and release connections."""
        await self._client.aclose()

    async def _get_once(self, path: str) -> dict:
        try:
            resp = await self._client.get(path)
        except httpx.TransportError as exc:
            raise VatusaConnectionError(f"Cannot reach VATUSA API: {exc}") from exc

        if resp.status_code >= 400:
            error_cls = classify_http_error(resp.status_code)
            raise error_cls(
                f"VATUSA API returned HTTP {resp.status_code} for {path}",
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise VatusaPermanentError(f"VATUSA API returned non-JSON body for {path}") from exc
        if not isinstance(body, dict):
            raise VatusaPermanentError(f"VATUSA API returned unexpected body for {path}")
        return body

    async def _get(self, path: str) -> dict:
        """
        GET *path* with bounded retries.

        Raises:
            VatusaConnectionError: API unreachable after all attempts.
            VatusaTemporaryError:  429/5xx after all attempts.
            VatusaPermanentError:  Non-retry-able HTTP status or bad body.
        """
        attempt = 0
        while True:
            try:
                return await self._get_once(path)
            except VatusaError as exc:
                if not is_retryable(exc) or attempt >= self._max_retries:
                    raise
                delay = calculate_delay(attempt, self._retry_base_delay, self._retry_max_delay)
                attempt += 1
                log_warn(
                    f"GET {path} failed ({exc}); retry {attempt}/{self._max_retries} in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
            except Exception as exc:
                error_cls = classify_exception(exc)
                raise error_cls(f"Unexpected error calling VATUSA API: {exc}") from exc

    async def fetch_training_records(self, facility: Optional[str] = None) -> list[VatusaTrainingRecord]:
        """
        Fetch every training record VATUSA holds for a facility.

        Entries that fail validation are skipped with a warning; the rest are
        returned. Filtering by ``facility_id`` is left to the caller because
        the endpoint also returns records of visiting controllers trained
        elsewhere.

        Args:
            facility: Facility code; defaults to the client's facility.

        Returns:
            List of VatusaTrainingRecord.

        Raises:
            VatusaError: Any failure fetching or decoding the envelope.
        """
        facility = (facility or self.facility).lower()
        body = await self._get(f"/facility/{facility}/training/records")

        try:
            envelope = VatusaTrainingRecordsResponse.model_validate(body)
        except ValidationError as exc:
            raise VatusaPermanentError(f"Unexpected training records envelope: {exc}") from exc

        if envelope.testing:
            log_warn("VATUSA API reports testing mode; records may not be authoritative")

        records = []
        skipped = 0
        for raw in envelope.data:
            try:
                records.append(VatusaTrainingRecord.model_validate(raw))
            except ValidationError as exc:
                skipped += 1
                log_warn(f"Skipping malformed VATUSA record {raw.get('id', '?')}: {exc.error_count()} error(s)")

        msg = f"Fetched {len(records)} training records for {facility.upper()}"
        if skipped:
            msg += f" ({skipped} malformed skipped)"
        log_info(msg)
        return records


__all__ = ['VatusaClient', 'DEFAULT_BASE_URL']
