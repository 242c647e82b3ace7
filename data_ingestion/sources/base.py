"""
Data Ingestion - Base Product Source.

============================================================
PURPOSE
============================================================
Abstract base class for all marketplace adapters.

============================================================
CONTRACT
============================================================
- name: stable SourcePlatform identifier
- fetch(): zero or more loosely-typed canonical candidates

fetch() may raise (network/API error). The orchestrator
turns that into a single source-level error; it never
propagates past the source.

============================================================
FETCH PATHS
============================================================
- Live: fetch_live() against the marketplace API, with
  retry and exponential backoff on recoverable errors
- Offline: sample_payloads(), a structured catalog used
  when no API credential is configured

Both paths return raw payloads in the marketplace's own
shape; to_candidate() maps each one through an explicit
raw struct. Unknown shapes map to None so the normalizer
counts them as rejected items.

============================================================
"""

import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

import httpx

from data_ingestion.config import SourceConfig
from data_ingestion.types import FetchError, ParseError, SourcePlatform


SECONDS_PER_DAY = 86400.0


def daily_jitter(base: float, amplitude: float, wave=math.sin, now: Optional[float] = None) -> Decimal:
    """
    Shift a catalog price along a slow daily wave.

    Keeps offline prices moving between runs so velocity
    tracking has something to measure.
    """
    now = time.time() if now is None else now
    value = base + wave(now / SECONDS_PER_DAY) * base * amplitude
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class BaseProductSource(ABC):
    """
    Abstract base class for marketplace adapters.

    ============================================================
    RESPONSIBILITIES
    ============================================================
    - Fetch raw listings (live or offline catalog)
    - Map each listing to a canonical candidate
    - Retry transient fetch failures

    ============================================================
    """

    def __init__(self, config: Optional[SourceConfig] = None) -> None:
        self._config = config or SourceConfig()
        self._logger = logging.getLogger(f"source.{self.name.value}")

    @property
    @abstractmethod
    def name(self) -> SourcePlatform:
        """Platform identifier; doubles as the dedup/logging key."""
        pass

    @property
    def is_enabled(self) -> bool:
        return self._config.enabled

    @property
    def is_live(self) -> bool:
        """True when the adapter talks to the real marketplace API."""
        return bool(self._config.api_key)

    # =========================================================
    # ABSTRACT METHODS - Must be implemented by subclasses
    # =========================================================

    @abstractmethod
    async def fetch_live(self, client: httpx.AsyncClient) -> List[Dict[str, Any]]:
        """
        Fetch raw listings from the marketplace API.

        Raises:
            FetchError: On network or API errors
        """
        pass

    @abstractmethod
    def sample_payloads(self) -> List[Dict[str, Any]]:
        """Raw listings from the offline catalog."""
        pass

    @abstractmethod
    def to_candidate(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        """
        Map one raw listing to a canonical candidate.

        Raises:
            ParseError: If the listing does not match the known shape
        """
        pass

    # =========================================================
    # FETCH WORKFLOW
    # =========================================================

    async def fetch(self) -> List[Optional[Dict[str, Any]]]:
        """
        Fetch and map listings.

        Returns:
            Candidates in fetch order; None for unknown shapes
        """
        if self.is_live:
            raw_items = await self._fetch_with_retry()
        else:
            raw_items = self.sample_payloads()

        candidates: List[Optional[Dict[str, Any]]] = []
        for raw in raw_items:
            try:
                candidates.append(self.to_candidate(raw))
            except ParseError as e:
                self._logger.warning(f"Rejected listing from {self.name.value}: {e}")
                candidates.append(None)
        return candidates

    async def _fetch_with_retry(self) -> List[Dict[str, Any]]:
        """
        Fetch live listings with retry logic.

        Raises:
            FetchError: After all retries exhausted, or on a
                non-recoverable error
        """
        last_error: Optional[Exception] = None
        attempts = max(1, self._config.max_retries)

        async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
            for attempt in range(attempts):
                try:
                    return await self.fetch_live(client)
                except FetchError as e:
                    last_error = e
                    if not e.recoverable:
                        raise
                    if attempt + 1 >= attempts:
                        break

                    wait_time = self._config.retry_backoff_base ** attempt
                    self._logger.warning(
                        f"Fetch attempt {attempt + 1} failed for {self.name.value}, "
                        f"retrying in {wait_time}s: {e}"
                    )
                    await asyncio.sleep(wait_time)

        raise FetchError(
            message=f"All {attempts} fetch attempts failed",
            source=self.name.value,
            recoverable=False,
            details={"last_error": str(last_error)},
        )

    async def _request_json(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> Any:
        """Issue a request and decode JSON, mapping failures to FetchError."""
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            # Rate limit (429) and server errors are recoverable
            status_code = e.response.status_code
            raise FetchError(
                message=f"HTTP {status_code}: {e.response.text[:200]}",
                source=self.name.value,
                recoverable=status_code >= 500 or status_code == 429,
                details={"status_code": status_code},
            ) from e
        except httpx.TimeoutException as e:
            raise FetchError(
                message=f"Request timeout: {e}",
                source=self.name.value,
                recoverable=True,
            ) from e
        except httpx.RequestError as e:
            raise FetchError(
                message=f"Request error: {e}",
                source=self.name.value,
                recoverable=True,
            ) from e
        except ValueError as e:
            raise FetchError(
                message=f"Invalid JSON response: {e}",
                source=self.name.value,
                recoverable=False,
            ) from e

    def get_health_status(self) -> Dict[str, Any]:
        return {
            "source": self.name.value,
            "enabled": self.is_enabled,
            "live": self.is_live,
        }


def require(payload: Dict[str, Any], key: str, expected: Any, source: SourcePlatform) -> Any:
    """Read a required, typed field from a raw payload."""
    if not isinstance(payload, dict):
        raise ParseError(
            message=f"Expected object, got {type(payload).__name__}",
            source=source.value,
        )
    if key not in payload or payload[key] is None:
        raise ParseError(message=f"Missing field '{key}'", source=source.value)
    value = payload[key]
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, expected) or isinstance(value, bool):
        types = expected if isinstance(expected, tuple) else (expected,)
        raise ParseError(
            message=(
                f"Field '{key}' should be {'/'.join(t.__name__ for t in types)}, "
                f"got {type(value).__name__}"
            ),
            source=source.value,
        )
    return value


def optional_int(payload: Dict[str, Any], key: str, source: SourcePlatform) -> int:
    """Read an optional integer counter, 0 when absent."""
    value = payload.get(key)
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ParseError(
            message=f"Field '{key}' is not an integer: {value!r}",
            source=source.value,
        ) from e
