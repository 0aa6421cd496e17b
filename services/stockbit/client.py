"""Stockbit HTTP integration: authenticated GETs, response caching and mock payloads."""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import httpx

from core.config.settings import Settings
from core.logging import get_logger
from core.storage import ExpiringStore
from core.storage.helpers import create_storage_key
from core.utils.exceptions import UpstreamApiError

logger = get_logger(__name__, component="stockbit")

MOCK_DIR = Path(__file__).parent / "mock"

QueryParams = List[Tuple[str, Union[str, int]]]
TokenProvider = Callable[[], Optional[str]]


class StockbitClient:
    """Thin async wrapper over ``httpx.AsyncClient`` for the Stockbit API."""

    def __init__(
        self,
        settings: Settings,
        token_provider: Optional[TokenProvider] = None,
        cache: Optional[ExpiringStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.config = settings.stockbit
        self.use_mock = settings.is_mock_enabled()
        self._token_provider = token_provider
        self._cache = cache if settings.cache.enabled else None
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    # --- URL building ---

    def brokers_request(self) -> Tuple[str, QueryParams]:
        return f"{self.config.base_url}/marketdetectors/brokers", [
            ("page", self.config.default_page),
            ("limit", self.config.broker_page_size),
            ("group", self.config.broker_group),
        ]

    def _detail_params(self, from_date: str, to_date: str) -> QueryParams:
        return [
            ("page", self.config.default_page),
            ("limit", self.config.default_page_size),
            ("from", from_date),
            ("to", to_date),
            ("transaction_type", self.config.transaction_type),
            ("market_board", self.config.market_board),
            ("investor_type", self.config.investor_type),
        ]

    def broker_activity_request(self, broker_code: str, from_date: str, to_date: str) -> Tuple[str, QueryParams]:
        url = f"{self.config.base_url}/marketdetectors/activity/{broker_code}/detail"
        return url, self._detail_params(from_date, to_date)

    def emiten_broker_summary_request(self, symbol: str, from_date: str, to_date: str) -> Tuple[str, QueryParams]:
        return f"{self.config.base_url}/marketdetectors/{symbol}", self._detail_params(from_date, to_date)

    def calendar_request(self, symbol: str, broker_codes: Sequence[str],
                         from_date: str, to_date: str) -> Tuple[str, QueryParams]:
        params: QueryParams = [("from", from_date), ("to", to_date)]
        params.extend(("broker_code", code) for code in broker_codes)
        return f"{self.config.order_trade_base_url}/running-trade/chart/{symbol}", params

    # --- Auth ---

    def resolve_token(self) -> str:
        """Runtime-configured token first, then the one from settings."""
        if self._token_provider is not None:
            token = self._token_provider()
            if token:
                return token
        return self.settings.resolve_access_token()

    def _headers(self) -> Dict[str, str]:
        token = self.resolve_token()
        if not token:
            raise UpstreamApiError(
                "Stockbit access token is not configured. Set STOCKBIT__ACCESS_TOKEN "
                "or POST /api/v1/config/access-token",
                status_code=401,
            )
        return {"Authorization": f"Bearer {token}", "Accept": "application/json"}

    # --- Transport ---

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()
        self._http = None

    def load_mock(self, name: str) -> Any:
        """Return the ``data`` member of a bundled mock payload."""
        path = MOCK_DIR / f"{name}.json"
        with path.open(encoding="utf-8") as fh:
            payload = json.load(fh)
        logger.debug("Serving mock payload", mock=name)
        return payload.get("data")

    async def get_data(self, url: str, params: QueryParams, failure: str) -> Any:
        """GET ``url`` and return the ``data`` member of the JSON envelope.

        ``failure`` prefixes the error message when the upstream call fails,
        e.g. ``"Failed to fetch brokers"``.
        """
        # A cache hit still requires a configured token
        headers = self._headers()
        cache_key = create_storage_key("stockbit", str(httpx.URL(url, params=params)))
        if self._cache is not None:
            hit = self._cache.get_value(cache_key)
            if hit is not None:
                logger.debug("Upstream cache hit", url=url)
                return hit

        try:
            response = await self._get_http().get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Upstream request failed", url=url, error=str(e))
            raise UpstreamApiError(f"{failure}: {e}", status_code=502, original_error=e)

        if not response.is_success:
            logger.warning("Upstream returned error status", url=url, status=response.status_code)
            raise UpstreamApiError(
                f"{failure}: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            data = response.json().get("data")
        except (ValueError, AttributeError) as e:
            raise UpstreamApiError(f"{failure}: invalid JSON response", status_code=502, original_error=e)

        if self._cache is not None and data is not None:
            self._cache.set_with_ttl(cache_key, data)
        return data
