"""
Fake Stockbit upstream for tests.

``MockStockbitAPI`` serves canned envelopes through ``httpx.MockTransport`` so
the real ``StockbitClient`` code path (headers, params, status handling) is
exercised without network access.
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
from starlette.requests import Request

MOCK_DIR = Path(__file__).resolve().parents[2] / "services" / "stockbit" / "mock"


def load_payload(name: str) -> Dict[str, Any]:
    with (MOCK_DIR / f"{name}.json").open(encoding="utf-8") as fh:
        return json.load(fh)


def make_request(path="/api/v1/brokers", method="GET", headers=None, client=("10.0.0.1", 5000)) -> Request:
    """Bare Starlette request for driving middlewares directly."""
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": raw_headers,
        "client": client,
    })


class MockStockbitAPI:
    """Routes requests by URL path suffix and records every call."""

    def __init__(self):
        self.calls: List[httpx.Request] = []
        self.routes: Dict[str, Tuple[int, Any]] = {
            "/marketdetectors/brokers": (200, load_payload("marketdetectors-brokers")),
            "/detail": (200, load_payload("marketdetectors-activity")),
            "/running-trade/chart/BBCA": (200, load_payload("order-trade-running-trade-chart")),
            "/marketdetectors/BBCA": (200, load_payload("marketdetectors-emiten-broker-summary")),
        }
        self.error: Optional[Exception] = None

    def respond(self, suffix: str, status: int, body: Any = None) -> None:
        self.routes[suffix] = (status, body if body is not None else {"message": "error"})

    def fail_with(self, error: Exception) -> None:
        self.error = error

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        for suffix, (status, body) in self.routes.items():
            if request.url.path.endswith(suffix):
                return httpx.Response(status, json=body)
        return httpx.Response(404, json={"message": "not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)
