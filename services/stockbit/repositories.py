from typing import List, Sequence

from core.brokerage import (
    Broker,
    BrokerActionCalendarRepository,
    BrokerActivityRepository,
    BrokerRepository,
    EmitenBrokerSummaryRepository,
    RawPayload,
)

from .client import StockbitClient

MOCK_BROKERS = "marketdetectors-brokers"
MOCK_ACTIVITY = "marketdetectors-activity"
MOCK_CALENDAR = "order-trade-running-trade-chart"
MOCK_EMITEN_BROKER_SUMMARY = "marketdetectors-emiten-broker-summary"


class StockbitBrokerRepository(BrokerRepository):
    def __init__(self, client: StockbitClient):
        self.client = client

    async def get_all(self) -> List[Broker]:
        if self.client.use_mock:
            items = self.client.load_mock(MOCK_BROKERS)
        else:
            url, params = self.client.brokers_request()
            items = await self.client.get_data(url, params, "Failed to fetch brokers")
        return [Broker.from_raw(item) for item in items or [] if item]


class StockbitBrokerActivityRepository(BrokerActivityRepository):
    def __init__(self, client: StockbitClient):
        self.client = client

    async def get_activity(self, broker_code: str, from_date: str, to_date: str) -> RawPayload:
        if self.client.use_mock:
            return self.client.load_mock(MOCK_ACTIVITY) or {}
        url, params = self.client.broker_activity_request(broker_code, from_date, to_date)
        data = await self.client.get_data(
            url, params, f"Failed to fetch broker activity for '{broker_code}'"
        )
        return data or {}


class StockbitBrokerActionCalendarRepository(BrokerActionCalendarRepository):
    def __init__(self, client: StockbitClient):
        self.client = client

    async def get_calendar(self, symbol: str, broker_codes: Sequence[str],
                           from_date: str, to_date: str) -> RawPayload:
        if self.client.use_mock:
            return self.client.load_mock(MOCK_CALENDAR) or {}
        url, params = self.client.calendar_request(symbol, broker_codes, from_date, to_date)
        data = await self.client.get_data(
            url, params, f"Failed to fetch broker action calendar for '{symbol}'"
        )
        return data or {}


class StockbitEmitenBrokerSummaryRepository(EmitenBrokerSummaryRepository):
    def __init__(self, client: StockbitClient):
        self.client = client

    async def get_summary(self, symbol: str, from_date: str, to_date: str) -> RawPayload:
        if self.client.use_mock:
            return self.client.load_mock(MOCK_EMITEN_BROKER_SUMMARY) or {}
        url, params = self.client.emiten_broker_summary_request(symbol, from_date, to_date)
        data = await self.client.get_data(
            url, params, f"Failed to fetch emiten broker summary for '{symbol}'"
        )
        return data or {}
