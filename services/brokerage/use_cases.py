from typing import Any, Dict, Iterable, List, Optional

from core.brokerage import (
    Broker,
    BrokerActionSummary,
    BrokerActivityRepository,
    BrokerEmitenDetail,
    BrokerRepository,
    EmitenBrokerSummary,
    EmitenBrokerSummaryRepository,
    EmitenDetail,
    EmitenSummary,
    Period,
    RawPayload,
)
from core.brokerage.models import EmitenBrokerBuy, EmitenBrokerSell
from core.brokerage.validation import (
    validate_broker_code,
    validate_date_range,
    validate_not_empty,
    validate_symbol,
)
from core.logging import get_logger

logger = get_logger(__name__, component="brokerage")


def _present(items: Optional[Iterable[Any]]) -> List[Dict[str, Any]]:
    # Upstream lists may contain nulls
    return [item for item in items or [] if item]


def _broker_summary(raw: RawPayload) -> Dict[str, Any]:
    return raw.get("broker_summary") or {}


def _number(value: Any) -> float:
    return float(value) if value not in (None, "") else 0.0


class GetAllBrokersUseCase:
    def __init__(self, broker_repository: BrokerRepository):
        self.broker_repository = broker_repository

    async def execute(self) -> List[Broker]:
        return await self.broker_repository.get_all()


class GetBrokerActionSummaryUseCase:
    """Aggregate one broker's buy and sell rows per emiten."""

    def __init__(self, activity_repository: BrokerActivityRepository):
        self.activity_repository = activity_repository

    async def execute(self, broker: str, from_date: str, to_date: str) -> BrokerActionSummary:
        validate_broker_code(broker)
        validate_date_range(from_date, to_date)

        raw = await self.activity_repository.get_activity(broker, from_date, to_date)
        summaries = self._summarize(raw)
        logger.debug("Broker action summary built", broker=broker, emitens=len(summaries))
        return BrokerActionSummary(
            broker=broker,
            period=Period(from_date=from_date, to_date=to_date),
            data=summaries,
        )

    @staticmethod
    def _summarize(raw: RawPayload) -> List[EmitenSummary]:
        totals: Dict[str, Dict[str, float]] = {}

        def bucket(code: str) -> Dict[str, float]:
            return totals.setdefault(
                code, {"buy_volume": 0.0, "sell_volume": 0.0, "buy_value": 0.0, "sell_value": 0.0}
            )

        summary = _broker_summary(raw)
        for item in _present(summary.get("brokers_buy")):
            row = bucket(item.get("netbs_stock_code", ""))
            row["buy_volume"] += _number(item.get("blot"))
            row["buy_value"] += _number(item.get("bval"))

        for item in _present(summary.get("brokers_sell")):
            row = bucket(item.get("netbs_stock_code", ""))
            row["sell_volume"] += abs(_number(item.get("slot")))
            row["sell_value"] += abs(_number(item.get("sval")))

        return [EmitenSummary.create(code, **row) for code, row in totals.items()]


class GetBrokerEmitenDetailUseCase:
    def __init__(self, activity_repository: BrokerActivityRepository):
        self.activity_repository = activity_repository

    async def execute(self, broker: str, emiten: str, from_date: str, to_date: str) -> BrokerEmitenDetail:
        validate_broker_code(broker)
        validate_not_empty(emiten, "Emiten code")
        validate_date_range(from_date, to_date)

        raw = await self.activity_repository.get_activity(broker, from_date, to_date)
        detail = self._detail(raw, emiten)
        return BrokerEmitenDetail(
            broker=broker,
            emiten=emiten,
            period=Period(from_date=from_date, to_date=to_date),
            calendar=[detail],
        )

    @staticmethod
    def _detail(raw: RawPayload, emiten: str) -> EmitenDetail:
        summary = _broker_summary(raw)
        buy = next((x for x in _present(summary.get("brokers_buy")) if x.get("netbs_stock_code") == emiten), None)
        sell = next((x for x in _present(summary.get("brokers_sell")) if x.get("netbs_stock_code") == emiten), None)

        return EmitenDetail.create(
            raw.get("from", ""),
            buy_volume=_number(buy.get("blot")) if buy else 0.0,
            sell_volume=abs(_number(sell.get("slot"))) if sell else 0.0,
            buy_value=_number(buy.get("bval")) if buy else 0.0,
            sell_value=abs(_number(sell.get("sval"))) if sell else 0.0,
        )


class GetEmitenBrokerSummaryUseCase:
    def __init__(self, summary_repository: EmitenBrokerSummaryRepository):
        self.summary_repository = summary_repository

    async def execute(self, symbol: str, from_date: str, to_date: str) -> EmitenBrokerSummary:
        validate_symbol(symbol)
        validate_date_range(from_date, to_date)

        raw = await self.summary_repository.get_summary(symbol, from_date, to_date)
        summary = _broker_summary(raw)
        return EmitenBrokerSummary(
            symbol=summary.get("symbol") or symbol,
            period=Period(from_date=raw.get("from") or from_date, to_date=raw.get("to") or to_date),
            brokers_buy=[EmitenBrokerBuy.from_raw(item) for item in _present(summary.get("brokers_buy"))],
            brokers_sell=[EmitenBrokerSell.from_raw(item) for item in _present(summary.get("brokers_sell"))],
        )
