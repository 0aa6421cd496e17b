"""
Domain models for broker flow analytics.

Raw upstream payloads are plain dicts; everything returned to API clients is
one of the pydantic models below, serialized with ``model_dump(by_alias=True)``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

RawPayload = Dict[str, Any]


class TradingStatus(str, Enum):
    ACCUMULATION = "ACCUMULATION"
    DISTRIBUTION = "DISTRIBUTION"
    NEUTRAL = "NEUTRAL"

    @classmethod
    def from_net_volume(cls, net_volume: float) -> "TradingStatus":
        if net_volume > 0:
            return cls.ACCUMULATION
        if net_volume < 0:
            return cls.DISTRIBUTION
        return cls.NEUTRAL


class Trend(str, Enum):
    ACCUMULATION = "accumulation"
    DISTRIBUTION = "distribution"
    NEUTRAL = "neutral"


class Strength(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


class Period(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_date: str = Field(alias="from")
    to_date: str = Field(alias="to")


class Broker(BaseModel):
    code: str
    name: str
    group: str

    @classmethod
    def from_raw(cls, raw: RawPayload) -> "Broker":
        return cls(
            code=raw.get("code", ""),
            name=raw.get("name", ""),
            group=raw.get("group", ""),
        )


def net_flow(buy_volume: float, sell_volume: float, buy_value: float, sell_value: float) -> Dict[str, Any]:
    """Buy/sell totals plus derived nets and status, ready to unpack into a model."""
    net_volume = buy_volume - sell_volume
    return {
        "buy_volume": buy_volume,
        "sell_volume": sell_volume,
        "net_volume": net_volume,
        "buy_value": buy_value,
        "sell_value": sell_value,
        "net_value": buy_value - sell_value,
        "status": TradingStatus.from_net_volume(net_volume),
    }


class EmitenSummary(BaseModel):
    """Net buy/sell totals of one broker in one emiten over a period"""
    emiten: str
    buy_volume: float
    sell_volume: float
    net_volume: float
    buy_value: float
    sell_value: float
    net_value: float
    status: TradingStatus

    @classmethod
    def create(cls, emiten: str, buy_volume: float, sell_volume: float,
               buy_value: float, sell_value: float) -> "EmitenSummary":
        return cls(emiten=emiten, **net_flow(buy_volume, sell_volume, buy_value, sell_value))


class EmitenDetail(BaseModel):
    """Net buy/sell totals of one broker in one emiten on one date"""
    date: str
    buy_volume: float
    sell_volume: float
    net_volume: float
    buy_value: float
    sell_value: float
    net_value: float
    status: TradingStatus

    @classmethod
    def create(cls, date: str, buy_volume: float, sell_volume: float,
               buy_value: float, sell_value: float) -> "EmitenDetail":
        return cls(date=date, **net_flow(buy_volume, sell_volume, buy_value, sell_value))


class BrokerActionSummary(BaseModel):
    broker: str
    period: Period
    data: List[EmitenSummary]


class BrokerEmitenDetail(BaseModel):
    broker: str
    emiten: str
    period: Period
    calendar: List[EmitenDetail]


# --- Emiten broker summary ---

class EmitenBrokerBuy(BaseModel):
    broker_code: str
    buy_volume: float
    buy_volume_avg: float
    buy_value: float
    buy_value_avg: float
    avg_price: float
    type: str
    date: str
    stock_code: str

    @classmethod
    def from_raw(cls, raw: RawPayload) -> "EmitenBrokerBuy":
        return cls(
            broker_code=raw.get("netbs_broker_code", ""),
            buy_volume=float(raw.get("blot") or 0),
            buy_volume_avg=float(raw.get("blotv") or 0),
            buy_value=float(raw.get("bval") or 0),
            buy_value_avg=float(raw.get("bvalv") or 0),
            avg_price=float(raw.get("netbs_buy_avg_price") or 0),
            type=raw.get("type", ""),
            date=raw.get("netbs_date", ""),
            stock_code=raw.get("netbs_stock_code", ""),
        )


class EmitenBrokerSell(BaseModel):
    broker_code: str
    sell_volume: float
    sell_volume_avg: float
    sell_value: float
    sell_value_avg: float
    avg_price: float
    type: str
    date: str
    stock_code: str

    @classmethod
    def from_raw(cls, raw: RawPayload) -> "EmitenBrokerSell":
        # Upstream reports sell lot/value as negative numbers
        return cls(
            broker_code=raw.get("netbs_broker_code", ""),
            sell_volume=abs(float(raw.get("slot") or 0)),
            sell_volume_avg=float(raw.get("slotv") or 0),
            sell_value=abs(float(raw.get("sval") or 0)),
            sell_value_avg=float(raw.get("svalv") or 0),
            avg_price=float(raw.get("netbs_sell_avg_price") or 0),
            type=raw.get("type", ""),
            date=raw.get("netbs_date", ""),
            stock_code=raw.get("netbs_stock_code", ""),
        )


class EmitenBrokerSummary(BaseModel):
    symbol: str
    period: Period
    brokers_buy: List[EmitenBrokerBuy]
    brokers_sell: List[EmitenBrokerSell]


# --- Broker action calendar ---

class BrokerActionData(BaseModel):
    value: float
    value_formatted: str
    volume: float
    volume_formatted: str


class SignalData(BaseModel):
    trend: Trend
    strength: Strength
    note: str


class CalendarDateData(BaseModel):
    date: str
    close_price: float
    close_price_formatted: str
    total_value: float
    total_value_formatted: str
    total_volume: float
    total_volume_formatted: str
    signal: SignalData
    brokers: Dict[str, BrokerActionData]


class PriceMovement(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start: float = Field(alias="from")
    end: float = Field(alias="to")
    change: float
    change_pct: float


class CalendarSummary(BaseModel):
    total_buy_value: float
    total_buy_value_formatted: str
    total_buy_volume: float
    total_buy_volume_formatted: str
    total_sell_value: float
    total_sell_value_formatted: str
    total_sell_volume: float
    total_sell_volume_formatted: str
    total_value: float
    total_value_formatted: str
    total_volume: float
    total_volume_formatted: str
    trend: Trend
    strength: Strength
    dominant_brokers: List[str]
    distribution_brokers: List[str]
    price_movement: PriceMovement
    note: str


class BrokerActionCalendar(BaseModel):
    symbol: str
    brokers: List[str]
    range: Period
    summary: CalendarSummary
    data: List[CalendarDateData]
