"""
Broker action calendar.

Joins the daily close price series with the per-broker net value and volume
series of an emiten, classifies every day as accumulation, distribution or
neutral, and derives an overall verdict for the whole range.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from core.brokerage import (
    BrokerActionCalendar,
    BrokerActionCalendarRepository,
    Period,
    RawPayload,
    Strength,
    Trend,
    format_number,
)
from core.brokerage.models import (
    BrokerActionData,
    CalendarDateData,
    CalendarSummary,
    PriceMovement,
    SignalData,
)
from core.brokerage.validation import validate_broker_code, validate_date_range
from core.logging import get_logger
from core.utils.exceptions import ValidationError

logger = get_logger(__name__, component="brokerage")

CHART_VALUE = "TYPE_CHART_VALUE"
CHART_VOLUME = "TYPE_CHART_VOLUME"

STRONG_RATIO = 3.0
MODERATE_RATIO = 1.5

DAILY_NOTES = {
    (Trend.ACCUMULATION, Strength.STRONG): "Strong breakout with heavy institutional accumulation",
    (Trend.ACCUMULATION, Strength.MODERATE): "Pullback with sustained buying interest",
    (Trend.ACCUMULATION, Strength.WEAK): "Mild accumulation detected",
    (Trend.DISTRIBUTION, Strength.STRONG): "Heavy institutional selling pressure",
    (Trend.DISTRIBUTION, Strength.MODERATE): "Selling pressure dominant, early distribution",
    (Trend.DISTRIBUTION, Strength.WEAK): "Mild distribution detected",
}
NEUTRAL_NOTE = "Balanced trading activity"


def _split_flows(values: Iterable[float]) -> Tuple[float, float]:
    """Return (buy total, absolute sell total) of signed broker values."""
    values = list(values)
    buy = sum(v for v in values if v > 0)
    sell = abs(sum(v for v in values if v < 0))
    return buy, sell


def classify(values: Iterable[float], total_value: float) -> Tuple[Trend, Strength]:
    """Trend follows the sign of the net flow; strength is how lopsided buy vs sell is."""
    buy, sell = _split_flows(values)
    if total_value > 0:
        dominant, other, trend = buy, sell, Trend.ACCUMULATION
    elif total_value < 0:
        dominant, other, trend = sell, buy, Trend.DISTRIBUTION
    else:
        return Trend.NEUTRAL, Strength.WEAK

    if dominant > other * STRONG_RATIO:
        return trend, Strength.STRONG
    if dominant > other * MODERATE_RATIO:
        return trend, Strength.MODERATE
    return trend, Strength.WEAK


def daily_signal(values: Iterable[float], total_value: float) -> SignalData:
    trend, strength = classify(values, total_value)
    return SignalData(trend=trend, strength=strength, note=DAILY_NOTES.get((trend, strength), NEUTRAL_NOTE))


def summary_note(trend: Trend, strength: Strength, change_pct: float) -> str:
    if trend is Trend.ACCUMULATION:
        if strength is Strength.STRONG and change_pct > 5:
            return "Strong accumulation phase with significant price gain; smart money aggressively buying"
        if strength is Strength.STRONG and change_pct < 0:
            return "Heavy accumulation despite price decline; potential bottom formation"
        if strength is Strength.MODERATE and change_pct > 0:
            return "Moderate accumulation with healthy price appreciation"
        if strength is Strength.MODERATE and change_pct < 0:
            return "Accumulation phase with mild pullback; smart money still dominant"
        return "Weak accumulation detected; market consolidation likely"

    if trend is Trend.DISTRIBUTION:
        if strength is Strength.STRONG and change_pct < -5:
            return "Heavy distribution with significant price decline; smart money exiting"
        if strength is Strength.STRONG and change_pct > 0:
            return "Strong distribution despite price gain; potential distribution pattern"
        if strength is Strength.MODERATE and change_pct < 0:
            return "Moderate distribution with declining price trend"
        return "Distribution phase with mixed signals; caution advised"

    return "Neutral market conditions; balanced buying and selling pressure"


def price_movement(days: Sequence[CalendarDateData]) -> PriceMovement:
    if not days:
        return PriceMovement(start=0, end=0, change=0, change_pct=0)

    ordered = sorted(days, key=lambda d: d.date)
    first = ordered[0].close_price
    last = ordered[-1].close_price
    change = last - first
    change_pct = (change / first) * 100 if first != 0 else 0
    return PriceMovement(start=first, end=last, change=change, change_pct=round(change_pct, 2))


def _chart(raw: RawPayload, chart_type: str) -> Optional[Dict[str, Any]]:
    return next((c for c in raw.get("broker_chart_data") or [] if c.get("type") == chart_type), None)


def _raw_number(point: Dict[str, Any]) -> float:
    raw = (point.get("value") or {}).get("raw")
    return float(raw) if raw not in (None, "") else 0.0


def _formatted(point: Dict[str, Any]) -> str:
    return (point.get("value") or {}).get("formatted", "")


def build_calendar_days(raw: RawPayload) -> List[CalendarDateData]:
    """One entry per price point date; broker points on other dates are ignored."""
    days: Dict[str, Dict[str, Any]] = {}
    for point in raw.get("price_chart_data") or []:
        days[point["date"]] = {
            "date": point["date"],
            "close_price": _raw_number(point),
            "close_price_formatted": _formatted(point),
            "total_value": 0.0,
            "total_volume": 0.0,
            "brokers": {},
        }

    value_chart = _chart(raw, CHART_VALUE)
    if value_chart:
        for series in value_chart.get("charts") or []:
            code = series.get("broker_code", "")
            for point in series.get("chart") or []:
                day = days.get(point.get("date"))
                if day is None:
                    continue
                value = _raw_number(point)
                day["brokers"][code] = {
                    "value": value,
                    "value_formatted": _formatted(point),
                    "volume": 0.0,
                    "volume_formatted": "",
                }
                day["total_value"] += value

    # Volume only attaches to brokers that already have a value on that date
    volume_chart = _chart(raw, CHART_VOLUME)
    if volume_chart:
        for series in volume_chart.get("charts") or []:
            code = series.get("broker_code", "")
            for point in series.get("chart") or []:
                day = days.get(point.get("date"))
                if day is None or code not in day["brokers"]:
                    continue
                volume = _raw_number(point)
                day["brokers"][code]["volume"] = volume
                day["brokers"][code]["volume_formatted"] = _formatted(point)
                day["total_volume"] += volume

    result = []
    for day in days.values():
        brokers = {code: BrokerActionData(**data) for code, data in day["brokers"].items()}
        result.append(CalendarDateData(
            date=day["date"],
            close_price=day["close_price"],
            close_price_formatted=day["close_price_formatted"],
            total_value=day["total_value"],
            total_value_formatted=format_number(day["total_value"]),
            total_volume=day["total_volume"],
            total_volume_formatted=format_number(day["total_volume"]),
            signal=daily_signal((b.value for b in brokers.values()), day["total_value"]),
            brokers=brokers,
        ))
    return result


def summarize(days: Sequence[CalendarDateData], brokers: Sequence[str]) -> CalendarSummary:
    buy_value = buy_volume = sell_value = sell_volume = 0.0
    for day in days:
        for data in day.brokers.values():
            if data.value >= 0:
                buy_value += data.value
                buy_volume += data.volume
            else:
                sell_value += abs(data.value)
                sell_volume += abs(data.volume)

    total_value = buy_value - sell_value
    total_volume = buy_volume - sell_volume

    # Only requested brokers count towards the ranking
    broker_totals = {code: 0.0 for code in brokers}
    for day in days:
        for code, data in day.brokers.items():
            if code in broker_totals:
                broker_totals[code] += data.value

    dominant = sorted((c for c, v in broker_totals.items() if v > 0), key=lambda c: -broker_totals[c])
    distributing = sorted((c for c, v in broker_totals.items() if v < 0), key=lambda c: broker_totals[c])

    movement = price_movement(days)
    trend, strength = classify(broker_totals.values(), total_value)

    return CalendarSummary(
        total_buy_value=buy_value,
        total_buy_value_formatted=format_number(buy_value),
        total_buy_volume=buy_volume,
        total_buy_volume_formatted=format_number(buy_volume),
        total_sell_value=sell_value,
        total_sell_value_formatted=format_number(sell_value),
        total_sell_volume=sell_volume,
        total_sell_volume_formatted=format_number(sell_volume),
        total_value=total_value,
        total_value_formatted=format_number(total_value),
        total_volume=total_volume,
        total_volume_formatted=format_number(total_volume),
        trend=trend,
        strength=strength,
        dominant_brokers=dominant,
        distribution_brokers=distributing,
        price_movement=movement,
        note=summary_note(trend, strength, movement.change_pct),
    )


class GetBrokerActionCalendarUseCase:
    def __init__(self, calendar_repository: BrokerActionCalendarRepository):
        self.calendar_repository = calendar_repository

    @staticmethod
    def validate(symbol: str, brokers: Sequence[str], from_date: str, to_date: str) -> None:
        if not symbol or not symbol.strip():
            raise ValidationError("Missing required parameter: symbol is required", field="symbol")
        if not brokers:
            raise ValidationError("Missing required parameter: brokers must not be empty", field="broker_code")
        for broker in brokers:
            validate_broker_code(broker)
        validate_date_range(from_date, to_date)

    async def execute(self, symbol: str, brokers: Sequence[str], from_date: str, to_date: str) -> BrokerActionCalendar:
        self.validate(symbol, brokers, from_date, to_date)
        brokers = list(brokers)

        raw = await self.calendar_repository.get_calendar(symbol, brokers, from_date, to_date)
        days = build_calendar_days(raw)
        summary = summarize(days, brokers)
        logger.debug("Broker action calendar built", symbol=symbol, days=len(days), trend=summary.trend.value)

        return BrokerActionCalendar(
            symbol=symbol,
            brokers=brokers,
            range=Period(from_date=from_date, to_date=to_date),
            summary=summary,
            data=days,
        )
