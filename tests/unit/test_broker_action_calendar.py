import pytest

from core.brokerage import BrokerActionCalendarRepository, Strength, Trend
from core.utils.exceptions import ValidationError
from services.brokerage import GetBrokerActionCalendarUseCase
from services.brokerage.calendar import (
    build_calendar_days,
    classify,
    daily_signal,
    price_movement,
    summarize,
    summary_note,
)
from tests.mocks.mock_stockbit_api import load_payload


class StaticCalendarRepository(BrokerActionCalendarRepository):
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    async def get_calendar(self, symbol, broker_codes, from_date, to_date):
        self.calls.append((symbol, list(broker_codes), from_date, to_date))
        return self.payload


def point(date, raw, formatted=""):
    return {"date": date, "time": "16:00", "value": {"raw": str(raw), "formatted": formatted}}


@pytest.fixture
def chart():
    return load_payload("order-trade-running-trade-chart")["data"]


def test_days_join_price_value_and_volume(chart):
    days = build_calendar_days(chart)

    assert [d.date for d in days] == ["2024-01-15", "2024-01-16", "2024-01-17"]
    first = days[0]
    assert first.close_price == 9_400
    assert first.close_price_formatted == "9,400"
    assert first.total_value == 1_600_000_000
    assert first.total_value_formatted == "1.6B"
    assert first.total_volume == 1_700
    assert first.brokers["AK"].value_formatted == "2.5B"
    assert first.brokers["YP"].volume == -960
    assert first.signal.trend is Trend.ACCUMULATION
    assert first.signal.strength is Strength.MODERATE
    assert first.signal.note == "Pullback with sustained buying interest"
    assert days[1].signal.note == "Strong breakout with heavy institutional accumulation"


def test_points_outside_price_dates_are_ignored():
    raw = {
        "price_chart_data": [point("2024-01-15", 100)],
        "broker_chart_data": [
            {"type": "TYPE_CHART_VALUE", "charts": [
                {"broker_code": "AK", "chart": [point("2024-01-15", 10), point("2024-01-16", 99)]},
            ]},
            {"type": "TYPE_CHART_VOLUME", "charts": [
                {"broker_code": "AK", "chart": [point("2024-01-15", 1)]},
                {"broker_code": "ZZ", "chart": [point("2024-01-15", 7)]},
            ]},
        ],
    }

    days = build_calendar_days(raw)

    assert len(days) == 1
    assert list(days[0].brokers) == ["AK"]
    # volume without a matching value entry is dropped
    assert days[0].total_volume == 1


def test_day_without_broker_flow_is_neutral():
    days = build_calendar_days({"price_chart_data": [point("2024-01-15", 100)], "broker_chart_data": []})

    assert days[0].signal.trend is Trend.NEUTRAL
    assert days[0].signal.strength is Strength.WEAK
    assert days[0].signal.note == "Balanced trading activity"
    assert days[0].total_value_formatted == "0.0"


@pytest.mark.parametrize(
    "values, total, expected",
    [
        ([400, -100], 300, (Trend.ACCUMULATION, Strength.STRONG)),
        ([200, -100], 100, (Trend.ACCUMULATION, Strength.MODERATE)),
        ([140, -100], 40, (Trend.ACCUMULATION, Strength.WEAK)),
        ([100, -400], -300, (Trend.DISTRIBUTION, Strength.STRONG)),
        ([100, -200], -100, (Trend.DISTRIBUTION, Strength.MODERATE)),
        ([100, -120], -20, (Trend.DISTRIBUTION, Strength.WEAK)),
        ([100, -100], 0, (Trend.NEUTRAL, Strength.WEAK)),
    ],
)
def test_classify_thresholds(values, total, expected):
    assert classify(values, total) == expected


def test_daily_distribution_notes():
    assert daily_signal([100, -400], -300).note == "Heavy institutional selling pressure"
    assert daily_signal([100, -200], -100).note == "Selling pressure dominant, early distribution"
    assert daily_signal([100, -120], -20).note == "Mild distribution detected"


@pytest.mark.parametrize(
    "trend, strength, change_pct, expected",
    [
        (Trend.ACCUMULATION, Strength.STRONG, 6, "Strong accumulation phase with significant price gain; smart money aggressively buying"),
        (Trend.ACCUMULATION, Strength.STRONG, -1, "Heavy accumulation despite price decline; potential bottom formation"),
        (Trend.ACCUMULATION, Strength.STRONG, 2, "Weak accumulation detected; market consolidation likely"),
        (Trend.ACCUMULATION, Strength.MODERATE, 1, "Moderate accumulation with healthy price appreciation"),
        (Trend.ACCUMULATION, Strength.MODERATE, -1, "Accumulation phase with mild pullback; smart money still dominant"),
        (Trend.DISTRIBUTION, Strength.STRONG, -6, "Heavy distribution with significant price decline; smart money exiting"),
        (Trend.DISTRIBUTION, Strength.STRONG, 1, "Strong distribution despite price gain; potential distribution pattern"),
        (Trend.DISTRIBUTION, Strength.MODERATE, -1, "Moderate distribution with declining price trend"),
        (Trend.DISTRIBUTION, Strength.WEAK, -1, "Distribution phase with mixed signals; caution advised"),
        (Trend.NEUTRAL, Strength.WEAK, 10, "Neutral market conditions; balanced buying and selling pressure"),
    ],
)
def test_summary_notes(trend, strength, change_pct, expected):
    assert summary_note(trend, strength, change_pct) == expected


def test_price_movement_uses_date_order_and_rounds():
    raw = {"price_chart_data": [point("2024-01-17", 110), point("2024-01-15", 90), point("2024-01-16", 95)]}
    movement = price_movement(build_calendar_days(raw))

    assert movement.model_dump(by_alias=True) == {"from": 90, "to": 110, "change": 20, "change_pct": 22.22}


def test_price_movement_edge_cases():
    assert price_movement([]).change_pct == 0
    zero_start = build_calendar_days({"price_chart_data": [point("2024-01-15", 0), point("2024-01-16", 10)]})
    assert price_movement(zero_start).change_pct == 0


def test_summary_totals_and_broker_ranking(chart):
    summary = summarize(build_calendar_days(chart), ["AK", "YP", "CC"])

    assert summary.total_buy_value == 12_900_000_000
    assert summary.total_sell_value == 2_800_000_000
    assert summary.total_value == 10_100_000_000
    assert summary.total_buy_volume == 13_330
    assert summary.total_sell_volume == 2_930
    assert summary.total_volume_formatted == "10.4K"
    assert summary.dominant_brokers == ["AK"]
    assert summary.distribution_brokers == ["YP"]
    assert summary.trend is Trend.ACCUMULATION
    assert summary.strength is Strength.STRONG
    assert summary.price_movement.change_pct == 5.05
    assert summary.note.startswith("Strong accumulation phase")


def test_ranking_orders_by_net_value():
    raw = {
        "price_chart_data": [point("2024-01-15", 100)],
        "broker_chart_data": [{"type": "TYPE_CHART_VALUE", "charts": [
            {"broker_code": "AA", "chart": [point("2024-01-15", 10)]},
            {"broker_code": "BB", "chart": [point("2024-01-15", 30)]},
            {"broker_code": "CC", "chart": [point("2024-01-15", -5)]},
            {"broker_code": "DD", "chart": [point("2024-01-15", -50)]},
            {"broker_code": "EE", "chart": [point("2024-01-15", 1_000)]},
        ]}],
    }

    # EE is not requested so it is left out of the ranking but still counts in totals
    summary = summarize(build_calendar_days(raw), ["AA", "BB", "CC", "DD"])

    assert summary.dominant_brokers == ["BB", "AA"]
    assert summary.distribution_brokers == ["DD", "CC"]
    assert summary.total_buy_value == 1_040


@pytest.mark.asyncio
async def test_use_case_builds_full_calendar(chart):
    repository = StaticCalendarRepository(chart)

    result = await GetBrokerActionCalendarUseCase(repository).execute(
        "BBCA", ["AK", "YP"], "2024-01-15", "2024-01-17"
    )
    dumped = result.model_dump(by_alias=True, mode="json")

    assert repository.calls == [("BBCA", ["AK", "YP"], "2024-01-15", "2024-01-17")]
    assert dumped["symbol"] == "BBCA"
    assert dumped["brokers"] == ["AK", "YP"]
    assert dumped["range"] == {"from": "2024-01-15", "to": "2024-01-17"}
    assert dumped["summary"]["trend"] == "accumulation"
    assert dumped["summary"]["price_movement"]["from"] == 9_400
    assert len(dumped["data"]) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "symbol, brokers, message",
    [
        ("", ["AK"], "Missing required parameter: symbol is required"),
        ("BBCA", [], "Missing required parameter: brokers must not be empty"),
        ("BBCA", ["A"], "Invalid broker code format. Must be alphanumeric and at least 2 characters"),
    ],
)
async def test_use_case_validation(chart, symbol, brokers, message):
    repository = StaticCalendarRepository(chart)

    with pytest.raises(ValidationError) as exc_info:
        await GetBrokerActionCalendarUseCase(repository).execute(symbol, brokers, "2024-01-15", "2024-01-17")

    assert exc_info.value.message == message
    assert repository.calls == []
