# Broker flow domain: models, validation and repository contracts
from .formatting import format_number
from .models import (
    Broker,
    BrokerActionCalendar,
    BrokerActionSummary,
    BrokerEmitenDetail,
    EmitenBrokerSummary,
    EmitenDetail,
    EmitenSummary,
    Period,
    RawPayload,
    Strength,
    TradingStatus,
    Trend,
)
from .repositories import (
    BrokerActionCalendarRepository,
    BrokerActivityRepository,
    BrokerRepository,
    EmitenBrokerSummaryRepository,
)

__all__ = [
    "format_number",
    "Broker",
    "BrokerActionCalendar",
    "BrokerActionSummary",
    "BrokerEmitenDetail",
    "EmitenBrokerSummary",
    "EmitenDetail",
    "EmitenSummary",
    "Period",
    "RawPayload",
    "Strength",
    "TradingStatus",
    "Trend",
    "BrokerActionCalendarRepository",
    "BrokerActivityRepository",
    "BrokerRepository",
    "EmitenBrokerSummaryRepository",
]
