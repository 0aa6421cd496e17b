from .client import StockbitClient
from .repositories import (
    StockbitBrokerActionCalendarRepository,
    StockbitBrokerActivityRepository,
    StockbitBrokerRepository,
    StockbitEmitenBrokerSummaryRepository,
)

__all__ = [
    "StockbitClient",
    "StockbitBrokerActionCalendarRepository",
    "StockbitBrokerActivityRepository",
    "StockbitBrokerRepository",
    "StockbitEmitenBrokerSummaryRepository",
]
