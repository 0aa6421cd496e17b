from .calendar import GetBrokerActionCalendarUseCase
from .use_cases import (
    GetAllBrokersUseCase,
    GetBrokerActionSummaryUseCase,
    GetBrokerEmitenDetailUseCase,
    GetEmitenBrokerSummaryUseCase,
)

__all__ = [
    "GetAllBrokersUseCase",
    "GetBrokerActionCalendarUseCase",
    "GetBrokerActionSummaryUseCase",
    "GetBrokerEmitenDetailUseCase",
    "GetEmitenBrokerSummaryUseCase",
]
