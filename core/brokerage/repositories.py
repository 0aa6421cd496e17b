from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .models import Broker, RawPayload


class BrokerRepository(ABC):
    """Source of the broker directory"""

    @abstractmethod
    async def get_all(self) -> List[Broker]:
        pass

    async def get_by_code(self, code: str) -> Optional[Broker]:
        for broker in await self.get_all():
            if broker.code == code:
                return broker
        return None


class BrokerActivityRepository(ABC):
    @abstractmethod
    async def get_activity(self, broker_code: str, from_date: str, to_date: str) -> RawPayload:
        """Raw buy/sell activity of one broker, shaped like the upstream ``data`` object."""


class BrokerActionCalendarRepository(ABC):
    @abstractmethod
    async def get_calendar(self, symbol: str, broker_codes: Sequence[str],
                           from_date: str, to_date: str) -> RawPayload:
        """Raw price and per-broker chart series for one emiten."""


class EmitenBrokerSummaryRepository(ABC):
    @abstractmethod
    async def get_summary(self, symbol: str, from_date: str, to_date: str) -> RawPayload:
        """Raw broker buy/sell ranking for one emiten."""
