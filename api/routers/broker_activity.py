from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import (
    get_broker_action_calendar_use_case,
    get_broker_action_summary_use_case,
    get_broker_emiten_detail_use_case,
)
from core.brokerage import BrokerActionCalendar, BrokerActionSummary, BrokerEmitenDetail
from core.utils.exceptions import ValidationError
from services.brokerage import (
    GetBrokerActionCalendarUseCase,
    GetBrokerActionSummaryUseCase,
    GetBrokerEmitenDetailUseCase,
)

router = APIRouter(tags=["Broker Activity"])


@router.get("/broker-action-summary", response_model=BrokerActionSummary)
async def get_broker_action_summary(
    broker: Optional[str] = Query(None, description="Broker code, e.g. YP"),
    from_date: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD"),
    to_date: Optional[str] = Query(None, alias="to", description="YYYY-MM-DD"),
    use_case: GetBrokerActionSummaryUseCase = Depends(get_broker_action_summary_use_case),
):
    """Per-emiten buy/sell totals of one broker over a period."""
    if not broker or not from_date or not to_date:
        raise ValidationError("Missing required query parameters: broker, from, and to are required")
    return await use_case.execute(broker, from_date, to_date)


@router.get("/broker-emiten-detail", response_model=BrokerEmitenDetail)
async def get_broker_emiten_detail(
    broker: Optional[str] = Query(None),
    emiten: Optional[str] = Query(None),
    from_date: Optional[str] = Query(None, alias="from"),
    to_date: Optional[str] = Query(None, alias="to"),
    use_case: GetBrokerEmitenDetailUseCase = Depends(get_broker_emiten_detail_use_case),
):
    if not broker or not emiten or not from_date or not to_date:
        raise ValidationError(
            "Missing required query parameters: broker, emiten, from, and to are required"
        )
    return await use_case.execute(broker, emiten, from_date, to_date)


@router.get("/broker-action-calendar", response_model=BrokerActionCalendar)
async def get_broker_action_calendar(
    symbol: Optional[str] = Query(None),
    broker_code: Optional[List[str]] = Query(None, description="Repeat for several brokers"),
    from_date: Optional[str] = Query(None, alias="from"),
    to_date: Optional[str] = Query(None, alias="to"),
    use_case: GetBrokerActionCalendarUseCase = Depends(get_broker_action_calendar_use_case),
):
    """Daily broker net flow joined with close prices, plus an overall verdict."""
    if not symbol or not from_date or not to_date:
        raise ValidationError(
            "Missing required query parameters: symbol, broker_code (can be multiple), from, and to are required"
        )
    brokers = [code for code in broker_code or [] if code]
    if not brokers:
        raise ValidationError("Missing required query parameter: at least one broker_code is required")
    return await use_case.execute(symbol, brokers, from_date, to_date)
