from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_emiten_broker_summary_use_case
from core.brokerage import EmitenBrokerSummary
from core.utils.exceptions import ValidationError
from services.brokerage import GetEmitenBrokerSummaryUseCase

router = APIRouter(tags=["Emiten"])


@router.get("/emiten-broker-summary", response_model=EmitenBrokerSummary)
async def get_emiten_broker_summary(
    symbol: Optional[str] = Query(None, description="Four-letter ticker, e.g. BBCA"),
    from_date: Optional[str] = Query(None, alias="from"),
    to_date: Optional[str] = Query(None, alias="to"),
    use_case: GetEmitenBrokerSummaryUseCase = Depends(get_emiten_broker_summary_use_case),
):
    """Brokers ranked by buy and by sell activity in one emiten."""
    if not symbol or not from_date or not to_date:
        raise ValidationError("Missing required query parameters: symbol, from, and to are required")
    return await use_case.execute(symbol, from_date, to_date)
