from fastapi import APIRouter, Depends

from api.dependencies import get_all_brokers_use_case
from api.schemas.responses import BrokerListResponse
from services.brokerage import GetAllBrokersUseCase

router = APIRouter(prefix="/brokers", tags=["Brokers"])


@router.get("", response_model=BrokerListResponse)
async def list_brokers(
    use_case: GetAllBrokersUseCase = Depends(get_all_brokers_use_case)
):
    """List every broker known to the upstream directory."""
    return BrokerListResponse(data=await use_case.execute())
