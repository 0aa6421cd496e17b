from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from core.brokerage import Broker


class ErrorResponse(BaseModel):
    """Error response model"""
    error: str
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str


class BrokerListResponse(BaseModel):
    data: List[Broker]


class AccessTokenStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = Field(None, description="Masked token: first and last four characters")
    is_set: bool = Field(alias="isSet")


class ConfigActionResponse(BaseModel):
    success: bool
    message: str
