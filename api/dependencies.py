from fastapi import Depends
from dependency_injector.wiring import inject, Provide

from app.containers import AppContainer
from services.brokerage import (
    GetAllBrokersUseCase,
    GetBrokerActionCalendarUseCase,
    GetBrokerActionSummaryUseCase,
    GetBrokerEmitenDetailUseCase,
    GetEmitenBrokerSummaryUseCase,
)
from services.config import DeleteAccessTokenUseCase, GetAccessTokenUseCase, SetAccessTokenUseCase


# Brokerage use cases
@inject
def get_all_brokers_use_case(
    use_case: GetAllBrokersUseCase = Depends(Provide[AppContainer.get_all_brokers])
) -> GetAllBrokersUseCase:
    return use_case


@inject
def get_broker_action_summary_use_case(
    use_case: GetBrokerActionSummaryUseCase = Depends(Provide[AppContainer.get_broker_action_summary])
) -> GetBrokerActionSummaryUseCase:
    return use_case


@inject
def get_broker_emiten_detail_use_case(
    use_case: GetBrokerEmitenDetailUseCase = Depends(Provide[AppContainer.get_broker_emiten_detail])
) -> GetBrokerEmitenDetailUseCase:
    return use_case


@inject
def get_broker_action_calendar_use_case(
    use_case: GetBrokerActionCalendarUseCase = Depends(Provide[AppContainer.get_broker_action_calendar])
) -> GetBrokerActionCalendarUseCase:
    return use_case


@inject
def get_emiten_broker_summary_use_case(
    use_case: GetEmitenBrokerSummaryUseCase = Depends(Provide[AppContainer.get_emiten_broker_summary])
) -> GetEmitenBrokerSummaryUseCase:
    return use_case


# Runtime configuration use cases
@inject
def get_set_access_token_use_case(
    use_case: SetAccessTokenUseCase = Depends(Provide[AppContainer.set_access_token])
) -> SetAccessTokenUseCase:
    return use_case


@inject
def get_get_access_token_use_case(
    use_case: GetAccessTokenUseCase = Depends(Provide[AppContainer.get_access_token])
) -> GetAccessTokenUseCase:
    return use_case


@inject
def get_delete_access_token_use_case(
    use_case: DeleteAccessTokenUseCase = Depends(Provide[AppContainer.delete_access_token])
) -> DeleteAccessTokenUseCase:
    return use_case
