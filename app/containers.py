from dependency_injector import containers, providers

from core.config.settings import Settings
from core.storage import InMemoryStorage, InMemoryStorageWithTTL, StorageOptions
from core.storage.helpers import RateLimiter
from services.brokerage import (
    GetAllBrokersUseCase,
    GetBrokerActionCalendarUseCase,
    GetBrokerActionSummaryUseCase,
    GetBrokerEmitenDetailUseCase,
    GetEmitenBrokerSummaryUseCase,
)
from services.config import (
    ConfigStorage,
    DeleteAccessTokenUseCase,
    GetAccessTokenUseCase,
    SetAccessTokenUseCase,
)
from services.stockbit import (
    StockbitBrokerActionCalendarRepository,
    StockbitBrokerActivityRepository,
    StockbitBrokerRepository,
    StockbitClient,
    StockbitEmitenBrokerSummaryRepository,
)


def create_nonce_storage(settings: Settings) -> InMemoryStorageWithTTL:
    return InMemoryStorageWithTTL(StorageOptions(
        max_size=settings.nonce.max_size,
        default_ttl_ms=settings.nonce.ttl_ms,
        cleanup_interval_ms=settings.nonce.cleanup_interval_ms,
        auto_cleanup=True,
    ))


def create_cache_storage(settings: Settings) -> InMemoryStorageWithTTL:
    return InMemoryStorageWithTTL(StorageOptions(
        max_size=settings.cache.max_size,
        default_ttl_ms=settings.cache.default_ttl_ms,
        cleanup_interval_ms=settings.cache.cleanup_interval_ms,
        auto_cleanup=settings.cache.enabled,
    ))


def create_rate_limit_storage(settings: Settings) -> InMemoryStorageWithTTL:
    return InMemoryStorageWithTTL(StorageOptions(
        default_ttl_ms=settings.rate_limit.window_ms,
        cleanup_interval_ms=settings.rate_limit.cleanup_interval_ms,
        auto_cleanup=settings.rate_limit.enabled,
    ))


class AppContainer(containers.DeclarativeContainer):
    """Application dependency injection container"""

    # Configuration
    settings = providers.Singleton(Settings)

    # --- Process-wide stores ---
    nonce_storage = providers.Singleton(create_nonce_storage, settings=settings)
    cache_storage = providers.Singleton(create_cache_storage, settings=settings)
    rate_limit_storage = providers.Singleton(create_rate_limit_storage, settings=settings)
    config_store = providers.Singleton(InMemoryStorage)

    rate_limiter = providers.Singleton(
        RateLimiter,
        storage=rate_limit_storage,
        max_requests=settings.provided.rate_limit.max_requests,
        window_ms=settings.provided.rate_limit.window_ms,
    )

    # Runtime configuration
    config_storage = providers.Singleton(ConfigStorage, storage=config_store)

    # --- Upstream ---
    stockbit_client = providers.Singleton(
        StockbitClient,
        settings=settings,
        token_provider=config_storage.provided.get_access_token,
        cache=cache_storage,
    )

    broker_repository = providers.Singleton(StockbitBrokerRepository, client=stockbit_client)
    broker_activity_repository = providers.Singleton(StockbitBrokerActivityRepository, client=stockbit_client)
    broker_action_calendar_repository = providers.Singleton(
        StockbitBrokerActionCalendarRepository,
        client=stockbit_client,
    )
    emiten_broker_summary_repository = providers.Singleton(
        StockbitEmitenBrokerSummaryRepository,
        client=stockbit_client,
    )

    # --- Use cases ---
    get_all_brokers = providers.Singleton(GetAllBrokersUseCase, broker_repository=broker_repository)
    get_broker_action_summary = providers.Singleton(
        GetBrokerActionSummaryUseCase,
        activity_repository=broker_activity_repository,
    )
    get_broker_emiten_detail = providers.Singleton(
        GetBrokerEmitenDetailUseCase,
        activity_repository=broker_activity_repository,
    )
    get_broker_action_calendar = providers.Singleton(
        GetBrokerActionCalendarUseCase,
        calendar_repository=broker_action_calendar_repository,
    )
    get_emiten_broker_summary = providers.Singleton(
        GetEmitenBrokerSummaryUseCase,
        summary_repository=emiten_broker_summary_repository,
    )

    set_access_token = providers.Singleton(SetAccessTokenUseCase, config_storage=config_storage)
    get_access_token = providers.Singleton(GetAccessTokenUseCase, config_storage=config_storage)
    delete_access_token = providers.Singleton(DeleteAccessTokenUseCase, config_storage=config_storage)

    # Stores whose cleanup threads must be stopped on shutdown
    expiring_stores = providers.List(nonce_storage, cache_storage, rate_limit_storage)
