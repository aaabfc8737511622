"""DI container. Wire via init_container(); endpoints use Depends(Provide[Container.*])."""
from typing import Annotated

from dependency_injector import containers, providers
from dependency_injector.wiring import Provide
from fastapi import Depends

from price_watch.config import Settings
from price_watch.core import WatcherErrorMapper
from price_watch.db.repository import WatcherRepository
from price_watch.db.sessions import create_db_engine
from price_watch.providers import (CoinGeckoHistorySource, ExplorerClient,
                                   FcmPushTransport, LoggingPushTransport,
                                   PushTransportABC, SpotPriceSource)
from price_watch.services import (AddressReconciler, AlertEngine,
                                  ExplorerKeepAlive, NotificationDispatcher,
                                  PriceCache, PriceRefresher, TaskSupervisor,
                                  WatcherService)


def create_push_transport(settings: Settings) -> PushTransportABC:
    """FCM when configured; otherwise the logging transport for development."""
    if settings.push_transport.lower() == "fcm":
        return FcmPushTransport(
            settings.fcm_project_id,
            settings.fcm_access_token,
            timeout=settings.http_timeout_seconds,
        )
    return LoggingPushTransport()


def create_supervisor(
    settings: Settings,
    refresher: PriceRefresher,
    alert_engine: AlertEngine,
    keep_alive: ExplorerKeepAlive,
) -> TaskSupervisor:
    """Register one background task per refresh / tick / keep-alive responsibility."""
    supervisor = TaskSupervisor()
    supervisor.add_periodic("spot-price", refresher.refresh_spot, settings.spot_refresh_seconds)
    supervisor.add_periodic(
        "price-history", refresher.refresh_history, settings.history_refresh_seconds
    )
    supervisor.add_periodic(
        "alert-tick",
        alert_engine.run_tick,
        settings.alert_tick_seconds,
        run_immediately=False,
    )
    if settings.explorer_url:
        supervisor.add("explorer-keep-alive", keep_alive.run)
    return supervisor


class Container(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(
        modules=[
            "price_watch.routers.watchers",
        ]
    )

    settings = providers.Singleton(Settings.from_env)

    engine = providers.Singleton(
        create_db_engine,
        settings.provided.database_url,
        echo=settings.provided.sql_echo,
    )
    repository = providers.Singleton(WatcherRepository, engine)
    price_cache = providers.Singleton(PriceCache)

    spot_source = providers.Singleton(
        SpotPriceSource,
        settings.provided.token_price_url,
        timeout=settings.provided.http_timeout_seconds,
    )
    history_source = providers.Singleton(
        CoinGeckoHistorySource,
        settings.provided.coingecko_coin_id,
        api_key=settings.provided.coingecko_api_key,
        base_url=settings.provided.coingecko_base_url,
        timeout=settings.provided.http_timeout_seconds,
    )
    explorer = providers.Singleton(
        ExplorerClient,
        settings.provided.explorer_url,
        settings.provided.explorer_token,
        timeout=settings.provided.http_timeout_seconds,
    )
    push_transport = providers.Singleton(create_push_transport, settings)

    dispatcher = providers.Singleton(
        NotificationDispatcher,
        push_transport,
        settings.provided.android_channel_name,
    )
    refresher = providers.Singleton(PriceRefresher, price_cache, spot_source, history_source)
    alert_engine = providers.Singleton(AlertEngine, price_cache, repository, dispatcher)
    reconciler = providers.Singleton(AddressReconciler, repository, explorer)
    watcher_service = providers.Singleton(WatcherService, repository, price_cache, reconciler)
    keep_alive = providers.Singleton(
        ExplorerKeepAlive,
        explorer,
        repository,
        settings.provided.callback_url,
        interval=settings.provided.keep_alive_seconds,
        max_retries=settings.provided.keep_alive_retries,
        retry_interval=settings.provided.keep_alive_retry_seconds,
    )
    supervisor = providers.Singleton(
        create_supervisor, settings, refresher, alert_engine, keep_alive
    )
    error_mapper = providers.Singleton(WatcherErrorMapper)


# Type aliases for route injection (avoid repeating Annotated[...] in every route)
WatcherServiceDep = Annotated[WatcherService, Depends(Provide[Container.watcher_service])]
ErrorMapperDep = Annotated[WatcherErrorMapper, Depends(Provide[Container.error_mapper])]


def init_container(settings: Settings | None = None) -> Container:
    """Create container and wire to router modules."""
    container = Container()
    if settings is not None:
        container.settings.override(providers.Object(settings))
    container.wire()
    return container
