import asyncio
import contextlib
import logging
from time import time
from typing import (
    Optional,
)
from aio_statsd import TelegrafStatsdClient
from aiohttp import web
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)
import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from social.graze.oauthlink.app.config import (
    AccountStoreAppKey,
    DatabaseAppKey,
    DatabaseSessionMakerAppKey,
    HealthGaugeAppKey,
    ReconciliationServiceAppKey,
    Settings,
    SettingsAppKey,
    TelegrafStatsdClientAppKey,
    TickHealthTaskAppKey,
)
from social.graze.oauthlink.app.handlers.internal import (
    handle_internal_alive,
    handle_internal_ready,
)
from social.graze.oauthlink.app.handlers.reconcile import (
    handle_internal_providers,
    handle_internal_reconcile,
)
from social.graze.oauthlink.app.tasks import tick_health_task
from social.graze.oauthlink.model.health import HealthGauge
from social.graze.oauthlink.reconcile.postgres import PostgresAccountStore
from social.graze.oauthlink.reconcile.service import ReconciliationService
from social.graze.oauthlink.reconcile.store import AccountStore

logger = logging.getLogger(__name__)


async def background_tasks(app):
    logger.info("Starting up")
    settings: Settings = app[SettingsAppKey]

    engine = None
    if AccountStoreAppKey not in app:
        engine = create_async_engine(str(settings.pg_dsn))
        app[DatabaseAppKey] = engine
        database_session = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )
        app[DatabaseSessionMakerAppKey] = database_session
        app[AccountStoreAppKey] = PostgresAccountStore(
            database_session, settings.encryption_key
        )

    if TelegrafStatsdClientAppKey not in app:
        statsd_client = TelegrafStatsdClient(
            host=settings.statsd_host, port=settings.statsd_port, debug=settings.debug
        )
        await statsd_client.connect()
        app[TelegrafStatsdClientAppKey] = statsd_client

    app[ReconciliationServiceAppKey] = ReconciliationService(
        app[AccountStoreAppKey], app[TelegrafStatsdClientAppKey]
    )

    logger.info("Startup complete")

    app[TickHealthTaskAppKey] = asyncio.create_task(tick_health_task(app))

    yield

    logger.info("Shutting down background tasks")

    app[TickHealthTaskAppKey].cancel()

    with contextlib.suppress(asyncio.exceptions.CancelledError):
        await app[TickHealthTaskAppKey]

    if engine is not None:
        await engine.dispose()
    await app[TelegrafStatsdClientAppKey].close()


@web.middleware
async def sentry_middleware(request: web.Request, handler):
    try:
        response = await handler(request)
        return response
    except Exception as e:
        sentry_sdk.capture_exception(e)
        raise e


@web.middleware
async def statsd_middleware(request: web.Request, handler):
    statsd_client = request.app[TelegrafStatsdClientAppKey]
    request_method: str = request.method
    request_path = request.path

    start_time: float = time()
    response_status_code = 0

    try:
        response = await handler(request)
        response_status_code = response.status
        return response
    except Exception as e:
        statsd_client.increment(
            "oauthlink.server.request.exception",
            1,
            tag_dict={
                "exception": type(e).__name__,
                "path": request_path,
                "method": request_method,
            },
        )
        raise e
    finally:
        statsd_client.timer(
            "oauthlink.server.request.time",
            time() - start_time,
            tag_dict={"path": request_path, "method": request_method},
        )
        statsd_client.increment(
            "oauthlink.server.request.count",
            1,
            tag_dict={
                "path": request_path,
                "method": request_method,
                "status": response_status_code,
            },
        )


async def start_web_server(
    settings: Optional[Settings] = None,
    account_store: Optional[AccountStore] = None,
    statsd_client: Optional[TelegrafStatsdClient] = None,
):
    """
    Build the internal API application.

    The account store and metrics client are created on startup from the settings
    unless they are passed in.
    """

    if settings is None:
        settings = Settings()  # type: ignore
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            send_default_pii=False,
            integrations=[AioHttpIntegration()],
        )
    app = web.Application(middlewares=[statsd_middleware, sentry_middleware])

    app[SettingsAppKey] = settings
    app[HealthGaugeAppKey] = HealthGauge()

    if account_store is not None:
        app[AccountStoreAppKey] = account_store
    if statsd_client is not None:
        app[TelegrafStatsdClientAppKey] = statsd_client

    app.add_routes(
        [
            web.get("/internal/alive", handle_internal_alive),
            web.get("/internal/ready", handle_internal_ready),
            web.get("/internal/api/providers", handle_internal_providers),
            web.post("/internal/api/reconcile", handle_internal_reconcile),
        ]
    )

    app.cleanup_ctx.append(background_tasks)

    return app
