"""
Service Container

Builds and owns every long-lived object of an application instance:
engine, store, generator, geolocation client, lifecycle/stats/redirect
services, sweeper and authenticator.

Design:
- Built once on application startup and kept on `app.state.container`
- Endpoints reach services through FastAPI dependencies, never through
  module-level globals
- Tests build a container against a temporary database and attach it to
  the app directly
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from shortlinks.core.security import TokenAuthenticator
from shortlinks.core.setting import Settings, settings as default_settings
from shortlinks.db.session import create_engine_for_url, create_session_maker, create_tables
from shortlinks.db.store import ShortcodeStore
from shortlinks.services.background_tasks import start_expiry_sweeper, stop_background_task
from shortlinks.services.expiry_sweeper import ExpirySweeper
from shortlinks.services.geolocation import GeoLocationResolver
from shortlinks.services.redirect_service import RedirectService
from shortlinks.services.shortcode_generator import ShortcodeGenerator
from shortlinks.services.shortcode_service import ShortcodeService
from shortlinks.services.stats_service import StatsService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    engine: AsyncEngine
    store: ShortcodeStore
    generator: ShortcodeGenerator
    geolocation: GeoLocationResolver
    shortcodes: ShortcodeService
    stats: StatsService
    redirects: RedirectService
    sweeper: ExpirySweeper
    authenticator: TokenAuthenticator
    sweep_task: Optional[asyncio.Task] = None

    async def close(self) -> None:
        await stop_background_task(self.sweep_task)
        self.sweep_task = None
        await self.geolocation.close()
        await self.engine.dispose()


def build_container(
    config: Optional[Settings] = None,
    geolocation: Optional[GeoLocationResolver] = None,
) -> ServiceContainer:
    """
    Wire all services from settings.

    Args:
        config: Settings to use (defaults to the environment-loaded settings)
        geolocation: Resolver override (tests pass one with a mock transport)
    """
    config = config or default_settings

    engine = create_engine_for_url(config.DATABASE_URL)
    store = ShortcodeStore(create_session_maker(engine))

    generator = ShortcodeGenerator(
        length=config.SHORTCODE_LENGTH,
        allow_symbols=config.SHORTCODE_ALLOW_SYMBOLS,
        reserved=config.RESERVED_SHORTCODES,
    )
    geolocation = geolocation or GeoLocationResolver(
        service_url=config.GEOIP_SERVICE_URL,
        timeout=config.GEOIP_TIMEOUT_SECONDS,
        enabled=config.GEOIP_ENABLED,
    )
    shortcodes = ShortcodeService(
        store=store,
        generator=generator,
        base_url=config.BASE_URL,
        default_validity=config.DEFAULT_VALIDITY_MINUTES,
        max_validity=config.MAX_VALIDITY_MINUTES,
        max_attempts=config.SHORTCODE_MAX_ATTEMPTS,
        reserved=config.RESERVED_SHORTCODES,
    )

    return ServiceContainer(
        settings=config,
        engine=engine,
        store=store,
        generator=generator,
        geolocation=geolocation,
        shortcodes=shortcodes,
        stats=StatsService(shortcodes, store),
        redirects=RedirectService(
            shortcodes,
            store,
            geolocation,
            history_limit=config.CLICK_HISTORY_LIMIT,
        ),
        sweeper=ExpirySweeper(store),
        authenticator=TokenAuthenticator(
            config.SECRET_KEY,
            expire_minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES,
        ),
    )


async def initialize_services(app: FastAPI) -> None:
    """
    Build the container (unless one was attached already), create missing
    tables and start the periodic expiry sweep.
    """
    container: Optional[ServiceContainer] = getattr(app.state, "container", None)
    if container is None:
        container = build_container()
        app.state.container = container

    await create_tables(container.engine)
    container.sweep_task = start_expiry_sweeper(
        container.sweeper,
        container.settings.SWEEP_INTERVAL_SECONDS,
    )
    logger.info(
        f"Shortcode service initialized: "
        f"database={container.engine.url.render_as_string(hide_password=True)}"
    )


async def shutdown_services(app: FastAPI) -> None:
    """Stop background work and release connections."""
    container: Optional[ServiceContainer] = getattr(app.state, "container", None)
    if container is None:
        return
    logger.info("Shutting down shortcode service")
    await container.close()
    app.state.container = None


def get_container(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the application's container."""
    return request.app.state.container
