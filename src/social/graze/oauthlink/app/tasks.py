import asyncio
import logging
from typing import NoReturn
from aiohttp import web

from social.graze.oauthlink.app.config import HealthGaugeAppKey, SettingsAppKey

logger = logging.getLogger(__name__)


async def tick_health_task(app: web.Application) -> NoReturn:
    """
    Tick the health gauge every `health_interval` seconds, reducing the health score by 1
    each time.
    """

    logger.info("Starting health gauge task")

    health_gauge = app[HealthGaugeAppKey]
    interval = app[SettingsAppKey].health_interval
    while True:
        await health_gauge.tick()
        await asyncio.sleep(interval)
