"""
Health Endpoint
Small aiohttp server reporting liveness and process stats
"""

import logging
from datetime import datetime
from typing import Optional

import psutil
from aiohttp import web

from guildkeeper import __version__

logger = logging.getLogger('guildkeeper.health')


def memory_mb() -> float:
    return round(psutil.Process().memory_info().rss / 1024 / 1024, 2)


class HealthServer:
    def __init__(self, bot, port: int = 5000, host: str = "0.0.0.0"):
        self.bot = bot
        self.port = port
        self.host = host
        self._runner: Optional[web.AppRunner] = None

    def uptime_seconds(self) -> int:
        return int((datetime.now() - self.bot.start_time).total_seconds())

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self.handle_health)
        app.router.add_get("/", self.handle_info)
        return app

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({
            "status": "ok",
            "uptime": self.uptime_seconds(),
            "botStatus": "connected" if self.bot.is_ready() else "disconnected"
        })

    async def handle_info(self, request: web.Request) -> web.Response:
        guilds = self.bot.guilds
        return web.json_response({
            "name": str(self.bot.user) if self.bot.user else "GuildKeeper",
            "status": "online" if self.bot.is_ready() else "starting",
            "guilds": len(guilds),
            "users": sum(g.member_count or 0 for g in guilds),
            "commands": len(self.bot.tree.get_commands()),
            "uptime": self.uptime_seconds(),
            "memoryMb": memory_mb(),
            "version": __version__
        })

    async def start(self):
        if self._runner is not None:
            return

        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"Health server listening on {self.host}:{self.port}")

    async def stop(self):
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        logger.info("Health server stopped")
