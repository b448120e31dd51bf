import json
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from guildkeeper import __version__
from guildkeeper.health import HealthServer, memory_mb


def make_bot(ready: bool = True):
    return SimpleNamespace(
        start_time=datetime.now() - timedelta(seconds=90),
        user="GuildKeeper#0001",
        guilds=[SimpleNamespace(member_count=10), SimpleNamespace(member_count=None)],
        tree=SimpleNamespace(get_commands=lambda: ["ban", "kick", "help"]),
        is_ready=lambda: ready
    )


@pytest.mark.asyncio
async def test_health_endpoint():
    server = HealthServer(make_bot())

    response = await server.handle_health(None)
    body = json.loads(response.text)

    assert response.status == 200
    assert body["status"] == "ok"
    assert body["botStatus"] == "connected"
    assert body["uptime"] >= 90


@pytest.mark.asyncio
async def test_health_reports_disconnected():
    server = HealthServer(make_bot(ready=False))

    body = json.loads((await server.handle_health(None)).text)

    assert body["botStatus"] == "disconnected"


@pytest.mark.asyncio
async def test_info_endpoint():
    server = HealthServer(make_bot())

    body = json.loads((await server.handle_info(None)).text)

    assert body["name"] == "GuildKeeper#0001"
    assert body["status"] == "online"
    assert body["guilds"] == 2
    assert body["users"] == 10
    assert body["commands"] == 3
    assert body["version"] == __version__
    assert body["memoryMb"] > 0


def test_routes_registered():
    app = HealthServer(make_bot()).create_app()
    paths = {resource.canonical for resource in app.router.resources()}
    assert paths == {"/", "/health"}


def test_memory_mb():
    assert memory_mb() > 0
