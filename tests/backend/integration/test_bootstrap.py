import pytest
from tortoise import Tortoise

from arklet.core import bootstrap
from arklet.core.db import build_tortoise_config
from arklet.core.errors import ConfigurationError, InitializationError
from arklet.models.update import AppUpdate
from arklet.pipeline.app import Application


pytestmark = [pytest.mark.asyncio, pytest.mark.usefixtures("clean_db")]


async def test_initialize_is_idempotent(make_arklet, monkeypatch):
    arklet = make_arklet()
    session_calls = []
    connect_calls = []

    real_init_session = bootstrap.init_session
    real_connect = arklet.database.connect

    def counting_init_session(instance):
        session_calls.append(instance)
        return real_init_session(instance)

    async def counting_connect():
        connect_calls.append(1)
        await real_connect()

    monkeypatch.setattr(bootstrap, "init_session", counting_init_session)
    monkeypatch.setattr(arklet.database, "connect", counting_connect)

    first = await arklet.initialize()
    second = await arklet.initialize()

    assert isinstance(first, Application)
    assert first is second
    assert arklet.app is first
    assert len(session_calls) == 1
    assert len(connect_calls) == 1


async def test_application_references_instance_state(make_arklet):
    arklet = make_arklet(headless=True)
    app = await arklet.initialize()
    assert app.arklet is arklet
    assert app.config is arklet.config
    assert app.hooks is arklet.hooks
    assert app.stages[-1] == "error handlers"
    assert "session" in app.stages


async def test_database_failure_leaves_no_app(make_arklet):
    arklet = make_arklet(database_url=None)
    with pytest.raises(InitializationError) as excinfo:
        await arklet.initialize()
    assert excinfo.value.subsystem == "database"
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert arklet.app is None
    assert arklet.get("session settings") is None


async def test_session_failure_leaves_no_app_and_closes_storage(make_arklet):
    arklet = make_arklet(env="production", cookie_secret=None)
    with pytest.raises(InitializationError) as excinfo:
        await arklet.initialize()
    assert excinfo.value.subsystem == "session"
    assert arklet.app is None
    assert not arklet.database.is_connected


def _broken_config(slot):
    raise RuntimeError("cannot configure routes")


@pytest.mark.parametrize(
    "options,error",
    [
        ({"frame_guard": "allow-from"}, ConfigurationError),
        ({"logging_middleware": "not a factory"}, ConfigurationError),
        ({"pre:routes": _broken_config}, RuntimeError),
    ],
)
async def test_assembly_failure_leaves_no_app_and_closes_storage(make_arklet, options, error):
    arklet = make_arklet(headless=True, **options)
    with pytest.raises(error):
        await arklet.initialize()
    assert arklet.app is None
    assert not arklet.database.is_connected


async def test_unexpected_session_errors_are_wrapped(make_arklet, monkeypatch):
    def broken(instance):
        raise KeyError("secret")

    monkeypatch.setattr(bootstrap, "init_session", broken)
    arklet = make_arklet()
    with pytest.raises(InitializationError) as excinfo:
        await arklet.initialize()
    assert excinfo.value.subsystem == "session"
    assert isinstance(excinfo.value.__cause__, KeyError)


async def test_existing_connection_is_reused(make_arklet):
    await Tortoise.init(config=build_tortoise_config("sqlite://:memory:"))
    await Tortoise.generate_schemas()
    arklet = make_arklet(database_url="sqlite://this/path/is/never/opened.sqlite3")
    await arklet.initialize()
    assert arklet.app is not None

    # the connection was opened elsewhere, so closing this instance keeps it
    await arklet.database.close()
    assert arklet.database.is_connected


async def test_lifespan_shutdown_closes_the_database(make_arklet):
    arklet = make_arklet()
    app = await arklet.initialize()
    assert arklet.database.is_connected

    messages = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
    sent = []

    async def receive():
        return messages.pop(0)

    async def send(message):
        sent.append(message["type"])

    await app({"type": "lifespan"}, receive, send)
    assert sent == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
    assert not arklet.database.is_connected


async def test_apply_updates_runs_between_hooks(make_arklet):
    arklet = make_arklet()
    order = []

    arklet.on("pre:updates", lambda: order.append("pre"))
    arklet.on("updates", lambda: order.append("post"), phase="post")

    @arklet.updates.register("0.0.1-seed")
    async def seed(instance):
        order.append(("update", instance is arklet))

    assert await arklet.apply_updates() == ["0.0.1-seed"]
    assert order == ["pre", ("update", True), "post"]
    assert await AppUpdate.filter(key="0.0.1-seed").exists()

    order.clear()
    assert await arklet.apply_updates() == []
    assert order == ["pre", "post"]


async def test_failing_pre_updates_hook_stops_everything(make_arklet):
    arklet = make_arklet()
    ran = []

    def refuse():
        raise RuntimeError("maintenance window closed")

    arklet.on("pre:updates", refuse)
    arklet.on("post:updates", lambda: ran.append("post"))
    arklet.updates.register("0.0.1", lambda instance: ran.append("update"))

    with pytest.raises(RuntimeError, match="maintenance window closed"):
        await arklet.apply_updates()
    assert ran == []


async def test_failing_update_skips_post_hook(make_arklet):
    arklet = make_arklet()
    ran = []

    def broken(instance):
        raise ValueError("bad data")

    arklet.on("post:updates", lambda: ran.append("post"))
    arklet.updates.register("0.0.1-broken", broken)

    with pytest.raises(ValueError, match="bad data"):
        await arklet.apply_updates()
    assert ran == []
