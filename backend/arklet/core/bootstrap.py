"""
Bootstrap module for application initialization.
Connects storage, sets up sessions and assembles the request pipeline, once
per Arklet instance. Also runs application updates between their hooks.
"""
import logging

from arklet.core.errors import InitializationError
from arklet.core.session import init_session
from arklet.pipeline.app import Application
from arklet.pipeline.assembler import PipelineAssembler

logger = logging.getLogger("uvicorn.error")


async def initialize(arklet) -> Application:
    """
    Build the application instance unless it already exists.

    Order: storage connection -> session subsystem -> pipeline assembly. If
    storage or session setup fails, nothing is assembled or cached and the
    failure is raised as InitializationError (underlying error as __cause__).
    A failed assembly raises its own error. Any failure after connecting
    closes the connection this call opened.
    Calling this again after a success returns the same instance without
    repeating any step.
    """
    if arklet.app is not None:
        return arklet.app

    try:
        await arklet.database.connect()
    except Exception as exc:
        raise InitializationError("database", str(exc)) from exc

    try:
        init_session(arklet)
    except Exception as exc:
        # don't leave a connection open for an instance that never started
        await arklet.database.close()
        if isinstance(exc, InitializationError):
            raise
        raise InitializationError("session", str(exc)) from exc

    try:
        assembled = PipelineAssembler(arklet).assemble()
    except Exception:
        await arklet.database.close()
        raise

    arklet.app = Application(arklet, assembled.stages, assembled.pipeline)
    logger.info("[bootstrap] %s initialized (%d pipeline stages)", arklet.get("name"), len(assembled.stages))
    return arklet.app


async def apply_updates(arklet) -> list[str]:
    """
    Run pending application updates between the "pre:updates" and
    "post:updates" hooks. The first error from any of the three steps stops
    the sequence and is raised to the caller.

    Returns:
        Keys of the updates applied by this call
    """
    await arklet.hooks.invoke("pre:updates")
    await arklet.database.connect()
    applied = await arklet.updates.apply(arklet)
    await arklet.hooks.invoke("post:updates")
    return applied
