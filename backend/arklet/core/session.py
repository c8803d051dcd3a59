"""
Session subsystem initialization.

Sessions are signed cookies (Starlette SessionMiddleware, backed by
itsdangerous). Initialization validates the options and stores the resolved
settings under the "session settings" key; the pipeline only binds the session
stage when that key is present.
"""
import logging
import secrets

from arklet.core.errors import InitializationError

logger = logging.getLogger("uvicorn.error")

SUPPORTED_STORES = ("cookie",)
DEFAULT_COOKIE_NAME = "arklet.sid"
DEFAULT_MAX_AGE = 14 * 24 * 60 * 60  # 14 days, in seconds


def init_session(arklet) -> dict:
    """
    Resolve and store the session options.

    Raises:
        InitializationError: unsupported store, or no cookie secret outside development
    """
    store = arklet.get("session store") or "cookie"
    if store not in SUPPORTED_STORES:
        raise InitializationError("session", f"unsupported session store {store!r}")

    secret = arklet.get("cookie secret")
    if not secret:
        if arklet.get("env") != "development":
            raise InitializationError("session", "a 'cookie secret' is required outside development")
        secret = secrets.token_hex(32)
        arklet.set("cookie secret", secret)
        logger.warning("[session] No cookie secret set -> generated a random one (sessions reset on restart).")

    user_options = arklet.get("session options") or {}
    options = {
        "secret_key": secret,
        "session_cookie": user_options.get("cookie name", DEFAULT_COOKIE_NAME),
        "max_age": user_options.get("max age", DEFAULT_MAX_AGE),
        "same_site": user_options.get("same site", "lax"),
        "https_only": bool(user_options.get("https only", arklet.get("env") == "production")),
    }
    arklet.set("session settings", options)
    return options
