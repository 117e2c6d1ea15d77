"""
Runtime configuration for the provider script services.

Centralises all environment variable names, default values and
limits used by the network, storage and helper services.

Uses ``pydantic_settings.BaseSettings`` for automatic environment
variable binding, type coercion, and validation.  A ``.env`` file in
the working directory is loaded first via ``python-dotenv``.
"""

from __future__ import annotations

import functools
import pathlib

import dotenv
import pydantic
import pydantic_settings

from scriptapi.utils import logger

log = logger.create_logger("Config")

# ── Fixed limits ────────────────────────────────────────────────
MAX_PERSISTENT_BYTES = 65535
DEFAULT_LIFETIME_DAYS = 7
MAX_LIFETIME_DAYS = 30
PUBLISH_THRESHOLD = 10


class ScriptApiSettings(pydantic_settings.BaseSettings):
    """Settings shared by every script execution context.

    Attributes:
        cache_dir: Root directory of the persistent storage tier
            and the provider error log.
        global_request_timeout: Ceiling in seconds for any set of
            concurrently outstanding requests of one network.
        max_redirects: Redirect hops followed per request.
        user_agent: ``User-Agent`` header sent with every request.
        fallback_charset: Charset used to decode documents that
            declare none.
        lifetime_check_interval: Minimum minutes between two sweeps
            of expired persistent entries.
        write_to_file: Also write log lines to ``.logs/``.
        provider_log_max_bytes: Size above which the provider
            error log is discarded before appending.
    """

    model_config = pydantic_settings.SettingsConfigDict(populate_by_name=True)

    cache_dir: pathlib.Path = pydantic.Field(
        default_factory=lambda: pathlib.Path.cwd() / ".cache",
        validation_alias="SCRIPTAPI_CACHE_DIR",
    )
    global_request_timeout: float = pydantic.Field(
        default=60.0, gt=0, validation_alias="SCRIPTAPI_GLOBAL_REQUEST_TIMEOUT"
    )
    max_redirects: int = pydantic.Field(
        default=3, ge=0, validation_alias="SCRIPTAPI_MAX_REDIRECTS"
    )
    user_agent: str = pydantic.Field(
        default="Mozilla/5.0 (compatible; PublicTransport/1.0)",
        validation_alias="SCRIPTAPI_USER_AGENT",
    )
    fallback_charset: str = pydantic.Field(
        default="utf-8", validation_alias="SCRIPTAPI_FALLBACK_CHARSET"
    )
    lifetime_check_interval: float = pydantic.Field(
        default=15.0, ge=0, validation_alias="SCRIPTAPI_LIFETIME_CHECK_INTERVAL"
    )
    write_to_file: bool = pydantic.Field(
        default=False, validation_alias="WRITE_TO_FILE"
    )
    provider_log_max_bytes: int = pydantic.Field(
        default=512 * 1024, gt=0, validation_alias="SCRIPTAPI_PROVIDER_LOG_MAX_BYTES"
    )

    @property
    def storage_dir(self) -> pathlib.Path:
        """Directory holding one persistent storage file per script."""
        return self.cache_dir / "storage"


@functools.lru_cache(maxsize=1)
def get_settings() -> ScriptApiSettings:
    """Return the process-wide settings, loading ``.env`` on first use."""
    dotenv.load_dotenv()
    settings = ScriptApiSettings()
    log.debug(
        "Settings loaded",
        {
            "cacheDir": str(settings.cache_dir),
            "globalRequestTimeout": settings.global_request_timeout,
            "maxRedirects": settings.max_redirects,
        },
    )
    return settings
