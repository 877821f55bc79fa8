import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from waitlist.records import DEFAULT_SOURCE

logger = logging.getLogger(__name__)


def _first(env: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = (env.get(name) or "").strip()
        if value:
            return value
    return None


def parse_origins(raw: Optional[str]) -> Tuple[str, ...]:
    # unset means any origin; a list of only blanks allows none
    if raw is None:
        return ("*",)
    return tuple(o.strip() for o in raw.split(",") if o.strip())


def parse_log_level(raw: Optional[str]) -> str:
    level = (raw or "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        logger.warning("Unknown LOG_LEVEL %r, using INFO", raw)
        return "INFO"
    return level


def parse_port(raw: Optional[str], default: int = 3000) -> int:
    try:
        return int(raw) if raw else default
    except ValueError:
        logger.warning("Invalid PORT %r, using %d", raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    table_name: Optional[str] = None
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    allowed_origins: Tuple[str, ...] = field(default=("*",))
    app_env: str = "production"
    default_source: str = DEFAULT_SOURCE
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 3000

    @property
    def production(self) -> bool:
        return self.app_env == "production"

    @property
    def store_configured(self) -> bool:
        return bool(self.table_name)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            table_name=_first(env, "WAITLIST_TABLE", "TABLE_NAME"),
            region=_first(env, "AWS_REGION", "AWS_DEFAULT_REGION"),
            endpoint_url=_first(env, "DYNAMODB_ENDPOINT_URL"),
            allowed_origins=parse_origins(_first(env, "ALLOWED_ORIGINS", "ALLOWED_ORIGIN")),
            app_env=(_first(env, "APP_ENV") or "production").lower(),
            default_source=_first(env, "WAITLIST_DEFAULT_SOURCE") or DEFAULT_SOURCE,
            log_level=parse_log_level(_first(env, "LOG_LEVEL")),
            host=_first(env, "HOST") or "127.0.0.1",
            port=parse_port(_first(env, "PORT")),
        )
