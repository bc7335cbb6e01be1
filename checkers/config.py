from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}


def parse_bool(value: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(f"invalid boolean: {value!r}")


@dataclass(frozen=True)
class Settings:
    """Runtime settings read from ``CHECKERS_*`` environment variables."""

    mandatory_capture: bool = False
    save_file: str = "game.txt"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``env`` (defaults to ``os.environ``).

        Raises:
            ValueError: If a boolean, integer or log level variable cannot be
                parsed.
        """
        env = os.environ if env is None else env
        defaults = cls()
        mandatory = env.get("CHECKERS_MANDATORY_CAPTURE")
        port = env.get("CHECKERS_PORT")
        log_level = env.get("CHECKERS_LOG_LEVEL", defaults.log_level).strip().upper()
        if log_level not in _LOG_LEVELS:
            raise ValueError(f"invalid log level: {log_level!r}")
        return cls(
            mandatory_capture=parse_bool(mandatory) if mandatory else defaults.mandatory_capture,
            save_file=env.get("CHECKERS_SAVE_FILE", defaults.save_file),
            log_level=log_level,
            host=env.get("CHECKERS_HOST", defaults.host),
            port=int(port) if port else defaults.port,
        )
