"""
Runtime settings, read from the environment.

A `.env` file in the working directory is loaded first when python-dotenv
finds one, so local overrides do not need a manual `export`.

    GLITCHGRAPH_HOST          bind address for the API server   (127.0.0.1)
    GLITCHGRAPH_PORT          port for the API server           (3001)
    GLITCHGRAPH_LOG_LEVEL     logging level name                (INFO)
    GLITCHGRAPH_CORS_ORIGINS  comma separated allowed origins   (*)
    GLITCHGRAPH_SEED_DEMO     start with the demo graph (1/0)   (1)
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    host: str = "127.0.0.1"
    port: int = 3001
    log_level: str = "INFO"
    cors_origins: tuple = ("*",)
    seed_demo: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        env = os.environ if environ is None else environ
        origins: List[str] = [
            o.strip() for o in env.get("GLITCHGRAPH_CORS_ORIGINS", "*").split(",") if o.strip()
        ]
        try:
            port = int(env.get("GLITCHGRAPH_PORT", cls.port))
        except ValueError:
            raise ValueError(f"GLITCHGRAPH_PORT must be an integer, got {env['GLITCHGRAPH_PORT']!r}") from None
        return cls(
            host=env.get("GLITCHGRAPH_HOST", cls.host),
            port=port,
            log_level=env.get("GLITCHGRAPH_LOG_LEVEL", cls.log_level).upper(),
            cors_origins=tuple(origins or ["*"]),
            seed_demo=env.get("GLITCHGRAPH_SEED_DEMO", "1").strip().lower() in _TRUE_VALUES,
        )


def configure_logging(level: str = "INFO") -> None:
    """Entry points call this once; library modules only create loggers."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def load_env_file() -> None:
    """Load `.env` from the working directory; variables already set win."""
    load_dotenv(find_dotenv(usecwd=True))


def load_settings() -> Settings:
    load_env_file()
    return Settings.from_env()
