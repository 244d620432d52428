# core/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5001"
DEFAULT_TIMEOUT_SECONDS = 300.0  # 5 minutos
DEFAULT_STORAGE_DIR = ".planilha_chat"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    query_timeout: float = DEFAULT_TIMEOUT_SECONDS
    upload_timeout: float = DEFAULT_TIMEOUT_SECONDS
    storage_dir: str = DEFAULT_STORAGE_DIR
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            api_url=(env.get("PLANILHA_API_URL") or DEFAULT_API_URL).rstrip("/"),
            query_timeout=_env_float(env, "PLANILHA_QUERY_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
            upload_timeout=_env_float(env, "PLANILHA_UPLOAD_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
            storage_dir=env.get("PLANILHA_STORAGE_DIR") or DEFAULT_STORAGE_DIR,
            log_level=(env.get("PLANILHA_LOG_LEVEL") or "INFO").upper(),
        )


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("%s=%r não é um número; usando %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("%s=%r deve ser positivo; usando %s", name, raw, default)
        return default
    return value


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
