import logging
import os
from dataclasses import dataclass, field

from consorcio.engine.storage import STORAGE_KEY

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    data_dir: str = field(default_factory=lambda: os.getenv("CONSORCIO_DATA_DIR", os.path.join(BASE_DIR, "user_data")))
    storage_key: str = field(default_factory=lambda: os.getenv("CONSORCIO_STORAGE_KEY", STORAGE_KEY))
    # file | memory
    storage_backend: str = field(default_factory=lambda: os.getenv("CONSORCIO_STORAGE", "file").strip().lower())
    seed_examples: bool = field(default_factory=lambda: _env_bool("CONSORCIO_SEED_EXAMPLES", default=True))
    log_level: str = field(default_factory=lambda: os.getenv("CONSORCIO_LOG_LEVEL", "INFO").upper())
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG", default=False))


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
