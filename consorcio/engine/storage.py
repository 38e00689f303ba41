import logging
import math
import os
import re
import threading
from typing import Any, Dict

logger = logging.getLogger(__name__)

STORAGE_KEY = "hiperban.consorcio.planos.v1"


def ensure_user_data_dir(path: str) -> None:
    folder = os.path.dirname(path)
    if folder and not os.path.exists(folder):
        os.makedirs(folder, exist_ok=True)


def _sanitize_json_compat(value: Any):
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return value
    if isinstance(value, dict):
        return {key: _sanitize_json_compat(val) for key, val in value.items()}
    if isinstance(value, list):
        return [_sanitize_json_compat(item) for item in value]
    return value


class MemoryStorage:
    """Key-value storage kept in a dict; nothing survives the process."""

    def __init__(self, initial: Dict[str, str] | None = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStorage:
    """Durable key-value storage, one ``<key>.json`` file per key."""

    def __init__(self, directory: str = "user_data"):
        self.directory = directory

    def path_for(self, key: str) -> str:
        safe_key = re.sub(r"[^A-Za-z0-9._-]", "_", key)
        return os.path.join(self.directory, f"{safe_key}.json")

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError):
            logger.warning("Could not read storage entry %s", path, exc_info=True)
            return None

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        ensure_user_data_dir(path)
        # One scratch file per writer so concurrent writes never share it.
        tmp_path = f"{path}.{os.getpid()}.{threading.get_ident()}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(value)
        os.replace(tmp_path, path)
