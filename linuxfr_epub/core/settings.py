import os
import yaml
from dataclasses import dataclass, fields, replace
from typing import List, Optional
from ..models import (
    log, DEFAULT_HOST, DEFAULT_SCHEME, DEFAULT_ADDRESS,
    MAX_IMAGE_SIZE, IMAGE_DELIVERY_WINDOW, IMAGE_QUEUE_SIZE
)

ENV_PREFIX = "LINUXFR_EPUB_"

@dataclass
class Settings:
    host: str = DEFAULT_HOST
    scheme: str = DEFAULT_SCHEME
    address: str = DEFAULT_ADDRESS
    log_file: str = "-"
    request_timeout: float = 30
    image_timeout: float = 20
    image_max_size: int = MAX_IMAGE_SIZE
    image_delivery_window: float = IMAGE_DELIVERY_WINDOW
    image_queue_size: int = IMAGE_QUEUE_SIZE

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}"

_TYPES = {f.name: f.type for f in fields(Settings)}

def _coerce(name: str, value):
    return _TYPES[name](value)

class SettingsManager:
    _instance = None
    def __init__(self, config_paths: List[str] = None):
        self.settings = Settings()
        if config_paths:
            for path in config_paths:
                self.load_config(path)
        self.load_env()
    @classmethod
    def get_instance(cls):
        if not cls._instance:
            explicit = os.getenv(f"{ENV_PREFIX}CONFIG")
            paths = [explicit] if explicit else ["linuxfr_epub.yaml", os.path.expanduser("~/.config/linuxfr_epub/config.yaml")]
            cls._instance = cls(paths)
        return cls._instance
    def load_config(self, path: str):
        if not os.path.exists(path): return
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
            if not data or not isinstance(data, dict): return
            known = {f.name for f in fields(Settings)}
            values = {}
            for key, value in data.items():
                if key not in known:
                    log.warning(f"Unknown setting '{key}' in {path}")
                    continue
                values[key] = _coerce(key, value)
            self.settings = replace(self.settings, **values)
            log.info(f"Loaded {len(values)} settings from {path}")
        except Exception as e:
            log.warning(f"Failed to load config {path}: {e}")
    def load_env(self):
        for f in fields(Settings):
            raw = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None: continue
            try:
                self.settings = replace(self.settings, **{f.name: _coerce(f.name, raw)})
            except ValueError:
                log.warning(f"Ignoring invalid {ENV_PREFIX}{f.name.upper()}={raw!r}")

def get_settings(**overrides) -> Settings:
    """Current settings, with non-None keyword overrides (e.g. CLI flags) applied."""
    settings = SettingsManager.get_instance().settings
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return replace(settings, **overrides) if overrides else settings

def load_settings(path: Optional[str] = None) -> Settings:
    if path:
        SettingsManager._instance = SettingsManager([path])
    return get_settings()
