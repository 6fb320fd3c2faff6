from __future__ import annotations

import json
import os
from typing import Any

from .errors import ConfigError
from .logger import get_logger

_logger = get_logger("settings")

_HEX_COLOR_LEN = 7


def parse_hex_color(value: str) -> tuple[int, int, int]:
    """Parse "#rrggbb" into an (r, g, b) tuple."""
    text = value.strip()
    if len(text) != _HEX_COLOR_LEN or not text.startswith("#"):
        raise ValueError(f"not a #rrggbb colour: {value!r}")
    return int(text[1:3], 16), int(text[3:5], 16), int(text[5:7], 16)


class SettingsManager:
    """JSON-backed settings with defaults.

    A missing file means defaults; a corrupt file is logged and ignored.
    """

    def __init__(self, settings_path: str | None = None):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    DEFAULTS: dict[str, Any] = {
        "background_color": "#000000",
        "jpeg_quality": 80,
        "sample_channel": 0,
        "supported_extensions": ["png", "jpg", "tiff"],
        "ignored_names": [".DS_Store"],
        "close_trailing_run": False,
    }

    def load(self) -> None:
        if not self.settings_path:
            self._settings = {}
            return
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._settings = data
                        _logger.debug("settings loaded: %s", self.settings_path)
                        return
                    _logger.warning("settings file is not a JSON object: %s", self.settings_path)
        except Exception as e:
            _logger.warning("settings load failed: %s", e)
        self._settings = {}

    def save(self) -> None:
        if not self.settings_path:
            return
        try:
            parent = os.path.dirname(self.settings_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, ensure_ascii=False, indent=2)
            _logger.debug("settings saved: %s", self.settings_path)
        except Exception as e:
            _logger.error("settings save failed: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def set(self, key: str, value: Any) -> None:
        self._settings[key] = value
        self.save()

    @property
    def background_rgb(self) -> tuple[int, int, int]:
        hexcol = self.get("background_color")
        try:
            if isinstance(hexcol, str):
                return parse_hex_color(hexcol)
            _logger.warning("saved background_color invalid: %r", hexcol)
        except ValueError as e:
            _logger.warning("failed to parse background_color: %s", e)
        return 0, 0, 0

    @property
    def jpeg_quality(self) -> int:
        value = self.get("jpeg_quality")
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 100:
            raise ConfigError(f"jpeg_quality must be an integer in 1..100, got {value!r}")
        return value

    @property
    def sample_channel(self) -> int:
        value = self.get("sample_channel")
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 3:
            raise ConfigError(f"sample_channel must be 0..3, got {value!r}")
        return value

    @property
    def supported_extensions(self) -> frozenset[str]:
        exts = self.get("supported_extensions") or []
        return frozenset(str(e).lower().lstrip(".") for e in exts)

    @property
    def ignored_names(self) -> frozenset[str]:
        return frozenset(str(n) for n in (self.get("ignored_names") or []))

    @property
    def close_trailing_run(self) -> bool:
        return bool(self.get("close_trailing_run", False))
