from pathlib import Path
from typing import Any, Dict, Optional

import msgspec
from loguru import logger

from ymmp.utils.app_info import AppInfo


class SettingsData(msgspec.Struct, omit_defaults=True):
    """On-disk shape of the ymmp configuration file."""

    github_token: Optional[str] = None
    custom_path: Optional[str] = None
    last_update_check: Optional[int] = None


class Settings:
    """
    Persisted user configuration.

    Constructed once by the entry point and handed to every component that
    needs it. Every ``set`` is written to disk immediately.
    """

    KEYS = tuple(SettingsData.__struct_fields__)

    def __init__(self, settings_file: Optional[Path] = None) -> None:
        self._settings_file = settings_file or AppInfo().app_settings_file
        self._data = SettingsData()

    @property
    def settings_file(self) -> Path:
        return self._settings_file

    @property
    def github_token(self) -> Optional[str]:
        return self._data.github_token

    @property
    def custom_path(self) -> Optional[str]:
        return self._data.custom_path

    def load(self) -> "Settings":
        try:
            raw = self._settings_file.read_bytes()
        except FileNotFoundError:
            logger.debug(f"No settings file at {self._settings_file}, using defaults")
            return self
        except OSError as e:
            logger.warning(
                f"Cannot read settings file {self._settings_file}, using defaults: {e}"
            )
            return self

        try:
            self._data = msgspec.json.decode(raw, type=SettingsData)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            logger.warning(
                f"Ignoring unreadable settings file {self._settings_file}: {e}"
            )
            self._data = SettingsData()
        return self

    def save(self) -> None:
        self._settings_file.parent.mkdir(parents=True, exist_ok=True)
        self._settings_file.write_bytes(
            msgspec.json.format(msgspec.json.encode(self._data), indent=2)
        )

    def get(self, key: str) -> Any:
        self._check_key(key)
        return getattr(self._data, key)

    def set(self, key: str, value: Any) -> None:
        self._check_key(key)
        self._data = msgspec.structs.replace(self._data, **{key: value})
        self.save()
        logger.info(f"Setting {key} updated")

    def as_dict(self) -> Dict[str, Any]:
        return msgspec.structs.asdict(self._data)

    def _check_key(self, key: str) -> None:
        if key not in self.KEYS:
            raise KeyError(f"Unknown setting: {key}")
