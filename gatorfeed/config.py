"""Reading and writing the JSON configuration file in the user's home directory."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILE_NAME = ".gatorconfig.json"

_FIELDS = ("db_url", "current_user_name")


@dataclass
class Config:
    """Connection settings and the name of the user who is logged in."""

    db_url: str = ""
    current_user_name: str = ""
    path: Path | None = field(default=None, compare=False, repr=False)

    def set_user(self, user_name: str) -> None:
        """Make ``user_name`` the current user and save the configuration."""
        self.current_user_name = user_name
        write_config(self, self.path)

    def to_dict(self) -> dict[str, str]:
        """Return the fields stored in the configuration file."""
        return {"db_url": self.db_url, "current_user_name": self.current_user_name}


def config_file_path() -> Path:
    """Return the default location of the configuration file."""
    return Path.home() / CONFIG_FILE_NAME


def read_config(path: str | Path | None = None) -> Config:
    """Load the configuration from ``path``, or from the default location."""
    target = Path(path) if path is not None else config_file_path()
    with target.open(encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError("configuration file must hold a JSON object")

    values: dict[str, str] = {}
    for key in _FIELDS:
        value = data.get(key)
        if value is None:
            value = ""
        elif not isinstance(value, str):
            raise ValueError(f"configuration field {key!r} must be a string")
        values[key] = value
    return Config(path=target, **values)


def write_config(config: Config, path: str | Path | None = None) -> None:
    """Save ``config`` to ``path``, to the file it was read from, or to the default location."""
    if path is not None:
        target = Path(path)
    elif config.path is not None:
        target = config.path
    else:
        target = config_file_path()
    text = json.dumps(config.to_dict(), separators=(",", ":")) + "\n"
    target.write_text(text, encoding="utf-8")