"""User configuration file holding defaults for command-line options."""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

_logger = logging.getLogger(__name__)

CONFIG_ENV_VARIABLE = "AUTOGRAF_CONFIG"


@dataclass
class Config:
    """Settings read from the configuration file."""

    prometheus_url: str = ""
    prometheus_bearer_token: str = ""
    grafana_url: str = ""
    grafana_token: str = ""
    grafana_folder: str = ""
    grafana_dashboard_name: str = ""
    grafana_datasource: str = ""
    grafana_variables: list[str] = field(default_factory=list)
    open_browser: bool = False

    @classmethod
    def from_json(cls, text: str | bytes) -> Config:
        """Parse a JSON document; keys match field names regardless of case.

        Unknown keys and nulls are ignored; ValueError on bad JSON or wrong types.
        """
        data = json.loads(text)
        config = cls()
        if data is None:
            return config
        if not isinstance(data, dict):
            raise ValueError("config file must hold a JSON object")
        kinds = {f.name: str(f.type) for f in fields(cls)}
        for key, value in data.items():
            name = key.lower()
            if name in kinds and value is not None:
                setattr(config, name, _convert(name, kinds[name], value))
        return config


def _convert(name: str, kind: str, value: Any) -> Any:
    if kind == "str" and isinstance(value, str) or kind == "bool" and isinstance(value, bool):
        return value
    if kind.startswith("list") and isinstance(value, list):
        items = ["" if item is None else item for item in value]
        if all(isinstance(item, str) for item in items):
            return items
    raise ValueError(f"cannot use {json.dumps(value)} as value of {name!r}")


def config_file_path(
    environ: Mapping[str, str] | None = None, home: str | os.PathLike[str] | None = None
) -> Path:
    """Locate the configuration file: ``AUTOGRAF_CONFIG``, else ``~/.autograf.json``
    when it exists, else ``~/.config/autograf.json``."""
    environ = os.environ if environ is None else environ
    if CONFIG_ENV_VARIABLE in environ:
        return Path(environ[CONFIG_ENV_VARIABLE])
    home_dir = Path.home() if home is None else Path(home)
    path = home_dir / ".autograf.json"
    return path if path.exists() else home_dir / ".config" / "autograf.json"


def load_config(
    environ: Mapping[str, str] | None = None, home: str | os.PathLike[str] | None = None
) -> Config:
    """Load the configuration file, falling back to empty settings on any problem."""
    try:
        path = config_file_path(environ, home)
    except (RuntimeError, KeyError) as exc:
        _logger.warning("failed to load autograf config from home dir: %s", exc)
        return Config()
    try:
        data = path.read_bytes()
    except OSError:
        return Config()
    print(f"Using config file {path}", file=sys.stderr)
    try:
        return Config.from_json(data)
    except ValueError as exc:
        _logger.warning("invalid config file format: %s", exc)
        return Config()