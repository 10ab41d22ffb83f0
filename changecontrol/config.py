"""
Settings for the command line.

Resolution order, later wins:
1. Built-in defaults
2. `[changecontrol]` table of a TOML file (explicit path, or
   ./changecontrol.toml when present)
3. CHANGECONTROL_* environment variables
4. Command-line options (applied by the CLI)
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

DEFAULT_CONFIG_FILE = "changecontrol.toml"

_ENV_VARS = {
    "redis_url": "CHANGECONTROL_REDIS_URL",
    "prefix": "CHANGECONTROL_PREFIX",
    "changes_dir": "CHANGECONTROL_CHANGES",
    "user": "CHANGECONTROL_USER",
}


@dataclass(frozen=True)
class Settings:
    redis_url: str = "redis://localhost:6379/0"
    prefix: str = "changecontrol"
    changes_dir: Path = Path("changes")
    user: str | None = None

    def merge(self, **overrides: Any) -> Settings:
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if "changes_dir" in values:
            values["changes_dir"] = Path(values["changes_dir"])
        return replace(self, **values)


def _from_toml(path: Path) -> dict[str, Any]:
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    table = data.get("changecontrol", {})
    if not isinstance(table, dict):
        raise ValueError(f"{path}: [changecontrol] must be a table")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(table) - known)
    if unknown:
        raise ValueError(f"{path}: unknown settings: {', '.join(unknown)}")

    values = {k: str(v).strip() for k, v in table.items()}
    if "changes_dir" in values:
        # Relative to the config file, not the working directory.
        changes_dir = Path(values["changes_dir"])
        values["changes_dir"] = changes_dir if changes_dir.is_absolute() else path.parent / changes_dir
    return values


def _from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    return {name: environ[var] for name, var in _ENV_VARS.items() if environ.get(var)}


def load_settings(
    config_path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> Settings:
    """
    Load settings from defaults, TOML and the environment.

    Args:
        config_path: Explicit TOML file; must exist when given
        environ: Environment mapping (defaults to os.environ)
        cwd: Where to look for the default config file

    Returns:
        Resolved Settings
    """
    settings = Settings()

    if config_path is None:
        candidate = (cwd or Path.cwd()) / DEFAULT_CONFIG_FILE
        config_path = candidate if candidate.is_file() else None
    elif not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    if config_path is not None:
        settings = settings.merge(**_from_toml(config_path))

    return settings.merge(**_from_env(os.environ if environ is None else environ))
