"""
Run configuration: environment defaults and YAML suite files.

A suite file names the peer and the scripts to run against it:

    address: localhost:7777
    timeout: 5
    scripts:
      - greeting.pest
      - quit.pest

Script paths are relative to the suite file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .transport import parse_address


TIMEOUT_ENV = "PEST_TIMEOUT"


class ConfigError(ValueError):
    """A suite file or environment setting is unusable."""
    pass


def default_timeout() -> Optional[float]:
    """Connection timeout from ``PEST_TIMEOUT``; unset or empty means blocking."""
    raw = os.environ.get(TIMEOUT_ENV, "").strip()
    if not raw:
        return None
    return _parse_timeout(raw, TIMEOUT_ENV)


def _parse_timeout(raw: Any, where: str) -> Optional[float]:
    if raw is None:
        return None
    try:
        timeout = float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{where}: timeout must be a number of seconds, got {raw!r}")
    if timeout <= 0:
        raise ConfigError(f"{where}: timeout must be positive, got {raw!r}")
    return timeout


@dataclass
class SuiteConfig:
    """A set of scripts to run, in order, against one peer."""
    address: str
    scripts: List[Path] = field(default_factory=list)
    timeout: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Path, where: str = "suite") -> "SuiteConfig":
        if not isinstance(data, dict):
            raise ConfigError(f"{where}: expected a mapping at top level")

        address = data.get("address")
        if not isinstance(address, str) or not address:
            raise ConfigError(f"{where}: 'address' (host:port) is required")
        try:
            parse_address(address)
        except ValueError as e:
            raise ConfigError(f"{where}: {e}")

        scripts = data.get("scripts")
        if not isinstance(scripts, list) or not scripts:
            raise ConfigError(f"{where}: 'scripts' must be a non-empty list")
        paths = []
        for entry in scripts:
            if not isinstance(entry, str):
                raise ConfigError(f"{where}: script entries must be paths, got {entry!r}")
            paths.append(base_dir / entry)

        if "timeout" in data:
            timeout = _parse_timeout(data["timeout"], where)
        else:
            timeout = default_timeout()

        return cls(address=address, scripts=paths, timeout=timeout)


def load_config(path: Path) -> SuiteConfig:
    """
    Load a suite file.

    Raises:
        ConfigError: If the file is missing, not YAML, or malformed
    """
    import yaml

    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
    except OSError as e:
        raise ConfigError(f"{path}: {e.strerror or e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}")
    return SuiteConfig.from_dict(data, path.parent, where=str(path))
