"""
TestAdvisor Configuration

Processing options are resolved once into an immutable TestAdvisorConfig.
Sources, lowest precedence first:

1. Defaults
2. ``config.yaml`` in the registry root (optionally nested under ``testadvisor:``)
3. Environment variables ``TESTADVISOR_<OPTION>``, e.g. ``TESTADVISOR_SIGNALLEVEL``

Example config.yaml:

    screenshotcomparison: true
    signallevel: WARNING
    screenshotmindiffareasize: 20
    screenshotmindiffratio: 1
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from testadvisor.utils.errors import ConfigurationError
from testadvisor.utils.logger import get_logger

logger = get_logger("config")

CONFIG_FILENAME = "config.yaml"
ENV_PREFIX = "TESTADVISOR_"

# Severity of recorder event levels, most severe first
LEVEL_SEVERITY = {
    "SEVERE": 1000,
    "WARNING": 900,
    "INFO": 800,
    "CONFIG": 700,
    "FINE": 500,
    "FINER": 400,
    "FINEST": 300,
}

_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


@dataclass(frozen=True)
class TestAdvisorConfig:
    """Snapshot of the processing options"""
    __test__ = False

    screenshot_comparison: bool = False
    signal_level: str = "WARNING"
    export_screenshot_diff_area: bool = True
    export_screenshot_diff_image: bool = True
    screenshot_min_diff_area_size: int = 20
    screenshot_min_diff_ratio: int = 1

    # Option names as they appear in config.yaml and environment variables
    OPTION_NAMES = {
        "screenshotcomparison": "screenshot_comparison",
        "signallevel": "signal_level",
        "exportscreenshotdiffarea": "export_screenshot_diff_area",
        "exportscreenshotdiffimage": "export_screenshot_diff_image",
        "screenshotmindiffareasize": "screenshot_min_diff_area_size",
        "screenshotmindiffratio": "screenshot_min_diff_ratio",
    }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'TestAdvisorConfig':
        """
        Build a configuration from option names and raw values

        Unknown keys are ignored. Invalid values are logged and replaced by
        the default.
        """
        defaults = cls()
        values: Dict[str, Any] = {}

        for key, raw in data.items():
            attr = cls.OPTION_NAMES.get(str(key).lower())
            if attr is None or raw is None:
                continue
            default = getattr(defaults, attr)

            if attr == "signal_level":
                values[attr] = _parse_level(key, raw, default)
            elif isinstance(default, bool):
                values[attr] = _parse_bool(key, raw, default)
            else:
                values[attr] = _parse_int(key, raw, default)

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Option names mapped to their values"""
        return {
            option: getattr(self, attr)
            for option, attr in self.OPTION_NAMES.items()
        }

    def emits_level(self, level: Optional[str]) -> bool:
        """Whether an event at ``level`` yields a non-visual signal"""
        severity = LEVEL_SEVERITY.get((level or "").upper())
        if severity is None:
            return False
        return severity >= LEVEL_SEVERITY[self.signal_level]


def load_config(
    registry_root: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None
) -> TestAdvisorConfig:
    """
    Resolve the configuration from config.yaml and the environment

    Args:
        registry_root: Directory holding config.yaml, if any
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Immutable configuration snapshot

    Raises:
        ConfigurationError: If config.yaml is not valid YAML or not a mapping
    """
    environ = os.environ if environ is None else environ
    data: Dict[str, Any] = {}

    if registry_root is not None:
        data.update(_load_config_file(Path(registry_root) / CONFIG_FILENAME))

    valid_options = TestAdvisorConfig.OPTION_NAMES
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        option = key[len(ENV_PREFIX):].lower()
        if option in valid_options:
            data[option] = value

    config = TestAdvisorConfig.from_dict(data)
    logger.debug(f"Configuration: {config.to_dict()}")
    return config


def _load_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in {path}: {e}",
            component="config",
            context={"path": str(path)},
        ) from e

    if data is None:
        return {}
    if isinstance(data, dict) and isinstance(data.get("testadvisor"), dict):
        data = data["testadvisor"]
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a mapping",
            component="config",
            context={"path": str(path)},
        )

    logger.debug(f"Loaded configuration file {path}")
    return data


def _parse_bool(key: str, raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    logger.warning(f"Invalid boolean for {key}: {raw!r}, using {default}")
    return default


def _parse_int(key: str, raw: Any, default: int) -> int:
    if isinstance(raw, bool):
        logger.warning(f"Invalid integer for {key}: {raw!r}, using {default}")
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        logger.warning(f"Invalid integer for {key}: {raw!r}, using {default}")
        return default


def _parse_level(key: str, raw: Any, default: str) -> str:
    level = str(raw).strip().upper()
    if level in LEVEL_SEVERITY:
        return level
    logger.warning(f"Invalid signal level for {key}: {raw!r}, using {default}")
    return default


__all__ = [
    "CONFIG_FILENAME",
    "LEVEL_SEVERITY",
    "TestAdvisorConfig",
    "load_config",
]
