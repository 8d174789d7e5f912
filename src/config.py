"""Run configuration management.

Configuration is assembled once per invocation from three layers:
- Built-in defaults (mode=safe, pool=default, no URI, no timeout)
- An optional YAML defaults file (--config, $VMLAB_CLEANUP_CONFIG,
  or ~/.config/vmlab-cleanup/config.yaml)
- Command-line flags

The merge order is: defaults → file → flags. The result is an immutable
RunConfig that no stage may modify.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

MODES = ('safe', 'all')
DEFAULT_MODE = 'safe'
DEFAULT_POOL = 'default'

CONFIG_ENV = 'VMLAB_CLEANUP_CONFIG'
LOCK_DIR_ENV = 'VMLAB_CLEANUP_LOCK_DIR'

# Keys accepted in the YAML defaults file
CONFIG_KEYS = ('mode', 'uri', 'pool', 'timeout', 'lock_dir')


class ConfigError(Exception):
    """Configuration error."""


def default_config_file() -> Path:
    """Return the per-user defaults file location."""
    return Path.home() / '.config' / 'vmlab-cleanup' / 'config.yaml'


@dataclass(frozen=True)
class RunConfig:
    """Immutable configuration for one cleanup run.

    Attributes:
        mode: 'safe' (heuristically owned resources only) or 'all'
        dry_run: Log mutating actions instead of performing them
        quiet: Only warnings and errors are printed
        uri: libvirt connection URI; None uses virsh's default
        pool: Storage pool swept for leftover volumes in safe mode
        verbose: Enable debug logging
        json_output: Print the run report as JSON on stdout
        command_timeout: Per external call timeout in seconds (None = wait forever)
        lock_dir: Base directory for the lock marker (None = env or system temp)
    """
    mode: str = DEFAULT_MODE
    dry_run: bool = False
    quiet: bool = False
    uri: Optional[str] = None
    pool: str = DEFAULT_POOL
    verbose: bool = False
    json_output: bool = False
    command_timeout: Optional[int] = None
    lock_dir: Optional[Path] = None

    def __post_init__(self):
        if self.mode not in MODES:
            raise ConfigError(f"--mode must be 'safe' or 'all' (got '{self.mode}')")
        if not self.pool:
            raise ConfigError("pool name must not be empty")
        if self.uri is not None and not self.uri:
            raise ConfigError("uri must not be empty")
        if self.command_timeout is not None and self.command_timeout <= 0:
            raise ConfigError(f"timeout must be a positive number of seconds (got {self.command_timeout})")


def find_config_file(explicit: Optional[Path] = None) -> Optional[Path]:
    """Locate the YAML defaults file.

    An explicitly requested file must exist. The environment override and
    per-user default are optional.
    """
    if explicit is not None:
        if not explicit.exists():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit

    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        path = Path(env_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path} (from ${CONFIG_ENV})")
        return path

    path = default_config_file()
    return path if path.exists() else None


def load_defaults(path: Path) -> dict[str, Any]:
    """Load the defaults mapping from a YAML file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")

    defaults = {}
    for key, value in data.items():
        if key in CONFIG_KEYS:
            defaults[key] = value
        else:
            logger.debug(f"Ignoring unknown config key '{key}' in {path}")
    logger.debug(f"Loaded defaults from {path}: {sorted(defaults)}")
    return defaults


def _coerce_timeout(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"timeout must be an integer number of seconds (got {value!r})")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"timeout must be an integer number of seconds (got {value!r})") from e


def _coerce_string(key: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string (got {value!r})")
    return value


def build_run_config(args, defaults: Optional[dict[str, Any]] = None) -> RunConfig:
    """Merge parsed CLI arguments over file defaults into a RunConfig.

    Args:
        args: argparse namespace; unset options are None
        defaults: Mapping loaded by load_defaults()
    """
    defaults = defaults or {}

    # An empty YAML value (`pool:`) counts as unset
    def pick(arg_value, key, fallback):
        if arg_value is not None:
            return arg_value
        value = defaults.get(key)
        return fallback if value is None else value

    # Environment override beats the file; the lock falls back to system temp
    file_lock_dir = _coerce_string('lock_dir', defaults.get('lock_dir'))
    lock_dir = os.environ.get(LOCK_DIR_ENV) or file_lock_dir
    uri = _coerce_string('uri', pick(args.uri, 'uri', None))

    return RunConfig(
        mode=_coerce_string('mode', pick(args.mode, 'mode', DEFAULT_MODE)),
        dry_run=bool(args.dry_run),
        quiet=bool(args.quiet),
        uri=uri,
        pool=_coerce_string('pool', pick(args.pool, 'pool', DEFAULT_POOL)),
        verbose=bool(getattr(args, 'verbose', False)),
        json_output=bool(getattr(args, 'json_output', False)),
        command_timeout=_coerce_timeout(pick(getattr(args, 'timeout', None), 'timeout', None)),
        lock_dir=Path(lock_dir).expanduser() if lock_dir else None,
    )
