"""Configuration management with XDG paths, atomic writes, and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.chainhttp/`` on macOS and Windows. See :func:`get_config_dir`.
* **Global config** -- a single :class:`~chainhttp.models.GlobalConfig`
  JSON file holding transport defaults, the default response encoding,
  and output preferences.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the config file into the effective
  configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from chainhttp.exceptions import ConfigError, InvalidUsageError
from chainhttp.models import GlobalConfig

_APP_NAME = "chainhttp"
_CONFIG_FILENAME = "config.json"

ENV_TIMEOUT = "CHAINHTTP_TIMEOUT"
ENV_VERIFY_SSL = "CHAINHTTP_VERIFY_SSL"
ENV_ENCODING = "CHAINHTTP_ENCODING"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/chainhttp/`` (default ``~/.config/chainhttp/``).
    On macOS/Windows: ``~/.chainhttp/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~chainhttp.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def _env_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"Environment variable {name} must be a boolean, got: {raw!r}")


def resolve_config(
    cli_timeout: Optional[float] = None,
    cli_encoding: Optional[str] = None,
    cli_verbose: Optional[bool] = None,
    cli_no_color: Optional[bool] = None,
) -> GlobalConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``CHAINHTTP_TIMEOUT``,
           ``CHAINHTTP_VERIFY_SSL``, ``CHAINHTTP_ENCODING``)
        3. User config (``~/.config/chainhttp/config.json``)
        4. Defaults

    Raises:
        ConfigError: If the config file is invalid or an environment
            variable cannot be parsed.
    """
    config = load_global_config()

    env_timeout = os.environ.get(ENV_TIMEOUT)
    if env_timeout:
        try:
            config.transport.timeout = float(env_timeout)
        except ValueError as exc:
            raise ConfigError(
                f"Environment variable {ENV_TIMEOUT} must be a number, got: {env_timeout!r}"
            ) from exc

    env_verify = os.environ.get(ENV_VERIFY_SSL)
    if env_verify:
        config.transport.verify_ssl = _env_bool(ENV_VERIFY_SSL, env_verify)

    env_encoding = os.environ.get(ENV_ENCODING)
    if env_encoding:
        config.default_encoding = env_encoding

    if cli_timeout is not None:
        config.transport.timeout = cli_timeout
    if cli_encoding is not None:
        config.default_encoding = cli_encoding
    if cli_verbose is not None:
        config.output.verbose = cli_verbose
    if cli_no_color is not None:
        config.output.no_color = cli_no_color

    return config


# --- Editing ---


def set_config_value(config: GlobalConfig, key: str, raw: str) -> GlobalConfig:
    """Return a copy of *config* with the dotted *key* set to *raw*.

    *raw* is parsed by the field's own validator, so ``"10"`` becomes a
    float for ``transport.timeout`` and ``"off"`` a bool for
    ``transport.verify_ssl``.

    Raises:
        InvalidUsageError: If *key* does not name a setting, or *raw* is
            not a valid value for it.
    """
    *parents, name = key.split(".")
    data = config.model_dump(mode="json")
    section: Any = data
    for part in parents:
        section = section.get(part) if isinstance(section, dict) else None
    if not isinstance(section, dict) or name not in section or isinstance(section[name], dict):
        raise InvalidUsageError(f"Unknown config key: {key}")

    section[name] = raw
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise InvalidUsageError(f"Invalid value for {key}: {raw!r}") from exc
