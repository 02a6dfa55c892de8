"""Configuration loading (TOML, env vars, .env, credentials)."""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from shellagent.types.config import AgentConfig, RateTable

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".shellagent"
KEY_FILE_NAME = "openai.key"

ENV_KEYS: dict[str, str] = {
    "model": "SHELLAGENT_MODEL",
    "temperature": "SHELLAGENT_TEMPERATURE",
    "max_turns": "SHELLAGENT_MAX_TURNS",
    "safe_mode": "SHELLAGENT_SAFE_MODE",
    "catalog_limit": "SHELLAGENT_CATALOG_LIMIT",
    "logs_dir": "SHELLAGENT_LOGS_DIR",
    "report_tail_bytes": "SHELLAGENT_REPORT_TAIL_BYTES",
    "command_timeout": "SHELLAGENT_COMMAND_TIMEOUT",
    "cwd": "SHELLAGENT_CWD",
    "base_url": "OPENAI_BASE_URL",
    "cost_in_per_1k": "SHELLAGENT_COST_IN_PER_1K",
    "cost_in_cached_per_1k": "SHELLAGENT_COST_IN_CACHED_PER_1K",
    "cost_out_per_1k": "SHELLAGENT_COST_OUT_PER_1K",
}

_RATE_FIELDS = {
    "cost_in_per_1k": "cost_per_k_non_cached",
    "cost_in_cached_per_1k": "cost_per_k_cached",
    "cost_out_per_1k": "cost_per_k_output",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """A configuration value is missing or malformed."""


class CredentialMissing(Exception):
    """No API key could be found."""


def load_environment(cwd: str | None = None) -> None:
    """Load ``.env`` into the process environment without overriding it."""
    path = Path(cwd or Path.cwd()) / ".env"
    if path.exists():
        load_dotenv(path, override=False)


def load_toml_config(cwd: str | None = None) -> dict[str, Any]:
    """Load the ``[agent]`` table of the first config.toml found.

    Searched: ``<cwd>/.shellagent/config.toml`` then
    ``~/.shellagent/config.toml``.
    """
    for path in _config_candidates(cwd):
        if not path.exists():
            continue
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"Cannot read {path}: {exc}") from exc
        section = data.get("agent", {})
        if not isinstance(section, dict):
            raise ConfigError(f"[agent] in {path} must be a table")
        logger.debug("Loaded config from %s", path)
        return section
    return {}


def _config_candidates(cwd: str | None) -> list[Path]:
    base = Path(cwd) if cwd else Path.cwd()
    return [
        base / CONFIG_DIR_NAME / "config.toml",
        Path.home() / CONFIG_DIR_NAME / "config.toml",
    ]


def load_env_config(env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Collect the configuration keys present in the environment."""
    source = os.environ if env is None else env
    return {key: source[var] for key, var in ENV_KEYS.items() if source.get(var)}


def resolve_api_key(
    explicit_key: str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
) -> str | None:
    """Resolve the OpenAI key from explicit value, env, ``openai.key`` or config file."""
    if explicit_key:
        return explicit_key

    source = os.environ if env is None else env
    if val := source.get("OPENAI_API_KEY"):
        return val

    key_file = (Path(cwd) if cwd else Path.cwd()) / KEY_FILE_NAME
    if key_file.exists():
        key = key_file.read_text(encoding="utf-8").strip()
        if key:
            return key

    config_path = Path.home() / CONFIG_DIR_NAME / "config.toml"
    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError):
            logger.warning("Cannot read %s while looking for an API key", config_path)
            return None
        key = data.get("providers", {}).get("openai", {}).get("api_key")
        if key:
            return str(key)

    return None


def require_api_key(config: AgentConfig) -> str:
    if not config.api_key:
        raise CredentialMissing(
            "API key required. Set OPENAI_API_KEY or put it in ./openai.key"
        )
    return config.api_key


def load_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
) -> AgentConfig:
    """Build the immutable :class:`AgentConfig`.

    Precedence, lowest first: defaults, config.toml ``[agent]``, environment,
    *overrides* (CLI flags; ``None`` values are ignored).
    """
    values: dict[str, Any] = {}
    values.update(load_toml_config(cwd))
    values.update(load_env_config(env))
    explicit = {k: v for k, v in (overrides or {}).items() if v is not None}
    api_key = explicit.pop("api_key", None)
    values.update(explicit)

    unknown = set(values) - set(ENV_KEYS)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    defaults = AgentConfig()
    rate_defaults = RateTable()
    rates = RateTable(**{
        field: _decimal(name, values.get(name, getattr(rate_defaults, field)))
        for name, field in _RATE_FIELDS.items()
    })

    config = AgentConfig(
        model=str(values.get("model", defaults.model)),
        temperature=_float(
            "temperature", values.get("temperature", defaults.temperature),
            minimum=0.0, maximum=2.0,
        ),
        max_turns=_int("max_turns", values.get("max_turns", defaults.max_turns), minimum=1),
        safe_mode=_bool("safe_mode", values.get("safe_mode", defaults.safe_mode)),
        rates=rates,
        catalog_limit=_int(
            "catalog_limit", values.get("catalog_limit", defaults.catalog_limit), minimum=0,
        ),
        logs_dir=str(values.get("logs_dir", defaults.logs_dir)),
        report_tail_bytes=_int(
            "report_tail_bytes",
            values.get("report_tail_bytes", defaults.report_tail_bytes),
            minimum=1,
        ),
        command_timeout=_optional_timeout(values.get("command_timeout")),
        cwd=values.get("cwd", cwd),
        base_url=values.get("base_url"),
        api_key=resolve_api_key(api_key, env=env, cwd=cwd),
    )
    if not config.model:
        raise ConfigError("model must not be empty")
    return config


# ---------------------------------------------------------------------------
# Value parsing
# ---------------------------------------------------------------------------


def _int(name: str, value: Any, *, minimum: int) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    if parsed < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {parsed}")
    return parsed


def _float(name: str, value: Any, *, minimum: float, maximum: float) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
    if not minimum <= parsed <= maximum:
        raise ConfigError(f"{name} must be between {minimum} and {maximum}, got {parsed}")
    return parsed


def _bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _decimal(name: str, value: Any) -> Decimal:
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise ConfigError(f"{name} must be a decimal number, got {value!r}") from exc
    if not parsed.is_finite() or parsed < 0:
        raise ConfigError(f"{name} must be a non-negative number, got {value!r}")
    return parsed


def _optional_timeout(value: Any) -> float | None:
    if value is None or value == "":
        return None
    timeout = _float("command_timeout", value, minimum=0.0, maximum=float("inf"))
    return timeout or None
