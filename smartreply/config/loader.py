"""
Configuration loader with TOML file parsing and environment variable overrides.

Every setting can be overridden as SMARTREPLY_<SECTION>_<KEY>, for example
SMARTREPLY_RELAY_PORT=4001 or SMARTREPLY_SERVICES_TIMEOUT=1.5. A few
conventional variable names shared with the deployment are honoured too.
"""
import os
import logging
import tomllib
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .models import SmartReplyConfig

logger = logging.getLogger(__name__)

_config: Optional[SmartReplyConfig] = None

ENV_PREFIX = "SMARTREPLY_"

CONFIG_PATHS = [
    Path("/etc/smartreply/smartreply.toml"),
    Path.home() / ".config" / "smartreply" / "smartreply.toml",
]

# Conventional names -> (section, key)
ENV_ALIASES = {
    "OPENAI_API_KEY": ("openai", "api_key"),
    "SENTIMENT_SERVICE_URL": ("services", "sentiment_url"),
    "CONTACTS_SERVICE_URL": ("services", "contacts_url"),
    "STYLE_SERVICE_URL": ("services", "style_url"),
    "REDIS_HOST": ("redis", "host"),
    "REDIS_PORT": ("redis", "port"),
    "API_BASE": ("client", "relay_url"),
}


def _coerce(raw: Any, target: type) -> Any:
    """Convert a TOML or environment value to the field's declared type."""
    if target is bool and isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if target in (int, float, str, bool):
        return target(raw)
    return raw


def _set_field(config: SmartReplyConfig, section: str, key: str, raw: Any):
    section_obj = getattr(config, section)
    declared = {f.name: f.type for f in fields(section_obj)}
    if key not in declared:
        raise KeyError(f"{section}.{key}")
    setattr(section_obj, key, _coerce(raw, declared[key]))


def _apply_toml(config: SmartReplyConfig, data: Mapping[str, Any]):
    sections = {f.name for f in fields(config)}
    for section, values in data.items():
        if section not in sections or not isinstance(values, dict):
            logger.warning(f"Ignoring unknown config section [{section}]")
            continue
        for key, value in values.items():
            try:
                _set_field(config, section, key, value)
            except KeyError:
                logger.warning(f"Ignoring unknown config key {section}.{key}")
            except (ValueError, TypeError) as e:
                logger.warning(f"Invalid value for {section}.{key}: {e}")


def _env_targets(config: SmartReplyConfig) -> Dict[str, tuple]:
    """Map every accepted environment variable to its (section, key)."""
    targets = dict(ENV_ALIASES)
    for section in fields(config):
        for key in fields(getattr(config, section.name)):
            name = f"{ENV_PREFIX}{section.name}_{key.name}".upper()
            targets[name] = (section.name, key.name)
    return targets


def _apply_env_overrides(config: SmartReplyConfig, environ: Optional[Mapping[str, str]] = None) -> SmartReplyConfig:
    environ = os.environ if environ is None else environ

    for env_var, (section, key) in _env_targets(config).items():
        value = environ.get(env_var)
        if value is None:
            continue
        try:
            _set_field(config, section, key, value)
            logger.debug(f"Config override from env: {env_var}")
        except (ValueError, TypeError) as e:
            logger.warning(f"Failed to apply env override {env_var}: {e}")

    return config


def _candidate_paths(config_path: Optional[Path]):
    if config_path:
        return [config_path]
    if os.environ.get("SMARTREPLY_CONFIG"):
        return [Path(os.environ["SMARTREPLY_CONFIG"])]
    return CONFIG_PATHS


def load_config(config_path: Optional[Path] = None) -> SmartReplyConfig:
    """
    Load configuration from TOML file with environment variable overrides.

    Args:
        config_path: Optional explicit path to config file. If None, uses
            $SMARTREPLY_CONFIG or searches default paths.

    Returns:
        SmartReplyConfig instance with loaded configuration.
    """
    global _config

    config = SmartReplyConfig()
    for path in _candidate_paths(config_path):
        if not path.exists():
            continue
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Failed to load config from {path}: {e}")
            continue
        _apply_toml(config, data)
        logger.info(f"Loaded config from {path}")
        break
    else:
        logger.warning("No config file found, using defaults")

    _config = _apply_env_overrides(config)
    return _config


def get_config() -> SmartReplyConfig:
    """Cached config, loaded on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
