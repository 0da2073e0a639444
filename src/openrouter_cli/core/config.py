"""
Configuration Management for openrouter-cli

Resolves the effective configuration from built-in defaults, the persisted
YAML settings file, the environment and per-invocation overrides.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import click
import httpx
import structlog
import yaml

from .errors import (
    ConfigError,
    ConfigValidationError,
    NoAPIKeyError,
    UnknownConfigKeyError,
)

logger = structlog.get_logger(__name__)

APP_NAME = "openrouter"
CONFIG_FILENAME = "config.yaml"
FALLBACK_CONFIG_FILENAME = ".openrouter.yaml"
API_KEY_ENV_VAR = "OPENROUTER_API_KEY"

DEFAULT_MODEL = "openai/gpt-4"
DEFAULT_TEMPERATURE = 1.0
DEFAULT_MAX_TOKENS = 4096
DEFAULT_OUTPUT_FORMAT = "pretty"
DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TIMEOUT = 60

OUTPUT_FORMATS = ("pretty", "raw", "json")
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0

# Keys accepted by "config set"
SETTABLE_KEYS = (
    "api_key",
    "default_model",
    "default_temperature",
    "default_max_tokens",
    "output_format",
    "api_base_url",
    "timeout",
)

# Keys accepted by "config get"
READABLE_KEYS = SETTABLE_KEYS + ("unavailable_models",)


def get_config_path() -> Path:
    """Get the default configuration file path"""
    try:
        Path.home()
    except RuntimeError:
        return Path(FALLBACK_CONFIG_FILENAME)
    return Path(click.get_app_dir(APP_NAME)) / CONFIG_FILENAME


def mask_api_key(key: str) -> str:
    """Mask an API key for display, keeping the last four characters"""
    if not key:
        return "(not set)"
    if len(key) <= 4:
        return "****"
    return "sk-..." + key[-4:]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_http_url(value: str) -> bool:
    """An absolute http(s) URL with a host that httpx can parse"""
    if not value.startswith(("http://", "https://")):
        return False
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL:
        return False
    return bool(url.host)


@dataclass
class ConfigOverrides:
    """
    Sparse per-invocation overrides. A field left as None was not supplied
    and leaves the resolved value untouched.
    """
    api_key: Optional[str] = None
    default_model: Optional[str] = None
    default_temperature: Optional[float] = None
    default_max_tokens: Optional[int] = None
    output_format: Optional[str] = None
    api_base_url: Optional[str] = None
    timeout: Optional[int] = None

    def apply(self, config: "Config"):
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                setattr(config, f.name, value)


@dataclass
class Config:
    """Effective configuration for one invocation"""
    api_key: str = ""
    default_model: str = DEFAULT_MODEL
    default_temperature: float = DEFAULT_TEMPERATURE
    default_max_tokens: int = DEFAULT_MAX_TOKENS
    output_format: str = DEFAULT_OUTPUT_FORMAT
    api_base_url: str = DEFAULT_BASE_URL
    timeout: int = DEFAULT_TIMEOUT
    unavailable_models: List[str] = field(default_factory=list)
    config_path: Optional[Path] = field(default=None, repr=False, compare=False)

    def require_api_key(self) -> str:
        """Return the API key, raising NoAPIKeyError when none was resolved"""
        if not self.api_key:
            raise NoAPIKeyError()
        return self.api_key

    def to_dict(self) -> Dict[str, Any]:
        """Persistable form of the configuration"""
        return {
            "api_key": self.api_key,
            "default_model": self.default_model,
            "default_temperature": self.default_temperature,
            "default_max_tokens": self.default_max_tokens,
            "output_format": self.output_format,
            "api_base_url": self.api_base_url,
            "timeout": self.timeout,
            "unavailable_models": list(self.unavailable_models),
        }

    def _apply_config_data(self, config_data: Dict[str, Any]):
        """Apply the fields present in a parsed settings file"""
        for key, value in config_data.items():
            # Empty YAML values are treated as absent
            if value is None:
                continue

            if key in ("api_key", "default_model", "output_format", "api_base_url"):
                if not isinstance(value, str):
                    raise ConfigError(f"invalid value for {key} in config file: expected a string")
                if key == "output_format" and value not in OUTPUT_FORMATS:
                    raise ConfigError(f"invalid value for {key} in config file: must be pretty, raw, or json")
                if key == "api_base_url" and not _is_http_url(value):
                    raise ConfigError(f"invalid value for {key} in config file: must be an http or https URL")
                setattr(self, key, value)
            elif key == "default_temperature":
                if not _is_number(value):
                    raise ConfigError(f"invalid value for {key} in config file: expected a number")
                self.default_temperature = float(value)
            elif key in ("default_max_tokens", "timeout"):
                if not _is_integer(value):
                    raise ConfigError(f"invalid value for {key} in config file: expected an integer")
                if key == "timeout" and value <= 0:
                    raise ConfigError(f"invalid value for {key} in config file: must be positive")
                setattr(self, key, value)
            elif key == "unavailable_models":
                if not isinstance(value, list) or not all(isinstance(m, str) for m in value):
                    raise ConfigError(f"invalid value for {key} in config file: expected a list of strings")
                unique = list(dict.fromkeys(value))
                if len(unique) != len(value):
                    logger.warning("Dropped duplicate unavailable models", count=len(value) - len(unique))
                self.unavailable_models = unique
            else:
                logger.debug("Ignoring unknown config key", key=key)

    def save(self):
        """Write the whole configuration to disk, readable by the owner only"""
        path = self.config_path or get_config_path()
        data = yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            # The mode passed to os.open only applies to newly created files
            os.chmod(path, 0o600)
        except OSError as e:
            logger.error("Failed to save configuration", path=str(path), error=str(e))
            raise ConfigError(f"failed to save config: {e}") from e

        self.config_path = path
        logger.info("Configuration saved", path=str(path))

    def get_value(self, key: str) -> str:
        """Get a configuration value formatted for display"""
        if key not in READABLE_KEYS:
            raise UnknownConfigKeyError(key)
        if key == "api_key":
            return mask_api_key(self.api_key)
        if key == "unavailable_models":
            if not self.unavailable_models:
                return "(none)"
            return "\n".join(self.unavailable_models)
        return str(getattr(self, key))

    def set_value(self, key: str, value: str):
        """Validate and set one configuration value, then persist"""
        if key not in SETTABLE_KEYS:
            raise UnknownConfigKeyError(key)

        if key == "default_temperature":
            try:
                temperature = float(value)
            except ValueError:
                raise ConfigValidationError("temperature must be a number") from None
            if not MIN_TEMPERATURE <= temperature <= MAX_TEMPERATURE:
                raise ConfigValidationError(
                    f"temperature must be between {MIN_TEMPERATURE} and {MAX_TEMPERATURE}"
                )
            self.default_temperature = temperature
        elif key == "default_max_tokens":
            try:
                max_tokens = int(value)
            except ValueError:
                raise ConfigValidationError("max_tokens must be an integer") from None
            if max_tokens < 0:
                raise ConfigValidationError("max_tokens must not be negative")
            self.default_max_tokens = max_tokens
        elif key == "timeout":
            try:
                timeout = int(value)
            except ValueError:
                raise ConfigValidationError("timeout must be an integer (seconds)") from None
            if timeout <= 0:
                raise ConfigValidationError("timeout must be positive")
            self.timeout = timeout
        elif key == "output_format":
            if value not in OUTPUT_FORMATS:
                raise ConfigValidationError("output_format must be: pretty, raw, or json")
            self.output_format = value
        elif key == "api_base_url":
            if not _is_http_url(value):
                raise ConfigValidationError("api_base_url must be an http or https URL")
            self.api_base_url = value.rstrip("/")
        else:
            setattr(self, key, value)

        self.save()

    def is_model_unavailable(self, model_id: str) -> bool:
        """Check if a model is in the unavailable list"""
        return model_id in self.unavailable_models

    def add_unavailable_model(self, model_id: str):
        """Add a model to the unavailable list, then persist"""
        if self.is_model_unavailable(model_id):
            raise ConfigValidationError(f"model {model_id} is already marked as unavailable")
        self.unavailable_models.append(model_id)
        self.save()

    def remove_unavailable_model(self, model_id: str):
        """Remove a model from the unavailable list, then persist"""
        if not self.is_model_unavailable(model_id):
            raise ConfigValidationError(f"model {model_id} not found in unavailable list")
        self.unavailable_models.remove(model_id)
        self.save()


def _read_config_file(path: Path) -> Optional[Dict[str, Any]]:
    """Read the settings file, returning None when it does not exist"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except FileNotFoundError:
        return None
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise ConfigError(f"failed to parse config file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e

    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        raise ConfigError(f"failed to parse config file {path}: expected a mapping")
    return config_data


def resolve(
    overrides: Optional[ConfigOverrides] = None,
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Build the effective configuration. Later layers win: defaults, the
    settings file, the API key environment variable, explicit overrides.

    An empty API key is not an error here; callers that need one use
    Config.require_api_key().
    """
    path = Path(config_path) if config_path else get_config_path()
    environ = os.environ if environ is None else environ

    config = Config(config_path=path)

    config_data = _read_config_file(path)
    if config_data is None:
        logger.debug("No config file, using defaults", config_path=str(path))
    else:
        config._apply_config_data(config_data)
        logger.debug("Configuration loaded from file", config_path=str(path))

    env_key = environ.get(API_KEY_ENV_VAR)
    if env_key:
        config.api_key = env_key
        logger.debug("API key taken from environment")

    if overrides is not None:
        overrides.apply(config)

    return config
