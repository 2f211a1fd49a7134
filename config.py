"""
Configuration loading for the MoneyMatic API.

Settings come from a YAML file (``config.yaml`` by default, or the path in
``MONEYMATIC_CONFIG``), merged over DEFAULT_CONFIG, with a handful of
environment variable overrides applied last.
"""

import copy
import logging
import os
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE = 'config.yaml'

# Used only outside production when nothing else is configured
DEV_SECRET_KEY = 'moneymatic-dev-secret'

DEFAULT_CONFIG: Dict[str, Any] = {
    'environment': 'development',
    'secret_key': None,
    'database': {
        'url': 'sqlite:///moneymatic.db',
    },
    'auth': {
        'token_max_age_days': 7,
        'min_password_length': 6,
    },
    'pagination': {
        'default_limit': 10,
        'max_limit': 100,
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'file': None,
    },
}

# env var -> (section, key); section None means top level
ENV_OVERRIDES = {
    'SECRET_KEY': (None, 'secret_key'),
    'JWT_SECRET': (None, 'secret_key'),
    'DATABASE_URL': ('database', 'url'),
    'APP_ENV': (None, 'environment'),
    'LOG_LEVEL': ('logging', 'level'),
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def with_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of a partial configuration filled in from DEFAULT_CONFIG."""
    return _deep_merge(DEFAULT_CONFIG, config)


def _apply_env_overrides(config: Dict[str, Any]) -> None:
    # SECRET_KEY wins over JWT_SECRET, so apply in reverse declaration order
    for env_name, (section, key) in reversed(list(ENV_OVERRIDES.items())):
        value = os.environ.get(env_name)
        if not value:
            continue
        target = config if section is None else config.setdefault(section, {})
        target[key] = value


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML, merged over the defaults.

    Args:
        config_path: Path to the YAML file. Defaults to ``MONEYMATIC_CONFIG``
            or ``config.yaml`` in the working directory. A missing file is
            not an error.

    Returns:
        Configuration dictionary with defaults for missing values

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping
    """
    if config_path is None:
        config_path = Path(os.environ.get('MONEYMATIC_CONFIG', CONFIG_FILE))

    file_config: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(
                "Invalid YAML in configuration file",
                details={'path': str(config_path)},
                original_error=exc,
            ) from exc
        if not isinstance(file_config, dict):
            raise ConfigError(
                "Configuration file must contain a mapping",
                details={'path': str(config_path)},
            )
        logger.info("Configuration loaded from %s", config_path)
    else:
        logger.debug("No configuration file at %s; using defaults", config_path)

    config = _deep_merge(DEFAULT_CONFIG, file_config)
    _apply_env_overrides(config)
    return config


def resolve_secret_key(config: Dict[str, Any]) -> str:
    """
    Return the signing secret, refusing to run production without one.

    Raises:
        ConfigError: If no secret is configured in production
    """
    secret = config.get('secret_key')
    if secret:
        return secret
    if config.get('environment') == 'production':
        raise ConfigError("SECRET_KEY is required in production")
    logger.warning("SECRET_KEY not set. Using default (unsafe for production)")
    return DEV_SECRET_KEY


def to_flask_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Translate the nested configuration into flat Flask settings."""
    auth = config.get('auth', {})
    pagination = config.get('pagination', {})
    return {
        'SECRET_KEY': resolve_secret_key(config),
        'SQLALCHEMY_DATABASE_URI': config['database']['url'],
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TOKEN_MAX_AGE': int(timedelta(days=auth.get('token_max_age_days', 7)).total_seconds()),
        'MIN_PASSWORD_LENGTH': auth.get('min_password_length', 6),
        'DEFAULT_PAGE_SIZE': pagination.get('default_limit', 10),
        'MAX_PAGE_SIZE': pagination.get('max_limit', 100),
        'APP_ENV': config.get('environment', 'development'),
    }


def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configure logging based on config settings.

    Args:
        config: Configuration dictionary with logging settings
    """
    log_config = config.get('logging', {})
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), None)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    log_format = log_config.get('format') or DEFAULT_CONFIG['logging']['format']
    log_file = log_config.get('file')

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigError(
                "Unable to prepare log file path",
                details={'path': log_file},
                original_error=exc,
            ) from exc
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers
    )
