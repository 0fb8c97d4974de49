"""
Configuration management for Lightsift
"""

import yaml
import os
import re
from pathlib import Path
from typing import Dict, Any, Optional, Union
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

def _expand_env_vars(obj: Union[Dict, Any]) -> Union[Dict, Any]:
    """
    Recursively expand environment variables in config values.
    Supports ${VAR_NAME} syntax.
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        pattern = r'\$\{([^}]+)\}'
        def replace_var(match):
            var_name = match.group(1)
            return os.getenv(var_name, match.group(0))  # Keep original if unset
        return re.sub(pattern, replace_var, obj)
    else:
        return obj

def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``override`` onto ``base`` without mutating either."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged

def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file

    Args:
        config_path: Path to config file. If None, uses default config.yaml

    Returns:
        Configuration dictionary, always containing every default key
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}. Using defaults.")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {config_path}")
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return get_default_config()

    if not isinstance(config, dict):
        logger.error(f"Config file {config_path} does not contain a mapping. Using defaults.")
        return get_default_config()

    return _merge(get_default_config(), _expand_env_vars(config))

def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration values

    Returns:
        Default configuration dictionary
    """
    return {
        'preview': {
            'cache_capacity': 10,
            'max_size': 1600,
            'jpeg_quality': 85,
        },
        'analysis': {
            'max_size': 1024,
        },
        'thumbnails': {
            'size': 256,
            'directory': None,  # Resolved by get_thumbnail_dir()
        },
        'pipeline': {
            'workers': None,  # CPU count
            'min_rows_per_chunk': 64,
        },
        'raw': {
            'min_preview_bytes': 10000,
        },
        'export': {
            'format': 'jpeg',
            'quality': 92,
            'resize_value': None,
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        },
    }

def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation

    Args:
        config: Configuration dictionary
        key_path: Dot-separated key path (e.g., 'preview.max_size')
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    keys = key_path.split('.')
    value = config

    try:
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default

def get_thumbnail_dir(config: Optional[Dict[str, Any]] = None) -> Path:
    """Resolve the thumbnail directory from config, env or the user cache dir."""
    configured = get_config_value(config or {}, 'thumbnails.directory')
    if configured:
        return Path(configured).expanduser()

    cache_root = os.getenv('LIGHTSIFT_CACHE_DIR')
    if cache_root:
        return Path(cache_root) / 'thumbnails'
    return Path.home() / '.cache' / 'lightsift' / 'thumbnails'
