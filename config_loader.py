"""
Configuration loader for the Vaidya chat service
"""
import copy
import json
import os
from typing import Dict, Any

DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {"host": "0.0.0.0", "port": 8000},
    "database": {"backend": "sqlite", "path": "vaidya_chat.db", "echo": False},
    "gemini": {"model_name": "gemini-1.5-flash", "temperature": 0.7, "max_tokens": 1000},
    "image_detection": {"url": None, "timeout": 60},
    "app": {"debug": False, "log_level": "INFO", "history_limit": 50},
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str = "config.json") -> Dict[str, Any]:
    """
    Load configuration from JSON file with environment variable overrides

    The file is optional; defaults apply for anything it does not set.

    Args:
        config_path: Path to the configuration file

    Returns:
        Configuration dictionary

    Raises:
        ValueError: If the config file is invalid JSON or a value is invalid
    """
    file_config: Dict[str, Any] = {}
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file {config_path}: {str(e)}") from e

    config = _merge(copy.deepcopy(DEFAULT_CONFIG), file_config)

    # Override with environment variables if they exist
    config = _override_with_env_vars(config)

    # Validate required fields
    _validate_config(config)

    return config


def _override_with_env_vars(config: Dict[str, Any]) -> Dict[str, Any]:
    """Override config values with environment variables"""

    # Server settings
    if "PORT" in os.environ:
        config["server"]["port"] = int(os.environ["PORT"])

    if "HOST" in os.environ:
        config["server"]["host"] = os.environ["HOST"]

    # Database settings
    if "DATABASE_URL" in os.environ:
        config["database"]["url"] = os.environ["DATABASE_URL"]

    if "DB_BACKEND" in os.environ:
        config["database"]["backend"] = os.environ["DB_BACKEND"].lower()

    # Gemini settings
    if "GEMINI_API_KEY" in os.environ:
        config["gemini"]["api_key"] = os.environ["GEMINI_API_KEY"]

    if "GEMINI_MODEL" in os.environ:
        config["gemini"]["model_name"] = os.environ["GEMINI_MODEL"]

    # Image detection settings
    if "IMAGE_DETECTION_URL" in os.environ:
        config["image_detection"]["url"] = os.environ["IMAGE_DETECTION_URL"]

    # App settings
    if "DEBUG" in os.environ:
        config["app"]["debug"] = os.environ["DEBUG"].lower() in ("true", "1", "yes")

    if "LOG_LEVEL" in os.environ:
        config["app"]["log_level"] = os.environ["LOG_LEVEL"].upper()

    return config


def _validate_config(config: Dict[str, Any]) -> None:
    """Validate that configuration values are usable"""

    required_sections = ["server", "database", "gemini", "image_detection", "app"]
    for section in required_sections:
        if not isinstance(config.get(section), dict):
            raise ValueError(f"Missing required config section: {section}")

    database = config["database"]
    url = database.get("url")
    backend = (database.get("backend") or "sqlite").lower()
    if not url and backend not in ("sqlite", "postgresql"):
        raise ValueError(f"Unsupported database.backend '{backend}' (expected sqlite or postgresql)")

    try:
        config["server"]["port"] = int(config["server"]["port"])
    except (TypeError, ValueError):
        raise ValueError(f"server.port must be an integer, got {config['server']['port']!r}")

    api_key = config["gemini"].get("api_key")
    if api_key and api_key.startswith("YOUR_"):
        raise ValueError("Please set a valid value for gemini.api_key in config.json or environment variables")


def get_server_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get HTTP server configuration"""
    return config.get("server", {})


def get_database_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get database configuration"""
    return config.get("database", {})


def get_gemini_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get Gemini-specific configuration"""
    return config.get("gemini", {})


def get_image_detection_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get image detection service configuration"""
    return config.get("image_detection", {})


def get_app_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get application-specific configuration"""
    return config.get("app", {})
