"""Application settings loaded from an INI file."""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .vpn.exceptions import ConfigurationError

BASE_PATH = Path(__file__).parent.parent
DEFAULT_CONFIG_FILE = BASE_PATH / "config" / "vpn_toggle.conf"
CONFIG_ENV_VAR = "VPN_TOGGLE_CONFIG"


@dataclass
class Settings:
    """Runtime settings for the VPN toggle service"""
    binary: str = "openvpn"
    config_path: Path = BASE_PATH / "config.ovpn"
    use_sudo: bool = False
    read_size: int = 4096
    retry_enabled: bool = True
    retry_delay: float = 3.0
    retry_settle_delay: float = 1.0
    log_level: str = "INFO"
    log_dir: Path = BASE_PATH / "logs"
    host: str = "127.0.0.1"
    port: int = 8000


def _resolve(path: str) -> Path:
    resolved = Path(path).expanduser()
    if not resolved.is_absolute():
        resolved = BASE_PATH / resolved
    return resolved


def _load_config(config_file: Path) -> configparser.ConfigParser:
    config = configparser.ConfigParser()
    config.read(config_file)
    return config


def load_settings(config_file: Optional[str] = None) -> Settings:
    """
    Load settings from an INI file.

    Args:
        config_file: Path to the INI file. Falls back to the
            VPN_TOGGLE_CONFIG environment variable, then config/vpn_toggle.conf.

    Returns:
        Settings with defaults for every missing key

    Raises:
        ConfigurationError: If a value cannot be parsed
    """
    config_file = Path(config_file or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE)
    config = _load_config(config_file)
    defaults = Settings()

    try:
        settings = Settings(
            binary=config.get("openvpn", "binary", fallback=defaults.binary),
            config_path=_resolve(config.get("openvpn", "config_path", fallback=str(defaults.config_path))),
            use_sudo=config.getboolean("openvpn", "use_sudo", fallback=defaults.use_sudo),
            read_size=config.getint("openvpn", "read_size", fallback=defaults.read_size),
            retry_enabled=config.getboolean("retry", "enabled", fallback=defaults.retry_enabled),
            retry_delay=config.getfloat("retry", "delay", fallback=defaults.retry_delay),
            retry_settle_delay=config.getfloat("retry", "settle_delay", fallback=defaults.retry_settle_delay),
            log_level=config.get("logging", "level", fallback=defaults.log_level).upper(),
            log_dir=_resolve(config.get("logging", "log_dir", fallback=str(defaults.log_dir))),
            host=config.get("server", "host", fallback=defaults.host),
            port=config.getint("server", "port", fallback=defaults.port),
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid setting in {config_file}: {str(e)}")

    if not settings.binary.strip():
        raise ConfigurationError("openvpn.binary cannot be empty")
    if settings.read_size <= 0:
        raise ConfigurationError("openvpn.read_size must be positive")
    if settings.retry_delay < 0 or settings.retry_settle_delay < 0:
        raise ConfigurationError("Retry delays cannot be negative")

    return settings
