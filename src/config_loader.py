"""
Configuration loader for the UPnP discovery tool
Loads and validates configuration from YAML files
"""

import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict):
            raise ValueError(f"Configuration must be a mapping: {config_path}")

        # Validate required sections
        _validate_config(config)

        # Apply defaults
        config = _apply_defaults(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_positive_int(section: Dict, name: str, section_name: str) -> None:
    if name not in section:
        return
    value = section[name]
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{section_name}.{name} must be a positive integer, got {value!r}")

def _validate_config(config: Dict) -> None:
    """Validate that required configuration sections exist"""
    required_sections = ['ssdp']

    for section in required_sections:
        if section not in config:
            raise ValueError(f"Missing required configuration section: {section}")

    # Validate ssdp section
    ssdp = config['ssdp'] or {}
    if not isinstance(ssdp, dict):
        raise ValueError("ssdp section must be a mapping")
    for field in ['search_count', 'reception_timeout_ms', 'mx', 'device_version']:
        _validate_positive_int(ssdp, field, 'ssdp')
    if ssdp.get('mx', 3) > 5:
        logger.warning(f"ssdp.mx={ssdp['mx']} is above the protocol maximum of 5 - devices may clamp it")

    interfaces = ssdp.get('interfaces')
    if interfaces is not None and not isinstance(interfaces, list):
        raise ValueError("ssdp.interfaces must be a list of addresses")

    # Validate http section if present
    if 'http' in config:
        http = config['http'] or {}
        if not isinstance(http, dict):
            raise ValueError("http section must be a mapping")
        _validate_positive_int(http, 'max_concurrent_fetches', 'http')
        timeout = http.get('request_timeout', 5)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(f"http.request_timeout must be a positive number, got {timeout!r}")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    # SSDP defaults
    if not config.get('ssdp'):
        config['ssdp'] = {}
    ssdp_defaults = {
        'device_type': 'MediaServer',
        'device_version': 1,
        'search_count': 3,
        'reception_timeout_ms': 3000,
        'mx': 3,
        'bind_timeout_seconds': 2,
        'include_loopback': False,
        'interfaces': []
    }
    for key, default_value in ssdp_defaults.items():
        if key not in config['ssdp']:
            config['ssdp'][key] = default_value

    # HTTP defaults
    if not config.get('http'):
        config['http'] = {}
    http_defaults = {
        'request_timeout': 5,
        'max_concurrent_fetches': 5
    }
    for key, default_value in http_defaults.items():
        if key not in config['http']:
            config['http'][key] = default_value

    # Logging defaults
    if not config.get('logging'):
        config['logging'] = {}
    logging_defaults = {
        'level': 'INFO',
        'file': 'logs/upnp_discovery.log',
        'console_output': True,
        'timezone': 'UTC'
    }
    for key, default_value in logging_defaults.items():
        if key not in config['logging']:
            config['logging'][key] = default_value

    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in a configured timezone"""

    def __init__(self, fmt=None, timezone: str = 'UTC'):
        super().__init__(fmt)
        self.tz = pytz.timezone(timezone)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration with timezone-aware timestamps"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, log_config.get('timezone', 'UTC'))

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        handlers=[]
    )

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logging.getLogger().addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        # Create logs directory if it doesn't exist
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "ssdp": {
            "device_type": "MediaServer",
            "device_version": 1,
            "search_count": 3,
            "reception_timeout_ms": 3000,
            "mx": 3,
            "bind_timeout_seconds": 2,
            "include_loopback": False,
            "interfaces": []        # Empty: search every local interface
        },
        "http": {
            "request_timeout": 5,
            "max_concurrent_fetches": 5
        },
        "logging": {
            "level": "INFO",
            "file": "logs/upnp_discovery.log",
            "console_output": True,
            "timezone": "UTC"
        }
    }
