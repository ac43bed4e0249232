"""Configuration management for the team calendar server."""

import os
import json
import logging
from dataclasses import asdict, dataclass, field, fields
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse


DEFAULT_SHARED_CALENDAR_ID = '02b64439-03d8-4850-b7a2-fe0aea952c05'


def _section_from_mapping(section_cls, data: Dict[str, Any]):
    """Build a section dataclass from the keys it declares, ignoring others."""
    known = {f.name for f in fields(section_cls)}
    return section_cls(**{k: v for k, v in (data or {}).items() if k in known})


def _env_bool(value: str) -> bool:
    return value.lower() in ('true', '1', 'yes')


@dataclass
class BackendConfig:
    """Hosted database/auth backend (PostgREST + auth endpoint)."""
    url: str
    api_key: str
    service_key: str = ""
    timeout: int = 30

    def __post_init__(self):
        if not self.url:
            raise ValueError("Backend url is required")
        if not self.api_key:
            raise ValueError("Backend api_key is required")

        self.url = self.url.rstrip('/')
        parsed = urlparse(self.url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Invalid backend url format: {self.url}")


@dataclass
class CalendarConfig:
    """The shared calendar row and how long reads of it stay cached."""
    shared_calendar_id: str = DEFAULT_SHARED_CALENDAR_ID
    calendar_ttl_seconds: int = 120
    name: str = "Team Calendar"


@dataclass
class CacheConfig:
    default_ttl_seconds: int = 300
    sweep_interval_seconds: int = 60


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 5080
    debug: bool = False
    # Comma-separated tokens accepted by the public calendar feed
    public_tokens: str = ""

    @property
    def public_token_list(self) -> List[str]:
        return [t.strip() for t in self.public_tokens.split(',') if t.strip()]


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    file_path: Optional[str] = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    def __post_init__(self):
        self.level = (self.level or "INFO").upper()


# (section, field, variable, converter)
ENV_VARS: List[Tuple[str, str, str, Callable[[str], Any]]] = [
    ('backend', 'url', 'BACKEND_URL', str),
    ('backend', 'api_key', 'BACKEND_API_KEY', str),
    ('backend', 'service_key', 'BACKEND_SERVICE_KEY', str),
    ('backend', 'timeout', 'BACKEND_TIMEOUT', int),
    ('calendar', 'shared_calendar_id', 'SHARED_CALENDAR_ID', str),
    ('calendar', 'calendar_ttl_seconds', 'CALENDAR_CACHE_TTL', int),
    ('calendar', 'name', 'CALENDAR_NAME', str),
    ('cache', 'default_ttl_seconds', 'CACHE_DEFAULT_TTL', int),
    ('cache', 'sweep_interval_seconds', 'CACHE_SWEEP_INTERVAL', int),
    ('server', 'host', 'SERVER_HOST', str),
    ('server', 'port', 'SERVER_PORT', int),
    ('server', 'debug', 'SERVER_DEBUG', _env_bool),
    ('server', 'public_tokens', 'CALENDAR_PUBLIC_TOKENS', str),
    ('logging', 'level', 'LOG_LEVEL', str),
    ('logging', 'format', 'LOG_FORMAT', str),
    ('logging', 'file_path', 'LOG_FILE', str),
    ('logging', 'max_bytes', 'LOG_MAX_BYTES', int),
    ('logging', 'backup_count', 'LOG_BACKUP_COUNT', int),
]


@dataclass
class Config:
    """Main application configuration."""
    backend: BackendConfig
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create configuration from a parsed JSON object.

        Missing sections and keys take their defaults; the backend section
        is validated and must provide ``url`` and ``api_key``.
        """
        backend = dict(data.get('backend') or {})
        backend.setdefault('url', '')
        backend.setdefault('api_key', '')
        return cls(
            backend=_section_from_mapping(BackendConfig, backend),
            calendar=_section_from_mapping(CalendarConfig, data.get('calendar')),
            cache=_section_from_mapping(CacheConfig, data.get('cache')),
            server=_section_from_mapping(ServerConfig, data.get('server')),
            logging=_section_from_mapping(LoggingConfig, data.get('logging')),
        )

    @classmethod
    def from_env(cls) -> 'Config':
        """Create configuration from environment variables."""
        data: Dict[str, Dict[str, Any]] = {}
        for section, name, variable, convert in ENV_VARS:
            value = os.getenv(variable)
            if value is None or value == '':
                continue
            try:
                data.setdefault(section, {})[name] = convert(value)
            except ValueError:
                raise ValueError(f"Invalid value for {variable}: {value!r}")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Create configuration from JSON file."""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            data = json.loads(config_file.read_text(encoding='utf-8'))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid configuration file format: {e}")
        if not isinstance(data, dict):
            raise ValueError("Configuration file must contain a JSON object")
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def setup_logging(self) -> None:
        """Install console and optional rotating file handlers on the root logger."""
        formatter = logging.Formatter(self.logging.format)
        handlers: List[logging.Handler] = [logging.StreamHandler()]
        if self.logging.file_path:
            handlers.append(RotatingFileHandler(
                self.logging.file_path,
                maxBytes=self.logging.max_bytes,
                backupCount=self.logging.backup_count,
                encoding='utf-8'
            ))

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self.logging.level, logging.INFO))
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        for handler in handlers:
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)

        # requests/urllib3 log every connection at DEBUG
        logging.getLogger('urllib3').setLevel(max(root_logger.level, logging.INFO))


def load_config() -> Config:
    """Load configuration from the first config file found, else the environment."""
    config_files = [
        os.getenv('TEAM_CALENDAR_CONFIG'),
        'config.json',
        'config/config.json',
        '/etc/team-calendar/config.json'
    ]

    for config_file in filter(None, config_files):
        if os.path.exists(config_file):
            try:
                return Config.from_file(config_file)
            except (OSError, ValueError, TypeError) as e:
                logging.warning(f"Failed to load config from {config_file}: {e}")

    return Config.from_env()
