"""
Configuration management for Music Storefront
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class StoreConfig:
    """Configuration for the storefront page."""

    artist: str = "Julio César THOR"
    title: str = "Cosmosonic"
    tagline: str = "Exploring the frontiers of sound and crypto."


@dataclass
class PreviewConfig:
    """Configuration for preview playback."""

    duration: float = 30.0  # seconds
    fade_in: float = 2.0
    fade_out: float = 3.0
    waveform_points: int = 200
    frame_rate: int = 30  # animation ticks per second
    mpv_path: str = "mpv"
    volume: int = 80

    def validate(self) -> None:
        """Validate preview configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.duration <= 0:
            raise ValueError(f"Preview duration must be positive, got {self.duration}")
        if self.fade_in < 0 or self.fade_out < 0:
            raise ValueError("Fade windows must not be negative")
        if self.fade_in + self.fade_out > self.duration:
            raise ValueError(
                f"Fade windows ({self.fade_in}s + {self.fade_out}s) "
                f"exceed preview duration ({self.duration}s)"
            )
        if self.waveform_points <= 0:
            raise ValueError("waveform_points must be positive")
        if self.frame_rate <= 0:
            raise ValueError("frame_rate must be positive")


@dataclass
class PurchaseConfig:
    """Configuration for the client side of the purchase flow."""

    api_base_url: str = "http://localhost:8642/api"
    poll_interval: float = 5.0  # seconds between verification attempts
    max_attempts: int = 24  # ~2 minutes at 5s
    request_timeout: float = 30.0
    callback_port: int = 8765  # local listener for the checkout redirect
    callback_timeout: float = 900.0


@dataclass
class CoinbaseConfig:
    """Configuration for Coinbase Commerce (checkout backend only)."""

    api_key: str = ""
    api_url: str = "https://api.commerce.coinbase.com/charges"
    api_version: str = "2018-03-22"
    currency: str = "USD"
    success_url: str = ""  # default: <request origin>/success


@dataclass
class StorageConfig:
    """Configuration for the object storage holding purchasable files."""

    endpoint: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    bucket_name: str = ""
    url_expiry: int = 300  # signed download links live 5 minutes

    def missing_settings(self) -> List[str]:
        """Names of the environment variables that still need a value."""
        required = {
            "R2_ENDPOINT": self.endpoint,
            "R2_ACCESS_KEY_ID": self.access_key_id,
            "R2_SECRET_ACCESS_KEY": self.secret_access_key,
            "R2_BUCKET_NAME": self.bucket_name,
        }
        return [name for name, value in required.items() if not value]


@dataclass
class WebConfig:
    """Configuration for the checkout backend."""

    host: str = "127.0.0.1"
    port: int = 8642
    allowed_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:8642"]
    )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/music-storefront/storefront.log)
    )
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_output: bool = False


@dataclass
class Config:
    """Main configuration object."""

    store: StoreConfig = field(default_factory=StoreConfig)
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    purchase: PurchaseConfig = field(default_factory=PurchaseConfig)
    coinbase: CoinbaseConfig = field(default_factory=CoinbaseConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tracks: List[Dict[str, Any]] = field(default_factory=list)


# Environment variables that override secrets from config.toml
ENV_OVERRIDES = {
    "COINBASE_COMMERCE_API_KEY": ("coinbase", "api_key"),
    "R2_ENDPOINT": ("storage", "endpoint"),
    "R2_ACCESS_KEY_ID": ("storage", "access_key_id"),
    "R2_SECRET_ACCESS_KEY": ("storage", "secret_access_key"),
    "R2_BUCKET_NAME": ("storage", "bucket_name"),
    "STOREFRONT_API_URL": ("purchase", "api_base_url"),
}


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "music-storefront"
    return Path.home() / ".config" / "music-storefront"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            if config_path.exists():
                return config_path
            return None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. STOREFRONT_CONFIG environment variable
    2. Project root (detected via pyproject.toml) - for development
    3. Current working directory
    4. XDG_CONFIG_HOME/music-storefront (or ~/.config/music-storefront)
    """
    explicit = os.environ.get("STOREFRONT_CONFIG")
    if explicit:
        return Path(explicit).expanduser()

    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "music-storefront"
    return Path.home() / ".local" / "share" / "music-storefront"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Music Storefront Configuration

[store]
artist = "Julio César THOR"
title = "Cosmosonic"
tagline = "Exploring the frontiers of sound and crypto."

[preview]
# Preview length and fade envelope (seconds)
duration = 30.0
fade_in = 2.0
fade_out = 3.0

# Number of points in the normalized waveform
waveform_points = 200

# Progress redraws per second while a preview plays
frame_rate = 30

# mpv binary and output volume (0-100)
mpv_path = "mpv"
volume = 80

[purchase]
# Base URL of the checkout backend (`storefront serve`)
api_base_url = "http://localhost:8642/api"

# Verification polling: 24 attempts at 5s is about two minutes
poll_interval = 5.0
max_attempts = 24
request_timeout = 30.0

# Local listener that catches the redirect back from the hosted checkout
callback_port = 8765
callback_timeout = 900.0

[coinbase]
# Prefer the COINBASE_COMMERCE_API_KEY environment variable
# api_key = ""
currency = "USD"

# Where the hosted checkout sends the buyer after paying
success_url = "http://localhost:8765/success"

[storage]
# Prefer R2_ENDPOINT, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY, R2_BUCKET_NAME
url_expiry = 300

[web]
host = "127.0.0.1"
port = 8642

[logging]
level = "INFO"
max_file_size_mb = 10
backup_count = 5
console_output = false

[[tracks]]
id = "1"
title = "Orion"
artist = "Julio César THOR"
cover_art = "media/orion.jpg"
audio_preview_source = "media/previews/1_Orion_preview.mp3"
price = "1.00"
file_key = "1_Orion.mp3"
""".strip()


def _section(toml_data: Dict[str, Any], cls, current):
    """Build a config section from a TOML table, keeping defaults for absent keys."""
    data = toml_data.get(cls.__name__.replace("Config", "").lower(), {})
    values = {
        name: data.get(name, getattr(current, name))
        for name in cls.__dataclass_fields__
    }
    return cls(**values)


def apply_env_overrides(config: Config) -> Config:
    """Override secrets and endpoints with environment variables if present."""
    for env_name, (section_name, attr) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            setattr(getattr(config, section_name), attr, value)
    return config


def parse_config(toml_data: Dict[str, Any]) -> Config:
    """Build a Config from already-parsed TOML data."""
    config = Config()

    config.store = _section(toml_data, StoreConfig, config.store)
    config.preview = _section(toml_data, PreviewConfig, config.preview)
    config.purchase = _section(toml_data, PurchaseConfig, config.purchase)
    config.coinbase = _section(toml_data, CoinbaseConfig, config.coinbase)
    config.storage = _section(toml_data, StorageConfig, config.storage)
    config.web = _section(toml_data, WebConfig, config.web)

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get("backup_count", config.logging.backup_count),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    try:
        config.preview.validate()
    except ValueError as e:
        print(f"Warning: Invalid preview configuration: {e}")
        print("Using default preview configuration.")
        config.preview = PreviewConfig()

    config.tracks = list(toml_data.get("tracks", []))
    return config


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - COINBASE_COMMERCE_API_KEY
    - R2_ENDPOINT, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY, R2_BUCKET_NAME
    - STOREFRONT_API_URL
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    load_dotenv()  # .env in the working directory, if any

    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        with open(config_path, "rb") as f:
            return apply_env_overrides(parse_config(tomllib.load(f)))

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"Error loading configuration from {config_path}: {e}")
        print("Using default configuration.")
        return apply_env_overrides(Config())

    return apply_env_overrides(parse_config(toml_data))


def ensure_directories() -> None:
    """Ensure configuration and data directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
