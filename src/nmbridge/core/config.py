"""Configuration management with Pydantic validation.

Provides type-safe configuration with:
- Pydantic models for validation
- YAML file persistence
- Thread-safe updates
"""

import logging
import threading
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, HttpUrl, field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/nm-bridge/config.yaml")


# =============================================================================
# Configuration Models
# =============================================================================


class BusConfig(BaseModel):
    """System bus connection settings."""

    bus: Literal["SYSTEM", "SESSION"] = Field("SYSTEM", description="Bus to connect to")
    call_timeout: float | None = Field(
        None, gt=0, description="Per-call timeout in seconds (None=block)"
    )
    lock_timeout: float | None = Field(
        None, gt=0, description="Client lock acquisition timeout (None=block)"
    )


class ProbeEndpoint(BaseModel):
    """A connectivity-check URL and the status it answers with."""

    url: HttpUrl
    expected_status: int = Field(204, ge=100, le=599)


class ReachabilityConfig(BaseModel):
    """Internet reachability probe settings."""

    method: Literal["http", "service", "none"] = Field(
        "http", description="Probe method: http, service, none"
    )
    endpoints: list[ProbeEndpoint] = Field(
        default_factory=lambda: [
            ProbeEndpoint(url="http://connectivitycheck.gstatic.com/generate_204", expected_status=204),
            ProbeEndpoint(url="http://www.msftconnecttest.com/connecttest.txt", expected_status=200),
            ProbeEndpoint(url="http://captive.apple.com/hotspot-detect.html", expected_status=200),
        ]
    )
    timeout: float = Field(5.0, gt=0, le=60, description="Per-endpoint timeout in seconds")


class NotifierConfig(BaseModel):
    """Change notification pipeline settings."""

    enabled: bool = Field(True, description="Start the pipeline with the context")
    debounce_ms: int = Field(500, ge=0, le=60000, description="Debounce window in ms")
    poll_interval: float = Field(
        1.0, gt=0, le=30, description="Seconds between stop checks in the listener"
    )
    queue_size: int = Field(64, ge=1, description="Listener to debounce channel capacity")


class WebConfig(BaseModel):
    """HTTP API server configuration."""

    host: str = Field("127.0.0.1", description="Server bind address")
    port: int = Field(8765, ge=1, le=65535, description="Server port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Log level")
    format: str = Field("simple", description="Format: simple, structured")
    file: str | None = Field(None, description="Log file path")
    max_size_mb: int = Field(10, ge=1, description="Max log file size")
    backup_count: int = Field(3, ge=0, description="Number of backup files")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalise and check the level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class Config(BaseModel):
    """Root configuration model."""

    bus: BusConfig = Field(default_factory=BusConfig)
    reachability: ReachabilityConfig = Field(default_factory=ReachabilityConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Manager
# =============================================================================


class ConfigManager:
    """Thread-safe configuration manager with file persistence.

    Usage:
        config_manager = ConfigManager("/path/to/config.yaml")
        config = config_manager.get()
        config_manager.update(notifier={"debounce_ms": 250})
    """

    def __init__(self, config_path: str | Path = DEFAULT_CONFIG_PATH, strict: bool = False) -> None:
        self._config_path = Path(config_path)
        self._config: Config
        self._strict = strict
        self._lock = threading.RLock()
        self._load()

    @property
    def path(self) -> Path:
        """Location of the backing YAML file."""
        return self._config_path

    def _load(self) -> None:
        """Load and validate configuration from file."""
        if self._config_path.exists():
            try:
                with open(self._config_path) as f:
                    data = yaml.safe_load(f) or {}
                self._config = Config.model_validate(data)
                logger.info("Loaded config from %s", self._config_path)
            except Exception as e:
                if self._strict:
                    raise ConfigurationError(
                        "Invalid configuration file",
                        details={"path": str(self._config_path)},
                        cause=e,
                    ) from e
                logger.warning("Failed to load config, using defaults: %s", e)
                self._config = Config()
        else:
            logger.info("Config file not found, using defaults")
            self._config = Config()
            try:
                self._save()
            except OSError as e:
                # Read-only locations such as /etc for unprivileged users
                logger.debug("Could not write default config: %s", e)

    def _save(self) -> None:
        """Persist configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            data = self._config.model_dump(mode="json")

            # Write atomically via temp file
            temp_path = self._config_path.with_suffix(".tmp")
            with open(temp_path, "w") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            temp_path.replace(self._config_path)

            logger.debug("Saved config to %s", self._config_path)
        except Exception as e:
            logger.error("Failed to save config: %s", e)
            raise

    def get(self) -> Config:
        """Get current configuration (thread-safe copy).

        Returns:
            Deep copy of current configuration
        """
        with self._lock:
            return self._config.model_copy(deep=True)

    def update(self, **kwargs: Any) -> None:
        """Update top-level config sections.

        Args:
            **kwargs: Section names and their new values
        """
        with self._lock:
            data = self._config.model_dump(mode="json")
            for key, value in kwargs.items():
                if key in data and isinstance(value, dict):
                    data[key].update(value)
                else:
                    data[key] = value
            self._config = Config.model_validate(data)
            self._save()


def load_config(config_path: str | Path | None = None, strict: bool = False) -> Config:
    """Load configuration without keeping a manager around.

    Args:
        config_path: YAML file to read (default location when None)
        strict: Raise ConfigurationError instead of falling back to defaults

    Returns:
        Validated configuration
    """
    return ConfigManager(config_path or DEFAULT_CONFIG_PATH, strict=strict).get()
