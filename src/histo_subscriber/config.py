"""
Histogram Subscriber Configuration
==================================

This module handles configuration loading for the subscriber.

Configuration Sources (in order of precedence):
    1. Command-line flags (applied by main)
    2. Environment variables
    3. config.yaml file
    4. Default values (lowest priority)

Environment Variable Mapping:
    HISTO_SUB_ADDRESS        -> subscriber.address
    HISTO_SUB_BIND           -> subscriber.bind
    HISTO_SUB_EXPECTED_TYPE  -> subscriber.expected_type
    HISTO_SUB_MAX_QUEUE_SIZE -> subscriber.max_queue_size
    HISTO_SUB_REPORT_FORMAT  -> report.format
    HISTO_SUB_LOG_LEVEL      -> logging.level

Example:
    from histo_subscriber.config import load_config

    settings = load_config()
    print(settings.subscriber.address)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


_TRUE_VALUES = {"1", "true", "yes", "on"}


# =============================================================================
# Configuration Models
# =============================================================================

class SubscriberConfig(BaseModel):
    """Message bus subscription configuration."""

    address: str = Field(
        default="tcp://*:5024",
        min_length=1,
        description="ZeroMQ endpoint to bind or connect the SUB socket",
    )
    bind: bool = Field(
        default=True,
        description="Bind the endpoint (True) or connect to a publisher (False)",
    )
    expected_type: str = Field(
        default="TH1F",
        min_length=1,
        description="Class name of the objects to decode",
    )
    max_queue_size: int = Field(
        default=100,
        ge=1,
        description="Maximum frames buffered between receiver and pipeline",
    )
    receive_hwm: int = Field(
        default=1000,
        ge=0,
        description="ZeroMQ receive high-water mark (0 = unlimited)",
    )


class ReportConfig(BaseModel):
    """Report output configuration."""

    format: str = Field(
        default="text",
        description="Report format: 'text', 'json' or 'none'",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the histogram subscriber.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    subscriber: SubscriberConfig = Field(default_factory=SubscriberConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches the
            working directory for config.yaml / config.yml.

    Returns:
        Settings: Loaded configuration

    Raises:
        FileNotFoundError: If an explicit config_path doesn't exist
        pydantic.ValidationError: If a value is invalid
    """
    if config_path is None:
        for path in (Path("config.yaml"), Path("config.yml")):
            if path.exists():
                config_path = str(path)
                break
    elif not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    config_data = {}
    if config_path:
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Subscriber settings
    if env_address := os.environ.get("HISTO_SUB_ADDRESS"):
        config_data.setdefault("subscriber", {})["address"] = env_address
    if env_bind := os.environ.get("HISTO_SUB_BIND"):
        config_data.setdefault("subscriber", {})["bind"] = env_bind.lower() in _TRUE_VALUES
    if env_type := os.environ.get("HISTO_SUB_EXPECTED_TYPE"):
        config_data.setdefault("subscriber", {})["expected_type"] = env_type
    if env_queue := os.environ.get("HISTO_SUB_MAX_QUEUE_SIZE"):
        config_data.setdefault("subscriber", {})["max_queue_size"] = int(env_queue)

    # Report settings
    if env_format := os.environ.get("HISTO_SUB_REPORT_FORMAT"):
        config_data.setdefault("report", {})["format"] = env_format

    # Logging settings
    if env_log := os.environ.get("HISTO_SUB_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings. Logs go to stderr."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
