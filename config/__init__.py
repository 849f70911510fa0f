"""Configuration for loopstitch."""

from .config_loader import (
    Config,
    ConfigurationError,
    MatcherConfig,
    StitchConfig,
    TrackerConfig,
    check_configuration,
    load_config,
    save_config
)

__all__ = [
    'Config',
    'ConfigurationError',
    'MatcherConfig',
    'StitchConfig',
    'TrackerConfig',
    'check_configuration',
    'load_config',
    'save_config'
]
