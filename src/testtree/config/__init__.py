"""Configuration models and loader."""

from testtree.config.loader import load_config
from testtree.config.models import (
    DiscoveryConfig,
    LoggingConfig,
    LogOutputConfig,
    MatcherConfig,
    TestTreeConfig,
    WatchConfig,
)

__all__ = [
    "DiscoveryConfig",
    "LogOutputConfig",
    "LoggingConfig",
    "MatcherConfig",
    "TestTreeConfig",
    "WatchConfig",
    "load_config",
]
