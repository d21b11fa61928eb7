"""Configuration module for steer.

- Settings: environment variable configuration
- ConfigFileParser: parses block-structured server declarations
- load_configuration: resolves a configuration URI by scheme
"""

from steer.config.loader import load_configuration
from steer.config.parser import ConfigFileParser
from steer.config.settings import Settings

__all__ = ["ConfigFileParser", "Settings", "load_configuration"]
