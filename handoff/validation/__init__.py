"""
handoff validation module.

This module provides configuration validation and schema enforcement.
"""

from handoff.errors import ConfigError
from handoff.validation.config import Config, HandoffConfig

__all__ = ["Config", "ConfigError", "HandoffConfig"]
