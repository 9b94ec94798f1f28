# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Core utilities and shared modules for the scenario engine.

This package contains:
- config: Configuration management
- errors: Service-level exceptions
- logging: Structured logging
"""

from scenario_engine.core.config import get_config, Config
from scenario_engine.core.errors import (
    ScenarioError,
    NotFoundError,
    ValidationError,
    InfrastructureError,
)
from scenario_engine.core.logging import get_logger

__all__ = [
    "get_config",
    "Config",
    "ScenarioError",
    "NotFoundError",
    "ValidationError",
    "InfrastructureError",
    "get_logger",
]
