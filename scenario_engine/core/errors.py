# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Custom exceptions for the scenario engine service layer.

All exceptions inherit from ScenarioError so callers (HTTP routes, test-run
actions) can map them to a response without inspecting the message.
"""

import os
from typing import Optional


class ScenarioError(Exception):
    """Base exception for all service-level errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        """
        Initialize error.

        Args:
            message: Human-readable error message
            status_code: HTTP-equivalent status code
            details: Additional error details
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(ScenarioError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        """
        Initialize not found error.

        Args:
            resource: Type of resource (e.g., "Scenario", "Provider")
            identifier: Resource identifier
            details: Additional error details
        """
        message = f"{resource} not found: {identifier}"
        super().__init__(message, status_code=404, details=details)
        self.resource = resource
        self.identifier = identifier


class ValidationError(ScenarioError):
    """Validation failed."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        """
        Initialize validation error.

        Args:
            message: Validation error message
            field: Field that failed validation
            details: Additional error details
        """
        super().__init__(message, status_code=400, details=details)
        self.field = field


class ConfigurationError(ScenarioError):
    """Configuration error."""

    def __init__(self, message: str, config_file: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=500, details=details)
        self.config_file = config_file


class ConflictError(ScenarioError):
    """Resource conflict."""

    def __init__(self, message: str, resource: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=409, details=details)
        self.resource = resource


class InfrastructureError(ScenarioError):
    """
    Persistence or dispatch failure unrelated to the graph a user authored.

    Surfaced to callers as a generic failure, distinct from a graph-content
    error.
    """

    def __init__(self, message: str, service: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=503, details=details)
        self.service = service


# Error Message Utilities

def sanitize_error_for_user(error: Exception, max_length: int = 500) -> str:
    """
    Error text safe to hand back to a caller.

    Local filesystem prefixes are stripped and long messages truncated.
    """
    error_msg = str(error).strip()
    error_msg = error_msg.replace(f"{os.getcwd()}{os.sep}", "")

    if len(error_msg) > max_length:
        error_msg = error_msg[:max_length] + "..."

    return error_msg
