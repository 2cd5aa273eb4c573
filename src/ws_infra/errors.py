"""Exceptions raised by the stack tooling.

Library code raises these; only the CLI turns them into an error message and
a non-zero exit status.
"""
from typing import Any, Dict, List, Optional


class InfraError(Exception):
    """Base class for infrastructure deployment errors."""


class TemplateError(InfraError):
    """The template is missing, unreadable, too large, or was rejected."""


class ParametersError(InfraError):
    """The parameters file is missing, malformed, or not filled in."""


class StackNotFoundError(InfraError):
    """The named stack does not exist in the region."""

    def __init__(self, stack_name: str):
        super().__init__(f"Stack not found: {stack_name}")
        self.stack_name = stack_name


class StackOperationError(InfraError):
    """A create, update or delete did not reach its complete state."""

    def __init__(self, message: str, events: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.events = events or []
