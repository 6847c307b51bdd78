"""
This module initializes the core components of the cmdpipe package.
"""

from .exceptions import (
    BuilderError,
    CmdPipeError,
    CommandExecutionError,
    ConfigError,
    ExecutionError,
    OutputDrainError,
    ProcessStartError,
    TemplateArityError,
)

__all__ = [
    "BuilderError",
    "CmdPipeError",
    "CommandExecutionError",
    "ConfigError",
    "ExecutionError",
    "OutputDrainError",
    "ProcessStartError",
    "TemplateArityError",
]
