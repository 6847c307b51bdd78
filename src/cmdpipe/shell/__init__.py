"""
Command pipeline builders and the execution engine.
"""

from .arguments import (
    Argument,
    ArgumentKind,
    escape,
    fill_template,
    fill_template_multiple,
)
from .base import CommandBuilderInterface
from .builder import CommandBuilder
from .combine import OutputCombineCommandBuilder
from .executor import (
    CommandExecutor,
    ExecutionMode,
    ExecutionResult,
    ExecutionStatus,
    OutputTarget,
    OutputTargetKind,
)
from .wrappers import ContainerCommandBuilder, RemoteCommandBuilder, wrap_command

__all__ = [
    "Argument",
    "ArgumentKind",
    "escape",
    "fill_template",
    "fill_template_multiple",
    "CommandBuilderInterface",
    "CommandBuilder",
    "OutputCombineCommandBuilder",
    "RemoteCommandBuilder",
    "ContainerCommandBuilder",
    "wrap_command",
    "CommandExecutor",
    "ExecutionMode",
    "ExecutionResult",
    "ExecutionStatus",
    "OutputTarget",
    "OutputTargetKind",
]
