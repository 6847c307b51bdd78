"""
Builders that run another builder on a remote host or inside a container.

A wrapper renders its inner builder completely and passes the result as a
single escaped argument to the outer program. Escaping is applied once per
layer while rendering, so wrappers nest to any depth::

    RemoteCommandBuilder(ContainerCommandBuilder(CommandBuilder("mysql"), "db"), "web1")

Argument operations on a wrapper go to the inner builder. Pipes attached to
the wrapper run locally after the boundary; pipes attached to the inner
builder run on the far side. When the inner command line is a pipeline it is
prefixed with a guarded ``set -o pipefail``, which shells without the
option skip.
"""

# Standard library imports
from abc import abstractmethod
from typing import Iterable, List, Optional, Sequence

# Local/package imports
from ..config import get_config
from .arguments import Argument, escape
from .base import CommandBuilderInterface

PIPEFAIL_GUARD = "(set -o pipefail) 2>/dev/null && set -o pipefail; "


class WrappingCommandBuilder(CommandBuilderInterface):
    """Base class for builders that embed an inner builder."""

    def __init__(
        self, inner: CommandBuilderInterface, pipefail: Optional[bool] = None
    ):
        super().__init__()
        self._inner = inner
        self.pipefail = get_config().pipefail if pipefail is None else pipefail

    @property
    def inner(self) -> CommandBuilderInterface:
        return self._inner

    @abstractmethod
    def _outer_command(self) -> str:
        """Program that receives the inner command line."""

    @abstractmethod
    def _outer_arguments(self) -> List[Argument]:
        """Arguments placed between the outer program and the inner command."""

    def add_argument(self, text: str, sensitive: bool = False):
        self._inner.add_argument(text, sensitive=sensitive)
        return self

    def add_argument_raw(self, text: str, sensitive: bool = False):
        self._inner.add_argument_raw(text, sensitive=sensitive)
        return self

    def add_argument_template(
        self, template: str, *values: str, sensitive: bool = False
    ):
        self._inner.add_argument_template(template, *values, sensitive=sensitive)
        return self

    def add_argument_template_multiple(
        self, template: str, values: Iterable[str], sensitive: bool = False
    ):
        self._inner.add_argument_template_multiple(
            template, values, sensitive=sensitive
        )
        return self

    def add_argument_list(self, values: Iterable[str]):
        self._inner.add_argument_list(values)
        return self

    def _render_command(self, masked: bool = False) -> str:
        parts = [escape(self._outer_command())]
        parts.extend(argument.render(masked) for argument in self._outer_arguments())
        inner = self._inner.render(masked)
        if self.pipefail and self._inner.contains_pipes():
            inner = PIPEFAIL_GUARD + inner
        parts.append(escape(inner))
        return " ".join(parts)


class RemoteCommandBuilder(WrappingCommandBuilder):
    """Runs the inner builder on another host through ssh."""

    def __init__(
        self,
        inner: CommandBuilderInterface,
        hostname: str,
        options: Optional[Sequence[str]] = None,
        ssh_binary: Optional[str] = None,
        pipefail: Optional[bool] = None,
    ):
        """Initialize remote wrapper.

        Args:
            inner: Builder to run remotely
            hostname: Destination, optionally ``user@host``
            options: Raw connection options; defaults to the configured
                ``ssh_options`` (batch mode)
            ssh_binary: ssh executable; defaults to the configured one
            pipefail: Guard inner pipelines with ``set -o pipefail``;
                defaults to the configured ``pipefail``
        """
        super().__init__(inner, pipefail=pipefail)
        if options is None or ssh_binary is None:
            config = get_config()
            options = config.ssh_options if options is None else options
            ssh_binary = ssh_binary or config.ssh_binary
        self.hostname = hostname
        self.options = list(options)
        self.ssh_binary = ssh_binary

    @classmethod
    def wrap(
        cls, inner: CommandBuilderInterface, hostname: str, **kwargs
    ) -> "RemoteCommandBuilder":
        return cls(inner, hostname, **kwargs)

    def _outer_command(self) -> str:
        return self.ssh_binary

    def _outer_arguments(self) -> List[Argument]:
        arguments = [Argument.literal(option) for option in self.options]
        arguments.append(Argument.value(self.hostname))
        arguments.append(Argument.literal("--"))
        return arguments

    def clone(self) -> "RemoteCommandBuilder":
        copy = RemoteCommandBuilder(
            self._inner.clone(),
            self.hostname,
            options=self.options,
            ssh_binary=self.ssh_binary,
            pipefail=self.pipefail,
        )
        self._copy_state_to(copy)
        return copy


class ContainerCommandBuilder(WrappingCommandBuilder):
    """Runs the inner builder inside a running container."""

    def __init__(
        self,
        inner: CommandBuilderInterface,
        container: str,
        runtime: Optional[str] = None,
        shell: Optional[str] = None,
        tty: bool = False,
        user: Optional[str] = None,
        pipefail: Optional[bool] = None,
    ):
        """Initialize container wrapper.

        Args:
            inner: Builder to run in the container
            container: Container name or id
            runtime: Container runtime (``docker``, ``podman``); defaults
                to the configured one
            shell: Shell inside the container that interprets the inner
                command line
            tty: Allocate a pseudo terminal (``-t``)
            user: Run as this user inside the container
            pipefail: Guard inner pipelines with ``set -o pipefail``
        """
        super().__init__(inner, pipefail=pipefail)
        if runtime is None or shell is None:
            config = get_config()
            runtime = runtime or config.container_runtime
            shell = shell or config.container_shell
        self.container = container
        self.runtime = runtime
        self.shell = shell
        self.tty = tty
        self.user = user

    @classmethod
    def wrap(
        cls, inner: CommandBuilderInterface, container: str, **kwargs
    ) -> "ContainerCommandBuilder":
        return cls(inner, container, **kwargs)

    def _outer_command(self) -> str:
        return self.runtime

    def _outer_arguments(self) -> List[Argument]:
        arguments = [Argument.literal("exec"), Argument.literal("-i")]
        if self.tty:
            arguments.append(Argument.literal("-t"))
        if self.user:
            arguments.append(Argument.literal("-u"))
            arguments.append(Argument.value(self.user))
        arguments.append(Argument.value(self.container))
        arguments.append(Argument.value(self.shell))
        arguments.append(Argument.literal("-c"))
        return arguments

    def clone(self) -> "ContainerCommandBuilder":
        copy = ContainerCommandBuilder(
            self._inner.clone(),
            self.container,
            runtime=self.runtime,
            shell=self.shell,
            tty=self.tty,
            user=self.user,
            pipefail=self.pipefail,
        )
        self._copy_state_to(copy)
        return copy


def wrap_command(
    command: CommandBuilderInterface,
    hostname: Optional[str] = None,
    container: Optional[str] = None,
    tty: bool = False,
) -> CommandBuilderInterface:
    """Wrap a builder for container and/or remote execution as needed.

    The container wrapper is applied first, so ``hostname`` and ``container``
    together mean "inside this container on that host".
    """
    if container:
        command = ContainerCommandBuilder(command, container, tty=tty)
    if hostname:
        command = RemoteCommandBuilder(command, hostname)
    return command
