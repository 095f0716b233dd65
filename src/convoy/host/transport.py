"""Remote command transport used by host configurers."""

import logging
import shlex
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import paramiko

from convoy.utils.errors import TransportError

if TYPE_CHECKING:
    from convoy.cluster.host import Host
    from convoy.config import ConvoyConfig

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of one remote command."""

    command: str
    exit_status: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.exit_status == 0

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class Transport(ABC):
    """Synchronous remote execution against one host.

    Concrete transports only implement :meth:`exec`; file access and script
    execution are built on top of it so every side effect is a remote command.
    """

    host_label: str = "remote"

    @abstractmethod
    def exec(self, command: str, stdin: str | None = None) -> CommandResult:
        """Run ``command`` and return its result without raising on failure."""

    def exec_checked(self, command: str, stdin: str | None = None) -> CommandResult:
        """Run ``command`` and raise if it exits non-zero.

        Raises:
            TransportError: If the command fails
        """
        result = self.exec(command, stdin=stdin)
        if not result.success:
            raise TransportError(
                f"[{self.host_label}] command failed with exit status {result.exit_status}: "
                f"{command}\n{result.output.strip()}",
                command=command,
                exit_status=result.exit_status,
                output=result.output,
            )
        return result

    def exec_script(
        self, name: str, env: dict[str, str] | None = None, path: Path | str | None = None
    ) -> CommandResult:
        """Upload a local shell script over stdin and run it with ``env`` as root.

        Raises:
            TransportError: If the script fails
        """
        script_path = Path(path) if path else Path(name)
        script = script_path.read_text()
        assignments = [f"{key}={shlex.quote(str(value))}" for key, value in (env or {}).items()]
        command = " ".join(["sudo", "env", *assignments, "bash --norc --noprofile -e -s"])
        logger.debug(f"[{self.host_label}] running script {name}")
        return self.exec_checked(command, stdin=script)

    def file(self, path: str) -> "RemoteFile":
        return RemoteFile(self, path)


class RemoteFile:
    """Handle to a file on the remote host, accessed with sudo."""

    def __init__(self, transport: Transport, path: str):
        self.transport = transport
        self.path = path

    def __repr__(self) -> str:
        return f"RemoteFile({self.path!r})"

    def exists(self) -> bool:
        return self.transport.exec(f"sudo test -e {shlex.quote(self.path)}").success

    def read(self) -> str:
        return self.transport.exec_checked(f"sudo cat {shlex.quote(self.path)}").stdout

    def write(self, content: str) -> None:
        self.transport.exec_checked(f"sudo tee {shlex.quote(self.path)} > /dev/null", stdin=content)

    def unlink(self) -> None:
        self.transport.exec_checked(f"sudo rm -f {shlex.quote(self.path)}")


class SSHTransport(Transport):
    """Transport over an SSH connection (paramiko)."""

    def __init__(
        self,
        address: str,
        user: str,
        key_path: str | None = None,
        port: int = 22,
        timeout: int = 30,
    ):
        """Initialize SSH transport.

        Args:
            address: Remote host to connect to
            user: Username for authentication
            key_path: Path to SSH private key (optional, agent keys are used otherwise)
            port: SSH port
            timeout: Connect timeout in seconds
        """
        self.address = address
        self.user = user
        self.key_path = str(Path(key_path).expanduser()) if key_path else None
        self.port = port
        self.timeout = timeout
        self.host_label = address
        self._client: paramiko.SSHClient | None = None

    @classmethod
    def for_host(cls, host: "Host", settings: "ConvoyConfig") -> "SSHTransport":
        """Build a transport for ``host``, falling back to process settings for credentials."""
        return cls(
            host.address,
            user=host.user or settings.ssh_user,
            key_path=host.ssh_key_path or settings.ssh_key_path,
            port=host.ssh_port,
            timeout=settings.ssh_timeout,
        )

    def __enter__(self) -> "SSHTransport":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        transport = self._client.get_transport() if self._client else None
        return bool(transport and transport.is_active())

    def connect(self) -> None:
        """Open the SSH connection.

        Raises:
            TransportError: If the connection cannot be established
        """
        if self.connected:
            return

        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        logger.debug(f"Connecting to {self.user}@{self.address}:{self.port}")
        try:
            client.connect(
                self.address,
                port=self.port,
                username=self.user,
                key_filename=self.key_path,
                timeout=self.timeout,
            )
        except (paramiko.SSHException, socket.error) as e:
            client.close()
            raise TransportError(f"Failed to connect to {self.address}:{self.port}: {e}") from e
        self._client = client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def exec(self, command: str, stdin: str | None = None) -> CommandResult:
        self.connect()
        if self._client is None:
            raise TransportError(f"[{self.address}] not connected", command=command)
        logger.debug(f"[{self.address}] exec: {command}")

        try:
            channel_in, channel_out, channel_err = self._client.exec_command(command)
            if stdin is not None:
                channel_in.write(stdin)
            channel_in.channel.shutdown_write()
            stdout = channel_out.read().decode("utf-8", errors="replace")
            stderr = channel_err.read().decode("utf-8", errors="replace")
            exit_status = channel_out.channel.recv_exit_status()
        except (paramiko.SSHException, socket.timeout) as e:
            raise TransportError(
                f"[{self.address}] transport failure running: {command}: {e}", command=command
            ) from e

        return CommandResult(command=command, exit_status=exit_status, stdout=stdout, stderr=stderr)
