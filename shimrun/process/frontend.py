"""Run mode: spawn one child with the loader installed and wait for it.

The child inherits stdin, stdout and stderr. SIGINT and SIGTERM received by
this process are relayed to the child. When this process was itself started
with an IPC channel, messages are bridged both ways through a fresh socket
pair handed to the child.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import socket
from collections.abc import Mapping

from ..settings import ENV_IPC_FD
from .ipc import channel_fd
from .ipc import open_socket
from .launcher import ChildCommand
from .launcher import exit_status
from .launcher import termination_signals

logger = logging.getLogger(__name__)

# How long child-to-parent messages may drain after the child exits
DRAIN_TIMEOUT = 1.0


async def _forward(reader: asyncio.StreamReader, writer: asyncio.StreamWriter, direction: str) -> None:
    """Copy newline-delimited messages from reader to writer until EOF."""
    try:
        while line := await reader.readline():
            writer.write(line)
            await writer.drain()
    except (ConnectionError, OSError) as e:
        logger.debug(f"IPC {direction} closed: {e}")


class IpcBridge:
    """Two unidirectional forwarding tasks between the parent channel and a child."""

    def __init__(self, upstream: socket.socket, child: socket.socket):
        self.upstream = upstream
        self.child = child
        self._writers: list[asyncio.StreamWriter] = []
        self.to_child: asyncio.Task[None] | None = None
        self.to_parent: asyncio.Task[None] | None = None

    async def start(self) -> None:
        up_reader, up_writer = await asyncio.open_connection(sock=self.upstream)
        child_reader, child_writer = await asyncio.open_connection(sock=self.child)
        self._writers = [up_writer, child_writer]
        self.to_child = asyncio.create_task(_forward(up_reader, child_writer, "parent->child"))
        self.to_parent = asyncio.create_task(_forward(child_reader, up_writer, "child->parent"))

    async def close(self, drain_timeout: float = DRAIN_TIMEOUT) -> None:
        """Stop forwarding. Messages the child already sent get a chance to drain."""
        if self.to_parent is not None:
            with contextlib.suppress(asyncio.TimeoutError, asyncio.CancelledError):
                await asyncio.wait_for(asyncio.shield(self.to_parent), drain_timeout)
        for task in (self.to_child, self.to_parent):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        for writer in self._writers:
            writer.close()
            with contextlib.suppress(ConnectionError, OSError):
                await writer.wait_closed()
        self._writers = []


def relay_signal(process: asyncio.subprocess.Process, sig: int) -> None:
    """Forward a signal to the child. A child that already exited is left alone."""
    if process.returncode is not None:
        return
    with contextlib.suppress(ProcessLookupError):
        process.send_signal(sig)


async def run_child(
    command: ChildCommand,
    *,
    relay_signals: bool = True,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Spawn the child, wait for it and return the exit status to use.

    Args:
        command: The child's argv, environment and working directory.
        relay_signals: Install SIGINT/SIGTERM handlers that forward to the child.
        environ: Environment to look for an inherited IPC channel in
            (defaults to os.environ).

    Returns:
        The child's exit code, or 128 + signal number if it was killed by a signal.
    """
    loop = asyncio.get_running_loop()
    env = dict(command.env)
    env.pop(ENV_IPC_FD, None)

    upstream_fd = channel_fd(os.environ if environ is None else environ)
    ours: socket.socket | None = None
    theirs: socket.socket | None = None
    pass_fds: tuple[int, ...] = ()
    if upstream_fd is not None:
        ours, theirs = socket.socketpair()
        theirs.set_inheritable(True)
        env[ENV_IPC_FD] = str(theirs.fileno())
        pass_fds = (theirs.fileno(),)

    logger.debug(f"Spawning child: {command.argv}")
    try:
        process = await asyncio.create_subprocess_exec(
            *command.argv,
            env=env,
            cwd=command.cwd,
            pass_fds=pass_fds,
        )
    except BaseException:
        if ours is not None:
            ours.close()
        raise
    finally:
        if theirs is not None:
            theirs.close()

    bridge: IpcBridge | None = None
    if ours is not None and upstream_fd is not None:
        bridge = IpcBridge(open_socket(upstream_fd), ours)
        await bridge.start()

    installed: list[int] = []
    if relay_signals:
        for sig in termination_signals():
            try:
                loop.add_signal_handler(sig, relay_signal, process, sig)
            except (NotImplementedError, RuntimeError):
                continue
            installed.append(sig)

    try:
        returncode = await process.wait()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        if bridge is not None:
            await bridge.close()

    if returncode < 0:
        with contextlib.suppress(ValueError):
            logger.debug(f"Child terminated by {signal.Signals(-returncode).name}")
    return exit_status(returncode)
