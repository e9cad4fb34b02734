"""Message channel between a parent process and a shimrun child.

A channel is a stream socket whose file descriptor number is published in
``SHIMRUN_IPC_FD``. Messages are JSON documents, one per line.

Child side::

    from shimrun.process.ipc import connect

    channel = connect()
    if channel is not None:
        channel.send({"ready": True})
        for message in channel:
            ...
"""

from __future__ import annotations

import json
import os
import socket
from collections.abc import Iterator
from collections.abc import Mapping
from typing import Any

from ..settings import ENV_IPC_FD


class Channel:
    """Line-delimited JSON over a connected stream socket."""

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self._file = sock.makefile("rwb")
        self.closed = False

    def send(self, message: Any) -> None:
        self._file.write(json.dumps(message).encode("utf-8") + b"\n")
        self._file.flush()

    def receive(self) -> Any | None:
        """Next message, or None once the other side has closed."""
        line = self._file.readline()
        if not line:
            return None
        return json.loads(line)

    def __iter__(self) -> Iterator[Any]:
        while (message := self.receive()) is not None:
            yield message

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._file.close()
        self.sock.close()

    def __enter__(self) -> Channel:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def channel_fd(environ: Mapping[str, str] | None = None) -> int | None:
    """File descriptor of the inherited channel, if this process has one."""
    value = (os.environ if environ is None else environ).get(ENV_IPC_FD)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def open_socket(fd: int) -> socket.socket:
    return socket.socket(fileno=fd)


def connect(environ: Mapping[str, str] | None = None) -> Channel | None:
    """Channel to the parent process, or None when there is none."""
    fd = channel_fd(environ)
    if fd is None:
        return None
    return Channel(open_socket(fd))
