"""Child process launching, signal relay and IPC bridging."""

from .frontend import run_child
from .ipc import Channel
from .ipc import connect
from .launcher import BOOTSTRAP_MODULE
from .launcher import ChildCommand
from .launcher import build_child_command
from .launcher import exit_status

__all__ = [
    "BOOTSTRAP_MODULE",
    "Channel",
    "ChildCommand",
    "build_child_command",
    "connect",
    "exit_status",
    "run_child",
]
