"""Watch mode: filesystem watches and the restart supervisor."""

from .ignore import DEFAULT_EXCLUDE
from .ignore import WATCHED_EXTENSIONS
from .ignore import IgnorePolicy
from .ignore import watch_roots
from .supervisor import SupervisorState
from .supervisor import WatchOptions
from .supervisor import WatchState
from .supervisor import WatchSupervisor

__all__ = [
    "DEFAULT_EXCLUDE",
    "WATCHED_EXTENSIONS",
    "IgnorePolicy",
    "SupervisorState",
    "WatchOptions",
    "WatchState",
    "WatchSupervisor",
    "watch_roots",
]
