"""Child process command lines and exit status mapping."""

from __future__ import annotations

import os
import signal
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

from ..settings import ENV_IPC_FD
from ..settings import LoaderSettings

# Module run with ``-m`` to install the loader before user code
BOOTSTRAP_MODULE = "shimrun.host"

EXIT_SUCCESS = 0
EXIT_WATCH_REQUIRES_SCRIPT = 1
SIGNAL_EXIT_BASE = 128


@dataclass
class ChildCommand:
    """Everything needed to spawn a supervised child."""

    argv: list[str]
    env: dict[str, str] = field(default_factory=dict)
    cwd: Path | None = None


def build_child_command(
    script: str | None = None,
    script_args: Sequence[str] = (),
    *,
    loader_settings: LoaderSettings | None = None,
    python_args: Sequence[str] = (),
    eval_code: str | None = None,
    print_code: str | None = None,
    python: str | None = None,
    cwd: Path | None = None,
) -> ChildCommand:
    """Command line for ``python [python_args] -m shimrun.host ...``.

    A code string (eval or print) takes precedence over a script. With
    neither the child opens an interactive console. An inherited IPC
    channel variable is dropped; only the run front-end hands a channel on.
    """
    argv = [python or sys.executable, *python_args, "-m", BOOTSTRAP_MODULE]
    if print_code is not None:
        argv += ["--print", print_code, *script_args]
    elif eval_code is not None:
        argv += ["--eval", eval_code, *script_args]
    elif script is not None:
        argv += [script, *script_args]

    env = dict(os.environ)
    env.pop(ENV_IPC_FD, None)
    env.update((loader_settings or LoaderSettings()).to_env())
    return ChildCommand(argv=argv, env=env, cwd=cwd)


def exit_status(returncode: int | None) -> int:
    """Map a child return code to our exit code: 128 + signal for signal deaths."""
    if returncode is None:
        return EXIT_SUCCESS
    if returncode < 0:
        return SIGNAL_EXIT_BASE + (-returncode)
    return returncode


def signal_exit_code(signum: int) -> int:
    return SIGNAL_EXIT_BASE + int(signum)


def termination_signals() -> tuple[signal.Signals, ...]:
    """Signals relayed to children and handled by the supervisor."""
    if sys.platform == "win32":
        return (signal.SIGINT,)
    return (signal.SIGINT, signal.SIGTERM)
