"""Watch mode: restart a child process whenever relevant files change.

The supervisor is a small state machine driven from one asyncio loop::

    IDLE -> STARTING -> RUNNING -> RESTARTING -> STARTING -> RUNNING ... -> STOPPED

Three event sources feed it: watchdog observer threads (handed over with
``call_soon_threadsafe``), the task awaiting the child's exit, and the grace
timer that force-kills a child that ignored SIGTERM. Whichever of exit and
timer happens first wins; the timer is cancelled on exit and a kill is never
sent to a child that is already gone.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path
from typing import Any
from typing import Protocol

from ..console import clear_screen
from ..console import log_error
from ..console import log_info
from ..process.launcher import EXIT_SUCCESS
from ..process.launcher import ChildCommand
from ..process.launcher import exit_status
from ..process.launcher import signal_exit_code
from ..process.launcher import termination_signals
from ..utils.error_format import format_error_message
from .ignore import IgnorePolicy
from .keys import KeyboardTrigger
from .keys import is_interactive
from .watchers import ChangeCallback
from .watchers import DirectoryWatch

logger = logging.getLogger(__name__)

GRACE_PERIOD = 2.0


class ChildProcess(Protocol):
    """The parts of ``asyncio.subprocess.Process`` the supervisor relies on."""

    returncode: int | None

    async def wait(self) -> int: ...

    def send_signal(self, sig: int) -> None: ...

    def kill(self) -> None: ...


class Watch(Protocol):
    def start(self) -> None: ...

    def close(self) -> None: ...


SpawnFn = Callable[[ChildCommand], Awaitable[ChildProcess]]
WatcherFactory = Callable[[Path, ChangeCallback], Watch]


class SupervisorState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    RESTARTING = "restarting"
    STOPPED = "stopped"


@dataclass
class WatchState:
    phase: SupervisorState = SupervisorState.IDLE
    child: ChildProcess | None = None
    watchers: list[Watch] = field(default_factory=list)

    @property
    def restarting(self) -> bool:
        return self.phase is SupervisorState.RESTARTING


@dataclass
class WatchOptions:
    """What to run and what to watch."""

    command: ChildCommand
    roots: list[Path] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    clear_screen: bool = True


async def spawn_child(command: ChildCommand) -> ChildProcess:
    return await asyncio.create_subprocess_exec(*command.argv, env=command.env, cwd=command.cwd)


class WatchSupervisor:
    """Owns the watches and the lifecycle of the supervised child."""

    def __init__(
        self,
        options: WatchOptions,
        *,
        spawn: SpawnFn | None = None,
        watcher_factory: WatcherFactory | None = None,
        grace_period: float = GRACE_PERIOD,
        interactive: bool | None = None,
        handle_signals: bool = True,
    ):
        self.options = options
        self.policy = IgnorePolicy(options.exclude)
        self.state = WatchState()
        self.grace_period = grace_period
        self.restarts = 0

        self._spawn = spawn or spawn_child
        self._watcher_factory = watcher_factory or DirectoryWatch
        self._interactive = is_interactive() if interactive is None else interactive
        self._handle_signals = handle_signals

        self._loop: asyncio.AbstractEventLoop | None = None
        self._done: asyncio.Future[int] | None = None
        self._grace_timer: asyncio.TimerHandle | None = None
        self._exit_task: asyncio.Task[None] | None = None
        self._start_task: asyncio.Task[None] | None = None
        self._keys: KeyboardTrigger | None = None
        self._signals: list[int] = []

    @property
    def phase(self) -> SupervisorState:
        return self.state.phase

    async def run(self) -> int:
        """Watch and supervise until stopped. Returns the exit code to use."""
        self._loop = asyncio.get_running_loop()
        self._done = self._loop.create_future()

        self._install_signal_handlers()
        try:
            log_info("Watching for changes...")
            self._start_watchers()
            self._start_keyboard()
            await self._start_child()
            code = await self._done
            await self._reap()
            return code
        finally:
            self._remove_signal_handlers()
            self._close_keyboard()
            self._close_watchers()

    # Event sources

    def _threadsafe_change(self, path: Path, root: Path) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(self.notify_change, path, root)

    def notify_change(self, path: Path | str, root: Path | str | None = None) -> None:
        """A file changed. Restarts the child if the change is relevant."""
        if not self.policy.is_relevant(path, root):
            return
        logger.debug(f"Change detected: {path}")
        self.restart()

    def restart(self) -> None:
        """Terminate the child and start a fresh one. Coalesced unless running."""
        if self.state.phase is not SupervisorState.RUNNING:
            logger.debug(f"Restart ignored while {self.state.phase.value}")
            return

        self.state.phase = SupervisorState.RESTARTING
        self.restarts += 1
        if self.options.clear_screen:
            clear_screen()
        log_info("Restarting...")

        child = self.state.child
        if child is None or child.returncode is not None:
            self.state.child = None
            self._schedule_start()
            return

        self._signal(child, signal.SIGTERM)
        assert self._loop is not None
        self._grace_timer = self._loop.call_later(self.grace_period, self._force_kill, child)

    def stop(self, code: int = EXIT_SUCCESS) -> None:
        """Close every watch, kill any live child and finish ``run()`` with code."""
        if self.state.phase is SupervisorState.STOPPED:
            return
        self.state.phase = SupervisorState.STOPPED
        self._cancel_grace_timer()
        self._close_watchers()
        self._close_keyboard()

        child = self.state.child
        if child is not None:
            self._kill(child)

        if self._done is not None and not self._done.done():
            self._done.set_result(code)

    # Child lifecycle

    def _schedule_start(self) -> None:
        assert self._loop is not None
        self._start_task = self._loop.create_task(self._start_child())

    async def _start_child(self) -> None:
        if self.state.phase is SupervisorState.STOPPED:
            return
        self.state.phase = SupervisorState.STARTING
        try:
            child = await self._spawn(self.options.command)
        except OSError as e:
            log_error(f"Failed to start child: {format_error_message(e)}")
            if self.state.phase is SupervisorState.STARTING:
                self.state.phase = SupervisorState.RUNNING
            return

        if self.state.phase is SupervisorState.STOPPED:
            self._kill(child)
            return

        self.state.child = child
        self.state.phase = SupervisorState.RUNNING
        assert self._loop is not None
        self._exit_task = self._loop.create_task(self._observe_exit(child))

    async def _observe_exit(self, child: ChildProcess) -> None:
        returncode = await child.wait()
        self._on_child_exit(child, returncode)

    def _on_child_exit(self, child: ChildProcess, returncode: int) -> None:
        if child is not self.state.child:
            return
        self._cancel_grace_timer()
        self.state.child = None

        phase = self.state.phase
        if phase is SupervisorState.RESTARTING:
            self._schedule_start()
        elif phase is SupervisorState.RUNNING:
            # Exited on its own: report it and keep watching
            log_info(f"Exited with code {exit_status(returncode)}, waiting for changes...")

    def _force_kill(self, child: ChildProcess) -> None:
        self._grace_timer = None
        if child.returncode is None:
            logger.debug("Child ignored SIGTERM, killing")
            self._kill(child)

    def _cancel_grace_timer(self) -> None:
        timer, self._grace_timer = self._grace_timer, None
        if timer is not None:
            timer.cancel()

    @staticmethod
    def _signal(child: ChildProcess, sig: int) -> None:
        if child.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            child.send_signal(sig)

    @staticmethod
    def _kill(child: ChildProcess) -> None:
        if child.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            child.kill()

    async def _reap(self) -> None:
        """Give the killed child a moment to be collected."""
        pending = [t for t in (self._start_task, self._exit_task) if t is not None and not t.done()]
        if not pending:
            return
        _, still_pending = await asyncio.wait(pending, timeout=self.grace_period)
        for task in still_pending:
            task.cancel()

    # Watches, keys and signals

    def _start_watchers(self) -> None:
        for root in self.options.roots:
            try:
                watch = self._watcher_factory(root, self._threadsafe_change)
                watch.start()
            except OSError as e:
                logger.warning(f"Cannot watch {root}: {format_error_message(e)}")
                continue
            self.state.watchers.append(watch)

    def _close_watchers(self) -> None:
        watchers, self.state.watchers = self.state.watchers, []
        for watch in watchers:
            watch.close()

    def _start_keyboard(self) -> None:
        if not self._interactive:
            return
        keys = KeyboardTrigger(on_restart=self.restart, on_quit=lambda: self.stop(EXIT_SUCCESS))
        try:
            keys.start()
        except (OSError, ValueError) as e:
            logger.debug(f"Keyboard shortcuts unavailable: {e}")
            return
        self._keys = keys

    def _close_keyboard(self) -> None:
        keys, self._keys = self._keys, None
        if keys is not None:
            keys.close()

    def _install_signal_handlers(self) -> None:
        if not self._handle_signals or self._loop is None:
            return
        for sig in termination_signals():
            try:
                self._loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError):
                continue
            self._signals.append(sig)

    def _remove_signal_handlers(self) -> None:
        if self._loop is None:
            return
        for sig in self._signals:
            self._loop.remove_signal_handler(sig)
        self._signals = []

    def _on_signal(self, sig: Any) -> None:
        logger.debug(f"Received signal {sig}")
        self.stop(signal_exit_code(sig))
