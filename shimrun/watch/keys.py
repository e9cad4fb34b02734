"""Keyboard shortcuts for watch mode on an interactive terminal.

Enter restarts the child, Ctrl-C quits.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from collections.abc import Callable

from prompt_toolkit.input import Input
from prompt_toolkit.input import create_input
from prompt_toolkit.keys import Keys

logger = logging.getLogger(__name__)

RESTART_KEYS = frozenset({Keys.ControlM, Keys.ControlJ})
QUIT_KEYS = frozenset({Keys.ControlC})


def is_interactive() -> bool:
    try:
        return sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False


class KeyboardTrigger:
    """Puts the terminal in raw mode and dispatches key presses on the event loop."""

    def __init__(
        self,
        on_restart: Callable[[], None],
        on_quit: Callable[[], None],
        input: Input | None = None,
    ):
        self.on_restart = on_restart
        self.on_quit = on_quit
        self._input = input
        self._stack: contextlib.ExitStack | None = None

    def start(self) -> None:
        if self._stack is not None:
            return
        inp = self._input or create_input()
        self._input = inp
        stack = contextlib.ExitStack()
        try:
            stack.enter_context(inp.raw_mode())
            stack.enter_context(inp.attach(self._on_input))
        except Exception:
            stack.close()
            raise
        self._stack = stack

    def _on_input(self) -> None:
        if self._input is None:
            return
        for key_press in self._input.read_keys():
            self.dispatch(key_press.key)

    def dispatch(self, key: Keys | str) -> None:
        if key in RESTART_KEYS:
            self.on_restart()
        elif key in QUIT_KEYS:
            self.on_quit()

    def close(self) -> None:
        stack, self._stack = self._stack, None
        if stack is not None:
            stack.close()
