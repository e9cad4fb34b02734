"""Transform service backends.

The transform itself is an external collaborator. Three ways to reach one:
- passthrough: source is returned unchanged (the default)
- callable: ``package.module:function`` imported in-process
- command: an external program speaking JSON over stdin/stdout

Services may return a TransformOutput or a plain mapping; ``transform_code``
normalizes either and turns a non-empty error list into a TransformError.
"""

from __future__ import annotations

import importlib
import json
import logging
import os
import shlex
import subprocess
import sys
from collections.abc import Callable
from collections.abc import Mapping
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any
from typing import Protocol

from ..errors import TransformError
from ..resolution.extensions import JSX_EXTENSIONS
from ..settings import LoaderSettings

logger = logging.getLogger(__name__)

PASSTHROUGH = "passthrough"
DEFAULT_COMMAND_TIMEOUT = 30.0


@dataclass(frozen=True)
class TransformOptions:
    sourcemap: bool = True
    jsx: str | None = None
    cache: bool = True


@dataclass(frozen=True)
class TransformOutput:
    """What a transform service returns."""

    code: str
    map: dict[str, Any] | None = None
    errors: list[Any] = field(default_factory=list)

    @classmethod
    def coerce(cls, value: Any) -> TransformOutput:
        """Accept a TransformOutput, a mapping or any object with a ``code`` attribute."""
        if isinstance(value, TransformOutput):
            return value
        if isinstance(value, Mapping):
            get = value.get
        else:
            def get(key: str, default: Any = None) -> Any:
                return getattr(value, key, default)
        code = get("code")
        if code is None:
            return cls(code="", errors=get("errors") or ["transform returned no code"])
        return cls(code=code, map=get("map"), errors=list(get("errors") or []))


@dataclass(frozen=True)
class TransformResult:
    """Successful transform: code plus an optional source map."""

    code: str
    source_map: dict[str, Any] | None = None


class TransformService(Protocol):
    def __call__(
        self, file_path: str, source: str, options: TransformOptions
    ) -> TransformOutput | Mapping[str, Any]: ...


class PassthroughTransform:
    """Returns the source unchanged."""

    def __call__(self, file_path: str, source: str, options: TransformOptions) -> TransformOutput:
        return TransformOutput(code=source)

    def __repr__(self) -> str:
        return "PassthroughTransform()"


class CallableTransform:
    """In-process transform function named as ``package.module:function``."""

    def __init__(self, target: str | Callable[..., Any]):
        if isinstance(target, str):
            self.name = target
            self.func = self._import(target)
        else:
            self.name = getattr(target, "__qualname__", repr(target))
            self.func = target

    @staticmethod
    def _import(target: str) -> Callable[..., Any]:
        module_name, sep, attr = target.partition(":")
        if not sep or not module_name or not attr:
            raise ValueError(f"Transformer must look like 'package.module:function', got '{target}'")
        obj: Any = importlib.import_module(module_name)
        for part in attr.split("."):
            obj = getattr(obj, part)
        if not callable(obj):
            raise TypeError(f"Transformer '{target}' is not callable")
        return obj

    def __call__(self, file_path: str, source: str, options: TransformOptions) -> TransformOutput:
        return TransformOutput.coerce(self.func(file_path, source, options))

    def __repr__(self) -> str:
        return f"CallableTransform({self.name})"


class CommandTransform:
    """External transform command.

    The command receives ``{"file_path", "source", "options"}`` as JSON on
    stdin and replies with ``{"code", "map"?, "errors"?}`` as JSON on stdout.

    Environment variables set for the command:
    - SHIMRUN_FILE: Path of the file being transformed
    - SHIMRUN_DISABLE_CACHE: "1" when caching is disabled

    Exit codes:
    - 0: Reply on stdout
    - anything else: Transform failed, stderr holds the diagnostic
    """

    def __init__(self, command: str, timeout: float = DEFAULT_COMMAND_TIMEOUT, working_dir: Path | None = None):
        self.command = command
        self.timeout = timeout
        self.working_dir = working_dir or Path.cwd()

    def _build_command(self) -> list[str]:
        if sys.platform == "win32":
            return self.command.split()
        return shlex.split(self.command)

    def _build_env(self, file_path: str, options: TransformOptions) -> dict[str, str]:
        env = os.environ.copy()
        env["SHIMRUN_FILE"] = file_path
        if not options.cache:
            env["SHIMRUN_DISABLE_CACHE"] = "1"
        return env

    def __call__(self, file_path: str, source: str, options: TransformOptions) -> TransformOutput:
        request = json.dumps({"file_path": file_path, "source": source, "options": asdict(options)})
        cmd = self._build_command()
        try:
            proc = subprocess.run(
                cmd,
                input=request,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                cwd=str(self.working_dir),
                env=self._build_env(file_path, options),
            )
        except FileNotFoundError:
            return TransformOutput(code="", errors=[f"Command not found: {cmd[0]}"])
        except subprocess.TimeoutExpired:
            return TransformOutput(code="", errors=[f"Command timed out after {self.timeout}s"])

        if proc.stderr:
            logger.debug(f"Transform command stderr: {proc.stderr.strip()}")

        if proc.returncode != 0:
            message = proc.stderr.strip() or proc.stdout.strip() or f"Exit code {proc.returncode}"
            return TransformOutput(code="", errors=[message])

        try:
            reply = json.loads(proc.stdout)
        except json.JSONDecodeError as e:
            return TransformOutput(code="", errors=[f"Invalid JSON from transform command: {e}"])
        if not isinstance(reply, dict):
            return TransformOutput(code="", errors=["Transform command must reply with a JSON object"])
        return TransformOutput.coerce(reply)

    def __repr__(self) -> str:
        return f"CommandTransform({self.command!r})"


def create_transform_service(settings: LoaderSettings) -> TransformService:
    """Pick the transform backend for a process.

    A command wins over a transformer name; with neither, passthrough.
    """
    if settings.transform_command:
        return CommandTransform(settings.transform_command)
    if settings.transformer and settings.transformer != PASSTHROUGH:
        return CallableTransform(settings.transformer)
    return PassthroughTransform()


def _format_error(error: Any) -> str:
    if isinstance(error, str):
        return error
    if isinstance(error, Mapping) and isinstance(error.get("message"), str):
        return error["message"]
    try:
        return json.dumps(error)
    except (TypeError, ValueError):
        return str(error)


def transform_code(
    service: TransformService,
    file_path: str,
    source: str,
    *,
    sourcemap: bool = True,
    cache: bool = True,
) -> TransformResult:
    """Run the transform service for one file.

    Raises:
        TransformError: The service reported errors or raised
    """
    jsx = "automatic" if Path(file_path).suffix in JSX_EXTENSIONS else None
    options = TransformOptions(sourcemap=sourcemap, jsx=jsx, cache=cache)

    try:
        output = TransformOutput.coerce(service(file_path, source, options))
    except TransformError:
        raise
    except Exception as e:
        raise TransformError(file_path, str(e) or type(e).__name__) from e

    if output.errors:
        raise TransformError(file_path, _format_error(output.errors[0]))

    return TransformResult(code=output.code, source_map=output.map if sourcemap else None)
