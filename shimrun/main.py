"""shimrun CLI - run and watch scripts with the source loader installed."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from .console import log_error
from .errors import ShimrunError
from .logging_setup import init_logging
from .process.frontend import run_child
from .process.launcher import EXIT_WATCH_REQUIRES_SCRIPT
from .process.launcher import ChildCommand
from .process.launcher import build_child_command
from .settings import LoaderSettings
from .settings import SettingsManager
from .settings import ShimrunSettings
from .utils.error_format import format_error_message
from .watch.ignore import watch_roots
from .watch.supervisor import WatchOptions
from .watch.supervisor import WatchSupervisor

logger = logging.getLogger(__name__)

PASSTHROUGH_CONTEXT = {"ignore_unknown_options": True, "allow_interspersed_args": False}


def loader_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by ``run`` and ``watch``."""
    decorators = [
        click.option(
            "--aliases",
            "--tsconfig",
            "aliases",
            type=click.Path(),
            help="Alias configuration file (tsconfig-style compilerOptions.paths)",
        ),
        click.option("--no-cache", is_flag=True, help="Disable transform caching"),
        click.option("--transformer", help="Transform backend: 'passthrough' or 'package.module:function'"),
        click.option("--transform-command", help="External transform command (JSON over stdin/stdout)"),
        click.option("--python-arg", "python_args", multiple=True, help="Extra interpreter flag for the child"),
    ]
    for decorator in reversed(decorators):
        f = decorator(f)
    return f


def load_settings() -> ShimrunSettings:
    return SettingsManager().load()


def resolve_loader_settings(
    settings: ShimrunSettings,
    *,
    aliases: str | None,
    no_cache: bool,
    transformer: str | None,
    transform_command: str | None,
) -> LoaderSettings:
    """Settings files first, explicit flags on top."""
    loader = LoaderSettings.from_settings(settings)
    overrides: dict[str, Any] = {}
    if aliases:
        overrides["alias_config"] = aliases
    if no_cache:
        overrides["disable_cache"] = True
    if transformer:
        overrides["transformer"] = transformer
    if transform_command:
        overrides["transform_command"] = transform_command
    return loader.model_copy(update=overrides)


def _fail(e: BaseException) -> None:
    log_error(format_error_message(e))
    sys.exit(1)


@click.group()
@click.version_option(package_name="shimrun")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr")
def cli(verbose: bool):
    """shimrun - run TypeScript-style sources with import aliasing and watch mode."""
    init_logging(level="DEBUG" if verbose else None)


@cli.command(context_settings=PASSTHROUGH_CONTEXT)
@click.argument("script", required=False)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@loader_options
@click.option("--eval", "-e", "eval_code", help="Evaluate code instead of running a script")
@click.option("--print", "-p", "print_code", help="Evaluate code and print the result")
def run(
    script: str | None,
    args: tuple[str, ...],
    aliases: str | None,
    no_cache: bool,
    transformer: str | None,
    transform_command: str | None,
    python_args: tuple[str, ...],
    eval_code: str | None,
    print_code: str | None,
):
    """Run SCRIPT once, or evaluate code, or open an interactive console."""
    try:
        loader = resolve_loader_settings(
            load_settings(),
            aliases=aliases,
            no_cache=no_cache,
            transformer=transformer,
            transform_command=transform_command,
        )
    except ValidationError as e:
        _fail(e)
        return

    script_args = list(args)
    if (eval_code is not None or print_code is not None) and script is not None:
        # With a code string every positional belongs to the code's argv
        script_args.insert(0, script)
        script = None

    command = build_child_command(
        script,
        script_args,
        loader_settings=loader,
        python_args=python_args,
        eval_code=eval_code,
        print_code=print_code,
    )
    sys.exit(_run_once(command))


def _run_once(command: ChildCommand) -> int:
    try:
        return asyncio.run(run_child(command))
    except (OSError, ShimrunError) as e:
        _fail(e)
        return 1


@cli.command(context_settings=PASSTHROUGH_CONTEXT)
@click.argument("script", required=False)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@loader_options
@click.option("--include", multiple=True, type=click.Path(), help="Additional path to watch")
@click.option("--exclude", multiple=True, help="Additional directory name or glob to ignore")
@click.option("--clear-screen/--no-clear-screen", default=None, help="Clear the terminal on restart")
def watch(
    script: str | None,
    args: tuple[str, ...],
    aliases: str | None,
    no_cache: bool,
    transformer: str | None,
    transform_command: str | None,
    python_args: tuple[str, ...],
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    clear_screen: bool | None,
):
    """Run SCRIPT and restart it whenever a watched file changes.

    Press Enter to restart manually and Ctrl-C to quit.
    """
    if not script:
        log_error("watch mode requires a script path")
        sys.exit(EXIT_WATCH_REQUIRES_SCRIPT)

    try:
        settings = load_settings()
        loader = resolve_loader_settings(
            settings,
            aliases=aliases,
            no_cache=no_cache,
            transformer=transformer,
            transform_command=transform_command,
        )
    except ValidationError as e:
        _fail(e)
        return

    command = build_child_command(script, args, loader_settings=loader, python_args=python_args)
    options = WatchOptions(
        command=command,
        roots=watch_roots(Path.cwd(), [*settings.watch.include, *include]),
        exclude=[*settings.watch.exclude, *exclude],
        clear_screen=settings.watch.clear_screen if clear_screen is None else clear_screen,
    )
    logger.debug(f"Watching {[str(r) for r in options.roots]}")

    try:
        code = asyncio.run(WatchSupervisor(options).run())
    except (OSError, ShimrunError) as e:
        _fail(e)
        return
    sys.exit(code)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
