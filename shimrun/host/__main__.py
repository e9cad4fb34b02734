"""Child bootstrap: ``python -m shimrun.host [--eval CODE | --print CODE | script args...]``.

Installs the loader hooks before any user code runs, then hands control to
the script, the code string or an interactive console.
"""

from __future__ import annotations

import sys

from ..logging_setup import init_logging
from . import install

EVAL_FLAGS = ("-e", "--eval")
PRINT_FLAGS = ("-p", "--print")


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    init_logging()
    host = install()

    if args and args[0] in EVAL_FLAGS + PRINT_FLAGS:
        if len(args) < 2:
            print(f"shimrun: {args[0]} requires an argument", file=sys.stderr)
            return 2
        flag, source, *rest = args
        sys.argv = [flag, *rest]
        host.run_eval(source, print_result=flag in PRINT_FLAGS)
        return 0

    if not args:
        host.interact()
        return 0

    sys.argv = args
    host.run_main(args[0])
    return 0


if __name__ == "__main__":
    sys.exit(main())
