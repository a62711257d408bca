"""Command line entry point: ``riverflow SOURCE``.

Exit codes:
    0   success
    64  usage error
    65  lex or parse error
    66  source file cannot be read
    70  evaluation error, invalid configuration or missing capacity
"""

import argparse
import sys
from pathlib import Path

from .config import SimulationConfig
from .diagnostics import StreamDiagnostics
from .logging_utils import setup_logging
from .reporting import TextReporter
from .runner import run

EX_OK = 0
EX_USAGE = 64
EX_DATAERR = 65
EX_NOINPUT = 66
EX_SOFTWARE = 70


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        print(f"{self.prog}: error: {message}", file=sys.stderr)
        sys.exit(EX_USAGE)


def main(argv: list[str] | None = None) -> int:
    parser = _ArgumentParser(
        prog="riverflow",
        description="Run a rainfall, river and dam flow simulation program",
    )
    parser.add_argument("source", type=Path, help="Path to the program source file")
    args = parser.parse_args(argv)

    config = SimulationConfig()
    setup_logging(config.log_level)

    try:
        source = args.source.read_text()
    except OSError as e:
        print(f"Error: cannot read {args.source}: {e}", file=sys.stderr)
        return EX_NOINPUT

    diagnostics = StreamDiagnostics(sys.stderr)
    reporter = TextReporter(sys.stdout, precision=config.precision)
    result = run(source, diagnostics, reporter, config, path=str(args.source))

    if result.had_syntax_error:
        return EX_DATAERR
    if result.had_runtime_error:
        return EX_SOFTWARE
    return EX_OK


if __name__ == "__main__":
    sys.exit(main())
