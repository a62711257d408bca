"""Diagnostics sinks: where lex, parse and runtime errors are reported."""

import logging
import sys
from dataclasses import dataclass, field
from typing import Protocol, TextIO

from .errors import (
    EvaluationError,
    InvalidConfiguration,
    LexError,
    MissingCapacity,
    ParseError,
    RiverflowError,
)


@dataclass
class Diagnostic:
    """A single reported problem."""

    severity: str  # "error" or "warning"
    kind: str  # "lex", "parse", "runtime", "configuration", "capacity"
    message: str
    line: int | None = None
    lexeme: str | None = None
    at_end: bool = False
    names: list[str] = field(default_factory=list)

    def format(self) -> str:
        label = "Error" if self.severity == "error" else "Warning"
        if self.line is None:
            return f"{label}: {self.message}"
        if self.at_end:
            where = " at end"
        elif self.lexeme is not None:
            where = f" at '{self.lexeme}'"
        else:
            where = ""
        return f"[line {self.line}] {label}{where}: {self.message}"


class Diagnostics(Protocol):
    def report(self, diagnostic: Diagnostic) -> None: ...


def diagnostics_for(error: RiverflowError) -> list[Diagnostic]:
    """Translate a raised error into the diagnostics it stands for."""
    match error:
        case LexError(errors=errors):
            return [Diagnostic("error", "lex", msg, line=line) for line, msg in errors]
        case ParseError(msg=msg, line=line, lexeme=lexeme):
            return [
                Diagnostic("error", "parse", msg, line=line, lexeme=lexeme, at_end=lexeme is None)
            ]
        case InvalidConfiguration(msg=msg, line=line):
            return [Diagnostic("error", "configuration", msg, line=line)]
        case EvaluationError(msg=msg, line=line):
            return [Diagnostic("error", "runtime", msg, line=line)]
        case MissingCapacity(names=names):
            return [
                Diagnostic(
                    "error",
                    "capacity",
                    f"Capacity must be defined for all rivers. Missing capacity for: {', '.join(names)}",
                    names=names,
                )
            ]
    return [Diagnostic("error", "runtime", str(error), line=error.line)]


class DiagnosticLog:
    """Collects diagnostics in memory."""

    def __init__(self):
        self.diagnostics: list[Diagnostic] = []

    def report(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == "error"]

    @property
    def had_error(self) -> bool:
        return bool(self.errors)

    def kinds(self) -> list[str]:
        return [d.kind for d in self.diagnostics]


class StreamDiagnostics(DiagnosticLog):
    """Collects diagnostics and writes each one to a stream as it arrives."""

    def __init__(self, stream: TextIO | None = None):
        super().__init__()
        self.stream = stream

    def report(self, diagnostic: Diagnostic) -> None:
        super().report(diagnostic)
        stream = self.stream or sys.stderr
        print(diagnostic.format(), file=stream)
        if diagnostic.kind == "capacity":
            for name in diagnostic.names:
                print(f"  Capacity {name} = <value>ML;", file=stream)


class LoggingDiagnostics(DiagnosticLog):
    """Collects diagnostics and forwards them to the logging system."""

    def __init__(self, logger: logging.Logger | None = None):
        super().__init__()
        self.logger = logger or logging.getLogger("riverflow.diagnostics")

    def report(self, diagnostic: Diagnostic) -> None:
        super().report(diagnostic)
        level = logging.ERROR if diagnostic.severity == "error" else logging.WARNING
        self.logger.log(level, "%s", diagnostic.format())
