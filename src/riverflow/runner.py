"""Pipeline: source text -> tokens -> program -> domain state -> simulation.

Every failure is routed to a Diagnostics sink instead of propagating, so a
caller gets a RunResult describing how far the run got.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from . import ast
from .config import SimulationConfig
from .diagnostics import DiagnosticLog, Diagnostics, diagnostics_for
from .errors import EvaluationError, LexError, MissingCapacity, ParseError, RiverflowError
from .evaluator import Evaluator
from .parser import Lexer, Parser
from .reporting import NullReporter, Reporter
from .simulation import SimulationResult, Simulator
from .state import DomainState

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    program: ast.Program | None = None
    state: DomainState | None = None
    simulation: SimulationResult | None = None
    had_syntax_error: bool = False
    had_runtime_error: bool = False

    @property
    def ok(self) -> bool:
        return not (self.had_syntax_error or self.had_runtime_error)


def run(
    source: str,
    diagnostics: Diagnostics | None = None,
    reporter: Reporter | None = None,
    config: SimulationConfig | None = None,
    path: str = "",
) -> RunResult:
    """Run a program from source.

    Lex errors are reported and the run continues with the tokens that were
    produced; a parse error stops before evaluation; evaluation errors,
    invalid configuration and missing capacities stop before or at the
    start of the simulation.
    """
    diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
    reporter = reporter or NullReporter()
    result = RunResult()

    lexer = Lexer(source)
    tokens = lexer.tokenize()
    if lexer.errors:
        result.had_syntax_error = True
        _report(diagnostics, LexError(lexer.errors, tokens))

    try:
        result.program = Parser(tokens).parse_program(path)
    except ParseError as e:
        result.had_syntax_error = True
        _report(diagnostics, e)
        return result

    logger.debug("parsed %d statements", len(result.program.statements))

    try:
        result.state = Evaluator().execute(result.program)
    except EvaluationError as e:
        result.had_runtime_error = True
        _report(diagnostics, e)
        return result

    try:
        result.simulation = Simulator(result.state, reporter, config).run()
    except MissingCapacity as e:
        result.had_runtime_error = True
        _report(diagnostics, e)

    return result


def run_file(
    path: str | Path,
    diagnostics: Diagnostics | None = None,
    reporter: Reporter | None = None,
    config: SimulationConfig | None = None,
) -> RunResult:
    path = Path(path)
    return run(path.read_text(), diagnostics, reporter, config, path=str(path))


def _report(diagnostics: Diagnostics, error: RiverflowError) -> None:
    for diagnostic in diagnostics_for(error):
        diagnostics.report(diagnostic)
