"""riverflow: a small language for rainfall, river storage and dam flow simulation.

Pipeline: scan source -> parse program -> evaluate declarations -> simulate days.

Example:
    from riverflow import parse, evaluate_program, simulate

    program = parse('''
        River a = 10mm;
        Capacity a = 50ML;
        Dam d = 100ML release 50%;
        Flow f = a -> d;
    ''')
    state = evaluate_program(program)
    result = simulate(state)
"""

__version__ = "0.1.0"

from .ast import (
    BinOp,
    CapacityDecl,
    DamDecl,
    Expr,
    FlowDecl,
    FlowOutDecl,
    Grouping,
    NumberLit,
    Program,
    RainfallSeries,
    RainfallSpec,
    RiverDecl,
    RiverUpdate,
    Stmt,
    Var,
)
from .config import SimulationConfig, load_config
from .diagnostics import Diagnostic, DiagnosticLog, Diagnostics, LoggingDiagnostics, StreamDiagnostics
from .errors import (
    ConfigError,
    EvaluationError,
    InvalidConfiguration,
    LexError,
    MissingCapacity,
    ParseError,
    RiverflowError,
)
from .evaluator import Evaluator, evaluate_program
from .parser import Lexer, Parser, Token, TokenType, parse, parse_file, parse_program, scan
from .reporting import RecordingReporter, Reporter, TextReporter
from .runner import RunResult, run, run_file
from .simulation import SimulationResult, Simulator, decay_rate, simulate
from .state import DamState, DomainState, FlowConnection, RiverState

__all__ = [
    # Parse
    "scan",
    "parse",
    "parse_file",
    "parse_program",
    "Lexer",
    "Parser",
    "Token",
    "TokenType",
    # AST
    "Program",
    "Stmt",
    "RiverDecl",
    "RiverUpdate",
    "FlowDecl",
    "CapacityDecl",
    "FlowOutDecl",
    "DamDecl",
    "Expr",
    "NumberLit",
    "RainfallSpec",
    "RainfallSeries",
    "Var",
    "Grouping",
    "BinOp",
    # State
    "DomainState",
    "RiverState",
    "DamState",
    "FlowConnection",
    # Evaluate
    "Evaluator",
    "evaluate_program",
    # Simulate
    "Simulator",
    "SimulationResult",
    "simulate",
    "decay_rate",
    # Sinks
    "Diagnostic",
    "Diagnostics",
    "DiagnosticLog",
    "StreamDiagnostics",
    "LoggingDiagnostics",
    "Reporter",
    "RecordingReporter",
    "TextReporter",
    # Config
    "SimulationConfig",
    "load_config",
    # High-level
    "run",
    "run_file",
    "RunResult",
    # Errors
    "RiverflowError",
    "LexError",
    "ParseError",
    "EvaluationError",
    "InvalidConfiguration",
    "MissingCapacity",
    "ConfigError",
]
