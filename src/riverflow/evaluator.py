"""Evaluator: executes statements to build the domain state."""

import logging

from . import ast
from .errors import EvaluationError, InvalidConfiguration
from .state import MIN_FLOW_OUT_DAYS, DamState, DomainState, FlowConnection, RiverState
from .values import (
    EntityRef,
    FlowValue,
    NameList,
    NoValue,
    Number,
    Rainfall,
    Series,
    Value,
    describe,
    endpoint_names,
)

logger = logging.getLogger(__name__)


class Evaluator:
    """Walks a Program in declaration order, mutating ``state``."""

    def __init__(self, state: DomainState | None = None):
        self.state = state if state is not None else DomainState()

    def execute(self, program: ast.Program) -> DomainState:
        for stmt in program.statements:
            self.execute_statement(stmt)
        return self.state

    def execute_statement(self, stmt: ast.Stmt) -> None:
        match stmt:
            case ast.RiverDecl(name=name, expr=expr):
                river = RiverState(name=name)
                self._apply_rainfall(river, self.evaluate(expr), stmt)
                self.state.rivers[name] = river
                logger.debug("declared river %s (%d days)", name, len(river.daily_rainfall))

            case ast.RiverUpdate(name=name, expr=expr, line=line):
                if name not in self.state.rivers:
                    raise EvaluationError(
                        f"Cannot update undefined river '{name}'.", line=line, name=name
                    )
                self._apply_rainfall(self.state.rivers[name], self.evaluate(expr), stmt)

            case ast.FlowDecl(name=name, expr=expr):
                value = self.evaluate(expr)
                if isinstance(value, FlowValue):
                    value.connection.name = name
                    self.state.flows.append(value.connection)
                    logger.debug("declared flow %s: %s", name, value.connection.describe())
                else:
                    logger.warning(
                        "line %d: flow '%s' is a %s, not a connection; ignored",
                        stmt.line,
                        name,
                        describe(value),
                    )

            case ast.CapacityDecl(name=name, value_ml=value):
                self.state.capacities[name] = value

            case ast.FlowOutDecl(name=name, days=days, line=line):
                n = int(days)
                if n < MIN_FLOW_OUT_DAYS:
                    raise InvalidConfiguration(
                        f"FlowOut must be at least {MIN_FLOW_OUT_DAYS} days. Given: {n} days.",
                        line=line,
                        name=name,
                    )
                self.state.flow_out_days = n
                self.state.flow_out_set = True

            case ast.DamDecl(name=name, capacity_ml=capacity, release_percent=release, line=line):
                if not 0.0 <= release <= 100.0:
                    raise InvalidConfiguration(
                        f"Dam release must be between 0% and 100%. Given: {release:g}%.",
                        line=line,
                        name=name,
                    )
                self.state.dams[name] = DamState(
                    name=name, capacity=capacity, release_percent=release
                )
                mirror = RiverState(name=name)
                mirror.add_rainfall(0.0, self.state.flow_out_days)
                self.state.rivers[name] = mirror
                logger.debug("declared dam %s (%gML, release %g%%)", name, capacity, release)

            case _:
                raise EvaluationError(f"unknown statement: {type(stmt).__name__}")

    def _apply_rainfall(self, river: RiverState, value: Value, stmt: ast.Stmt) -> None:
        match value:
            case Rainfall(amount=amount, days=days):
                river.add_rainfall(amount, days)
            case Series(amounts=amounts):
                river.add_series(list(amounts))
            case _:
                logger.warning(
                    "line %d: '%s' assigned a %s; rainfall unchanged",
                    stmt.line,
                    river.name,
                    describe(value),
                )

    def evaluate(self, expr: ast.Expr) -> Value:
        match expr:
            case ast.NumberLit(value=v):
                return Number(v)

            case ast.RainfallSpec(amount=amount, days=days):
                return Rainfall(amount, days)

            case ast.RainfallSeries(amounts=amounts):
                return Series(tuple(amounts))

            case ast.Var(name=name, line=line):
                if name in self.state.rivers:
                    return EntityRef(name)
                raise EvaluationError(f"Undefined entity '{name}'.", line=line, name=name)

            case ast.Grouping(expr=inner):
                return self.evaluate(inner)

            case ast.BinOp(op="+", left=left, right=right, line=line):
                return self._combine(self.evaluate(left), self.evaluate(right), line)

            case ast.BinOp(op="->", left=left, right=right, line=line):
                return self._connect(self.evaluate(left), self.evaluate(right), line)

            case _:
                raise EvaluationError(f"unknown expression: {type(expr).__name__}")

    def _combine(self, left: Value, right: Value, line: int) -> Value:
        match (left, right):
            case (Number(value=a), Number(value=b)):
                return Number(a + b)

        left_names = endpoint_names(left)
        right_names = endpoint_names(right)
        if left_names is None or right_names is None:
            return self._no_value(f"cannot add {describe(left)} and {describe(right)}", line)
        return NameList(tuple(left_names + right_names))

    def _connect(self, left: Value, right: Value, line: int) -> Value:
        match left:
            case FlowValue(connection=previous):
                # A -> B -> C: register A -> B now and continue from B
                self.state.flows.append(previous)
                sources = list(previous.destinations)
            case _:
                sources = endpoint_names(left)
                if sources is None:
                    return self._no_value(
                        f"flow source must be a river, not a {describe(left)}", line
                    )

        destinations = endpoint_names(right)
        if destinations is None:
            return self._no_value(
                f"flow destination must be a river, not a {describe(right)}", line
            )

        return FlowValue(FlowConnection(sources=sources, destinations=destinations))

    def _no_value(self, reason: str, line: int) -> NoValue:
        logger.warning("line %d: %s", line, reason)
        return NoValue(reason)


def evaluate_program(program: ast.Program, state: DomainState | None = None) -> DomainState:
    """Build a DomainState from a parsed program."""
    return Evaluator(state).execute(program)
