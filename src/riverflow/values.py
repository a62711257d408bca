"""Runtime values produced by evaluating expressions."""

from dataclasses import dataclass

from .state import FlowConnection


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Rainfall:
    """Same amount on each of ``days`` days."""

    amount: float
    days: int


@dataclass(frozen=True)
class Series:
    amounts: tuple[float, ...]


@dataclass(frozen=True)
class EntityRef:
    """A declared river or dam."""

    name: str


@dataclass(frozen=True)
class NameList:
    """Endpoint names built by ``+``. Duplicates are kept."""

    names: tuple[str, ...]


@dataclass(frozen=True)
class FlowValue:
    connection: FlowConnection


@dataclass(frozen=True)
class NoValue:
    """Result of an operator applied to operands it does not support.

    Statements receiving it leave the domain state unchanged.
    """

    reason: str = ""


Value = Number | Rainfall | Series | EntityRef | NameList | FlowValue | NoValue


def endpoint_names(value: Value) -> list[str] | None:
    """Names a value contributes as a flow endpoint, or None if it cannot."""
    match value:
        case EntityRef(name=name):
            return [name]
        case NameList(names=names):
            return list(names)
        case _:
            return None


def describe(value: Value) -> str:
    match value:
        case Number():
            return "number"
        case Rainfall() | Series():
            return "rainfall"
        case EntityRef():
            return "river"
        case NameList():
            return "river list"
        case FlowValue():
            return "flow"
        case NoValue():
            return "no value"
