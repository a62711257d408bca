"""AST nodes for riverflow programs."""

from typing import Annotated
from typing import Literal as TypingLiteral

from pydantic import BaseModel, Field


# Expressions - discriminated union on ``type``
class NumberLit(BaseModel):
    type: TypingLiteral["number"] = "number"
    value: float
    line: int = 0


class RainfallSpec(BaseModel):
    """``5mm`` or ``5(3)mm``: the same amount on each of ``days`` days."""

    type: TypingLiteral["rainfall"] = "rainfall"
    amount: float
    days: int = 1
    line: int = 0


class RainfallSeries(BaseModel):
    """``[1, 2, 3]mm``: one amount per day, in order."""

    type: TypingLiteral["series"] = "series"
    amounts: list[float]
    line: int = 0


class Var(BaseModel):
    """Reference to a river or dam by name."""

    type: TypingLiteral["var"] = "var"
    name: str
    line: int = 0


class Grouping(BaseModel):
    type: TypingLiteral["grouping"] = "grouping"
    expr: "Expr"
    line: int = 0


class BinOp(BaseModel):
    type: TypingLiteral["binop"] = "binop"
    op: TypingLiteral["+", "->"]
    left: "Expr"
    right: "Expr"
    line: int = 0


Expr = Annotated[
    NumberLit | RainfallSpec | RainfallSeries | Var | Grouping | BinOp,
    Field(discriminator="type"),
]


# Statements
class RiverDecl(BaseModel):
    kind: TypingLiteral["river"] = "river"
    name: str
    expr: Expr
    line: int = 0


class RiverUpdate(BaseModel):
    """``name = expr;`` appends rainfall days to an already declared river."""

    kind: TypingLiteral["update"] = "update"
    name: str
    expr: Expr
    line: int = 0


class FlowDecl(BaseModel):
    kind: TypingLiteral["flow"] = "flow"
    name: str
    expr: Expr
    line: int = 0


class CapacityDecl(BaseModel):
    kind: TypingLiteral["capacity"] = "capacity"
    name: str
    value_ml: float
    line: int = 0


class FlowOutDecl(BaseModel):
    kind: TypingLiteral["flowout"] = "flowout"
    name: str
    days: float
    line: int = 0


class DamDecl(BaseModel):
    kind: TypingLiteral["dam"] = "dam"
    name: str
    capacity_ml: float
    release_percent: float = 80.0
    line: int = 0


Stmt = Annotated[
    RiverDecl | RiverUpdate | FlowDecl | CapacityDecl | FlowOutDecl | DamDecl,
    Field(discriminator="kind"),
]


class Program(BaseModel):
    """A parsed riverflow source file."""

    path: str = ""
    statements: list[Stmt] = []


# Rebuild models for forward references
Grouping.model_rebuild()
BinOp.model_rebuild()
