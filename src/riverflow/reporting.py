"""Simulation events and the reporters that consume them."""

import sys
from dataclasses import dataclass, field
from typing import Protocol, TextIO, TypeVar


@dataclass
class RiverSummary:
    name: str
    total_rainfall: float
    capacity: float | None = None


@dataclass
class DamSummary:
    name: str
    capacity: float
    release_percent: float


@dataclass
class SimulationStarted:
    flow_out_days: int
    max_days: int
    rivers: list[RiverSummary] = field(default_factory=list)
    dams: list[DamSummary] = field(default_factory=list)
    flows: list[str] = field(default_factory=list)


@dataclass
class DayStarted:
    day: int


@dataclass
class RainfallApplied:
    day: int
    river: str
    amount_mm: float
    volume: float


@dataclass
class FlowArrived:
    day: int
    destination: str
    amount: float
    volume: float


@dataclass
class DamOperated:
    day: int
    dam: str
    inflow: float
    rainfall: float
    release: float
    level: float
    level_percent: float


@dataclass
class FlowScheduled:
    day: int
    flow: str | None
    destination: str
    amount: float


@dataclass
class FinalVolume:
    river: str
    volume: float
    capacity: float | None = None


@dataclass
class CapacityWarning:
    river: str
    percent: float


@dataclass
class CapacityOverflow:
    river: str
    excess: float


Event = (
    SimulationStarted
    | DayStarted
    | RainfallApplied
    | FlowArrived
    | DamOperated
    | FlowScheduled
    | FinalVolume
    | CapacityWarning
    | CapacityOverflow
)

E = TypeVar("E")


class Reporter(Protocol):
    def emit(self, event: Event) -> None: ...


class NullReporter:
    def emit(self, event: Event) -> None:
        pass


class RecordingReporter:
    """Keeps every event, in order."""

    def __init__(self):
        self.events: list[Event] = []

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, event_type: type[E]) -> list[E]:
        return [e for e in self.events if isinstance(e, event_type)]


class TextReporter:
    """Renders events as the human-readable simulation narrative."""

    def __init__(self, stream: TextIO | None = None, precision: int = 3):
        self.stream = stream
        self.precision = precision
        self._summary_started = False

    def _fmt(self, value: float) -> str:
        return f"{value:.{self.precision}f}"

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream or sys.stdout)

    def emit(self, event: Event) -> None:
        f = self._fmt
        match event:
            case SimulationStarted():
                self._summary_started = False
                self._print("\n=== Water Flow Simulation ===")
                self._print(f"Flow period: {event.flow_out_days} days\n")
                self._print("Rivers:")
                for river in event.rivers:
                    self._print(f"  {river.name}:")
                    self._print(f"    Total rainfall: {river.total_rainfall:g}mm")
                    if river.capacity is not None:
                        self._print(f"    Capacity: {river.capacity:g}ML")
                if event.dams:
                    self._print("\nDams:")
                    for dam in event.dams:
                        self._print(f"  {dam.name}:")
                        self._print(f"    Capacity: {dam.capacity:g}ML")
                        self._print(f"    Target level: {dam.release_percent:g}%")
                if event.flows:
                    self._print("\nFlow connections:")
                    for i, flow in enumerate(event.flows, start=1):
                        self._print(f"  Flow {i}: {flow}")
                self._print("\n=== Daily Simulation ===")
            case DayStarted(day=day):
                self._print(f"\nDay {day}:")
            case RainfallApplied():
                self._print(
                    f"  {event.river}: +{event.amount_mm:g}mm ({event.amount_mm:g}ML), "
                    f"total: {f(event.volume)}ML"
                )
            case FlowArrived():
                self._print(
                    f"  Flow: +{f(event.amount)}ML to {event.destination} (from yesterday)"
                )
            case DamOperated():
                self._print(
                    f"  Dam {event.dam}: inflow +{f(event.inflow)}ML (from yesterday), "
                    f"level {f(event.level)}ML ({f(event.level_percent)}%), "
                    f"released {f(event.release)}ML"
                )
            case FlowScheduled():
                self._print(
                    f"  Flow scheduled: {f(event.amount)}ML -> {event.destination} "
                    "(will arrive tomorrow)"
                )
            case FinalVolume():
                if not self._summary_started:
                    self._summary_started = True
                    self._print("\n=== Final Summary ===")
                self._print(f"{event.river}: {f(event.volume)}ML")
            case CapacityWarning():
                self._print(f"  WARNING: At {f(event.percent)}% capacity")
            case CapacityOverflow():
                self._print(f"  WARNING: Capacity exceeded! Overflow: {f(event.excess)}ML")
