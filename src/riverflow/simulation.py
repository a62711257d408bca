"""Day-by-day simulation of a declared river network.

Each day runs three phases in order:

1. rainfall intake (1 mm of rain adds 1 ML of volume);
2. settlement of flows scheduled the previous day, with dam destinations
   running their release law;
3. scheduling of today's outflow (only while ``day <= flow_out_days``),
   computed from a snapshot of volumes taken at the start of the phase.

Water scheduled on the last simulated day stays in transit and is reported
in ``SimulationResult.in_transit``.
"""

import logging
import math

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict

from .config import SimulationConfig
from .errors import MissingCapacity
from .reporting import (
    CapacityOverflow,
    CapacityWarning,
    DamOperated,
    DamSummary,
    DayStarted,
    FinalVolume,
    FlowArrived,
    FlowScheduled,
    NullReporter,
    RainfallApplied,
    Reporter,
    RiverSummary,
    SimulationStarted,
)
from .state import DomainState

logger = logging.getLogger(__name__)

# Share of a static volume left after flow_out_days of decay
RESIDUAL_FRACTION = 0.001


def decay_rate(flow_out_days: int) -> float:
    """Daily outflow fraction that leaves 0.1% of a volume after the horizon."""
    return 1.0 - RESIDUAL_FRACTION ** (1.0 / flow_out_days)


class SimulationResult(BaseModel):
    """Final state and per-day history of a run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    flow_out_days: int
    max_days: int
    volumes: dict[str, float]
    dam_levels: dict[str, float] = {}
    history: list[dict[str, float]] = []  # end-of-day volume per river
    releases: dict[str, list[float]] = {}  # per dam, released volume per day
    in_transit: float = 0.0
    warnings: dict[str, float] = {}  # river -> percent of capacity
    overflows: dict[str, float] = {}  # river -> excess ML

    def history_frame(self) -> pd.DataFrame:
        """End-of-day volumes, one row per day and one column per river."""
        frame = pd.DataFrame(self.history, columns=list(self.volumes))
        frame.index = pd.RangeIndex(1, len(self.history) + 1, name="day")
        return frame


class Simulator:
    """Runs the temporal simulation over a fully declared DomainState."""

    def __init__(
        self,
        state: DomainState,
        reporter: Reporter | None = None,
        config: SimulationConfig | None = None,
    ):
        self.state = state
        self.reporter = reporter or NullReporter()
        self.config = config or SimulationConfig()
        self.decay = decay_rate(state.flow_out_days)
        self.history: list[dict[str, float]] = []
        self.releases: dict[str, list[float]] = {name: [] for name in state.dams}

    def validate(self) -> None:
        missing = self.state.missing_capacities()
        if missing:
            logger.debug("missing capacity for %s", missing)
            raise MissingCapacity(missing)

    def run(self) -> SimulationResult:
        self.validate()
        max_days = self.state.max_days()
        self._announce(max_days)

        for day in range(1, max_days + 1):
            logger.debug("simulating day %d of %d", day, max_days)
            self.reporter.emit(DayStarted(day))
            self.step(day)

        return self._finish(max_days)

    def step(self, day: int) -> None:
        """Advance the whole network by one day."""
        released = {name: 0.0 for name in self.state.dams}

        self._rainfall(day)
        if day > 1:
            self._settle(day, released)
        if day <= self.state.flow_out_days:
            self._schedule(day)
        self._sync_dams(released)

        for name, amount in released.items():
            self.releases[name].append(amount)
        self.history.append(
            {name: river.current_volume for name, river in self.state.rivers.items()}
        )

    def _rainfall(self, day: int) -> None:
        for river in self.state.rivers.values():
            amount = river.rainfall_on(day)
            if amount > 0:
                river.current_volume += amount
                self.reporter.emit(RainfallApplied(day, river.name, amount, river.current_volume))

    def _settle(self, day: int, released: dict[str, float]) -> None:
        operated: set[str] = set()
        for flow in self.state.flows:
            if not flow.pending:
                continue
            for dest, amount in flow.pending.items():
                if amount <= 0 or dest not in self.state.rivers:
                    continue
                river = self.state.rivers[dest]
                dam = self.state.dams.get(dest)
                if dam is None:
                    river.current_volume += amount
                    self.reporter.emit(FlowArrived(day, dest, amount, river.current_volume))
                    continue

                # Rain on the dam counts once, with its first inflow of the day
                rainfall = 0.0 if dest in operated else river.rainfall_on(day)
                operated.add(dest)
                release = dam.calculate_release(
                    amount,
                    rainfall,
                    heavy_rainfall_mm=self.config.heavy_rainfall_mm,
                    pre_release_fraction=self.config.pre_release_fraction,
                )
                dam.update_level(amount, release, rainfall)
                river.current_volume = dam.current_level
                released[dest] += release
                self.reporter.emit(
                    DamOperated(
                        day=day,
                        dam=dest,
                        inflow=amount,
                        rainfall=rainfall,
                        release=release,
                        level=dam.current_level,
                        level_percent=dam.level_percent,
                    )
                )
            flow.pending.clear()

    def _schedule(self, day: int) -> None:
        names = list(self.state.rivers)
        index = {name: i for i, name in enumerate(names)}
        snapshot = np.array(
            [self.state.rivers[name].current_volume for name in names], dtype=float
        )

        # Per-connection drain on each river, all read from the same snapshot
        shares = []
        for flow in self.state.flows:
            idx = np.array([index[s] for s in flow.sources if s in index], dtype=int)
            total = float(snapshot[idx].sum()) if idx.size else 0.0
            amount = total * self.decay
            if amount <= 0 or not flow.destinations:
                continue
            share = np.zeros_like(snapshot)
            # Repeated source names drain once per occurrence
            np.add.at(share, idx, snapshot[idx] / total * amount)
            shares.append((flow, share))

        drained = np.zeros_like(snapshot)
        for _, share in shares:
            drained += share

        # Sources asked for more than they hold give up exactly what they hold
        over = drained > snapshot
        scale = np.ones_like(snapshot)
        scale[over] = snapshot[over] / drained[over]
        if over.any():
            logger.debug(
                "day %d: outflow from %s scaled to available volume",
                day,
                [names[i] for i in np.flatnonzero(over)],
            )

        for flow, share in shares:
            amount = float((share * scale).sum())
            per_destination = amount / len(flow.destinations)
            for dest in flow.destinations:
                # Repeated destination names receive one share per occurrence
                flow.pending[dest] = flow.pending.get(dest, 0.0) + per_destination
                self.reporter.emit(FlowScheduled(day, flow.name, dest, per_destination))

        remaining = np.maximum(snapshot - drained * scale, 0.0)
        for name, volume in zip(names, remaining):
            self.state.rivers[name].current_volume = float(volume)

    def _sync_dams(self, released: dict[str, float]) -> None:
        """Keep each dam's level equal to its mirrored river's volume.

        Volume above capacity (rain on a full dam) spills and is counted as
        released.
        """
        for name, dam in self.state.dams.items():
            river = self.state.rivers.get(name)
            if river is None:
                continue
            level = max(0.0, min(dam.capacity, river.current_volume))
            released[name] += max(0.0, river.current_volume - level)
            dam.current_level = level
            river.current_volume = level

    def _announce(self, max_days: int) -> None:
        self.reporter.emit(
            SimulationStarted(
                flow_out_days=self.state.flow_out_days,
                max_days=max_days,
                rivers=[
                    RiverSummary(r.name, r.total_rainfall, self.state.capacities.get(r.name))
                    for r in self.state.rivers.values()
                ],
                dams=[
                    DamSummary(d.name, d.capacity, d.release_percent)
                    for d in self.state.dams.values()
                ],
                flows=[flow.describe() for flow in self.state.flows],
            )
        )

    def _finish(self, max_days: int) -> SimulationResult:
        warnings: dict[str, float] = {}
        overflows: dict[str, float] = {}

        for river in self.state.rivers.values():
            capacity = self.state.capacities.get(river.name)
            self.reporter.emit(FinalVolume(river.name, river.current_volume, capacity))
            if capacity is None:
                continue

            percent = _percent_of(river.current_volume, capacity)
            if percent >= self.config.overflow_percent:
                threshold = capacity * self.config.overflow_percent / 100.0
                overflows[river.name] = river.current_volume - threshold
                self.reporter.emit(CapacityOverflow(river.name, overflows[river.name]))
            elif percent >= self.config.warning_percent:
                warnings[river.name] = percent
                self.reporter.emit(CapacityWarning(river.name, percent))

        in_transit = sum(sum(flow.pending.values()) for flow in self.state.flows)

        return SimulationResult(
            flow_out_days=self.state.flow_out_days,
            max_days=max_days,
            volumes={name: r.current_volume for name, r in self.state.rivers.items()},
            dam_levels={name: d.current_level for name, d in self.state.dams.items()},
            history=self.history,
            releases=self.releases,
            in_transit=in_transit,
            warnings=warnings,
            overflows=overflows,
        )


def _percent_of(volume: float, capacity: float) -> float:
    if capacity > 0:
        return volume / capacity * 100.0
    return math.inf if volume > 0 else 0.0


def simulate(
    state: DomainState,
    reporter: Reporter | None = None,
    config: SimulationConfig | None = None,
) -> SimulationResult:
    return Simulator(state, reporter, config).run()
