"""Domain state: rivers, dams, capacities and flow connections.

One DomainState is built per program run by the evaluator and then
driven by the simulator. Nothing here survives the run.
"""

from pydantic import BaseModel

MIN_FLOW_OUT_DAYS = 3
HEAVY_RAINFALL_MM = 10.0
PRE_RELEASE_FRACTION = 0.05


class RiverState(BaseModel):
    """A named store accumulating rainfall (1 mm == 1 ML)."""

    name: str
    daily_rainfall: list[float] = []
    current_volume: float = 0.0

    def add_rainfall(self, amount: float, days: int) -> None:
        self.daily_rainfall.extend([amount] * days)

    def add_series(self, amounts: list[float]) -> None:
        self.daily_rainfall.extend(amounts)

    def rainfall_on(self, day: int) -> float:
        """Rainfall for a 1-based day, 0 past the end of the series."""
        if 1 <= day <= len(self.daily_rainfall):
            return self.daily_rainfall[day - 1]
        return 0.0

    @property
    def total_rainfall(self) -> float:
        return sum(self.daily_rainfall)


class DamState(BaseModel):
    """A controlled river holding at most ``capacity`` ML.

    ``release_percent`` is the target fill level: the dam keeps that share
    of its capacity and releases the excess.
    """

    name: str
    capacity: float
    release_percent: float = 80.0
    current_level: float = 0.0

    @property
    def level_percent(self) -> float:
        return self.current_level / self.capacity * 100.0 if self.capacity else 0.0

    def calculate_release(
        self,
        inflow: float,
        rainfall: float,
        heavy_rainfall_mm: float = HEAVY_RAINFALL_MM,
        pre_release_fraction: float = PRE_RELEASE_FRACTION,
    ) -> float:
        """Volume to release today, given state before today's additions."""
        level_percent = self.level_percent
        target_level = self.capacity * self.release_percent / 100.0
        projected = self.current_level + inflow + rainfall

        release = max(0.0, projected - target_level)

        # Heavy rain close to target: spill early to make room
        if rainfall > heavy_rainfall_mm and level_percent > self.release_percent - 20:
            release += self.capacity * pre_release_fraction

        total_available = self.current_level + inflow + rainfall
        release = max(0.0, min(release, total_available))

        if total_available - release > self.capacity:
            release = total_available - self.capacity

        return release

    def update_level(self, inflow: float, outflow: float, rainfall: float) -> None:
        level = self.current_level + inflow + rainfall - outflow
        self.current_level = max(0.0, min(self.capacity, level))


class FlowConnection(BaseModel):
    """Directed transfer from sources to destinations with a one-day delay.

    ``pending`` holds what left the sources today, keyed by destination;
    it is settled (and cleared) on the next simulated day.
    """

    name: str | None = None
    sources: list[str]
    destinations: list[str]
    pending: dict[str, float] = {}

    def describe(self) -> str:
        return f"{' + '.join(self.sources)} -> {' + '.join(self.destinations)}"


class DomainState(BaseModel):
    """Everything a program declares."""

    rivers: dict[str, RiverState] = {}
    dams: dict[str, DamState] = {}
    capacities: dict[str, float] = {}
    flows: list[FlowConnection] = []
    flow_out_days: int = MIN_FLOW_OUT_DAYS
    flow_out_set: bool = False

    def is_dam(self, name: str) -> bool:
        return name in self.dams

    def capacity_of(self, name: str) -> float | None:
        """Explicit capacity, falling back to a dam's inline capacity."""
        if name in self.capacities:
            return self.capacities[name]
        if name in self.dams:
            return self.dams[name].capacity
        return None

    def missing_capacities(self) -> list[str]:
        return [
            name
            for name in self.rivers
            if name not in self.capacities and name not in self.dams
        ]

    def max_days(self) -> int:
        longest = max((len(r.daily_rainfall) for r in self.rivers.values()), default=0)
        return max(self.flow_out_days, longest)
