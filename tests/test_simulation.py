"""Tests for the day-by-day simulation engine."""

import numpy as np
import pytest

from riverflow import evaluate_program, parse
from riverflow.errors import MissingCapacity
from riverflow.reporting import (
    CapacityOverflow,
    CapacityWarning,
    DamOperated,
    DayStarted,
    FinalVolume,
    FlowArrived,
    FlowScheduled,
    RainfallApplied,
    RecordingReporter,
    SimulationStarted,
)
from riverflow.simulation import Simulator, decay_rate, simulate

MERGE = """
River a = 10mm;
River b = 8mm;
River c = 5mm;
Capacity a = 50ML;
Capacity b = 30ML;
Capacity c = 100ML;
Flow f = (a + b) -> c;
"""

DAM = """
River a = 100mm;
Capacity a = 200ML;
Dam d = 100ML release 50%;
Flow f = a -> d;
"""


def build(source: str):
    return evaluate_program(parse(source))


class TestDecayRate:
    def test_default_horizon(self):
        assert decay_rate(3) == pytest.approx(0.9)

    @pytest.mark.parametrize("days", [3, 4, 7, 30])
    def test_horizon_leaves_a_thousandth(self, days):
        remaining = (1 - decay_rate(days)) ** days
        assert remaining == pytest.approx(0.001)


class TestValidation:
    def test_missing_capacity(self):
        with pytest.raises(MissingCapacity) as exc_info:
            simulate(build("River a = 5mm;"))
        assert exc_info.value.names == ["a"]

    def test_missing_capacity_lists_all_in_order(self):
        state = build("River b = 1mm; River a = 1mm; River c = 1mm; Capacity a = 5ML;")
        with pytest.raises(MissingCapacity) as exc_info:
            simulate(state)
        assert exc_info.value.names == ["b", "c"]

    def test_dams_need_no_capacity_statement(self):
        result = simulate(build("Dam d = 100ML;"))
        assert result.volumes == {"d": 0.0}

    def test_nothing_runs_when_validation_fails(self):
        reporter = RecordingReporter()
        with pytest.raises(MissingCapacity):
            simulate(build("River a = 5mm;"), reporter)
        assert reporter.events == []


class TestMaxDays:
    def test_defaults_to_flow_out_horizon(self):
        result = simulate(build("River a = 1mm; Capacity a = 10ML;"))
        assert result.max_days == 3
        assert len(result.history) == 3

    def test_longest_rainfall_series_wins(self):
        result = simulate(build("River a = 1(6)mm; Capacity a = 10ML;"))
        assert result.max_days == 6

    def test_flow_out_extends_run(self):
        result = simulate(build("FlowOut x = 5; River a = 1mm; Capacity a = 10ML;"))
        assert result.max_days == 5
        assert result.flow_out_days == 5


class TestMergeScenario:
    """Two rivers merging into a third with the default three-day horizon."""

    def test_day_one(self):
        state = build(MERGE)
        sim = Simulator(state)
        sim.step(1)
        rivers = state.rivers
        # 18ML of sources, 90% leaves on day one
        assert rivers["a"].current_volume == pytest.approx(1.0)
        assert rivers["b"].current_volume == pytest.approx(0.8)
        assert rivers["c"].current_volume == pytest.approx(5.0)
        assert state.flows[0].pending == {"c": pytest.approx(16.2)}

    def test_day_two_arrival(self):
        state = build(MERGE)
        sim = Simulator(state)
        sim.step(1)
        sim.step(2)
        assert state.rivers["c"].current_volume == pytest.approx(5.0 + 16.2)
        assert state.flows[0].pending == {"c": pytest.approx(1.62)}

    def test_full_run(self):
        result = simulate(build(MERGE))
        assert result.volumes["a"] == pytest.approx(0.01)
        assert result.volumes["b"] == pytest.approx(0.008)
        assert result.volumes["c"] == pytest.approx(22.82)
        assert result.in_transit == pytest.approx(0.162)

    def test_total_volume_conserved(self):
        result = simulate(build(MERGE))
        assert sum(result.volumes.values()) + result.in_transit == pytest.approx(23.0)

    def test_no_warnings(self):
        result = simulate(build(MERGE))
        assert result.warnings == {}
        assert result.overflows == {}


class TestConservation:
    """What leaves a source today arrives at the destination tomorrow."""

    @pytest.mark.parametrize("seed", range(10))
    def test_single_connection(self, seed):
        rng = np.random.default_rng(seed)
        days = int(rng.integers(3, 8))
        rain = ", ".join(f"{x:.2f}" for x in rng.uniform(0, 50, size=days))
        state = build(
            f"FlowOut x = {days}; River a = [{rain}]mm; River b = 0mm;"
            "Capacity a = 1000ML; Capacity b = 1000ML; Flow f = a -> b;"
        )
        sim = Simulator(state)
        a, b = state.rivers["a"], state.rivers["b"]
        flow = state.flows[0]

        scheduled = 0.0
        for day in range(1, days + 1):
            # rainfall intake happens first; measure around the rest of the day
            before_b = b.current_volume
            sim._rainfall(day)
            if day > 1:
                sim._settle(day, {})
                assert b.current_volume - before_b == pytest.approx(scheduled)
            before_a = a.current_volume
            sim._schedule(day)
            scheduled = flow.pending.get("b", 0.0)
            assert before_a - a.current_volume == pytest.approx(scheduled)

    def test_volumes_never_negative(self):
        state = build(
            "River a = 10mm; River b = 0mm; River c = 0mm;"
            "Capacity a = 50ML; Capacity b = 50ML; Capacity c = 50ML;"
            "Flow f = a -> b; Flow g = a -> c;"
        )
        result = simulate(state)
        for row in result.history:
            assert all(v >= 0 for v in row.values())


class TestOrderIndependence:
    def test_connections_read_phase_start_volumes(self):
        """Two connections from one source see the same snapshot and share it."""
        state = build(
            "River a = 10mm; River b = 0mm; River c = 0mm;"
            "Capacity a = 50ML; Capacity b = 50ML; Capacity c = 50ML;"
            "Flow f = a -> b; Flow g = a -> c;"
        )
        sim = Simulator(state)
        sim.step(1)
        # each asks for 9ML of the 10ML held; both are scaled back to 5ML
        assert state.flows[0].pending["b"] == pytest.approx(5.0)
        assert state.flows[1].pending["c"] == pytest.approx(5.0)
        assert state.rivers["a"].current_volume == pytest.approx(0.0)

    def test_shared_source_conserves_volume(self):
        result = simulate(
            build(
                "River a = 10mm; River b = 0mm; River c = 0mm;"
                "Capacity a = 50ML; Capacity b = 50ML; Capacity c = 50ML;"
                "Flow f = a -> b; Flow g = a -> c;"
            )
        )
        assert sum(result.volumes.values()) + result.in_transit == pytest.approx(10.0)

    def test_declaration_order_does_not_change_result(self):
        decls = [
            "Flow f = (a + b) -> c;",
            "Flow g = c -> d;",
            "Flow h = a -> d;",
        ]
        header = (
            "River a = [10, 4, 7]mm; River b = 6(2)mm; River c = 3mm; River d = 0mm;"
            "Capacity a = 99ML; Capacity b = 99ML; Capacity c = 99ML; Capacity d = 99ML;"
        )
        forward = simulate(build(header + "".join(decls)))
        backward = simulate(build(header + "".join(reversed(decls))))
        for name in "abcd":
            assert forward.volumes[name] == pytest.approx(backward.volumes[name])


class TestNetworkConservation:
    """Rain in equals storage plus water in transit plus dam releases."""

    @pytest.mark.parametrize("seed", range(15))
    def test_random_network(self, seed):
        rng = np.random.default_rng(seed)
        days = int(rng.integers(3, 7))
        rivers = ["r0", "r1", "r2", "r3"]
        names = rivers + ["d"]

        def series():
            return ", ".join(f"{x:.2f}" for x in rng.uniform(0, 30, size=days))

        lines = [f"FlowOut x = {days};"]
        for name in rivers:
            lines.append(f"River {name} = [{series()}]mm;")
            lines.append(f"Capacity {name} = 1000ML;")
        capacity = float(rng.uniform(20, 200))
        lines.append(f"Dam d = {capacity:.1f}ML release {int(rng.integers(0, 101))}%;")
        lines.append(f"d = [{series()}]mm;")
        for i in range(int(rng.integers(2, 6))):
            sources = rng.choice(names, size=int(rng.integers(1, 3)))
            destinations = rng.choice(names, size=int(rng.integers(1, 3)))
            lines.append(f"Flow f{i} = ({' + '.join(sources)}) -> {' + '.join(destinations)};")

        state = build("\n".join(lines))
        sim = Simulator(state)
        rained = 0.0
        for day in range(1, state.max_days() + 1):
            rained += sum(river.rainfall_on(day) for river in state.rivers.values())
            sim.step(day)
            stored = sum(river.current_volume for river in state.rivers.values())
            in_transit = sum(sum(flow.pending.values()) for flow in state.flows)
            released = sum(sum(r) for r in sim.releases.values())
            assert stored + in_transit + released == pytest.approx(rained, rel=1e-9, abs=1e-9)
            assert all(river.current_volume >= 0 for river in state.rivers.values())


class TestEdgeCases:
    def test_duplicate_source_counts_each_occurrence(self):
        """Known edge case: a source listed twice asks for twice its outflow.

        The request is larger than the river holds, so it gives up its whole
        volume and no more.
        """
        state = build("River a = 10mm; River c = 0mm; Capacity a = 50ML; Capacity c = 50ML;"
                      "Flow f = (a + a) -> c;")
        sim = Simulator(state)
        sim.step(1)
        assert state.flows[0].pending == {"c": pytest.approx(10.0)}
        assert state.rivers["a"].current_volume == pytest.approx(0.0)

    def test_duplicate_destination_receives_each_share(self):
        """Known edge case: a destination listed twice gets two shares."""
        reporter = RecordingReporter()
        state = build("River a = 10mm; River b = 0mm; Capacity a = 50ML; Capacity b = 50ML;"
                      "Flow f = a -> b + b;")
        sim = Simulator(state, reporter)
        sim.step(1)
        scheduled = reporter.of_type(FlowScheduled)
        assert [e.amount for e in scheduled] == [pytest.approx(4.5), pytest.approx(4.5)]
        assert state.flows[0].pending == {"b": pytest.approx(9.0)}

        sim.step(2)
        (arrived,) = reporter.of_type(FlowArrived)
        assert arrived.amount == pytest.approx(9.0)
        a, b = state.rivers["a"], state.rivers["b"]
        pending = sum(state.flows[0].pending.values())
        assert a.current_volume + b.current_volume + pending == pytest.approx(10.0)

    def test_split_divides_evenly(self):
        state = build("River a = 10mm; River b = 0mm; River c = 0mm;"
                      "Capacity a = 50ML; Capacity b = 50ML; Capacity c = 50ML;"
                      "Flow f = a -> b + c;")
        sim = Simulator(state)
        sim.step(1)
        assert state.flows[0].pending == {"b": pytest.approx(4.5), "c": pytest.approx(4.5)}

    def test_no_scheduling_after_horizon(self):
        state = build("River a = 0mm; a = 0mm; a = 0mm; a = 10mm; River b = 0mm;"
                      "Capacity a = 50ML; Capacity b = 50ML; Flow f = a -> b;")
        result = simulate(state)
        assert result.max_days == 4
        assert result.volumes["a"] == pytest.approx(10.0)
        assert result.volumes["b"] == 0.0


class TestDamScenario:
    def test_dam_regulates_inflow(self):
        result = simulate(build(DAM))
        assert result.dam_levels["d"] == pytest.approx(50.0)
        assert result.volumes["d"] == pytest.approx(50.0)
        assert result.releases["d"] == [0.0, pytest.approx(40.0), pytest.approx(9.0)]
        assert result.volumes["a"] == pytest.approx(0.1)
        assert result.in_transit == pytest.approx(0.9)

    def test_dam_and_mirror_stay_equal(self):
        state = build(DAM + "d = [0, 0, 0, 30, 5]mm; Flow g = d -> a;")
        sim = Simulator(state)
        for day in range(1, state.max_days() + 1):
            sim.step(day)
            assert state.dams["d"].current_level == state.rivers["d"].current_volume
            assert 0 <= state.dams["d"].current_level <= state.dams["d"].capacity

    def test_rain_on_full_dam_spills_as_release(self):
        result = simulate(build("Dam d = 10ML; d = 15mm;"))
        assert result.dam_levels["d"] == pytest.approx(10.0)
        assert result.releases["d"] == [0.0, 0.0, 0.0, pytest.approx(5.0)]

    def test_rain_counted_once_with_two_inflows(self):
        source = """
        River a = 10mm;
        River b = 10mm;
        Capacity a = 50ML;
        Capacity b = 50ML;
        Dam d = 100ML release 100%;
        d = 20mm;
        Flow f = a -> d;
        Flow g = b -> d;
        """
        # day 4 rain lands with the last inflows, scheduled on day 3
        result = simulate(build(source))
        inflow = 2 * (9 + 0.9 + 0.09)
        assert result.dam_levels["d"] == pytest.approx(inflow + 20.0)

    def test_dam_event(self):
        reporter = RecordingReporter()
        simulate(build(DAM), reporter)
        events = reporter.of_type(DamOperated)
        assert [e.day for e in events] == [2, 3]
        first = events[0]
        assert first.inflow == pytest.approx(90.0)
        assert first.release == pytest.approx(40.0)
        assert first.level_percent == pytest.approx(50.0)


class TestReporting:
    def test_event_sequence(self):
        reporter = RecordingReporter()
        simulate(build(MERGE), reporter)
        assert isinstance(reporter.events[0], SimulationStarted)
        assert [e.day for e in reporter.of_type(DayStarted)] == [1, 2, 3]
        assert {e.river for e in reporter.of_type(RainfallApplied)} == {"a", "b", "c"}
        assert [e.day for e in reporter.of_type(FlowScheduled)] == [1, 2, 3]
        assert [e.day for e in reporter.of_type(FlowArrived)] == [2, 3]
        assert [e.river for e in reporter.of_type(FinalVolume)] == ["a", "b", "c"]

    def test_started_event_summarises_network(self):
        reporter = RecordingReporter()
        simulate(build(DAM), reporter)
        started = reporter.of_type(SimulationStarted)[0]
        assert started.flow_out_days == 3
        assert [r.name for r in started.rivers] == ["a", "d"]
        assert started.rivers[0].capacity == 200
        assert started.dams[0].release_percent == 50
        assert started.flows == ["a -> d"]

    def test_capacity_warning(self):
        reporter = RecordingReporter()
        result = simulate(build("River a = 45mm; Capacity a = 50ML;"), reporter)
        assert result.warnings == {"a": pytest.approx(90.0)}
        assert reporter.of_type(CapacityWarning)[0].percent == pytest.approx(90.0)

    def test_capacity_overflow(self):
        reporter = RecordingReporter()
        result = simulate(build("River a = 60mm; Capacity a = 50ML;"), reporter)
        assert result.overflows == {"a": pytest.approx(10.0)}
        assert reporter.of_type(CapacityOverflow)[0].excess == pytest.approx(10.0)
        assert reporter.of_type(CapacityWarning) == []

    def test_exactly_full_is_overflow(self):
        result = simulate(build("River a = 50mm; Capacity a = 50ML;"))
        assert result.overflows == {"a": pytest.approx(0.0)}


class TestHistoryFrame:
    def test_frame_shape(self):
        frame = simulate(build(MERGE)).history_frame()
        assert list(frame.columns) == ["a", "b", "c"]
        assert list(frame.index) == [1, 2, 3]
        assert frame.index.name == "day"
        assert frame.loc[2, "c"] == pytest.approx(21.2)
