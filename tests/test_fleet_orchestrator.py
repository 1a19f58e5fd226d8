"""
Tests for FleetOrchestrator on the in-memory datastore

Run with: pytest tests/test_fleet_orchestrator.py -v
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from errors import DatabaseError, ValidationError
from fleetguard.models import (
    ArrivalLog,
    ArrivalOutcome,
    ArrivalStatus,
    FuelAnalysisRecord,
    FuelAnalysisStatus,
    FuelEntry,
    GeoPoint,
    Geofence,
    GeofenceAssignment,
    GeofenceState,
    IngestStatus,
    PositionSample,
    RiskLevel,
    SlaProcessStatus,
)
from fleetguard.orchestrators import FleetOrchestrator, OrchestratorConfig
from fleetguard.services import GeofenceStateTracker, InMemoryTransitionStateStore
from tests.fixtures.fleet_fixtures import FIXED_NOW

DAY = date(2026, 3, 2)


def _utc(hour, minute, day=2):
    return datetime(2026, 3, day, hour, minute, tzinfo=timezone.utc)


def _sample(lng=0.0, ts=None, vehicle_id="V", lat=0.0, speed=0.0, ignition=True):
    return PositionSample(
        vehicle_id=vehicle_id,
        latitude=lat,
        longitude=lng,
        speed=speed,
        ignition=ignition,
        timestamp=ts or _utc(10, 2),
    )


class TestIngestPosition:
    """validate -> rate limit -> persist -> transitions -> arrivals"""

    def test_end_to_end_arrival(self, depot_orchestrator, datastore):
        """V at (0,0), geofence (0,0.001) r=200, 10:00 + 5, arrival 10:02 -> ON_TIME 2"""
        result = depot_orchestrator.ingest_position(_sample(ts=_utc(10, 2)))

        assert result.status == IngestStatus.ACCEPTED
        assert len(result.transitions) == 1
        assert result.transitions[0].geofence_id == "GF-1"
        assert result.transitions[0].distance_meters == pytest.approx(111.19, abs=0.01)

        arrival = result.arrivals[0]
        assert arrival.outcome == ArrivalOutcome.RECORDED
        assert arrival.status == ArrivalStatus.ON_TIME
        assert arrival.delay_minutes == 2

        assert len(datastore.positions) == 1
        assert len(datastore.arrival_logs) == 1
        log = datastore.arrival_logs[0]
        assert log.status == ArrivalStatus.ON_TIME
        assert log.delay_minutes == 2
        assert log.log_date == DAY
        assert log.scheduled_time == "10:00:00"

    def test_staying_inside_logs_once(self, depot_orchestrator, datastore):
        depot_orchestrator.ingest_position(_sample(ts=_utc(10, 2)))
        second = depot_orchestrator.ingest_position(_sample(lng=0.0005, ts=_utc(10, 3)))

        assert second.transitions == []
        assert len(datastore.arrival_logs) == 1
        assert len(datastore.positions) == 2

    def test_reentry_same_day_already_recorded(self, depot_orchestrator, datastore):
        depot_orchestrator.ingest_position(_sample(ts=_utc(10, 2)))
        depot_orchestrator.ingest_position(_sample(lng=0.01, ts=_utc(10, 30)))
        back = depot_orchestrator.ingest_position(_sample(ts=_utc(11, 0)))

        assert len(back.transitions) == 1
        assert back.arrivals[0].outcome == ArrivalOutcome.ALREADY_RECORDED
        assert len(datastore.arrival_logs) == 1

    def test_restart_redundant_transition_absorbed(
        self, depot_orchestrator, datastore, fixed_clock
    ):
        """A fresh state store re-emits the entry; the duplicate check absorbs it"""
        depot_orchestrator.ingest_position(_sample(ts=_utc(10, 2)))

        restarted = FleetOrchestrator(
            telemetry_repo=datastore,
            geofence_repo=datastore,
            arrival_repo=datastore,
            fuel_repo=datastore,
            vehicle_repo=datastore,
            tracker=GeofenceStateTracker(InMemoryTransitionStateStore()),
            clock=fixed_clock,
        )
        result = restarted.ingest_position(_sample(ts=_utc(10, 5)))

        assert len(result.transitions) == 1
        assert result.arrivals[0].outcome == ArrivalOutcome.ALREADY_RECORDED
        assert len(datastore.arrival_logs) == 1

    def test_late_arrival(self, depot_orchestrator, datastore):
        result = depot_orchestrator.ingest_position(_sample(ts=_utc(10, 20)))

        assert result.arrivals[0].status == ArrivalStatus.LATE
        assert result.arrivals[0].delay_minutes == 20
        assert datastore.arrival_logs[0].status == ArrivalStatus.LATE

    def test_early_arrival_delay_clamped_in_log(self, depot_orchestrator, datastore):
        result = depot_orchestrator.ingest_position(_sample(ts=_utc(9, 55)))

        assert result.arrivals[0].delay_minutes == -5
        assert result.arrivals[0].status == ArrivalStatus.ON_TIME
        assert datastore.arrival_logs[0].delay_minutes == 0

    def test_no_schedule_writes_nothing(self, orchestrator, datastore, depot_geofence):
        """Route geofence without a schedule for V"""
        datastore.geofences.append(depot_geofence)
        datastore.route_assignments["V"] = "R-1"

        result = orchestrator.ingest_position(_sample())

        assert len(result.transitions) == 1
        assert result.arrivals[0].outcome == ArrivalOutcome.NO_SCHEDULE
        assert datastore.arrival_logs == []

    def test_unparseable_schedule_records_bare_arrival(
        self, orchestrator, datastore, depot_geofence
    ):
        datastore.geofences.append(depot_geofence)
        datastore.assignments.append(
            GeofenceAssignment(geofence_id="GF-1", vehicle_id="V", expected_entry_time="soon")
        )

        result = orchestrator.ingest_position(_sample())

        assert result.arrivals[0].outcome == ArrivalOutcome.BARE_ARRIVAL
        assert result.arrivals[0].status is None
        log = datastore.arrival_logs[0]
        assert log.status is None
        assert log.delay_minutes is None
        assert log.arrival_time == _utc(10, 2)

    def test_outside_all_geofences(self, depot_orchestrator, datastore):
        result = depot_orchestrator.ingest_position(_sample(lng=0.01))

        assert result.status == IngestStatus.ACCEPTED
        assert result.transitions == []
        assert datastore.arrival_logs == []

    def test_missing_timestamp_uses_clock(self, depot_orchestrator, datastore):
        sample = _sample().model_copy(update={"timestamp": None})
        depot_orchestrator.ingest_position(sample)

        assert datastore.positions[0].timestamp == FIXED_NOW
        assert datastore.arrival_logs[0].status == ArrivalStatus.LATE

    @pytest.mark.parametrize(
        "overrides",
        [
            {"vehicle_id": ""},
            {"vehicle_id": "   "},
            {"latitude": 91.0},
            {"longitude": -180.5},
            {"speed": 181.0},
            {"speed": -1.0},
        ],
    )
    def test_validation_rejects_before_write(self, depot_orchestrator, datastore, overrides):
        sample = _sample().model_copy(update=overrides)

        with pytest.raises(ValidationError):
            depot_orchestrator.ingest_position(sample)

        assert datastore.positions == []
        assert datastore.arrival_logs == []

    def test_rate_limited_sample_dropped(
        self, enable_rate_limiting, datastore, depot_geofence, depot_assignment, fixed_clock
    ):
        datastore.geofences.append(depot_geofence)
        datastore.assignments.append(depot_assignment)
        orchestrator = FleetOrchestrator(
            telemetry_repo=datastore,
            geofence_repo=datastore,
            arrival_repo=datastore,
            fuel_repo=datastore,
            vehicle_repo=datastore,
            config=OrchestratorConfig(rate_limit_interval_seconds=3),
            clock=fixed_clock,
        )

        first = orchestrator.ingest_position(_sample(lng=0.01))
        second = orchestrator.ingest_position(_sample())

        assert first.status == IngestStatus.ACCEPTED
        assert second.status == IngestStatus.RATE_LIMITED
        assert second.retry_after_seconds > 0
        assert len(datastore.positions) == 1
        assert datastore.arrival_logs == []

    def test_aware_timestamp_converted_to_system_tz(
        self, datastore, depot_geofence, depot_assignment
    ):
        """04:32 UTC is 10:02 in Asia/Kolkata"""
        datastore.geofences.append(depot_geofence)
        datastore.assignments.append(depot_assignment)
        orchestrator = FleetOrchestrator(
            telemetry_repo=datastore,
            geofence_repo=datastore,
            arrival_repo=datastore,
            fuel_repo=datastore,
            vehicle_repo=datastore,
            config=OrchestratorConfig(system_tz="Asia/Kolkata"),
        )

        result = orchestrator.ingest_position(_sample(ts=_utc(4, 32)))

        assert result.arrivals[0].status == ArrivalStatus.ON_TIME
        assert result.arrivals[0].delay_minutes == 2

    def test_naive_timestamp_read_as_system_tz(self, depot_orchestrator, datastore):
        result = depot_orchestrator.ingest_position(_sample(ts=datetime(2026, 3, 2, 10, 2)))

        assert result.arrivals[0].delay_minutes == 2
        assert datastore.positions[0].timestamp == _utc(10, 2)


def _fail_once(monkeypatch, target, name):
    """Make target.<name> raise DatabaseError on its first call only"""
    original = getattr(target, name)
    calls = {"count": 0}

    def flaky(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            raise DatabaseError("Database operation failed", operation=name)
        return original(*args, **kwargs)

    monkeypatch.setattr(target, name, flaky)


class TestIngestStorageFailure:
    """A sample that failed in storage can be retried without losing its arrival"""

    def test_retry_after_failed_arrival_insert(
        self, depot_orchestrator, datastore, monkeypatch
    ):
        _fail_once(monkeypatch, datastore, "insert")

        with pytest.raises(DatabaseError):
            depot_orchestrator.ingest_position(_sample(ts=_utc(10, 2)))
        assert datastore.arrival_logs == []
        assert depot_orchestrator.tracker.state_of("V", "GF-1") == GeofenceState.OUTSIDE

        retry = depot_orchestrator.ingest_position(_sample(ts=_utc(10, 2)))

        assert len(retry.transitions) == 1
        assert retry.arrivals[0].outcome == ArrivalOutcome.RECORDED
        assert len(datastore.arrival_logs) == 1
        assert datastore.arrival_logs[0].status == ArrivalStatus.ON_TIME

    def test_retry_after_failed_duplicate_check(
        self, depot_orchestrator, datastore, monkeypatch
    ):
        _fail_once(monkeypatch, datastore, "exists_for_day")

        with pytest.raises(DatabaseError):
            depot_orchestrator.ingest_position(_sample(ts=_utc(10, 2)))

        retry = depot_orchestrator.ingest_position(_sample(ts=_utc(10, 2)))

        assert retry.arrivals[0].outcome == ArrivalOutcome.RECORDED
        assert len(datastore.arrival_logs) == 1

    def test_failed_position_insert_emits_nothing(
        self, depot_orchestrator, datastore, monkeypatch
    ):
        _fail_once(monkeypatch, datastore, "insert_position")

        with pytest.raises(DatabaseError):
            depot_orchestrator.ingest_position(_sample(ts=_utc(10, 2)))
        assert datastore.positions == []
        assert depot_orchestrator.tracker.state_of("V", "GF-1") == GeofenceState.OUTSIDE

        retry = depot_orchestrator.ingest_position(_sample(ts=_utc(10, 2)))
        assert len(retry.arrivals) == 1
        assert len(datastore.positions) == 1

    def test_retry_not_rate_limited(
        self,
        enable_rate_limiting,
        datastore,
        depot_geofence,
        depot_assignment,
        fixed_clock,
        monkeypatch,
    ):
        datastore.geofences.append(depot_geofence)
        datastore.assignments.append(depot_assignment)
        orchestrator = FleetOrchestrator(
            telemetry_repo=datastore,
            geofence_repo=datastore,
            arrival_repo=datastore,
            fuel_repo=datastore,
            vehicle_repo=datastore,
            config=OrchestratorConfig(rate_limit_interval_seconds=3),
            clock=fixed_clock,
        )
        _fail_once(monkeypatch, datastore, "insert")

        with pytest.raises(DatabaseError):
            orchestrator.ingest_position(_sample(ts=_utc(10, 2)))
        retry = orchestrator.ingest_position(_sample(ts=_utc(10, 2)))

        assert retry.status == IngestStatus.ACCEPTED
        assert len(datastore.arrival_logs) == 1

        # spacing applies again once a sample went through
        third = orchestrator.ingest_position(_sample(ts=_utc(10, 2)))
        assert third.status == IngestStatus.RATE_LIMITED

    def test_logged_arrival_is_not_reverted(
        self, depot_orchestrator, datastore, monkeypatch
    ):
        """With two entries in one sample only the unlogged one is reverted"""
        datastore.geofences.append(
            Geofence(
                geofence_id="GF-2",
                center=GeoPoint(lat=0.0, lng=0.0),
                radius_meters=200,
            )
        )
        datastore.assignments.append(
            GeofenceAssignment(geofence_id="GF-2", vehicle_id="V", expected_entry_time="10:00")
        )
        original = datastore.insert

        def insert(log):
            if log.geofence_id == "GF-2":
                raise DatabaseError("Database operation failed", operation="insert")
            return original(log)

        monkeypatch.setattr(datastore, "insert", insert)

        with pytest.raises(DatabaseError):
            depot_orchestrator.ingest_position(_sample(ts=_utc(10, 2)))

        assert depot_orchestrator.tracker.state_of("V", "GF-1") == GeofenceState.INSIDE
        assert depot_orchestrator.tracker.state_of("V", "GF-2") == GeofenceState.OUTSIDE
        assert [log.geofence_id for log in datastore.arrival_logs] == ["GF-1"]


class TestLogArrival:
    def test_idempotent_per_day(self, depot_orchestrator, datastore):
        """Two calls for the same (vehicle, geofence, day) -> one row"""
        first = depot_orchestrator.log_arrival("V", "GF-1", _utc(10, 2))
        second = depot_orchestrator.log_arrival("V", "GF-1", _utc(10, 40))

        assert first.outcome == ArrivalOutcome.RECORDED
        assert second.outcome == ArrivalOutcome.ALREADY_RECORDED
        assert len(datastore.arrival_logs) == 1

    def test_next_day_logs_again(self, depot_orchestrator, datastore):
        depot_orchestrator.log_arrival("V", "GF-1", _utc(10, 2))
        depot_orchestrator.log_arrival("V", "GF-1", _utc(10, 2, day=3))

        assert len(datastore.arrival_logs) == 2

    def test_first_assignment_wins(self, depot_orchestrator, datastore):
        datastore.assignments.append(
            GeofenceAssignment(
                geofence_id="GF-1", vehicle_id="V", expected_entry_time="11:00"
            )
        )
        result = depot_orchestrator.log_arrival("V", "GF-1", _utc(10, 2))

        assert result.delay_minutes == 2


class TestProcessRouteSla:
    def test_no_active_route(self, orchestrator):
        result = orchestrator.process_route_sla("V", 0.0, 0.0, _utc(10, 2))
        assert result.status == SlaProcessStatus.NO_ACTIVE_ROUTE

    def test_no_geofence(self, orchestrator, datastore):
        datastore.route_assignments["V"] = "R-404"
        result = orchestrator.process_route_sla("V", 0.0, 0.0, _utc(10, 2))
        assert result.status == SlaProcessStatus.NO_GEOFENCE

    def test_outside_geofence(self, depot_orchestrator, datastore):
        datastore.route_assignments["V"] = "R-1"
        result = depot_orchestrator.process_route_sla("V", 0.0, 0.01, _utc(10, 2))
        assert result.status == SlaProcessStatus.OUTSIDE_GEOFENCE
        assert datastore.arrival_logs == []

    def test_recorded_then_already_recorded(self, depot_orchestrator, datastore):
        datastore.route_assignments["V"] = "R-1"

        first = depot_orchestrator.process_route_sla("V", 0.0, 0.0, _utc(10, 2))
        second = depot_orchestrator.process_route_sla("V", 0.0, 0.0, _utc(10, 3))

        assert first.status == SlaProcessStatus.RECORDED
        assert first.arrival_status == ArrivalStatus.ON_TIME
        assert first.delay_minutes == 2
        assert first.geofence_id == "GF-1"
        assert second.status == SlaProcessStatus.ALREADY_RECORDED
        assert len(datastore.arrival_logs) == 1

    def test_no_schedule(self, orchestrator, datastore, depot_geofence):
        datastore.geofences.append(depot_geofence)
        datastore.route_assignments["V"] = "R-1"

        result = orchestrator.process_route_sla("V", 0.0, 0.0, _utc(10, 2))

        assert result.status == SlaProcessStatus.NO_SCHEDULE

    def test_invalid_coordinates(self, orchestrator):
        with pytest.raises(ValidationError):
            orchestrator.process_route_sla("V", None, 0.0)


class TestSweepMissedArrivals:
    def test_closed_window_without_arrival_is_missed(self, depot_orchestrator, datastore):
        result = depot_orchestrator.sweep_missed_arrivals(_utc(12, 0))

        assert result.missed_count == 1
        assert result.day == DAY
        log = datastore.arrival_logs[0]
        assert log.status == ArrivalStatus.MISSED
        assert log.delay_minutes == 0
        assert log.arrival_time is None

    def test_sweep_is_idempotent(self, depot_orchestrator, datastore):
        depot_orchestrator.sweep_missed_arrivals(_utc(12, 0))
        again = depot_orchestrator.sweep_missed_arrivals(_utc(13, 0))

        assert again.missed_count == 0
        assert len(datastore.arrival_logs) == 1

    def test_open_window_not_missed(self, depot_orchestrator, datastore):
        result = depot_orchestrator.sweep_missed_arrivals(_utc(10, 4))
        assert result.missed_count == 0

    def test_window_end_time_respected(self, orchestrator, datastore, depot_geofence):
        datastore.geofences.append(depot_geofence)
        datastore.assignments.append(
            GeofenceAssignment(
                geofence_id="GF-1",
                vehicle_id="V",
                expected_entry_time="10:00",
                window_end_time="13:00",
            )
        )
        assert orchestrator.sweep_missed_arrivals(_utc(12, 0)).missed_count == 0
        assert orchestrator.sweep_missed_arrivals(_utc(13, 1)).missed_count == 1

    def test_arrived_vehicle_not_missed(self, depot_orchestrator, datastore):
        depot_orchestrator.log_arrival("V", "GF-1", _utc(10, 2))
        result = depot_orchestrator.sweep_missed_arrivals(_utc(12, 0))

        assert result.missed_count == 0
        assert len(datastore.arrival_logs) == 1

    def test_only_the_day_of_now_is_swept(self, orchestrator, datastore):
        """23:58 + 5 ends past midnight; neither day's sweep marks it"""
        datastore.assignments.append(
            GeofenceAssignment(
                geofence_id="GF-1", vehicle_id="V", expected_entry_time="23:58", grace_minutes=5
            )
        )

        assert orchestrator.sweep_missed_arrivals(_utc(23, 59)).missed_count == 0

        after_midnight = orchestrator.sweep_missed_arrivals(_utc(0, 10, day=3))
        assert after_midnight.day == date(2026, 3, 3)
        assert after_midnight.missed_count == 0
        assert datastore.arrival_logs == []

    def test_late_now_sweeps_that_day(self, depot_orchestrator, datastore):
        result = depot_orchestrator.sweep_missed_arrivals(_utc(23, 59, day=1))

        assert result.day == date(2026, 3, 1)
        assert datastore.arrival_logs[0].log_date == date(2026, 3, 1)

    def test_unparseable_schedule_skipped(self, orchestrator, datastore):
        datastore.assignments.append(
            GeofenceAssignment(geofence_id="GF-9", vehicle_id="V", expected_entry_time="??")
        )
        assert orchestrator.sweep_missed_arrivals(_utc(12, 0)).missed_count == 0


class TestFuel:
    def _entry(self, day, quantity=10.0, odometer=None):
        return FuelEntry(
            vehicle_id="V", fuel_date=day, fuel_quantity=quantity, odometer_reading=odometer
        )

    def test_first_entry_stored_without_analysis(self, orchestrator, datastore):
        result = orchestrator.ingest_fuel_entry(self._entry(DAY, odometer=1000))

        assert result.entry.fuel_entry_id == "1"
        assert result.analysis.status == FuelAnalysisStatus.NO_PREVIOUS_ENTRY
        assert len(datastore.fuel_entries) == 1
        assert datastore.analyses == []

    def test_theft_analysis_persisted(self, orchestrator, datastore):
        datastore.vehicles["V"] = 10.0
        orchestrator.ingest_fuel_entry(self._entry(date(2026, 3, 1), odometer=1000))
        result = orchestrator.ingest_fuel_entry(self._entry(DAY, quantity=10, odometer=1070))

        assert result.analysis.status == FuelAnalysisStatus.ANALYZED
        assert result.analysis.analysis.theft_flag is True
        assert datastore.analyses[0].actual_mileage == 7.0

    def test_missing_baseline_partial(self, orchestrator, datastore):
        orchestrator.ingest_fuel_entry(self._entry(date(2026, 3, 1), odometer=1000))
        result = orchestrator.ingest_fuel_entry(self._entry(DAY, odometer=1100))

        assert result.analysis.status == FuelAnalysisStatus.PARTIAL
        assert len(datastore.analyses) == 1
        assert datastore.analyses[0].theft_flag is False

    def test_zero_quantity_stored_but_not_analyzed(self, orchestrator, datastore):
        datastore.vehicles["V"] = 10.0
        orchestrator.ingest_fuel_entry(self._entry(date(2026, 3, 1), odometer=1000))
        result = orchestrator.ingest_fuel_entry(self._entry(DAY, quantity=0, odometer=1100))

        assert result.analysis.status == FuelAnalysisStatus.INSUFFICIENT_DATA
        assert len(datastore.fuel_entries) == 2
        assert datastore.analyses == []

    def test_same_day_entry_is_not_previous(self, orchestrator, datastore):
        orchestrator.ingest_fuel_entry(self._entry(DAY, odometer=1000))
        result = orchestrator.ingest_fuel_entry(self._entry(DAY, odometer=1100))

        assert result.analysis.status == FuelAnalysisStatus.NO_PREVIOUS_ENTRY

    def test_daily_analysis_uses_active_route(self, orchestrator, datastore):
        datastore.route_assignments["V"] = "R-1"
        datastore.routes["R-1"] = 10.0
        datastore.distances[("V", DAY)] = 70.0
        orchestrator.ingest_fuel_entry(self._entry(DAY, quantity=6))
        orchestrator.ingest_fuel_entry(self._entry(DAY, quantity=4))

        result = orchestrator.run_daily_fuel_analysis("V", day=DAY)

        assert result.status == FuelAnalysisStatus.ANALYZED
        assert result.analysis.fuel_given == 10
        assert result.analysis.expected_mileage == 10.0
        assert result.analysis.theft_flag is True
        assert datastore.analyses[-1] == result.analysis

    def test_daily_analysis_without_fuel(self, orchestrator, datastore):
        datastore.distances[("V", DAY)] = 70.0
        result = orchestrator.run_daily_fuel_analysis("V", route_id="R-1", day=DAY)

        assert result.status == FuelAnalysisStatus.INSUFFICIENT_DATA
        assert datastore.analyses == []


def _idle_samples(datastore, count, vehicle_id="V"):
    for i in range(count):
        datastore.positions.append(
            PositionSample(
                vehicle_id=vehicle_id,
                latitude=0,
                longitude=0,
                speed=0,
                ignition=True,
                timestamp=FIXED_NOW - timedelta(minutes=i + 1),
            )
        )


class TestAssessEventRisk:
    def test_all_signals_high(self, orchestrator, datastore):
        datastore.analyses.append(
            FuelAnalysisRecord(
                vehicle_id="V",
                analysis_date=DAY,
                fuel_given=10,
                distance_covered=70,
                actual_mileage=7,
                expected_mileage=10,
                theft_flag=True,
            )
        )
        datastore.arrival_logs.append(
            ArrivalLog(
                vehicle_id="V",
                geofence_id="GF-1",
                log_date=DAY,
                delay_minutes=15,
                status=ArrivalStatus.LATE,
            )
        )
        _idle_samples(datastore, 51)

        result = orchestrator.assess_event_risk("V", route_id="R-1")

        assert (result.fuel_risk, result.sla_risk, result.idle_risk) == (True, True, True)
        assert result.idle_samples == 51
        assert result.risk_score == 4
        assert result.risk_level == RiskLevel.HIGH
        saved = datastore.risk_assessments[0]
        assert saved.policy == "event"
        assert saved.route_id == "R-1"
        assert saved.assessment_date == DAY

    def test_nothing_is_low(self, orchestrator, datastore):
        _idle_samples(datastore, 50)
        result = orchestrator.assess_event_risk("V")

        assert result.risk_score == 0
        assert result.risk_level == RiskLevel.LOW

    def test_delay_at_threshold_not_late(self, orchestrator, datastore):
        datastore.arrival_logs.append(
            ArrivalLog(
                vehicle_id="V",
                geofence_id="GF-1",
                log_date=DAY,
                delay_minutes=10,
                status=ArrivalStatus.LATE,
            )
        )
        assert orchestrator.assess_event_risk("V").sla_risk is False

    def test_missed_is_late(self, orchestrator, datastore):
        datastore.arrival_logs.append(
            ArrivalLog(
                vehicle_id="V",
                geofence_id="GF-1",
                log_date=DAY,
                delay_minutes=0,
                status=ArrivalStatus.MISSED,
            )
        )
        assert orchestrator.assess_event_risk("V").sla_risk is True

    def test_snapshots_are_appended(self, orchestrator, datastore):
        orchestrator.assess_event_risk("V")
        orchestrator.assess_event_risk("V")
        assert len(datastore.risk_assessments) == 2


class TestRunRiskBatch:
    def test_low_mileage_and_sla_high(self, orchestrator, datastore):
        datastore.vehicles["V"] = 10.0
        datastore.analyses.append(
            FuelAnalysisRecord(
                vehicle_id="V",
                analysis_date=DAY,
                fuel_given=10,
                distance_covered=60,
                actual_mileage=6,
            )
        )
        datastore.arrival_logs.append(
            ArrivalLog(
                vehicle_id="V",
                geofence_id="GF-1",
                log_date=DAY - timedelta(days=3),
                delay_minutes=0,
                status=ArrivalStatus.MISSED,
            )
        )

        result = orchestrator.run_risk_batch()

        assert result.vehicles_evaluated == 1
        vehicle = result.results[0]
        assert vehicle.fuel_risk is True
        assert vehicle.sla_risk is True
        assert vehicle.idle_risk is False
        assert vehicle.risk_score == 6
        assert vehicle.risk_level == RiskLevel.HIGH
        assert datastore.risk_assessments[0].policy == "batch"

    def test_old_sla_breach_ignored(self, orchestrator, datastore):
        datastore.vehicles["V"] = None
        datastore.arrival_logs.append(
            ArrivalLog(
                vehicle_id="V",
                geofence_id="GF-1",
                log_date=DAY - timedelta(days=8),
                delay_minutes=30,
                status=ArrivalStatus.LATE,
            )
        )
        result = orchestrator.run_risk_batch()
        assert result.results[0].sla_risk is False

    def test_idle_threshold_60(self, orchestrator, datastore):
        datastore.vehicles["V"] = None
        _idle_samples(datastore, 61)

        vehicle = orchestrator.run_risk_batch().results[0]

        assert vehicle.idle_risk is True
        assert vehicle.risk_score == 2
        assert vehicle.risk_level == RiskLevel.LOW

    def test_failure_isolated_per_vehicle(self, orchestrator, datastore):
        datastore.vehicles.update({"A": None, "B": None, "C": None})
        datastore.failing_vehicles.add("B")

        result = orchestrator.run_risk_batch()

        assert [r.vehicle_id for r in result.results] == ["A", "C"]
        assert len(result.errors) == 1
        assert result.errors[0].vehicle_id == "B"
        assert "storage failure" in result.errors[0].error
        assert len(datastore.risk_assessments) == 2

    def test_single_vehicle(self, orchestrator, datastore):
        datastore.vehicles.update({"A": None, "B": None})
        result = orchestrator.run_risk_batch("B")

        assert [r.vehicle_id for r in result.results] == ["B"]
        assert result.run_at == FIXED_NOW
