"""
Fleet Orchestrator

Thin orchestration layer behind every inbound operation of the risk
engine. Business logic lives in the services, storage in the
repositories; this class wires them together per operation:

    ingest_position          validate -> rate limit -> persist -> transitions -> arrivals
    log_arrival              duplicate check -> schedule lookup -> evaluate -> log
    process_route_sla        active route -> route geofence -> containment -> arrival
    sweep_missed_arrivals    closed schedule windows without a log -> MISSED
    ingest_fuel_entry        persist -> previous entry -> mileage / theft analysis
    run_daily_fuel_analysis  day's fuel vs. day's distance vs. route baseline
    assess_event_risk        per-event risk (EventRiskPolicy) for one vehicle/day
    run_risk_batch           periodic risk (BatchRiskPolicy) for one or all vehicles

Business outcomes come back as status enums. ValidationError is raised
for bad input before anything is written; DatabaseError from the
repositories is propagated to the caller untouched, except inside
run_risk_batch where one vehicle's failure never stops the others.

Timestamps: naive timestamps are read as SYSTEM_TZ wall time, aware ones
are converted to SYSTEM_TZ. Schedules (expected_entry_time) and "today"
are interpreted in the same zone.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from errors import DatabaseError, ValidationError
from rate_limit_utils import check_vehicle_rate_limit, forget_vehicle

from fleetguard.models import (
    ArrivalLog,
    ArrivalLogResult,
    ArrivalOutcome,
    ArrivalStatus,
    FuelAnalysisResult,
    FuelEntry,
    FuelIngestResult,
    GeoPoint,
    IngestStatus,
    MissedArrival,
    MissedSweepResult,
    PositionIngestResult,
    PositionSample,
    RiskAssessment,
    RiskBatchResult,
    SlaProcessResult,
    SlaProcessStatus,
    TransitionEvent,
    VehicleRiskError,
    VehicleRiskResult,
)
from fleetguard.services import (
    ArrivalEvaluator,
    BatchRiskPolicy,
    EventRiskPolicy,
    GeofenceStateTracker,
    IdleConfig,
    IdleDetector,
    InMemoryTransitionStateStore,
    MileageAnalyzer,
    ScheduleParseError,
    TheftRule,
    is_within,
    validate_coordinates,
)
from fleetguard.repositories import (
    ArrivalLogRepository,
    FuelRepository,
    GeofenceRepository,
    TelemetryRepository,
    VehicleRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class OrchestratorConfig:
    """Configuration for FleetOrchestrator."""

    system_tz: str = "UTC"
    max_speed_kmh: float = 180.0
    rate_limit_interval_seconds: Optional[float] = None  # None: TELEMETRY setting

    tolerance_percent: float = 15.0
    theft_ratio: float = 0.5
    theft_rule: str = "tolerance"
    low_mileage_ratio: float = 0.7

    idle_speed_threshold_kmh: float = 0.0
    event_idle_window_hours: int = 24
    event_idle_threshold: int = 50
    batch_idle_window_hours: int = 24
    batch_idle_threshold: int = 60

    event_late_delay_minutes: int = 10
    sla_lookback_days: int = 7

    @classmethod
    def from_settings(cls, settings) -> "OrchestratorConfig":
        theft_rule = settings.mileage.theft_rule
        if theft_rule not in (TheftRule.TOLERANCE.value, TheftRule.RATIO.value):
            theft_rule = TheftRule.TOLERANCE.value

        return cls(
            system_tz=settings.app.system_tz,
            max_speed_kmh=settings.telemetry.max_speed_kmh,
            rate_limit_interval_seconds=settings.telemetry.rate_limit_interval_seconds,
            tolerance_percent=settings.mileage.tolerance_percent,
            theft_ratio=settings.mileage.theft_ratio,
            theft_rule=theft_rule,
            low_mileage_ratio=settings.mileage.low_mileage_ratio,
            idle_speed_threshold_kmh=settings.idle.idle_speed_threshold_kmh,
            event_idle_window_hours=settings.idle.event_window_hours,
            event_idle_threshold=settings.idle.event_sample_threshold,
            batch_idle_window_hours=settings.idle.batch_window_hours,
            batch_idle_threshold=settings.idle.batch_sample_threshold,
            event_late_delay_minutes=settings.risk.event_late_delay_minutes,
            sla_lookback_days=settings.risk.sla_lookback_days,
        )


class FleetOrchestrator:
    """
    Entry point for telemetry, SLA, fuel and risk operations.

    Services:
    - GeofenceStateTracker: OUTSIDE -> INSIDE transitions
    - ArrivalEvaluator: ON_TIME / LATE classification
    - MileageAnalyzer: mileage and theft heuristics
    - IdleDetector: idle sample counting (event and batch windows)
    - EventRiskPolicy / BatchRiskPolicy: risk scoring

    Repositories:
    - TelemetryRepository, GeofenceRepository, ArrivalLogRepository,
      FuelRepository, VehicleRepository
    """

    def __init__(
        self,
        telemetry_repo: Optional[TelemetryRepository] = None,
        geofence_repo: Optional[GeofenceRepository] = None,
        arrival_repo: Optional[ArrivalLogRepository] = None,
        fuel_repo: Optional[FuelRepository] = None,
        vehicle_repo: Optional[VehicleRepository] = None,
        tracker: Optional[GeofenceStateTracker] = None,
        evaluator: Optional[ArrivalEvaluator] = None,
        mileage_analyzer: Optional[MileageAnalyzer] = None,
        config: Optional[OrchestratorConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize FleetOrchestrator with dependencies.

        Args:
            *_repo: Repository instances (created from DATABASE settings if None)
            tracker: GeofenceStateTracker (in-memory state store if None)
            evaluator: ArrivalEvaluator (will create if None)
            mileage_analyzer: MileageAnalyzer (built from config if None)
            config: OrchestratorConfig (defaults if None)
            clock: Returns "now"; defaults to the current time in SYSTEM_TZ
        """
        self.config = config or OrchestratorConfig()
        self.tz = ZoneInfo(self.config.system_tz)

        if None in (telemetry_repo, geofence_repo, arrival_repo, fuel_repo, vehicle_repo):
            from settings import DATABASE

            db_config = DATABASE.get_connection_dict()
            telemetry_repo = telemetry_repo or TelemetryRepository(db_config)
            geofence_repo = geofence_repo or GeofenceRepository(db_config)
            arrival_repo = arrival_repo or ArrivalLogRepository(db_config)
            fuel_repo = fuel_repo or FuelRepository(db_config)
            vehicle_repo = vehicle_repo or VehicleRepository(db_config)

        self.telemetry_repo = telemetry_repo
        self.geofence_repo = geofence_repo
        self.arrival_repo = arrival_repo
        self.fuel_repo = fuel_repo
        self.vehicle_repo = vehicle_repo

        self.tracker = tracker or GeofenceStateTracker(InMemoryTransitionStateStore())
        self.evaluator = evaluator or ArrivalEvaluator()
        self.mileage_analyzer = mileage_analyzer or MileageAnalyzer(
            tolerance_percent=self.config.tolerance_percent,
            theft_ratio=self.config.theft_ratio,
            theft_rule=TheftRule(self.config.theft_rule),
        )

        self.event_idle = IdleDetector(
            IdleConfig(
                window_hours=self.config.event_idle_window_hours,
                sample_threshold=self.config.event_idle_threshold,
                idle_speed_threshold_kmh=self.config.idle_speed_threshold_kmh,
            )
        )
        self.batch_idle = IdleDetector(
            IdleConfig(
                window_hours=self.config.batch_idle_window_hours,
                sample_threshold=self.config.batch_idle_threshold,
                idle_speed_threshold_kmh=self.config.idle_speed_threshold_kmh,
            )
        )
        self.event_policy = EventRiskPolicy()
        self.batch_policy = BatchRiskPolicy(low_mileage_ratio=self.config.low_mileage_ratio)

        self._clock = clock

        logger.info(f"FleetOrchestrator initialized (tz={self.config.system_tz})")

    # ═══════════════════════════════════════════════════════════════════════
    # TIME
    # ═══════════════════════════════════════════════════════════════════════

    def now(self) -> datetime:
        if self._clock is not None:
            return self.localize(self._clock())
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def localize(self, value: Optional[datetime]) -> datetime:
        """Naive -> SYSTEM_TZ wall time; aware -> converted to SYSTEM_TZ"""
        if value is None:
            return self.now()
        if value.tzinfo is None:
            return value.replace(tzinfo=self.tz)
        return value.astimezone(self.tz)

    # ═══════════════════════════════════════════════════════════════════════
    # VALIDATION
    # ═══════════════════════════════════════════════════════════════════════

    @staticmethod
    def _require_vehicle_id(vehicle_id: Optional[str]) -> str:
        if vehicle_id is None or not str(vehicle_id).strip():
            raise ValidationError("vehicle_id is required", field="vehicle_id")
        return str(vehicle_id).strip()

    @staticmethod
    def _require_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
        if not validate_coordinates(latitude, longitude):
            raise ValidationError(
                "latitude must be in [-90, 90] and longitude in [-180, 180]",
                field="latitude/longitude",
                details={"latitude": latitude, "longitude": longitude},
            )

    def _validate_sample(self, sample: PositionSample) -> PositionSample:
        vehicle_id = self._require_vehicle_id(sample.vehicle_id)
        self._require_coordinates(sample.latitude, sample.longitude)

        speed = 0.0 if sample.speed is None else sample.speed
        if not 0 <= speed <= self.config.max_speed_kmh:
            raise ValidationError(
                f"speed must be in [0, {self.config.max_speed_kmh:g}] km/h",
                field="speed",
                details={"speed": sample.speed},
            )

        return sample.model_copy(update={"vehicle_id": vehicle_id, "speed": speed})

    # ═══════════════════════════════════════════════════════════════════════
    # TELEMETRY & ARRIVALS
    # ═══════════════════════════════════════════════════════════════════════

    def ingest_position(self, sample: PositionSample) -> PositionIngestResult:
        """
        Accept one position sample.

        Samples closer than the per-vehicle spacing to the last accepted
        one are dropped with RATE_LIMITED and nothing is written.

        On a storage failure the sample leaves no trace in the transition
        state or the spacing record: the same sample can be retried and
        still produces its arrival. A retry after a failed arrival write
        stores the position row a second time.

        Raises:
            ValidationError: missing vehicle_id, coordinates or speed out of range
            DatabaseError: storage failure
        """
        sample = self._validate_sample(sample)
        vehicle_id = sample.vehicle_id

        allowed, retry_after = check_vehicle_rate_limit(
            vehicle_id, interval_seconds=self.config.rate_limit_interval_seconds
        )
        if not allowed:
            logger.debug(f"Rate limited sample for {vehicle_id} (retry in {retry_after}s)")
            return PositionIngestResult(
                vehicle_id=vehicle_id,
                status=IngestStatus.RATE_LIMITED,
                retry_after_seconds=retry_after,
            )

        sample = sample.model_copy(update={"timestamp": self.localize(sample.timestamp)})

        transitions: List[TransitionEvent] = []
        arrivals: List[ArrivalLogResult] = []
        try:
            self.telemetry_repo.insert_position(sample)

            geofences = self.geofence_repo.list_active_for_vehicle(vehicle_id)
            transitions = self.tracker.on_position_update(
                vehicle_id, sample.latitude, sample.longitude, geofences
            )

            for event in transitions:
                arrivals.append(
                    self.log_arrival(vehicle_id, event.geofence_id, sample.timestamp)
                )
        except DatabaseError:
            # entries without a stored arrival go back to OUTSIDE
            for event in transitions[len(arrivals):]:
                self.tracker.revert_entry(vehicle_id, event.geofence_id)
            forget_vehicle(vehicle_id)
            logger.warning(
                f"Ingest of {vehicle_id} failed in storage, "
                f"{len(transitions) - len(arrivals)} entry(ies) reverted"
            )
            raise

        return PositionIngestResult(
            vehicle_id=vehicle_id,
            status=IngestStatus.ACCEPTED,
            transitions=transitions,
            arrivals=arrivals,
        )

    def log_arrival(
        self, vehicle_id: str, geofence_id: str, arrival_time: Optional[datetime]
    ) -> ArrivalLogResult:
        """
        Record an arrival at a geofence, at most once per day.

        NO_SCHEDULE writes nothing. An unparseable schedule writes a bare
        arrival (no status, no delay).
        """
        arrival = self.localize(arrival_time)

        if self.arrival_repo.exists_for_day(vehicle_id, geofence_id, arrival.date()):
            logger.info(
                f"Arrival {vehicle_id}/{geofence_id} already recorded on {arrival.date()}"
            )
            return ArrivalLogResult(
                vehicle_id=vehicle_id,
                geofence_id=geofence_id,
                outcome=ArrivalOutcome.ALREADY_RECORDED,
            )

        return self._record_arrival(vehicle_id, geofence_id, arrival)

    def _record_arrival(
        self, vehicle_id: str, geofence_id: str, arrival: datetime
    ) -> ArrivalLogResult:
        assignment = self.geofence_repo.get_assignment(geofence_id, vehicle_id)
        if assignment is None:
            logger.info(f"No schedule for {vehicle_id} at geofence {geofence_id}")
            return ArrivalLogResult(
                vehicle_id=vehicle_id,
                geofence_id=geofence_id,
                outcome=ArrivalOutcome.NO_SCHEDULE,
            )

        try:
            evaluation = self.evaluator.evaluate(assignment, arrival)
        except ScheduleParseError as e:
            logger.warning(
                f"Unparseable schedule for {vehicle_id}/{geofence_id}: {e} "
                "- recording bare arrival"
            )
            bare = ArrivalLog(
                vehicle_id=vehicle_id,
                geofence_id=geofence_id,
                log_date=arrival.date(),
                arrival_time=arrival,
            )
            outcome = (
                ArrivalOutcome.BARE_ARRIVAL
                if self.arrival_repo.insert(bare)
                else ArrivalOutcome.ALREADY_RECORDED
            )
            return ArrivalLogResult(
                vehicle_id=vehicle_id, geofence_id=geofence_id, outcome=outcome
            )

        log = ArrivalLog(
            vehicle_id=vehicle_id,
            geofence_id=geofence_id,
            log_date=arrival.date(),
            arrival_time=arrival,
            scheduled_time=evaluation.scheduled_time.strftime("%H:%M:%S"),
            delay_minutes=max(0, evaluation.delay_minutes),
            status=evaluation.status,
        )
        if not self.arrival_repo.insert(log):
            return ArrivalLogResult(
                vehicle_id=vehicle_id,
                geofence_id=geofence_id,
                outcome=ArrivalOutcome.ALREADY_RECORDED,
            )

        logger.info(
            f"Arrival {vehicle_id}/{geofence_id}: {evaluation.status.value} "
            f"(delay {evaluation.delay_minutes} min)"
        )
        return ArrivalLogResult(
            vehicle_id=vehicle_id,
            geofence_id=geofence_id,
            outcome=ArrivalOutcome.RECORDED,
            status=evaluation.status,
            delay_minutes=evaluation.delay_minutes,
            scheduled_time=evaluation.scheduled_time,
        )

    def process_route_sla(
        self,
        vehicle_id: str,
        latitude: float,
        longitude: float,
        recorded_at: Optional[datetime] = None,
    ) -> SlaProcessResult:
        """
        SLA check of a vehicle against the geofence of its active route.

        Raises:
            ValidationError: missing vehicle_id or invalid coordinates
        """
        vehicle_id = self._require_vehicle_id(vehicle_id)
        self._require_coordinates(latitude, longitude)

        route = self.geofence_repo.get_active_route_assignment(vehicle_id)
        if route is None:
            return SlaProcessResult(
                vehicle_id=vehicle_id, status=SlaProcessStatus.NO_ACTIVE_ROUTE
            )

        geofence = self.geofence_repo.get_route_geofence(route.route_id)
        if geofence is None:
            return SlaProcessResult(vehicle_id=vehicle_id, status=SlaProcessStatus.NO_GEOFENCE)

        arrival = self.localize(recorded_at)
        geofence_id = geofence.geofence_id

        if self.arrival_repo.exists_for_day(vehicle_id, geofence_id, arrival.date()):
            return SlaProcessResult(
                vehicle_id=vehicle_id,
                status=SlaProcessStatus.ALREADY_RECORDED,
                geofence_id=geofence_id,
            )

        point = GeoPoint(lat=latitude, lng=longitude)
        if not is_within(point, geofence.center, geofence.radius_meters):
            return SlaProcessResult(
                vehicle_id=vehicle_id,
                status=SlaProcessStatus.OUTSIDE_GEOFENCE,
                geofence_id=geofence_id,
            )

        result = self._record_arrival(vehicle_id, geofence_id, arrival)
        return SlaProcessResult(
            vehicle_id=vehicle_id,
            status=SlaProcessStatus(result.outcome.value),
            geofence_id=geofence_id,
            arrival_status=result.status,
            delay_minutes=result.delay_minutes,
        )

    def sweep_missed_arrivals(self, now: Optional[datetime] = None) -> MissedSweepResult:
        """
        Write one MISSED log for every active schedule whose window closed
        today without an arrival. Safe to run repeatedly.

        Only the calendar day of `now` is swept. A window that ends after
        midnight (expected time plus grace past 24:00) never closes on its
        own day, and a sweep run after midnight does not look at the day
        before; schedule the sweep before midnight, or pass a `now` late on
        the day to sweep.
        """
        now = self.localize(now)
        day = now.date()
        missed: List[MissedArrival] = []

        for assignment in self.geofence_repo.list_active_assignments():
            try:
                if not self.evaluator.is_window_closed(assignment, now):
                    continue
            except ScheduleParseError as e:
                logger.warning(
                    f"Skipping schedule {assignment.vehicle_id}/{assignment.geofence_id}: {e}"
                )
                continue

            if self.arrival_repo.exists_for_day(
                assignment.vehicle_id, assignment.geofence_id, day
            ):
                continue

            log = ArrivalLog(
                vehicle_id=assignment.vehicle_id,
                geofence_id=assignment.geofence_id,
                log_date=day,
                scheduled_time=assignment.expected_entry_time,
                delay_minutes=0,
                status=ArrivalStatus.MISSED,
            )
            if self.arrival_repo.insert(log):
                missed.append(
                    MissedArrival(
                        vehicle_id=assignment.vehicle_id,
                        geofence_id=assignment.geofence_id,
                    )
                )

        logger.info(f"Missed-arrival sweep for {day}: {len(missed)} MISSED logged")
        return MissedSweepResult(day=day, missed=missed)

    # ═══════════════════════════════════════════════════════════════════════
    # FUEL
    # ═══════════════════════════════════════════════════════════════════════

    def ingest_fuel_entry(self, entry: FuelEntry) -> FuelIngestResult:
        """
        Store a fuel entry and analyze it against the previous fill.

        The entry is always stored; a skipped analysis is reported through
        the analysis status, not as an error.
        """
        vehicle_id = self._require_vehicle_id(entry.vehicle_id)
        entry = entry.model_copy(update={"vehicle_id": vehicle_id})

        saved = self.fuel_repo.insert_entry(entry)
        previous = self.fuel_repo.get_previous_entry(vehicle_id, saved.fuel_date)

        expected = None
        if previous is not None:
            expected = self.vehicle_repo.get_expected_mileage(vehicle_id)

        result = self.mileage_analyzer.analyze_entry_pair(saved, previous, expected)
        if result.analysis is not None:
            self.fuel_repo.insert_analysis(result.analysis)

        return FuelIngestResult(entry=saved, analysis=result)

    def run_daily_fuel_analysis(
        self,
        vehicle_id: str,
        route_id: Optional[str] = None,
        day: Optional[date] = None,
    ) -> FuelAnalysisResult:
        """
        Analyze a vehicle's day: liters filled vs. kilometres logged,
        against the route's expected mileage (active route if not given).
        """
        vehicle_id = self._require_vehicle_id(vehicle_id)
        day = day or self.today()

        if route_id is None:
            route = self.geofence_repo.get_active_route_assignment(vehicle_id)
            route_id = route.route_id if route else None

        fuel_given = self.fuel_repo.sum_fuel_for_day(vehicle_id, day)
        distance = self.fuel_repo.get_distance_for_day(vehicle_id, day)
        expected = (
            self.vehicle_repo.get_route_expected_mileage(route_id) if route_id else None
        )

        result = self.mileage_analyzer.analyze_daily(
            vehicle_id, day, fuel_given, distance, expected
        )
        if result.analysis is not None:
            self.fuel_repo.insert_analysis(result.analysis)
        return result

    # ═══════════════════════════════════════════════════════════════════════
    # RISK
    # ═══════════════════════════════════════════════════════════════════════

    def _idle_samples(self, detector: IdleDetector, vehicle_id: str, window_end: datetime) -> int:
        window_start, window_end = detector.window_ending_at(window_end)
        samples = [
            s.model_copy(update={"timestamp": self.localize(s.timestamp)})
            for s in self.telemetry_repo.list_positions(vehicle_id, window_start, window_end)
            if s.timestamp is not None
        ]
        return detector.count_idle_samples(samples, window_start, window_end)

    def _window_end_for_day(self, day: date) -> datetime:
        now = self.now()
        if day >= now.date():
            return now
        return datetime.combine(day, time.max, tzinfo=self.tz)

    def assess_event_risk(
        self,
        vehicle_id: str,
        route_id: Optional[str] = None,
        day: Optional[date] = None,
    ) -> VehicleRiskResult:
        """
        Per-event risk for one vehicle on one day (EventRiskPolicy):
        that day's theft flag, latest arrival late, idle in the trailing
        event window. The snapshot is persisted.
        """
        vehicle_id = self._require_vehicle_id(vehicle_id)
        day = day or self.today()

        analysis = self.fuel_repo.get_analysis_for_day(vehicle_id, day)
        fuel_theft = bool(analysis and analysis.theft_flag)

        latest = self.arrival_repo.latest_for_vehicle(vehicle_id, on_or_before=day)
        late_arrival = bool(
            latest
            and (
                latest.status == ArrivalStatus.MISSED
                or (latest.delay_minutes or 0) > self.config.event_late_delay_minutes
            )
        )

        idle_count = self._idle_samples(
            self.event_idle, vehicle_id, self._window_end_for_day(day)
        )
        excessive_idle = self.event_idle.is_excessive(idle_count)

        risk = self.event_policy.assess(fuel_theft, late_arrival, excessive_idle)
        self.vehicle_repo.insert_risk_assessment(
            RiskAssessment(
                vehicle_id=vehicle_id,
                route_id=route_id,
                assessment_date=day,
                fuel_risk=fuel_theft,
                sla_risk=late_arrival,
                idle_risk=excessive_idle,
                risk_score=risk.risk_score,
                risk_level=risk.risk_level,
                policy=self.event_policy.name,
            )
        )

        return VehicleRiskResult(
            vehicle_id=vehicle_id,
            policy=self.event_policy.name,
            fuel_risk=fuel_theft,
            sla_risk=late_arrival,
            idle_risk=excessive_idle,
            idle_samples=idle_count,
            risk_score=risk.risk_score,
            risk_level=risk.risk_level,
        )

    def _assess_batch_vehicle(self, vehicle_id: str, now: datetime) -> VehicleRiskResult:
        analysis = self.fuel_repo.get_latest_analysis(vehicle_id)
        low_mileage = False
        if analysis is not None:
            expected = analysis.expected_mileage or self.vehicle_repo.get_expected_mileage(
                vehicle_id
            )
            low_mileage = self.batch_policy.is_low_mileage(expected, analysis.actual_mileage)

        since = now.date() - timedelta(days=self.config.sla_lookback_days)
        sla_risk = self.arrival_repo.count_late_or_missed_since(vehicle_id, since) > 0

        idle_count = self._idle_samples(self.batch_idle, vehicle_id, now)
        idle_risk = self.batch_idle.is_excessive(idle_count)

        risk = self.batch_policy.assess(low_mileage, idle_risk, sla_risk)

        route = self.geofence_repo.get_active_route_assignment(vehicle_id)
        self.vehicle_repo.insert_risk_assessment(
            RiskAssessment(
                vehicle_id=vehicle_id,
                route_id=route.route_id if route else None,
                assessment_date=now.date(),
                fuel_risk=low_mileage,
                sla_risk=sla_risk,
                idle_risk=idle_risk,
                risk_score=risk.risk_score,
                risk_level=risk.risk_level,
                policy=self.batch_policy.name,
            )
        )

        return VehicleRiskResult(
            vehicle_id=vehicle_id,
            policy=self.batch_policy.name,
            fuel_risk=low_mileage,
            sla_risk=sla_risk,
            idle_risk=idle_risk,
            idle_samples=idle_count,
            risk_score=risk.risk_score,
            risk_level=risk.risk_level,
        )

    def run_risk_batch(self, vehicle_id: Optional[str] = None) -> RiskBatchResult:
        """
        Periodic risk (BatchRiskPolicy) for one vehicle or the whole fleet.

        A failure for one vehicle is logged and collected in `errors`;
        the remaining vehicles are still evaluated.
        """
        now = self.now()
        vehicle_ids = (
            [self._require_vehicle_id(vehicle_id)]
            if vehicle_id is not None
            else self.vehicle_repo.list_vehicle_ids()
        )

        result = RiskBatchResult(run_at=now)
        for vid in vehicle_ids:
            try:
                result.results.append(self._assess_batch_vehicle(vid, now))
            except Exception as e:
                logger.error(f"Risk batch failed for vehicle {vid}: {e}", exc_info=True)
                result.errors.append(VehicleRiskError(vehicle_id=vid, error=str(e)))

        logger.info(
            f"Risk batch: {result.vehicles_evaluated}/{len(vehicle_ids)} vehicles evaluated, "
            f"{len(result.errors)} errors"
        )
        return result
