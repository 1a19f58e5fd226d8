"""
Arrival Evaluator

Classifies an arrival at a geofence against the vehicle's schedule:

    scheduled = arrival date + expected_entry_time
    delay     = round((arrival - scheduled) / 60s)      (may be negative)
    status    = ON_TIME if delay <= grace_minutes else LATE

The scheduled instant is built in the arrival's own timezone, so a
timezone-aware arrival is compared against the same wall clock.

MISSED is decided separately by the missed-arrival sweep, once the
schedule window of the day has closed without an arrival.
"""

import math
import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional

import structlog

from fleetguard.models import ArrivalEvaluation, ArrivalStatus, GeofenceAssignment

logger = structlog.get_logger()

_TIME_OF_DAY = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?\s*$")


class ScheduleParseError(ValueError):
    """expected_entry_time / window_end_time is not a valid HH:MM[:SS]"""


def parse_time_of_day(value: str) -> time:
    """
    Parse "HH:MM" or "HH:MM:SS" (fractional seconds ignored).

    Raises:
        ScheduleParseError: on anything else
    """
    if not isinstance(value, str):
        raise ScheduleParseError(f"time of day must be a string, got {value!r}")

    match = _TIME_OF_DAY.match(value)
    if not match:
        raise ScheduleParseError(f"invalid time of day: {value!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise ScheduleParseError(f"time of day out of range: {value!r}")

    return time(hour, minute, second)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (-2.5 -> -2)"""
    return int(math.floor(value + 0.5))


class ArrivalEvaluator:
    """Lateness classification of arrivals against a GeofenceAssignment"""

    @staticmethod
    def scheduled_instant(
        assignment: GeofenceAssignment, arrival_time: datetime
    ) -> datetime:
        """expected_entry_time on the arrival's calendar date"""
        expected = parse_time_of_day(assignment.expected_entry_time)
        return datetime.combine(arrival_time.date(), expected, tzinfo=arrival_time.tzinfo)

    def evaluate(
        self, assignment: GeofenceAssignment, arrival_time: datetime
    ) -> ArrivalEvaluation:
        """
        Compute delay and status of one arrival.

        Raises:
            ScheduleParseError: when the schedule time cannot be parsed;
                the caller records a bare arrival instead.
        """
        scheduled = self.scheduled_instant(assignment, arrival_time)
        delay_minutes = round_half_up((arrival_time - scheduled).total_seconds() / 60)

        status = (
            ArrivalStatus.ON_TIME
            if delay_minutes <= assignment.grace_minutes
            else ArrivalStatus.LATE
        )

        logger.debug(
            "arrival_evaluated",
            vehicle_id=assignment.vehicle_id,
            geofence_id=assignment.geofence_id,
            delay_minutes=delay_minutes,
            status=status.value,
        )

        return ArrivalEvaluation(
            status=status,
            delay_minutes=delay_minutes,
            scheduled_time=scheduled,
            grace_minutes=assignment.grace_minutes,
        )

    @staticmethod
    def window_end(
        assignment: GeofenceAssignment, day: date, tz: Optional[tzinfo] = None
    ) -> datetime:
        """
        End of the arrival window on a given day.

        Uses window_end_time when it parses, otherwise expected time plus
        grace. Raises ScheduleParseError when neither can be derived.
        """
        if assignment.window_end_time:
            try:
                end = parse_time_of_day(assignment.window_end_time)
                return datetime.combine(day, end, tzinfo=tz)
            except ScheduleParseError:
                logger.warning(
                    "window_end_unparseable",
                    vehicle_id=assignment.vehicle_id,
                    geofence_id=assignment.geofence_id,
                    window_end_time=assignment.window_end_time,
                )

        expected = parse_time_of_day(assignment.expected_entry_time)
        return datetime.combine(day, expected, tzinfo=tz) + timedelta(
            minutes=assignment.grace_minutes
        )

    def is_window_closed(self, assignment: GeofenceAssignment, now: datetime) -> bool:
        """True once `now` is past the day's window end"""
        return now > self.window_end(assignment, now.date(), now.tzinfo)
