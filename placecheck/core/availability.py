"""
Opening-hours reasoning for validated places.

Decides whether a place is open at a scheduled wall-clock time and, when it
isn't, proposes another day or time to visit.
"""

import logging
from datetime import datetime, timedelta

from placecheck.core.errors import ParseError
from placecheck.core.opening_hours_utils import (
    Weekday,
    find_range_containing,
    format_time,
    is_24_hours_text,
    is_closed_text,
    minutes_until_close,
    parse_time_ranges,
    parse_time_to_minutes,
)
from placecheck.core.schemas import (
    AlternativeDays,
    AlternativeTime,
    AlternativeTimes,
    AvailabilityBatch,
    AvailabilityCheck,
    AvailabilityReport,
    AvailabilityStatus,
    CriticalIssue,
    OpenDay,
    Recommendation,
    ScheduledCheck,
    TimeRange,
    ValidatedPlace,
)
from placecheck.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

CLOSED_PERMANENTLY = "CLOSED_PERMANENTLY"
CLOSED_TEMPORARILY = "CLOSED_TEMPORARILY"

VERIFY_HOURS = "Verify hours before visiting"


class AvailabilityChecker:
    """Checks scheduled visits against a place's opening hours."""

    def __init__(self, settings: Settings | None = None):
        settings = settings or get_settings()
        self.closing_soon_minutes = settings.closing_soon_minutes

    def check_availability(self, place: ValidatedPlace, scheduled_at: datetime) -> AvailabilityCheck:
        """
        Check whether a place is open at the scheduled time.

        Rules are applied in order and the first one that applies decides.
        The check only reads its arguments.

        Args:
            place: Validated place with Sunday-first opening_hours
            scheduled_at: Naive local wall-clock time of the visit

        Returns:
            AvailabilityCheck with available True, False or "unknown"
        """
        weekday = Weekday.from_datetime(scheduled_at)
        time_string = format_time(scheduled_at)

        logger.debug(
            f"[Availability] Checking '{place.verified_name}' on {weekday.label} at {time_string}"
        )

        if not place.opening_hours:
            return AvailabilityCheck(
                available="unknown",
                confidence=0.3,
                reason="No opening hours data available",
                recommendation=VERIFY_HOURS,
            )

        if place.business_status == CLOSED_PERMANENTLY:
            return AvailabilityCheck(
                available=False,
                confidence=1.0,
                reason="Place is permanently closed",
                recommendation="Remove from itinerary",
                critical=True,
            )

        if place.business_status == CLOSED_TEMPORARILY:
            return AvailabilityCheck(
                available=False,
                confidence=0.9,
                reason="Place is temporarily closed",
                recommendation="Find alternative or check back later",
                critical=True,
            )

        day_schedule = self._day_schedule(place.opening_hours, weekday)
        if not day_schedule:
            return AvailabilityCheck(
                available="unknown",
                confidence=0.2,
                reason="No schedule for this day",
                recommendation=VERIFY_HOURS,
            )

        if is_closed_text(day_schedule):
            alternatives = self.find_alternative_days(place.opening_hours, weekday)
            return AvailabilityCheck(
                available=False,
                confidence=0.95,
                reason=f"Closed on {weekday.label}",
                recommendation=f"Visit on {alternatives.best_day} instead",
                alternatives=alternatives,
                critical=True,
            )

        if is_24_hours_text(day_schedule):
            return AvailabilityCheck(
                available=True,
                confidence=1.0,
                reason="Open 24 hours",
                recommendation="Visit anytime",
            )

        try:
            time_ranges = parse_time_ranges(day_schedule)
        except ParseError as e:
            logger.debug(f"[Availability] Unparseable schedule '{day_schedule}': {e}")
            time_ranges = []

        if not time_ranges:
            return AvailabilityCheck(
                available="unknown",
                confidence=0.3,
                reason="Could not parse opening hours",
                recommendation=VERIFY_HOURS,
                raw_schedule=day_schedule,
            )

        current_range = find_range_containing(time_ranges, time_string)
        if current_range:
            minutes_left = minutes_until_close(current_range, time_string)

            if minutes_left < self.closing_soon_minutes:
                return AvailabilityCheck(
                    available=True,
                    confidence=0.7,
                    reason=f"Open but closes soon ({minutes_left} min)",
                    recommendation=(
                        f"Visit earlier or you may be rushed. Opens at {current_range.open}"
                    ),
                    warning="Close to closing time",
                    opening_hours=time_ranges,
                )

            return AvailabilityCheck(
                available=True,
                confidence=0.95,
                reason=f"Open {current_range.open} - {current_range.close}",
                recommendation="Good timing!",
                opening_hours=time_ranges,
            )

        alternatives = self.suggest_alternative_times(
            time_ranges, time_string, scheduled_at, place.opening_hours
        )
        return AvailabilityCheck(
            available=False,
            confidence=0.9,
            reason=f"Closed at {time_string}. Opens at {time_ranges[0].open}",
            recommendation=f"Reschedule to {alternatives.suggested}",
            alternatives=alternatives,
            opening_hours=time_ranges,
            critical=True,
        )

    @staticmethod
    def _day_schedule(opening_hours: list[str], weekday: Weekday) -> str | None:
        if weekday < len(opening_hours):
            return opening_hours[weekday]
        return None

    def find_alternative_days(self, opening_hours: list[str], closed_day: Weekday) -> AlternativeDays:
        """
        Find days the place is open, preferring the day after, then the day before.

        Args:
            opening_hours: Sunday-first day schedules
            closed_day: The day the visit was scheduled on

        Returns:
            AlternativeDays with the best day and every open day
        """
        open_days = [
            OpenDay(day=Weekday(index).label, day_index=index, schedule=schedule)
            for index, schedule in enumerate(opening_hours[:7])
            if index != closed_day and schedule and not is_closed_text(schedule)
        ]

        by_index = {d.day_index: d for d in open_days}
        best = (
            by_index.get(closed_day.next())
            or by_index.get(closed_day.previous())
            or (open_days[0] if open_days else None)
        )

        return AlternativeDays(
            best_day=best.day if best else "Unknown",
            open_days=open_days,
            all_open_days=[d.day for d in open_days],
        )

    def suggest_alternative_times(
        self,
        time_ranges: list[TimeRange],
        requested_time: str,
        scheduled_at: datetime,
        opening_hours: list[str] | None = None,
    ) -> AlternativeTimes:
        """
        Suggest the next opening time after the requested time.

        Later ranges on the same day come first; otherwise the first opening
        on the next day that is open, scanning up to a week ahead.

        Args:
            time_ranges: Parsed ranges for the scheduled day
            requested_time: Scheduled time as HH:MM
            scheduled_at: Scheduled datetime
            opening_hours: Sunday-first day schedules, used to look up following days

        Returns:
            AlternativeTimes with the suggested HH:MM and its options
        """
        options: list[AlternativeTime] = []
        requested_minutes = parse_time_to_minutes(requested_time)

        for time_range in time_ranges:
            if requested_minutes < parse_time_to_minutes(time_range.open):
                options.append(
                    AlternativeTime(
                        time=time_range.open,
                        reason="Opening time",
                        suggested_at=self._at_time(scheduled_at, time_range.open),
                    )
                )
                break

        if not options and time_ranges:
            next_day, first_range = self._next_opening(scheduled_at, opening_hours)
            if first_range is None:
                next_day, first_range = scheduled_at + timedelta(days=1), time_ranges[0]

            if (next_day.date() - scheduled_at.date()).days == 1:
                reason = "Next day opening time"
            else:
                reason = f"Next opening on {Weekday.from_datetime(next_day).label}"

            options.append(
                AlternativeTime(
                    time=first_range.open,
                    reason=reason,
                    suggested_at=self._at_time(next_day, first_range.open),
                )
            )

        if options:
            suggested = options[0].time
        elif time_ranges:
            suggested = time_ranges[0].open
        else:
            suggested = "Unknown"

        return AlternativeTimes(suggested=suggested, options=options)

    def _next_opening(
        self, scheduled_at: datetime, opening_hours: list[str] | None
    ) -> tuple[datetime, TimeRange | None]:
        for offset in range(1, 8):
            day = scheduled_at + timedelta(days=offset)
            first_range = self._first_range_on(opening_hours, Weekday.from_datetime(day))
            if first_range:
                return day, first_range
        return scheduled_at + timedelta(days=1), None

    def _first_range_on(self, opening_hours: list[str] | None, weekday: Weekday) -> TimeRange | None:
        schedule = self._day_schedule(opening_hours or [], weekday)
        if not schedule or is_closed_text(schedule):
            return None
        if is_24_hours_text(schedule):
            return TimeRange(open="00:00", close="23:59")
        try:
            ranges = parse_time_ranges(schedule)
        except ParseError:
            return None
        return ranges[0] if ranges else None

    @staticmethod
    def _at_time(day: datetime, hhmm: str) -> datetime:
        minutes = parse_time_to_minutes(hhmm)
        return day.replace(hour=minutes // 60, minute=minutes % 60, second=0, microsecond=0)

    def batch_check_availability(
        self, places_with_schedule: list[tuple[ValidatedPlace, datetime]]
    ) -> AvailabilityBatch:
        """
        Check many (place, scheduled_time) pairs and bucket the outcomes.

        Available results that carry a warning go to `warnings`, not `available`.
        """
        logger.info(
            f"[Availability] Batch checking availability for {len(places_with_schedule)} places"
        )

        results = AvailabilityBatch()
        for place, scheduled_time in places_with_schedule:
            check = self.check_availability(place, scheduled_time)
            entry = ScheduledCheck(place=place, scheduled_time=scheduled_time, check=check)

            if check.status == AvailabilityStatus.AVAILABLE:
                if check.warning:
                    results.warnings.append(entry)
                else:
                    results.available.append(entry)
            elif check.status == AvailabilityStatus.UNAVAILABLE:
                results.unavailable.append(entry)
            else:
                results.unknown.append(entry)

        logger.info(
            f"[Availability] available={len(results.available)} "
            f"warnings={len(results.warnings)} unavailable={len(results.unavailable)} "
            f"unknown={len(results.unknown)}"
        )
        return results

    def generate_availability_report(self, batch_results: AvailabilityBatch) -> AvailabilityReport:
        report = AvailabilityReport(
            available_count=len(batch_results.available),
            unavailable_count=len(batch_results.unavailable),
            unknown_count=len(batch_results.unknown),
            warning_count=len(batch_results.warnings),
        )
        report.total_places = (
            report.available_count
            + report.unavailable_count
            + report.unknown_count
            + report.warning_count
        )

        for item in batch_results.unavailable:
            if item.check.critical:
                report.critical_issues.append(
                    CriticalIssue(
                        place=item.place.verified_name,
                        scheduled_time=item.scheduled_time,
                        reason=item.check.reason,
                        recommendation=item.check.recommendation,
                    )
                )

        if report.unavailable_count > 0:
            report.recommendations.append(
                Recommendation(
                    priority="high",
                    message=f"{report.unavailable_count} places are closed at scheduled times",
                    action="Reschedule or find alternatives",
                )
            )

        if report.warning_count > 0:
            report.recommendations.append(
                Recommendation(
                    priority="medium",
                    message=f"{report.warning_count} places have timing warnings",
                    action="Review schedule for optimal timing",
                )
            )

        if report.unknown_count > 0:
            report.recommendations.append(
                Recommendation(
                    priority="low",
                    message=f"{report.unknown_count} places have unverified hours",
                    action=VERIFY_HOURS,
                )
            )

        return report
