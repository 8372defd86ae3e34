"""Concurrent detail enrichment of schedule events.

Every event with a detail_url gets its detail page fetched in one gather();
a failed fetch leaves that event as it was and is reported, the rest of the
week is still enriched. carry_over_details fills such events from an earlier
snapshot so a flaky detail page does not read as a changed event.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from dualis.logging import get_logger
from dualis.models import Event, EventDetails, ScheduleWeek

logger = get_logger(__name__)

DetailFetcher = Callable[[str], Awaitable[EventDetails | None]]

# Event fields that only the detail page provides or overrides
DETAIL_FIELDS: tuple[str, ...] = ("full_title", "course_code", "lecturer", "room")


@dataclass
class EnrichmentResult:
    week: ScheduleWeek
    failures: list[tuple[Event, BaseException]] = field(default_factory=list)


def apply_details(event: Event, details: EventDetails) -> Event:
    """Copy detail fields onto event; an empty detail room keeps the cell room."""
    return event.model_copy(
        update={
            "full_title": details.full_title,
            "course_code": details.course_code,
            "lecturer": details.lecturer or event.lecturer,
            "room": details.room or event.room,
        }
    )


async def enrich_week(week: ScheduleWeek, fetch: DetailFetcher) -> EnrichmentResult:
    """Fetch the details of every linked event in week concurrently.

    Args:
        week: Parsed schedule week; not modified.
        fetch: Returns the parsed details for a detail URL, or None when the
            page had no usable content.

    Returns:
        EnrichmentResult with a new week and the events whose fetch raised.
    """
    targets = [
        (day_index, event_index, event)
        for day_index, day in enumerate(week.days)
        for event_index, event in enumerate(day.events)
        if event.detail_url
    ]
    if not targets:
        return EnrichmentResult(week=week)

    results = await asyncio.gather(
        *(fetch(event.detail_url) for _, _, event in targets),
        return_exceptions=True,
    )

    enriched = week.model_copy(deep=True)
    failures: list[tuple[Event, BaseException]] = []
    for (day_index, event_index, event), result in zip(targets, results):
        if isinstance(result, BaseException):
            logger.warning(
                "event_enrichment_failed",
                title=event.title,
                error=str(result),
                type=type(result).__name__,
            )
            failures.append((event, result))
            continue
        if result is None:
            continue
        enriched.days[day_index].events[event_index] = apply_details(event, result)

    logger.info("week_enriched", events=len(targets), failed=len(failures))
    return EnrichmentResult(week=enriched, failures=failures)


def carry_over_details(
    week: ScheduleWeek,
    failures: list[tuple[Event, BaseException]],
    previous: ScheduleWeek | None,
) -> tuple[ScheduleWeek, int]:
    """Fill events whose detail fetch failed from an earlier snapshot.

    Events are matched on (date, title, start_time). An event without an
    earlier counterpart keeps its cell data.

    Returns:
        The patched week and the number of events that were filled in.
    """
    failed_urls = {event.detail_url for event, _ in failures}
    if previous is None or not failed_urls:
        return week, 0

    earlier = {(day, event.title, event.start_time): event for day, event in previous.all_events()}
    patched = week.model_copy(deep=True)
    filled = 0
    for day in patched.days:
        for index, event in enumerate(day.events):
            if event.detail_url not in failed_urls:
                continue
            match = earlier.get((day.date, event.title, event.start_time))
            if match is None:
                continue
            day.events[index] = event.model_copy(
                update={name: getattr(match, name) for name in DETAIL_FIELDS}
            )
            filled += 1
    return patched, filled
