"""Weekly schedule extraction from the SCHEDULER page.

DOM structure:
  table.nb
    caption -> "Stundenplan vom 30.06. bis 06.07."
    tr.tbsubhead -> th.weekday per day, text like "Mo 30.06." (often inside <a>)
    tr -> td.appointment per booked slot
      td.appointment[abbr="Montag Spalte 1 ..."]
        <a href="...">Title</a>
        <span class="timePeriod">08:15 - 09:45 HOR-120</span>

The caption carries no year; the current calendar year is assumed. A week
that spans New Year is therefore parsed with the wrong year for one side.
"""

import copy
import re
from datetime import date, timedelta

from bs4 import Tag

from dualis.errors import ParseError
from dualis.logging import get_logger
from dualis.models import Day, Event, ScheduleWeek
from dualis.pages.base import make_soup, text_of
from dualis.urls import absolutize_href

log = get_logger(__name__)

DEFAULT_BASE_URL = "https://dualis.dhbw.de"

WEEKDAYS: tuple[str, ...] = (
    "Montag",
    "Dienstag",
    "Mittwoch",
    "Donnerstag",
    "Freitag",
    "Samstag",
    "Sonntag",
)
WEEKDAY_ABBREVIATIONS: dict[str, str] = {name[:2]: name for name in WEEKDAYS}

_CAPTION_RANGE = re.compile(r"vom (\d{2})\.(\d{2})\. bis (\d{2})\.(\d{2})\.")
_HEADER = re.compile(r"(\w+)\s+(\d{2})\.(\d{2})\.")
# Room codes like HOR-135, A1.2.03
_ROOM_CODE = re.compile(r"[A-Z]+(?:\d+)?[-.]\d+(?:\.\d+)?")


def split_rooms(raw: str) -> str:
    """Separate concatenated room codes: "HOR-135HOR-136" -> "HOR-135, HOR-136".

    Strings with at most one recognizable code are returned unchanged.
    """
    if not raw:
        return raw
    rooms = _ROOM_CODE.findall(raw)
    return ", ".join(rooms) if len(rooms) > 1 else raw


def weekday_name(token: str) -> str | None:
    """Full German weekday for "Mo" or "Montag" style tokens."""
    token = token.strip()
    if token in WEEKDAYS:
        return token
    return WEEKDAY_ABBREVIATIONS.get(token[:2]) if len(token) >= 2 else None


def _locate_table(html: str) -> Tag:
    table = make_soup(html).select_one("table.nb")
    if table is None:
        raise ParseError("schedule table not found")
    return table


def _parse_caption(table: Tag, year: int) -> tuple[date, date]:
    caption = text_of(table.find("caption"))
    match = _CAPTION_RANGE.search(caption)
    if match is None:
        raise ParseError(f"unrecognized caption: {caption!r}")
    start_day, start_month, end_day, end_month = (int(part) for part in match.groups())
    try:
        return date(year, start_month, start_day), date(year, end_month, end_day)
    except ValueError as e:
        raise ParseError(f"invalid caption date: {caption!r}") from e


def _date_range(start: date, end: date) -> list[date]:
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def _map_header_days(table: Tag, year: int) -> dict[str, date]:
    mapping: dict[str, date] = {}
    header_row = table.select_one("tr.tbsubhead")
    if header_row is None:
        return mapping

    for header in header_row.select("th.weekday"):
        link = header.find("a")
        text = text_of(link) if link is not None else text_of(header)
        match = _HEADER.search(text)
        if match is None:
            log.debug("schedule_header_unparsed", header=text)
            continue
        name = weekday_name(match.group(1))
        if name is None:
            log.warning("schedule_header_unknown_day", header=text)
            continue
        try:
            mapping[name] = date(year, int(match.group(3)), int(match.group(2)))
        except ValueError:
            log.warning("schedule_header_invalid_date", header=text)
    return mapping


def _map_range_days(start: date, end: date) -> dict[str, date]:
    return {WEEKDAYS[day.weekday()]: day for day in _date_range(start, end)}


def _parse_time_room(cell: Tag) -> tuple[str, str, str]:
    """(start, end, room) from the timePeriod spans; blanks when too short."""
    text = " ".join(
        span_text for span_text in (text_of(span) for span in cell.select("span.timePeriod")) if span_text
    )
    parts = text.split()
    if len(parts) < 3:
        return "", "", ""
    # parts[1] is the "-" separator
    return parts[0], parts[2], split_rooms(" ".join(parts[3:]))


def _parse_title(cell: Tag) -> str:
    clone = copy.copy(cell)
    for element in clone.select("span.timePeriod, br"):
        element.decompose()
    return re.sub(r">\s*$", "", text_of(clone)).strip()


def _parse_cell(cell: Tag, base_url: str) -> tuple[str | None, Event] | None:
    title = _parse_title(cell)
    if not title:
        return None

    start_time, end_time, room = _parse_time_room(cell)

    detail_url = None
    link = cell.find("a")
    if link is not None and link.get("href"):
        detail_url = absolutize_href(base_url, link["href"])

    abbr = (cell.get("abbr") or "").split(" ")[0]
    event = Event(
        title=title,
        start_time=start_time,
        end_time=end_time,
        room=room,
        detail_url=detail_url,
    )
    return weekday_name(abbr) if abbr else None, event


def parse_schedule(
    html: str,
    base_url: str = DEFAULT_BASE_URL,
    today: date | None = None,
) -> ScheduleWeek | None:
    """Parse a schedule page into a ScheduleWeek.

    Args:
        html: SCHEDULER page markup.
        base_url: Portal origin for detail links.
        today: Reference date for the assumed year (defaults to today).

    Returns:
        ScheduleWeek with one Day per date of the caption range, or None when
        the table or its caption cannot be read.
    """
    year = (today or date.today()).year
    try:
        table = _locate_table(html)
        start, end = _parse_caption(table, year)
    except ParseError as e:
        log.warning("schedule_unparsed", reason=str(e))
        return None

    day_to_date = _map_header_days(table, year)
    if not day_to_date:
        log.info("schedule_headers_fallback", start=start.isoformat(), end=end.isoformat())
        day_to_date = _map_range_days(start, end)

    days = {day: Day(date=day) for day in _date_range(start, end)}

    skipped = 0
    for cell in table.select("td.appointment"):
        parsed = _parse_cell(cell, base_url)
        if parsed is None:
            skipped += 1
            continue
        day_name, event = parsed
        event_date = day_to_date.get(day_name) if day_name else None
        if event_date is None or event_date not in days:
            log.warning("schedule_event_without_day", title=event.title, day=day_name)
            skipped += 1
            continue
        days[event_date].events.append(event)

    week = ScheduleWeek(week_start=start, days=[days[day] for day in sorted(days)])
    log.info(
        "schedule_parsed",
        week_start=start.isoformat(),
        events=len(week.all_events()),
        skipped=skipped,
    )
    return week
