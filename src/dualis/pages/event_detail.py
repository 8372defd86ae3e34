"""Single appointment detail page extraction."""

import re

from dualis.logging import get_logger
from dualis.models import EventDetails
from dualis.pages.base import make_soup, text_of

log = get_logger(__name__)

# "T4INF1003.1 Algorithmen und Komplexität HOR-TINF2024" -> "T4INF1003.1"
_COURSE_CODE = re.compile(r"^([A-Z][A-Z0-9._]*\d[A-Z0-9._]*)\s")


def parse_event_details(html: str) -> EventDetails | None:
    soup = make_soup(html)

    full_title = text_of(soup.find("h1"))
    if not full_title:
        log.warning("event_detail_title_missing")
        return None

    match = _COURSE_CODE.match(full_title)

    # "appoinmentRooms" is the portal's own spelling
    return EventDetails(
        full_title=full_title,
        course_code=match.group(1) if match else None,
        lecturer=text_of(soup.select_one("td[name=instructorName]")),
        room=text_of(soup.select_one("span[name=appoinmentRooms]")),
    )
