"""Semester dropdown extraction from the course results page."""

from dualis.errors import ParseError
from dualis.logging import get_logger
from dualis.models import Semester
from dualis.pages.base import make_soup, text_of

log = get_logger(__name__)

CURRENT_SEMESTER_NAME = "Aktuelles Semester"

# Served whenever the dropdown cannot be read. Availability beats correctness
# here: the empty value always selects the portal's current semester.
DEFAULT_SEMESTERS: tuple[Semester, ...] = (
    Semester(value="", display_name=CURRENT_SEMESTER_NAME, is_selected=True),
    Semester(value="000000015148000", display_name="WiSe 2024/25"),
    Semester(value="000000015138000", display_name="SoSe 2024"),
    Semester(value="000000015128000", display_name="WiSe 2023/24"),
)


def default_semesters() -> list[Semester]:
    return [semester.model_copy() for semester in DEFAULT_SEMESTERS]


def _read_options(html: str) -> list[Semester]:
    select = make_soup(html).select_one("select#semester")
    if select is None:
        raise ParseError("semester select not found")

    options: list[Semester] = []
    seen: set[str] = set()
    for option in select.find_all("option"):
        value = (option.get("value") or "").strip()
        name = text_of(option)
        if not value or not name or value in seen:
            continue
        seen.add(value)
        options.append(
            Semester(value=value, display_name=name, is_selected=option.has_attr("selected"))
        )
    if not options:
        raise ParseError("semester select has no usable options")
    return options


def read_semesters(html: str) -> list[Semester] | None:
    """Semesters offered by the dropdown, or None when it cannot be read.

    A synthetic current-semester entry is prepended when the portal marks
    no option as selected.
    """
    try:
        options = _read_options(html)
    except ParseError as e:
        log.warning("semesters_unparsed", reason=str(e))
        return None

    semesters: list[Semester] = []
    if not any(option.is_selected for option in options):
        semesters.append(Semester(value="", display_name=CURRENT_SEMESTER_NAME, is_selected=True))
    semesters.extend(options)

    log.info("semesters_parsed", count=len(semesters))
    return semesters


def parse_semesters(html: str) -> list[Semester]:
    """Like read_semesters, with the static default list as fallback."""
    return read_semesters(html) or default_semesters()
