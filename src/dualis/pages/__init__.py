"""Page extractors for CampusNet HTML.

Each module handles one page type. Public functions take raw HTML and never
raise: a missing structural element degrades to an empty value, None or a
static fallback, and is logged.
"""

from dualis.pages.auth import (
    extract_redirect_url,
    is_home_page,
    is_redirect_page,
    is_session_expired,
)
from dualis.pages.event_detail import parse_event_details
from dualis.pages.grades import parse_grade_report
from dualis.pages.home import parse_home_page
from dualis.pages.notifications import course_name_from_subject, parse_notifications
from dualis.pages.schedule import parse_schedule, split_rooms
from dualis.pages.semesters import DEFAULT_SEMESTERS, parse_semesters, read_semesters

__all__ = [
    "DEFAULT_SEMESTERS",
    "course_name_from_subject",
    "extract_redirect_url",
    "is_home_page",
    "is_redirect_page",
    "is_session_expired",
    "parse_event_details",
    "parse_grade_report",
    "parse_home_page",
    "parse_notifications",
    "parse_schedule",
    "parse_semesters",
    "read_semesters",
    "split_rooms",
]
