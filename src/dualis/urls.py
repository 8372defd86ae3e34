"""URL templating for CampusNet endpoints.

Every portal URL points at /scripts/mgrqispi.dll and carries its state in a
comma-separated ARGUMENTS value whose first entry is the session token:

    ...?APPNAME=CampusNet&PRGNAME=SCHEDULER&ARGUMENTS=-N123456789012345,-N000028,-A,-A,-N1

Date-scoped endpoints take the date right after the first "-A" marker.
All functions here are pure string transforms.
"""

import re
from datetime import date
from urllib.parse import urljoin

DLL_PATH = "/scripts/mgrqispi.dll"

TOKEN_PATTERN = re.compile(r"ARGUMENTS=-N(\d{15})(?!\d)")
ARGUMENTS_PATTERN = re.compile(r"ARGUMENTS=([^&#]+)")
DATE_MARKER = "-A"
DATE_FORMAT = "%d.%m.%Y"

# Program numbers of the course results views
COURSE_RESULTS_MENU = "-N000307"


def extract_token(url: str) -> str | None:
    """Return the 15-digit session token embedded in url, if any."""
    match = TOKEN_PATTERN.search(url)
    return match.group(1) if match else None


def is_valid_token(token: str | None) -> bool:
    return bool(token) and re.fullmatch(r"\d{15}", token) is not None


def with_token(base: str, token: str) -> str:
    """Replace the token in base with token; base is returned as-is without one."""
    if not TOKEN_PATTERN.search(base):
        return base
    return TOKEN_PATTERN.sub(f"ARGUMENTS=-N{token}", base, count=1)


def with_date(base: str, day: date) -> str:
    """Insert day (dd.MM.yyyy) right after the first -A marker of ARGUMENTS.

    >>> with_date("x?ARGUMENTS=-N1,-N000028,-A,-A,-N1", date(2025, 7, 1))
    'x?ARGUMENTS=-N1,-N000028,-A01.07.2025,-A,-N1'
    """
    match = ARGUMENTS_PATTERN.search(base)
    if match is None:
        return base
    arguments = match.group(1)
    index = arguments.find(DATE_MARKER)
    if index < 0:
        return base
    cut = index + len(DATE_MARKER)
    updated = arguments[:cut] + day.strftime(DATE_FORMAT) + arguments[cut:]
    return base[: match.start(1)] + updated + base[match.end(1) :]


def extract_refresh_target(header: str) -> str:
    """Return the URL part of a Refresh header such as "0; URL=/scripts/...".

    A header without "URL=" is taken to be the URL itself.
    """
    match = re.search(r"URL=(.*)$", header, re.IGNORECASE)
    target = match.group(1) if match else header
    return target.strip().strip("'\"")


def make_absolute(base: str, relative: str) -> str:
    return urljoin(base, relative)


def dll_url(base_url: str, program: str, arguments: str) -> str:
    return f"{base_url.rstrip('/')}{DLL_PATH}?APPNAME=CampusNet&PRGNAME={program}&ARGUMENTS={arguments}"


def format_semester_argument(value: str) -> str:
    """"" selects the current semester, anything else is appended as -N<value>."""
    return f",-N{value}" if value else ""


def grades_url(base_url: str, token: str, semester_argument: str = "") -> str:
    return dll_url(base_url, "COURSERESULTS", f"-N{token},{COURSE_RESULTS_MENU}{semester_argument}")


def semester_list_url(base_url: str, token: str) -> str:
    return dll_url(base_url, "COURSERESULTS", f"-N{token},{COURSE_RESULTS_MENU},")


def notifications_url(base_url: str, token: str) -> str:
    return dll_url(base_url, "ACTION", f"-N{token}")


def absolutize_href(base_url: str, href: str) -> str:
    """Resolve an href found on a portal page.

    Bare relative hrefs ("mgrqispi.dll?...") are relative to /scripts/.
    """
    origin = base_url.rstrip("/")
    if href.startswith("http://") or href.startswith("https://"):
        return href
    if href.startswith("/"):
        return origin + href
    if href.startswith("scripts/"):
        return f"{origin}/{href}"
    return f"{origin}/scripts/{href}"
