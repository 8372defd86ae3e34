"""Classification of pages met during login and on expired sessions.

After the login POST the portal answers with a chain of intermediate pages
(each carrying div#sessionId and a scripted redirect) that ends on the home
page. Any later request made with a dead token yields a login prompt.
"""

import re

from dualis.logging import get_logger
from dualis.pages.base import anchor_containing, make_soup
from dualis.urls import make_absolute

log = get_logger(__name__)

HOME_PAGE_LABELS: tuple[str, ...] = (
    "Prüfungsergebnisse",
    "diese Woche",
    "Abmelden",
    "Studienleistungen",
    "Stundenplan",
)

SESSION_EXPIRED_MARKERS: tuple[str, ...] = (
    "Session ist abgelaufen",
    "Session expired",
    "Anmeldung erforderlich",
    "Login required",
    "LOGINCHECK",
)

_SCRIPT_REDIRECT = re.compile(r"window\.location\.href\s*=\s*['\"]([^'\"]+)['\"]")


def is_redirect_page(html: str) -> bool:
    return make_soup(html).select_one("div#sessionId") is not None


def is_home_page(html: str) -> bool:
    soup = make_soup(html)
    return any(anchor_containing(soup, label) is not None for label in HOME_PAGE_LABELS)


def is_session_expired(html: str) -> bool:
    return any(marker in html for marker in SESSION_EXPIRED_MARKERS)


def extract_redirect_url(html: str, current_url: str) -> str | None:
    """Next hop of an intermediate page, resolved against current_url.

    Prefers the window.location.href assignment; falls back to the
    "h2 a[href]" link shown to users without JavaScript.
    """
    soup = make_soup(html)
    for script in soup.find_all("script"):
        match = _SCRIPT_REDIRECT.search(script.get_text() or "")
        if match:
            return make_absolute(current_url, match.group(1))

    anchor = soup.select_one("h2 a[href]")
    if anchor is not None:
        return make_absolute(current_url, anchor["href"])

    log.warning("redirect_target_missing", url=current_url)
    return None
