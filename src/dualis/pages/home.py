"""Home page navigation extraction.

The home page exposes most views as plain anchors. The course results view
is reached through a form instead, so its URL is built from the token.
"""

from dualis.logging import get_logger
from dualis.models import PortalEndpoints
from dualis.pages.base import anchor_containing, make_soup
from dualis.urls import absolutize_href, grades_url

log = get_logger(__name__)

SCHEDULE_LABEL = "diese Woche"
# Tried in order when the "diese Woche" link is missing
SCHEDULE_FALLBACK_LABELS: tuple[str, ...] = ("Stundenplan", "Woche", "Schedule", "Kalender")
COURSE_RESULTS_LABEL = "Prüfungsergebnisse"
LOGOUT_LABEL = "Abmelden"
NOTIFICATIONS_LABEL = "Nachrichten"


def parse_home_page(html: str, token: str | None, base_url: str) -> PortalEndpoints:
    """Recover navigation endpoints from the home page.

    Args:
        html: Home page markup.
        token: Current session token, used for the grades endpoint.
        base_url: Portal origin for resolving relative hrefs.

    Returns:
        PortalEndpoints; links that are not found stay None.
    """
    soup = make_soup(html)

    def href_for(*labels: str) -> str | None:
        for label in labels:
            anchor = anchor_containing(soup, label)
            href = anchor.get("href", "") if anchor is not None else ""
            if href and not href.startswith("#"):
                return absolutize_href(base_url, href)
        return None

    endpoints = PortalEndpoints(
        grades=grades_url(base_url, token, ",") if token else None,
        course_results=href_for(COURSE_RESULTS_LABEL),
        schedule=href_for(SCHEDULE_LABEL, *SCHEDULE_FALLBACK_LABELS),
        logout=href_for(LOGOUT_LABEL),
        notifications=href_for(NOTIFICATIONS_LABEL),
    )

    log.info(
        "home_page_parsed",
        links=len(soup.find_all("a")),
        schedule=endpoints.schedule is not None,
        logout=endpoints.logout is not None,
        notifications=endpoints.notifications is not None,
    )
    return endpoints
