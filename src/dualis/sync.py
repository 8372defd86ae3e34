"""DualisClient: the high-level async API.

Combines the session, the page extractors, the cache and the change
detector. Every read follows the same path:

    demo mode?  -> canned data
    fresh cache -> cached value (unless forced)
    fetch page  -> "session expired"? re-authenticate once and fetch again
    failure     -> stale cached value, else None

Usage:
    async with DualisClient() as client:
        await client.login("student@dhbw.de", "secret")
        week = await client.fetch_week(date.today())
"""

import calendar
from collections.abc import Callable
from datetime import date, timedelta

from dualis import demo
from dualis.cache import CURRENT_SEMESTER_KEY, NOTICES_KEY, SEMESTERS_KEY, CacheKind, CacheStore
from dualis.changes import diff_grades, diff_schedule
from dualis.config import DualisConfig, get_config
from dualis.enrichment import carry_over_details, enrich_week
from dualis.errors import AuthenticationError, NetworkError, PortalError, SessionExpiredError
from dualis.logging import get_logger, setup_logging
from dualis.models import (
    ChangeSet,
    EventDetails,
    GradeChanges,
    GradeReport,
    NotificationItem,
    NotificationList,
    ScheduleWeek,
    Semester,
    Session,
)
from dualis.pages import (
    is_session_expired,
    parse_event_details,
    parse_grade_report,
    parse_notifications,
    parse_schedule,
    read_semesters,
)
from dualis.pages.semesters import default_semesters
from dualis.session import SessionManager
from dualis.transport import PortalTransport
from dualis.urls import (
    format_semester_argument,
    grades_url,
    notifications_url,
    semester_list_url,
    with_date,
    with_token,
)

logger = get_logger(__name__)


def week_start_of(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())


class DualisClient:
    """Async client for one portal account.

    Args:
        config: Client settings; defaults to get_config().
        transport: HTTP layer; built from config when omitted.
        cache: Snapshot store; built from config when omitted.
        today: Returns the current date (injectable for tests).
        configure_logging: Set up structlog from config.log_json and
            config.log_level before anything is logged.
    """

    def __init__(
        self,
        config: DualisConfig | None = None,
        *,
        transport: PortalTransport | None = None,
        cache: CacheStore | None = None,
        today: Callable[[], date] = date.today,
        configure_logging: bool = False,
    ) -> None:
        self.config = config or get_config()
        if configure_logging:
            setup_logging(self.config.log_json, self.config.log_level)
        self.transport = transport or PortalTransport(self.config)
        self.cache = cache or CacheStore(
            self.config.cache_dir,
            default_ttl=timedelta(hours=self.config.cache_ttl_hours),
        )
        self.sessions = SessionManager(self.config, self.transport)
        self.today = today

    async def __aenter__(self) -> "DualisClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.transport.aclose()

    @property
    def demo_mode(self) -> bool:
        return self.sessions.demo_mode

    def is_authenticated(self) -> bool:
        return self.sessions.is_authenticated()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    async def login(self, username: str | None = None, password: str | None = None) -> Session:
        """Log in with the given credentials, or the configured ones."""
        username = username if username is not None else self.config.username
        password = password if password is not None else self.config.password
        if not username or not password:
            raise AuthenticationError("No credentials given or configured")
        return await self.sessions.login(username, password)

    async def logout(self) -> None:
        await self.sessions.logout()

    # ------------------------------------------------------------------
    # Page access
    # ------------------------------------------------------------------
    def _require_token(self) -> str:
        token = self.sessions.token
        if token is None:
            raise AuthenticationError("Not logged in")
        return token

    async def _get_html(self, url: str, name: str) -> str:
        response = await self.transport.get(url, name=name)
        if not response.is_success:
            raise NetworkError(
                f"{name} failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return response.text

    async def _fetch_page(self, build_url: Callable[[str], str], name: str) -> str:
        """Fetch the page build_url(token) points at.

        An expired session is repaired by one re-authentication, after which
        the URL is rebuilt with the new token and fetched again.

        Raises:
            AuthenticationError: Not logged in, or re-authentication failed.
            SessionExpiredError: Still expired after re-authentication.
            ReAuthInProgressError: A concurrent re-authentication is running.
            NetworkError: Transport failure or non-2xx status.
        """
        html = await self._get_html(build_url(self._require_token()), name)
        if not is_session_expired(html):
            return html

        logger.info("session_expired", request=name)
        await self.sessions.re_authenticate()

        html = await self._get_html(build_url(self._require_token()), name)
        if is_session_expired(html):
            raise SessionExpiredError(f"{name}: session still expired after re-authentication")
        return html

    def _endpoint(self, name: str) -> str:
        url = getattr(self.sessions.endpoints, name)
        if url is None:
            raise AuthenticationError(f"Session has no {name} endpoint")
        return url

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------
    async def fetch_week(self, day: date, force: bool = False) -> ScheduleWeek | None:
        """Schedule of the week containing day, enriched with event details.

        Returns:
            The week, a stale cached copy if fetching failed, or None.
        """
        week_start = week_start_of(day)
        key = week_start.isoformat()

        if self.demo_mode:
            return demo.demo_week(week_start)

        if not force:
            cached = self.cache.get(CacheKind.SCHEDULE, key)
            if cached is not None:
                return cached

        try:
            html = await self._fetch_page(
                lambda token: with_date(with_token(self._endpoint("schedule"), token), day),
                name="schedule",
            )
            week = parse_schedule(html, self.config.base_url, today=self.today())
            if week is None:
                logger.warning("schedule_unavailable", week_start=key)
                return self.cache.peek(CacheKind.SCHEDULE, key)

            result = await enrich_week(week, self._fetch_event_details)
            week = result.week
        except PortalError as e:
            logger.warning("schedule_fetch_failed", week_start=key, error=str(e), type=type(e).__name__)
            return self.cache.peek(CacheKind.SCHEDULE, key)

        if result.failures:
            week, filled = carry_over_details(
                week, result.failures, self.cache.peek(CacheKind.SCHEDULE, key)
            )
            logger.warning(
                "schedule_details_incomplete",
                week_start=key,
                failed=[event.title for event, _ in result.failures],
                carried_over=filled,
            )

        self.cache.set(CacheKind.SCHEDULE, key, week)
        logger.info("schedule_fetched", week_start=key, events=len(week.all_events()))
        return week

    async def _fetch_event_details(self, url: str) -> EventDetails | None:
        html = await self._fetch_page(lambda token: with_token(url, token), name="event_detail")
        return parse_event_details(html)

    async def fetch_month(self, year: int, month: int) -> list[ScheduleWeek]:
        """Every available week overlapping the given month."""
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])

        weeks = []
        week_start = week_start_of(first)
        while week_start <= last:
            week = await self.fetch_week(week_start)
            if week is not None:
                weeks.append(week)
            week_start += timedelta(weeks=1)
        return weeks

    # ------------------------------------------------------------------
    # Grades
    # ------------------------------------------------------------------
    async def list_semesters(self) -> list[Semester]:
        """Semesters of the course results dropdown; the static list on failure."""
        if self.demo_mode:
            return default_semesters()

        cached = self.cache.get(CacheKind.SEMESTERS, SEMESTERS_KEY)
        if cached is not None:
            return cached

        try:
            html = await self._fetch_page(
                lambda token: semester_list_url(self.config.base_url, token),
                name="semesters",
            )
        except PortalError as e:
            logger.warning("semesters_fetch_failed", error=str(e), type=type(e).__name__)
            return self.cache.peek(CacheKind.SEMESTERS, SEMESTERS_KEY) or default_semesters()

        semesters = read_semesters(html)
        if semesters is None:
            return self.cache.peek(CacheKind.SEMESTERS, SEMESTERS_KEY) or default_semesters()

        self.cache.set(CacheKind.SEMESTERS, SEMESTERS_KEY, semesters)
        return semesters

    async def fetch_grades(
        self,
        semester: Semester | str | None = None,
        force: bool = False,
    ) -> GradeReport | None:
        """Course results of semester (a Semester or its id); None is the current one."""
        value = semester.value if isinstance(semester, Semester) else (semester or "")
        key = value or CURRENT_SEMESTER_KEY

        if self.demo_mode:
            return demo.demo_grades(value)

        if not force:
            cached = self.cache.get(CacheKind.GRADES, key)
            if cached is not None:
                return cached

        try:
            html = await self._fetch_page(
                lambda token: grades_url(self.config.base_url, token, format_semester_argument(value)),
                name="grades",
            )
        except PortalError as e:
            logger.warning("grades_fetch_failed", semester=key, error=str(e), type=type(e).__name__)
            return self.cache.peek(CacheKind.GRADES, key)

        report = parse_grade_report(html, semester=key)
        if report is None:
            logger.warning("grades_unavailable", semester=key)
            return self.cache.peek(CacheKind.GRADES, key)

        self.cache.set(CacheKind.GRADES, key, report)
        logger.info("grades_fetched", semester=key, modules=len(report.modules))
        return report

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    async def fetch_notifications(self) -> NotificationList | None:
        if self.demo_mode:
            return demo.demo_notifications()

        def build(token: str) -> str:
            endpoint = self.sessions.endpoints.notifications
            if endpoint is not None:
                return with_token(endpoint, token)
            return notifications_url(self.config.base_url, token)

        try:
            html = await self._fetch_page(build, name="notifications")
        except PortalError as e:
            logger.warning("notifications_fetch_failed", error=str(e), type=type(e).__name__)
            return None
        return parse_notifications(html, self.config.base_url)

    async def fetch_notification_detail(self, item: NotificationItem) -> str | None:
        """Raw HTML of a message's detail page."""
        if self.demo_mode:
            return demo.demo_notification_detail(item)
        if item.detail_url is None:
            return None

        try:
            return await self._fetch_page(
                lambda token: with_token(item.detail_url, token),
                name="notification_detail",
            )
        except PortalError as e:
            logger.warning("notification_detail_failed", id=item.id, error=str(e))
            return None

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------
    async def check_for_changes(
        self, weeks: int | None = None
    ) -> tuple[list[ChangeSet], GradeChanges | None]:
        """Refresh the watched weeks and current grades and diff them.

        Only weeks and grades with a previous snapshot are compared, so the
        first run just records the baseline.

        Returns:
            (ChangeSets of weeks with changes, GradeChanges or None)
        """
        if self.demo_mode:
            return [], None

        count = weeks if weeks is not None else self.config.watch_weeks
        first_week = week_start_of(self.today())

        schedule_changes: list[ChangeSet] = []
        for offset in range(count):
            week_start = first_week + timedelta(weeks=offset)
            previous = self.cache.peek(CacheKind.SCHEDULE, week_start.isoformat())
            current = await self.fetch_week(week_start, force=True)
            if previous is None or current is None:
                continue
            changes = diff_schedule(previous, current)
            if changes.has_changes:
                schedule_changes.append(changes)

        previous_grades = self.cache.peek(CacheKind.GRADES, CURRENT_SEMESTER_KEY)
        current_grades = await self.fetch_grades(force=True)
        grade_changes = None
        if previous_grades is not None and current_grades is not None:
            grade_changes = diff_grades(previous_grades, current_grades)

        logger.info(
            "changes_checked",
            weeks=count,
            changed_weeks=len(schedule_changes),
            grade_changes=grade_changes is not None,
        )
        return schedule_changes, grade_changes

    async def check_schedule_notices(self) -> list[NotificationItem]:
        """Schedule-related messages not reported by an earlier call."""
        notifications = await self.fetch_notifications()
        if notifications is None:
            return []

        related = [item for item in notifications.items if item.is_schedule_related]
        if self.demo_mode:
            return related

        seen = set(self.cache.peek(CacheKind.NOTICES, NOTICES_KEY) or [])
        unseen = [item for item in related if item.id not in seen]
        self.cache.set(CacheKind.NOTICES, NOTICES_KEY, sorted(seen | {item.id for item in related}))

        logger.info("schedule_notices_checked", related=len(related), unseen=len(unseen))
        return unseen
