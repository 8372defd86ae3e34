"""
End-to-end tests for DualisClient against an in-memory portal.

Client contract:
- Fresh cache hits never touch the network
- An expired session is repaired by exactly one re-login
- Failures fall back to stale cache, else None
- The first load of a week or of the grades never reports changes
"""

import tempfile
import unittest
from datetime import date

import httpx
from fake_portal import PASSWORD, USERNAME, FakeClock, FakePortal, make_config, token_for

from dualis.cache import SEMESTERS_KEY, CacheKind, CacheStore
from dualis.errors import AuthenticationError
from dualis.pages.semesters import DEFAULT_SEMESTERS
from dualis.sync import DualisClient, week_start_of
from dualis.transport import PortalTransport

TODAY = date(2024, 7, 3)
MONDAY = date(2024, 7, 1)


class ClientTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.portal = FakePortal()
        self.clock = FakeClock()
        self.config = make_config(cache_dir=self.tmp.name)
        self.client = DualisClient(
            self.config,
            transport=PortalTransport(self.config, client=self.portal.client()),
            cache=CacheStore(self.tmp.name, clock=self.clock),
            today=lambda: TODAY,
        )

    async def asyncTearDown(self) -> None:
        await self.client.transport.client.aclose()

    async def login(self) -> None:
        await self.client.login()
        self.portal.requests.clear()


class TestFetchWeek(ClientTestCase):
    async def test_week_is_parsed_and_enriched(self) -> None:
        await self.login()
        week = await self.client.fetch_week(TODAY)

        self.assertIsNotNone(week)
        assert week is not None
        self.assertEqual(week.week_start, MONDAY)

        math = week.days[0].events[0]
        self.assertEqual((math.start_time, math.end_time, math.room), ("08:15", "09:45", "HOR-120"))
        self.assertEqual(math.lecturer, "Prof. Dr. Gauß")
        self.assertEqual(math.course_code, "T4INF1003.1")
        self.assertEqual(week.days[1].events[0].room, "HOR-135, HOR-136")

        self.assertEqual(self.portal.programs(), ["SCHEDULER", "APP_DETAIL"])
        scheduler = self.portal.requests[0]
        self.assertIn("-A03.07.2024", scheduler.url.params["ARGUMENTS"])

    async def test_fresh_cache_skips_network(self) -> None:
        await self.login()
        first = await self.client.fetch_week(TODAY)
        self.portal.requests.clear()

        second = await self.client.fetch_week(MONDAY)
        self.assertEqual(second, first)
        self.assertEqual(self.portal.requests, [])

        await self.client.fetch_week(MONDAY, force=True)
        self.assertIn("SCHEDULER", self.portal.programs())

    async def test_expired_session_reauthenticates_once(self) -> None:
        await self.login()
        self.portal.expire()

        week = await self.client.fetch_week(TODAY)

        self.assertIsNotNone(week)
        self.assertEqual(self.portal.logins, 2)
        self.assertEqual(self.client.sessions.token, token_for(2))
        self.assertEqual(
            self.portal.programs(),
            ["SCHEDULER", "LOGINCHECK", "STARTPAGE_DISPATCH", "MLSSTART", "SCHEDULER", "APP_DETAIL"],
        )

    async def test_failure_falls_back_to_stale_cache(self) -> None:
        await self.login()
        cached = await self.client.fetch_week(TODAY)
        self.clock.advance(days=2)
        self.portal.overrides["SCHEDULER"] = httpx.Response(503, text="down")

        self.assertEqual(await self.client.fetch_week(TODAY), cached)
        self.assertIsNone(await self.client.fetch_week(date(2024, 7, 10)))

    async def test_not_logged_in(self) -> None:
        self.assertIsNone(await self.client.fetch_week(TODAY))
        self.assertEqual(self.portal.requests, [])

    async def test_fetch_month(self) -> None:
        await self.login()
        weeks = await self.client.fetch_month(2024, 7)
        # Weeks starting 01.07., 08.07., 15.07., 22.07. and 29.07.
        self.assertEqual(len(weeks), 5)
        self.assertEqual(self.portal.programs().count("SCHEDULER"), 5)


class TestGradesAndSemesters(ClientTestCase):
    async def test_fetch_grades(self) -> None:
        await self.login()
        report = await self.client.fetch_grades()

        assert report is not None
        self.assertEqual(report.semester, "current")
        self.assertEqual(report.modules[0].grade.grade_value, "1.3")
        self.assertTrue(self.portal.requests[0].url.params["ARGUMENTS"].endswith("-N000307"))

    async def test_fetch_grades_for_semester(self) -> None:
        await self.login()
        semesters = await self.client.list_semesters()
        self.assertEqual(semesters[0].display_name, "SoSe 2025")

        report = await self.client.fetch_grades(semesters[1])
        assert report is not None
        self.assertEqual(report.semester, "000000015148000")
        self.assertTrue(self.portal.requests[-1].url.params["ARGUMENTS"].endswith("-N000307,-N000000015148000"))

    async def test_semesters_fall_back_to_defaults(self) -> None:
        self.assertEqual(await self.client.list_semesters(), list(DEFAULT_SEMESTERS))

    async def test_unreadable_semester_page_keeps_cached_list(self) -> None:
        await self.login()
        real = await self.client.list_semesters()
        self.clock.advance(hours=25)
        self.portal.overrides["COURSERESULTS"] = httpx.Response(200, text="<html><p>Wartung</p></html>")

        self.assertEqual(await self.client.list_semesters(), real)
        self.assertEqual(self.client.cache.peek(CacheKind.SEMESTERS, SEMESTERS_KEY), real)

        del self.portal.overrides["COURSERESULTS"]
        self.assertEqual([s.display_name for s in await self.client.list_semesters()], ["SoSe 2025", "WiSe 2024/25"])

    async def test_unreadable_semester_page_without_cache(self) -> None:
        await self.login()
        self.portal.overrides["COURSERESULTS"] = httpx.Response(200, text="<html><p>Wartung</p></html>")

        self.assertEqual(await self.client.list_semesters(), list(DEFAULT_SEMESTERS))
        self.assertIsNone(self.client.cache.peek(CacheKind.SEMESTERS, SEMESTERS_KEY))


class TestNotifications(ClientTestCase):
    async def test_fetch_notifications_and_detail(self) -> None:
        await self.login()
        notifications = await self.client.fetch_notifications()

        assert notifications is not None
        self.assertEqual(notifications.unread_count, 1)
        detail = await self.client.fetch_notification_detail(notifications.items[0])
        self.assertIn("Termin geändert", detail)
        self.assertIsNone(await self.client.fetch_notification_detail(notifications.items[1]))

    async def test_schedule_notices_reported_once(self) -> None:
        await self.login()
        first = await self.client.check_schedule_notices()
        second = await self.client.check_schedule_notices()

        self.assertEqual(len(first), 1)
        self.assertEqual(second, [])


class TestCheckForChanges(ClientTestCase):
    async def test_bootstrap_then_change(self) -> None:
        await self.login()

        schedule_changes, grade_changes = await self.client.check_for_changes(weeks=1)
        self.assertEqual(schedule_changes, [])
        self.assertIsNone(grade_changes)

        self.portal.room = "HOR-999"
        self.portal.math_grade = "1,0"
        schedule_changes, grade_changes = await self.client.check_for_changes(weeks=1)

        self.assertEqual(len(schedule_changes), 1)
        old, new = schedule_changes[0].modified_events[0]
        self.assertEqual((old.room, new.room), ("HOR-120", "HOR-999"))
        assert grade_changes is not None
        self.assertEqual(grade_changes.updated_grades, ["Mathematik I: 1.3 → 1.0"])

    async def test_unchanged_run_reports_nothing(self) -> None:
        await self.login()
        await self.client.check_for_changes(weeks=2)
        schedule_changes, grade_changes = await self.client.check_for_changes(weeks=2)
        self.assertEqual(schedule_changes, [])
        self.assertIsNone(grade_changes)
        self.assertIsNotNone(self.client.cache.peek(CacheKind.SCHEDULE, "2024-07-08"))

    async def test_failed_details_do_not_read_as_changes(self) -> None:
        await self.login()
        await self.client.check_for_changes(weeks=1)

        self.portal.overrides["APP_DETAIL"] = httpx.Response(503, text="down")
        schedule_changes, grade_changes = await self.client.check_for_changes(weeks=1)

        self.assertEqual(schedule_changes, [])
        self.assertIsNone(grade_changes)
        cached = self.client.cache.peek(CacheKind.SCHEDULE, MONDAY.isoformat())
        assert cached is not None
        math = cached.days[0].events[0]
        self.assertEqual(math.lecturer, "Prof. Dr. Gauß")
        self.assertEqual(math.course_code, "T4INF1003.1")

    async def test_failed_details_without_earlier_week(self) -> None:
        await self.login()
        self.portal.overrides["APP_DETAIL"] = httpx.Response(503, text="down")

        week = await self.client.fetch_week(TODAY)

        assert week is not None
        math = week.days[0].events[0]
        self.assertEqual((math.title, math.room, math.lecturer), ("Mathematik I", "HOR-120", ""))


class TestDemoAndSession(ClientTestCase):
    async def test_demo_mode(self) -> None:
        await self.client.login("demo@dhbw.de", "demo123")

        week = await self.client.fetch_week(TODAY)
        assert week is not None
        self.assertEqual(week.week_start, MONDAY)
        self.assertEqual(len(week.days), 5)
        self.assertEqual((await self.client.fetch_grades()).modules[0].grade.grade_value, "1.3")
        self.assertEqual(len((await self.client.fetch_notifications()).items), 4)
        self.assertEqual(await self.client.check_for_changes(), ([], None))
        self.assertEqual(self.portal.requests, [])

    async def test_login_without_credentials(self) -> None:
        client = DualisClient(make_config(username="", password=""), transport=self.client.transport)
        with self.assertRaises(AuthenticationError):
            await client.login()

    async def test_logout(self) -> None:
        await self.login()
        await self.client.logout()
        self.assertFalse(self.client.is_authenticated())
        self.assertIsNone(await self.client.fetch_grades(force=True))

    async def test_login_with_explicit_credentials(self) -> None:
        session = await self.client.login(USERNAME, PASSWORD)
        self.assertEqual(session.token, token_for(1))

    def test_week_start_of(self) -> None:
        self.assertEqual(week_start_of(date(2024, 7, 7)), MONDAY)
        self.assertEqual(week_start_of(MONDAY), MONDAY)


if __name__ == "__main__":
    unittest.main()
