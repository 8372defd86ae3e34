"""Canned data for the reserved demo account.

Logging in with DEMO_USERNAME / DEMO_PASSWORD never touches the network;
every later operation answers from here, deterministically.
"""

from datetime import date, timedelta

from dualis.models import (
    Day,
    Event,
    ExamGrade,
    ExamState,
    GradeReport,
    Module,
    NotificationItem,
    NotificationList,
    NotificationType,
    ScheduleWeek,
)

DEMO_USERNAME = "demo@dhbw.de"
DEMO_PASSWORD = "demo123"


def is_demo_login(username: str, password: str) -> bool:
    return username.strip().lower() == DEMO_USERNAME and password == DEMO_PASSWORD


# Monday..Friday: (title, start, end, room, lecturer)
_WEEK: tuple[tuple[tuple[str, str, str, str, str], ...], ...] = (
    (
        ("Software Engineering", "08:00", "09:30", "A1.2.03", "Prof. Dr. Schmidt"),
        ("Mathematics", "09:45", "11:15", "A1.2.03", "Prof. Dr. Müller"),
        ("Database Systems", "13:00", "14:30", "A1.1.15", "Prof. Dr. Weber"),
    ),
    (
        ("Computer Networks", "08:00", "09:30", "A2.1.05", "Prof. Dr. Fischer"),
        ("Project Management", "10:00", "11:30", "A1.3.12", "Dr. Wagner"),
        ("Web Development Lab", "14:00", "17:00", "PC-Pool A", "Prof. Dr. Klein"),
    ),
    (
        ("Algorithms & Data Structures", "09:00", "10:30", "A1.2.08", "Prof. Dr. Hoffmann"),
        ("Business Process Management", "11:00", "12:30", "A2.1.10", "Prof. Dr. Bauer"),
    ),
    (
        ("Mobile Application Development", "08:30", "10:00", "A1.3.05", "Prof. Dr. Richter"),
        ("Software Testing", "10:15", "11:45", "A1.3.05", "Prof. Dr. Richter"),
        ("Seminar Presentation", "13:30", "15:00", "A2.2.01", "Prof. Dr. Zimmermann"),
    ),
    (
        ("IT Security", "09:00", "10:30", "A1.1.20", "Prof. Dr. Schulz"),
        ("Practical Training Review", "11:00", "12:30", "A2.1.03", "Prof. Dr. Braun"),
    ),
)


def demo_week(week_start: date) -> ScheduleWeek:
    """Monday to Friday of the week starting at week_start."""
    days = [
        Day(
            date=week_start + timedelta(days=offset),
            events=[
                Event(title=title, start_time=start, end_time=end, room=room, lecturer=lecturer)
                for title, start, end, room, lecturer in entries
            ],
        )
        for offset, entries in enumerate(_WEEK)
    ]
    return ScheduleWeek(week_start=week_start, days=days)


def demo_grades(semester_value: str = "") -> GradeReport:
    return GradeReport(
        semester="current" if not semester_value else "previous",
        gpa_total=1.7,
        gpa_main_modules=1.6,
        credits_total=210.0,
        credits_gained=180.0,
        modules=[
            Module(
                id="T4_1000",
                name="Praxisprojekt I",
                credits="20.0",
                grade=ExamGrade.from_string("1.3"),
                state=ExamState.PASSED,
            ),
            Module(
                id="T4INF1003",
                name="Theoretische Informatik II",
                credits="5.0",
                grade=ExamGrade.from_string("noch nicht gesetzt"),
                state=ExamState.PENDING,
            ),
        ],
    )


_NOTICES: tuple[tuple[str, str, str, str, NotificationType], ...] = (
    (
        "30.07.2025",
        "08:05",
        "T4INF2904.2/C# und .NET",
        '"T4INF2904.2 / C# und .NET HOR-TINF2024": Termin geändert',
        NotificationType.SCHEDULE_CHANGE,
    ),
    (
        "04.07.2025",
        "09:24",
        "T4INF1102.1/Anwendungsprojekt In",
        '"T4INF1102.1 / Anwendungsprojekt Informatik HOR-TINF2024": Termin geändert',
        NotificationType.SCHEDULE_CHANGE,
    ),
    (
        "04.07.2025",
        "09:17",
        "T4_1000.2/Wissenschaft.Arbeit",
        '"T4_1000.2 / Wissenschaftliches Arbeiten 1 HOR-TINF2024": Termin festgelegt',
        NotificationType.SCHEDULE_SET,
    ),
    (
        "14.11.2024",
        "11:31",
        "T4INF1101.2/Web Engineering 2",
        '"T4INF1101.2 / Web Engineering 2 HOR-TINF2024": Termin festgelegt',
        NotificationType.SCHEDULE_SET,
    ),
)


def demo_notifications() -> NotificationList:
    items = [
        NotificationItem(
            id=f"demo_{index}",
            date=day,
            time=time,
            sender=sender,
            subject=subject,
            type=kind,
            is_unread=True,
        )
        for index, (day, time, sender, subject, kind) in enumerate(_NOTICES, start=1)
    ]
    return NotificationList(items=items, unread_count=len(items))


def demo_notification_detail(item: NotificationItem) -> str:
    return (
        "<html><body>"
        "<h1>Notification Details</h1>"
        f"<h2>{item.subject}</h2>"
        f"<p><strong>From:</strong> {item.sender}</p>"
        f"<p><strong>Date:</strong> {item.date} at {item.time}</p>"
        "<p>This is demo content for the notification.</p>"
        "</body></html>"
    )
