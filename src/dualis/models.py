"""Pydantic models for portal data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Snapshots (ScheduleWeek, GradeReport, semester lists) round-trip through the
JSON cache unchanged.
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field, SecretStr


class Event(BaseModel):
    """A single appointment from the weekly schedule table.

    Basic fields come from a td.appointment cell; the optional fields are
    filled from the event's detail page.
    """

    title: str  # Cell text without time/room markup
    start_time: str  # "08:15"
    end_time: str  # "09:45"
    room: str = ""  # "HOR-120" or "HOR-135, HOR-136"
    lecturer: str = ""  # Only known after detail enrichment
    course_code: str | None = None  # "T4INF1003.1"
    full_title: str | None = None  # h1 of the detail page
    detail_url: str | None = None


class Day(BaseModel):
    """One calendar day of a schedule week. Events are not sorted."""

    date: date
    events: list[Event] = Field(default_factory=list)


class ScheduleWeek(BaseModel):
    """All days covered by one schedule page."""

    week_start: date
    days: list[Day] = Field(default_factory=list)

    def all_events(self) -> list[tuple[date, Event]]:
        return [(day.date, event) for day in self.days for event in day.events]


class Semester(BaseModel):
    """An entry of the semester dropdown on the course results page."""

    value: str  # Portal id, e.g. "000000015158000"; "" is the current semester
    display_name: str  # "SoSe 2025"
    is_selected: bool = False


class ExamState(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    PENDING = "pending"


class ExamGradeState(str, Enum):
    NOT_GRADED = "not_graded"
    GRADED = "graded"
    PASSED = "passed"
    FAILED = "failed"


class ExamGrade(BaseModel):
    """A grade as printed by the portal.

    grade_value is empty for everything that is not a concrete mark:
    "noch nicht gesetzt", blank cells and the plain pass marker "b".
    """

    state: ExamGradeState
    grade_value: str = ""

    @classmethod
    def from_string(cls, raw: str) -> "ExamGrade":
        text = raw.strip()
        if not text or text.lower() == "noch nicht gesetzt":
            return cls(state=ExamGradeState.NOT_GRADED)
        if text == "b":
            return cls(state=ExamGradeState.PASSED)
        return cls(state=ExamGradeState.GRADED, grade_value=text)

    @property
    def is_set(self) -> bool:
        return bool(self.grade_value)


class Exam(BaseModel):
    """An individual exam within a module."""

    name: str
    grade: ExamGrade
    semester: str = ""
    state: ExamState = ExamState.PENDING


class Module(BaseModel):
    """One row of the course results table."""

    id: str  # "T4INF1003"
    name: str
    credits: str  # "5.0"
    grade: ExamGrade
    state: ExamState
    exams: list[Exam] = Field(default_factory=list)


class GradeReport(BaseModel):
    """Course results of one semester with computed totals."""

    semester: str
    modules: list[Module] = Field(default_factory=list)
    gpa_total: float = 0.0  # Credit-weighted over passed modules
    # The results page has no main-module split, so parsed reports repeat gpa_total
    gpa_main_modules: float = 0.0
    credits_gained: float = 0.0
    credits_total: float = 0.0


class NotificationType(str, Enum):
    SCHEDULE_CHANGE = "schedule_change"
    SCHEDULE_SET = "schedule_set"
    GENERAL_MESSAGE = "general_message"


class NotificationItem(BaseModel):
    """A row of the message archive."""

    id: str
    date: str  # "30.07.2025", kept as printed
    time: str  # "08:05"
    sender: str
    subject: str
    type: NotificationType
    is_unread: bool
    detail_url: str | None = None
    delete_url: str | None = None

    @property
    def is_schedule_related(self) -> bool:
        return self.type in (NotificationType.SCHEDULE_CHANGE, NotificationType.SCHEDULE_SET)


class NotificationList(BaseModel):
    items: list[NotificationItem] = Field(default_factory=list)
    unread_count: int = 0


class EventDetails(BaseModel):
    """Fields read from a single event detail page."""

    full_title: str
    course_code: str | None = None
    lecturer: str = ""
    room: str = ""


class PortalEndpoints(BaseModel):
    """Navigation targets discovered on the home page.

    Every URL embeds the session token that was current when it was found.
    """

    grades: str | None = None
    course_results: str | None = None
    schedule: str | None = None
    logout: str | None = None
    notifications: str | None = None


class Credentials(BaseModel):
    username: str
    password: SecretStr


class Session(BaseModel):
    """Authentication state owned by SessionManager."""

    token: str | None = None  # 15 digits, rotates on every fresh login
    endpoints: PortalEndpoints = Field(default_factory=PortalEndpoints)
    authenticated: bool = False
    demo_mode: bool = False
    last_credentials: Credentials | None = None  # Kept only for transparent re-auth


class ChangeSet(BaseModel):
    """Delta between two snapshots of the same schedule week."""

    week_start: date
    added_events: list[Event] = Field(default_factory=list)
    removed_events: list[Event] = Field(default_factory=list)
    modified_events: list[tuple[Event, Event]] = Field(default_factory=list)  # (old, new)

    @property
    def has_changes(self) -> bool:
        return bool(self.added_events or self.removed_events or self.modified_events)


class GradeChanges(BaseModel):
    """Human-readable grade deltas, e.g. "Mathematik I: 1.3"."""

    new_grades: list[str] = Field(default_factory=list)
    updated_grades: list[str] = Field(default_factory=list)
