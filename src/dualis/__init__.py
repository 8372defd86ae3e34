"""Async client for the DHBW Dualis (CampusNet) student portal.

Logs in through the portal's form and redirect chain, scrapes the weekly
schedule, grades and messages, caches snapshots on disk and reports what
changed between two runs.
"""

from dualis.cache import CacheKind, CacheStore
from dualis.changes import diff_grades, diff_schedule
from dualis.config import DualisConfig, get_config
from dualis.errors import AuthenticationError, NetworkError, PortalError
from dualis.logging import setup_logging
from dualis.models import ChangeSet, GradeChanges, GradeReport, ScheduleWeek, Semester
from dualis.session import SessionManager, SessionState
from dualis.sync import DualisClient

__all__ = [
    "AuthenticationError",
    "CacheKind",
    "CacheStore",
    "ChangeSet",
    "DualisClient",
    "DualisConfig",
    "GradeChanges",
    "GradeReport",
    "NetworkError",
    "PortalError",
    "ScheduleWeek",
    "Semester",
    "SessionManager",
    "SessionState",
    "diff_grades",
    "diff_schedule",
    "get_config",
    "setup_logging",
]
