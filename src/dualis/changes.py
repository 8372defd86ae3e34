"""Change detection between two snapshots.

Schedule identity key: (date, title, start_time). An event present under the
same key in both snapshots is modified when its end time, room or lecturer
differ. Grades are compared per exam name; a module without exam rows counts
as a single exam named after the module.
"""

from datetime import date

from dualis.models import ChangeSet, Event, GradeChanges, GradeReport, ScheduleWeek

ScheduleKey = tuple[date, str, str]


def _events_by_key(week: ScheduleWeek) -> dict[ScheduleKey, Event]:
    return {(day, event.title, event.start_time): event for day, event in week.all_events()}


def _differs(old: Event, new: Event) -> bool:
    return old.end_time != new.end_time or old.room != new.room or old.lecturer != new.lecturer


def diff_schedule(old: ScheduleWeek, new: ScheduleWeek) -> ChangeSet:
    """Compare two snapshots of the same week.

    Returns:
        ChangeSet with added, removed and (old, new) modified events.
    """
    old_by_key = _events_by_key(old)
    new_by_key = _events_by_key(new)

    added = []
    removed = []
    modified = []

    # Find removed and modified
    for key, old_event in old_by_key.items():
        new_event = new_by_key.get(key)
        if new_event is None:
            removed.append(old_event)
        elif _differs(old_event, new_event):
            modified.append((old_event, new_event))

    # Find added
    for key, new_event in new_by_key.items():
        if key not in old_by_key:
            added.append(new_event)

    return ChangeSet(
        week_start=new.week_start,
        added_events=added,
        removed_events=removed,
        modified_events=modified,
    )


def _grades_by_exam(report: GradeReport) -> dict[str, str]:
    grades: dict[str, str] = {}
    for module in report.modules:
        if module.exams:
            for exam in module.exams:
                grades[exam.name] = exam.grade.grade_value
        else:
            grades[module.name] = module.grade.grade_value
    return grades


def diff_grades(old: GradeReport, new: GradeReport) -> GradeChanges | None:
    """Describe grades that appeared or changed; None when there are none."""
    old_grades = _grades_by_exam(old)
    new_grades = _grades_by_exam(new)

    appeared = []
    updated = []
    for name, value in new_grades.items():
        if not value:
            continue
        previous = old_grades.get(name, "")
        if not previous:
            appeared.append(f"{name}: {value}")
        elif previous != value:
            updated.append(f"{name}: {previous} → {value}")

    if not appeared and not updated:
        return None
    return GradeChanges(new_grades=appeared, updated_grades=updated)


def describe_schedule_changes(changes: ChangeSet) -> list[str]:
    """One line per change, e.g. "+ 08:15-09:45 Mathematik (HOR-120)"."""
    lines = []
    for event in changes.added_events:
        lines.append(f"+ {event.start_time}-{event.end_time} {event.title}" + _room_suffix(event))
    for event in changes.removed_events:
        lines.append(f"- {event.start_time}-{event.end_time} {event.title}" + _room_suffix(event))
    for old, new in changes.modified_events:
        details = []
        if old.end_time != new.end_time:
            details.append(f"end {old.end_time} → {new.end_time}")
        if old.room != new.room:
            details.append(f"room {old.room or '-'} → {new.room or '-'}")
        if old.lecturer != new.lecturer:
            details.append(f"lecturer {old.lecturer or '-'} → {new.lecturer or '-'}")
        lines.append(f"~ {new.start_time} {new.title}: " + ", ".join(details))
    return lines


def _room_suffix(event: Event) -> str:
    return f" ({event.room})" if event.room else ""


def describe_grade_changes(changes: GradeChanges | None) -> list[str]:
    if changes is None:
        return []
    return [f"Neue Note: {line}" for line in changes.new_grades] + [
        f"Note geändert: {line}" for line in changes.updated_grades
    ]
