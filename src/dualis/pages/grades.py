"""Course results (grade report) extraction.

The results page lists one module per row of table.nb.list:
    id | name | grade | credits | status
Totals are not printed reliably, so credits and the credit-weighted GPA are
computed from the rows.
"""

from bs4 import Tag

from dualis.errors import ParseError
from dualis.logging import get_logger
from dualis.models import ExamGrade, ExamState, GradeReport, Module
from dualis.pages.base import make_soup, text_of

log = get_logger(__name__)

NOT_SET = "noch nicht gesetzt"


def _german_float(text: str) -> float | None:
    try:
        return float(text.strip().replace(",", "."))
    except ValueError:
        return None


def _numeric_grade(text: str) -> float | None:
    lowered = text.lower()
    if not text.strip() or NOT_SET in lowered or "bestanden" in lowered:
        return None
    return _german_float(text)


def _module_state(status: str, grade: float | None) -> ExamState:
    lowered = status.lower()
    if "nicht bestanden" in lowered:
        return ExamState.FAILED
    if "bestanden" in lowered:
        return ExamState.PASSED
    if grade is not None and grade > 0.0:
        return ExamState.PASSED
    return ExamState.PENDING


def _is_passed(status: str, grade: float | None) -> bool:
    lowered = status.lower()
    if "nicht bestanden" in lowered:
        return False
    return "bestanden" in lowered or "prüfungen" in lowered or (grade is not None and grade > 0.0)


def _locate_table(html: str) -> Tag:
    table = make_soup(html).select_one("table.nb.list")
    if table is None:
        raise ParseError("course results table not found")
    return table


def parse_grade_report(html: str, semester: str = "current") -> GradeReport | None:
    """Parse the course results page.

    Args:
        html: COURSERESULTS page markup.
        semester: Label stored on the report.

    Returns:
        GradeReport, or None when the results table is missing.
    """
    try:
        table = _locate_table(html)
    except ParseError as e:
        log.warning("grades_unparsed", reason=str(e), tables=len(make_soup(html).find_all("table")))
        return None

    modules: list[Module] = []
    credits_total = 0.0
    credits_gained = 0.0
    weighted_sum = 0.0

    rows = table.select("tbody tr") or table.find_all("tr")
    for row in rows:
        cells = row.find_all("td")
        if len(cells) < 5:
            continue
        module_id, name, grade_text, credits_text, status = (text_of(cell) for cell in cells[:5])
        if not module_id and not name:
            continue

        credits = _german_float(credits_text) or 0.0
        grade = _numeric_grade(grade_text)

        credits_total += credits
        if _is_passed(status, grade):
            credits_gained += credits
            # Weighted over the same modules as the credits_gained divisor
            if grade is not None and grade > 0.0:
                weighted_sum += grade * credits

        modules.append(
            Module(
                id=module_id,
                name=name,
                credits=str(credits),
                grade=ExamGrade.from_string(str(grade) if grade is not None else NOT_SET),
                state=_module_state(status, grade),
            )
        )

    gpa = weighted_sum / credits_gained if credits_gained > 0.0 else 0.0
    report = GradeReport(
        semester=semester,
        modules=modules,
        gpa_total=gpa,
        gpa_main_modules=gpa,
        credits_gained=credits_gained,
        credits_total=credits_total,
    )
    log.info(
        "grades_parsed",
        semester=semester,
        modules=len(modules),
        credits_gained=credits_gained,
        gpa=round(gpa, 2),
    )
    return report
