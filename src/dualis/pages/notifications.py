"""Message archive extraction.

Rows of table.nb.rw-table.rw-all (tr.tbdata) hold six cells:
    icon | date | time | sender | subject (link) | delete (link)
Unread messages show the in_new.gif icon.
"""

import hashlib
import re

from bs4 import Tag

from dualis.logging import get_logger
from dualis.models import NotificationItem, NotificationList, NotificationType
from dualis.pages.base import make_soup, text_of
from dualis.urls import absolutize_href

log = get_logger(__name__)

UNREAD_ICON = "in_new.gif"


def notification_type(subject: str) -> NotificationType:
    lowered = subject.lower()
    if "termin geändert" in lowered:
        return NotificationType.SCHEDULE_CHANGE
    if "termin festgelegt" in lowered:
        return NotificationType.SCHEDULE_SET
    if "schedule" in lowered or "appointment" in lowered:
        return NotificationType.SCHEDULE_CHANGE
    return NotificationType.GENERAL_MESSAGE


def notification_id(date: str, time: str, sender: str, subject: str) -> str:
    combined = f"{date}-{time}-{sender}-{subject}"
    return hashlib.sha1(combined.encode("utf-8")).hexdigest()[:16]


def course_name_from_subject(subject: str) -> str:
    """Course name from a subject like '"T4INF2904.2 / C# und .NET HOR-TINF2024": Termin geändert'.

    Returns "C# und .NET"; subjects without a quoted course fall through unchanged.
    """
    match = re.search(r'"([^"]*?)"', subject)
    if match is None:
        return subject
    parts = match.group(1).split("/", 1)
    if len(parts) < 2:
        return subject
    name = parts[1].strip()
    cleaned = re.sub(r"\s+[A-Z]+-[A-Z0-9]+$", "", name)
    return cleaned or name


def _parse_row(row: Tag, base_url: str) -> NotificationItem | None:
    cells = row.find_all("td")
    if len(cells) < 6:
        return None

    icon = cells[0].find("img")
    is_unread = icon is not None and UNREAD_ICON in (icon.get("src") or "")

    date = text_of(cells[1])
    time = text_of(cells[2])
    sender = text_of(cells[3])

    subject_link = cells[4].find("a")
    subject = text_of(subject_link) if subject_link is not None else text_of(cells[4])
    detail_href = subject_link.get("href") if subject_link is not None else None

    delete_link = cells[5].find("a")
    delete_href = delete_link.get("href") if delete_link is not None else None

    return NotificationItem(
        id=notification_id(date, time, sender, subject),
        date=date,
        time=time,
        sender=sender,
        subject=subject,
        type=notification_type(subject),
        is_unread=is_unread,
        detail_url=absolutize_href(base_url, detail_href) if detail_href else None,
        delete_url=absolutize_href(base_url, delete_href) if delete_href else None,
    )


def parse_notifications(html: str, base_url: str = "https://dualis.dhbw.de") -> NotificationList:
    """Messages of the archive page; an empty list when the table is missing."""
    table = make_soup(html).select_one("table.nb.rw-table.rw-all")
    if table is None:
        log.warning("notifications_table_missing")
        return NotificationList()

    items: list[NotificationItem] = []
    for index, row in enumerate(table.select("tr.tbdata")):
        item = _parse_row(row, base_url)
        if item is None:
            log.debug("notification_row_skipped", row=index)
            continue
        items.append(item)

    unread = sum(1 for item in items if item.is_unread)
    log.info("notifications_parsed", count=len(items), unread=unread)
    return NotificationList(items=items, unread_count=unread)
