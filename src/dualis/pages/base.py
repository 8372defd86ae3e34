"""Shared BeautifulSoup helpers for the page extractors."""

from bs4 import BeautifulSoup, Tag

PARSER = "html.parser"


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", PARSER)


def text_of(element: Tag | None) -> str:
    """Whitespace-normalized text of element, "" for None."""
    if element is None:
        return ""
    return " ".join(element.get_text(" ", strip=True).split())


def anchor_containing(soup: BeautifulSoup, label: str) -> Tag | None:
    """First <a> whose text contains label, case-insensitively."""
    needle = label.lower()
    for anchor in soup.find_all("a"):
        if needle in text_of(anchor).lower():
            return anchor
    return None
