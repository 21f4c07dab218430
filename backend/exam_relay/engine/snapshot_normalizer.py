"""Normalize a scraped quiz-attempts table into leaderboard rows."""

import json
import re

from bs4 import BeautifulSoup, Tag

# Columns of the attempts report that never reach the leaderboard
HEADERS_TO_IGNORE: frozenset[str] = frozenset({
    "Unknown_Col_0",
    "Unknown_Col_1",
    "ID number",
    "Email address",
    "Started on",
    "Grade/100.00",
    "Q. 1/99.01",
    "Q. 2/0.99",
    "Grade/10.00",
    "Q. 1/9.90",
    "Q. 2/0.10",
})

# Decorative elements stripped before reading any text
DECORATIVE_CLASSES = ("accesshide", "commands", "reviewlink")

NAME_MARKERS = ("First name", "Last name")
_NAME_BOILERPLATE = (
    re.compile(r"Review attempt", re.IGNORECASE),
    re.compile(r"Overall average", re.IGNORECASE),
)
_WHITESPACE = re.compile(r"\s+")


class IngestError(Exception):
    """Base class for ingest failures that are the caller's fault."""

    message = "Invalid ingest request"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class EmptyBodyError(IngestError):
    message = "No HTML content provided"


class InvalidBodyError(IngestError):
    message = "Invalid JSON body"


class NoTableFoundError(IngestError):
    message = "Ignored: No table element found in the provided HTML."


def clean_text(value: str) -> str:
    """Trim and collapse runs of whitespace to a single space."""
    return _WHITESPACE.sub(" ", value).strip()


def extract_markup(body: bytes | str, content_type: str | None = None) -> str:
    """Pull the table markup out of a request body.

    The browser-side scraper posts ``{"html": "<table ...>"}`` as JSON; plain
    ``text/html`` or ``text/plain`` bodies are taken as-is.
    """
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    if content_type and "json" in content_type.lower():
        if not text.strip():
            raise EmptyBodyError()
        try:
            payload = json.loads(text)
        except ValueError:
            raise InvalidBodyError()
        if not isinstance(payload, dict) or not isinstance(payload.get("html"), str):
            raise InvalidBodyError("JSON body must be an object with an 'html' string")
        text = payload["html"]
    if not text.strip():
        raise EmptyBodyError()
    return text




def _header_cells(table: Tag) -> list[Tag]:
    cells = table.select(":scope > thead th")
    if cells:
        return cells
    # headerless markup: the first row made of <th> cells
    for tr in table.select(":scope > tbody > tr"):
        cells = tr.find_all("th", recursive=False)
        if cells:
            return cells
    return []


def _header_names(table: Tag) -> list[str]:
    headers: list[str] = []
    for th in _header_cells(table):
        headers.append(clean_text(th.get_text()) or f"Unknown_Col_{len(headers)}")
    return headers


def _is_divider(cells: list[Tag]) -> bool:
    if len(cells) != 1:
        return False
    cell = cells[0]
    return "tabledivider" in (cell.get("class") or []) or cell.find(class_="tabledivider") is not None


def _cell_value(td: Tag) -> str:
    value = clean_text(td.get_text())
    if not value:
        checkbox = next(
            (i for i in td.find_all("input") if (i.get("type") or "").lower() == "checkbox"),
            None,
        )
        if checkbox is not None:
            value = checkbox.get("value") or ""
    return value


def _clean_name(value: str) -> str:
    for pattern in _NAME_BOILERPLATE:
        value = pattern.sub("", value, count=1)
    return value.strip()


def normalize_row(cells: list[Tag], headers: list[str]) -> dict[str, str] | None:
    """Turn one body row into a mapping, or None if it is not a participant row.

    Cells past the last header are kept under ``Extra_Col_<index>`` so they
    never collide with the ignored ``Unknown_Col_<n>`` headers.
    """
    row: dict[str, str] = {}
    for index, td in enumerate(cells):
        header = headers[index] if index < len(headers) else f"Extra_Col_{index}"
        value = _cell_value(td)
        if header in HEADERS_TO_IGNORE:
            continue
        row[header] = value

    name_key = next((key for key in row if any(m in key for m in NAME_MARKERS)), None)
    if name_key is not None:
        row[name_key] = _clean_name(row[name_key])
        if not row[name_key]:
            return None
    return row


def normalize_table(markup: str) -> list[dict[str, str]]:
    """Parse markup and return the first table's rows in source order.

    The markup goes through html5lib, so unclosed cells and stray wrappers
    are repaired the same way a browser repairs them.

    Raises NoTableFoundError when the markup has no <table>.
    """
    soup = BeautifulSoup(markup, "html5lib")
    table = soup.find("table")
    if table is None:
        raise NoTableFoundError()

    for css_class in DECORATIVE_CLASSES:
        for node in table.find_all(class_=css_class):
            # a nested match goes away with its decorated parent
            if not node.decomposed:
                node.decompose()

    headers = _header_names(table)
    rows: list[dict[str, str]] = []
    for tr in table.select(":scope > tbody > tr"):
        cells = tr.find_all("td", recursive=False)
        if not cells or _is_divider(cells):
            continue
        row = normalize_row(cells, headers)
        if row is not None:
            rows.append(row)
    return rows
