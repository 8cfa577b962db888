from __future__ import annotations

import re
from typing import Sequence

from bs4 import BeautifulSoup


_BLOCK_TAGS = (
    "address",
    "article",
    "aside",
    "blockquote",
    "dd",
    "div",
    "dt",
    "footer",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "header",
    "li",
    "p",
    "section",
    "td",
    "th",
    "tr",
)
_HIDDEN_TAGS = ("script", "style", "noscript", "template", "head")

_LABEL_PATTERN = re.compile(r"^adresse\b\s*:?\s*(?P<rest>.*)$", re.IGNORECASE)
_POSTAL_CODE_PATTERN = re.compile(r"(?<!\d)\d{5}(?!\d)")
_ADDRESS_LINE_PATTERN = re.compile(r"\d+.*\d{5}\s+\w+")
_SNIPPET_PATTERN = re.compile(r"\d+\s+[\w\s,.]+\d{5}\s+[\w\s-]+", re.IGNORECASE)
_WHITESPACE_PATTERN = re.compile(r"\s+")


def page_lines(html: str) -> list[str]:
    """Return the visible text of ``html``, one entry per block-level line."""

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(_HIDDEN_TAGS):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for tag in soup.find_all(_BLOCK_TAGS):
        tag.insert_before("\n")
        tag.append("\n")

    lines = []
    for line in soup.get_text().splitlines():
        collapsed = _WHITESPACE_PATTERN.sub(" ", line).strip()
        if collapsed:
            lines.append(collapsed)
    return lines


def _from_label(lines: Sequence[str]) -> str:
    for index, line in enumerate(lines):
        match = _LABEL_PATTERN.match(line)
        if match is None:
            continue
        rest = match.group("rest").strip()
        if rest and _POSTAL_CODE_PATTERN.search(rest):
            return rest
        following = " ".join(lines[index + 1 : index + 3])
        if _POSTAL_CODE_PATTERN.search(following):
            return following
    return ""


def _from_address_line(lines: Sequence[str]) -> str:
    for line in lines:
        if _ADDRESS_LINE_PATTERN.search(line):
            return line
    return ""


def _from_snippet(lines: Sequence[str]) -> str:
    match = _SNIPPET_PATTERN.search(" ".join(lines))
    return match.group(0).strip() if match else ""


def extract_address_text(html: str) -> str:
    """Pick the first address-looking text out of a search results page.

    Tries an ``Adresse :`` label first, then any line shaped like
    "<number> ... <postal code> <word>", then a looser snippet match over the
    whole page. Returns an empty string when nothing matches.
    """

    if not html or not html.strip():
        return ""

    lines = page_lines(html)
    for finder in (_from_label, _from_address_line, _from_snippet):
        candidate = finder(lines)
        if candidate:
            return candidate
    return ""
