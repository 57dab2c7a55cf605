from __future__ import annotations

import datetime as dt
import html
import re
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Iterator, Optional

import markdown
import yaml
from dateutil import parser as dtparser

INDEX_FILE = "index.md"
ABOUT_FILE = "about.md"

HEADING_RE = re.compile(r"^(#{1,4})\s+(.+)$")
TITLE_RE = re.compile(r"^\s*#(?!#)(.+)")
TAG_RE = re.compile(r"<[^>]*>")
FRONT_MATTER_RE = re.compile(
    r"\A\ufeff?---[ \t]*\r?\n(?P<block>.*?)^(?:---|\.\.\.)[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


class ContentError(Exception):
    """Raised when a source document cannot be turned into a page."""


class MalformedFrontMatter(ContentError):
    pass


@dataclass(frozen=True)
class TocEntry:
    level: int
    text: str
    slug: str


class FrontMatter(Mapping):
    """Read-only string record parsed from a document header.

    ``title``, ``desc`` and ``date`` are the recognized keys; everything else
    is kept as-is and reachable through normal mapping access.
    """

    def __init__(self, data: Optional[Mapping] = None):
        self._data = dict(data or {})

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"FrontMatter({self._data!r})"

    @property
    def title(self) -> Optional[str]:
        return self._data.get("title")

    @property
    def desc(self) -> Optional[str]:
        return self._data.get("desc")

    @property
    def date(self) -> Optional[str]:
        return self._data.get("date")


def slugify(text: str) -> str:
    """Anchor id for a heading. Also handed to the markdown ``toc`` extension."""
    text = text.lower()
    text = TAG_RE.sub("", text)
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


def toc_slugify(value: str, separator: str) -> str:
    return slugify(value)


def heading_plain_text(line: str) -> str:
    """Text of a heading line as the markdown ``toc`` extension sees it.

    Inline markup is rendered and dropped and entities are decoded, so
    ``## See [the docs](url)`` gives ``See the docs``.
    """
    rendered = markdown.markdown(line)
    return html.unescape(TAG_RE.sub("", rendered)).strip()


def parse_headings(text: str) -> list[TocEntry]:
    # Line based: headings inside fenced code blocks are picked up too.
    headings = []
    for line in text.split("\n"):
        match = HEADING_RE.match(line)
        if not match:
            continue
        level = len(match.group(1))
        heading = match.group(2).strip()
        slug = slugify(heading_plain_text(line.strip()))
        headings.append(TocEntry(level=level, text=heading, slug=slug))
    return headings


def split_front_matter(text: str) -> tuple[str, FrontMatter]:
    """Return ``(body, attrs)``. Text without a header block comes back untouched."""
    match = FRONT_MATTER_RE.match(text)
    if not match:
        return text, FrontMatter()

    try:
        data = yaml.load(match.group("block"), Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        raise MalformedFrontMatter(f"Invalid YAML front matter: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedFrontMatter(
            f"Front matter must be a mapping, got {type(data).__name__}"
        )
    for key, value in data.items():
        if not isinstance(value, str):
            raise MalformedFrontMatter(f"Front matter value for {key!r} must be a string")
    return text[match.end() :], FrontMatter(data)


def extract_title(attrs: FrontMatter, body: str) -> Optional[str]:
    if attrs.title:
        return attrs.title
    match = TITLE_RE.match(body)
    if match:
        return match.group(1).strip() or None
    return None


def parse_date(value: str) -> Optional[dt.datetime]:
    try:
        return dtparser.parse(value)
    except (ValueError, OverflowError):
        return None


def format_date(value: str) -> str:
    parsed = parse_date(value)
    if parsed is None:
        print(f"Unrecognized date {value!r}, showing it as written.", file=sys.stderr)
        return value
    return f"{parsed:%B} {parsed.day}, {parsed.year}"
