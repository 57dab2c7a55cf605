from __future__ import annotations

import html
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

import markdown
from bs4 import BeautifulSoup, Comment, Tag

from .content import FrontMatter, TocEntry, parse_headings, split_front_matter, toc_slugify

TEMPLATES_DIR = Path(__file__).parent / "templates"

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "toc", "codehilite"]
MARKDOWN_CONFIG = {
    "toc": {"slugify": toc_slugify},
    "codehilite": {"guess_lang": False, "css_class": "codehilite"},
}

# Dropped together with everything inside them.
REMOVE_TAGS = {
    "script",
    "style",
    "iframe",
    "frame",
    "object",
    "embed",
    "applet",
    "noscript",
    "template",
    "form",
    "textarea",
    "select",
    "button",
    "link",
    "meta",
    "base",
}
ALLOWED_TAGS = {
    "a", "abbr", "b", "blockquote", "br", "caption", "cite", "code", "dd", "del",
    "details", "div", "dl", "dt", "em", "figcaption", "figure", "h1", "h2", "h3",
    "h4", "h5", "h6", "hr", "i", "img", "input", "ins", "kbd", "li", "mark", "ol",
    "p", "pre", "q", "s", "samp", "small", "span", "strike", "strong", "sub",
    "summary", "sup", "table", "tbody", "td", "tfoot", "th", "thead", "tr", "u",
    "ul", "var",
}
GLOBAL_ATTRIBUTES = {"class", "id", "title", "lang", "dir"}
ALLOWED_ATTRIBUTES = {
    "a": {"href", "name", "target", "rel"},
    "img": {"src", "alt", "width", "height", "align"},
    "input": {"type", "checked", "disabled"},
    "ol": {"start", "type"},
    "td": {"align", "colspan", "rowspan"},
    "th": {"align", "colspan", "rowspan", "scope"},
    "details": {"open"},
    "blockquote": {"cite"},
    "q": {"cite"},
    # Authors color inline text with <span style="...">; nothing else may carry style.
    "span": {"style"},
}
URL_ATTRIBUTES = {"href", "src", "cite"}
UNSAFE_URL_RE = re.compile(r"^(?:javascript|vbscript|data):", re.IGNORECASE)
# Browsers skip these inside a URL scheme, so "java\tscript:" still runs.
URL_IGNORED_RE = re.compile(r"[\x00-\x20\x7f]+")

PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")


@dataclass
class ProcessedMarkdown:
    body: str
    attrs: FrontMatter
    headings: list[TocEntry]
    html: str


def sanitize_html(html_text: str) -> str:
    soup = BeautifulSoup(html_text, "html.parser")

    for tag in soup.find_all(REMOVE_TAGS):
        if tag.decomposed:
            continue
        tag.decompose()

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for tag in soup.find_all(True):
        if not isinstance(tag, Tag):
            continue
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
            continue
        allowed = GLOBAL_ATTRIBUTES | ALLOWED_ATTRIBUTES.get(tag.name, set())
        for attr in list(tag.attrs):
            if attr not in allowed:
                del tag[attr]
            elif attr in URL_ATTRIBUTES and UNSAFE_URL_RE.match(URL_IGNORED_RE.sub("", str(tag[attr]))):
                del tag[attr]

    return str(soup)


def render_markdown(body: str) -> str:
    md = markdown.Markdown(extensions=MARKDOWN_EXTENSIONS, extension_configs=MARKDOWN_CONFIG)
    html_content = md.convert(body)
    md.reset()
    return sanitize_html(html_content)


def process_markdown(content: str) -> ProcessedMarkdown:
    body, attrs = split_front_matter(content)
    headings = parse_headings(body)
    return ProcessedMarkdown(body=body, attrs=attrs, headings=headings, html=render_markdown(body))


def strip_tags(html_text: str) -> str:
    return re.sub(r"<[^>]+>", "", html_text)


def render_toc(headings: list[TocEntry]) -> str:
    if not headings:
        return ""
    items = []
    for heading in headings:
        indent = heading.level - 1
        items.append(
            f'<li class="toc-item toc-level-{heading.level}" style="--indent: {indent}">'
            f'<a href="#{heading.slug}">{html.escape(strip_tags(heading.text))}</a>'
            "</li>"
        )
    return f'<nav class="toc"><ul>{"".join(items)}</ul></nav>'


def render_template(template: str, **context: str) -> str:
    # One pass, so bound values are never scanned for placeholders again.
    return PLACEHOLDER_RE.sub(lambda match: context.get(match.group(1), match.group(0)), template)


def read_template(name: str = "page.html") -> str:
    return (TEMPLATES_DIR / name).read_text(encoding="utf-8")


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def copy_static(static_dir: Path, dest: Path) -> bool:
    """Copy the assets tree into ``dest``. Returns False when there is nothing to copy."""
    if not static_dir.is_dir():
        return False
    shutil.copytree(static_dir, dest, dirs_exist_ok=True)
    return True
