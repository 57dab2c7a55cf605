from __future__ import annotations

import re
from typing import Optional

import csscompressor
from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

# Toggled at runtime by the TOC script, so never present in the static markup.
SAFELIST_CLASSES = ("active",)
NESTED_AT_RULES = {"media", "supports", "layer", "container", "document", "-moz-document"}

COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
AT_RULE_NAME_RE = re.compile(r"@([\w-]+)")
PSEUDO_ELEMENT_RE = re.compile(r"::[\w-]+(?:\([^)]*\))?")
# State dependent pseudo-classes can't be checked against static markup.
DYNAMIC_PSEUDO_RE = re.compile(
    r":(?:hover|focus|focus-within|focus-visible|active|visited|link|any-link|target|"
    r"checked|disabled|enabled|indeterminate|default|valid|invalid|required|optional|"
    r"read-only|read-write|placeholder-shown|autofill|before|after|first-line|"
    r"first-letter|-webkit-[\w-]+|-moz-[\w-]+|-ms-[\w-]+)(?![\w-])(?:\([^)]*\))?"
)


def _safelist_re(names: tuple[str, ...]) -> re.Pattern:
    joined = "|".join(re.escape(name) for name in names)
    return re.compile(rf"[.#](?:{joined})(?![\w-])")


def split_top_level(text: str, delimiter: str) -> list[str]:
    """Split on ``delimiter`` outside of strings, parentheses and brackets."""
    parts = []
    depth = 0
    quote = ""
    start = 0
    i = 0
    while i < len(text):
        char = text[i]
        if quote:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = ""
        elif char in "\"'":
            quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth = max(0, depth - 1)
        elif char == delimiter and depth == 0:
            parts.append(text[start:i])
            start = i + 1
        i += 1
    parts.append(text[start:])
    return parts


def split_statements(css: str) -> list[tuple[str, Optional[str]]]:
    """Split a stylesheet into ``(prelude, block)`` pairs.

    ``block`` is the text between the outermost braces, or None for
    statements such as ``@import`` that end with a semicolon.
    """
    statements = []
    depth = 0
    quote = ""
    prelude_start = 0
    block_start = 0
    prelude = ""
    i = 0
    while i < len(css):
        char = css[i]
        if quote:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = ""
        elif char in "\"'":
            quote = char
        elif char == "{":
            if depth == 0:
                prelude = css[prelude_start:i].strip()
                block_start = i + 1
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                statements.append((prelude, css[block_start:i]))
                prelude_start = i + 1
            elif depth < 0:
                raise ValueError(f"Unbalanced '}}' at offset {i}")
        elif char == ";" and depth == 0:
            text = css[prelude_start:i].strip()
            if text:
                statements.append((text, None))
            prelude_start = i + 1
        i += 1
    if depth != 0:
        raise ValueError("Unterminated block in stylesheet")
    return statements


def custom_properties(block: str) -> str:
    declarations = [decl.strip() for decl in split_top_level(block, ";")]
    return ";".join(decl for decl in declarations if decl.startswith("--"))


def selector_used(selector: str, soup: BeautifulSoup, safelist: re.Pattern) -> bool:
    if safelist.search(selector):
        return True
    simplified = PSEUDO_ELEMENT_RE.sub("", selector)
    simplified = DYNAMIC_PSEUDO_RE.sub("", simplified).strip()
    if not simplified or simplified[-1] in ">+~":
        return True
    try:
        return soup.select_one(simplified) is not None
    except (SelectorSyntaxError, NotImplementedError):
        # Unknown syntax: keep the rule rather than guess.
        return True


def _purge(css: str, soup: BeautifulSoup, safelist: re.Pattern) -> list[str]:
    rules = []
    for prelude, block in split_statements(css):
        if block is None:
            rules.append(f"{prelude};")
            continue
        if prelude.startswith("@"):
            match = AT_RULE_NAME_RE.match(prelude)
            name = match.group(1).lower() if match else ""
            if name in NESTED_AT_RULES:
                inner = _purge(block, soup, safelist)
                if inner:
                    rules.append(f"{prelude}{{\n{''.join(inner)}}}\n")
            else:
                rules.append(f"{prelude}{{{block}}}\n")
            continue
        selectors = [sel.strip() for sel in split_top_level(prelude, ",") if sel.strip()]
        used = [sel for sel in selectors if selector_used(sel, soup, safelist)]
        if used:
            rules.append(f"{', '.join(used)}{{{block}}}\n")
            continue
        variables = custom_properties(block)
        if variables:
            rules.append(f"{prelude}{{{variables}}}\n")
    return rules


def purge_css(css: str, html_text: str, safelist: tuple[str, ...] = SAFELIST_CLASSES) -> str:
    """Drop rules whose selectors match nothing in ``html_text``.

    Custom property declarations always survive, even when the rule that
    holds them is otherwise unused.
    """
    soup = BeautifulSoup(html_text, "html.parser")
    return "".join(_purge(COMMENT_RE.sub("", css), soup, _safelist_re(safelist)))


def minify_css(css: str) -> str:
    return csscompressor.compress(css)


def optimize_css(css: str, html_text: str) -> str:
    return minify_css(purge_css(css, html_text))
