from __future__ import annotations

import datetime as dt
import html
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from .config import SiteConfig
from .content import ABOUT_FILE, INDEX_FILE, extract_title, format_date, parse_date
from .css import optimize_css
from .render import ProcessedMarkdown, process_markdown, read_template, render_template, render_toc, write_text
from .utils import rfc822_date, site_url, to_utc


@dataclass
class PageResult:
    html: str
    canonical_url: str
    title: Optional[str]
    desc: str
    # As written in the front matter; display_date is the formatted form.
    date: Optional[str]
    display_date: Optional[str] = None


@dataclass
class FeedItem:
    title: str
    url: str
    desc: str
    date: str


def canonical_url(host: str, md_file: str, is_index: bool) -> str:
    if is_index:
        return site_url(host) + "/"
    path = PurePosixPath(md_file)
    return site_url(host, path.with_suffix("").as_posix()) + "/"


def render_page(
    template: str,
    config: SiteConfig,
    *,
    content: str,
    toc: str,
    css: str,
    host: str,
    md_file: str,
    url: str,
    title: Optional[str],
    desc: str,
    display_date: Optional[str],
) -> str:
    page_title = f"{config.site_name} | {title}" if title else config.site_name
    date_html = f"<p>{html.escape(display_date)}</p>" if display_date else ""
    return render_template(
        template,
        page_title=html.escape(page_title),
        site_name=html.escape(config.site_name),
        site_author=html.escape(config.site_author),
        description=html.escape(desc),
        canonical_url=url,
        og_type="article" if title else "website",
        raw_url=site_url(host, md_file),
        feed_url=site_url(host, "feed.xml"),
        github_url=html.escape(config.github_url),
        date_html=date_html,
        css=css,
        toc=toc,
        content=content,
    )


def assemble_page(
    processed: ProcessedMarkdown,
    *,
    css: str,
    host: str,
    md_file: str,
    is_index: bool,
    config: SiteConfig,
    minify: bool = False,
    template: Optional[str] = None,
) -> PageResult:
    template = template if template is not None else read_template()
    url = canonical_url(host, md_file, is_index)
    title = None if is_index else extract_title(processed.attrs, processed.body)
    desc = processed.attrs.desc or config.site_description
    raw_date = processed.attrs.date
    display_date = format_date(raw_date) if raw_date else None

    def render(stylesheet: str) -> str:
        return render_page(
            template,
            config,
            content=processed.html,
            toc=render_toc(processed.headings),
            css=stylesheet,
            host=host,
            md_file=md_file,
            url=url,
            title=title,
            desc=desc,
            display_date=display_date,
        )

    page_html = render(css)
    if minify:
        # Pruning needs the final markup, so render once more with the reduced stylesheet.
        page_html = render(optimize_css(css, page_html))
    return PageResult(
        html=page_html,
        canonical_url=url,
        title=title,
        desc=desc,
        date=raw_date,
        display_date=display_date,
    )


def build_page(
    content: str,
    *,
    css: str,
    host: str,
    md_file: str,
    is_index: bool,
    config: SiteConfig,
    minify: bool = False,
    template: Optional[str] = None,
) -> PageResult:
    return assemble_page(
        process_markdown(content),
        css=css,
        host=host,
        md_file=md_file,
        is_index=is_index,
        config=config,
        minify=minify,
        template=template,
    )


def is_feed_item(result: PageResult, md_file: str, is_index: bool) -> bool:
    return bool(result.title and result.date and not is_index and md_file != ABOUT_FILE)


def sort_markdown_urls(urls: list[str]) -> list[str]:
    """Index first, about second, everything else by file name."""

    def key(url: str) -> tuple:
        name = url.rsplit("/", 1)[-1]
        rank = {INDEX_FILE: 0, ABOUT_FILE: 1}.get(name, 2)
        return rank, name.casefold(), name

    return sorted(urls, key=key)


def feed_timestamp(value: str) -> Optional[dt.datetime]:
    parsed = parse_date(value)
    return to_utc(parsed) if parsed else None


def sort_feed_items(items: list[FeedItem]) -> list[FeedItem]:
    """Newest first; items whose date can't be parsed go last, in build order."""
    dated = []
    undated = []
    for item in items:
        timestamp = feed_timestamp(item.date)
        if timestamp is None:
            undated.append(item)
        else:
            dated.append((timestamp, item))
    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in dated] + undated


def build_sitemap(output_dir: Path, urls: list[str]) -> None:
    items = [f"  <url>\n    <loc>{html.escape(url, quote=False)}</loc>\n  </url>" for url in urls]
    sitemap = "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
            *items,
            "</urlset>",
            "",
        ]
    )
    write_text(output_dir / "sitemap.xml", sitemap)


def build_llms_txt(output_dir: Path, md_urls: list[str], config: SiteConfig) -> None:
    lines = [f"- {url}" for url in sort_markdown_urls(md_urls)]
    text = "\n".join(
        [
            f"# {config.site_name}",
            "",
            f"> {config.site_description}",
            "",
            *lines,
            "",
        ]
    )
    write_text(output_dir / "llms.txt", text)


def build_feed(output_dir: Path, items: list[FeedItem], host: str, config: SiteConfig) -> None:
    entries = []
    for item in sort_feed_items(items):
        timestamp = feed_timestamp(item.date)
        pub_date = f"      <pubDate>{rfc822_date(timestamp)}</pubDate>" if timestamp else None
        lines = [
            "    <item>",
            f"      <title>{html.escape(item.title, quote=False)}</title>",
            f"      <link>{item.url}</link>",
            f"      <guid>{item.url}</guid>",
            pub_date,
            f"      <description>{html.escape(item.desc, quote=False)}</description>",
            "    </item>",
        ]
        entries.append("\n".join(line for line in lines if line is not None))
    rss = "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
            "  <channel>",
            f"    <title>{html.escape(config.site_name, quote=False)}</title>",
            f"    <link>{site_url(host)}/</link>",
            f"    <description>{html.escape(config.site_description, quote=False)}</description>",
            f'    <atom:link href="{site_url(host, "feed.xml")}" rel="self" type="application/rss+xml"/>',
            *entries,
            "  </channel>",
            "</rss>",
            "",
        ]
    )
    write_text(output_dir / "feed.xml", rss)


def build_robots(output_dir: Path, host: str) -> None:
    robots = "\n".join(
        [
            "User-agent: *",
            "Allow: /",
            "",
            f"Sitemap: {site_url(host, 'sitemap.xml')}",
            "",
        ]
    )
    write_text(output_dir / "robots.txt", robots)

