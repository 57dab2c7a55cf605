from __future__ import annotations

import argparse
import shutil
import sys
import time
from pathlib import Path, PurePosixPath
from typing import Optional

from .config import SiteConfig, find_config, load_config, load_stylesheet, read_cname, resolve_host, site_config
from .content import INDEX_FILE, ContentError
from .pages import (
    FeedItem,
    build_feed,
    build_llms_txt,
    build_page,
    build_robots,
    build_sitemap,
    is_feed_item,
)
from .render import copy_static, read_template, write_text
from .utils import clean_output_dir, site_url, write_nojekyll


class BuildError(Exception):
    """One or more documents could not be built."""

    def __init__(self, failures: list[tuple[str, Exception]]):
        self.failures = failures
        super().__init__(f"{len(failures)} document(s) failed to build")


def discover_documents(content_dir: Path) -> list[Path]:
    return sorted((path for path in content_dir.rglob("*.md") if path.is_file()), key=lambda p: p.as_posix())


def html_output_path(output_dir: Path, rel: str) -> Path:
    # foo.md -> foo/index.html, index.md -> index.html
    if rel == INDEX_FILE:
        return output_dir / "index.html"
    return output_dir / PurePosixPath(rel).with_suffix("").as_posix() / "index.html"


def build_site(config: SiteConfig, host: Optional[str] = None, project_root: Optional[Path] = None) -> int:
    project_root = project_root or Path.cwd()
    content_dir = config.content_dir
    output_dir = config.output_dir
    host = resolve_host(host, config)

    print("Building static site...")
    print(f"  Content: {content_dir}")
    print(f"  Output:  {output_dir}")
    print(f"  Host:    {host}")

    if not content_dir.is_dir():
        print(f"Content directory not found: {content_dir}", file=sys.stderr)
        sys.exit(1)

    clean_output_dir(
        output_dir,
        project_root,
        sources=(content_dir,),
        inputs=(config.css_file, config.static_dir, config.cname_file),
    )
    output_dir.mkdir(parents=True, exist_ok=True)

    css = load_stylesheet(config)
    template = read_template()

    urls: list[str] = []
    md_urls: list[str] = []
    feed_items: list[FeedItem] = []
    failures: list[tuple[str, Exception]] = []
    page_count = 0
    for md_path in discover_documents(content_dir):
        rel = md_path.relative_to(content_dir).as_posix()
        is_index = rel == INDEX_FILE
        content = md_path.read_text(encoding="utf-8")
        try:
            result = build_page(
                content,
                css=css,
                host=host,
                md_file=rel,
                is_index=is_index,
                config=config,
                minify=config.minify,
                template=template,
            )
        except ContentError as exc:
            print(f"  {rel}: {exc}", file=sys.stderr)
            failures.append((rel, exc))
            continue

        urls.append(result.canonical_url)
        md_urls.append(site_url(host, rel))
        if is_feed_item(result, rel, is_index):
            feed_items.append(FeedItem(title=result.title, url=result.canonical_url, desc=result.desc, date=result.date))

        html_path = html_output_path(output_dir, rel)
        write_text(html_path, result.html)
        # Raw source next to the pages for `curl | less`.
        raw_path = output_dir / rel
        raw_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(md_path, raw_path)

        print(f"  {rel} -> {html_path.relative_to(output_dir).as_posix()}")
        page_count += 1

    if failures:
        raise BuildError(failures)

    if copy_static(config.static_dir, output_dir / "static"):
        print("  Copied static files")
    else:
        print("  No static directory found, skipping")

    cname = read_cname(config.cname_file)
    if cname:
        write_text(output_dir / "CNAME", cname)
        print(f"  CNAME: {cname}")

    write_nojekyll(output_dir)
    print("  Generated .nojekyll")

    build_sitemap(output_dir, urls)
    print(f"  Generated sitemap.xml ({len(urls)} URLs)")
    build_llms_txt(output_dir, md_urls, config)
    print(f"  Generated llms.txt ({len(md_urls)} files)")
    build_feed(output_dir, feed_items, host, config)
    print(f"  Generated feed.xml ({len(feed_items)} items)")
    build_robots(output_dir, host)
    print("  Generated robots.txt")

    print(f"\nBuild complete: {page_count} pages generated")
    return page_count


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Build the static site from Markdown content.")
    parser.add_argument(
        "host",
        nargs="?",
        default=None,
        help="Host used for canonical URLs (defaults to the CNAME file, then localhost).",
    )
    args = parser.parse_args(argv)

    project_root = Path.cwd()
    config_path = find_config(project_root)
    if config_path is None:
        config = SiteConfig()
    else:
        config = site_config(load_config(config_path), config_path.parent)

    start = time.perf_counter()
    try:
        build_site(config, host=args.host, project_root=project_root)
    except BuildError as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        sys.exit(1)
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
