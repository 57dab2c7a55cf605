"""Tests for markdown processing, sanitizing and the TOC markup."""

import pytest

from mdsite.content import TocEntry
from mdsite.render import process_markdown, render_template, render_toc, sanitize_html


class TestProcessMarkdown:
    def test_splits_front_matter_and_renders_body(self):
        processed = process_markdown("---\ntitle: Post\n---\n# Post\n\nSome *text*.\n")
        assert processed.attrs.title == "Post"
        assert processed.body.startswith("# Post")
        assert "<em>text</em>" in processed.html
        assert [h.text for h in processed.headings] == ["Post"]

    def test_heading_anchors_match_toc_slugs(self):
        body = "# Getting Started!\n\n## Step 2: Build\n\n### Final Notes\n"
        processed = process_markdown(body)
        for heading in processed.headings:
            assert f'id="{heading.slug}"' in processed.html

    def test_inline_markup_in_headings_matches_anchors(self):
        body = "## See [the docs](https://x.com/a)\n\n## _Why_ it matters\n\n## A &amp; B\n\n## Closed ##\n"
        processed = process_markdown(body)
        assert [h.slug for h in processed.headings] == ["see-the-docs", "why-it-matters", "a-b", "closed"]
        for heading in processed.headings:
            assert f'id="{heading.slug}"' in processed.html

    def test_span_style_is_kept(self):
        processed = process_markdown('Some <span style="color: red">red</span> words.\n')
        assert '<span style="color: red">red</span>' in processed.html

    def test_style_on_other_elements_is_removed(self):
        processed = process_markdown('<div style="color: red">boxed</div>\n\nText <b style="color: red">bold</b>\n')
        assert "boxed" in processed.html
        assert "bold" in processed.html
        assert "style=" not in processed.html

    def test_scripts_are_removed(self):
        processed = process_markdown("Hello\n\n<script>alert(1)</script>\n")
        assert "<script" not in processed.html
        assert "alert(1)" not in processed.html

    def test_fenced_code(self):
        processed = process_markdown("```\nprint('hi')\n```\n")
        assert "<pre" in processed.html
        assert "print" in processed.html


class TestSanitizeHtml:
    def test_javascript_links_are_dropped(self):
        result = sanitize_html('<a href="javascript:alert(1)">x</a>')
        assert "javascript:" not in result
        assert ">x</a>" in result

    @pytest.mark.parametrize(
        "href",
        [
            "java&#x09;script:alert(1)",
            "java&#x0A;script:alert(1)",
            " &#x01;javascript:alert(1)",
            "JaVaScRiPt:alert(1)",
        ],
    )
    def test_obfuscated_javascript_links_are_dropped(self, href):
        result = sanitize_html(f'<a href="{href}">x</a>')
        assert "href" not in result
        assert ">x</a>" in result

    def test_ordinary_links_are_kept(self):
        result = sanitize_html('<a href="https://example.com/a b">x</a>')
        assert 'href="https://example.com/a b"' in result

    def test_event_handlers_are_dropped(self):
        result = sanitize_html('<img src="a.png" onerror="alert(1)">')
        assert "onerror" not in result
        assert 'src="a.png"' in result

    def test_unknown_tags_are_unwrapped(self):
        result = sanitize_html("<p><marquee>moving</marquee></p>")
        assert "marquee" not in result
        assert "moving" in result


class TestRenderToc:
    def test_empty_renders_nothing(self):
        assert render_toc([]) == ""

    def test_flat_list_with_indent(self):
        entries = [
            TocEntry(level=1, text="Intro", slug="intro"),
            TocEntry(level=3, text="Deep", slug="deep"),
            TocEntry(level=2, text="Back", slug="back"),
        ]
        toc = render_toc(entries)
        assert toc.startswith('<nav class="toc"><ul>')
        assert toc.count("<li") == 3
        assert 'style="--indent: 0"' in toc
        assert 'style="--indent: 2"' in toc
        assert toc.index("#intro") < toc.index("#deep") < toc.index("#back")
        assert "<ul><li" in toc and "<ul>" not in toc[len('<nav class="toc"><ul>') :]

    def test_entry_text_is_escaped(self):
        toc = render_toc([TocEntry(level=2, text="a < b", slug="a-b")])
        assert "a &lt; b" in toc


class TestRenderTemplate:
    def test_bound_values_are_not_expanded(self):
        result = render_template("{{title}}|{{content}}", title="{{content}}", content="{{title}}")
        assert result == "{{content}}|{{title}}"

    def test_unknown_placeholders_are_left_alone(self):
        assert render_template("{{title}} {{missing}}", title="T") == "T {{missing}}"
