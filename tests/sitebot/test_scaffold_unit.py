"""Unit tests for scaffold rendering."""

import json

import pytest

from src.sitebot.options import SITE_OPTIONS, get_option
from src.sitebot.scaffold import build_scaffold_files, scaffold_directory


class TestScaffoldFiles:
    @pytest.mark.parametrize("number", sorted(SITE_OPTIONS))
    def test_every_option_renders_three_files(self, number):
        files = build_scaffold_files(get_option(number), 9, "Answer")

        assert list(files) == [
            "sites/issue-9/index.html",
            "sites/issue-9/styles.css",
            "sites/issue-9/app.js",
        ]
        assert all(content.endswith("\n") for content in files.values())

    def test_directory_is_per_issue(self):
        assert scaffold_directory(12) == "sites/issue-12"

    def test_html_links_styles_and_script(self):
        html = build_scaffold_files(get_option(1), 1, "Hello")["sites/issue-1/index.html"]

        assert html.startswith("<!DOCTYPE html>")
        assert '<link rel="stylesheet" href="styles.css">' in html
        assert '<script src="app.js"></script>' in html
        assert '<body class="landing-page">' in html

    def test_answer_becomes_heading_and_title(self):
        html = build_scaffold_files(get_option(3), 1, "  Chores  ")["sites/issue-1/index.html"]

        assert "<title>Chores</title>" in html
        assert "<h1>Chores</h1>" in html

    def test_blank_answer_falls_back_to_option_title(self):
        html = build_scaffold_files(get_option(2), 1, "   ")["sites/issue-1/index.html"]

        assert "<h1>Portfolio site</h1>" in html

    def test_answer_is_html_escaped(self):
        files = build_scaffold_files(get_option(1), 1, '<script>alert("x")</script> & co')
        html = files["sites/issue-1/index.html"]

        assert "<script>alert" not in html
        assert "&lt;script&gt;alert(&quot;x&quot;)&lt;/script&gt; &amp; co" in html

    def test_answer_is_a_js_string_literal(self):
        answer = 'Say "hi"</script>'
        js = build_scaffold_files(get_option(3), 1, answer)["sites/issue-1/app.js"]

        first_line = js.splitlines()[0]
        assert "</script>" not in js
        literal = first_line[len("const SITE_TITLE = "):-1]
        assert json.loads(literal.replace("<\\/", "</")) == answer

    def test_styles_use_option_accent(self):
        css_todo = build_scaffold_files(get_option(3), 1, "x")["sites/issue-1/styles.css"]
        css_landing = build_scaffold_files(get_option(1), 1, "x")["sites/issue-1/styles.css"]

        assert "--accent:" in css_todo
        assert css_todo != css_landing
