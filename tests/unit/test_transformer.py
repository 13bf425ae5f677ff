"""
Unit tests for ContentTransformer.
"""

import json

import pytest

from core.exceptions import (
    InvalidResponseException,
    PatternCompileException,
    TransformException,
)
from models.target import Target
from services.watch.transformer import (
    ContentTransformer,
    remove_empty_lines,
    trim_whitespace,
)


@pytest.fixture
def transformer():
    return ContentTransformer()


@pytest.fixture
def target_with(sample_target_data):
    def _make(**kwargs):
        return Target(**{**sample_target_data, **kwargs})

    return _make


class TestWhitespaceStages:
    def test_remove_empty_lines(self):
        assert remove_empty_lines("a\n\n  \n\t\nb") == "a\nb"

    def test_trim_whitespace(self):
        assert trim_whitespace("  a  \n\tb\t") == "a\nb"

    @pytest.mark.parametrize(
        "text",
        ["  a  \n\n\n  b \n", "\n\n x\n", "line\r\n\r\n other  ", ""],
    )
    def test_transform_is_idempotent(self, transformer, target_with, make_result, text):
        target = target_with(remove_empty_lines=True, trim_whitespace=True)
        once = transformer.transform(make_result(body=text.encode()), target)
        twice = transformer.transform(make_result(body=once), target)
        assert once == twice


class TestExtraction:
    def test_pass_through(self, transformer, sample_target, make_result):
        assert transformer.transform(make_result(body=b"raw body"), sample_target) == b"raw body"

    def test_pattern_keeps_first_group(self, transformer, target_with, make_result):
        target = target_with(extraction={"kind": "pattern", "pattern": r"<b>(.+?)</b>"})
        out = transformer.transform(make_result(body=b"x <b>price: 10</b> <b>other</b>"), target)
        assert out == b"price: 10"

    def test_pattern_without_match_is_a_classified_failure(
        self, transformer, target_with, make_result
    ):
        target = target_with(extraction={"kind": "pattern", "pattern": r"<i>(.+)</i>"})
        with pytest.raises(InvalidResponseException) as exc_info:
            transformer.transform(make_result(body=b"nothing here"), target)

        assert "<i>(.+)</i>" in exc_info.value.failure.message
        assert exc_info.value.status_code == 200

    def test_pattern_without_group_does_not_match(self, transformer, target_with, make_result):
        target = target_with(extraction={"kind": "pattern", "pattern": r"nothing"})
        with pytest.raises(InvalidResponseException):
            transformer.transform(make_result(body=b"nothing here"), target)

    def test_pattern_with_unmatched_first_group_is_empty(self, transformer, target_with, make_result):
        target = target_with(extraction={"kind": "pattern", "pattern": r"(x)|(price)"})
        assert transformer.transform(make_result(body=b"the price"), target) == b""

    def test_bad_pattern(self, transformer, target_with, make_result):
        target = target_with(extraction={"kind": "pattern", "pattern": r"(open"})
        with pytest.raises(PatternCompileException):
            transformer.transform(make_result(), target)

    def test_body_extraction(self, transformer, target_with, make_result):
        target = target_with(extraction={"kind": "body"})
        html = b"<html><head><title>t</title></head><body><p>Hi</p></body></html>"
        assert transformer.transform(make_result(body=html), target) == b"<body><p>Hi</p></body>"

    @pytest.mark.parametrize(
        "html, expected",
        [
            (b"<p>hello</p>", b"<body><p>hello</p></body>"),
            (b"<!DOCTYPE html><html><head><title>t</title></head><p>hi</p></html>", b"<body><p>hi</p></body>"),
        ],
    )
    def test_body_extraction_without_body_tag(self, transformer, target_with, make_result, html, expected):
        target = target_with(extraction={"kind": "body"})
        assert transformer.transform(make_result(body=html), target) == expected

    def test_selector_extraction(self, transformer, target_with, make_result):
        target = target_with(extraction={"kind": "selector", "selector": "div.price"})
        html = b'<div class="price">42</div><div class="price">43</div>'
        assert transformer.transform(make_result(body=html), target) == b'<div class="price">42</div>'

    def test_selector_without_match(self, transformer, target_with, make_result):
        target = target_with(extraction={"kind": "selector", "selector": "#missing"})
        with pytest.raises(InvalidResponseException):
            transformer.transform(make_result(), target)


class TestReshape:
    def test_jq(self, transformer, target_with, make_result):
        target = target_with(reshape={"kind": "jq", "query": ".items[] | .name"})
        body = json.dumps({"items": [{"name": "a"}, {"name": "b"}]}).encode()
        out = transformer.transform(make_result(body=body), target)
        assert out == b'[\n  "a",\n  "b"\n]'

    def test_jq_on_invalid_json(self, transformer, target_with, make_result):
        target = target_with(reshape={"kind": "jq", "query": "."})
        with pytest.raises(TransformException) as exc_info:
            transformer.transform(make_result(body=b"<html>"), target)
        assert "no valid json" in str(exc_info.value)

    def test_jq_invalid_query(self, transformer, target_with, make_result):
        target = target_with(reshape={"kind": "jq", "query": ".[[["})
        with pytest.raises(PatternCompileException):
            transformer.transform(make_result(body=b"{}"), target)

    def test_feed(self, transformer, target_with, make_result, sample_feed):
        target = target_with(reshape={"kind": "feed"})
        out = transformer.transform(make_result(body=sample_feed.encode()), target).decode()

        assert out.startswith("Title: Example Feed\n")
        assert "Item:\nTitle: First post\nLink: https://example.com/1\n" in out
        assert "Description: Hello world" in out

    def test_html_to_text_strips_script_and_style(self, transformer, target_with, make_result):
        target = target_with(reshape={"kind": "html2text"})
        html = (
            b"<html><head><style>p { color: red; }</style><script>alert(1)</script></head>"
            b"<body><p>Hello</p></body></html>"
        )
        assert transformer.transform(make_result(body=html), target) == b"Hello"


class TestReplaces:
    def test_rules_apply_in_order(self, transformer, target_with, make_result):
        target = target_with(
            replaces=[
                {"pattern": r"session=\w+", "replace_with": "session=X"},
                {"pattern": r"X", "replace_with": "Y"},
            ]
        )
        out = transformer.transform(make_result(body=b"url?session=abc123"), target)
        assert out == b"url?session=Y"

    def test_group_reference(self, transformer, target_with, make_result):
        target = target_with(replaces=[{"pattern": r"(\d+) visitors", "replace_with": r"\1"}])
        assert transformer.transform(make_result(body=b"17 visitors"), target) == b"17"

    def test_bad_replace_pattern(self, transformer, target_with, make_result):
        target = target_with(replaces=[{"pattern": "[", "replace_with": ""}])
        with pytest.raises(PatternCompileException):
            transformer.transform(make_result(), target)
