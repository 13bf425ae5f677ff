"""
Unit tests for SoftErrorClassifier.
"""

import pytest

from core.exceptions import PatternCompileException
from models.target import Target
from services.watch.classifier import SoftErrorClassifier, compile_pattern


class TestSoftErrorClassifier:
    @pytest.fixture
    def classifier(self):
        return SoftErrorClassifier()

    def test_accepts_normal_page(self, classifier, sample_target, make_result):
        retry, cause = classifier.should_retry(make_result(), [], sample_target)
        assert retry is False
        assert cause == ""

    @pytest.mark.parametrize("status", [301, 404, 500, 503])
    def test_non_2xx_is_retried(self, classifier, sample_target, make_result, status):
        retry, cause = classifier.should_retry(make_result(status_code=status), [], sample_target)
        assert retry is True
        assert cause.startswith(f"statuscode is {status}")

    def test_status_text_included(self, classifier, sample_target, make_result):
        _, cause = classifier.should_retry(make_result(status_code=503), [], sample_target)
        assert cause == "statuscode is 503 - Service Unavailable"

    @pytest.mark.parametrize(
        "body, global_patterns",
        [
            (b"", []),
            (b"<h1>502 Bad Gateway</h1>", []),
            (b"site under maintenance", ["maintenance"]),
        ],
    )
    def test_status_code_wins_over_body_checks(
        self, classifier, sample_target, make_result, body, global_patterns
    ):
        result = make_result(status_code=500, body=body)
        retry, cause = classifier.should_retry(result, global_patterns, sample_target)
        assert retry is True
        assert cause == "statuscode is 500 - Internal Server Error"

    def test_empty_body_is_terminal(self, classifier, sample_target, make_result):
        retry, cause = classifier.should_retry(make_result(body=b""), [], sample_target)
        assert retry is False
        assert cause == "zero length body"

    def test_hardcoded_nginx_marker(self, classifier, sample_target, make_result):
        body = b"<html><center><h1>502 Bad Gateway</h1></center></html>"
        retry, cause = classifier.should_retry(make_result(body=body), [], sample_target)
        assert retry is True
        assert "hardcoded pattern" in cause

    def test_hardcoded_markers_can_be_skipped(self, classifier, sample_target_data, make_result):
        target = Target(**sample_target_data, skip_soft_error_patterns=True)
        body = b"<h1>502 Bad Gateway</h1>"
        retry, _ = classifier.should_retry(make_result(body=body), [], target)
        assert retry is False

    def test_global_pattern_checked_before_target_pattern(
        self, classifier, sample_target_data, make_result
    ):
        target = Target(**sample_target_data, retry_on_match=["maintenance"])
        body = b"site under maintenance"
        retry, cause = classifier.should_retry(make_result(body=body), ["under"], target)
        assert retry is True
        assert cause == "matches the global pattern 'under'"

    def test_target_pattern(self, classifier, sample_target_data, make_result):
        target = Target(**sample_target_data, retry_on_match=["maint[a-z]+"])
        retry, cause = classifier.should_retry(
            make_result(body=b"site under maintenance"), [], target
        )
        assert retry is True
        assert cause == "matches the pattern 'maint[a-z]+'"

    def test_invalid_pattern_raises(self, classifier, sample_target_data, make_result):
        target = Target(**sample_target_data, retry_on_match=["(unclosed"])
        with pytest.raises(PatternCompileException):
            classifier.should_retry(make_result(), [], target)

    def test_classification_is_deterministic(self, classifier, sample_target, make_result):
        result = make_result(body=b"Faithfully yours, nginx.")
        first = classifier.should_retry(result, ["x"], sample_target)
        second = classifier.should_retry(result, ["x"], sample_target)
        assert first == second


def test_compile_pattern_matches_bytes():
    assert compile_pattern(r"\d+").search(b"abc 123")
