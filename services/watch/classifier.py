"""
SoftErrorClassifier decides whether a response is usable or should be retried.
"""
import re
from http import HTTPStatus
from typing import Iterable, Tuple

from core import constants
from core.exceptions import PatternCompileException
from models.fetch import FetchResult
from models.target import Target


def compile_pattern(pattern: str, scope: str = "") -> "re.Pattern[bytes]":
    """Compiles a configured regex for matching raw bodies."""
    try:
        return re.compile(pattern.encode("utf-8"))
    except re.error as e:
        raise PatternCompileException(
            f"could not compile {scope + ' ' if scope else ''}pattern {pattern!r}: {e}",
            {"pattern": pattern},
        )


def _status_text(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""


class SoftErrorClassifier:
    """
    Inspects a response and decides "usable" vs "should retry".

    Decision order (first match wins):
    1. Non-2xx status code -> retry
    2. Empty body -> accept (zero length bodies are terminal, not soft errors)
    3. Hardcoded soft error markers (unless the target opts out) -> retry
    4. Global retry_on_match patterns, then the target's own -> retry
    5. Otherwise accept
    """

    def __init__(self, soft_error_patterns: Iterable[str] = constants.SOFT_ERROR_PATTERNS):
        self.soft_error_patterns = tuple(p.encode("utf-8") for p in soft_error_patterns)

    def should_retry(
        self,
        result: FetchResult,
        global_patterns: Iterable[str],
        target: Target,
    ) -> Tuple[bool, str]:
        """
        Returns (retry, cause). The cause is informational when retry is False.

        Raises:
            PatternCompileException: If a retry_on_match pattern is invalid
        """
        if not 200 <= result.status_code < 300:
            return True, f"statuscode is {result.status_code} - {_status_text(result.status_code)}"

        if not result.body:
            return False, "zero length body"

        if not target.skip_soft_error_patterns:
            for marker in self.soft_error_patterns:
                if marker in result.body:
                    return True, f"matches the hardcoded pattern {marker.decode('utf-8')!r}"

        for pattern in global_patterns:
            if compile_pattern(pattern, "global").search(result.body):
                return True, f"matches the global pattern {pattern!r}"

        for pattern in target.retry_on_match:
            if compile_pattern(pattern).search(result.body):
                return True, f"matches the pattern {pattern!r}"

        return False, ""
