"""
DiffGenerator compares two artifacts with `git diff` and classifies the
unified diff output line by line.
"""
import asyncio
import os
import re
import tempfile
from typing import Optional

from core import constants
from core.config import settings
from core.exceptions import DiffToolException
from core.logger import get_logger
from models.diff import Diff, DiffLine, LineMode

logger = get_logger(__name__)

INDEX_RE = re.compile(r"^index [A-Fa-f0-9]+\.\.[A-Fa-f0-9]+ [0-9]+$")

GIT_DIFF_ARGS = (
    "diff",
    "--no-color",  # output is parsed manually
    "--no-index",  # plain files, no repository
    "--text",  # treat files as text
    "-w",  # ignore whitespace
    "-b",  # ignore changes in amount of whitespace
)


def parse_unified_diff(raw: str) -> Diff:
    """
    Classifies unified diff output.

    Framing lines (diff --git, index, ---, +++) are dropped, hunk headers
    become metadata lines.
    """
    diff = Diff()
    lines = raw.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    for text in lines:
        text = text.rstrip("\r")
        if text.startswith("diff --git"):
            continue
        if INDEX_RE.match(text):
            continue
        if text.startswith("---") or text.startswith("+++"):
            continue

        if text.startswith("@@"):
            mode = LineMode.METADATA
        elif text.startswith("-"):
            mode = LineMode.DELETED
        elif text.startswith("+"):
            mode = LineMode.ADDED
        else:
            mode = LineMode.UNCHANGED
        diff.lines.append(DiffLine(content=text, mode=mode))
    return diff


class DiffGenerator:
    def __init__(self, git_binary: str = "git", timeout: Optional[float] = None):
        self.git_binary = git_binary
        self.timeout = timeout or settings.DIFF_TIMEOUT

    async def generate(self, old: str, new: str) -> Diff:
        """
        Generates a structured diff between two texts.

        Raises:
            DiffToolException: If git fails, exits with a code other than 0/1 or times out
        """
        raw = await self._diff_git(old, new)
        diff = parse_unified_diff(raw)
        logger.debug(
            f"[DIFF] {diff.count(LineMode.ADDED)} added, {diff.count(LineMode.DELETED)} deleted"
        )
        return diff

    async def _diff_git(self, old: str, new: str) -> str:
        with tempfile.TemporaryDirectory(prefix=constants.DIFF_TEMP_PREFIX) as tmpdir:
            old_path = os.path.join(tmpdir, "old")
            new_path = os.path.join(tmpdir, "new")
            out_path = os.path.join(tmpdir, "diff.txt")

            # Trailing newline so git does not complain about a missing one
            for path, text in ((old_path, old), (new_path, new)):
                with open(path, "w", encoding="utf-8") as f:
                    f.write(f"{text}\n")

            try:
                proc = await asyncio.create_subprocess_exec(
                    self.git_binary,
                    *GIT_DIFF_ARGS,
                    f"--output={out_path}",
                    old_path,
                    new_path,
                    cwd=tmpdir,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                raise DiffToolException(f"could not execute git diff: {e}")

            try:
                _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()
                raise DiffToolException(f"git diff timed out after {self.timeout}s")
            except asyncio.CancelledError:
                proc.kill()
                await proc.wait()
                raise

            # exit code 0 = no differences, 1 = differences found
            if proc.returncode not in (0, 1):
                raise DiffToolException(
                    f"could not execute git diff: exit code {proc.returncode}",
                    {"stderr": stderr.decode("utf-8", errors="replace").strip()},
                )

            if not os.path.exists(out_path):
                return ""
            try:
                with open(out_path, "r", encoding="utf-8", errors="replace") as f:
                    return f.read()
            except OSError as e:
                raise DiffToolException(f"could not read diff output: {e}")


async def is_git_installed(git_binary: str = "git") -> bool:
    """Checks that the git binary used for diffing is available."""
    try:
        proc = await asyncio.create_subprocess_exec(
            git_binary,
            "--version",
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError:
        return False
    return await proc.wait() == 0
