"""GitRepository — subprocess-based git operations scoped to one unit's files."""

import logging
import re
import subprocess
from pathlib import Path

from gatewright.errors import VCSError

logger = logging.getLogger(__name__)

# "[main 1a2b3c4] message" or "[main (root-commit) 1a2b3c4] message"
_COMMIT_SUMMARY = re.compile(r"^\[[^\]]*?([0-9a-f]{7,40})\]", re.MULTILINE)


class GitRepository:
    """Stages and commits exactly the files handed to it."""

    def __init__(self, repo_root: Path, timeout_seconds: float = 300) -> None:
        self._repo_root = repo_root
        self._timeout = timeout_seconds

    @property
    def root(self) -> Path:
        return self._repo_root

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess[str]:
        """Run a git command, raising VCSError if it cannot be launched."""
        try:
            return subprocess.run(
                cmd,
                cwd=self._repo_root,
                capture_output=True,
                text=True,
                check=False,
                timeout=self._timeout,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise VCSError(str(exc)) from exc

    def _checked(self, cmd: list[str]) -> str:
        result = self._run(cmd)
        if result.returncode != 0:
            raise VCSError(result.stderr.strip() or f"{' '.join(cmd)} exited {result.returncode}")
        return result.stdout

    def is_repository(self) -> bool:
        """Return True if the root is inside a git work tree."""
        try:
            return self._checked(["git", "rev-parse", "--is-inside-work-tree"]).strip() == "true"
        except VCSError:
            return False

    def head(self) -> str:
        """Return the current commit hash.

        Raises:
            VCSError: If the git command fails.
        """
        return self._checked(["git", "rev-parse", "HEAD"]).strip()

    def stage(self, paths: list[str]) -> None:
        """Stage exactly these paths."""
        if not paths:
            raise VCSError("nothing to stage")
        self._checked(["git", "add", "--", *paths])

    def unstage(self, paths: list[str]) -> None:
        """Best-effort removal of paths from the index; the working tree is untouched."""
        if not paths:
            return
        try:
            self._checked(["git", "reset", "-q", "--", *paths])
        except VCSError as e:
            logger.warning("could not unstage %s: %s", ", ".join(paths), e)

    def commit(self, message: str, paths: list[str]) -> str | None:
        """Commit only ``paths`` (other staged changes stay staged) and return the new ref.

        Once git has accepted the commit this never raises. If HEAD cannot be read
        back, the abbreviated hash from git's summary line is returned instead, or
        None when that is missing too.

        Raises:
            VCSError: If the commit itself fails.
        """
        if not paths:
            raise VCSError("nothing to commit")
        output = self._checked(["git", "commit", "-m", message, "--", *paths])
        try:
            return self.head()
        except VCSError as e:
            match = _COMMIT_SUMMARY.search(output)
            logger.warning("committed, but could not read HEAD back: %s", e)
            return match.group(1) if match else None
