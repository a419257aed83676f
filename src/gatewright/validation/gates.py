"""Tool invocation — executes a gate's command and captures results."""

import logging
import os
import subprocess
import time
from pathlib import Path

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class InvocationResult(BaseModel):
    """Raw result of running an external command."""

    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    duration_ms: int
    timed_out: bool = False
    error: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def succeeded(self) -> bool:
        """True only for a normal exit with status 0."""
        return self.exit_code == 0 and not self.timed_out and self.error is None

    @property
    def output(self) -> str:
        """Combined stdout and stderr, stripped."""
        parts = [p.strip() for p in (self.stdout, self.stderr) if p and p.strip()]
        return "\n".join(parts)


def run_invocation(
    argv: list[str],
    cwd: Path,
    timeout_seconds: float = 300,
    env: dict[str, str] | None = None,
) -> InvocationResult:
    """Run a command and return its outcome. Never raises.

    Args:
        argv: Command and arguments
        cwd: Working directory for command execution
        timeout_seconds: Command timeout in seconds (default: 300)
        env: Optional environment variables layered over os.environ

    Returns:
        InvocationResult; timeouts and launch errors are reported in-band
    """
    start_time = time.time()

    run_env = os.environ.copy()
    if env:
        run_env.update(env)

    logger.debug("running %s (cwd=%s, timeout=%ss)", " ".join(argv), cwd, timeout_seconds)

    try:
        result = subprocess.run(
            argv,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            env=run_env,
        )
        duration_ms = max(1, int((time.time() - start_time) * 1000))
        return InvocationResult(
            exit_code=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            duration_ms=duration_ms,
        )

    except subprocess.TimeoutExpired as e:
        duration_ms = max(int((time.time() - start_time) * 1000), int(timeout_seconds * 1000))
        return InvocationResult(
            exit_code=None,
            stdout=_decode(e.stdout),
            stderr=_decode(e.stderr),
            duration_ms=duration_ms,
            timed_out=True,
            error=f"timeout after {timeout_seconds}s",
        )

    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug("invocation of %s crashed: %s", argv[:1], e)
        return InvocationResult(
            exit_code=None,
            duration_ms=duration_ms,
            error=f"{type(e).__name__}: {e}",
        )


def _decode(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
