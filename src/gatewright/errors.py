"""Exception taxonomy.

Only UsageError and ArtifactUnreadable are meant to escape their component.
Tool absence, gate failures, unfixable units and commit failures are turned into
structured outcome records where they happen.
"""


class GatewrightError(Exception):
    """Base class for all gatewright errors."""


class UsageError(GatewrightError):
    """Invalid flags, arguments, or configuration. Maps to exit code 2."""


class UnknownUnitError(UsageError):
    """A --unit selector matched no coverage unit."""

    def __init__(self, selector: str, known: list[str] | None = None) -> None:
        self.selector = selector
        self.known = known or []
        message = f"Unknown coverage unit: {selector}"
        if self.known:
            preview = ", ".join(self.known[:5])
            more = f" (+{len(self.known) - 5} more)" if len(self.known) > 5 else ""
            message += f". Known units: {preview}{more}"
        super().__init__(message)


class ArtifactUnreadable(GatewrightError):
    """The coverage artifact is missing or malformed."""

    def __init__(self, path: object, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Coverage artifact unreadable ({path}): {reason}")


class VCSError(GatewrightError):
    """Raised when a git operation fails."""


class GenerationError(GatewrightError):
    """Raised when the test-generation collaborator cannot produce tests."""
