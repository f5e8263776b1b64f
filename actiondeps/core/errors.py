"""Error taxonomy for actions-dependency-submission."""


class ActionDepsError(Exception):
    """Base exception for all actiondeps errors."""


class ConfigError(ActionDepsError):
    """Raised when required configuration is missing or invalid."""


class ParseFailure(ActionDepsError):
    """Raised when a workflow or action file cannot be read or parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"cannot parse {path}: {reason}")


class PathTraversalRejected(ActionDepsError):
    """Raised when a local reference resolves outside the repository root."""

    def __init__(self, reference: str, resolved: str):
        self.reference = reference
        self.resolved = resolved
        super().__init__(f"local reference {reference!r} escapes repository root ({resolved})")


class LookupFailure(ActionDepsError):
    """Raised when the fork lookup cannot answer for a repository."""

    def __init__(self, owner: str, repo: str, reason: str):
        self.owner = owner
        self.repo = repo
        self.reason = reason
        super().__init__(f"fork lookup failed for {owner}/{repo}: {reason}")


class SubmissionError(ActionDepsError):
    """Raised when the dependency snapshot could not be submitted."""
