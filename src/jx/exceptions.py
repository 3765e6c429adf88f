"""jx exception hierarchy.

All public exceptions inherit from JxError, giving callers a single base
class to catch when they want to handle any jx-specific failure without
swallowing unrelated errors.

Every error may carry a ``chain``: the sequence of coordinates that led
from a declared dependency to the failing artifact. The CLI prints it so a
failure deep in the graph can be traced back to the top-level dependency
that introduced it.
"""

from __future__ import annotations

from collections.abc import Iterable


class JxError(Exception):
    """Base exception for all jx errors."""

    def __init__(self, message: str, *, chain: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.chain: tuple[str, ...] = tuple(chain)

    def with_chain(self, chain: Iterable[str]) -> JxError:
        """Attach a dependency chain unless one is already recorded."""
        if not self.chain:
            self.chain = tuple(chain)
        return self

    def __str__(self) -> str:
        if self.chain:
            return f"{self.message} (via {' -> '.join(self.chain)})"
        return self.message


class NotFoundError(JxError):
    """Raised when a coordinate is absent from every configured repository.

    Permanent: never retried.
    """


class NetworkError(JxError):
    """Raised when a remote repository cannot be reached.

    Covers timeouts, connection failures and HTTP 5xx/429 responses
    (``transient=True``, retried with backoff) as well as other non-404
    HTTP failures (``transient=False``, surfaced immediately). After the
    retry budget is spent, ``attempts`` records how many tries were made.
    """

    def __init__(
        self,
        message: str,
        *,
        transient: bool = True,
        attempts: int = 1,
        status_code: int | None = None,
        chain: Iterable[str] = (),
    ) -> None:
        super().__init__(message, chain=chain)
        self.transient = transient
        self.attempts = attempts
        self.status_code = status_code


class IntegrityError(JxError):
    """Raised when downloaded bytes do not match the expected checksum.

    Never retried silently; the partially written file is discarded.
    """

    def __init__(
        self,
        message: str,
        *,
        expected: str = "",
        actual: str = "",
        chain: Iterable[str] = (),
    ) -> None:
        super().__init__(message, chain=chain)
        self.expected = expected
        self.actual = actual


class ResolutionError(JxError):
    """Raised when dependency resolution cannot produce a graph.

    Covers dependencies without a resolvable version and dynamic versions
    with no available candidate. ``chains`` holds every conflicting chain
    when more than one contributed.
    """

    def __init__(
        self,
        message: str,
        *,
        chain: Iterable[str] = (),
        chains: Iterable[Iterable[str]] = (),
    ) -> None:
        super().__init__(message, chain=chain)
        self.chains: list[tuple[str, ...]] = [tuple(c) for c in chains]


class CycleError(ResolutionError):
    """Raised when a dependency chain loops back to an identity.

    The loop may close through identities resolved on another branch.
    """


class StaleLockError(JxError):
    """Internal signal: the lock file no longer matches the declared set.

    Triggers re-resolution; never shown to users.
    """


class LockfileError(JxError):
    """Raised for unreadable, corrupt or internally inconsistent lock files."""


class ConfigError(JxError):
    """Raised when ``jx.toml`` is missing, malformed or cannot be edited."""
