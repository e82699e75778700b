"""Error classification for item mutations.

Host APIs raise host-specific exception types, so classification works on
the message text (plus a few generic builtin types). The kind decides
whether the retry policy tries again:

- transient: timeouts, rate limiting, connectivity - retried
- validation: malformed input, missing resources - not retried
- partial: item-level refusal (locked, read-only, wrong node type) - not retried
- persistent: permission problems and anything unrecognized - not retried

Unknown failures default to persistent so an unexpected error can never
cause an unbounded retry loop.
"""

from __future__ import annotations

from restyle.contracts.enums import ErrorKind
from restyle.contracts.errors import (
    HostContractError,
    MutationAttemptError,
    NodeNotFoundError,
    SourceReferenceNotFoundError,
    WrongNodeTypeError,
)

# Checked in order; the first kind with a matching pattern wins.
TRANSIENT_PATTERNS: tuple[str, ...] = (
    "timeout",
    "timed out",
    "429",
    "503",
    "rate limit",
    "too many requests",
    "network",
    "connection",
)

VALIDATION_PATTERNS: tuple[str, ...] = (
    "invalid",
    "not found",
    "does not exist",
    "cannot be the same",
)

PARTIAL_PATTERNS: tuple[str, ...] = (
    "locked",
    "read-only",
    "not a text",
    "wrong node type",
)

PERSISTENT_PATTERNS: tuple[str, ...] = (
    "permission",
    "access denied",
    "unauthorized",
    "forbidden",
)

# restyle's own item errors embed ids in their messages, so they are classified
# by type before any message matching.
_OWN_ERROR_KINDS: tuple[tuple[type[Exception], ErrorKind], ...] = (
    (NodeNotFoundError, ErrorKind.VALIDATION),
    (SourceReferenceNotFoundError, ErrorKind.VALIDATION),
    (WrongNodeTypeError, ErrorKind.PARTIAL),
    (HostContractError, ErrorKind.PERSISTENT),
)

_PATTERN_TABLE: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (ErrorKind.TRANSIENT, TRANSIENT_PATTERNS),
    (ErrorKind.VALIDATION, VALIDATION_PATTERNS),
    (ErrorKind.PARTIAL, PARTIAL_PATTERNS),
    (ErrorKind.PERSISTENT, PERSISTENT_PATTERNS),
)


def classify_error(error: BaseException) -> ErrorKind:
    """Map a raised failure to an ErrorKind.

    Args:
        error: Any exception raised by a host call or by restyle itself

    Returns:
        The ErrorKind; PERSISTENT when nothing matches
    """
    if isinstance(error, MutationAttemptError):
        return error.kind
    for error_type, kind in _OWN_ERROR_KINDS:
        if isinstance(error, error_type):
            return kind
    if isinstance(error, (TimeoutError, ConnectionError)):
        return ErrorKind.TRANSIENT
    if isinstance(error, PermissionError):
        return ErrorKind.PERSISTENT

    message = str(error).lower()
    for kind, patterns in _PATTERN_TABLE:
        if any(pattern in message for pattern in patterns):
            return kind
    return ErrorKind.PERSISTENT


def is_retryable(error: BaseException) -> bool:
    """True only for transient failures."""
    return classify_error(error).retryable


def format_error_message(error: BaseException, context: str | None = None) -> str:
    """User-facing wording for a failure, keyed on its classification."""
    prefix = f"{context}: " if context else ""
    kind = classify_error(error)
    if kind is ErrorKind.TRANSIENT:
        return f"{prefix}Temporary issue ({error}). Please try again."
    if kind is ErrorKind.VALIDATION:
        return f"{prefix}Invalid input ({error}). Please verify your selection."
    if kind is ErrorKind.PARTIAL:
        return f"{prefix}Some items could not be processed ({error})."
    return f"{prefix}Operation cannot complete ({error}). Please check permissions and settings."
