"""Exception hierarchy for apinav.

All exceptions inherit from :class:`ApinavError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`apinav.exit_codes`.
The top-level error handler in :func:`apinav.app.main` catches
``ApinavError`` and exits with the appropriate code.

Only document-level failures are raised.  Problems with individual items
(a malformed path item, an unresolvable ``$ref``, an unreadable chunk file)
are logged and skipped by the pipeline instead.

Subclass hierarchy::

    ApinavError (exit 1)
    +-- SourceFetchError     (exit 6)
    +-- SpecParseError       (exit 7)
    +-- RouteCollisionError  (exit 4)
    +-- ArtifactWriteError   (exit 1)
    +-- ConfigError          (exit 1)
"""

from apinav.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_ROUTE_COLLISION,
    EXIT_SOURCE_FETCH_ERROR,
    EXIT_SPEC_PARSE_ERROR,
)


class ApinavError(Exception):
    """Base exception for all apinav errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class SourceFetchError(ApinavError):
    """Raised when the document cannot be fetched or read.

    Covers unreachable hosts, non-2xx responses, exceeded byte or time
    limits, and unreadable local files.  Messages name the source and the
    proximate cause but never include request header values.
    """

    exit_code = EXIT_SOURCE_FETCH_ERROR

    def __init__(self, source: str, reason: str):
        super().__init__(f"Unable to load OpenAPI document from {source}: {reason}")
        self.source = source
        self.reason = reason


class SpecParseError(ApinavError):
    """Raised when the document is not valid JSON/YAML or not an object at the top level."""

    exit_code = EXIT_SPEC_PARSE_ERROR

    def __init__(self, source: str, reason: str):
        super().__init__(f"Failed to parse OpenAPI document at {source}: {reason}")
        self.source = source
        self.reason = reason


class RouteCollisionError(ApinavError):
    """Raised when a tag or operation slug collides with a reserved route name."""

    exit_code = EXIT_ROUTE_COLLISION

    def __init__(self, message: str, slug: str):
        super().__init__(message)
        self.slug = slug


class ArtifactWriteError(ApinavError):
    """Raised when a runtime artifact file cannot be written."""

    exit_code = EXIT_GENERIC_FAILURE

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to write runtime artifact {path}: {reason}")
        self.path = path


class ConfigError(ApinavError):
    """Raised for configuration problems (missing file, invalid JSON/YAML, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE
