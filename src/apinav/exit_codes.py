"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~apinav.exceptions.ApinavError` subclass.
External tooling (CI scripts, doc-site builds) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ apinav build --spec https://example.com/openapi.yaml --out dist/api
    $ echo $?
    6   # EXIT_SOURCE_FETCH_ERROR -- the document could not be downloaded
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_ROUTE_COLLISION = 4
"""A generated tag or operation slug collides with a reserved route name."""

EXIT_SOURCE_FETCH_ERROR = 6
"""The OpenAPI document could not be fetched or read (network, size, timeout)."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI document could not be parsed as a JSON/YAML object."""
