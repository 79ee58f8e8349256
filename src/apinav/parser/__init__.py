"""OpenAPI parser -- load, adapt, and normalize a document.

This sub-package is responsible for the first half of the apinav pipeline:
turning a raw OpenAPI document (Swagger 2.0, OpenAPI 3.0 or 3.1; JSON or
YAML; local file or remote URL) into a :class:`~apinav.models.NormalizedSpec`.

Typical usage::

    from apinav.parser import load_document, normalize_document, resolve_spec_source

    source = resolve_spec_source("https://petstore3.swagger.io/api/v3/openapi.json")
    spec = normalize_document(load_document(source), source.url)

Sub-modules:

* :mod:`~apinav.parser.loader` -- I/O layer (URL, file) plus format detection.
* :mod:`~apinav.parser.adapter` -- Swagger 2.0 to OpenAPI 3.x shape.
* :mod:`~apinav.parser.slugs` -- Scoped, collision-free slug generation.
* :mod:`~apinav.parser.resolver` -- On-demand ``$ref`` and ``allOf`` resolution.
* :mod:`~apinav.parser.examples` -- Request/response examples and code samples.
* :mod:`~apinav.parser.schemas` -- Component schema listing.
* :mod:`~apinav.parser.normalizer` -- Walks paths and builds tags and operations.
"""

from apinav.parser.loader import load_document, resolve_spec_source, source_label
from apinav.parser.normalizer import normalize_document

__all__ = ["load_document", "resolve_spec_source", "source_label", "normalize_document"]
