"""Flatten ``components.schemas`` into a list of :class:`~apinav.models.NormalizedSchema`."""

from __future__ import annotations

from typing import Any, Optional

from apinav.models import NormalizedSchema
from apinav.parser.examples import pick_extensions
from apinav.parser.slugs import SlugFactory


def normalize_schemas(
    raw_schemas: Any, slug_factory: Optional[SlugFactory] = None
) -> list[NormalizedSchema]:
    """Build one :class:`~apinav.models.NormalizedSchema` per component schema.

    Schema bodies are kept raw; resolution happens later, per schema, in
    :func:`~apinav.runtime.artifacts.build_runtime_artifacts`.

    Args:
        raw_schemas: The ``components.schemas`` mapping.  Anything else
            yields an empty list.
        slug_factory: Schema-scoped slug factory.  A fresh one is created
            when omitted.

    Returns:
        Schemas in document order with unique slugs (``User`` and
        ``user_`` become ``user`` and ``user-2``).
    """
    if not isinstance(raw_schemas, dict):
        return []
    slugs = slug_factory or SlugFactory("schema")

    result: list[NormalizedSchema] = []
    for name, schema in raw_schemas.items():
        name = str(name)
        body = schema if isinstance(schema, dict) else {}
        description = body.get("description")
        result.append(
            NormalizedSchema(
                name=name,
                slug=slugs(name, name),
                schema_=body,
                description=description if isinstance(description, str) else None,
                extensions=pick_extensions(body),
            )
        )
    return result
