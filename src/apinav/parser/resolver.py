"""Resolve ``$ref`` pointers for component schemas and parameters.

Unlike a whole-document dereference, resolution here happens on demand:
the normalizer resolves each parameter as it merges them, and the runtime
artifact builder resolves each component schema as it writes it out.

Schema resolution (:meth:`SchemaResolver.resolve_schema`):

* ``#/components/schemas/<name>`` pointers, with RFC 6901 unescaping
  (``~1`` -> ``/``, ``~0`` -> ``~``).  Keys written next to a ``$ref``
  override the referenced schema.
* ``allOf`` entries are merged in order: ``properties`` from later entries
  override earlier ones, ``required`` lists are unioned, and the ``allOf``
  key is removed.
* ``properties``, ``items`` and mapping-valued ``additionalProperties`` are
  resolved recursively.
* A missing ``type`` is inferred as ``object`` when ``properties`` exist and
  ``array`` when ``items`` exist.

Cycles are cut with a per-call-stack set of pointers.  When a pointer is met
again while it is still being resolved, its ``$ref`` is dropped and only the
locally written keys are kept.  This is a depth limit, not cycle-aware
merging: a self-referential schema comes back one level deep.

Schemas that reference each other densely still expand combinatorially
without forming a cycle on any one stack, so each top-level call may expand
at most ``max_ref_expansions`` pointers.  Past that, sub-schemas are
returned as written, ``$ref`` included.

Nothing here raises.  An unknown pointer resolves to ``None`` at the top
level and to ``{}`` for nested sub-schemas.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

SCHEMA_REF_PREFIX = "#/components/schemas/"
PARAMETER_REF_PREFIX = "#/components/parameters/"

DEFAULT_MAX_REF_EXPANSIONS = 256


class _ExpansionBudget:
    """Counts ``$ref`` expansions left for one top-level resolution."""

    def __init__(self, remaining: int) -> None:
        self.remaining = remaining
        self.exhausted = False

    def spend(self) -> bool:
        if self.remaining > 0:
            self.remaining -= 1
            return True
        if not self.exhausted:
            self.exhausted = True
            logger.debug("Schema reference expansion limit reached; keeping $ref pointers")
        return False


def decode_ref_name(pointer: Any, prefix: str = SCHEMA_REF_PREFIX) -> Optional[str]:
    """Extract and unescape the component name from a ``$ref`` pointer.

    Args:
        pointer: The ``$ref`` value, e.g. ``"#/components/schemas/Pet"``.
        prefix: The component section the pointer must belong to.

    Returns:
        The decoded name, or ``None`` if *pointer* is not a string or does
        not point into *prefix*.
    """
    if not isinstance(pointer, str):
        return None
    match = re.search(re.escape(prefix) + r"(.+)$", pointer)
    if not match:
        return None
    return match.group(1).replace("~1", "/").replace("~0", "~")


def merge_schema_objects(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge two schema mappings, *override* winning on conflicts.

    ``properties`` are merged key by key and ``required`` arrays are
    unioned (first-seen order).  Any ``allOf`` key is dropped from the
    result because the caller has already folded it in.
    """
    result = {**copy.deepcopy(base), **copy.deepcopy(override)}

    base_props = base.get("properties") if isinstance(base.get("properties"), dict) else {}
    override_props = (
        override.get("properties") if isinstance(override.get("properties"), dict) else {}
    )
    if base_props or override_props:
        result["properties"] = {**copy.deepcopy(base_props), **copy.deepcopy(override_props)}

    base_required = base.get("required") if isinstance(base.get("required"), list) else []
    override_required = (
        override.get("required") if isinstance(override.get("required"), list) else []
    )
    if base_required or override_required:
        result["required"] = list(dict.fromkeys([*base_required, *override_required]))

    if "allOf" in base or "allOf" in override:
        result.pop("allOf", None)
    return result


class SchemaResolver:
    """On-demand resolver bound to one document's ``components`` section.

    Args:
        components: The document's ``components`` mapping.  Only the
            ``schemas`` and ``parameters`` sections are consulted.
        max_ref_expansions: How many ``$ref`` pointers one
            :meth:`resolve_schema` call may expand.  Later pointers are
            left in place as ``{"$ref": ...}``.

    Example::

        resolver = SchemaResolver(document.get("components", {}))
        resolved = resolver.resolve_schema({"$ref": "#/components/schemas/Pet"})
    """

    def __init__(self, components: Any, max_ref_expansions: int = DEFAULT_MAX_REF_EXPANSIONS) -> None:
        self.max_ref_expansions = max_ref_expansions
        components = components if isinstance(components, dict) else {}
        self._schemas = _mapping_entries(components.get("schemas"))
        self._parameters = _mapping_entries(components.get("parameters"))

    # ------------------------------------------------------------------ #
    # Schemas
    # ------------------------------------------------------------------ #

    def get_schema(self, name: str) -> Optional[dict[str, Any]]:
        """Return the raw component schema called *name*, if any."""
        return self._schemas.get(name)

    def resolve_schema(self, schema: Any) -> Optional[dict[str, Any]]:
        """Resolve *schema* (a schema object or a ``$ref`` to one).

        Args:
            schema: A schema mapping, possibly containing ``$ref``,
                ``allOf``, and nested sub-schemas.

        Returns:
            A new, resolved mapping, or ``None`` when *schema* is not a
            mapping or its top-level ``$ref`` cannot be found.
        """
        if not isinstance(schema, dict):
            return None
        ref = schema.get("$ref")
        if isinstance(ref, str) and self._lookup_schema_ref(ref) is None:
            logger.debug("Unresolvable schema reference %s", ref)
            return None
        return self._resolve(schema, frozenset(), _ExpansionBudget(self.max_ref_expansions))

    def _lookup_schema_ref(self, ref: str) -> Optional[dict[str, Any]]:
        name = decode_ref_name(ref, SCHEMA_REF_PREFIX)
        if name is None:
            return None
        return self._schemas.get(name)

    def _resolve(
        self, schema: Any, seen: frozenset[str], budget: _ExpansionBudget
    ) -> Optional[dict[str, Any]]:
        if not isinstance(schema, dict):
            return None

        ref = schema.get("$ref")
        if isinstance(ref, str) and ref not in seen and not budget.spend():
            return copy.deepcopy(schema)

        working = copy.deepcopy(schema)
        all_of = working.pop("allOf", None)

        working.pop("$ref", None)
        if isinstance(ref, str) and ref not in seen:
            seen = seen | {ref}
            referenced = self._resolve(self._lookup_schema_ref(ref), seen, budget) or {}
            working = merge_schema_objects(referenced, working)

        if isinstance(all_of, list):
            for entry in all_of:
                resolved = self._resolve(entry, seen, budget)
                if resolved is not None:
                    working = merge_schema_objects(working, resolved)

        properties = working.get("properties")
        if isinstance(properties, dict):
            working["properties"] = {
                key: self._resolve(value, seen, budget) or {} for key, value in properties.items()
            }

        if isinstance(working.get("items"), dict):
            working["items"] = self._resolve(working["items"], seen, budget) or {}

        if isinstance(working.get("additionalProperties"), dict):
            working["additionalProperties"] = (
                self._resolve(working["additionalProperties"], seen, budget) or {}
            )

        if not working.get("type"):
            if "properties" in working:
                working["type"] = "object"
            elif "items" in working:
                working["type"] = "array"

        return working

    # ------------------------------------------------------------------ #
    # Parameters
    # ------------------------------------------------------------------ #

    def resolve_parameter(self, parameter: Any) -> Optional[dict[str, Any]]:
        """Resolve a parameter object or ``#/components/parameters/...`` reference.

        Keys written alongside the ``$ref`` override the referenced
        definition.  ``schema`` and ``examples`` are merged one level deep;
        every other key is overridden wholesale.

        Returns:
            The resolved parameter, or ``None`` when it is not a mapping,
            its reference is unknown, or it lacks a non-empty ``name`` or
            ``in``.
        """
        if not isinstance(parameter, dict):
            return None

        working = dict(parameter)
        ref = working.pop("$ref", None)
        if isinstance(ref, str):
            name = decode_ref_name(ref, PARAMETER_REF_PREFIX)
            referenced = self._parameters.get(name) if name is not None else None
            if referenced is None:
                logger.debug("Unresolvable parameter reference %s", ref)
                return None
            working = _merge_parameter_objects(referenced, working)

        if not isinstance(working.get("name"), str) or not working["name"]:
            return None
        if not isinstance(working.get("in"), str) or not working["in"]:
            return None
        return working


def _merge_parameter_objects(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = {**base, **override}
    for key in ("schema", "examples"):
        base_value = base.get(key)
        override_value = override.get(key)
        if isinstance(base_value, dict) or isinstance(override_value, dict):
            merged[key] = {
                **(base_value if isinstance(base_value, dict) else {}),
                **(override_value if isinstance(override_value, dict) else {}),
            }
    return merged


def _mapping_entries(section: Any) -> dict[str, dict[str, Any]]:
    if not isinstance(section, dict):
        return {}
    return {str(name): value for name, value in section.items() if isinstance(value, dict)}
