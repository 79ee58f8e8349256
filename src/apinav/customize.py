"""Apply user customization to a normalized spec.

:func:`customize_spec` derives a filtered, relabelled and re-sorted copy of a
:class:`~apinav.models.NormalizedSpec` from a
:class:`~apinav.models.CustomizationConfig`.  The input spec is never
mutated; every step works on a deep copy.

Tag names in ``include``, ``exclude``, ``order`` and ``overrides`` are
matched against either the tag name or its slug, trimmed and compared
case-insensitively.  In every allow/deny pair the deny side wins.  Tags
missing from ``order`` follow the listed ones alphabetically, with the
fallback tag last.

Example::

    config = CustomizationConfig.model_validate(
        {"tags": {"exclude": ["internal"], "order": ["Users", "Orders"]}}
    )
    customized = customize_spec(spec, config)
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Optional

from apinav.models import (
    CodeSampleGroup,
    CustomizationConfig,
    NormalizedOperation,
    NormalizedSpec,
    NormalizedTag,
    OperationMatcher,
    OperationRule,
    TagMetadata,
    TagOverride,
)
from apinav.parser.normalizer import compute_spec_stats, compute_tag_stats

logger = logging.getLogger(__name__)


def normalize_key(value: Any) -> str:
    """Trim and lowercase *value*; non-strings become ``""``."""
    return value.strip().lower() if isinstance(value, str) else ""


def customize_spec(spec: NormalizedSpec, config: Optional[CustomizationConfig] = None) -> NormalizedSpec:
    """Return a customized copy of *spec*.

    Args:
        spec: The normalized spec.  Left untouched.
        config: Filters, ordering and overrides.  ``None`` applies only the
            re-sort and stats recomputation.

    Returns:
        A new :class:`~apinav.models.NormalizedSpec` in which every
        operation has at least one tag, every tag has at least one
        operation, and all stats match the surviving membership.
    """
    config = config or CustomizationConfig()
    cloned = spec.model_copy(deep=True)

    include_tags = _key_set(config.tags.include)
    exclude_tags = _key_set(config.tags.exclude)
    order_map = _order_map(config.tags.order)
    overrides = _overrides_map(config.tags.overrides)
    include_languages = _key_set(config.code_samples.include_languages)
    rename = {
        normalize_key(key): value
        for key, value in config.code_samples.rename.items()
        if normalize_key(key)
    }

    operations = [
        op
        for op in cloned.operations
        if _allow_operation(op, config.operations.include, config.operations.exclude)
    ]

    tags = [tag for tag in cloned.tags if _allow_tag(tag, include_tags, exclude_tags)]
    allowed_slugs = {tag.slug for tag in tags}

    surviving: list[NormalizedOperation] = []
    for operation in operations:
        operation.tags = [ref for ref in operation.tags if ref.slug in allowed_slugs]
        if not operation.tags:
            continue
        operation.code_sample_groups = filter_code_sample_groups(
            operation.code_sample_groups, include_languages, rename
        )
        surviving.append(operation)

    by_slug: dict[str, NormalizedTag] = {}
    for tag in tags:
        tag.operations = []
        by_slug[tag.slug] = tag
    for operation in surviving:
        for ref in operation.tags:
            tag = by_slug.get(ref.slug)
            if tag is not None:
                tag.operations.append(operation)

    tags = [tag for tag in tags if tag.operations]

    for tag in tags:
        override = _find(overrides, tag)
        if override is not None and override.description:
            tag.description = override.description
        display_name = (override.label if override is not None else None) or tag.name
        tag.metadata = TagMetadata(
            display_name=display_name,
            sidebar_label=(override.sidebar_label if override is not None else None)
            or display_name,
        )

    tags.sort(key=lambda tag: _customized_sort_key(tag, order_map))
    for tag in tags:
        tag.stats = compute_tag_stats(tag.operations)

    cloned.tags = tags
    cloned.operations = surviving
    cloned.stats = compute_spec_stats(tags, surviving)
    cloned.document = _reconcile_document_tags(cloned.document, tags)

    logger.debug(
        "Customized spec: %d/%d tags, %d/%d operations",
        len(tags),
        len(spec.tags),
        len(surviving),
        len(spec.operations),
    )
    return cloned


def matches_operation(operation: NormalizedOperation, rule: OperationRule) -> bool:
    """Whether *operation* satisfies one include/exclude rule.

    A plain string matches operations whose path starts with it.  For an
    :class:`~apinav.models.OperationMatcher` every field that is set must
    match.  A matcher with no fields set matches nothing.
    """
    if isinstance(rule, str):
        return bool(rule) and operation.path.startswith(rule)

    matcher: OperationMatcher = rule
    methods = {m.lower() for m in matcher.methods if m}
    if matcher.method:
        methods.add(matcher.method.lower())

    checks = []
    if matcher.path is not None:
        checks.append(operation.path == matcher.path)
    if matcher.path_starts_with is not None:
        checks.append(operation.path.startswith(matcher.path_starts_with))
    if matcher.slug is not None:
        checks.append(operation.slug == matcher.slug)
    if methods:
        checks.append(operation.method.lower() in methods)
    return bool(checks) and all(checks)


def filter_code_sample_groups(
    groups: list[CodeSampleGroup], include_languages: Optional[set[str]], rename: dict[str, str]
) -> list[CodeSampleGroup]:
    """Keep samples in *include_languages* (all when ``None``) and rename languages.

    Groups left without samples are dropped.
    """
    result: list[CodeSampleGroup] = []
    for group in groups:
        samples = []
        for sample in group.samples:
            key = normalize_key(sample.language)
            if include_languages is not None and key not in include_languages:
                continue
            if key in rename:
                sample.language = rename[key]
            samples.append(sample)
        if samples:
            group.samples = samples
            result.append(group)
    return result


def _allow_operation(
    operation: NormalizedOperation, include: list[OperationRule], exclude: list[OperationRule]
) -> bool:
    if include and not any(matches_operation(operation, rule) for rule in include):
        return False
    return not any(matches_operation(operation, rule) for rule in exclude)


def _allow_tag(tag: NormalizedTag, include: Optional[set[str]], exclude: Optional[set[str]]) -> bool:
    keys = {normalize_key(tag.name), normalize_key(tag.slug)}
    if include is not None and not keys & include:
        return False
    return not (exclude is not None and keys & exclude)


def _key_set(values: Iterable[Any]) -> Optional[set[str]]:
    """Normalized keys of *values*, or ``None`` when nothing usable is given."""
    keys = {normalize_key(value) for value in values} - {""}
    return keys or None


def _order_map(order: list[str]) -> dict[str, int]:
    result: dict[str, int] = {}
    for index, value in enumerate(order):
        key = normalize_key(value)
        if key:
            result[key] = index
    return result


def _customized_sort_key(tag: NormalizedTag, order_map: dict[str, int]) -> tuple[Any, ...]:
    """Explicit order, then fallback last, then name.  Declared order is ignored."""
    return (_find(order_map, tag, math.inf), tag.is_fallback, tag.name.casefold(), tag.name)


def _overrides_map(overrides: dict[str, TagOverride]) -> dict[str, TagOverride]:
    return {normalize_key(key): value for key, value in overrides.items() if normalize_key(key)}


def _find(mapping: dict[str, Any], tag: NormalizedTag, default: Any = None) -> Any:
    """Look *tag* up by name first, then by slug."""
    name_key = normalize_key(tag.name)
    if name_key in mapping:
        return mapping[name_key]
    return mapping.get(normalize_key(tag.slug), default)


def _reconcile_document_tags(
    document: dict[str, Any], tags: list[NormalizedTag]
) -> dict[str, Any]:
    """Restrict the document's ``tags`` array to surviving tags, in final order."""
    declared = document.get("tags")
    if not isinstance(declared, list):
        return document

    lookup: dict[str, NormalizedTag] = {}
    for tag in tags:
        lookup[normalize_key(tag.name)] = tag
        lookup[normalize_key(tag.slug)] = tag
    position = {id(tag): index for index, tag in enumerate(tags)}

    kept: list[tuple[int, dict[str, Any]]] = []
    for entry in declared:
        if not isinstance(entry, dict):
            continue
        match = lookup.get(normalize_key(entry.get("name")))
        if match is None:
            continue
        reconciled = dict(entry)
        if match.description is not None:
            reconciled["description"] = match.description
        kept.append((position[id(match)], reconciled))

    kept.sort(key=lambda pair: pair[0])
    return {**document, "tags": [entry for _, entry in kept]}
