"""Extract request/response examples and vendor code samples.

This module turns the loosely shaped example data of an OpenAPI document into
the uniform groups carried on :class:`~apinav.models.NormalizedOperation`:

* :func:`normalize_request_body_examples` -- ``requestBody.content.*``
  ``example`` / ``examples``, one :class:`~apinav.models.RequestExampleGroup`
  per content type.
* :func:`normalize_response_examples` -- the same for every
  ``responses.<status>.content.*``.
* :func:`normalize_code_samples` -- ``x-codeSamples`` entries grouped by
  label, one sample per language.

Each call builds its own :class:`~apinav.parser.slugs.SlugFactory`, so example
slugs are unique within one operation's request (or response) examples and
independent of every other operation.

Entries that cannot be used (no value, no source, ``$ref`` examples) are
dropped silently; nothing in this module raises.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from apinav.models import (
    CodeSample,
    CodeSampleGroup,
    NormalizedExample,
    RequestExampleGroup,
    ResponseExampleGroup,
)
from apinav.parser.slugs import SlugFactory, slugify

CODE_SAMPLE_KEYS = ("x-codeSamples", "x-code-samples")

LANGUAGE_SYNTAX_MAP: dict[str, str] = {
    "curl": "bash",
    "shell": "bash",
    "c#": "csharp",
    "csharp": "csharp",
    "dotnet": "csharp",
    "javascript": "javascript",
    "node.js": "javascript",
    "node": "javascript",
    "python": "python",
    "go": "go",
    "golang": "go",
    "java": "java",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "xml": "xml",
    "html": "html",
    "text": "text",
}

# Checked in order; the first key contained in the content type wins.
CONTENT_TYPE_SYNTAX_MAP: dict[str, str] = {
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "xml": "xml",
    "html": "html",
    "javascript": "javascript",
    "x-www-form-urlencoded": "url",
    "plain": "text",
}


def derive_syntax(language: str) -> str:
    """Map a code-sample language name to a syntax-highlighting id.

    Unknown languages fall back to their slug, then to ``plaintext``.
    """
    key = language.lower().strip()
    if key in LANGUAGE_SYNTAX_MAP:
        return LANGUAGE_SYNTAX_MAP[key]
    return slugify(key, "plaintext")


def derive_syntax_from_content_type(content_type: Optional[str]) -> str:
    """Map a media type such as ``application/problem+json`` to a syntax id."""
    if not content_type:
        return "plaintext"
    lower = content_type.lower()
    if lower in CONTENT_TYPE_SYNTAX_MAP:
        return CONTENT_TYPE_SYNTAX_MAP[lower]
    for key, syntax in CONTENT_TYPE_SYNTAX_MAP.items():
        if key in lower:
            return syntax
    if lower.startswith("text/"):
        return "text"
    return "plaintext"


def stringify_example_value(value: Any) -> str:
    """Render an example value as display text.

    Strings pass through, booleans render as JSON literals, numbers via
    ``str``, and anything else as indented JSON.  Values that cannot be
    serialised render as an empty string (and are then dropped).
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    try:
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return ""


def normalize_request_body_examples(request_body: Any) -> list[RequestExampleGroup]:
    """Collect examples from every media type of a request body."""
    if not isinstance(request_body, dict):
        return []
    content = request_body.get("content")
    if not isinstance(content, dict):
        return []

    slug_factory = SlugFactory("example")
    groups: list[RequestExampleGroup] = []
    for content_type, media in content.items():
        content_type = str(content_type)
        syntax = derive_syntax_from_content_type(content_type)
        examples = _examples_from_media(media, slug_factory, content_type, syntax)
        if examples:
            groups.append(
                RequestExampleGroup(content_type=content_type, syntax=syntax, examples=examples)
            )
    return groups


def normalize_response_examples(responses: Any) -> list[ResponseExampleGroup]:
    """Collect examples from every status code and media type of ``responses``."""
    if not isinstance(responses, dict):
        return []

    slug_factory = SlugFactory("example")
    groups: list[ResponseExampleGroup] = []
    for status, response in responses.items():
        if not isinstance(response, dict):
            continue
        content = response.get("content")
        if not isinstance(content, dict):
            continue
        for content_type, media in content.items():
            content_type = str(content_type)
            syntax = derive_syntax_from_content_type(content_type)
            examples = _examples_from_media(
                media, slug_factory, f"{status}-{content_type}", syntax
            )
            if examples:
                groups.append(
                    ResponseExampleGroup(
                        status=str(status),
                        content_type=content_type,
                        syntax=syntax,
                        examples=examples,
                    )
                )
    return groups


def _examples_from_media(
    media: Any,
    slug_factory: SlugFactory,
    base_key: str,
    syntax: str,
) -> list[NormalizedExample]:
    if not isinstance(media, dict):
        return []
    examples: list[NormalizedExample] = []

    def add(
        key: str,
        label: str,
        value: str,
        description: Optional[str] = None,
        external_value: Optional[str] = None,
        is_external: bool = False,
    ) -> None:
        slug = slug_factory(f"{base_key}-{label or key or 'example'}", "example")
        examples.append(
            NormalizedExample(
                slug=slug,
                key=key or label or slug,
                label=label or key or "Example",
                value=value,
                language=syntax,
                description=description,
                external_value=external_value,
                is_external=is_external,
            )
        )

    if media.get("example") is not None:
        value = stringify_example_value(media["example"])
        if value:
            description = media.get("description")
            add(
                "default",
                "Example",
                value,
                description=description if isinstance(description, str) else None,
            )

    named = media.get("examples")
    if isinstance(named, dict):
        for key, entry in named.items():
            if not isinstance(entry, dict) or "$ref" in entry:
                continue
            key = str(key)
            value = stringify_example_value(entry.get("value"))
            external_value = entry.get("externalValue")
            if not isinstance(external_value, str) or not external_value:
                external_value = None
            if not value and not external_value:
                continue

            summary = entry.get("summary")
            label = summary.strip() if isinstance(summary, str) and summary.strip() else key
            description = entry.get("description")
            add(
                key,
                label,
                value or f"External example available at {external_value}",
                description=description if isinstance(description, str) else None,
                external_value=external_value,
                is_external=not value,
            )

    return examples


def normalize_code_samples(operation: dict[str, Any]) -> list[CodeSampleGroup]:
    """Group an operation's ``x-codeSamples`` by label.

    Entries without a non-empty ``source`` string are dropped.  Within a
    group, samples sharing a language (case-insensitive) keep only the
    first occurrence.
    """
    raw_samples: Any = None
    for key in CODE_SAMPLE_KEYS:
        if isinstance(operation.get(key), list):
            raw_samples = operation[key]
            break
    if not raw_samples:
        return []

    groups: dict[str, CodeSampleGroup] = {}
    slug_factory = SlugFactory("sample")
    seen: set[tuple[str, str]] = set()

    for index, entry in enumerate(raw_samples):
        if not isinstance(entry, dict):
            continue
        source = entry.get("source")
        if not isinstance(source, str) or not source:
            continue
        label = _non_empty(entry.get("label")) or f"Example {index + 1}"
        language = _non_empty(entry.get("lang")) or "Example"

        dedupe_key = (language.lower(), label)
        if dedupe_key in seen:
            continue
        seen.add(dedupe_key)

        group = groups.setdefault(label, CodeSampleGroup(label=label))
        group.samples.append(
            CodeSample(
                slug=slug_factory(f"{language}-{label}", language),
                label=label,
                language=language,
                syntax=derive_syntax(language),
                source=source,
                extensions=pick_extensions(entry),
            )
        )

    return list(groups.values())


def pick_extensions(value: Any) -> dict[str, Any]:
    """Return the ``x-*`` vendor extension keys of a mapping."""
    if not isinstance(value, dict):
        return {}
    return {key: val for key, val in value.items() if isinstance(key, str) and key.startswith("x-")}


def _non_empty(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return ""
