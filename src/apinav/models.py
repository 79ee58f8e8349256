"""Canonical Pydantic models shared across all apinav modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- loaded from a JSON/YAML config file or built in
code:
    :class:`FileSource`, :class:`UrlSource`, :class:`TagOverride`,
    :class:`TagFilterConfig`, :class:`OperationMatcher`,
    :class:`OperationFilterConfig`, :class:`CodeSampleConfig`,
    :class:`CustomizationConfig`, and :class:`NavigatorConfig`.

**Normalized model** -- produced by :mod:`apinav.parser` and refined by
:mod:`apinav.customize`:
    :class:`HTTPMethod`, :class:`TagRef`, :class:`CodeSample`,
    :class:`CodeSampleGroup`, :class:`NormalizedExample`,
    :class:`RequestExampleGroup`, :class:`ResponseExampleGroup`,
    :class:`NormalizedOperation`, :class:`NormalizedTag`,
    :class:`NormalizedSchema`, and :class:`NormalizedSpec`.

**Runtime artifacts** -- produced by :mod:`apinav.runtime.artifacts` and
written to disk by :mod:`apinav.runtime.writer`:
    :class:`RuntimeManifest`, :class:`OperationDigest`,
    :class:`OperationChunk`, :class:`SchemaDefinition`,
    :class:`RuntimeArtifacts`, and :class:`ProxyEntry`.

Attributes are snake_case in Python.  Every model serialises with camelCase
aliases (``operationId``, ``isFallback``, ``requestBodyExamples``) so that the
JSON artifacts consumed by page emission and the browser runtime keep their
established key names.  Construct models with either spelling.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_CHUNK_SIZE = 50
DEFAULT_MAX_BYTES = 50 * 1024 * 1024
DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_WRITE_CONCURRENCY = 8
DEFAULT_RESERVED_ROUTES = ("index", "schemas")


class _CamelModel(BaseModel):
    """Base model serialising to camelCase keys while accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Spec sources ---


class FileSource(_CamelModel):
    """A local OpenAPI document (JSON or YAML)."""

    kind: Literal["file"] = "file"
    path: str


class UrlSource(_CamelModel):
    """A remote OpenAPI document fetched over HTTP(S).

    ``headers`` are sent with the request but never echoed in error messages
    or logs, and are hidden from ``repr()``.
    """

    kind: Literal["url"] = "url"
    url: str
    headers: dict[str, str] = Field(default_factory=dict, repr=False)
    max_bytes: Optional[int] = Field(
        default=DEFAULT_MAX_BYTES, description="Abort once the body exceeds this size"
    )
    timeout_ms: Optional[int] = Field(
        default=DEFAULT_TIMEOUT_MS, description="Hard ceiling for the whole download"
    )


SpecSource = Annotated[Union[FileSource, UrlSource], Field(discriminator="kind")]


# --- Customization config ---


class TagOverride(_CamelModel):
    """Per-tag presentation overrides applied by :func:`~apinav.customize.customize_spec`."""

    label: Optional[str] = None
    sidebar_label: Optional[str] = None
    description: Optional[str] = None


class TagFilterConfig(_CamelModel):
    """Tag include/exclude lists, explicit ordering, and per-tag overrides.

    Names are matched case-insensitively against either the tag name or its
    slug.  An empty ``include`` list means "no allow-list".
    """

    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    order: list[str] = Field(default_factory=list)
    overrides: dict[str, TagOverride] = Field(default_factory=dict)


class OperationMatcher(_CamelModel):
    """Structured operation matcher.

    Every field that is set must match.  ``method`` and ``methods`` are
    combined and compared case-insensitively.
    """

    path: Optional[str] = Field(default=None, description="Exact path template")
    path_starts_with: Optional[str] = Field(default=None, description="Path prefix")
    slug: Optional[str] = Field(default=None, description="Exact operation slug")
    method: Optional[str] = None
    methods: list[str] = Field(default_factory=list)


OperationRule = Union[str, OperationMatcher]


class OperationFilterConfig(_CamelModel):
    """Operation allow/deny rules.  A plain string means "path starts with"."""

    include: list[OperationRule] = Field(default_factory=list)
    exclude: list[OperationRule] = Field(default_factory=list)


class CodeSampleConfig(_CamelModel):
    """Code-sample language filtering and renaming."""

    include_languages: list[str] = Field(default_factory=list)
    rename: dict[str, str] = Field(default_factory=dict)


class CustomizationConfig(_CamelModel):
    """All user-supplied filtering applied on top of the normalized model."""

    tags: TagFilterConfig = Field(default_factory=TagFilterConfig)
    operations: OperationFilterConfig = Field(default_factory=OperationFilterConfig)
    code_samples: CodeSampleConfig = Field(default_factory=CodeSampleConfig)


class NavigatorConfig(_CamelModel):
    """Project configuration file (``apinav.yaml`` / ``apinav.json``).

    Loaded by :func:`~apinav.config.load_config`.  ``spec`` is a file path or
    an ``http(s)://`` URL; the choice between the two is made by
    :func:`~apinav.parser.loader.resolve_spec_source`.
    """

    spec: str = Field(default="public/openapi.yaml", description="Path or URL of the document")
    output_dir: Optional[str] = Field(default=None, description="Where to write runtime artifacts")
    headers: dict[str, str] = Field(default_factory=dict, repr=False)
    max_bytes: Optional[int] = DEFAULT_MAX_BYTES
    timeout_ms: Optional[int] = DEFAULT_TIMEOUT_MS
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    write_concurrency: int = Field(default=DEFAULT_WRITE_CONCURRENCY, ge=1)
    reserved_routes: list[str] = Field(default_factory=lambda: list(DEFAULT_RESERVED_ROUTES))
    customization: CustomizationConfig = Field(default_factory=CustomizationConfig)


# --- Normalized model ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised as operations inside an OpenAPI path item."""

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"


class TagRef(_CamelModel):
    """Reference from an operation to one of its tags."""

    name: str
    slug: str
    is_fallback: bool = False


class CodeSample(_CamelModel):
    """One vendor code sample (``x-codeSamples`` entry) in a single language."""

    slug: str
    label: str
    language: str
    syntax: str
    source: str
    extensions: dict[str, Any] = Field(default_factory=dict)


class CodeSampleGroup(_CamelModel):
    """Code samples sharing a label, one per language."""

    label: str
    samples: list[CodeSample] = Field(default_factory=list)


class NormalizedExample(_CamelModel):
    """One example value attached to a request or response media type."""

    slug: str
    key: str
    label: str
    value: str
    language: Optional[str] = None
    is_external: bool = False
    external_value: Optional[str] = None
    description: Optional[str] = None


class RequestExampleGroup(_CamelModel):
    """Request body examples for one content type."""

    content_type: str
    syntax: str
    examples: list[NormalizedExample] = Field(default_factory=list)


class ResponseExampleGroup(_CamelModel):
    """Response examples for one status code and content type."""

    status: str
    content_type: str
    syntax: str
    examples: list[NormalizedExample] = Field(default_factory=list)


class NormalizedOperation(_CamelModel):
    """One HTTP method bound to one path template.

    ``slug`` is unique across the whole spec.  ``parameters`` are resolved
    parameter objects deduplicated by ``name:in``.  ``security`` and
    ``servers`` hold the first non-empty value of operation, path item, and
    document, or ``None`` when none declare any.
    """

    path: str
    method: str
    operation_id: str
    slug: str
    summary: Optional[str] = None
    description: Optional[str] = None
    deprecated: bool = False
    tags: list[TagRef] = Field(default_factory=list)
    parameters: list[dict[str, Any]] = Field(default_factory=list)
    request_body: Optional[dict[str, Any]] = None
    responses: dict[str, Any] = Field(default_factory=dict)
    security: Optional[list[Any]] = None
    servers: Optional[list[Any]] = None
    code_sample_groups: list[CodeSampleGroup] = Field(default_factory=list)
    request_body_examples: list[RequestExampleGroup] = Field(default_factory=list)
    response_examples: list[ResponseExampleGroup] = Field(default_factory=list)
    extensions: dict[str, Any] = Field(default_factory=dict)


class ExternalDocs(_CamelModel):
    """An OpenAPI *External Documentation Object*."""

    url: str
    description: Optional[str] = None


class TagStats(_CamelModel):
    """Aggregate counts for one tag, recomputed whenever membership changes."""

    operations: int = 0
    deprecated: int = 0
    methods: dict[str, int] = Field(default_factory=dict)


class TagMetadata(_CamelModel):
    """Presentation labels populated from user overrides."""

    display_name: Optional[str] = None
    sidebar_label: Optional[str] = None


class NormalizedTag(_CamelModel):
    """A named grouping of operations.

    ``operations`` holds back-references to objects owned by
    :attr:`NormalizedSpec.operations`; an operation with several tags
    appears (as the same object) in each of them.
    """

    name: str
    slug: str
    description: Optional[str] = None
    external_docs: Optional[ExternalDocs] = None
    is_fallback: bool = False
    operations: list[NormalizedOperation] = Field(default_factory=list)
    stats: TagStats = Field(default_factory=TagStats)
    extensions: dict[str, Any] = Field(default_factory=dict)
    metadata: Optional[TagMetadata] = None
    declared_index: Optional[int] = Field(
        default=None, exclude=True, description="Last position in the document's tags array"
    )


class NormalizedSchema(_CamelModel):
    """One named component schema (not deeply resolved)."""

    name: str
    slug: str
    schema_: dict[str, Any] = Field(default_factory=dict, alias="schema")
    description: Optional[str] = None
    extensions: dict[str, Any] = Field(default_factory=dict)


class SpecStats(_CamelModel):
    """Spec-wide counts."""

    tags: int = 0
    operations: int = 0
    untagged_operations: int = 0
    deprecated_operations: int = 0


class NormalizedSpec(_CamelModel):
    """The canonical object graph built from one OpenAPI document.

    See Also:
        :func:`~apinav.parser.normalizer.normalize_document`: Builds it.
        :func:`~apinav.customize.customize_spec`: Derives a filtered copy.
    """

    source: str = Field(default="", description="File path or URL the document came from")
    openapi_version: Optional[str] = None
    document: dict[str, Any] = Field(default_factory=dict)
    info: dict[str, Any] = Field(default_factory=dict)
    servers: list[Any] = Field(default_factory=list)
    components: dict[str, Any] = Field(default_factory=dict)
    tags: list[NormalizedTag] = Field(default_factory=list)
    operations: list[NormalizedOperation] = Field(default_factory=list)
    stats: SpecStats = Field(default_factory=SpecStats)
    schemas: list[NormalizedSchema] = Field(default_factory=list)


# --- Runtime artifacts ---


class RuntimeManifest(_CamelModel):
    """The small always-resident summary of a spec.

    ``document`` carries only ``security`` and ``components.securitySchemes``.
    """

    info: dict[str, Any] = Field(default_factory=dict)
    servers: list[Any] = Field(default_factory=list)
    stats: SpecStats = Field(default_factory=SpecStats)
    document: dict[str, Any] = Field(default_factory=dict)


class OperationDigest(_CamelModel):
    """Lightweight per-operation summary for listings and search."""

    slug: str
    method: str
    path: str
    summary: str = ""
    deprecated: bool = False


class OperationIndexEntry(OperationDigest):
    """An :class:`OperationDigest` annotated with its owning tag."""

    tag_slug: str
    tag_name: str


class TagDigest(_CamelModel):
    """A tag with digests in place of full operations."""

    name: str
    slug: str
    description: Optional[str] = None
    external_docs: Optional[ExternalDocs] = None
    is_fallback: bool = False
    stats: TagStats = Field(default_factory=TagStats)
    metadata: Optional[TagMetadata] = None
    extensions: dict[str, Any] = Field(default_factory=dict)
    operations: list[OperationDigest] = Field(default_factory=list)


class SchemaListEntry(_CamelModel):
    """Name and slug of one component schema."""

    name: str
    slug: str


class SchemaDefinition(_CamelModel):
    """One resolved component schema, stored as its own unit under ``key``."""

    key: str
    name: str
    slug: str
    schema_: dict[str, Any] = Field(default_factory=dict, alias="schema")
    description: Optional[str] = None
    extensions: dict[str, Any] = Field(default_factory=dict)


class OperationChunk(_CamelModel):
    """A bounded bucket of full operation payloads belonging to one tag."""

    id: str
    tag_slug: str
    file_name: str
    operations: dict[str, dict[str, Any]] = Field(default_factory=dict)


class RuntimeArtifacts(_CamelModel):
    """Everything :func:`~apinav.runtime.artifacts.build_runtime_artifacts` produces."""

    manifest: RuntimeManifest = Field(default_factory=RuntimeManifest)
    tags: list[TagDigest] = Field(default_factory=list)
    operation_index: list[OperationIndexEntry] = Field(default_factory=list)
    schema_list: list[SchemaListEntry] = Field(default_factory=list)
    schema_definitions: list[SchemaDefinition] = Field(default_factory=list)
    chunks: list[OperationChunk] = Field(default_factory=list)
    operation_chunk_lookup: dict[str, str] = Field(default_factory=dict)
    tag_chunk_map: dict[str, list[str]] = Field(default_factory=dict)
    chunk_tag_map: dict[str, str] = Field(default_factory=dict)


class ProxyEntry(_CamelModel):
    """A dev-proxy forwarding rule derived from one declared server URL."""

    id: int
    original_url: str
    normalized_url: str
    target: str
    context_path: str
    rewrite_path: str
