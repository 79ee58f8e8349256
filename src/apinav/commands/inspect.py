"""Inspect commands -- examine a spec as apinav sees it.

Provides the ``apinav inspect`` sub-command group with read-only commands
for viewing the customized spec: general info, tags, operations, schemas,
and the dev proxy table.  Every sub-command runs the in-memory pipeline
(nothing is written) and prints a table, or JSON with ``--json``.
"""

from __future__ import annotations

from typing import Optional

import typer

from apinav.commands import config_from_context, run_with_config
from apinav.output import OutputFormat, get_output
from apinav.pipeline import PipelineResult

inspect_app = typer.Typer(no_args_is_help=True)

_SPEC_OPTION = typer.Option(None, "--spec", "-s", help="Path or URL of the OpenAPI document.")


def _run(ctx: typer.Context, spec: Optional[str]) -> PipelineResult:
    return run_with_config(config_from_context(ctx, spec))


@inspect_app.command("info")
def inspect_info(ctx: typer.Context, spec: Optional[str] = _SPEC_OPTION) -> None:
    """Show API title, version, servers, and counts.

    Example::

        apinav inspect info --spec openapi.yaml
    """
    result = _run(ctx, spec)
    customized = result.customized
    info = customized.info
    data = {
        "source": customized.source,
        "title": info.get("title"),
        "version": info.get("version"),
        "openapi_version": customized.openapi_version,
        "servers": [s.get("url") for s in customized.servers if isinstance(s, dict)],
        "tags": customized.stats.tags,
        "operations": customized.stats.operations,
        "deprecated_operations": customized.stats.deprecated_operations,
        "untagged_operations": customized.stats.untagged_operations,
        "schemas": len(customized.schemas),
        "chunks": len(result.artifacts.chunks),
    }

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_json(data)
        return
    rows = [[key, _cell(value)] for key, value in data.items()]
    output.print_table(["Field", "Value"], rows, title=str(info.get("title") or "API"))


@inspect_app.command("tags")
def inspect_tags(ctx: typer.Context, spec: Optional[str] = _SPEC_OPTION) -> None:
    """List tags in display order with their operation counts.

    Example::

        apinav inspect tags
    """
    result = _run(ctx, spec)
    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_json(
            [tag.model_dump(mode="json", by_alias=True) for tag in result.artifacts.tags]
        )
        return

    rows = []
    for tag in result.customized.tags:
        methods = ", ".join(
            f"{method.upper()} {count}" for method, count in sorted(tag.stats.methods.items())
        )
        rows.append([
            tag.slug,
            tag.metadata.display_name if tag.metadata and tag.metadata.display_name else tag.name,
            str(tag.stats.operations),
            str(tag.stats.deprecated),
            methods or "-",
        ])
    output.print_table(
        ["Slug", "Name", "Operations", "Deprecated", "Methods"],
        rows,
        title=f"Tags ({len(rows)})",
    )


@inspect_app.command("operations")
def inspect_operations(
    ctx: typer.Context,
    spec: Optional[str] = _SPEC_OPTION,
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Only this tag slug."),
) -> None:
    """List operations with the tag and chunk that serve them.

    Example::

        apinav inspect operations --tag users
    """
    result = _run(ctx, spec)
    artifacts = result.artifacts
    entries = [e for e in artifacts.operation_index if tag is None or e.tag_slug == tag]

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_json([e.model_dump(mode="json", by_alias=True) for e in entries])
        return

    rows = [
        [
            entry.method,
            entry.path,
            entry.slug,
            entry.tag_slug,
            artifacts.operation_chunk_lookup.get(entry.slug, "-"),
            "Yes" if entry.deprecated else "",
        ]
        for entry in entries
    ]
    output.print_table(
        ["Method", "Path", "Slug", "Tag", "Chunk", "Deprecated"],
        rows,
        title=f"Operations ({len(rows)})",
    )


@inspect_app.command("schemas")
def inspect_schemas(ctx: typer.Context, spec: Optional[str] = _SPEC_OPTION) -> None:
    """List component schemas, sorted by name.

    Example::

        apinav inspect schemas
    """
    result = _run(ctx, spec)
    definitions = {d.slug: d for d in result.artifacts.schema_definitions}

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_json(
            [e.model_dump(mode="json", by_alias=True) for e in result.artifacts.schema_list]
        )
        return

    rows = []
    for entry in result.artifacts.schema_list:
        definition = definitions.get(entry.slug)
        schema = definition.schema_ if definition and isinstance(definition.schema_, dict) else {}
        raw_properties = schema.get("properties")
        properties = list(raw_properties) if isinstance(raw_properties, dict) else []
        props = ", ".join(properties[:5]) + ("..." if len(properties) > 5 else "")
        rows.append([entry.name, entry.slug, str(schema.get("type") or "-"), props or "-"])
    output.print_table(
        ["Schema", "Slug", "Type", "Properties"], rows, title=f"Schemas ({len(rows)})"
    )


@inspect_app.command("proxy")
def inspect_proxy(ctx: typer.Context, spec: Optional[str] = _SPEC_OPTION) -> None:
    """Show the dev proxy table derived from server URLs.

    Example::

        apinav inspect proxy
    """
    result = _run(ctx, spec)
    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_json([e.model_dump(mode="json", by_alias=True) for e in result.proxy_table])
        return

    rows = [
        [entry.context_path, entry.target, entry.rewrite_path, entry.original_url]
        for entry in result.proxy_table
    ]
    output.print_table(
        ["Context path", "Target", "Rewrite", "Server URL"], rows, title="Dev proxy"
    )


def _cell(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value) or "-"
    return str(value)
