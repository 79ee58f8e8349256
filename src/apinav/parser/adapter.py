"""Adapt Swagger 2.0 documents to the OpenAPI 3.x shape.

The normalizer only understands one document shape: OpenAPI 3.x ``servers``,
``components`` and ``content`` maps.  Version differences are handled here, at
the boundary, so nothing downstream branches on the spec version.

Swagger 2.0 conversion covers what the normalizer and runtime consume:

* ``host`` / ``basePath`` / ``schemes`` -> ``servers``
* ``definitions`` / ``parameters`` / ``responses`` / ``securityDefinitions``
  -> ``components.schemas`` / ``parameters`` / ``responses`` /
  ``securitySchemes``, with every ``$ref`` pointer rewritten to match
* ``in: body`` and ``in: formData`` parameters -> ``requestBody`` keyed by
  the operation's ``consumes`` media types
* response ``schema`` / ``examples`` -> a ``content`` map keyed by
  ``produces`` media types
* type keywords on non-body parameters moved under ``schema``

OpenAPI 3.0 and 3.1 documents pass through unchanged.  The input is never
mutated.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

_REF_REWRITES = (
    ("#/definitions/", "#/components/schemas/"),
    ("#/parameters/", "#/components/parameters/"),
    ("#/responses/", "#/components/responses/"),
)

_PARAMETER_SCHEMA_KEYS = (
    "type",
    "format",
    "items",
    "enum",
    "default",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "minLength",
    "maxLength",
    "pattern",
    "minItems",
    "maxItems",
    "uniqueItems",
    "multipleOf",
)

_HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")
_DEFAULT_MEDIA_TYPE = "application/json"


def detect_openapi_version(document: dict[str, Any]) -> Optional[str]:
    """Return the declared ``swagger`` or ``openapi`` version string, if any."""
    if "swagger" in document:
        return str(document["swagger"])
    if "openapi" in document:
        return str(document["openapi"])
    return None


def adapt_document(document: dict[str, Any]) -> dict[str, Any]:
    """Return a document in OpenAPI 3.x shape.

    Args:
        document: The raw parsed document.

    Returns:
        *document* itself for OpenAPI 3.x (or unversioned) input, or a new,
        converted mapping for Swagger 2.0 input.
    """
    version = detect_openapi_version(document)
    if version is None or not version.startswith("2"):
        return document
    logger.debug("Converting Swagger %s document to OpenAPI 3 shape", version)
    return _convert_swagger2(_rewrite_refs(copy.deepcopy(document)))


def _rewrite_refs(node: Any) -> Any:
    if isinstance(node, dict):
        result = {}
        for key, value in node.items():
            if key == "$ref" and isinstance(value, str):
                for old, new in _REF_REWRITES:
                    if value.startswith(old):
                        value = new + value[len(old):]
                        break
                result[key] = value
            else:
                result[key] = _rewrite_refs(value)
        return result
    if isinstance(node, list):
        return [_rewrite_refs(item) for item in node]
    return node


def _convert_swagger2(doc: dict[str, Any]) -> dict[str, Any]:
    global_consumes = _media_types(doc.get("consumes"))
    global_produces = _media_types(doc.get("produces"))
    raw_parameters = doc.get("parameters") if isinstance(doc.get("parameters"), dict) else {}

    components: dict[str, Any] = {}
    if isinstance(doc.get("definitions"), dict):
        components["schemas"] = doc["definitions"]
    if raw_parameters:
        components["parameters"] = {
            name: _convert_parameter(param)
            for name, param in raw_parameters.items()
            if isinstance(param, dict) and param.get("in") not in ("body", "formData")
        }
    if isinstance(doc.get("responses"), dict):
        components["responses"] = {
            str(status): _convert_response(response, global_produces)
            for status, response in doc["responses"].items()
        }
    if isinstance(doc.get("securityDefinitions"), dict):
        components["securitySchemes"] = {
            name: _convert_security_scheme(scheme)
            for name, scheme in doc["securityDefinitions"].items()
            if isinstance(scheme, dict)
        }

    result: dict[str, Any] = {
        key: value
        for key, value in doc.items()
        if key
        not in (
            "swagger",
            "host",
            "basePath",
            "schemes",
            "consumes",
            "produces",
            "definitions",
            "parameters",
            "responses",
            "securityDefinitions",
            "paths",
        )
    }
    result["openapi"] = "3.0.0"
    result["x-original-swagger-version"] = str(doc.get("swagger"))
    servers = _build_servers(doc)
    if servers:
        result["servers"] = servers
    if components:
        result["components"] = components

    paths = doc.get("paths") if isinstance(doc.get("paths"), dict) else {}
    result["paths"] = {
        path: _convert_path_item(item, raw_parameters, global_consumes, global_produces)
        for path, item in paths.items()
    }
    return result


def _build_servers(doc: dict[str, Any]) -> list[dict[str, Any]]:
    host = doc.get("host")
    base_path = doc.get("basePath") if isinstance(doc.get("basePath"), str) else ""
    if not isinstance(host, str) or not host:
        return [{"url": base_path}] if base_path else []
    schemes = [s for s in doc.get("schemes") or [] if isinstance(s, str)] or ["https"]
    return [{"url": f"{scheme}://{host}{base_path}"} for scheme in schemes]


def _convert_path_item(
    item: Any,
    raw_parameters: dict[str, Any],
    global_consumes: list[str],
    global_produces: list[str],
) -> Any:
    if not isinstance(item, dict):
        return item

    converted = dict(item)
    path_params = item.get("parameters") if isinstance(item.get("parameters"), list) else []
    plain_path_params, path_body = _split_parameters(path_params, raw_parameters)
    if "parameters" in item:
        converted["parameters"] = plain_path_params

    for key, operation in item.items():
        if str(key).lower() not in _HTTP_METHODS or not isinstance(operation, dict):
            continue
        converted[key] = _convert_operation(
            operation, path_body, raw_parameters, global_consumes, global_produces
        )
    return converted


def _convert_operation(
    operation: dict[str, Any],
    path_body: list[dict[str, Any]],
    raw_parameters: dict[str, Any],
    global_consumes: list[str],
    global_produces: list[str],
) -> dict[str, Any]:
    converted = {k: v for k, v in operation.items() if k not in ("consumes", "produces")}
    consumes = _media_types(operation.get("consumes")) or global_consumes
    produces = _media_types(operation.get("produces")) or global_produces

    op_params = operation.get("parameters") if isinstance(operation.get("parameters"), list) else []
    plain_params, body_params = _split_parameters(op_params, raw_parameters)
    if "parameters" in operation:
        converted["parameters"] = plain_params

    request_body = _build_request_body([*path_body, *body_params], consumes)
    if request_body is not None:
        converted["requestBody"] = request_body

    if isinstance(operation.get("responses"), dict):
        converted["responses"] = {
            str(status): _convert_response(response, produces)
            for status, response in operation["responses"].items()
        }
    return converted


def _split_parameters(
    params: list[Any], raw_parameters: dict[str, Any]
) -> tuple[list[Any], list[dict[str, Any]]]:
    """Separate body/formData parameters (inlining global ones) from the rest."""
    plain: list[Any] = []
    body: list[dict[str, Any]] = []
    for param in params:
        if not isinstance(param, dict):
            continue
        target = param
        ref = param.get("$ref")
        if isinstance(ref, str) and ref.startswith("#/components/parameters/"):
            referenced = raw_parameters.get(ref.rsplit("/", 1)[-1])
            if isinstance(referenced, dict) and referenced.get("in") in ("body", "formData"):
                target = referenced
        if target.get("in") in ("body", "formData"):
            body.append(target)
        elif "$ref" in target:
            plain.append(target)
        else:
            plain.append(_convert_parameter(target))
    return plain, body


def _convert_parameter(param: dict[str, Any]) -> dict[str, Any]:
    converted = {k: v for k, v in param.items() if k not in _PARAMETER_SCHEMA_KEYS}
    schema = {k: param[k] for k in _PARAMETER_SCHEMA_KEYS if k in param}
    if schema and "schema" not in param:
        converted["schema"] = schema
    converted.pop("collectionFormat", None)
    return converted


def _build_request_body(params: list[dict[str, Any]], consumes: list[str]) -> Optional[dict[str, Any]]:
    body = next((p for p in params if p.get("in") == "body"), None)
    if body is not None:
        schema = body.get("schema") if isinstance(body.get("schema"), dict) else {}
        media_types = consumes or [_DEFAULT_MEDIA_TYPE]
        request_body: dict[str, Any] = {
            "content": {media: {"schema": schema} for media in media_types},
            "required": bool(body.get("required", False)),
        }
        if isinstance(body.get("description"), str):
            request_body["description"] = body["description"]
        for key, value in body.items():
            if isinstance(key, str) and key.startswith("x-"):
                request_body[key] = value
        return request_body

    form_fields = [p for p in params if p.get("in") == "formData" and isinstance(p.get("name"), str)]
    if not form_fields:
        return None
    has_file = any(p.get("type") == "file" for p in form_fields)
    media_type = "multipart/form-data" if has_file else "application/x-www-form-urlencoded"
    if consumes and media_type not in consumes:
        media_type = consumes[0]

    properties: dict[str, Any] = {}
    required: list[str] = []
    for field in form_fields:
        field_schema = {k: field[k] for k in _PARAMETER_SCHEMA_KEYS if k in field}
        if field_schema.get("type") == "file":
            field_schema = {"type": "string", "format": "binary"}
        if isinstance(field.get("description"), str):
            field_schema["description"] = field["description"]
        properties[field["name"]] = field_schema
        if field.get("required"):
            required.append(field["name"])

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return {"content": {media_type: {"schema": schema}}, "required": bool(required)}


def _convert_response(response: Any, produces: list[str]) -> Any:
    if not isinstance(response, dict) or "$ref" in response:
        return response
    converted = {k: v for k, v in response.items() if k not in ("schema", "examples")}
    schema = response.get("schema")
    examples = response.get("examples") if isinstance(response.get("examples"), dict) else {}
    media_types = list(dict.fromkeys([*(produces or []), *examples.keys()]))
    if isinstance(schema, dict) and not media_types:
        media_types = [_DEFAULT_MEDIA_TYPE]
    content: dict[str, Any] = {}
    for media in media_types:
        entry: dict[str, Any] = {}
        if isinstance(schema, dict):
            entry["schema"] = schema
        if media in examples:
            entry["example"] = examples[media]
        if entry:
            content[media] = entry
    if content:
        converted["content"] = content
    return converted


def _convert_security_scheme(scheme: dict[str, Any]) -> dict[str, Any]:
    scheme_type = scheme.get("type")
    extras = {k: v for k, v in scheme.items() if k not in ("type", "flow", "authorizationUrl", "tokenUrl", "scopes")}
    if scheme_type == "basic":
        return {**extras, "type": "http", "scheme": "basic"}
    if scheme_type == "oauth2":
        flow_name = {
            "implicit": "implicit",
            "password": "password",
            "application": "clientCredentials",
            "accessCode": "authorizationCode",
        }.get(str(scheme.get("flow")), "implicit")
        flow: dict[str, Any] = {"scopes": scheme.get("scopes") or {}}
        if "authorizationUrl" in scheme:
            flow["authorizationUrl"] = scheme["authorizationUrl"]
        if "tokenUrl" in scheme:
            flow["tokenUrl"] = scheme["tokenUrl"]
        return {**extras, "type": "oauth2", "flows": {flow_name: flow}}
    return dict(scheme)


def _media_types(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str) and v]
