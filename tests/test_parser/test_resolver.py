"""Tests for apinav.parser.resolver."""

from __future__ import annotations

import json
import time
from typing import Any

from apinav.parser.resolver import (
    PARAMETER_REF_PREFIX,
    SchemaResolver,
    decode_ref_name,
    merge_schema_objects,
)


def _resolver(schemas: dict[str, Any] | None = None, parameters: dict[str, Any] | None = None) -> SchemaResolver:
    return SchemaResolver({"schemas": schemas or {}, "parameters": parameters or {}})


class TestDecodeRefName:
    def test_plain_name(self) -> None:
        assert decode_ref_name("#/components/schemas/Pet") == "Pet"

    def test_unescapes_json_pointer(self) -> None:
        assert decode_ref_name("#/components/schemas/a~1b~0c") == "a/b~c"

    def test_other_section_is_none(self) -> None:
        assert decode_ref_name("#/components/responses/NotFound") is None

    def test_parameter_prefix(self) -> None:
        assert decode_ref_name("#/components/parameters/Limit", PARAMETER_REF_PREFIX) == "Limit"

    def test_non_string_is_none(self) -> None:
        assert decode_ref_name(None) is None


class TestMergeSchemaObjects:
    def test_override_wins_and_properties_merge(self) -> None:
        base = {"type": "object", "properties": {"a": {"type": "string"}}, "description": "base"}
        override = {"properties": {"b": {"type": "integer"}}, "description": "override"}
        merged = merge_schema_objects(base, override)
        assert merged["description"] == "override"
        assert set(merged["properties"]) == {"a", "b"}

    def test_required_union_keeps_first_seen_order(self) -> None:
        merged = merge_schema_objects({"required": ["b", "a"]}, {"required": ["a", "c"]})
        assert merged["required"] == ["b", "a", "c"]

    def test_inputs_not_mutated(self) -> None:
        base = {"properties": {"a": {"type": "string"}}}
        merge_schema_objects(base, {"properties": {"b": {}}})
        assert base == {"properties": {"a": {"type": "string"}}}


class TestResolveSchema:
    def test_simple_ref(self) -> None:
        resolver = _resolver({"Pet": {"type": "object", "properties": {"name": {"type": "string"}}}})
        result = resolver.resolve_schema({"$ref": "#/components/schemas/Pet"})
        assert result == {"type": "object", "properties": {"name": {"type": "string"}}}

    def test_sibling_keys_override_ref(self) -> None:
        resolver = _resolver({"Pet": {"type": "object", "description": "A pet"}})
        result = resolver.resolve_schema(
            {"$ref": "#/components/schemas/Pet", "description": "Overridden"}
        )
        assert result["description"] == "Overridden"
        assert result["type"] == "object"
        assert "$ref" not in result

    def test_all_of_required_union(self) -> None:
        result = _resolver().resolve_schema({"allOf": [{"required": ["a"]}, {"required": ["b"]}]})
        assert "a" in result["required"]
        assert "b" in result["required"]
        assert "allOf" not in result

    def test_all_of_with_base_entity(self) -> None:
        resolver = _resolver(
            {
                "BaseEntity": {
                    "type": "object",
                    "required": ["id"],
                    "properties": {"id": {"type": "string"}, "createdAt": {"type": "string"}},
                },
                "PaymentMethod": {
                    "allOf": [
                        {"$ref": "#/components/schemas/BaseEntity"},
                        {"properties": {"brand": {"type": "string"}}, "required": ["brand"]},
                    ]
                },
            }
        )
        result = resolver.resolve_schema({"$ref": "#/components/schemas/PaymentMethod"})
        assert set(result["properties"]) == {"id", "createdAt", "brand"}
        assert result["required"] == ["id", "brand"]
        assert result["type"] == "object"
        assert "allOf" not in result

    def test_local_all_of_next_to_ref_is_kept(self) -> None:
        resolver = _resolver({"Base": {"properties": {"id": {"type": "string"}}}})
        result = resolver.resolve_schema(
            {
                "$ref": "#/components/schemas/Base",
                "allOf": [{"properties": {"extra": {"type": "boolean"}}}],
            }
        )
        assert set(result["properties"]) == {"id", "extra"}

    def test_nested_properties_items_and_additional_properties(self) -> None:
        resolver = _resolver({"Tag": {"type": "object", "properties": {"label": {"type": "string"}}}})
        result = resolver.resolve_schema(
            {
                "properties": {
                    "tags": {"type": "array", "items": {"$ref": "#/components/schemas/Tag"}},
                    "byName": {"additionalProperties": {"$ref": "#/components/schemas/Tag"}},
                }
            }
        )
        assert result["type"] == "object"
        assert result["properties"]["tags"]["items"]["properties"]["label"] == {"type": "string"}
        assert result["properties"]["byName"]["additionalProperties"]["type"] == "object"

    def test_infers_array_type(self) -> None:
        result = _resolver().resolve_schema({"items": {"type": "string"}})
        assert result["type"] == "array"

    def test_unresolvable_top_level_ref_is_none(self) -> None:
        assert _resolver().resolve_schema({"$ref": "#/components/schemas/Missing"}) is None

    def test_unresolvable_nested_ref_is_empty(self) -> None:
        result = _resolver().resolve_schema(
            {"properties": {"ghost": {"$ref": "#/components/schemas/Missing"}}}
        )
        assert result["properties"]["ghost"] == {}

    def test_non_mapping_is_none(self) -> None:
        assert _resolver().resolve_schema("not a schema") is None

    def test_self_reference_terminates(self) -> None:
        resolver = _resolver(
            {
                "Node": {
                    "type": "object",
                    "properties": {"next": {"$ref": "#/components/schemas/Node"}},
                }
            }
        )
        result = resolver.resolve_schema({"$ref": "#/components/schemas/Node"})
        assert result["type"] == "object"
        assert result["properties"]["next"] == {}

    def test_mutual_reference_terminates(self) -> None:
        resolver = _resolver(
            {
                "A": {"properties": {"b": {"$ref": "#/components/schemas/B"}}},
                "B": {"properties": {"a": {"$ref": "#/components/schemas/A"}}},
            }
        )
        result = resolver.resolve_schema({"$ref": "#/components/schemas/A"})
        assert result["properties"]["b"]["properties"]["a"] == {}

    def test_components_not_mutated(self) -> None:
        schemas = {"Pet": {"allOf": [{"required": ["a"]}]}}
        _resolver(schemas).resolve_schema({"$ref": "#/components/schemas/Pet"})
        assert schemas == {"Pet": {"allOf": [{"required": ["a"]}]}}


class TestExpansionLimit:
    @staticmethod
    def _connected(count: int) -> dict[str, Any]:
        names = [f"S{i}" for i in range(count)]
        return {
            name: {
                "type": "object",
                "properties": {
                    other.lower(): {"$ref": f"#/components/schemas/{other}"}
                    for other in names
                    if other != name
                },
            }
            for name in names
        }

    def test_fully_connected_schemas_stay_bounded(self) -> None:
        resolver = _resolver(self._connected(8))
        started = time.perf_counter()
        result = resolver.resolve_schema({"$ref": "#/components/schemas/S0"})
        elapsed = time.perf_counter() - started

        assert elapsed < 2.0
        assert len(json.dumps(result)) < 200_000
        assert result["type"] == "object"
        assert set(result["properties"]) == {f"s{i}" for i in range(1, 8)}
        assert "$ref" in json.dumps(result)

    def test_limit_leaves_ref_in_place(self) -> None:
        resolver = SchemaResolver({"schemas": self._connected(3)}, max_ref_expansions=1)
        result = resolver.resolve_schema({"$ref": "#/components/schemas/S0"})
        assert result["properties"] == {
            "s1": {"$ref": "#/components/schemas/S1"},
            "s2": {"$ref": "#/components/schemas/S2"},
        }

    def test_limit_is_per_call(self) -> None:
        resolver = SchemaResolver({"schemas": self._connected(3)}, max_ref_expansions=2)
        first = resolver.resolve_schema({"$ref": "#/components/schemas/S0"})
        second = resolver.resolve_schema({"$ref": "#/components/schemas/S0"})
        assert first == second
        assert first["properties"]["s1"]["type"] == "object"

    def test_repeated_ref_expanded_each_time(self) -> None:
        resolver = _resolver(
            {
                "Address": {"properties": {"city": {"type": "string"}}},
                "Order": {
                    "properties": {
                        "billing": {"$ref": "#/components/schemas/Address"},
                        "shipping": {"$ref": "#/components/schemas/Address"},
                    }
                },
            }
        )
        result = resolver.resolve_schema({"$ref": "#/components/schemas/Order"})
        assert result["properties"]["billing"] == result["properties"]["shipping"]
        assert result["properties"]["shipping"]["properties"]["city"] == {"type": "string"}


class TestResolveParameter:
    def test_inline_parameter(self) -> None:
        param = {"name": "id", "in": "path", "required": True}
        assert _resolver().resolve_parameter(param) == param

    def test_ref_with_overrides(self) -> None:
        resolver = _resolver(
            parameters={
                "Limit": {
                    "name": "limit",
                    "in": "query",
                    "description": "Page size",
                    "schema": {"type": "integer", "minimum": 1},
                }
            }
        )
        result = resolver.resolve_parameter(
            {"$ref": "#/components/parameters/Limit", "schema": {"maximum": 100}}
        )
        assert result["name"] == "limit"
        assert result["description"] == "Page size"
        assert result["schema"] == {"type": "integer", "minimum": 1, "maximum": 100}

    def test_unknown_ref_is_none(self) -> None:
        assert _resolver().resolve_parameter({"$ref": "#/components/parameters/Nope"}) is None

    def test_missing_name_or_in_is_none(self) -> None:
        resolver = _resolver()
        assert resolver.resolve_parameter({"in": "query"}) is None
        assert resolver.resolve_parameter({"name": "q"}) is None
        assert resolver.resolve_parameter({"name": "", "in": "query"}) is None
