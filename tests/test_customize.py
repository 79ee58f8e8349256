"""Tests for apinav.customize."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from apinav.customize import customize_spec, matches_operation, normalize_key
from apinav.models import CustomizationConfig, NormalizedOperation, NormalizedSpec, OperationMatcher
from apinav.parser.normalizer import normalize_document


def _config(data: dict[str, Any]) -> CustomizationConfig:
    return CustomizationConfig.model_validate(data)


def _slugs(spec: NormalizedSpec) -> list[str]:
    return [tag.slug for tag in spec.tags]


def _assert_consistent(spec: NormalizedSpec) -> None:
    tag_slugs = {tag.slug for tag in spec.tags}
    for operation in spec.operations:
        assert operation.tags
        assert {ref.slug for ref in operation.tags} <= tag_slugs
    for tag in spec.tags:
        assert tag.operations
        assert tag.stats.operations == len(tag.operations)
        assert sum(tag.stats.methods.values()) == len(tag.operations)
    assert spec.stats.tags == len(spec.tags)
    assert spec.stats.operations == len(spec.operations)
    assert spec.stats.deprecated_operations == sum(op.deprecated for op in spec.operations)


class TestNormalizeKey:
    def test_trims_and_lowercases(self) -> None:
        assert normalize_key("  Pets ") == "pets"

    def test_non_string(self) -> None:
        assert normalize_key(None) == ""


class TestMatchesOperation:
    @pytest.fixture
    def operation(self) -> NormalizedOperation:
        return NormalizedOperation(
            path="/users/{id}", method="get", operation_id="getUser", slug="getuser"
        )

    def test_string_is_path_prefix(self, operation: NormalizedOperation) -> None:
        assert matches_operation(operation, "/users")
        assert not matches_operation(operation, "/orders")
        assert not matches_operation(operation, "")

    def test_exact_path(self, operation: NormalizedOperation) -> None:
        assert matches_operation(operation, OperationMatcher(path="/users/{id}"))
        assert not matches_operation(operation, OperationMatcher(path="/users"))

    def test_methods_case_insensitive(self, operation: NormalizedOperation) -> None:
        assert matches_operation(operation, OperationMatcher(method="GET"))
        assert matches_operation(operation, OperationMatcher(methods=["post", "Get"]))
        assert not matches_operation(operation, OperationMatcher(methods=["post"]))

    def test_all_fields_must_match(self, operation: NormalizedOperation) -> None:
        assert matches_operation(
            operation, OperationMatcher(path_starts_with="/users", slug="getuser", method="get")
        )
        assert not matches_operation(
            operation, OperationMatcher(path_starts_with="/users", method="delete")
        )

    def test_empty_matcher_matches_nothing(self, operation: NormalizedOperation) -> None:
        assert not matches_operation(operation, OperationMatcher())


class TestOperationFilters:
    def test_include_by_prefix_drops_empty_tags(
        self, make_document: Callable[..., dict[str, Any]]
    ) -> None:
        spec = normalize_document(
            make_document(
                paths={
                    "/users": {"get": {"operationId": "listUsers", "tags": ["Users"]}},
                    "/users/{id}": {"get": {"operationId": "getUser", "tags": ["Users"]}},
                    "/orders": {"get": {"operationId": "listOrders", "tags": ["Orders"]}},
                }
            )
        )
        result = customize_spec(
            spec, _config({"operations": {"include": [{"pathStartsWith": "/users"}]}})
        )
        assert [op.path for op in result.operations] == ["/users", "/users/{id}"]
        assert _slugs(result) == ["users"]
        _assert_consistent(result)

    def test_exclude_by_method(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(navigator_spec, _config({"operations": {"exclude": [{"method": "delete"}]}}))
        assert "delete-pets-petid" not in [op.slug for op in result.operations]
        pets = next(tag for tag in result.tags if tag.slug == "pets")
        assert pets.stats.operations == 3
        assert pets.stats.deprecated == 0
        assert result.stats.deprecated_operations == 0
        _assert_consistent(result)

    def test_exclude_wins_over_include(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(
            navigator_spec,
            _config({"operations": {"include": ["/pets"], "exclude": [{"slug": "getpet"}]}}),
        )
        assert [op.slug for op in result.operations] == [
            "listpets",
            "createpet",
            "delete-pets-petid",
        ]
        assert _slugs(result) == ["pets"]

    def test_string_exclude(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(navigator_spec, _config({"operations": {"exclude": ["/store"]}}))
        store = next(tag for tag in result.tags if tag.slug == "store")
        assert [op.slug for op in store.operations] == ["getpet"]

    def test_empty_matcher_excludes_nothing(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(navigator_spec, _config({"operations": {"exclude": [{}]}}))
        assert len(result.operations) == len(navigator_spec.operations)


class TestTagFilters:
    def test_exclude_tag_drops_its_only_operations(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(navigator_spec, _config({"tags": {"exclude": ["internal"]}}))
        assert "internal" not in _slugs(result)
        assert "reindex" not in [op.slug for op in result.operations]
        _assert_consistent(result)

    def test_excluded_tag_removed_from_shared_operation(
        self, navigator_spec: NormalizedSpec
    ) -> None:
        result = customize_spec(navigator_spec, _config({"tags": {"exclude": ["Store"]}}))
        get_pet = next(op for op in result.operations if op.slug == "getpet")
        assert [ref.slug for ref in get_pet.tags] == ["pets"]
        assert "listorders" not in [op.slug for op in result.operations]
        _assert_consistent(result)

    def test_include_list(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(navigator_spec, _config({"tags": {"include": ["store", "UNTAGGED"]}}))
        assert _slugs(result) == ["store", "untagged"]
        assert [op.slug for op in result.operations] == ["getpet", "listorders", "health"]
        _assert_consistent(result)

    def test_exclude_wins_over_include(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(
            navigator_spec, _config({"tags": {"include": ["pets"], "exclude": ["Pets"]}})
        )
        assert result.tags == []
        assert result.operations == []
        assert result.stats.operations == 0

    def test_empty_include_is_no_filter(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(navigator_spec, _config({"tags": {"include": [" "]}}))
        assert len(result.operations) == len(navigator_spec.operations)

    def test_tags_without_operations_dropped(self, navigator_spec: NormalizedSpec) -> None:
        assert "admin" not in _slugs(customize_spec(navigator_spec))


class TestOrderingAndOverrides:
    def test_default_order(self, navigator_spec: NormalizedSpec) -> None:
        assert _slugs(customize_spec(navigator_spec)) == ["internal", "pets", "store", "untagged"]

    def test_explicit_order_first(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(navigator_spec, _config({"tags": {"order": ["untagged", "Store"]}}))
        assert _slugs(result) == ["untagged", "store", "internal", "pets"]

    def test_unlisted_tags_alphabetical_not_declared(
        self, make_document: Callable[..., dict[str, Any]]
    ) -> None:
        spec = normalize_document(
            make_document(
                tags=[{"name": "Zeta"}, {"name": "Alpha"}],
                paths={
                    "/z": {"get": {"tags": ["Zeta"]}},
                    "/a": {"get": {"tags": ["Alpha"]}},
                    "/m": {"get": {"tags": ["Mid"]}},
                    "/u": {"get": {}},
                },
            )
        )
        assert [tag.name for tag in spec.tags][:2] == ["Zeta", "Alpha"]

        result = customize_spec(spec, _config({"tags": {"order": ["Mid"]}}))
        assert [tag.name for tag in result.tags] == ["Mid", "Alpha", "Zeta", "Untagged"]
        assert [entry["name"] for entry in result.document["tags"]] == ["Alpha", "Zeta"]

    def test_overrides(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(
            navigator_spec,
            _config(
                {
                    "tags": {
                        "overrides": {
                            "pets": {
                                "label": "Animals",
                                "sidebarLabel": "Pets & co",
                                "description": "Pet operations",
                            }
                        }
                    }
                }
            ),
        )
        pets = next(tag for tag in result.tags if tag.slug == "pets")
        assert pets.metadata is not None
        assert pets.metadata.display_name == "Animals"
        assert pets.metadata.sidebar_label == "Pets & co"
        assert pets.description == "Pet operations"

    def test_metadata_defaults_to_name(self, navigator_spec: NormalizedSpec) -> None:
        store = customize_spec(navigator_spec).tags[2]
        assert store.metadata is not None
        assert store.metadata.display_name == "Store"
        assert store.metadata.sidebar_label == "Store"

    def test_sidebar_label_defaults_to_label(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(
            navigator_spec, _config({"tags": {"overrides": {"Store": {"label": "Shop"}}}})
        )
        store = next(tag for tag in result.tags if tag.slug == "store")
        assert store.metadata.sidebar_label == "Shop"

    def test_document_tags_reconciled(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(
            navigator_spec,
            _config(
                {
                    "tags": {
                        "order": ["Store"],
                        "overrides": {"pets": {"description": "Pet operations"}},
                    }
                }
            ),
        )
        declared = result.document["tags"]
        assert [entry["name"] for entry in declared] == ["Store", "Pets"]
        assert declared[1]["description"] == "Pet operations"
        assert [entry["name"] for entry in navigator_spec.document["tags"]] == [
            "Pets",
            "Store",
            "Admin",
        ]


class TestCodeSamples:
    def test_include_languages(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(
            navigator_spec, _config({"codeSamples": {"includeLanguages": ["PYTHON"]}})
        )
        list_pets = next(op for op in result.operations if op.slug == "listpets")
        assert [g.label for g in list_pets.code_sample_groups] == ["SDK"]

    def test_rename_keeps_syntax(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(navigator_spec, _config({"codeSamples": {"rename": {"curl": "cURL"}}}))
        list_pets = next(op for op in result.operations if op.slug == "listpets")
        sample = list_pets.code_sample_groups[0].samples[0]
        assert sample.language == "cURL"
        assert sample.syntax == "bash"


class TestInvariants:
    def test_input_not_mutated(self, navigator_spec: NormalizedSpec) -> None:
        before = navigator_spec.model_dump(mode="json")
        customize_spec(
            navigator_spec,
            _config(
                {
                    "tags": {"exclude": ["store"], "overrides": {"pets": {"label": "X"}}},
                    "operations": {"exclude": [{"method": "delete"}]},
                    "codeSamples": {"includeLanguages": ["python"], "rename": {"python": "Py"}},
                }
            ),
        )
        assert navigator_spec.model_dump(mode="json") == before

    def test_shared_operation_stays_shared(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(navigator_spec)
        get_pet = next(op for op in result.operations if op.slug == "getpet")
        for tag in (t for t in result.tags if t.slug in ("pets", "store")):
            assert any(op is get_pet for op in tag.operations)

    def test_no_config_is_consistent(self, navigator_spec: NormalizedSpec) -> None:
        result = customize_spec(navigator_spec)
        assert result.stats.tags == 4
        assert result.stats.operations == 7
        assert result.stats.untagged_operations == 1
        _assert_consistent(result)
