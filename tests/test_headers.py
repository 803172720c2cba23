"""Unit tests for header signatures, matching and consolidation."""

from __future__ import annotations

import pytest

from openapi_to_dart_generator.config import parse_config
from openapi_to_dart_generator.headers import (
    HeaderConsolidator,
    HeaderMatcher,
    MatchStrategy,
    definition_signature,
    header_signature,
    jaccard_index,
    synthesize_class_name,
)
from openapi_to_dart_generator.model_types import (
    HeaderClassDefinition,
    HeaderField,
    HeaderParameter,
)
from openapi_to_dart_generator.naming import to_header_property_name


def _header(name: str, required: bool = True) -> HeaderParameter:
    return HeaderParameter(
        original_name=name,
        dart_name=to_header_property_name(name),
        required=required,
    )


def _definition(name: str, **fields: bool) -> HeaderClassDefinition:
    return HeaderClassDefinition(
        name=name,
        fields=tuple(
            HeaderField(name=field_name.replace("_", "-"), required=required)
            for field_name, required in fields.items()
        ),
    )


_API_HEADERS = _definition("ApiHeaders", x_api_key=True, x_user_id=False)
_TENANT_HEADERS = _definition("TenantHeaders", x_api_key=True, x_tenant_id=True, x_trace_id=False)


def test_signature_is_order_independent() -> None:
    """The same headers in a different order give the same signature and class."""
    forward = [_header("x-user-id", False), _header("x-api-key")]
    backward = list(reversed(forward))

    assert header_signature(forward) == "x-api-key:R|x-user-id:O"
    assert header_signature(forward) == header_signature(backward)

    matcher = HeaderMatcher([_API_HEADERS])
    assert matcher.find_matching_header_class("/a", forward) == "ApiHeaders"
    assert matcher.find_matching_header_class("/b", backward) == "ApiHeaders"


def test_signature_distinguishes_required_flags() -> None:
    """Differing required status yields different signatures and classes."""
    required = [_header("x-api-key", True)]
    optional = [_header("x-api-key", False)]
    assert header_signature(required) != header_signature(optional)

    consolidator = HeaderConsolidator(threshold=1)
    matcher = HeaderMatcher([], consolidator=consolidator)

    first = matcher.find_matching_header_class("/orders", required)
    second = matcher.find_matching_header_class("/orders", optional)

    assert first == "OrdersHeaders"
    assert second == "OrdersHeaders2"


def test_definition_signature() -> None:
    """Definitions produce signatures in the same format as endpoints."""
    assert definition_signature(_API_HEADERS) == "x-api-key:R|x-user-id:O"


def test_exact_matching() -> None:
    """Exact matching requires identical names and required flags."""
    matcher = HeaderMatcher([_API_HEADERS, _TENANT_HEADERS])

    assert (
        matcher.find_matching_header_class(
            "/users", [_header("x-api-key"), _header("x-user-id", False)]
        )
        == "ApiHeaders"
    )
    assert matcher.find_matching_header_class("/users", [_header("x-api-key")]) is None
    assert (
        matcher.find_matching_header_class(
            "/users", [_header("x-api-key"), _header("x-user-id", True)]
        )
        is None
    )


def test_shared_field_set_splits_on_required_flags() -> None:
    """Definitions over the same fields are told apart by their required lists."""
    config = parse_config(
        {
            "headers": {
                "definitions": {
                    "CompanyUserHeaders": {"fields": ["x-api-key", "x-company-id", "x-user-id"]},
                    "CompanyHeaders": {
                        "fields": ["x-api-key", "x-company-id", "x-user-id"],
                        "required": ["x-api-key", "x-company-id"],
                    },
                }
            }
        }
    )
    matcher = config.headers.build_matcher()

    all_required = [_header("x-api-key"), _header("x-company-id"), _header("x-user-id")]
    user_optional = [_header("x-api-key"), _header("x-company-id"), _header("x-user-id", False)]

    assert matcher.find_matching_header_class("/users", all_required) == "CompanyUserHeaders"
    assert matcher.find_matching_header_class("/companies", user_optional) == "CompanyHeaders"


@pytest.mark.parametrize("strategy", ["exact", "subset"])
def test_required_names_outside_fields_never_match(strategy: str) -> None:
    """A definition requiring an undeclared field is kept but never selected."""
    config = parse_config(
        {
            "headers": {
                "matchStrategy": strategy,
                "definitions": {
                    "BrokenHeaders": {"fields": ["x-a", "x-b"], "required": ["x-a", "x-z"]},
                },
            }
        }
    )
    matcher = config.headers.build_matcher()

    assert matcher.find_matching_header_class("/a", [_header("x-a"), _header("x-b", False)]) is None
    assert matcher.find_matching_header_class("/b", [_header("x-a")]) is None


def test_subset_matching_prefers_tightest_definition() -> None:
    """Subset matching needs all headers covered and all required fields present."""
    matcher = HeaderMatcher([_TENANT_HEADERS, _API_HEADERS], strategy=MatchStrategy.SUBSET)

    assert matcher.find_matching_header_class("/a", [_header("x-api-key")]) == "ApiHeaders"
    assert (
        matcher.find_matching_header_class("/b", [_header("x-api-key"), _header("x-tenant-id")])
        == "TenantHeaders"
    )
    assert matcher.find_matching_header_class("/c", [_header("x-other")]) is None


def test_subset_matching_requires_definition_required_fields() -> None:
    """A definition is skipped when a required field is missing from the endpoint."""
    definition = _definition("UserHeaders", x_api_key=True, x_user_id=True, x_trace_id=False)
    matcher = HeaderMatcher([definition], strategy=MatchStrategy.SUBSET)

    assert (
        matcher.find_matching_header_class("/a", [_header("x-api-key"), _header("x-user-id")])
        == "UserHeaders"
    )
    assert matcher.find_matching_header_class("/b", [_header("x-api-key")]) is None


def test_fuzzy_matching_uses_overlap_threshold() -> None:
    """Fuzzy matching accepts the best overlap at or above the threshold."""
    matcher = HeaderMatcher([_TENANT_HEADERS], strategy=MatchStrategy.FUZZY, fuzzy_threshold=0.5)

    assert (
        matcher.find_matching_header_class("/a", [_header("x-api-key"), _header("x-tenant-id")])
        == "TenantHeaders"
    )
    assert (
        matcher.find_matching_header_class(
            "/b", [_header("x-api-key"), _header("x-one"), _header("x-two")]
        )
        is None
    )
    assert jaccard_index(frozenset({"a", "b"}), frozenset({"a", "b", "c"})) == pytest.approx(2 / 3)
    assert jaccard_index(frozenset(), frozenset()) == 0.0


def test_disabled_matching_and_empty_headers_skip_statistics() -> None:
    """No lookup or statistics happen when disabled or when there are no headers."""
    disabled = HeaderMatcher([_API_HEADERS], enabled=False)
    assert disabled.find_matching_header_class("/a", [_header("x-api-key")]) is None
    assert disabled.stats.total_endpoints == 0

    matcher = HeaderMatcher([_API_HEADERS])
    assert matcher.find_matching_header_class("/a", []) is None
    assert matcher.stats.total_endpoints == 0
    assert matcher.assignments() == {}


def test_consolidation_threshold() -> None:
    """The threshold-th occurrence synthesizes a class and later ones reuse it."""
    consolidator = HeaderConsolidator(threshold=3)
    matcher = HeaderMatcher([], consolidator=consolidator)
    headers = [_header("x-trace-id", False)]
    paths = ["/v1/users", "/v1/users/{id}", "/v1/users/{id}/posts", "/v1/users/me"]

    results = [
        matcher.find_matching_header_class(path, headers, endpoint_name=f"op{index}")
        for index, path in enumerate(paths)
    ]

    assert results == [None, None, "UsersHeaders", "UsersHeaders"]
    assert consolidator.occurrences(header_signature(headers)) == 4
    assert matcher.assignments() == {
        "op0": "UsersHeaders",
        "op1": "UsersHeaders",
        "op2": "UsersHeaders",
        "op3": "UsersHeaders",
    }

    stats = matcher.stats
    assert stats.total_endpoints == 4
    assert stats.matched_endpoints == 2
    assert stats.unmatched_endpoints == 2
    assert stats.consolidated_classes == 1
    assert stats.class_usage["UsersHeaders"] == 2


def test_consolidated_class_shape() -> None:
    """Synthesized definitions keep header names, types and required flags."""
    consolidator = HeaderConsolidator(threshold=1)
    matcher = HeaderMatcher([], consolidator=consolidator)
    matcher.find_matching_header_class("/v2/orders", [_header("x-b", False), _header("x-a")])

    (definition,) = matcher.header_classes()
    assert definition.name == "OrdersHeaders"
    assert definition.synthesized
    assert [(item.name, item.required) for item in definition.fields] == [
        ("x-a", True),
        ("x-b", False),
    ]


def test_consolidated_names_avoid_reserved_and_configured_names() -> None:
    """Synthesized names never collide with models or configured classes."""
    consolidator = HeaderConsolidator(threshold=1, reserved_names=["UsersHeaders"])
    matcher = HeaderMatcher([_definition("Users2Headers", x_z=True)], consolidator=consolidator)

    assert matcher.find_matching_header_class("/users", [_header("x-a")]) == "UsersHeaders2"
    assert [item.name for item in matcher.header_classes()] == ["Users2Headers", "UsersHeaders2"]


def test_configured_match_is_not_consolidated() -> None:
    """Endpoints matching a definition never feed the consolidator."""
    consolidator = HeaderConsolidator(threshold=1)
    matcher = HeaderMatcher([_API_HEADERS], consolidator=consolidator)

    headers = [_header("x-api-key"), _header("x-user-id", False)]
    assert matcher.find_matching_header_class("/a", headers) == "ApiHeaders"
    assert consolidator.occurrences(header_signature(headers)) == 0


def test_invalid_threshold_is_rejected() -> None:
    """Consolidation thresholds below one are invalid."""
    with pytest.raises(ValueError, match="at least 1"):
        HeaderConsolidator(threshold=0)


@pytest.mark.parametrize(
    ("paths", "expected"),
    [
        (["/v1/users/{id}", "/v1/users/{id}/posts"], "UsersHeaders"),
        (["/api/orders", "/api/orders/{id}/items"], "ApiOrdersHeaders"),
        (["/orders", "/users"], "OrdersHeaders"),
        (["/pet-store/items"], "PetStoreItemsHeaders"),
        (["/{id}"], "SharedHeaders"),
        ([], "SharedHeaders"),
    ],
)
def test_synthesize_class_name(paths: list[str], expected: str) -> None:
    """Common path segments name the synthesized class."""
    assert synthesize_class_name(paths) == expected


def test_report_lists_usage_reroutes_and_unmatched() -> None:
    """The report should summarize statistics, usage and re-routed endpoints."""
    consolidator = HeaderConsolidator(threshold=2)
    matcher = HeaderMatcher([_API_HEADERS], consolidator=consolidator)
    matcher.find_matching_header_class(
        "/users", [_header("x-api-key"), _header("x-user-id", False)], endpoint_name="getUsers"
    )
    matcher.find_matching_header_class("/orders", [_header("x-trace-id")], endpoint_name="getOrders")
    matcher.find_matching_header_class(
        "/orders/{id}", [_header("x-trace-id")], endpoint_name="getOrder"
    )
    matcher.find_matching_header_class("/misc", [_header("x-misc")], endpoint_name="getMisc")

    report = matcher.report()

    assert report.startswith("# Header Matching Report\n")
    assert "- Strategy: exact" in report
    assert "- Total endpoints analyzed: 4" in report
    assert "- ApiHeaders: 1 endpoint(s)" in report
    assert "- OrdersHeaders: 1 endpoint(s)" in report
    assert "## Re-routed Endpoints\n- getOrders -> OrdersHeaders" in report
    assert "- `x-misc:R`" in report
    assert matcher.assignments()["getMisc"] is None
