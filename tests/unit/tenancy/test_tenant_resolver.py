"""
Unit tests for TenantResolver
Identifier precedence, optional routes and slug validation.
"""

import pytest

from src.app.tenancy.resolver import ResolutionRequest, TenantResolver


@pytest.fixture
def resolver():
    return TenantResolver(
        header_name="X-Tenant",
        query_parameter="tenant",
        central_domains=["example.com"],
        subdomain_route_prefixes=["/api/internal"],
        optional_routes=["/api/health", "/healthz", "/api/auth/*/callback", "/api/auth/me"],
    )


def test_header_takes_precedence_over_query(resolver):
    request = ResolutionRequest(
        method="GET",
        path="/api/billing/summary",
        headers={"X-Tenant": "acme"},
        query={"tenant": "beta"},
    )

    result = resolver.resolve(request)

    assert result.is_ok()
    assert result.value.slug == "acme"
    assert result.value.source == "header"


def test_header_lookup_is_case_insensitive(resolver):
    request = ResolutionRequest(
        method="GET", path="/api/billing/summary", headers={"x-tenant": "  ACME "}
    )

    result = resolver.resolve(request)

    assert result.value.slug == "acme"


def test_query_parameter_used_without_header(resolver):
    request = ResolutionRequest(
        method="GET", path="/api/billing/summary", query={"tenant": "beta"}
    )

    result = resolver.resolve(request)

    assert result.value.slug == "beta"
    assert result.value.source == "query"


def test_subdomain_only_on_privileged_routes(resolver):
    internal = ResolutionRequest(
        method="GET", path="/api/internal/stats", host="acme.example.com:8000"
    )
    public = ResolutionRequest(
        method="GET", path="/api/billing/summary", host="acme.example.com"
    )

    assert resolver.resolve(internal).value.slug == "acme"
    assert resolver.resolve(public).error.code == "NO_TENANT_CONTEXT"


def test_missing_identifier_fails_with_no_tenant_context(resolver):
    request = ResolutionRequest(method="POST", path="/api/billing/checkout/start")

    result = resolver.resolve(request)

    assert result.is_err()
    assert result.error.code == "NO_TENANT_CONTEXT"


@pytest.mark.parametrize(
    "path", ["/api/health", "/healthz", "/api/auth/google/callback", "/api/auth/me/"]
)
def test_optional_routes_proceed_without_tenant(resolver, path):
    result = resolver.resolve(ResolutionRequest(method="GET", path=path))

    assert result.is_ok()
    assert result.value is None


def test_preflight_requests_proceed_without_tenant(resolver):
    result = resolver.resolve(
        ResolutionRequest(method="OPTIONS", path="/api/billing/summary")
    )

    assert result.is_ok()
    assert result.value is None


def test_malformed_slug_is_rejected(resolver):
    request = ResolutionRequest(
        method="GET", path="/api/billing/summary", headers={"X-Tenant": "acme_corp!"}
    )

    result = resolver.resolve(request)

    assert result.error.code == "VALIDATION_FAILED"


def test_identifier_on_optional_route_is_still_extracted(resolver):
    request = ResolutionRequest(
        method="GET", path="/api/auth/me", headers={"X-Tenant": "acme"}
    )

    assert resolver.resolve(request).value.slug == "acme"
