"""
Tenant identification.

Extracts the tenant slug a request targets, in precedence order:

1. the tenant header (``X-Tenant`` by default)
2. the ``tenant`` query parameter
3. the subdomain of a central domain, only on privileged internal routes

The resolver is pure: it never touches a database. Looking the slug up
is the connection router's job.
"""

import re
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Iterable, Mapping, Optional, Sequence

from src.domain import errors
from src.domain.values import TenantIdentifier
from src.libs.result import Error, Result, Return

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{1,62}$")


@dataclass(frozen=True)
class ResolutionRequest:
    """The parts of an HTTP request tenant resolution looks at."""

    method: str
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, str] = field(default_factory=dict)
    host: Optional[str] = None

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


def normalize_slug(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    slug = raw.strip().lower()
    return slug or None


class TenantResolver:
    def __init__(
        self,
        header_name: str = "X-Tenant",
        query_parameter: str = "tenant",
        central_domains: Sequence[str] = (),
        subdomain_route_prefixes: Sequence[str] = (),
        optional_routes: Sequence[str] = (),
    ):
        self.header_name = header_name
        self.query_parameter = query_parameter
        self.central_domains = tuple(d.lower().lstrip(".") for d in central_domains)
        self.subdomain_route_prefixes = tuple(subdomain_route_prefixes)
        self.optional_routes = tuple(optional_routes)

    @classmethod
    def from_config(cls, config) -> "TenantResolver":
        return cls(
            header_name=config.TENANT_HEADER,
            query_parameter=config.TENANT_QUERY_PARAMETER,
            central_domains=config.CENTRAL_DOMAINS,
            subdomain_route_prefixes=config.SUBDOMAIN_ROUTE_PREFIXES,
            optional_routes=config.TENANT_OPTIONAL_ROUTES,
        )

    def resolve(self, request: ResolutionRequest) -> Result[Optional[TenantIdentifier]]:
        """
        Identify the tenant a request targets.

        Returns:
            Ok(TenantIdentifier) when one is present, Ok(None) for routes
            that run without a tenant, NO_TENANT_CONTEXT otherwise
        """
        extracted = self.extract(request)
        if extracted.is_err() or extracted.value is not None:
            return extracted

        if request.method.upper() == "OPTIONS" or self.is_tenant_optional(request.path):
            return Return.ok(None)

        return Return.err(Error(errors.NO_TENANT_CONTEXT, "Tenant identifier required"))

    def extract(self, request: ResolutionRequest) -> Result[Optional[TenantIdentifier]]:
        """Find an identifier without classifying the route."""
        candidates = (
            ("header", normalize_slug(request.header(self.header_name))),
            ("query", normalize_slug(request.query.get(self.query_parameter))),
            ("subdomain", self._subdomain_slug(request)),
        )
        for source, slug in candidates:
            if slug is None:
                continue
            if not SLUG_PATTERN.match(slug):
                return Return.err(
                    Error(errors.VALIDATION_FAILED, f"Invalid tenant identifier: {slug}")
                )
            return Return.ok(TenantIdentifier(slug=slug, source=source))
        return Return.ok(None)

    def is_tenant_optional(self, path: str) -> bool:
        return _matches_any(_normalize_path(path), self.optional_routes)

    def _subdomain_slug(self, request: ResolutionRequest) -> Optional[str]:
        if not request.host or not self.central_domains:
            return None
        path = _normalize_path(request.path)
        if not any(path.startswith(prefix) for prefix in self.subdomain_route_prefixes):
            return None

        host = request.host.split(":", 1)[0].lower()
        for domain in self.central_domains:
            suffix = "." + domain
            if host.endswith(suffix):
                labels = host[: -len(suffix)].split(".")
                return normalize_slug(labels[0])
        return None


def _normalize_path(path: str) -> str:
    if len(path) > 1:
        return path.rstrip("/")
    return path


def _matches_any(path: str, patterns: Iterable[str]) -> bool:
    return any(fnmatchcase(path, pattern) for pattern in patterns)
