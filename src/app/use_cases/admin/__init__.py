"""Admin use cases for tenant administration."""

from .suspend_tenant_use_case import SuspendTenantUseCase, SuspendTenantResponse
from .restore_tenant_use_case import RestoreTenantUseCase, RestoreTenantResponse

__all__ = [
    "SuspendTenantUseCase",
    "SuspendTenantResponse",
    "RestoreTenantUseCase",
    "RestoreTenantResponse",
]
