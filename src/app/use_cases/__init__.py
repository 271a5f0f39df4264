"""
Use Cases

Organized by area:
- billing/: Subscriptions, checkout, downgrades, renewal, payment methods
- auth/: Personal access tokens
- admin/: Tenant suspension and restoration
"""

from .billing import (
    CancelCheckoutUseCase,
    ConfirmCheckoutUseCase,
    GetBillingSummaryUseCase,
    ProcessRenewalUseCase,
    StartCheckoutUseCase,
)
from .auth import IssueAccessTokenUseCase
from .admin import RestoreTenantUseCase, SuspendTenantUseCase

__all__ = [
    # Billing
    "GetBillingSummaryUseCase",
    "StartCheckoutUseCase",
    "ConfirmCheckoutUseCase",
    "CancelCheckoutUseCase",
    "ProcessRenewalUseCase",
    # Auth
    "IssueAccessTokenUseCase",
    # Admin
    "SuspendTenantUseCase",
    "RestoreTenantUseCase",
]
