"""Billing use cases: summary, quotes, checkout, downgrades, add-ons, renewal."""

from .cancel_checkout_use_case import CancelCheckoutUseCase
from .cancel_scheduled_downgrade_use_case import CancelScheduledDowngradeUseCase
from .change_subscription_status_use_case import ChangeSubscriptionStatusUseCase
from .confirm_checkout_use_case import ConfirmCheckoutUseCase
from .get_billing_history_use_case import GetBillingHistoryUseCase
from .get_billing_summary_use_case import GetBillingSummaryUseCase
from .get_license_summary_use_case import GetLicenseSummaryUseCase
from .payment_methods_use_case import (
    ListPaymentMethodsUseCase,
    RemovePaymentMethodUseCase,
    SetDefaultPaymentMethodUseCase,
    StorePaymentMethodUseCase,
)
from .process_renewal_use_case import ProcessRenewalUseCase
from .quote_upgrade_use_case import QuoteUpgradeUseCase
from .schedule_downgrade_use_case import ScheduleDowngradeUseCase
from .start_checkout_use_case import StartCheckoutUseCase
from .toggle_addon_use_case import ToggleAddonUseCase

__all__ = [
    "GetBillingSummaryUseCase",
    "GetLicenseSummaryUseCase",
    "GetBillingHistoryUseCase",
    "QuoteUpgradeUseCase",
    "StartCheckoutUseCase",
    "ConfirmCheckoutUseCase",
    "CancelCheckoutUseCase",
    "ScheduleDowngradeUseCase",
    "CancelScheduledDowngradeUseCase",
    "ToggleAddonUseCase",
    "ChangeSubscriptionStatusUseCase",
    "ProcessRenewalUseCase",
    "ListPaymentMethodsUseCase",
    "StorePaymentMethodUseCase",
    "SetDefaultPaymentMethodUseCase",
    "RemovePaymentMethodUseCase",
]
