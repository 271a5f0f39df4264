"""
Error codes returned in ``Error.code`` by tenancy services and use cases.
"""

# Tenancy
NO_TENANT_CONTEXT = "NO_TENANT_CONTEXT"
TENANT_NOT_FOUND = "TENANT_NOT_FOUND"
TENANT_SUSPENDED = "TENANT_SUSPENDED"
TENANT_DATABASE_NOT_CONFIGURED = "TENANT_DATABASE_NOT_CONFIGURED"

# Authentication / authorization
UNAUTHENTICATED = "UNAUTHENTICATED"
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
FORBIDDEN = "FORBIDDEN"

# Billing rules
VALIDATION_FAILED = "VALIDATION_FAILED"
LICENSE_LIMIT_EXCEEDED = "LICENSE_LIMIT_EXCEEDED"
INVALID_PLAN_TRANSITION = "INVALID_PLAN_TRANSITION"
SUBSCRIPTION_NOT_FOUND = "SUBSCRIPTION_NOT_FOUND"
PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
PAYMENT_DECLINED = "PAYMENT_DECLINED"
CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"

# Infrastructure
PAYMENT_GATEWAY_ERROR = "PAYMENT_GATEWAY_ERROR"
PAYMENT_METHOD_NOT_FOUND = "PAYMENT_METHOD_NOT_FOUND"
PAYMENT_METHOD_REQUIRED = "PAYMENT_METHOD_REQUIRED"
