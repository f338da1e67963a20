# backend/fintrack/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The application layer (main.py) maps them to HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── NotFoundError
    │   ├── AccountNotFoundError
    │   ├── EntityNotFoundError
    │   └── FundNotFoundError
    ├── MarketDataError
    │   └── ProviderUnavailableError
    ├── StoreOperationError
    ├── InsufficientFundsError
    ├── RecordValidationError
    └── CompensationError
"""

from decimal import Decimal


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when command input is malformed or missing.

    Always raised before any store call is made.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class RecordValidationError(ServiceError):
    """
    Raised when a row coming out of the record store does not conform to
    its table schema.

    Attributes:
        table: Table the row came from
        row_id: The row's id, when it had one
    """

    def __init__(self, table: str, row_id: object, message: str) -> None:
        self.table = table
        self.row_id = row_id
        super().__init__(f"Invalid {table} row {row_id!r}: {message}")


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Account", "Goal")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class AccountNotFoundError(NotFoundError):
    """Raised when an account id is not present in the loaded state."""

    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(
            f"Account {account_id} not found",
            resource_type="Account",
            resource_id=account_id,
        )


class EntityNotFoundError(NotFoundError):
    """Raised when a row of any other table cannot be found."""

    def __init__(self, table: str, entity_id: int) -> None:
        super().__init__(
            f"{table} {entity_id} not found",
            resource_type=table,
            resource_id=entity_id,
        )


class FundNotFoundError(NotFoundError):
    """Raised when the quote provider has no scheme with the given code."""

    def __init__(self, scheme_code: int | str) -> None:
        super().__init__(
            f"Mutual fund scheme {scheme_code} not found",
            resource_type="MutualFund",
            resource_id=scheme_code,
        )


# =============================================================================
# MARKET DATA ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for quote provider failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    Raised when a quote provider cannot be reached or answers with a
    server error. Retryable.
    """

    def __init__(self, provider: str, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Provider '{provider}' is unavailable: {reason}", provider=provider)


# =============================================================================
# STORE ERRORS
# =============================================================================


class StoreOperationError(ServiceError):
    """
    Raised when the record store reports a failure on a write.

    Attributes:
        table: Table the operation targeted
        operation: "select", "insert", "update" or "delete"
        code: Store-specific error code, if any
    """

    def __init__(
            self,
            message: str,
            table: str | None = None,
            operation: str | None = None,
            code: str | None = None,
    ) -> None:
        self.table = table
        self.operation = operation
        self.code = code
        super().__init__(message)


class CompensationError(ServiceError):
    """
    Raised when undoing a partially applied multi-step operation fails.

    The ledger and the account balance may disagree after this error;
    reconcile() reports the difference.

    Attributes:
        step: Name of the step whose compensation failed
        cause: The error that triggered the rollback
    """

    def __init__(self, step: str, cause: Exception) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"Failed to compensate step '{step}' after error: {cause}")


# =============================================================================
# BUSINESS RULE ERRORS
# =============================================================================


class InsufficientFundsError(ServiceError):
    """
    Raised when a debit would take an account balance below zero.

    Attributes:
        account_id: Account that would be debited
        available: Current balance
        required: Amount the operation needs
    """

    def __init__(self, account_id: int, available: Decimal, required: Decimal) -> None:
        self.account_id = account_id
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient funds in account {account_id}: "
            f"available {available}, required {required}"
        )
