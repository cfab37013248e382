"""Error taxonomy for entry generation and posting.

Operator-facing failures derive from :class:`GenerationError` and carry enough
structured data (account numbers, totals) to fix the root cause without
reading logs. AI provider failures derive from :class:`AIGenerationError`; they
stay inside the AI strategy and only reach callers attached to a final
:class:`NoApplicableRule` when the static fallback fails too.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID

from ledger_posting.money import format_amount


class PostingEngineError(Exception):
    """Base exception for the posting engine."""

    code = "posting_engine_error"
    retryable = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for an API response."""
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


# =============================================================================
# GENERATION ERRORS (client-facing)
# =============================================================================


class GenerationError(PostingEngineError):
    """A document could not be turned into a committed posting."""

    code = "generation_error"


class DocumentNotFound(GenerationError):
    """No source document exists with the requested id."""

    code = "document_not_found"

    def __init__(self, document_id: UUID):
        super().__init__(
            f"Document {document_id} not found",
            details={"document_id": str(document_id)},
        )
        self.document_id = document_id


class InvalidDocument(GenerationError):
    """The stored document cannot be read back, e.g. an unknown status name."""

    code = "invalid_document"

    def __init__(self, document_id: UUID, reason: str):
        super().__init__(
            f"Document {document_id} is invalid: {reason}",
            details={"document_id": str(document_id), "reason": reason},
        )
        self.document_id = document_id


class AlreadyPosted(GenerationError):
    """The document has already been posted."""

    code = "already_posted"

    def __init__(self, document_id: UUID):
        super().__init__(
            f"Document {document_id} is already posted",
            details={"document_id": str(document_id)},
        )
        self.document_id = document_id


class EmptyChartOfAccounts(GenerationError):
    """The tenant has no accounts configured."""

    code = "empty_chart_of_accounts"

    def __init__(self, tenant_id: UUID):
        super().__init__(
            "Chart of accounts is empty, configure it before posting",
            details={"tenant_id": str(tenant_id)},
        )
        self.tenant_id = tenant_id


class NoApplicableRule(GenerationError):
    """The static rules could not produce a posting for the document."""

    code = "no_applicable_rule"

    def __init__(
        self,
        kind: str,
        missing_roles: list[str] | None = None,
        ai_errors: list["AIGenerationError"] | None = None,
    ):
        missing = missing_roles or []
        message = f"No static rule applies to {kind}"
        if missing:
            message += f" (no account for: {', '.join(missing)})"
        super().__init__(
            message,
            details={
                "kind": kind,
                "missing_roles": missing,
                "ai_errors": [e.to_dict() for e in ai_errors or []],
            },
        )
        self.kind = kind
        self.missing_roles = missing
        self.ai_errors = list(ai_errors or [])


class UnknownAccounts(GenerationError):
    """Generated lines reference accounts absent from the chart."""

    code = "unknown_accounts"

    def __init__(
        self,
        account_numbers: list[str],
        suggestions: dict[str, list[str]] | None = None,
    ):
        super().__init__(
            "Accounts not found in chart of accounts: " + ", ".join(account_numbers),
            details={
                "account_numbers": account_numbers,
                "suggestions": suggestions or {},
            },
        )
        self.account_numbers = account_numbers
        self.suggestions = suggestions or {}


class Unbalanced(GenerationError):
    """Debit and credit totals differ by more than the tolerance."""

    code = "unbalanced"

    def __init__(
        self,
        total_debit: Decimal,
        total_credit: Decimal,
        difference: Decimal,
        tolerance: Decimal,
    ):
        super().__init__(
            f"Unbalanced entries: debit {format_amount(total_debit)} != "
            f"credit {format_amount(total_credit)} "
            f"(difference {format_amount(difference)})",
            details={
                "total_debit": format_amount(total_debit),
                "total_credit": format_amount(total_credit),
                "difference": format_amount(difference),
                "tolerance": format_amount(tolerance),
            },
        )
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = difference
        self.tolerance = tolerance


class PostingFailed(GenerationError):
    """The posting transaction failed and was rolled back."""

    code = "posting_failed"
    retryable = True

    def __init__(self, document_id: UUID, reason: str):
        super().__init__(
            f"Posting of document {document_id} failed: {reason}",
            details={"document_id": str(document_id), "reason": reason},
        )
        self.document_id = document_id


# =============================================================================
# AI ERRORS (recovered by the orchestrator)
# =============================================================================


class AIGenerationError(PostingEngineError):
    """The AI-assisted generator failed to produce candidate lines."""

    code = "ai_error"
    transient = False

    def __init__(self, message: str, provider: str | None = None, details: Any = None):
        super().__init__(message, details={"provider": provider, "info": details})
        self.provider = provider


class AITimeout(AIGenerationError):
    """The AI call exceeded its deadline."""

    code = "ai_timeout"
    transient = True


class AIRateLimited(AIGenerationError):
    """The AI provider rejected the call with a rate limit."""

    code = "ai_rate_limited"
    transient = True


class AIServiceUnavailable(AIGenerationError):
    """The AI provider is overloaded or unreachable."""

    code = "ai_service_unavailable"
    transient = True


class MalformedResponse(AIGenerationError):
    """The AI response could not be parsed into ledger lines."""

    code = "ai_malformed_response"


class AIProviderError(AIGenerationError):
    """Any other provider-side rejection (bad key, invalid request)."""

    code = "ai_provider_error"


# =============================================================================
# CHART ERRORS
# =============================================================================


class AccountInUse(PostingEngineError):
    """An account referenced by ledger lines cannot be deleted."""

    code = "account_in_use"

    def __init__(self, account_number: str, line_count: int):
        super().__init__(
            f"Account {account_number} is referenced by {line_count} ledger lines",
            details={"account_number": account_number, "line_count": line_count},
        )
        self.account_number = account_number
        self.line_count = line_count
