"""Ledger Posting - accounting entry generation and posting engine."""

__version__ = "0.1.0"

from ledger_posting.balance import BalanceCorrection, correct_balance
from ledger_posting.chart_templates import DEFAULT_CHART, seed_default_chart
from ledger_posting.clients import ClaudeClient, GeminiClient, OpenAIClient, create_entry_client
from ledger_posting.config import configure_logging, get_settings
from ledger_posting.documents import (
    BankStatement,
    Document,
    DocumentKind,
    DocumentStatus,
    Movement,
    PurchaseInvoice,
    SaleInvoice,
)
from ledger_posting.errors import (
    AccountInUse,
    AIGenerationError,
    AlreadyPosted,
    DocumentNotFound,
    EmptyChartOfAccounts,
    GenerationError,
    InvalidDocument,
    NoApplicableRule,
    PostingEngineError,
    PostingFailed,
    Unbalanced,
    UnknownAccounts,
)
from ledger_posting.generators import AIAssistedGenerator, EntryGenerator, StaticRuleGenerator
from ledger_posting.ledger import (
    Account,
    AccountCategory,
    CandidateLine,
    GenerationMetadata,
    GenerationStrategy,
    LedgerLine,
    Posting,
    PostingResult,
)
from ledger_posting.orchestrator import GenerationOptions, GenerationOrchestrator
from ledger_posting.poster import AtomicPoster
from ledger_posting.service import (
    BatchResult,
    GenerationOutcome,
    PostingService,
    PostingSummary,
    build_service,
)
from ledger_posting.store import ChartOfAccounts, DocumentRepository
from ledger_posting.validation import ValidationGate

__all__ = [
    # Version
    "__version__",
    # Documents
    "BankStatement",
    "Document",
    "DocumentKind",
    "DocumentStatus",
    "Movement",
    "PurchaseInvoice",
    "SaleInvoice",
    # Ledger
    "Account",
    "AccountCategory",
    "CandidateLine",
    "GenerationMetadata",
    "GenerationStrategy",
    "LedgerLine",
    "Posting",
    "PostingResult",
    # Generation
    "AIAssistedGenerator",
    "EntryGenerator",
    "StaticRuleGenerator",
    "BalanceCorrection",
    "correct_balance",
    "ValidationGate",
    "GenerationOptions",
    "GenerationOrchestrator",
    "AtomicPoster",
    # Service
    "BatchResult",
    "GenerationOutcome",
    "PostingService",
    "PostingSummary",
    "build_service",
    # Store
    "ChartOfAccounts",
    "DocumentRepository",
    "DEFAULT_CHART",
    "seed_default_chart",
    # LLM Clients
    "ClaudeClient",
    "GeminiClient",
    "OpenAIClient",
    "create_entry_client",
    # Errors
    "PostingEngineError",
    "GenerationError",
    "AlreadyPosted",
    "DocumentNotFound",
    "InvalidDocument",
    "EmptyChartOfAccounts",
    "NoApplicableRule",
    "PostingFailed",
    "Unbalanced",
    "UnknownAccounts",
    "AIGenerationError",
    "AccountInUse",
    # Config
    "get_settings",
    "configure_logging",
]
