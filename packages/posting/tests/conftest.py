"""Pytest configuration and fixtures."""

import os
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GEMINI_API_KEY", "test-key")
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

from ledger_posting.chart_templates import seed_default_chart  # noqa: E402
from ledger_posting.documents import (  # noqa: E402
    BankStatement,
    Movement,
    PurchaseInvoice,
    SaleInvoice,
)
from ledger_posting.ledger import Account, AccountCategory  # noqa: E402
from ledger_posting.store import (  # noqa: E402
    ChartOfAccounts,
    DocumentRepository,
    create_db_engine,
    create_session_factory,
    create_tables,
)

CHART_ACCOUNTS = [
    ("401000", "Fournisseurs", AccountCategory.LIABILITY),
    ("411000", "Clients", AccountCategory.ASSET),
    ("445600", "État - TVA déductible", AccountCategory.ASSET),
    ("445700", "État - TVA collectée", AccountCategory.LIABILITY),
    ("512000", "Banques", AccountCategory.ASSET),
    ("601000", "Achats de marchandises", AccountCategory.EXPENSE),
    ("627000", "Services bancaires et assimilés", AccountCategory.EXPENSE),
    ("701000", "Ventes de marchandises", AccountCategory.REVENUE),
]


# =============================================================================
# DOMAIN FIXTURES
# =============================================================================


@pytest.fixture
def tenant_id():
    """A fresh tenant id."""
    return uuid4()


@pytest.fixture
def chart(tenant_id):
    """Small in-memory chart of accounts, ordered by number."""
    return [
        Account(tenant_id=tenant_id, number=number, label=label, category=category)
        for number, label, category in CHART_ACCOUNTS
    ]


@pytest.fixture
def purchase_invoice(tenant_id):
    """Purchase invoice of 1000 + 190 VAT = 1190."""
    return PurchaseInvoice(
        tenant_id=tenant_id,
        date=date(2025, 3, 14),
        counterparty_name="Société Méditerranéenne de Fournitures",
        total_excluding_tax=Decimal("1000.000"),
        total_tax=Decimal("190.000"),
        total_including_tax=Decimal("1190.000"),
        reference="FA-2025-0142",
    )


@pytest.fixture
def sale_invoice(tenant_id):
    """Sale invoice of 500 + 95 VAT = 595."""
    return SaleInvoice(
        tenant_id=tenant_id,
        date=date(2025, 3, 20),
        counterparty_name="Café Carthage",
        total_excluding_tax=Decimal("500.000"),
        total_tax=Decimal("95.000"),
        total_including_tax=Decimal("595.000"),
        reference="FV-0031",
    )


@pytest.fixture
def bank_statement(tenant_id):
    """Bank statement with one receipt, one payment and one fee."""
    return BankStatement(
        tenant_id=tenant_id,
        date=date(2025, 3, 31),
        counterparty_name="SARL Médina Négoce",
        account_number="TN59 1000 6035 1835 9847 8831",
        opening_balance=Decimal("2000.000"),
        closing_balance=Decimal("2637.500"),
        bank_fees=Decimal("12.500"),
        movements=[
            Movement(date(2025, 3, 3), "VIR RECU CAFE CARTHAGE", credit=Decimal("1500.000")),
            Movement(date(2025, 3, 10), "CHQ 004512 FOURNISSEUR", debit=Decimal("850.000")),
            Movement(date(2025, 3, 31), "FRAIS TENUE DE COMPTE", debit=Decimal("12.500")),
        ],
    )


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_db_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def chart_repo(session_factory):
    return ChartOfAccounts(session_factory)


@pytest.fixture
def document_repo(session_factory):
    return DocumentRepository(session_factory)


@pytest.fixture
def stored_chart(chart_repo, chart, tenant_id):
    """The small chart persisted for the tenant."""
    for account in chart:
        chart_repo.add_account(tenant_id, account.number, account.label, account.category)
    return chart_repo.list_accounts(tenant_id)


@pytest.fixture
def seeded_tenant(chart_repo, tenant_id):
    """Tenant with the full default chart installed."""
    seed_default_chart(chart_repo, tenant_id)
    return tenant_id
