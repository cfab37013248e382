"""Prompt construction for AI-assisted entry generation."""

from typing import Any

from ledger_posting.documents import BankStatement, Document, PurchaseInvoice, SaleInvoice
from ledger_posting.ledger import Account
from ledger_posting.money import format_amount

# JSON schema every provider is asked to follow
ENTRIES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "lines": {
            "type": "array",
            "description": "Balanced ledger lines for the document",
            "items": {
                "type": "object",
                "properties": {
                    "account_number": {
                        "type": "string",
                        "description": "Account number taken from the chart of accounts",
                    },
                    "account_label": {
                        "type": "string",
                        "description": "Label of that account",
                    },
                    "debit": {"type": "number", "description": "Debit amount, 0 if none"},
                    "credit": {"type": "number", "description": "Credit amount, 0 if none"},
                },
                "required": ["account_number", "account_label", "debit", "credit"],
            },
        },
    },
    "required": ["lines"],
}

SYSTEM_PROMPT = """You are an experienced Tunisian chartered accountant.

You turn financial documents into double-entry ledger lines.

Rules:
- Use ONLY account numbers from the chart of accounts you are given.
- Every line has either a debit or a credit, the other side is 0.
- Total debits must equal total credits.
- Amounts are in Tunisian dinars with 3 decimals.
- Answer with JSON only, shaped as {"lines": [{"account_number", "account_label", "debit", "credit"}]}."""

_BANK_RULES = """BANK JOURNAL RULES:
- Use a class 5 (financial) account for the bank.
- Money in (credit on the statement): debit the bank, credit the matching account (customers, revenue, ...).
- Money out (debit on the statement): debit the matching account (suppliers, expenses, ...), credit the bank.
- Bank fees and commissions: debit 627000, credit the bank."""

_KIND_TITLES = {
    PurchaseInvoice: "PURCHASE INVOICE",
    SaleInvoice: "SALE INVOICE",
    BankStatement: "BANK STATEMENT",
}


def format_chart(chart: list[Account]) -> str:
    """Render the chart as one ``number: label`` per line."""
    return "\n".join(f"{account.number}: {account.label}" for account in chart)


def _describe_invoice(document: PurchaseInvoice | SaleInvoice) -> list[str]:
    party = "Supplier" if isinstance(document, PurchaseInvoice) else "Customer"
    return [
        f"- {party}: {document.counterparty_name or 'N/A'}",
        f"- Type: {'credit note' if document.is_credit_note else 'invoice'}",
        f"- Date: {document.date.isoformat()}",
        f"- Reference: {document.reference or 'N/A'}",
        f"- Total excluding tax: {format_amount(document.total_excluding_tax)} TND",
        f"- VAT: {format_amount(document.total_tax)} TND",
        f"- Total including tax: {format_amount(document.total_including_tax)} TND",
    ]


def _describe_statement(document: BankStatement) -> list[str]:
    lines = [
        f"- Account holder: {document.counterparty_name or 'N/A'}",
        f"- Account number: {document.account_number or 'N/A'}",
        f"- Date: {document.date.isoformat()}",
        f"- Opening balance: {format_amount(document.opening_balance)} TND",
        f"- Total credits (money in): {format_amount(document.total_credits)} TND",
        f"- Total debits (money out): {format_amount(document.total_debits)} TND",
        f"- Closing balance: {format_amount(document.closing_balance)} TND",
        f"- Bank fees: {format_amount(document.bank_fees)} TND",
    ]
    if document.movements:
        lines.append("")
        lines.append("MOVEMENTS (date | label | debit | credit):")
        lines.extend(
            f"- {m.date.isoformat()} | {m.label} | {format_amount(m.debit)} | "
            f"{format_amount(m.credit)}"
            for m in document.movements
        )
    return lines


def build_entries_prompt(document: Document, chart: list[Account]) -> str:
    """Build the user prompt asking for the ledger lines of ``document``.

    Args:
        document: Document to post.
        chart: The tenant's full chart of accounts.

    Returns:
        Prompt text listing the document fields and the chart.
    """
    if isinstance(document, BankStatement):
        details = _describe_statement(document)
    else:
        details = _describe_invoice(document)

    sections = [
        "Generate the ledger lines for this document.",
        "",
        f"{_KIND_TITLES[type(document)]}:",
        *details,
        "",
        "AVAILABLE CHART OF ACCOUNTS:",
        format_chart(chart),
    ]
    if isinstance(document, BankStatement):
        sections.extend(["", _BANK_RULES])
    sections.extend(["", "JSON only:"])
    return "\n".join(sections)


def unwrap_json_fence(text: str) -> str:
    """Strip a surrounding ```json (or bare ```) fence from a model answer."""
    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return cleaned

    body = cleaned[3:]
    if body[:4].lower() == "json":
        body = body[4:]
    end = body.rfind("```")
    if end != -1:
        body = body[:end]
    return body.strip()
