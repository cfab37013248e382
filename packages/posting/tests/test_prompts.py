"""Tests for prompt construction."""

from ledger_posting.prompts import (
    ENTRIES_SCHEMA,
    build_entries_prompt,
    format_chart,
    unwrap_json_fence,
)


class TestBuildEntriesPrompt:
    """Tests for build_entries_prompt."""

    def test_purchase_invoice_prompt(self, purchase_invoice, chart):
        prompt = build_entries_prompt(purchase_invoice, chart)

        assert "PURCHASE INVOICE:" in prompt
        assert "- Supplier: Société Méditerranéenne de Fournitures" in prompt
        assert "- Reference: FA-2025-0142" in prompt
        assert "- Total excluding tax: 1000.000 TND" in prompt
        assert "- VAT: 190.000 TND" in prompt
        assert "- Total including tax: 1190.000 TND" in prompt
        assert "601000: Achats de marchandises" in prompt
        assert "BANK JOURNAL RULES" not in prompt

    def test_sale_invoice_names_customer(self, sale_invoice, chart):
        prompt = build_entries_prompt(sale_invoice, chart)

        assert "SALE INVOICE:" in prompt
        assert "- Customer: Café Carthage" in prompt

    def test_bank_statement_lists_movements_and_rules(self, bank_statement, chart):
        """Test that statements carry their movements and the bank rules."""
        prompt = build_entries_prompt(bank_statement, chart)

        assert "BANK STATEMENT:" in prompt
        assert "- Total credits (money in): 1500.000 TND" in prompt
        assert "2025-03-10 | CHQ 004512 FOURNISSEUR | 850.000 | 0.000" in prompt
        assert "BANK JOURNAL RULES" in prompt
        assert prompt.endswith("JSON only:")

    def test_format_chart(self, chart):
        assert format_chart(chart[:2]) == "401000: Fournisseurs\n411000: Clients"

    def test_schema_requires_lines(self):
        assert ENTRIES_SCHEMA["required"] == ["lines"]
        item = ENTRIES_SCHEMA["properties"]["lines"]["items"]
        assert set(item["required"]) == {"account_number", "account_label", "debit", "credit"}


class TestUnwrapJsonFence:
    """Tests for unwrap_json_fence."""

    def test_plain_json_untouched(self):
        assert unwrap_json_fence('  {"lines": []} ') == '{"lines": []}'

    def test_json_fence(self):
        assert unwrap_json_fence('```json\n{"lines": []}\n```') == '{"lines": []}'

    def test_bare_fence(self):
        assert unwrap_json_fence('```\n{"lines": []}\n```') == '{"lines": []}'

    def test_single_line_fence(self):
        assert unwrap_json_fence('```json{"lines": []}```') == '{"lines": []}'

    def test_unterminated_fence(self):
        assert unwrap_json_fence('```json\n{"lines": []}') == '{"lines": []}'
