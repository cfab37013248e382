"""Entry generation strategies."""

from ledger_posting.generators.ai import AIAssistedGenerator, parse_lines
from ledger_posting.generators.base import EntryGenerator
from ledger_posting.generators.static_rules import StaticRuleGenerator

__all__ = [
    "AIAssistedGenerator",
    "EntryGenerator",
    "StaticRuleGenerator",
    "parse_lines",
]
