"""Interface shared by the entry generation strategies."""

from abc import ABC, abstractmethod

from ledger_posting.documents import Document
from ledger_posting.ledger import Account, CandidateLine, GenerationStrategy


class EntryGenerator(ABC):
    """A strategy proposing candidate ledger lines for a document.

    The orchestrator walks an ordered list of generators and stops at the
    first one that returns lines.
    """

    strategy: GenerationStrategy

    @abstractmethod
    async def attempt(self, document: Document, chart: list[Account]) -> list[CandidateLine]:
        """Propose ledger lines for ``document`` against ``chart``.

        Returns:
            A non-empty list of candidate lines.

        Raises:
            GenerationError or AIGenerationError when no lines can be proposed.
        """
        pass
