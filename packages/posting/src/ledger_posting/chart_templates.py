"""Standard chart of accounts template.

The template follows the Tunisian accounting system (classes 1 to 7) and is
what a new tenant gets when it asks for the default chart.
"""

from uuid import UUID

import structlog

from ledger_posting.ledger import Account, AccountCategory
from ledger_posting.store.repository import ChartOfAccounts

logger = structlog.get_logger(__name__)

_E = AccountCategory.EQUITY
_L = AccountCategory.LIABILITY
_A = AccountCategory.ASSET
_X = AccountCategory.EXPENSE
_R = AccountCategory.REVENUE

DEFAULT_CHART: list[tuple[str, str, AccountCategory]] = [
    # Class 1 - permanent financing
    ("101000", "Capital social", _E),
    ("106000", "Réserves", _E),
    ("120000", "Résultat de l'exercice", _E),
    ("161000", "Emprunts obligataires", _L),
    ("162000", "Emprunts et dettes auprès des établissements de crédit", _L),
    # Class 2 - fixed assets
    ("211000", "Terrains", _A),
    ("213000", "Constructions", _A),
    ("218000", "Autres immobilisations corporelles", _A),
    ("221000", "Immobilisations incorporelles", _A),
    ("281300", "Amortissements des constructions", _A),
    ("281800", "Amortissements des autres immobilisations corporelles", _A),
    # Class 3 - inventories
    ("300000", "Marchandises", _A),
    ("320000", "Matières premières", _A),
    ("330000", "Autres approvisionnements", _A),
    ("350000", "Produits finis", _A),
    # Class 4 - third parties
    ("401000", "Fournisseurs", _L),
    ("408000", "Fournisseurs - factures non parvenues", _L),
    ("409000", "Fournisseurs débiteurs", _A),
    ("411000", "Clients", _A),
    ("418000", "Clients - produits non encore facturés", _A),
    ("419000", "Clients créditeurs", _L),
    ("421000", "Personnel - rémunérations dues", _L),
    ("431000", "Sécurité sociale", _L),
    ("437000", "Autres organismes sociaux", _L),
    ("441000", "État - subventions à recevoir", _A),
    ("442000", "État - impôts et taxes recouvrables sur des tiers", _A),
    ("445500", "État - TVA à décaisser", _L),
    ("445600", "État - TVA déductible", _A),
    ("445700", "État - TVA collectée", _L),
    ("447000", "État - autres impôts, taxes et versements assimilés", _L),
    ("448000", "État - charges à payer et produits à recevoir", _L),
    # Class 5 - financial accounts
    ("512000", "Banques", _A),
    ("531000", "Caisse", _A),
    ("532000", "Régie d'avances et accréditifs", _A),
    # Class 6 - expenses
    ("601000", "Achats de marchandises", _X),
    ("602000", "Achats de matières premières", _X),
    ("606000", "Achats non stockés de matières et fournitures", _X),
    ("607000", "Achats de marchandises, matières premières et autres approvisionnements", _X),
    ("608000", "Frais accessoires d'achats", _X),
    ("611000", "Sous-traitance générale", _X),
    ("613000", "Locations", _X),
    ("615000", "Entretien et réparations", _X),
    ("616000", "Primes d'assurances", _X),
    ("622000", "Rémunérations d'intermédiaires et honoraires", _X),
    ("623000", "Publicité, publications, relations publiques", _X),
    ("624000", "Transports de biens et transports collectifs du personnel", _X),
    ("625000", "Déplacements, missions et réceptions", _X),
    ("626000", "Frais postaux et de télécommunications", _X),
    ("627000", "Services bancaires et assimilés", _X),
    ("641000", "Rémunérations du personnel", _X),
    ("645000", "Charges de sécurité sociale et de prévoyance", _X),
    ("681000", "Dotations aux amortissements et aux provisions", _X),
    # Class 7 - revenue
    ("701000", "Ventes de marchandises", _R),
    ("706000", "Prestations de services", _R),
    ("707000", "Ventes de marchandises et production vendue", _R),
    ("708000", "Produits des activités annexes", _R),
    ("709000", "Rabais, remises et ristournes accordés par l'entreprise", _R),
    ("781000", "Reprises sur amortissements et provisions", _R),
]


def seed_default_chart(chart: ChartOfAccounts, tenant_id: UUID) -> list[Account]:
    """Install the standard chart for a tenant.

    Accounts whose number already exists for the tenant are left untouched,
    so seeding twice is harmless.

    Args:
        chart: Chart of accounts repository.
        tenant_id: Tenant receiving the accounts.

    Returns:
        The accounts that were created.
    """
    existing = {account.number for account in chart.list_accounts(tenant_id)}
    created = [
        chart.add_account(tenant_id, number, label, category)
        for number, label, category in DEFAULT_CHART
        if number not in existing
    ]
    logger.info(
        "default_chart_seeded",
        tenant_id=str(tenant_id),
        created=len(created),
        skipped=len(DEFAULT_CHART) - len(created),
    )
    return created
