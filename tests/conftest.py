"""
Shared pytest fixtures for all tests.

Provides in-memory repositories, a small three-section template and a
mock generation provider wired into the workflow service.
"""

import pytest

from app.domain.models.summons import AnalysisRecord, CaseRecord, SectionDefinition, SectionKind
from app.domain.registry.template_registry import InMemoryTemplateRegistry, SummonsTemplate
from app.domain.repositories.in_memory_summons_repository import (
    InMemoryCaseRepository,
    InMemorySummonsRepository,
)
from app.domain.services.generation_invoker import GenerationInvoker
from app.domain.services.summons_workflow_service import SummonsWorkflowService
from app.llm.providers.mock import MockGenerationProvider


CASE_ID = "case-001"
TEMPLATE_ID = "test_dagvaarding"

TEMPLATE_TEXT = (
    "DAGVAARDING aan [naam gedaagde] te [woonplaats gedaagde]\n\n"
    "BEVOEGDHEID\n{bevoegdheid}\n\n"
    "FEITEN\n{feiten}\n\n"
    "VORDERINGEN\n{vorderingen}\n\n"
    "Datum: [datum]"
)

JURISDICTION_RESPONSE = {
    "result": {
        "bevoegdheid": "De kantonrechter is bevoegd omdat de vordering minder dan EUR 25.000 bedraagt.",
        "relatieve_bevoegdheid": "De rechtbank Utrecht is relatief bevoegd als woonplaats van gedaagde.",
        "conclusie": "Uw rechtbank is bevoegd.",
    }
}

FACTS_RESPONSE = {
    "result": {
        "inleiding": "Eiser legt de volgende feiten aan de vordering ten grondslag.",
        "vaststaande_feiten": [
            "Partijen sloten op 1 maart een koopovereenkomst.",
            "Eiser betaalde EUR 1.200 vooruit.",
        ],
        "betwiste_feiten": ["Of de fiets bij levering gebreken had."],
    }
}

CLAIMS_RESPONSE = {
    "result": {
        "primaire_vorderingen": [
            {"nummer": 1, "omschrijving": "Gedaagde te veroordelen tot betaling van EUR 1.200."},
        ],
        "wettelijke_rente": "Vermeerderd met de wettelijke rente vanaf 1 april.",
    },
    "warnings": ["Bedrag buitengerechtelijke kosten niet onderbouwd."],
}


def make_analysis_json(claimant_place="Amsterdam", defendant_place="Utrecht"):
    return {
        "case_overview": {
            "parties": {
                "claimant": {"name": "Jan Jansen", "place": claimant_place},
                "defendant": {"name": "Fietsen B.V.", "place": defendant_place},
            },
            "is_kantonzaak": True,
            "amount_eur": 1200,
        },
        "facts": {
            "known": ["Koopovereenkomst gesloten op 1 maart."],
            "disputed": ["Gebreken bij levering."],
            "unclear": [],
        },
        "legal_analysis": {
            "legal_basis": [
                {"law": "BW", "article": "7:17", "note": "Conformiteit"},
            ],
        },
    }


@pytest.fixture
def test_template():
    """Three generated sections: JURISDICTION(1), FACTS(2), CLAIMS(3)."""
    return SummonsTemplate(
        template_id=TEMPLATE_ID,
        name="Test dagvaarding",
        version="1.0",
        raw_text=TEMPLATE_TEXT,
        sections=[
            SectionDefinition("bevoegdheid", "Bevoegdheid", 1, "DV_Bevoegdheid.flow",
                              kind=SectionKind.JURISDICTION),
            SectionDefinition("feiten", "Feiten", 2, "DV_Feiten.flow", kind=SectionKind.FACTS),
            SectionDefinition("vorderingen", "Vorderingen", 3, "DV_Vorderingen.flow",
                              kind=SectionKind.CLAIMS),
        ],
    )


@pytest.fixture
def template_registry(test_template):
    registry = InMemoryTemplateRegistry()
    registry.register(test_template)
    return registry


@pytest.fixture
def sample_case():
    return CaseRecord(
        id=CASE_ID,
        title="Gebrekkige fiets",
        description="Koper vordert terugbetaling van een gebrekkige fiets.",
        category="koop",
        claim_amount=1200.0,
        claimant_name="Jan Jansen",
        counterparty_name="Fietsen B.V.",
    )


@pytest.fixture
def sample_analysis():
    return AnalysisRecord(id="analysis-001", case_id=CASE_ID, version=1,
                          analysis_json=make_analysis_json())


@pytest.fixture
def case_repo(sample_case, sample_analysis):
    repo = InMemoryCaseRepository()
    repo.add_case(sample_case)
    repo.add_analysis(sample_analysis)
    return repo


@pytest.fixture
def summons_repo():
    return InMemorySummonsRepository()


@pytest.fixture
def mock_provider():
    return MockGenerationProvider(
        responses={
            "DV_Bevoegdheid.flow": JURISDICTION_RESPONSE,
            "DV_Feiten.flow": FACTS_RESPONSE,
            "DV_Vorderingen.flow": CLAIMS_RESPONSE,
        },
        latency_ms=5.0,
    )


@pytest.fixture
def workflow_service(summons_repo, case_repo, template_registry, mock_provider):
    return SummonsWorkflowService(
        summons_repo=summons_repo,
        case_repo=case_repo,
        templates=template_registry,
        invoker=GenerationInvoker(mock_provider, timeout_seconds=5.0),
        default_template_id=TEMPLATE_ID,
    )


@pytest.fixture
def analysis_factory():
    """Builds analysis_json payloads with chosen party localities."""
    return make_analysis_json


@pytest.fixture
def section_responses():
    """Canned envelopes keyed by section key."""
    return {
        "bevoegdheid": JURISDICTION_RESPONSE,
        "feiten": FACTS_RESPONSE,
        "vorderingen": CLAIMS_RESPONSE,
    }
