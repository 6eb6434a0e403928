"""
Seed data for the summons template registry.

Each entry is one template snapshot: the raw filing text with its
`[user]` and `{generated}` placeholders, and the ordered sections that
fill the generated placeholders.

Usage:
    from app.domain.registry.template_registry import load_default_registry
"""

from typing import Any, Dict, List


DEFAULT_TEMPLATE_ID = "dagvaarding_kanton"


# =============================================================================
# TEMPLATE TEXT
# =============================================================================

DAGVAARDING_KANTON_TEXT = """DAGVAARDING

Heden, [datum betekening], op verzoek van:

[naam eiser], wonende te [woonplaats eiser],
hierna te noemen: eiser,
voor deze zaak woonplaats kiezende te [adres eiser],

heb ik, [naam deurwaarder], gerechtsdeurwaarder,

AAN:

[naam gedaagde], wonende te [woonplaats gedaagde],
hierna te noemen: gedaagde,

te verschijnen op [datum zitting] om [tijdstip zitting] bij de rechtbank [naam rechtbank], sector kanton, locatie [locatie rechtbank],

{aanzegging}

1. BEVOEGDHEID

{bevoegdheid}

2. FEITEN

{feiten}

3. RECHTSGRONDEN

{rechtsgronden}

4. VERWEER EN WEERLEGGING

{verweer}

5. BEWIJSAANBOD

{bewijsaanbod}

6. VORDERINGEN

Eiser vordert dat de kantonrechter bij vonnis, uitvoerbaar bij voorraad:

{vorderingen}

Kosten dezer dagvaarding: [kosten dagvaarding]

De gerechtsdeurwaarder,
[naam deurwaarder]
"""

AANZEGGING_TEXT = (
    "OM: niet in persoon te verschijnen ter openbare terechtzitting van de kantonrechter "
    "op de hierboven vermelde datum en plaats, maar schriftelijk te antwoorden. "
    "Indien gedaagde niet of niet tijdig antwoordt en het voorgeschreven griffierecht "
    "niet tijdig betaalt, zal de kantonrechter verstek tegen gedaagde verlenen en de "
    "vordering toewijzen, tenzij deze onrechtmatig of ongegrond voorkomt."
)


# =============================================================================
# SEED DATA - Summons Templates
# =============================================================================

SUMMONS_TEMPLATES: List[Dict[str, Any]] = [
    {
        "template_id": DEFAULT_TEMPLATE_ID,
        "name": "Dagvaarding kantonzaak",
        "version": "1.0",
        "raw_text": DAGVAARDING_KANTON_TEXT,
        "sections": [
            # -----------------------------------------------------------------
            # FIXED
            # -----------------------------------------------------------------
            {
                "section_key": "aanzegging",
                "section_name": "Aanzegging",
                "step_order": 1,
                "kind": "fixed",
                "fixed_text": AANZEGGING_TEXT,
            },
            # -----------------------------------------------------------------
            # GENERATED
            # -----------------------------------------------------------------
            {
                "section_key": "bevoegdheid",
                "section_name": "Bevoegdheid",
                "step_order": 2,
                "kind": "jurisdiction",
                "flowName": "DV_Bevoegdheid.flow",
            },
            {
                "section_key": "feiten",
                "section_name": "Feiten",
                "step_order": 3,
                "kind": "facts",
                "flowName": "DV_Feiten.flow",
            },
            {
                "section_key": "rechtsgronden",
                "section_name": "Rechtsgronden",
                "step_order": 4,
                "kind": "legal_grounds",
                "flowName": "DV_Rechtsgronden.flow",
            },
            {
                "section_key": "verweer",
                "section_name": "Verweer en weerlegging",
                "step_order": 5,
                "kind": "defenses",
                "flowName": "DV_Verweer.flow",
                "feedbackFlowName": "DV_Verweer_Feedback.flow",
            },
            {
                "section_key": "bewijsaanbod",
                "section_name": "Bewijsaanbod",
                "step_order": 6,
                "kind": "generic",
                "flowName": "DV_Bewijsaanbod.flow",
            },
            {
                "section_key": "vorderingen",
                "section_name": "Vorderingen",
                "step_order": 7,
                "kind": "claims",
                "flowName": "DV_Vorderingen.flow",
            },
        ],
    },
]
