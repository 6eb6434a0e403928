"""
Content Normalizer - one canonical text block per generation result.

The generation capability answers with a loosely-structured envelope
whose inner shape depends on the section kind. Normalization:

1. Decode the envelope (JSON strings are decoded on the way down)
2. Locate the section result object via a fixed list of wrapper keys,
   falling back to the top level when it already has a known shape
3. Dispatch over an ordered list of matchers; the first whose
   distinguishing fields are present composes the text
4. Degrade to the unstructured fallback, then to a diagnostic message

Never raises for any input. Raw structured data is never returned as
display text.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"

# Minimum length for a string field to count as prose in the unstructured fallback
MIN_PROSE_LENGTH = 20

# Envelope keys tried, in order, when descending toward the result object
WRAPPER_KEYS: Tuple[str, ...] = (
    "result",
    "output",
    "data",
    "response",
    "app_response",
    "value",
    "section",
    "section_result",
    "sectie",
    "content",
)

WARNING_KEYS: Tuple[str, ...] = ("warnings", "waarschuwingen")

# Metadata never treated as prose
_METADATA_KEYS = frozenset({
    "threadId", "thread_id", "id", "status", "success", "error", "billingCost",
    "section_key", "sectionKey", "model", "version", "language", "warnings",
    "waarschuwingen", "confidence", "workflow", "workerId",
})

_MAX_DESCENT = 5

FALLBACK_RULES = frozenset({"unstructured", "diagnostic"})


# =============================================================================
# FIELD ALIASES
# =============================================================================
# Each logical field accepts the Dutch key the flows emit and an English
# equivalent; the first alias present wins.

CLAIMS_PRIMARY = ("primaire_vorderingen", "primary_claims", "primair")
CLAIMS_SUBSIDIARY = ("subsidiaire_vorderingen", "subsidiary_claims", "subsidiair")
CLAIMS_FURTHER = (
    "meer_subsidiaire_vorderingen", "further_subsidiary_claims", "meer_subsidiair",
)
CLAIM_NUMBER = ("nummer", "claim_number", "number", "nr")
CLAIM_DESCRIPTION = ("omschrijving", "description", "tekst", "text", "vordering")
STATUTORY_INTEREST = ("wettelijke_rente", "statutory_interest")
EXTRAJUDICIAL_COSTS = ("buitengerechtelijke_kosten", "extrajudicial_costs", "incassokosten")
COURT_COSTS = ("proceskosten", "court_costs")
PENALTY_PAYMENT = ("dwangsom", "penalty_payment")
PROVISIONAL_ENFORCEMENT = ("uitvoerbaar_bij_voorraad", "provisional_enforcement")
APPLICABLE_FLAG = ("van_toepassing", "applicable", "toepasselijk")
AMOUNT = ("bedrag", "amount", "amount_eur")

DEFENSES = ("verweren", "defenses", "verweer_weerlegging")
DEFENSE_CLAIM = ("verweer", "claim", "defense", "stelling")
DEFENSE_REBUTTAL = ("weerlegging", "rebuttal", "reactie")

LEGAL_GROUNDS = ("toepasselijke_wetgeving", "applicable_law", "rechtsgronden", "legal_grounds")
LAW_ARTICLE = ("artikel", "article", "wetsartikel")
LAW_TITLE = ("titel", "title", "wet", "law")
LAW_EXPLANATION = ("uitleg", "explanation", "toelichting", "note")
LEGAL_REASONING = ("juridische_redenering", "legal_reasoning", "toepassing", "application")

FACTS_KNOWN = ("vaststaande_feiten", "known_facts", "feiten", "facts")
FACTS_DISPUTED = ("betwiste_feiten", "disputed_facts")
FACTS_UNCLEAR = ("onduidelijke_feiten", "unclear_facts")
FACTS_NARRATIVE = ("feitenrelaas", "narrative", "verhaal")

COMPETENCE = ("bevoegdheid", "absolute_bevoegdheid", "competence", "absolute_competence")
RELATIVE_COMPETENCE = ("relatieve_bevoegdheid", "relative_competence")
REASONING = ("redenering", "motivering", "reasoning")
GENERIC_TEXT = ("paragraaf", "alinea", "paragraph", "tekst", "text")
FORUM_SELECTION = ("forumkeuze", "forumkeuzebeding", "forum_selection", "forum_selection_clause")

INTRODUCTION = ("inleiding", "introduction", "intro")
CONCLUSION = ("conclusie", "conclusion")

DEFAULT_COURT_COSTS = (
    "Veroordeling van gedaagde in de kosten van deze procedure, "
    "te vermeerderen met de wettelijke rente."
)

DIAGNOSTIC_HEADER = "Er kon geen tekst voor deze sectie worden samengesteld."
DIAGNOSTIC_CAUSES = (
    "Mogelijke oorzaken:\n"
    "- de analyse of eerdere secties bevatten onvoldoende gegevens om op te baseren;\n"
    "- de generatieflow voor deze sectie is onjuist geconfigureerd of gaf een onverwacht formaat terug."
)
FALLBACK_WARNING = "Inhoud samengesteld via generieke terugvaloptie; controleer de tekst zorgvuldig."


# =============================================================================
# RESULT
# =============================================================================

@dataclass
class NormalizedContent:
    """Canonical text plus any warnings extracted from the response."""
    text: str
    rule: str
    warnings: Optional[List[str]] = None

    @property
    def degraded(self) -> bool:
        return self.rule in FALLBACK_RULES


# =============================================================================
# VALUE HELPERS
# =============================================================================

def _decode(value: Any) -> Any:
    """Decode JSON-encoded strings; anything else is returned unchanged."""
    if isinstance(value, str):
        stripped = value.strip()
        if stripped[:1] in ("{", "["):
            try:
                return json.loads(stripped)
            except ValueError:
                return value
    return value


def _is_present(value: Any) -> bool:
    value = _decode(value)
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return True


def _get(obj: Dict[str, Any], aliases: Sequence[str]) -> Any:
    """Value of the first alias present with content."""
    for key in aliases:
        if key in obj and _is_present(obj[key]):
            return _decode(obj[key])
    return None


def _has(obj: Dict[str, Any], aliases: Sequence[str]) -> bool:
    return _get(obj, aliases) is not None


def _text(value: Any) -> str:
    """Render a scalar or a {text: ...} dict as a paragraph; '' otherwise."""
    value = _decode(value)
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, dict):
        inner = _get(value, ("tekst", "text", "paragraaf", "paragraph", "omschrijving", "description"))
        return _text(inner) if inner is not None else ""
    return ""


def _as_list(value: Any) -> List[Any]:
    value = _decode(value)
    if isinstance(value, list):
        return value
    if isinstance(value, (str, dict)) and _is_present(value):
        return [value]
    return []


def _flag(value: Any) -> Optional[bool]:
    value = _decode(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("ja", "yes", "true"):
            return True
        if lowered in ("nee", "no", "false"):
            return False
    return None


def _applicable_paragraph(obj: Dict[str, Any], aliases: Sequence[str]) -> str:
    """
    Paragraph for an optional claim component flagged applicable.

    Accepts {van_toepassing: bool, tekst: str} dicts, a bare boolean
    flag next to a `<key>_tekst` field, or a plain string (present
    means applicable).
    """
    for key in aliases:
        if key not in obj:
            continue
        value = _decode(obj[key])
        if isinstance(value, dict):
            flag = _flag(_get(value, APPLICABLE_FLAG)) if _has(value, APPLICABLE_FLAG) else None
            if flag is None:
                for alias in APPLICABLE_FLAG:
                    if isinstance(value.get(alias), bool):
                        flag = value[alias]
                        break
            if flag is False:
                return ""
            paragraph = _text(value)
            amount = _get(value, AMOUNT)
            if paragraph and amount is not None and str(amount) not in paragraph:
                paragraph = f"{paragraph} (€ {amount})"
            return paragraph
        if isinstance(value, bool):
            if not value:
                return ""
            return _text(obj.get(f"{key}_tekst") or obj.get(f"{key}_text"))
        return _text(value)
    return ""


# =============================================================================
# ENVELOPE
# =============================================================================

def extract_warnings(raw: Any) -> List[str]:
    """
    Collect warning strings from every envelope level.

    Order-preserving, duplicates removed.
    """
    found: List[str] = []

    def collect(value: Any) -> None:
        value = _decode(value)
        if isinstance(value, str) and value.strip():
            found.append(value.strip())
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, str) and item.strip():
                    found.append(item.strip())
                elif isinstance(item, dict):
                    message = _text(item) or _text(item.get("message") or item.get("bericht"))
                    if message:
                        found.append(message)

    node = _decode(raw)
    for _ in range(_MAX_DESCENT):
        if not isinstance(node, dict):
            break
        for key in WARNING_KEYS:
            if key in node:
                collect(node[key])
        next_node = None
        for key in WRAPPER_KEYS:
            candidate = _decode(node.get(key))
            if isinstance(candidate, dict):
                next_node = candidate
                break
        if next_node is None:
            break
        node = next_node

    seen = set()
    unique = []
    for warning in found:
        if warning not in seen:
            seen.add(warning)
            unique.append(warning)
    return unique


def locate_result_object(raw: Any) -> Any:
    """
    Find the section result object inside the response envelope.

    Descends through the wrapper keys until reaching an object any
    matcher recognizes. When nothing is recognized at any depth, the
    deepest object reached is returned. A bare string becomes {"text": ...}.
    """
    node = _decode(raw)
    if isinstance(node, str):
        return {"text": node}
    if not isinstance(node, dict):
        return node

    for _ in range(_MAX_DESCENT):
        if any(matcher.matches(node) for matcher in MATCHERS):
            return node
        next_node = None
        for key in WRAPPER_KEYS:
            candidate = _decode(node.get(key))
            if isinstance(candidate, dict):
                next_node = candidate
                break
            if isinstance(candidate, str) and candidate.strip() and key in ("result", "output", "value", "content"):
                next_node = {"text": candidate}
                break
        if next_node is None:
            return node
        node = next_node
    return node


# =============================================================================
# COMPOSITION RULES
# =============================================================================

def _claim_lines(entries: List[Any]) -> List[str]:
    lines = []
    for index, entry in enumerate(entries, start=1):
        entry = _decode(entry)
        if isinstance(entry, dict):
            description = _text(_get(entry, CLAIM_DESCRIPTION))
            number = _get(entry, CLAIM_NUMBER)
        else:
            description = _text(entry)
            number = None
        if not description:
            continue
        label = str(number).rstrip(".") if number is not None else str(index)
        lines.append(f"{label}. {description}")
    return lines


def compose_claims(obj: Dict[str, Any]) -> str:
    """Primary, subsidiary, further-subsidiary claims, then the cost paragraphs."""
    paragraphs: List[str] = []
    for heading, aliases in (
        ("PRIMAIR", CLAIMS_PRIMARY),
        ("SUBSIDIAIR", CLAIMS_SUBSIDIARY),
        ("MEER SUBSIDIAIR", CLAIMS_FURTHER),
    ):
        lines = _claim_lines(_as_list(_get(obj, aliases)))
        if lines:
            paragraphs.append(heading + "\n" + "\n".join(lines))

    if not paragraphs:
        return ""

    interest = _text(_get(obj, STATUTORY_INTEREST))
    if interest:
        paragraphs.append(interest)

    extrajudicial = _applicable_paragraph(obj, EXTRAJUDICIAL_COSTS)
    if extrajudicial:
        paragraphs.append(extrajudicial)

    paragraphs.append(_text(_get(obj, COURT_COSTS)) or DEFAULT_COURT_COSTS)

    penalty = _applicable_paragraph(obj, PENALTY_PAYMENT)
    if penalty:
        paragraphs.append(penalty)

    enforcement = _applicable_paragraph(obj, PROVISIONAL_ENFORCEMENT)
    if enforcement:
        paragraphs.append(enforcement)

    return PARAGRAPH_SEPARATOR.join(paragraphs)


def compose_defenses(obj: Dict[str, Any]) -> str:
    """Introduction, one claim/rebuttal pair per defense, conclusion."""
    paragraphs: List[str] = []
    intro = _text(_get(obj, INTRODUCTION))
    if intro:
        paragraphs.append(intro)

    for index, entry in enumerate(_as_list(_get(obj, DEFENSES)), start=1):
        entry = _decode(entry)
        if isinstance(entry, dict):
            claim = _text(_get(entry, DEFENSE_CLAIM))
            rebuttal = _text(_get(entry, DEFENSE_REBUTTAL))
        else:
            claim, rebuttal = _text(entry), ""
        if claim:
            paragraphs.append(f"Verweer {index}: {claim}")
        if rebuttal:
            paragraphs.append(f"Weerlegging: {rebuttal}")

    conclusion = _text(_get(obj, CONCLUSION))
    if conclusion:
        paragraphs.append(conclusion)
    return PARAGRAPH_SEPARATOR.join(paragraphs)


def compose_legal_grounds(obj: Dict[str, Any]) -> str:
    """Introduction, one paragraph per applicable law, reasoning, conclusion."""
    paragraphs: List[str] = []
    intro = _text(_get(obj, INTRODUCTION))
    if intro:
        paragraphs.append(intro)

    for entry in _as_list(_get(obj, LEGAL_GROUNDS)):
        entry = _decode(entry)
        if isinstance(entry, dict):
            article = _text(_get(entry, LAW_ARTICLE))
            title = _text(_get(entry, LAW_TITLE))
            explanation = _text(_get(entry, LAW_EXPLANATION))
            heading = " - ".join(part for part in (article, title) if part)
            if heading and explanation:
                paragraphs.append(f"{heading}\n{explanation}")
            elif heading or explanation:
                paragraphs.append(heading or explanation)
        else:
            line = _text(entry)
            if line:
                paragraphs.append(line)

    reasoning = _text(_get(obj, LEGAL_REASONING))
    if reasoning:
        paragraphs.append(reasoning)
    conclusion = _text(_get(obj, CONCLUSION))
    if conclusion:
        paragraphs.append(conclusion)
    return PARAGRAPH_SEPARATOR.join(paragraphs)


def _fact_groups(obj: Dict[str, Any]) -> Dict[str, List[str]]:
    known_value = _get(obj, FACTS_KNOWN)
    groups = {"known": [], "disputed": [], "unclear": []}
    if isinstance(known_value, dict):
        # {"facts": {"known": [...], "disputed": [...], "unclear": [...]}}
        nested = known_value
        groups["known"] = [_text(f) for f in _as_list(nested.get("known") or nested.get("vaststaand"))]
        groups["disputed"] = [_text(f) for f in _as_list(nested.get("disputed") or nested.get("betwist"))]
        groups["unclear"] = [_text(f) for f in _as_list(nested.get("unclear") or nested.get("onduidelijk"))]
    else:
        groups["known"] = [_text(f) for f in _as_list(known_value)]
    groups["disputed"] += [_text(f) for f in _as_list(_get(obj, FACTS_DISPUTED))]
    groups["unclear"] += [_text(f) for f in _as_list(_get(obj, FACTS_UNCLEAR))]
    return {name: [f for f in facts if f] for name, facts in groups.items()}


def compose_facts(obj: Dict[str, Any]) -> str:
    """Introduction, narrative, numbered known facts, disputed and unclear blocks."""
    paragraphs: List[str] = []
    intro = _text(_get(obj, INTRODUCTION))
    if intro:
        paragraphs.append(intro)
    narrative = _text(_get(obj, FACTS_NARRATIVE))
    if narrative:
        paragraphs.append(narrative)

    groups = _fact_groups(obj)
    if groups["known"]:
        paragraphs.append("\n".join(
            f"{index}. {fact}" for index, fact in enumerate(groups["known"], start=1)
        ))
    if groups["disputed"]:
        paragraphs.append("Betwiste feiten:\n" + "\n".join(f"- {f}" for f in groups["disputed"]))
    if groups["unclear"]:
        paragraphs.append("Onduidelijke feiten:\n" + "\n".join(f"- {f}" for f in groups["unclear"]))
    return PARAGRAPH_SEPARATOR.join(paragraphs)


def compose_jurisdiction(obj: Dict[str, Any]) -> str:
    """
    Competence, relative competence and conclusion paragraphs; else one
    reasoning paragraph; else a generic paragraph/text field. A
    forum-selection clause is appended when present.
    """
    paragraphs: List[str] = []
    competence = _text(_get(obj, COMPETENCE))
    relative = _text(_get(obj, RELATIVE_COMPETENCE))
    if competence or relative:
        paragraphs.extend(p for p in (competence, relative) if p)
        conclusion = _text(_get(obj, CONCLUSION))
        if conclusion:
            paragraphs.append(conclusion)
    else:
        reasoning = _text(_get(obj, REASONING))
        if reasoning:
            paragraphs.append(reasoning)
        else:
            generic = _text(_get(obj, GENERIC_TEXT))
            if generic:
                paragraphs.append(generic)

    forum = _text(_get(obj, FORUM_SELECTION))
    if forum:
        paragraphs.append(forum)
    return PARAGRAPH_SEPARATOR.join(paragraphs)


def compose_unstructured(obj: Any) -> str:
    """Every prose-length string field on the result object, in order."""
    if not isinstance(obj, dict):
        return ""
    paragraphs = []
    for key, value in obj.items():
        if key in _METADATA_KEYS:
            continue
        if isinstance(value, str):
            stripped = value.strip()
            if len(stripped) > MIN_PROSE_LENGTH and stripped[:1] not in ("{", "["):
                paragraphs.append(stripped)
    return PARAGRAPH_SEPARATOR.join(paragraphs)


def compose_diagnostic(warnings: List[str]) -> str:
    """Human-readable explanation shown instead of an empty section."""
    parts = [DIAGNOSTIC_HEADER]
    if warnings:
        parts.append("Waarschuwingen van de generatie:\n" + "\n".join(f"- {w}" for w in warnings))
    parts.append(DIAGNOSTIC_CAUSES)
    return PARAGRAPH_SEPARATOR.join(parts)


# =============================================================================
# MATCHERS
# =============================================================================

@dataclass(frozen=True)
class Matcher:
    """One composition rule and the fields that select it."""
    name: str
    distinguishing: Tuple[Tuple[str, ...], ...]
    compose: Callable[[Dict[str, Any]], str]

    def matches(self, obj: Any) -> bool:
        if not isinstance(obj, dict):
            return False
        return any(_has(obj, aliases) for aliases in self.distinguishing)


# Ordered; the first matcher whose distinguishing fields are present wins
MATCHERS: Tuple[Matcher, ...] = (
    Matcher("claims", (CLAIMS_PRIMARY, CLAIMS_SUBSIDIARY, CLAIMS_FURTHER), compose_claims),
    Matcher("defenses", (DEFENSES,), compose_defenses),
    Matcher("legal_grounds", (LEGAL_GROUNDS,), compose_legal_grounds),
    Matcher(
        "facts",
        (FACTS_KNOWN, FACTS_DISPUTED, FACTS_UNCLEAR, FACTS_NARRATIVE),
        compose_facts,
    ),
    Matcher(
        "jurisdiction",
        (COMPETENCE, RELATIVE_COMPETENCE, REASONING, GENERIC_TEXT, FORUM_SELECTION),
        compose_jurisdiction,
    ),
)


def select_matcher(obj: Any) -> Optional[Matcher]:
    """The first matcher recognizing `obj`, or None."""
    for matcher in MATCHERS:
        if matcher.matches(obj):
            return matcher
    return None


# =============================================================================
# NORMALIZER
# =============================================================================

class ContentNormalizer:
    """Turns an opaque generation result into canonical section text."""

    def normalize(self, raw: Any) -> NormalizedContent:
        """
        Normalize a response envelope.

        Args:
            raw: The decoded (or still JSON-encoded) response envelope

        Returns:
            NormalizedContent with text, the rule that produced it and
            any warnings. Never raises.
        """
        try:
            warnings = extract_warnings(raw)
            result_obj = locate_result_object(raw)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Unreadable generation envelope: {e}")
            warnings, result_obj = [], None

        matcher = select_matcher(result_obj)
        if matcher is not None:
            text = matcher.compose(result_obj)
            if text:
                return NormalizedContent(text=text, rule=matcher.name, warnings=warnings or None)
            logger.warning(
                f"Rule {matcher.name} matched but produced no text; degrading"
            )

        text = compose_unstructured(result_obj)
        if text:
            logger.warning("No composition rule matched; used unstructured fallback")
            return NormalizedContent(
                text=text,
                rule="unstructured",
                warnings=warnings + [FALLBACK_WARNING],
            )

        logger.warning("Generation result had no renderable text; using diagnostic message")
        return NormalizedContent(
            text=compose_diagnostic(warnings),
            rule="diagnostic",
            warnings=warnings + [FALLBACK_WARNING],
        )
