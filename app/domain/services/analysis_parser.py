"""
Canonical view of a completed case analysis.

The analysis arrives as loosely-shaped JSON (several generations of the
analysis flow are still stored side by side). These functions contain NO
I/O and NO database access; they map whatever shape is present onto
ParsedAnalysis so the context assembler has one thing to read.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_ANALYSIS_WRAPPER_KEYS = ("parsedAnalysis", "parsed_analysis", "analysis_json", "analysis")

_TRUE_STRINGS = {"ja", "yes", "true", "waar", "1"}
_FALSE_STRINGS = {"nee", "no", "false", "onwaar", "0"}


@dataclass
class ParsedAnalysis:
    """Canonical analysis shape consumed by the context assembler."""
    facts_known: List[str] = field(default_factory=list)
    facts_disputed: List[str] = field(default_factory=list)
    facts_unclear: List[str] = field(default_factory=list)
    legal_basis: List[Dict[str, str]] = field(default_factory=list)
    simplified_procedure_eligible: Optional[bool] = None
    summary: Optional[str] = None
    amount_eur: Optional[float] = None
    claimant_name: Optional[str] = None
    claimant_place: Optional[str] = None
    defendant_name: Optional[str] = None
    defendant_place: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "facts": {
                "known": list(self.facts_known),
                "disputed": list(self.facts_disputed),
                "unclear": list(self.facts_unclear),
            },
            "legal_basis": [dict(entry) for entry in self.legal_basis],
            "simplified_procedure_eligible": self.simplified_procedure_eligible,
            "summary": self.summary,
            "amount_eur": self.amount_eur,
        }


# ---------------------------------------------------------------------------
# small coercion helpers
# ---------------------------------------------------------------------------

def _as_dict(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except (ValueError, TypeError):
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        items = []
        for item in value:
            if isinstance(item, str) and item.strip():
                items.append(item.strip())
            elif isinstance(item, dict):
                text = item.get("text") or item.get("fact") or item.get("description")
                if isinstance(text, str) and text.strip():
                    items.append(text.strip())
        return items
    return []


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS or lowered.startswith("ja"):
            return True
        if lowered in _FALSE_STRINGS or lowered.startswith("nee"):
            return False
    return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.replace("€", "").replace(" ", "").strip()
        # Dutch notation: 1.234,56
        if "," in cleaned:
            cleaned = cleaned.replace(".", "").replace(",", ".")
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def _clean(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# ---------------------------------------------------------------------------
# unwrap_analysis
# ---------------------------------------------------------------------------

def unwrap_analysis(analysis_json: Any) -> Dict[str, Any]:
    """
    Locate the analysis body inside its storage envelope.

    Accepts a dict, a JSON string, or an envelope that nests the body
    under one of the known wrapper keys.
    """
    data = _as_dict(analysis_json)
    for _ in range(3):
        for key in _ANALYSIS_WRAPPER_KEYS:
            inner = _as_dict(data.get(key))
            if inner:
                data = inner
                break
        else:
            break
    return data


# ---------------------------------------------------------------------------
# extract_*  (one per canonical field group)
# ---------------------------------------------------------------------------

def extract_facts(data: Dict[str, Any]) -> Dict[str, List[str]]:
    """Facts known/disputed/unclear; accepts English and Dutch keys."""
    facts = _as_dict(data.get("facts")) or _as_dict(data.get("feiten"))
    return {
        "known": _as_str_list(facts.get("known") or facts.get("vaststaand")),
        "disputed": _as_str_list(facts.get("disputed") or facts.get("betwist")),
        "unclear": _as_str_list(facts.get("unclear") or facts.get("onduidelijk")),
    }


def extract_legal_basis(data: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Legal-basis entries as {law, article, note} dicts.

    Plain strings (legacy analyses) become entries with only `law` set.
    """
    legal = _as_dict(data.get("legal_analysis"))
    raw_entries = legal.get("legal_basis") or data.get("legal_basis") or []
    if not isinstance(raw_entries, list):
        return []

    entries: List[Dict[str, str]] = []
    for item in raw_entries:
        if isinstance(item, str) and item.strip():
            entries.append({"law": item.strip(), "article": "", "note": ""})
        elif isinstance(item, dict):
            entry = {
                "law": _clean(item.get("law")) or "",
                "article": _clean(item.get("article")) or "",
                "note": _clean(item.get("note") or item.get("explanation")) or "",
            }
            if any(entry.values()):
                entries.append(entry)
    return entries


def extract_simplified_procedure(
    data: Dict[str, Any],
    procedure_context: Optional[Dict[str, Any]] = None,
) -> Optional[bool]:
    """
    Whether the case qualifies for the simplified (kanton) procedure.

    The procedure context recorded with the analysis wins over flags
    embedded in the analysis body.
    """
    candidates = [
        _as_dict(procedure_context).get("is_kantonzaak"),
        _as_dict(data.get("case_overview")).get("is_kantonzaak"),
        _as_dict(data.get("kwalificaties")).get("is_kantonzaak"),
        data.get("is_kantonzaak"),
    ]
    for candidate in candidates:
        flag = _as_bool(candidate)
        if flag is not None:
            return flag
    return None


def extract_parties(data: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Party names and localities as the analysis recorded them."""
    overview = _as_dict(data.get("case_overview"))
    parties = _as_dict(overview.get("parties")) or _as_dict(data.get("parties"))
    claimant = _as_dict(parties.get("claimant"))
    defendant = _as_dict(parties.get("defendant"))

    def place_of(party: Dict[str, Any]) -> Optional[str]:
        return (
            _clean(party.get("place"))
            or _clean(party.get("city"))
            or _clean(party.get("woonplaats"))
        )

    return {
        "claimant_name": _clean(claimant.get("name")),
        "claimant_place": place_of(claimant),
        "defendant_name": _clean(defendant.get("name")),
        "defendant_place": place_of(defendant),
    }


def parse_analysis(
    analysis_json: Any,
    procedure_context: Optional[Dict[str, Any]] = None,
) -> ParsedAnalysis:
    """
    Parse a stored analysis into the canonical shape.

    Never raises; an unreadable analysis yields an empty ParsedAnalysis.
    """
    data = unwrap_analysis(analysis_json)
    if not data:
        logger.warning("Analysis body is empty or unreadable")

    facts = extract_facts(data)
    parties = extract_parties(data)
    overview = _as_dict(data.get("case_overview"))

    return ParsedAnalysis(
        facts_known=facts["known"],
        facts_disputed=facts["disputed"],
        facts_unclear=facts["unclear"],
        legal_basis=extract_legal_basis(data),
        simplified_procedure_eligible=extract_simplified_procedure(data, procedure_context),
        summary=_clean(overview.get("summary")) or _clean(data.get("samenvatting_feiten")),
        amount_eur=_as_float(overview.get("amount_eur")),
        claimant_name=parties["claimant_name"],
        claimant_place=parties["claimant_place"],
        defendant_name=parties["defendant_name"],
        defendant_place=parties["defendant_place"],
        raw=data,
    )
