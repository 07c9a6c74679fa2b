"""
Relationship hints: linguistic markers, greeting/closing style and the
familiarity ladder.

The familiarity level is decided by a priority ladder, most specific rule
first:

1. any term of endearment                                 -> intimate
2. three or more casual markers                           -> very_familiar
3. one or two casual markers                              -> familiar
4. formal salutation + formal closing + title/company/name -> formal
5. otherwise (professional phrasing included)              -> professional
"""

import re
from typing import Any, List, Mapping, Optional, Union

from ..models.features import (
    FamiliarityLevel,
    FormalityIndicators,
    LinguisticMarkers,
    RecipientHint,
    RelationshipHints,
)
from . import lexicons as lx
from .tokenizer import TextProfile, find_phrases, has_phrase, tokenize_en, unique_in_order


_TITLE_RE = re.compile(lx.TITLE_PATTERN)


# ============================================================================
# MARKERS
# ============================================================================

def find_endearments(profile: TextProfile) -> List[str]:
    """
    Terms of endearment in order of appearance.

    A "Dear ..." salutation is never an endearment; only the explicit
    endearment words and phrases ("my dear", "love you") count.
    """
    found = [w for w in profile.words if w in lx.ENDEARMENT_WORDS]
    found.extend(find_phrases(profile.lower, lx.ENDEARMENT_PHRASES))
    return unique_in_order(found)


def find_informal_language(profile: TextProfile) -> List[str]:
    """Informal words plus style signals (contractions, repeated punctuation, caps)."""
    markers = [w for w in profile.words if w in lx.INFORMAL_WORDS]
    markers.extend(e for e in profile.emojis if e.isascii())

    contractions = profile.contraction_count
    if contractions / profile.token_count > lx.HIGH_CONTRACTION_DENSITY:
        markers.append("high_contraction_density")
    elif contractions > lx.MANY_CONTRACTIONS:
        markers.append("frequent_contractions")

    if re.search(r"[!?]{2,}", profile.text):
        markers.append("repeated_punctuation")

    caps = [
        w for w in re.findall(r"\b[A-Z]{2,}\b", profile.text)
        if len(w) >= lx.EMPHASIS_CAPS_MIN_LENGTH and w not in lx.ACRONYM_ALLOWLIST
    ]
    if caps:
        markers.append("emphasis_caps")

    return unique_in_order(markers)


def greeting_style(profile: TextProfile) -> str:
    """
    Classify the opening line.

    Examples:
        >>> greeting_style(profile_text("Dear Dr. Lee, thanks."))
        'formal'
        >>> greeting_style(profile_text("Hi Sam, quick one."))
        'casual-personal'
    """
    first = profile.first_sentence
    words = tokenize_en(first)
    if not words:
        return "none"

    lower = first.lower()
    if words[0] == "dear" or lower.startswith(("to whom it may concern", "greetings")):
        return "formal"
    if lower.startswith(lx.PROFESSIONAL_GREETING_PHRASES):
        return "professional"
    if words[0] in lx.CASUAL_GREETING_PHRASES:
        cased = re.findall(r"[A-Za-z]+", first)
        addressee = cased[1] if len(cased) > 1 else ""
        if addressee[:1].isupper() and addressee.lower() not in lx.ENDEARMENT_WORDS:
            return "casual-personal"
        return "casual"
    return "none"


def closing_style(profile: TextProfile) -> str:
    """Classify the sign-off found in the last CLOSING_WINDOW_CHARS characters."""
    tail = profile.lower[-lx.CLOSING_WINDOW_CHARS:]
    for style, phrases in lx.CLOSING_STYLES:
        if has_phrase(tail, phrases):
            return style
    return "none"


def extract_markers(profile: TextProfile) -> LinguisticMarkers:
    if profile.is_empty:
        return LinguisticMarkers()

    return LinguisticMarkers(
        greeting_style=greeting_style(profile),
        closing_style=closing_style(profile),
        endearments=find_endearments(profile),
        professional_phrases=unique_in_order(find_phrases(profile.lower, lx.PROFESSIONAL_PHRASES)),
        informal_language=find_informal_language(profile),
    )


# ============================================================================
# FORMALITY INDICATORS
# ============================================================================

def has_title(profile: TextProfile) -> bool:
    return _TITLE_RE.search(profile.text) is not None


HintLike = Union[str, RecipientHint, Mapping[str, Any], None]


def _hint_candidates(recipient_hint: HintLike) -> List[str]:
    """Name first, then address. Values of any other type are ignored."""
    if isinstance(recipient_hint, str):
        return [recipient_hint]
    if isinstance(recipient_hint, RecipientHint):
        values = [recipient_hint.name, recipient_hint.email]
    elif isinstance(recipient_hint, Mapping):
        values = [recipient_hint.get("name"), recipient_hint.get("email")]
    else:
        return []
    return [v for v in values if isinstance(v, str)]


def _last_name(recipient_hint: HintLike) -> Optional[str]:
    """Derive a last name from a display name or an address local part."""
    for hint in _hint_candidates(recipient_hint):
        hint = hint.strip()
        if "@" in hint:
            hint = re.sub(r"[._-]+", " ", hint.split("@", 1)[0])
        parts = hint.split()
        if len(parts) >= 2:
            return parts[-1].lower()
    return None


def formality_indicators(
    profile: TextProfile,
    vocabulary_sophistication: float,
    recipient_hint: HintLike = None,
) -> FormalityIndicators:
    last_name = _last_name(recipient_hint)
    return FormalityIndicators(
        has_title=has_title(profile),
        has_last_name=bool(last_name) and last_name in profile.words,
        has_company_reference=any(w in lx.COMPANY_WORDS for w in profile.words),
        vocabulary_sophistication=vocabulary_sophistication,
    )


# ============================================================================
# FAMILIARITY LADDER
# ============================================================================

def count_casual_markers(markers: LinguisticMarkers) -> int:
    """
    Slang, fragments and laughter-class tokens.

    Greeting and closing style do not count.
    """
    return len(markers.informal_language)


def determine_familiarity(
    markers: LinguisticMarkers,
    indicators: FormalityIndicators,
) -> FamiliarityLevel:
    if markers.endearments:
        return FamiliarityLevel.INTIMATE

    casual = count_casual_markers(markers)
    if casual >= lx.VERY_FAMILIAR_MARKERS:
        return FamiliarityLevel.VERY_FAMILIAR
    if casual >= lx.FAMILIAR_MARKERS:
        return FamiliarityLevel.FAMILIAR

    if (
        markers.greeting_style == "formal"
        and markers.closing_style in lx.FORMAL_CLOSING_STYLES
        and (indicators.has_title or indicators.has_company_reference or indicators.has_last_name)
    ):
        return FamiliarityLevel.FORMAL

    # Professional phrasing and the no-signal default land on the same level
    return FamiliarityLevel.PROFESSIONAL


def analyze_relationship_hints(
    profile: TextProfile,
    vocabulary_sophistication: float,
    recipient_hint: HintLike = None,
) -> RelationshipHints:
    """
    Build RelationshipHints for one email.

    Args:
        profile: Tokenized email
        vocabulary_sophistication: Linguistic complexity score, reused as-is
        recipient_hint: Recipient name/address (string, RecipientHint or mapping), used to spot last-name address

    Returns:
        RelationshipHints with familiarity level, markers and formality indicators
    """
    if profile.is_empty:
        return RelationshipHints()

    markers = extract_markers(profile)
    indicators = formality_indicators(profile, vocabulary_sophistication, recipient_hint)
    return RelationshipHints(
        familiarity_level=determine_familiarity(markers, indicators),
        linguistic_markers=markers,
        formality_indicators=indicators,
    )
