"""
Tonal quality analyzers: warmth, formality, urgency, directness,
enthusiasm and politeness.

Each analyzer starts from a neutral base, adds or subtracts weighted pattern
counts normalised by sentence or word counts, and clamps to [0, 1].
"""

import re
from typing import Tuple

import numpy as np

from ..models.features import TonalQualities
from . import lexicons as lx
from .tokenizer import TextProfile, find_phrases, has_phrase, tokenize_en


_CAPS_RE = re.compile(r"\b[A-Z]{2,}\b")


def _clamp(value: float) -> float:
    return float(np.clip(value, 0.0, 1.0))


# ============================================================================
# SHARED SIGNALS
# ============================================================================

def is_imperative(sentence: str) -> bool:
    """
    Whether a sentence opens with a bare command verb.

    Examples:
        >>> is_imperative("Send me the report.")
        True
        >>> is_imperative("Please send me the report.")
        True
        >>> is_imperative("Can you send it?")
        False
    """
    if sentence.rstrip().endswith("?"):
        return False
    words = tokenize_en(sentence)
    if words and words[0] == "please":
        words = words[1:]
    return bool(words) and words[0] in lx.IMPERATIVE_VERBS


def count_imperatives(profile: TextProfile) -> Tuple[int, int]:
    """Return (imperatives, bare imperatives without "please")."""
    imperatives = [s for s in profile.sentences if is_imperative(s)]
    bare = [s for s in imperatives if "please" not in s.lower()]
    return len(imperatives), len(bare)


def informality_score(profile: TextProfile) -> float:
    """
    Blend of informal signals in [0, 1].

    Densities are normalised per word or per sentence, weighted by
    INFORMALITY_WEIGHTS and scaled so a strongly informal email reaches 1.
    """
    tokens = profile.token_count
    sentences = profile.safe_sentence_count
    short = sum(1 for s in profile.sentences if len(s.split()) < lx.SHORT_SENTENCE_WORDS)
    exclaimed = sum(1 for s in profile.sentences if s.rstrip().endswith("!"))

    indicators = {
        "contraction_density": profile.contraction_count / tokens,
        "informal_density": sum(1 for w in profile.words if w in lx.INFORMAL_WORDS) / tokens,
        "exclamation_ratio": exclaimed / sentences,
        "short_sentence_ratio": short / sentences,
        "first_person_density": sum(1 for w in profile.words if w in lx.FIRST_PERSON_WORDS) / tokens,
    }
    total_weight = sum(lx.INFORMALITY_WEIGHTS.values())
    weighted = sum(indicators[key] * weight for key, weight in lx.INFORMALITY_WEIGHTS.items())
    return _clamp(weighted / total_weight * 2)


def has_casual_greeting(profile: TextProfile) -> bool:
    words = tokenize_en(profile.first_sentence)
    return bool(words) and words[0] in lx.CASUAL_GREETING_WORDS


# ============================================================================
# ANALYZERS
# ============================================================================

def analyze_warmth(profile: TextProfile, score: float, has_endearment: bool) -> float:
    warmth = 0.5
    warm_score = 0.0
    cold_score = 0.0
    emotional = 0

    for word in profile.words:
        polarity = lx.POLARITY.get(word, 0)
        if word in lx.WARM_WORDS and polarity > 0:
            warm_score += polarity
        elif word in lx.COLD_WORDS:
            cold_score += max(abs(polarity), 1)
        elif polarity >= 2:
            emotional += 1

    warmth += (warm_score - cold_score) / (profile.token_count * 2)
    warmth += min(emotional * 0.05, 0.15)

    pronouns = sum(1 for w in profile.words if w in lx.INCLUSIVE_PRONOUNS)
    warmth += min(pronouns * 0.05, 0.15)
    if has_phrase(profile.lower, lx.INCLUSIVE_PHRASES):
        warmth += 0.1
    if has_phrase(profile.lower, lx.CARE_PHRASES):
        warmth += 0.15
    if has_endearment:
        warmth += 0.1

    if 0 < profile.exclamation_count < 3 and score > 0:
        warmth += 0.05
    if has_phrase(profile.lower, lx.COLD_PHRASES):
        warmth -= 0.3

    return _clamp(warmth)


def analyze_formality(profile: TextProfile, title_found: bool) -> float:
    formality = 0.5

    if has_phrase(profile.lower, lx.FORMAL_GREETING_PHRASES):
        formality += 0.2
    if has_phrase(profile.lower, lx.FORMAL_CLOSING_PHRASES):
        formality += 0.2
    if title_found:
        formality += 0.15
    if has_phrase(profile.lower, lx.FORMAL_VOCABULARY):
        formality += 0.15

    formality -= informality_score(profile) * 0.5
    if has_casual_greeting(profile):
        formality -= 0.1

    avg = profile.avg_words_per_sentence
    if avg > 20:
        formality += 0.1
    elif avg < 10:
        formality -= 0.1

    return _clamp(formality)


def analyze_urgency(profile: TextProfile) -> float:
    urgency = 0.3
    if has_phrase(profile.lower, lx.IMMEDIATE_PHRASES):
        urgency = 0.9
    elif has_phrase(profile.lower, lx.SOON_PHRASES):
        urgency = 0.6
    elif has_phrase(profile.lower, lx.FLEXIBLE_PHRASES):
        urgency = 0.1

    imperatives, _ = count_imperatives(profile)
    urgency += imperatives * 0.1

    if profile.exclamation_count > 2:
        urgency += 0.2

    shouted = [
        word for word in _CAPS_RE.findall(profile.text)
        if len(word) >= lx.EMPHASIS_CAPS_MIN_LENGTH and word not in lx.ACRONYM_ALLOWLIST
    ]
    if shouted:
        urgency += 0.1

    return _clamp(urgency)


def analyze_directness(profile: TextProfile) -> float:
    directness = 0.5
    sentences = profile.safe_sentence_count

    imperatives, _ = count_imperatives(profile)
    direct = len(find_phrases(profile.lower, lx.DIRECT_PHRASES))
    directness += imperatives / sentences * 0.3
    directness += direct / sentences * 0.2

    hedges = sum(1 for w in profile.words if w in lx.HEDGE_WORDS)
    conditionals = len(find_phrases(profile.lower, lx.CONDITIONAL_PHRASES))
    directness -= hedges / profile.token_count * 5
    directness -= conditionals / sentences * 0.2
    directness -= len(profile.questions) / sentences * 0.15

    if has_phrase(profile.lower, lx.SOFTENER_PHRASES):
        directness -= 0.2

    return _clamp(directness)


def analyze_enthusiasm(profile: TextProfile, score: float) -> float:
    enthusiasm = max(0.0, score)

    enthusiastic = sum(1 for w in profile.words if w in lx.ENTHUSIASTIC_WORDS)
    superlatives = sum(1 for w in profile.words if w in lx.SUPERLATIVES)
    exclaimed = sum(1 for s in profile.sentences if "!" in s)

    enthusiasm += enthusiastic / profile.token_count * 5
    enthusiasm += exclaimed / profile.safe_sentence_count * 0.2
    enthusiasm += superlatives / profile.token_count * 3

    if re.search(r"[!?]{2,}", profile.text):
        enthusiasm += 0.1

    return _clamp(enthusiasm)


def analyze_politeness(profile: TextProfile, title_found: bool) -> float:
    politeness = 0.5
    sentences = profile.safe_sentence_count

    polite = sum(1 for w in profile.words if w in lx.POLITE_WORDS)
    impolite = sum(1 for w in profile.words if w in lx.IMPOLITE_WORDS)
    politeness += (polite - impolite) / profile.token_count * 2

    politeness += len(find_phrases(profile.lower, lx.POLITE_PHRASES)) / sentences * 0.2
    politeness += len(find_phrases(profile.lower, lx.POLITE_REQUEST_PHRASES)) / sentences * 0.2
    politeness += len(profile.questions) / sentences * 0.1
    if title_found:
        politeness += 0.1

    _, bare = count_imperatives(profile)
    negative_commands = len(find_phrases(profile.lower, lx.NEGATIVE_COMMAND_PHRASES))
    politeness -= bare / sentences * 0.15
    politeness -= negative_commands / sentences * 0.1

    return _clamp(politeness)


def analyze_tone(
    profile: TextProfile,
    score: float,
    has_endearment: bool = False,
    title_found: bool = False,
) -> TonalQualities:
    """
    Compute all six tonal qualities.

    Args:
        profile: Tokenized email
        score: Aggregate sentiment score in [-1, 1]
        has_endearment: Whether a term of endearment was found
        title_found: Whether an honorific (Dr., Mrs., ...) was found

    Returns:
        TonalQualities, all values in [0, 1]
    """
    if profile.is_empty:
        return TonalQualities()

    return TonalQualities(
        warmth=analyze_warmth(profile, score, has_endearment),
        formality=analyze_formality(profile, title_found),
        urgency=analyze_urgency(profile),
        directness=analyze_directness(profile),
        enthusiasm=analyze_enthusiasm(profile, score),
        politeness=analyze_politeness(profile, title_found),
    )
