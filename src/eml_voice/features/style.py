"""
Linguistic style and text statistics.
"""

from dataclasses import dataclass

import numpy as np

from ..config import settings
from ..models.features import LinguisticStyle, SentenceStructure, TextStats, VocabularyComplexity
from . import lexicons as lx
from .tokenizer import TextProfile, find_phrases, unique_in_order


@dataclass
class StyleThresholds:
    """
    Sentence-length cut points (average words per sentence).

    concise < concise_below <= moderate < elaborate_from <= elaborate
    """
    concise_below: float = 10.0
    elaborate_from: float = 20.0

    @classmethod
    def from_config(cls) -> "StyleThresholds":
        """Load cut points from settings."""
        return cls(
            concise_below=settings.sentence_length_concise,
            elaborate_from=settings.sentence_length_elaborate,
        )


def lexical_diversity(profile: TextProfile) -> float:
    """Unique lowercased tokens over whitespace word count, clamped to [0, 1]."""
    if profile.word_count == 0:
        return 0.0
    return float(np.clip(len(set(profile.words)) / profile.word_count, 0.0, 1.0))


def classify_vocabulary(profile: TextProfile) -> VocabularyComplexity:
    """
    Bucket lexical diversity, then apply the marker overrides.

    Short texts use wider cut points since almost every word is unique.
    """
    diversity = lexical_diversity(profile)
    low, high = (
        lx.SHORT_TEXT_DIVERSITY_CUTS
        if profile.word_count < lx.SHORT_TEXT_WORDS
        else lx.LONG_TEXT_DIVERSITY_CUTS
    )
    if diversity < low:
        complexity = VocabularyComplexity.SIMPLE
    elif diversity < high:
        complexity = VocabularyComplexity.MODERATE
    else:
        complexity = VocabularyComplexity.SOPHISTICATED

    sophisticated = sum(
        1 for w in profile.words if w in lx.SOPHISTICATED_WORDS or w in lx.ACADEMIC_WORDS
    )
    if sophisticated > lx.SOPHISTICATED_OVERRIDE_COUNT:
        complexity = VocabularyComplexity.SOPHISTICATED

    simple = sum(1 for w in profile.words if w in lx.SIMPLE_WORDS)
    if simple > profile.word_count * lx.SIMPLE_OVERRIDE_RATIO and sophisticated == 0:
        complexity = VocabularyComplexity.SIMPLE

    return complexity


def classify_sentence_structure(avg_words: float, thresholds: StyleThresholds) -> SentenceStructure:
    """
    Examples:
        >>> classify_sentence_structure(6.0, StyleThresholds())
        <SentenceStructure.CONCISE: 'concise'>
        >>> classify_sentence_structure(25.0, StyleThresholds())
        <SentenceStructure.ELABORATE: 'elaborate'>
    """
    if avg_words < thresholds.concise_below:
        return SentenceStructure.CONCISE
    if avg_words < thresholds.elaborate_from:
        return SentenceStructure.MODERATE
    return SentenceStructure.ELABORATE


def analyze_style(profile: TextProfile, thresholds: StyleThresholds) -> LinguisticStyle:
    if profile.is_empty:
        return LinguisticStyle()

    return LinguisticStyle(
        vocabulary_complexity=classify_vocabulary(profile),
        sentence_structure=classify_sentence_structure(profile.avg_words_per_sentence, thresholds),
        conversational_markers=unique_in_order(find_phrases(profile.lower, lx.CONVERSATIONAL_MARKERS)),
    )


def stats_formality(profile: TextProfile) -> float:
    """
    Surface formality from salutations, closings, titles and contraction density.

    Kept separate from the tonal formality score: it only looks at fixed
    markers and never at sentence length or informality blends.
    """
    words = set(profile.words)
    score = 0.5
    if words & lx.STATS_FORMAL_WORDS:
        score += 0.2
    if words & lx.STATS_TITLE_WORDS:
        score += 0.1
    if words & lx.STATS_FORMAL_VOCABULARY:
        score += 0.1

    if words & lx.STATS_INFORMAL_WORDS:
        score -= 0.2
    if profile.exclamation_count > 1:
        score -= 0.1
    if profile.contraction_count > profile.word_count * lx.STATS_CONTRACTION_RATIO:
        score -= 0.1

    return float(np.clip(score, 0.0, 1.0))


def compute_stats(profile: TextProfile) -> TextStats:
    """
    Compute TextStats.

    Empty input yields zero counts and a neutral 0.5 surface formality.

    Examples:
        >>> compute_stats(profile_text("")).word_count
        0
    """
    if profile.is_empty:
        return TextStats()

    return TextStats(
        word_count=profile.word_count,
        sentence_count=profile.sentence_count,
        avg_words_per_sentence=profile.avg_words_per_sentence,
        formality_score=stats_formality(profile),
        vocabulary_complexity=lexical_diversity(profile),
    )
