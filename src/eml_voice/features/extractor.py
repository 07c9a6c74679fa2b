"""
Deterministic feature extractor: raw email text -> EmailFeatures.

The extractor is total. None, non-string, empty or whitespace-only input
yields the degenerate feature set (zero counts, empty lists, neutral
sentiment); every analyzer guards its own divisors and clamps its scores,
so no input reaches an exception path.
"""

from typing import Optional

import structlog

from ..models.features import EmailFeatures
from .context import extract_action_items, infer_context_type
from .relationship_hints import HintLike, analyze_relationship_hints, find_endearments, has_title
from .sentiment import analyze_sentiment, scan_polarity
from .style import StyleThresholds, analyze_style, compute_stats
from .tokenizer import profile_text
from .tone import analyze_tone


logger = structlog.get_logger(__name__)


class FeatureExtractor:
    """
    Rule-based feature extractor with configurable style thresholds.

    Pure and stateless apart from its thresholds: safe to share across
    threads and tasks.
    """

    def __init__(self, thresholds: Optional[StyleThresholds] = None):
        self.thresholds = thresholds or StyleThresholds.from_config()

        self.logger = logger.bind(component="feature_extractor")

    def extract(self, text, recipient_hint: HintLike = None) -> EmailFeatures:
        """
        Extract the full feature set from one email body.

        Args:
            text: User-written email text (None and non-strings are tolerated)
            recipient_hint: Recipient name or address, as a string, RecipientHint
                or {"name", "email"} mapping (optional; other types are ignored)

        Returns:
            EmailFeatures, the degenerate default set for empty input

        Examples:
            >>> features = FeatureExtractor().extract("Hey honey! Love you! 💕")
            >>> features.relationship_hints.familiarity_level.value
            'intimate'
        """
        profile = profile_text(text)
        if profile.is_empty:
            return EmailFeatures()

        scan = scan_polarity(profile)
        sentiment = analyze_sentiment(profile, scan)
        title_found = has_title(profile)
        tonal_qualities = analyze_tone(
            profile,
            sentiment.score,
            has_endearment=bool(find_endearments(profile)),
            title_found=title_found,
        )
        stats = compute_stats(profile)
        relationship_hints = analyze_relationship_hints(
            profile,
            vocabulary_sophistication=stats.vocabulary_complexity,
            recipient_hint=recipient_hint,
        )

        features = EmailFeatures(
            sentiment=sentiment,
            tonal_qualities=tonal_qualities,
            linguistic_style=analyze_style(profile, self.thresholds),
            relationship_hints=relationship_hints,
            action_items=extract_action_items(profile),
            context_type=infer_context_type(profile),
            questions=profile.questions,
            stats=stats,
        )

        self.logger.debug(
            "features_extracted",
            word_count=stats.word_count,
            sentence_count=stats.sentence_count,
            familiarity=relationship_hints.familiarity_level.value,
            sentiment=sentiment.primary.value,
            context_type=features.context_type.value,
        )

        return features


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_extractor: Optional[FeatureExtractor] = None


def get_feature_extractor() -> FeatureExtractor:
    """Get or create the shared extractor (singleton pattern)."""
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = FeatureExtractor()
    return _default_extractor


def extract_email_features(
    text,
    recipient_hint: HintLike = None,
    extractor: Optional[FeatureExtractor] = None,
) -> EmailFeatures:
    """
    Extract features using the default or provided extractor.

    Args:
        text: Email body
        recipient_hint: Recipient name or address (string, RecipientHint or mapping)
        extractor: Optional custom extractor (default: shared, from config)

    Returns:
        EmailFeatures
    """
    if extractor is None:
        extractor = get_feature_extractor()

    return extractor.extract(text, recipient_hint=recipient_hint)
