"""
Lexicon-based sentiment analysis.

Each word (and emoji) is scored against the polarity lexicon, with a
preceding negator flipping the sign. The mean contribution gives the
aggregate score; emotion trigger words name the feelings expressed and can
steer the primary band.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from ..models.features import Sentiment, SentimentPrimary
from . import lexicons as lx
from .tokenizer import TextProfile, unique_in_order


@dataclass
class PolarityScan:
    """Per-word polarity contributions for one email."""
    contributions: List[float] = field(default_factory=list)
    emotion_words: List[str] = field(default_factory=list)
    emotion_weights: Dict[str, float] = field(default_factory=dict)
    strongest: float = 0.0

    @property
    def mean(self) -> float:
        if not self.contributions:
            return 0.0
        return float(np.mean(self.contributions))

    @property
    def mean_abs(self) -> float:
        if not self.contributions:
            return 0.0
        return float(np.mean(np.abs(self.contributions)))

    @property
    def dominant_emotion(self) -> Optional[str]:
        if not self.emotion_weights:
            return None
        return max(self.emotion_weights, key=self.emotion_weights.get)


def scan_polarity(profile: TextProfile) -> PolarityScan:
    """
    Score every token of the profile against the polarity lexicons.

    Args:
        profile: Tokenized email

    Returns:
        PolarityScan with contributions, emotion words and dominant emotion
    """
    scan = PolarityScan()
    negate = False

    for word in profile.words:
        if word in lx.NEGATORS:
            negate = True
            continue

        polarity = lx.POLARITY.get(word)
        if polarity is not None:
            value = -polarity if negate else polarity
            scan.contributions.append(float(value))
            if abs(value) > abs(scan.strongest):
                scan.strongest = float(value)
            negate = False

        emotion = lx.EMOTION_TRIGGERS.get(word)
        if emotion is not None and abs(polarity or 0) >= lx.EMOTION_MIN_POLARITY.get(word, 0):
            scan.emotion_words.append(emotion)
            scan.emotion_weights[emotion] = scan.emotion_weights.get(emotion, 0.0) + max(abs(polarity or 0), 1)

    for emoji in profile.emojis:
        polarity = lx.EMOJI_POLARITY.get(emoji)
        if polarity is not None:
            scan.contributions.append(float(polarity))

    return scan


def classify_primary(score: float, dominant_emotion: Optional[str]) -> SentimentPrimary:
    """
    Band the aggregate score into a primary sentiment.

    A dominant emotion overrides the plain bands when the score agrees with it.

    Examples:
        >>> classify_primary(0.6, "excited")
        <SentimentPrimary.ENTHUSIASTIC: 'enthusiastic'>
        >>> classify_primary(0.0, None)
        <SentimentPrimary.NEUTRAL: 'neutral'>
    """
    if dominant_emotion in lx.ENTHUSIASTIC_EMOTIONS and score > lx.EMOTION_ENTHUSIASTIC_SCORE:
        return SentimentPrimary.ENTHUSIASTIC
    if dominant_emotion in lx.FRUSTRATED_EMOTIONS and score < lx.EMOTION_FRUSTRATED_SCORE:
        return SentimentPrimary.FRUSTRATED
    if dominant_emotion in lx.CONCERNED_EMOTIONS and score < lx.EMOTION_CONCERNED_SCORE:
        return SentimentPrimary.CONCERNED

    if score > lx.SENTIMENT_ENTHUSIASTIC:
        return SentimentPrimary.ENTHUSIASTIC
    if score > lx.SENTIMENT_POSITIVE:
        return SentimentPrimary.POSITIVE
    if score < lx.SENTIMENT_FRUSTRATED:
        return SentimentPrimary.FRUSTRATED
    if score < lx.SENTIMENT_CONCERNED:
        return SentimentPrimary.CONCERNED
    return SentimentPrimary.NEUTRAL


def sentiment_confidence(profile: TextProfile, scan: PolarityScan, score: float) -> float:
    """Confidence grows with each independent signal that is present."""
    score_part = min(abs(score), lx.CONFIDENCE_SCORE_CAP)
    word_part = min(abs(scan.strongest) / 5.0, lx.CONFIDENCE_WORD_CAP)
    emotion_part = min(len(scan.emotion_words) / profile.token_count * 2, lx.CONFIDENCE_EMOTION_CAP)
    emoji_part = min(len(profile.emojis) * 0.1, lx.CONFIDENCE_EMOJI_CAP)
    emphasis_part = lx.CONFIDENCE_EMPHASIS if "!!" in profile.text else 0.0
    return float(np.clip(score_part + word_part + emotion_part + emoji_part + emphasis_part, 0.0, 1.0))


def analyze_sentiment(profile: TextProfile, scan: Optional[PolarityScan] = None) -> Sentiment:
    """
    Compute the Sentiment feature group.

    Args:
        profile: Tokenized email
        scan: Precomputed polarity scan (computed here when omitted)

    Returns:
        Sentiment with bounded score, intensity and confidence
    """
    if profile.is_empty:
        return Sentiment()

    scan = scan or scan_polarity(profile)
    score = float(np.clip(scan.mean / 5.0, -1.0, 1.0))
    intensity = float(np.clip(scan.mean_abs / lx.INTENSITY_SCALE, 0.0, 1.0))

    return Sentiment(
        primary=classify_primary(score, scan.dominant_emotion),
        score=score,
        intensity=intensity,
        confidence=sentiment_confidence(profile, scan, score),
        emotions=unique_in_order(scan.emotion_words),
        emojis=list(profile.emojis),
    )
