"""
Feature models produced by the deterministic feature extractor.

All models are frozen: features are computed once per email and never mutated.
Bounded scores are declared with ge/le constraints; the extractor clamps values
before constructing them.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# ENUMS
# ============================================================================

class SentimentPrimary(str, Enum):
    """Primary sentiment bands."""
    ENTHUSIASTIC = "enthusiastic"
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    CONCERNED = "concerned"
    FRUSTRATED = "frustrated"


class VocabularyComplexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    SOPHISTICATED = "sophisticated"


class SentenceStructure(str, Enum):
    CONCISE = "concise"
    MODERATE = "moderate"
    ELABORATE = "elaborate"


class FamiliarityLevel(str, Enum):
    """Relationship closeness derived from linguistic style (most to least familiar)."""
    INTIMATE = "intimate"
    VERY_FAMILIAR = "very_familiar"
    FAMILIAR = "familiar"
    PROFESSIONAL = "professional"
    FORMAL = "formal"


class ActionItemType(str, Enum):
    REQUEST = "request"
    COMMITMENT = "commitment"
    SUGGESTION = "suggestion"


class ContextType(str, Enum):
    QUESTION = "question"
    ANSWER = "answer"
    UPDATE = "update"
    SCHEDULING = "scheduling"
    OTHER = "other"


_FROZEN = {"frozen": True}


class RecipientHint(BaseModel):
    """Who the email is addressed to, when known."""
    name: Optional[str] = None
    email: Optional[str] = None

    model_config = _FROZEN


# ============================================================================
# FEATURE GROUPS
# ============================================================================

class Sentiment(BaseModel):
    """Lexicon-based sentiment with emotion triggers and emojis."""
    primary: SentimentPrimary = Field(default=SentimentPrimary.NEUTRAL)
    score: float = Field(default=0.0, ge=-1.0, le=1.0, description="Aggregate polarity")
    intensity: float = Field(default=0.0, ge=0.0, le=1.0, description="Mean absolute word polarity")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    emotions: List[str] = Field(
        default_factory=list, description="Distinct emotion triggers, first-seen order"
    )
    emojis: List[str] = Field(
        default_factory=list, description="Emojis/emoticons in order, duplicates kept"
    )

    model_config = _FROZEN


class TonalQualities(BaseModel):
    warmth: float = Field(default=0.0, ge=0.0, le=1.0)
    formality: float = Field(default=0.0, ge=0.0, le=1.0)
    urgency: float = Field(default=0.0, ge=0.0, le=1.0)
    directness: float = Field(default=0.0, ge=0.0, le=1.0)
    enthusiasm: float = Field(default=0.0, ge=0.0, le=1.0)
    politeness: float = Field(default=0.0, ge=0.0, le=1.0)

    model_config = _FROZEN


class LinguisticStyle(BaseModel):
    vocabulary_complexity: VocabularyComplexity = Field(default=VocabularyComplexity.SIMPLE)
    sentence_structure: SentenceStructure = Field(default=SentenceStructure.CONCISE)
    conversational_markers: List[str] = Field(default_factory=list)

    model_config = _FROZEN


class LinguisticMarkers(BaseModel):
    greeting_style: str = Field(default="none", description="formal | professional | casual-personal | casual | none")
    closing_style: str = Field(
        default="none",
        description="very-formal | formal | casual-friendly | intimate | very-casual | none",
    )
    endearments: List[str] = Field(default_factory=list)
    professional_phrases: List[str] = Field(default_factory=list)
    informal_language: List[str] = Field(default_factory=list)

    model_config = _FROZEN


class FormalityIndicators(BaseModel):
    has_title: bool = False
    has_last_name: bool = False
    has_company_reference: bool = False
    vocabulary_sophistication: float = Field(default=0.0, ge=0.0, le=1.0)

    model_config = _FROZEN


class RelationshipHints(BaseModel):
    """Linguistic familiarity signal (not the relationship category tag)."""
    familiarity_level: FamiliarityLevel = Field(default=FamiliarityLevel.PROFESSIONAL)
    linguistic_markers: LinguisticMarkers = Field(default_factory=LinguisticMarkers)
    formality_indicators: FormalityIndicators = Field(default_factory=FormalityIndicators)

    model_config = _FROZEN


class ActionItem(BaseModel):
    type: ActionItemType
    text: str

    model_config = _FROZEN


class TextStats(BaseModel):
    word_count: int = Field(default=0, ge=0)
    sentence_count: int = Field(default=0, ge=0)
    avg_words_per_sentence: float = Field(default=0.0, ge=0.0)
    formality_score: float = Field(default=0.5, ge=0.0, le=1.0)
    vocabulary_complexity: float = Field(default=0.0, ge=0.0, le=1.0, description="Raw lexical diversity")

    model_config = _FROZEN


# ============================================================================
# EMAIL FEATURES
# ============================================================================

class EmailFeatures(BaseModel):
    """
    Complete structured feature set for one email.

    The default instance is the degenerate feature set returned for empty input.
    """
    sentiment: Sentiment = Field(default_factory=Sentiment)
    tonal_qualities: TonalQualities = Field(default_factory=TonalQualities)
    linguistic_style: LinguisticStyle = Field(default_factory=LinguisticStyle)
    relationship_hints: RelationshipHints = Field(default_factory=RelationshipHints)
    action_items: List[ActionItem] = Field(default_factory=list)
    context_type: ContextType = Field(default=ContextType.OTHER)
    questions: List[str] = Field(default_factory=list)
    stats: TextStats = Field(default_factory=TextStats)

    model_config = _FROZEN

    def snapshot(self) -> dict:
        """
        Reduced feature snapshot stored in vector metadata.

        Drops the free text of action items and questions (already in the
        stored email text) and keeps everything used for filtering and
        diverse example selection.
        """
        return {
            "sentiment": {
                "primary": self.sentiment.primary.value,
                "score": self.sentiment.score,
                "intensity": self.sentiment.intensity,
                "emotions": list(self.sentiment.emotions),
            },
            "tonal_qualities": self.tonal_qualities.model_dump(),
            "linguistic_style": self.linguistic_style.model_dump(mode="json"),
            "relationship_hints": {
                "familiarity_level": self.relationship_hints.familiarity_level.value,
                "greeting_style": self.relationship_hints.linguistic_markers.greeting_style,
                "closing_style": self.relationship_hints.linguistic_markers.closing_style,
            },
            "action_item_types": [item.type.value for item in self.action_items],
            "context_type": self.context_type.value,
            "question_count": len(self.questions),
            "stats": self.stats.model_dump(),
        }
