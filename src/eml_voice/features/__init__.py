"""
Deterministic email feature extraction.

Public API for turning a user's email text into structured EmailFeatures:
sentiment, tonal qualities, linguistic style, familiarity hints, action
items and context type.
"""

from ..models.features import EmailFeatures
from .extractor import FeatureExtractor, extract_email_features, get_feature_extractor
from .style import StyleThresholds
from .tokenizer import TOKENIZER_VERSION


__all__ = [
    "EmailFeatures",
    "FeatureExtractor",
    "StyleThresholds",
    "extract_email_features",
    "get_feature_extractor",
    "TOKENIZER_VERSION",
]
