"""
Relationship category detection for recipients.

The category tag ("spouse", "colleagues", ...) is free-form and independent
from the familiarity level the feature extractor reads off the text. It is
resolved in priority order:

1. user_defined: explicit mapping recipient email -> category
2. domain: configured colleague domains
3. familiarity: the email's own familiarity signal (intimate, familiar)
4. domain: consumer mail domains -> "friends"
5. default: "external"
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

import structlog

from ..config import settings
from ..models.examples import RelationshipTag
from ..models.features import EmailFeatures, FamiliarityLevel


logger = structlog.get_logger(__name__)


# ============================================================================
# RELATIONSHIP CATEGORIES
# ============================================================================

SPOUSE = "spouse"
FAMILY = "family"
FRIENDS = "friends"
COLLEAGUES = "colleagues"
EXTERNAL = "external"

# Categories searched, in order, when a category alone yields too few examples
ADJACENT_RELATIONSHIPS: Dict[str, Tuple[str, ...]] = {
    SPOUSE: (FAMILY, FRIENDS),
    FAMILY: (SPOUSE, FRIENDS),
    FRIENDS: (FAMILY, COLLEAGUES),
    COLLEAGUES: (FRIENDS, EXTERNAL),
    EXTERNAL: (COLLEAGUES, FRIENDS),
}

FAMILIARITY_RELATIONSHIPS: Dict[FamiliarityLevel, str] = {
    FamiliarityLevel.INTIMATE: SPOUSE,
    FamiliarityLevel.VERY_FAMILIAR: FRIENDS,
    FamiliarityLevel.FAMILIAR: FRIENDS,
}

USER_DEFINED_CONFIDENCE = 1.0
DOMAIN_CONFIDENCE = 0.8
FAMILIARITY_CONFIDENCE = 0.6
DEFAULT_CONFIDENCE = 0.5


def parse_domains(value: str) -> FrozenSet[str]:
    """
    Parse a comma-separated domain list.

    Examples:
        >>> sorted(parse_domains(" Gmail.com, ,acme.io"))
        ['acme.io', 'gmail.com']
    """
    return frozenset(d.strip().lower() for d in value.split(",") if d.strip())


def email_domain(email: str) -> str:
    """Lowercased domain part of an address, "" when there is none."""
    _, at, domain = (email or "").strip().lower().rpartition("@")
    return domain if at else ""


def get_adjacent_relationships(relationship: str) -> Tuple[str, ...]:
    return ADJACENT_RELATIONSHIPS.get(relationship, ())


@dataclass
class RelationshipDetector:
    """
    Resolve the relationship category of a recipient.

    Attributes:
        user_defined: Recipient email (any case) -> category, wins over every rule
        colleague_domains: Domains whose recipients are colleagues
        personal_domains: Consumer mail domains, treated as friends
    """

    user_defined: Dict[str, str] = field(default_factory=dict)
    colleague_domains: FrozenSet[str] = frozenset()
    personal_domains: FrozenSet[str] = frozenset()

    def __post_init__(self):
        self.user_defined = {k.strip().lower(): v for k, v in self.user_defined.items()}

    @classmethod
    def from_config(cls, user_defined: Optional[Mapping[str, str]] = None) -> "RelationshipDetector":
        """Create detector with domain lists from settings."""
        return cls(
            user_defined=dict(user_defined or {}),
            colleague_domains=parse_domains(settings.relationship_colleague_domains),
            personal_domains=parse_domains(settings.relationship_personal_domains),
        )

    def detect(
        self,
        recipient_email: str,
        features: Optional[EmailFeatures] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> RelationshipTag:
        """
        Detect the relationship category for one recipient.

        Args:
            recipient_email: Recipient address
            features: Features of the email being sent (familiarity fallback)
            overrides: Per-call user-defined mapping, checked before `user_defined`

        Returns:
            RelationshipTag with type, confidence and detection_method
        """
        address = (recipient_email or "").strip().lower()

        if overrides:
            for email, relationship in overrides.items():
                if email.strip().lower() == address and relationship:
                    return RelationshipTag(
                        type=relationship,
                        confidence=USER_DEFINED_CONFIDENCE,
                        detection_method="user_defined",
                    )

        if address in self.user_defined:
            return RelationshipTag(
                type=self.user_defined[address],
                confidence=USER_DEFINED_CONFIDENCE,
                detection_method="user_defined",
            )

        domain = email_domain(address)
        if domain and domain in self.colleague_domains:
            return RelationshipTag(type=COLLEAGUES, confidence=DOMAIN_CONFIDENCE, detection_method="domain")

        familiarity = features.relationship_hints.familiarity_level if features else None
        if familiarity in FAMILIARITY_RELATIONSHIPS:
            return RelationshipTag(
                type=FAMILIARITY_RELATIONSHIPS[familiarity],
                confidence=FAMILIARITY_CONFIDENCE,
                detection_method="familiarity",
            )

        if domain and domain in self.personal_domains:
            return RelationshipTag(type=FRIENDS, confidence=DOMAIN_CONFIDENCE, detection_method="domain")

        logger.debug("relationship_defaulted", domain=domain)
        return RelationshipTag(type=EXTERNAL, confidence=DEFAULT_CONFIDENCE, detection_method="default")
