"""
Action items, questions and context-type inference.
"""

import re
from typing import List

from ..models.features import ActionItem, ActionItemType, ContextType
from . import lexicons as lx
from .tokenizer import TextProfile, has_phrase


_TIME_RE = re.compile(lx.TIME_PATTERN)


def classify_action(sentence: str):
    """
    Apply the action rules to one sentence; first matching rule wins.

    Returns:
        ActionItemType or None

    Examples:
        >>> classify_action("Can you please review the draft?")
        <ActionItemType.REQUEST: 'request'>
        >>> classify_action("I'll send it tonight.")
        <ActionItemType.COMMITMENT: 'commitment'>
        >>> classify_action("How about we discuss this over lunch?")
        <ActionItemType.SUGGESTION: 'suggestion'>
    """
    lower = sentence.lower()
    for item_type, phrases in lx.ACTION_RULES:
        if has_phrase(lower, phrases):
            return ActionItemType(item_type)
    return None


def extract_action_items(profile: TextProfile) -> List[ActionItem]:
    items = []
    for sentence in profile.sentences:
        item_type = classify_action(sentence)
        if item_type is not None:
            items.append(ActionItem(type=item_type, text=sentence))
            if len(items) >= lx.MAX_ACTION_ITEMS:
                break
    return items


def infer_context_type(profile: TextProfile) -> ContextType:
    """
    Infer what kind of message this is.

    Questions win only when they make up at least half of the sentences, so
    a long update ending with "Thoughts?" stays an update.
    """
    if profile.is_empty:
        return ContextType.OTHER

    questions = len(profile.questions)
    if questions >= 1 and questions * 2 >= profile.sentence_count:
        return ContextType.QUESTION
    if has_phrase(profile.lower, lx.ANSWER_PHRASES):
        return ContextType.ANSWER
    if has_phrase(profile.lower, lx.UPDATE_PHRASES):
        return ContextType.UPDATE
    if has_phrase(profile.lower, lx.SCHEDULING_PHRASES) or _TIME_RE.search(profile.lower):
        return ContextType.SCHEDULING
    return ContextType.OTHER
