"""
Deterministic English tokenizer for feature extraction.

Provides stable tokenization for email text with support for:
- Contractions and curly apostrophes (I'll, don’t)
- Sentence segmentation that survives titles and abbreviations (Dr., e.g.)
- Emoji code points and classic emoticons, order preserved
- Word-boundary phrase matching against the rule tables
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Sequence, Tuple

from .lexicons import ABBREVIATIONS, CONTRACTION_S_HEADS, CONTRACTION_SUFFIXES


TOKENIZER_VERSION = "tokenizer-en-1.0.0"

_WORD_RE = re.compile(r"[A-Za-z]+(?:'[A-Za-z]+)*|\d+")
_SENTENCE_END_RE = re.compile(r"[.!?]+(?=\s|$)")
_HAS_WORD_RE = re.compile(r"\w")

_EMOJI = (
    "[\U0001F300-\U0001F5FF\U0001F600-\U0001F64F\U0001F680-\U0001F6FF"
    "\U0001F900-\U0001F9FF\U0001FA70-\U0001FAFF\U0001F1E6-\U0001F1FF"
    "\u2600-\u26FF\u2700-\u27BF]"
)
_EMOTICON = r"(?<![\w/:])(?:[:;]-?[)(DPp/]|\^_\^|>_<|T_T|<3)(?![\w/])"
_EMOJI_RE = re.compile(f"{_EMOJI}|{_EMOTICON}")


def normalize_text(text) -> str:
    """
    Coerce any input into a clean string.

    None becomes "", bytes are decoded leniently, curly apostrophes are
    straightened so contractions tokenize the same way.

    Examples:
        >>> normalize_text(None)
        ''
        >>> normalize_text("I’ll be there")
        "I'll be there"
    """
    if text is None:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    elif not isinstance(text, str):
        text = str(text)
    return text.replace("’", "'").replace("‘", "'").replace("\r\n", "\n")


def tokenize_en(text: str) -> List[str]:
    """
    Tokenize English text into lowercased words.

    Examples:
        >>> tokenize_en("Hey honey! I'll be home late.")
        ['hey', 'honey', "i'll", 'be', 'home', 'late']
    """
    return [token.lower() for token in _WORD_RE.findall(text)]


def split_sentences(text: str) -> List[str]:
    """
    Split text into sentences on terminal punctuation and line breaks.

    A trailing fragment without terminal punctuation is a sentence of its own.
    Fragments without any word character (a lone emoji after "Love you!")
    are attached to the previous sentence.

    Examples:
        >>> split_sentences("Dear Dr. Smith, thanks. See you soon")
        ['Dear Dr. Smith, thanks.', 'See you soon']
        >>> split_sentences("Love you! 💕")
        ['Love you! 💕']
    """
    raw: List[str] = []
    for line in text.split("\n"):
        start = 0
        for match in _SENTENCE_END_RE.finditer(line):
            candidate = line[start:match.end()].strip()
            if match.group() == "." and _ends_with_abbreviation(candidate):
                continue
            if candidate:
                raw.append(candidate)
            start = match.end()
        rest = line[start:].strip()
        if rest:
            raw.append(rest)

    sentences: List[str] = []
    for fragment in raw:
        if sentences and not _HAS_WORD_RE.search(fragment):
            sentences[-1] = f"{sentences[-1]} {fragment}"
        else:
            sentences.append(fragment)
    return sentences


def _ends_with_abbreviation(candidate: str) -> bool:
    parts = candidate.split()
    return bool(parts) and parts[-1].lower() in ABBREVIATIONS


def find_emojis(text: str) -> List[str]:
    """
    Find emoji code points and emoticons in order of appearance, duplicates kept.

    Examples:
        >>> find_emojis("Love you! 💕 :) 💕")
        ['💕', ':)', '💕']
        >>> find_emojis("see http://example.com")
        []
    """
    return _EMOJI_RE.findall(text)


def is_contraction(token: str) -> bool:
    """
    Check whether a lowercased token is a contraction (not a possessive).

    Examples:
        >>> is_contraction("don't"), is_contraction("it's"), is_contraction("john's")
        (True, True, False)
    """
    if "'" not in token:
        return False
    if token.endswith(CONTRACTION_SUFFIXES):
        return True
    head, _, tail = token.partition("'")
    return tail == "s" and head in CONTRACTION_S_HEADS


@lru_cache(maxsize=None)
def phrase_pattern(phrases: Tuple[str, ...]) -> "re.Pattern[str]":
    """
    Compile a word-boundary alternation for a phrase tuple (cached per tuple).

    Longer phrases are tried first so "best regards" wins over "best".
    """
    ordered = sorted(phrases, key=len, reverse=True)
    body = "|".join(re.escape(phrase) for phrase in ordered)
    return re.compile(rf"(?<![\w'])(?:{body})(?![\w'])")


def find_phrases(lower_text: str, phrases: Tuple[str, ...]) -> List[str]:
    """
    Return every phrase occurrence in order of appearance.

    Examples:
        >>> find_phrases("honestly, you know, honestly", ("honestly", "you know"))
        ['honestly', 'you know', 'honestly']
    """
    return phrase_pattern(phrases).findall(lower_text)


def has_phrase(lower_text: str, phrases: Tuple[str, ...]) -> bool:
    return phrase_pattern(phrases).search(lower_text) is not None


def unique_in_order(items: Sequence[str]) -> List[str]:
    """Deduplicate preserving first-seen order."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


# ============================================================================
# TEXT PROFILE
# ============================================================================

@dataclass(frozen=True)
class TextProfile:
    """
    Tokenized view of one email, computed once and shared by every analyzer.

    `word_count` counts whitespace-separated tokens (so emojis count as words),
    while `words` holds the lowercased alphanumeric tokens used for lexicon
    lookups.
    """
    text: str
    lower: str
    words: Tuple[str, ...]
    sentences: Tuple[str, ...]
    emojis: Tuple[str, ...]
    word_count: int

    @property
    def is_empty(self) -> bool:
        return self.word_count == 0

    @property
    def sentence_count(self) -> int:
        return len(self.sentences)

    @property
    def token_count(self) -> int:
        """Number of lexicon tokens, never below 1 (safe divisor)."""
        return max(len(self.words), 1)

    @property
    def safe_sentence_count(self) -> int:
        return max(len(self.sentences), 1)

    @property
    def avg_words_per_sentence(self) -> float:
        if not self.sentences:
            return 0.0
        return self.word_count / len(self.sentences)

    @property
    def first_sentence(self) -> str:
        return self.sentences[0] if self.sentences else ""

    @property
    def questions(self) -> List[str]:
        return [s for s in self.sentences if s.rstrip().endswith("?")]

    @property
    def contraction_count(self) -> int:
        return sum(1 for word in self.words if is_contraction(word))

    @property
    def exclamation_count(self) -> int:
        return self.text.count("!")


def profile_text(text) -> TextProfile:
    """
    Build the TextProfile for any input (None and non-strings included).

    Examples:
        >>> profile_text("").word_count
        0
        >>> profile_text("Hi there. How are you?").questions
        ['How are you?']
    """
    clean = normalize_text(text)
    return TextProfile(
        text=clean,
        lower=clean.lower(),
        words=tuple(tokenize_en(clean)),
        sentences=tuple(split_sentences(clean)),
        emojis=tuple(find_emojis(clean)),
        word_count=len(clean.split()),
    )
