"""
Rule tables for the feature extractor.

Every marker list, polarity value and threshold used by the analyzers lives
here as module-level immutable data (frozensets, tuples, read-only mappings),
built once at import time and shared by every extraction call.

Word sets are matched against lowercased word tokens; phrase tuples are
matched on word boundaries against the lowercased text, longest phrase first.
"""

from types import MappingProxyType


# ============================================================================
# POLARITY LEXICON (AFINN-style, -5..5)
# ============================================================================

POLARITY = MappingProxyType({
    # Positive
    "love": 3, "loved": 3, "loves": 3, "lovely": 3, "like": 2, "liked": 2,
    "good": 3, "great": 3, "nice": 3, "fine": 2, "cool": 1, "ok": 1, "okay": 1,
    "happy": 3, "glad": 3, "pleased": 3, "delighted": 3, "joyful": 3,
    "excited": 3, "exciting": 3, "thrilled": 5, "ecstatic": 4, "enthusiastic": 3,
    "wonderful": 4, "amazing": 4, "awesome": 4, "fantastic": 4, "excellent": 3,
    "superb": 5, "brilliant": 4, "perfect": 3, "beautiful": 3, "fun": 4,
    "best": 3, "better": 2, "win": 4, "won": 3, "success": 2, "successful": 3,
    "thanks": 2, "thank": 2, "thankful": 2, "grateful": 3, "appreciate": 2,
    "appreciated": 2, "appreciative": 2, "kind": 2, "kindly": 2, "sweet": 2,
    "care": 2, "caring": 2, "warm": 1, "friend": 1, "friendly": 2, "hope": 2,
    "hopeful": 2, "wish": 1, "welcome": 2, "congrats": 2, "congratulations": 2,
    "proud": 2, "enjoy": 2, "enjoyed": 2, "agree": 1, "yes": 1, "sure": 1,
    "certain": 1, "confident": 2, "positive": 2, "helpful": 2, "support": 2,
    "smile": 2, "laugh": 1, "haha": 3, "lol": 3, "miss": -2, "xoxo": 3,
    "hugs": 2, "kisses": 2, "cheers": 2, "yay": 3, "wow": 4,
    # Negative
    "bad": -3, "worse": -3, "worst": -3, "terrible": -3, "awful": -3,
    "horrible": -3, "sad": -2, "unhappy": -2, "depressed": -2, "upset": -2,
    "disappointed": -2, "disappointing": -2, "angry": -3, "mad": -3,
    "furious": -3, "frustrated": -2, "frustrating": -2, "annoyed": -2,
    "annoying": -2, "irritated": -3, "worried": -3, "worry": -3, "anxious": -2,
    "concerned": -2, "concern": -2, "nervous": -2, "afraid": -2, "scared": -2,
    "sorry": -1, "apologize": -1, "regret": -2, "unfortunately": -2,
    "problem": -2, "problems": -2, "issue": -1, "issues": -1, "fail": -2,
    "failed": -2, "failure": -2, "wrong": -2, "error": -2, "broken": -1,
    "hate": -3, "hated": -3, "late": -1, "delay": -1, "delayed": -1,
    "stupid": -2, "idiot": -3, "hell": -4, "damn": -4, "ridiculous": -3,
    "unacceptable": -2, "demand": -1, "complaint": -2, "urgent": -1,
    "stress": -1, "stressed": -2, "tired": -2, "sick": -2, "hurt": -2,
    "lost": -3, "lose": -3,
})

# Emojis and emoticons scored alongside words
EMOJI_POLARITY = MappingProxyType({
    "\U0001F495": 3, "❤": 3, "\U0001F60D": 3, "\U0001F618": 3,
    "\U0001F60A": 2, "\U0001F642": 2, "\U0001F600": 2, "\U0001F603": 2,
    "\U0001F604": 2, "\U0001F601": 2, "\U0001F602": 2, "\U0001F44D": 2,
    "\U0001F389": 3, "\U0001F64F": 2, "\U0001F970": 3,
    "\U0001F622": -2, "\U0001F62D": -2, "\U0001F61E": -2, "\U0001F641": -2,
    "\U0001F620": -3, "\U0001F621": -3, "\U0001F44E": -2,
    ":)": 2, ":-)": 2, ":D": 3, ":-D": 3, ";)": 2, ";-)": 2, "<3": 3,
    ":P": 1, ":p": 1, ":-P": 1, "^_^": 2,
    ":(": -2, ":-(": -2, ":/": -1, ":-/": -1, "T_T": -2, ">_<": -1,
})

# A negator flips the polarity of the next scored word
NEGATORS = frozenset([
    "not", "no", "never", "don't", "doesn't", "didn't", "isn't", "wasn't",
    "aren't", "won't", "can't", "couldn't", "shouldn't", "wouldn't", "nor",
])


# ============================================================================
# EMOTIONS
# ============================================================================

EMOTION_TRIGGERS = MappingProxyType({
    "happy": "happy", "joyful": "happy", "delighted": "happy", "pleased": "happy", "glad": "happy",
    "excited": "excited", "thrilled": "excited", "ecstatic": "excited", "enthusiastic": "excited",
    "grateful": "grateful", "thankful": "grateful", "thank": "grateful", "thanks": "grateful",
    "appreciate": "grateful", "appreciative": "grateful",
    "sad": "sad", "unhappy": "sad", "depressed": "sad",
    "disappointed": "disappointed", "disappointing": "disappointed",
    "angry": "angry", "mad": "angry", "furious": "angry",
    "frustrated": "frustrated", "frustrating": "frustrated", "irritated": "frustrated",
    "annoyed": "frustrated",
    "worried": "concerned", "anxious": "concerned", "concerned": "concerned",
    "nervous": "concerned", "afraid": "concerned",
    "confident": "confident", "sure": "confident", "certain": "confident",
    "sorry": "apologetic", "apologize": "apologetic", "apologies": "apologetic",
    "apologetic": "apologetic",
})

# Emotion words that only count above this absolute polarity
EMOTION_MIN_POLARITY = MappingProxyType({
    "thrilled": 4,
    "ecstatic": 4,
})

ENTHUSIASTIC_EMOTIONS = frozenset(["excited"])
FRUSTRATED_EMOTIONS = frozenset(["frustrated", "angry"])
CONCERNED_EMOTIONS = frozenset(["concerned"])


# ============================================================================
# SENTIMENT THRESHOLDS (score scale -1..1)
# ============================================================================

SENTIMENT_ENTHUSIASTIC = 0.7
SENTIMENT_POSITIVE = 0.1
SENTIMENT_CONCERNED = -0.1
SENTIMENT_FRUSTRATED = -0.7

# Emotion-guided overrides
EMOTION_ENTHUSIASTIC_SCORE = 0.5
EMOTION_FRUSTRATED_SCORE = -0.2
EMOTION_CONCERNED_SCORE = 0.0

# Polarity magnitude that maps to intensity 1.0
INTENSITY_SCALE = 3.0

# Confidence component caps
CONFIDENCE_SCORE_CAP = 0.5
CONFIDENCE_WORD_CAP = 0.3
CONFIDENCE_EMOTION_CAP = 0.2
CONFIDENCE_EMOJI_CAP = 0.2
CONFIDENCE_EMPHASIS = 0.1


# ============================================================================
# TONE MARKERS
# ============================================================================

WARM_WORDS = frozenset([
    "love", "care", "dear", "sweet", "kind", "warm", "friend", "hope", "wish", "wonderful",
])
COLD_WORDS = frozenset(["regret", "unfortunately", "formal", "hereby", "pursuant"])
INCLUSIVE_PRONOUNS = frozenset(["we", "us", "our"])
INCLUSIVE_PHRASES = ("together", "share", "join", "collaborate")
CARE_PHRASES = ("hope you", "how are you", "take care", "best wishes", "thinking of you")
COLD_PHRASES = ("per my last email", "as previously stated", "for your information", "as i said")

FORMAL_GREETING_PHRASES = ("dear", "to whom it may concern", "greetings")
FORMAL_CLOSING_PHRASES = ("sincerely", "respectfully", "regards", "cordially")
FORMAL_VOCABULARY = (
    "pursuant", "aforementioned", "regarding", "concerning", "furthermore", "moreover",
)
CASUAL_GREETING_WORDS = frozenset(["hey", "hi", "hiya", "yo", "sup", "howdy"])

IMMEDIATE_PHRASES = ("immediately", "urgent", "urgently", "asap", "right away", "now", "today")
SOON_PHRASES = ("soon", "tomorrow", "tonight", "this week", "by monday", "by friday", "by eod", "deadline")
FLEXIBLE_PHRASES = ("whenever", "no rush", "at your convenience", "when you can", "no hurry")
ACRONYM_ALLOWLIST = frozenset(["HTTP", "HTTPS", "HTML", "JSON", "ASAP", "NASA", "FAQS"])

DIRECT_PHRASES = ("need", "must", "require", "have to", "should")
HEDGE_WORDS = frozenset(["maybe", "perhaps", "possibly", "might", "could", "seem", "seems", "appear"])
CONDITIONAL_PHRASES = ("if", "would", "could you", "would you mind")
SOFTENER_PHRASES = ("just wanted to", "i was wondering", "i thought", "just checking")

ENTHUSIASTIC_WORDS = frozenset([
    "excited", "thrilled", "amazing", "fantastic", "awesome", "wonderful", "great", "yay", "wow",
])
SUPERLATIVES = frozenset([
    "best", "greatest", "biggest", "happiest", "nicest", "coolest", "finest", "brightest",
    "loveliest", "sweetest", "kindest", "luckiest",
])

POLITE_WORDS = frozenset(["please", "thank", "thanks", "appreciate", "grateful", "kindly"])
IMPOLITE_WORDS = frozenset(["demand", "stupid", "idiot", "hell", "damn", "ridiculous"])
POLITE_PHRASES = (
    "would you kindly", "i would appreciate", "would you mind", "if you could",
    "if you would", "could you please", "would you please", "thank you",
)
POLITE_REQUEST_PHRASES = (
    "could you", "would you", "may i", "might you", "could we", "would it be possible",
)
NEGATIVE_COMMAND_PHRASES = ("don't", "stop", "quit")

IMPERATIVE_VERBS = frozenset([
    "send", "call", "check", "review", "fix", "make", "do", "get", "give", "take", "bring",
    "tell", "remember", "update", "submit", "finish", "complete", "confirm", "reply",
    "come", "go", "let", "stop", "read", "sign", "book", "forward", "add", "remove",
    "ensure", "note", "see", "find", "look", "keep", "pick", "drop", "email", "text",
])


# ============================================================================
# INFORMALITY
# ============================================================================

INFORMAL_WORDS = frozenset([
    "lol", "lmao", "omg", "btw", "fyi", "haha", "hehe", "dude", "bro", "gotta", "gonna",
    "wanna", "kinda", "sorta", "yeah", "yep", "nope", "ya", "ttyl", "tbh", "imo", "imho",
    "smh", "rofl", "yo", "sup", "lemme", "dunno", "y'all", "xoxo",
])

# Weights for the informality blend (sum is the normaliser)
INFORMALITY_WEIGHTS = MappingProxyType({
    "contraction_density": 2.0,
    "informal_density": 2.5,
    "exclamation_ratio": 1.2,
    "short_sentence_ratio": 0.8,
    "first_person_density": 0.5,
})
SHORT_SENTENCE_WORDS = 7
FIRST_PERSON_WORDS = frozenset(["i", "me", "my", "mine", "i'm", "i'll", "i've", "i'd"])

HIGH_CONTRACTION_DENSITY = 0.1
MANY_CONTRACTIONS = 2
EMPHASIS_CAPS_MIN_LENGTH = 4

CONTRACTION_SUFFIXES = ("n't", "'ll", "'re", "'ve", "'d", "'m")
CONTRACTION_S_HEADS = frozenset([
    "it", "that", "there", "what", "let", "he", "she", "here", "who", "where", "how",
])


# ============================================================================
# LINGUISTIC STYLE
# ============================================================================

# Lexical diversity cut points (simple < first <= moderate < second <= sophisticated)
SHORT_TEXT_WORDS = 20
SHORT_TEXT_DIVERSITY_CUTS = (0.6, 0.85)
LONG_TEXT_DIVERSITY_CUTS = (0.4, 0.7)

SOPHISTICATED_WORDS = frozenset([
    "pursuant", "aforementioned", "nevertheless", "furthermore", "consequently",
    "subsequently", "comprehensive", "ramifications", "deliberation", "heretofore",
    "whereas", "notwithstanding",
])
ACADEMIC_WORDS = frozenset(["analyze", "synthesize", "evaluate", "implement", "utilize", "optimize"])
SOPHISTICATED_OVERRIDE_COUNT = 2  # more than this many hits forces "sophisticated"

SIMPLE_WORDS = frozenset([
    "good", "bad", "nice", "big", "small", "happy", "sad", "like", "want", "get", "go", "do", "make",
])
SIMPLE_OVERRIDE_RATIO = 0.3

CONVERSATIONAL_MARKERS = (
    "anyway", "by the way", "honestly", "actually", "basically", "obviously", "clearly",
    "frankly", "seriously", "you know", "i mean", "kind of", "sort of", "pretty much",
    "i think", "i feel", "i believe", "in my opinion", "personally",
)


# ============================================================================
# RELATIONSHIP MARKERS
# ============================================================================

ENDEARMENT_WORDS = frozenset([
    "honey", "hon", "babe", "baby", "sweetheart", "sweetie", "darling", "sweetpea", "hun",
])
# "dear" alone is a salutation, never an endearment
ENDEARMENT_PHRASES = ("love you", "my love", "my dear", "love ya", "miss you")

PROFESSIONAL_PHRASES = (
    "per our discussion", "as per our", "pursuant to", "with regard to", "further to",
    "per our", "please find attached", "for your review", "kindly",
    "at your earliest convenience", "for your consideration", "please find",
    "stakeholder", "deliverable", "action item", "touch base", "circle back", "bandwidth",
)

TITLE_PATTERN = r"\b(?:Mr|Mrs|Ms|Mx|Dr|Prof|Sir|Madam)\b\.?"
COMPANY_WORDS = frozenset([
    "company", "corporation", "organization", "organisation", "department", "team",
    "inc", "llc", "ltd", "corp",
])

PROFESSIONAL_GREETING_PHRASES = ("good morning", "good afternoon", "good evening")
CASUAL_GREETING_PHRASES = ("hey", "hi", "hello", "hiya", "yo", "howdy")

# Closing style checks run in this order on the tail of the email
CLOSING_WINDOW_CHARS = 150
CLOSING_STYLES = (
    ("very-formal", ("yours sincerely", "yours truly", "yours faithfully", "respectfully yours")),
    ("formal", ("sincerely", "respectfully", "regards", "best regards", "kind regards")),
    ("casual-friendly", ("thanks", "thank you", "cheers", "best", "take care")),
    ("intimate", ("love", "xoxo", "hugs", "kisses")),
    ("very-casual", ("later", "bye", "talk soon", "ttyl", "hit me up", "call me", "text me")),
)

FORMAL_CLOSING_STYLES = frozenset(["formal", "very-formal"])

# Familiarity ladder
VERY_FAMILIAR_MARKERS = 3
FAMILIAR_MARKERS = 1


# ============================================================================
# ACTION ITEMS AND CONTEXT
# ============================================================================

# First matching rule wins
ACTION_RULES = (
    ("request", ("can you", "could you", "would you", "will you", "please")),
    ("commitment", (
        "i will", "i'll", "we will", "we'll", "i shall", "we shall", "i can", "we can",
        "i'm going to", "i am going to", "we're going to", "we are going to",
    )),
    ("suggestion", (
        "maybe we should", "maybe we", "perhaps we", "how about", "what if", "let's",
        "let us", "we should", "we could", "why don't we", "shall we",
    )),
)
MAX_ACTION_ITEMS = 10

ANSWER_PHRASES = (
    "in response to", "to answer your", "regarding your", "as requested", "here's the",
    "here is the", "in reply to", "as you asked",
)
UPDATE_PHRASES = (
    "quick update", "fyi", "status", "update", "progress", "completed", "just finished",
)
SCHEDULING_PHRASES = (
    "meeting", "meet", "appointment", "calendar", "schedule", "reschedule", "available",
    "availability", "tomorrow", "next week", "monday", "tuesday", "wednesday", "thursday",
    "friday", "saturday", "sunday",
)
TIME_PATTERN = r"\b\d{1,2}(?::\d{2})?\s?(?:am|pm)\b|\b\d{1,2}[/-]\d{1,2}(?:[/-]\d{2,4})?\b"


# ============================================================================
# STATS
# ============================================================================

STATS_FORMAL_WORDS = frozenset(["dear", "sincerely", "regards", "respectfully"])
STATS_TITLE_WORDS = frozenset(["mr", "mrs", "ms", "dr", "prof"])
STATS_FORMAL_VOCABULARY = frozenset(["pursuant", "therefore", "furthermore", "moreover"])
STATS_INFORMAL_WORDS = frozenset(["hey", "hi", "lol", "haha", "btw"])
STATS_CONTRACTION_RATIO = 0.05

# Abbreviations that end with a period without ending the sentence
ABBREVIATIONS = frozenset([
    "mr.", "mrs.", "ms.", "mx.", "dr.", "prof.", "sr.", "jr.", "st.", "vs.", "etc.",
    "e.g.", "i.e.", "inc.", "ltd.", "co.", "corp.", "approx.", "dept.", "no.",
])
