"""
Scoring vocabulary, weights and thresholds.
Changing these changes every stored score from then on.
"""
import re

FINANCIAL_KEYWORDS = (
    "bank statement", "sponsor", "savings", "scholarship",
    "funded", "loan", "financial support", "account balance",
)
STUDY_INTENT_KEYWORDS = (
    "university", "course", "degree", "program", "research",
    "academic", "study", "major", "graduate", "bachelor",
)
RETURN_INTENT_KEYWORDS = (
    "return", "family", "job", "career", "home country",
    "business", "parents", "after graduation", "come back",
)

# distinct keyword hits that earn a full 100
FINANCIAL_SATURATION = 5
STUDY_INTENT_SATURATION = 5
RETURN_INTENT_SATURATION = 4

HESITATION_PATTERNS = (
    re.compile(r"\bum+\b", re.IGNORECASE),
    re.compile(r"\buh+\b", re.IGNORECASE),
    re.compile(r"\ber+\b", re.IGNORECASE),
    re.compile(r"\bahh?\b", re.IGNORECASE),
    re.compile(r"\.{3,}"),
    re.compile(r"\blike\b", re.IGNORECASE),
)
HESITATION_MULTIPLIER = 3.33

INSTITUTION_PATTERN = re.compile(r"university|college|institute", re.IGNORECASE)
# raw lowercased tokens, punctuation included
INSTITUTION_MIN_TOKEN_LEN = 6
INSTITUTION_PENALTY = 10
CONSISTENCY_MIN_LINES = 2
CONSISTENCY_DEFAULT = 70

# percent weights, sum to 100
WEIGHTS = {
    "financial_credibility": 25,
    "study_intent": 25,
    "return_intent": 20,
    "confidence": 15,
    "consistency": 15,
}

LOW_RISK_MIN = 70
MODERATE_RISK_MIN = 45
WEAK_AREA_BELOW = 60
EXCELLENT_MIN = 80

AREA_LABELS = {
    "financial_credibility": "financial documentation clarity",
    "study_intent": "academic purpose articulation",
    "return_intent": "home country ties and return intent",
    "confidence": "speech confidence and fluency",
    "consistency": "answer consistency across questions",
}

EXCELLENT_FEEDBACK = "Excellent performance! Your responses demonstrate strong visa approval potential."
IMPROVE_FEEDBACK_TEMPLATE = (
    "To improve your chances, focus on: {areas}. Practice will strengthen these areas significantly."
)
EMPTY_FEEDBACK = "No student responses recorded."
