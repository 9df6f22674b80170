from borderpass.scoring.engine import ScoringEngine, empty_score
from borderpass.scoring.enrichment import JsonCompletionClient, SemanticAnalyzer
from borderpass.scoring.models import DIMENSIONS, PracticeFeedback, RiskTier, Score
from borderpass.scoring.practice import PRACTICE_FALLBACK, PracticeEvaluator

__all__ = [
    "DIMENSIONS",
    "JsonCompletionClient",
    "PRACTICE_FALLBACK",
    "PracticeEvaluator",
    "PracticeFeedback",
    "RiskTier",
    "Score",
    "ScoringEngine",
    "SemanticAnalyzer",
    "empty_score",
]
