import logging
import math
from typing import Iterable, List, Optional

from borderpass.scoring import rules
from borderpass.scoring.enrichment import SemanticAnalyzer
from borderpass.scoring.models import DIMENSIONS, RiskTier, Score
from borderpass.transcript.models import Speaker, TranscriptLine

logger = logging.getLogger("borderpass.scoring.engine")


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def _coerce_lines(transcript) -> List[TranscriptLine]:
    lines: List[TranscriptLine] = []
    for item in list(transcript or []):
        if isinstance(item, TranscriptLine):
            lines.append(item)
            continue
        line = TranscriptLine.from_dict(item)
        if line is not None:
            lines.append(line)
    return lines


def _student_texts(lines: Iterable[TranscriptLine]) -> List[str]:
    return [str(line.text or "") for line in lines if line.speaker == Speaker.STUDENT]


def keyword_score(text: str, keywords: Iterable[str], saturation: int) -> int:
    lowered = str(text or "").lower()
    hits = sum(1 for keyword in keywords if keyword in lowered)
    return min(100, _round_half_up(hits * 100, saturation))


def score_financial_credibility(text: str) -> int:
    return keyword_score(text, rules.FINANCIAL_KEYWORDS, rules.FINANCIAL_SATURATION)


def score_study_intent(text: str) -> int:
    return keyword_score(text, rules.STUDY_INTENT_KEYWORDS, rules.STUDY_INTENT_SATURATION)


def score_return_intent(text: str) -> int:
    return keyword_score(text, rules.RETURN_INTENT_KEYWORDS, rules.RETURN_INTENT_SATURATION)


def count_hesitations(text: str) -> int:
    return sum(len(pattern.findall(text)) for pattern in rules.HESITATION_PATTERNS)


def score_confidence(student_texts: List[str]) -> int:
    if not student_texts:
        return 0

    total_hesitations = 0
    total_words = 0
    for text in student_texts:
        total_words += len(text.split())
        total_hesitations += count_hesitations(text)

    hesitation_rate = total_hesitations / total_words if total_words > 0 else 0.0
    # rate 0 -> 100, rate >= ~0.3 -> 0
    value = (1 - hesitation_rate * rules.HESITATION_MULTIPLIER) * 100
    return max(0, min(100, int(math.floor(value + 0.5))))


def institution_mentions(student_texts: List[str]) -> set[str]:
    mentions: set[str] = set()
    for text in student_texts:
        for word in text.lower().split():
            if len(word) >= rules.INSTITUTION_MIN_TOKEN_LEN and rules.INSTITUTION_PATTERN.search(word):
                mentions.add(word)
    return mentions


def score_consistency(student_texts: List[str]) -> int:
    if len(student_texts) < rules.CONSISTENCY_MIN_LINES:
        return rules.CONSISTENCY_DEFAULT

    # more than one distinct institution named reads as a contradiction
    extra = max(0, len(institution_mentions(student_texts)) - 1)
    return max(0, 100 - rules.INSTITUTION_PENALTY * extra)


def overall_score(dimensions: dict[str, int]) -> int:
    weighted = sum(rules.WEIGHTS[name] * int(dimensions[name]) for name in DIMENSIONS)
    return _round_half_up(weighted, 100)


def risk_tier(overall: int) -> RiskTier:
    if overall >= rules.LOW_RISK_MIN:
        return RiskTier.LOW
    if overall >= rules.MODERATE_RISK_MIN:
        return RiskTier.MODERATE
    return RiskTier.HIGH


def weak_areas(dimensions: dict[str, int]) -> List[str]:
    return [name for name in DIMENSIONS if int(dimensions[name]) < rules.WEAK_AREA_BELOW]


def build_feedback(areas: List[str], overall: int) -> str:
    if overall >= rules.EXCELLENT_MIN:
        return rules.EXCELLENT_FEEDBACK
    labels = ", ".join(rules.AREA_LABELS.get(area, area) for area in areas)
    return rules.IMPROVE_FEEDBACK_TEMPLATE.format(areas=labels)


def empty_score(feedback: str = rules.EMPTY_FEEDBACK) -> Score:
    return Score(
        financial_credibility=0,
        study_intent=0,
        return_intent=0,
        confidence=0,
        consistency=0,
        overall=0,
        risk_tier=RiskTier.HIGH,
        weak_areas=list(DIMENSIONS),
        feedback=feedback,
    )


class ScoringEngine:
    """
    Transcript -> Score.

    Rule-based dimensions are deterministic. The optional analyzer adds an
    ai_analysis payload and never changes the rule-based numbers.
    Construct once and share; no state is kept between calls.
    """

    def __init__(self, analyzer: Optional[SemanticAnalyzer] = None):
        self.analyzer = analyzer

    def score_rules(self, transcript) -> Score:
        lines = _coerce_lines(transcript)
        student_texts = _student_texts(lines)
        joined = " ".join(student_texts)
        if not joined.strip():
            return empty_score()

        dimensions = {
            "financial_credibility": score_financial_credibility(joined),
            "study_intent": score_study_intent(joined),
            "return_intent": score_return_intent(joined),
            "confidence": score_confidence(student_texts),
            "consistency": score_consistency(student_texts),
        }
        overall = overall_score(dimensions)
        areas = weak_areas(dimensions)

        return Score(
            **dimensions,
            overall=overall,
            risk_tier=risk_tier(overall),
            weak_areas=areas,
            feedback=build_feedback(areas, overall),
        )

    async def score(self, transcript) -> Score:
        lines = _coerce_lines(transcript)
        result = self.score_rules(lines)
        if self.analyzer is None or not " ".join(_student_texts(lines)).strip():
            return result

        try:
            analysis = await self.analyzer.analyze(lines)
        except Exception as exc:
            logger.warning("Semantic analysis failed, using rule-based only: %s", exc)
            return result

        if not analysis:
            return result
        return result.model_copy(update={"ai_analysis": analysis})
