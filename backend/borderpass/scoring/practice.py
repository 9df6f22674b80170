import json
import logging

from pydantic import ValidationError

from borderpass.scoring.enrichment import JsonCompletionClient
from borderpass.scoring.models import PracticeFeedback
from borderpass.system_metrics import increment_metric

logger = logging.getLogger("borderpass.scoring.practice")

PRACTICE_FALLBACK = PracticeFeedback(feedback="Good attempt! Keep practicing.", score=60)

PRACTICE_PROMPT_TEMPLATE = (
    "You are a visa interview coach evaluating a student's practice answer.\n"
    "Category being evaluated: {category}.\n"
    "Give constructive, specific feedback in 1-2 sentences. Then provide a numeric score 0-100.\n"
    'Respond ONLY in JSON: {{"feedback": "...", "score": 75}}'
)


class PracticeEvaluator(JsonCompletionClient):
    """Scores one practice answer; any provider or shape failure yields PRACTICE_FALLBACK."""

    label = "practice evaluation"

    async def evaluate(self, question: str, answer: str, category: str) -> PracticeFeedback:
        increment_metric("practice_evaluations_total", 1)
        raw = await self.complete_json(
            PRACTICE_PROMPT_TEMPLATE.format(category=category),
            f"Question: {question}\nAnswer: {answer}",
            max_tokens=200,
        )
        try:
            return PracticeFeedback.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            increment_metric("practice_evaluation_fallbacks", 1)
            logger.warning("practice evaluation fallback | category=%s err=%s", category, exc)
            return PRACTICE_FALLBACK
