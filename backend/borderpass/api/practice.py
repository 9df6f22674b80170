import logging

from fastapi import APIRouter, Request

from borderpass.schemas import PracticeEvaluateRequest
from borderpass.scoring.practice import PRACTICE_FALLBACK

logger = logging.getLogger("borderpass.api.practice")

router = APIRouter(prefix="/api/practice")


@router.post("/evaluate")
async def evaluate_answer(req: PracticeEvaluateRequest, request: Request):
    evaluator = getattr(request.app.state, "practice_evaluator", None)
    if evaluator is None:
        # no model configured (QA_MODE or missing key)
        return PRACTICE_FALLBACK.model_dump()
    result = await evaluator.evaluate(req.question, req.answer, req.category)
    logger.info("Practice answer evaluated | category=%s score=%s", req.category, result.score)
    return result.model_dump()
