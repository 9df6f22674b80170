import asyncio
import json
import logging
from typing import Optional, Sequence

from openai import AsyncOpenAI
from pydantic import ValidationError

from borderpass.core.config import OPENAI_API_KEY, SCORING_MODEL, SCORING_RETRIES, SCORING_TIMEOUT_SEC
from borderpass.scoring.models import SemanticAnalysis
from borderpass.system_metrics import increment_metric
from borderpass.transcript.models import Speaker, TranscriptLine

logger = logging.getLogger("borderpass.scoring.enrichment")

SYSTEM_PROMPT = (
    "You are an expert visa interview evaluator. Analyze this interview transcript and provide "
    "a JSON score breakdown with keys: financialCredibility (0-100), studyIntent (0-100), "
    "returnIntent (0-100), confidence (0-100), consistency (0-100), keyIssues (array of strings), "
    "strengths (array of strings). Respond ONLY with valid JSON."
)


def build_conversation(lines: Sequence[TranscriptLine]) -> str:
    return "\n".join(
        f"{'OFFICER' if line.speaker == Speaker.AI else 'STUDENT'}: {line.text}"
        for line in lines
        if str(line.text or "").strip()
    )


class JsonCompletionClient:
    """
    One JSON-mode chat completion with a per-attempt timeout and linear
    backoff between attempts. complete_json() never raises; it returns "{}"
    when every attempt failed.
    """

    label = "llm"

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = SCORING_MODEL,
        timeout_sec: float = SCORING_TIMEOUT_SEC,
        retries: int = SCORING_RETRIES,
    ):
        self._client = client
        self.model = model
        self.timeout_sec = timeout_sec
        self.retries = retries

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=OPENAI_API_KEY)
        return self._client

    async def complete_json(self, system_prompt: str, user_content: str, max_tokens: int = 500) -> str:
        if not str(user_content or "").strip():
            return "{}"

        last_error: Exception | None = None
        for attempt in range(max(1, self.retries + 1)):
            try:
                response = await asyncio.wait_for(
                    self.client.chat.completions.create(
                        model=self.model,
                        messages=[
                            {"role": "system", "content": system_prompt},
                            {"role": "user", "content": user_content},
                        ],
                        response_format={"type": "json_object"},
                        max_tokens=max_tokens,
                    ),
                    timeout=self.timeout_sec,
                )
                message = response.choices[0].message.content
                return str(message or "{}").strip() or "{}"
            except asyncio.TimeoutError as exc:
                last_error = exc
                logger.warning("%s timeout | attempt=%s", self.label, attempt + 1)
            except Exception as exc:
                last_error = exc
                logger.warning("%s failure | attempt=%s err=%s", self.label, attempt + 1, exc)

            if attempt < self.retries:
                await asyncio.sleep(0.35 * (attempt + 1))

        logger.warning("%s fallback activated | err=%s", self.label, last_error)
        return "{}"


class SemanticAnalyzer(JsonCompletionClient):
    """
    Best-effort semantic pass over a whole transcript.
    analyze() returns None instead of raising.
    """

    label = "semantic analysis"

    async def call_llm(self, conversation: str) -> str:
        """Sends the labelled conversation and returns the raw JSON text."""
        return await self.complete_json(SYSTEM_PROMPT, conversation, max_tokens=500)

    async def analyze(self, lines: Sequence[TranscriptLine]) -> Optional[dict]:
        raw = await self.call_llm(build_conversation(lines))
        try:
            parsed = SemanticAnalysis.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            increment_metric("scoring_enrichment_failures", 1)
            logger.warning("semantic analysis discarded; using rule-based scores only | err=%s", exc)
            return None
        return parsed.model_dump()
