"""
AI Answer Scorer

Client for an OpenAI-compatible chat completions endpoint (LM Studio by
default) that scores free-text answers against a reference answer.

The adapter never raises to its caller: transport failures, timeouts,
error statuses and empty replies all produce a fallback result worth zero
marks that is flagged for manual review.
"""

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from smartassess.common.exceptions import ScorerError
from smartassess.common.logger import app_logger, log_execution_time
from smartassess.common.rate_limiter import RateLimiter
from smartassess.config import Settings, settings as default_settings
from .response_parser import parse_response

logger = app_logger.getChild("assessments.ai_scorer")

FALLBACK_FEEDBACK = "Evaluation failed, needs manual review"
NO_REFERENCE_PLACEHOLDER = "No reference answer provided. Evaluate on general correctness."

SYSTEM_PROMPT = (
    "You are an expert teacher who evaluates student answers fairly and provides "
    "constructive feedback. Always respond with valid JSON format."
)

USER_PROMPT_TEMPLATE = """You are evaluating a student's answer for content accuracy, completeness and understanding.

Question: {question}

Model Answer: {reference}

Student's Answer: {answer}

Maximum Marks: {max_marks}

Compare the student's answer with the model answer. Consider:
1. Content accuracy
2. Completeness with respect to the key points of the model answer
3. Understanding of the concept
4. Relevance to the question

Respond with a JSON object of the form:
{{
  "marksObtained": <number between 0 and {max_marks}>,
  "feedback": "<brief constructive feedback in 2-3 sentences>",
  "reasoning": "<why these marks were given>"
}}

Give partial marks for partially correct answers."""

# Exceptions turned into a fallback result instead of propagating
SCORING_ERRORS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ValueError,
    KeyError,
    IndexError,
    TypeError,
    ScorerError,
)


@dataclass(frozen=True)
class ScoringRequest:
    """One answer to score."""
    question_text: str
    reference_answer: Optional[str]
    answer_text: str
    max_marks: float

    @property
    def reference_or_placeholder(self) -> str:
        if self.reference_answer and self.reference_answer.strip():
            return self.reference_answer
        return NO_REFERENCE_PLACEHOLDER


@dataclass(frozen=True)
class ScoringResult:
    """Outcome of scoring one answer."""
    marks: float
    feedback: str
    rationale: str
    fallback: bool = False

    @classmethod
    def failed(cls, error: Any) -> 'ScoringResult':
        detail = str(error) or type(error).__name__
        return cls(marks=0, feedback=FALLBACK_FEEDBACK, rationale=detail, fallback=True)


class AIScorerAdapter:
    """
    Scores answers through a chat completions endpoint.

    Batches are scored one item at a time through a ``RateLimiter`` so that
    a local model server is not flooded.
    """

    def __init__(self,
                 config: Optional[Settings] = None,
                 limiter: Optional[RateLimiter] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.config = config or default_settings
        self.limiter = limiter or RateLimiter(
            max_concurrent=self.config.SCORER_MAX_CONCURRENT,
            min_interval=self.config.SCORER_BATCH_DELAY
        )
        self._session = session
        self._owns_session = session is None
        self._session_lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session

        async with self._session_lock:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(
                    timeout=aiohttp.ClientTimeout(total=self.config.SCORER_TIMEOUT)
                )
                self._owns_session = True
        return self._session

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.SCORER_API_KEY:
            headers["Authorization"] = f"Bearer {self.config.SCORER_API_KEY}"
        return headers

    def build_payload(self, user_prompt: str, system_prompt: str = SYSTEM_PROMPT) -> Dict[str, Any]:
        return {
            "model": self.config.SCORER_MODEL,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.config.SCORER_TEMPERATURE,
            "max_tokens": self.config.SCORER_MAX_TOKENS,
        }

    @staticmethod
    def build_prompt(request: ScoringRequest) -> str:
        return USER_PROMPT_TEMPLATE.format(
            question=request.question_text,
            reference=request.reference_or_placeholder,
            answer=request.answer_text,
            max_marks=request.max_marks
        )

    async def _post_chat(self, payload: Dict[str, Any]) -> str:
        """
        Send one chat completion request and return the message content.

        Raises:
            ScorerError: On a non-2xx status or a reply without text content
            aiohttp.ClientError: On transport failures
            asyncio.TimeoutError: When the request exceeds the configured timeout
        """
        session = await self._get_session()
        async with session.post(
            self.config.SCORER_API_URL, json=payload, headers=self._headers()
        ) as response:
            if response.status < 200 or response.status >= 300:
                body = await response.text()
                raise ScorerError(
                    f"Scorer returned HTTP {response.status}: {body[:200]}",
                    status=response.status
                )
            data = await response.json(content_type=None)

        content = data["choices"][0]["message"]["content"]
        if not content:
            raise ScorerError("No response content from scorer")
        if not isinstance(content, str):
            raise ScorerError("Scorer reply content is not text")
        return content

    async def score(self, request: ScoringRequest) -> ScoringResult:
        """Score a single answer. Never raises."""
        payload = self.build_payload(self.build_prompt(request))
        try:
            content = await self._post_chat(payload)
            if not isinstance(content, str):
                raise ScorerError("Scorer reply content is not text")
        except SCORING_ERRORS as e:
            logger.warning(f"AI scoring failed, using fallback: {e!r}")
            return ScoringResult.failed(e)

        parsed = parse_response(content, request.max_marks)
        logger.debug(f"Scorer reply parsed as {type(parsed).__name__} with {parsed.marks} marks")
        return ScoringResult(marks=parsed.marks, feedback=parsed.feedback, rationale=parsed.rationale)

    @log_execution_time(logger)
    async def score_batch(self, requests: Sequence[ScoringRequest]) -> List[ScoringResult]:
        """
        Score answers sequentially, in order.

        A failing item yields a fallback result and does not stop the batch.
        """
        results: List[ScoringResult] = []
        for index, request in enumerate(requests, start=1):
            result = await self.limiter.run(partial(self.score, request))
            results.append(result)
            logger.debug(f"Scored item {index}/{len(requests)}: {result.marks}/{request.max_marks}")
        return results

    async def check_connection(self) -> bool:
        """Send a greeting to the scorer and report whether it answered."""
        payload = self.build_payload("Hello, are you working? Reply briefly.", system_prompt="You are a helpful assistant.")
        try:
            content = await self._post_chat(payload)
        except SCORING_ERRORS as e:
            logger.error(f"Scorer at {self.config.SCORER_API_URL} is not reachable: {e!r}")
            return False
        logger.info(f"Scorer at {self.config.SCORER_API_URL} replied: {content[:100]}")
        return True

    async def close(self) -> None:
        """Close the HTTP session if this adapter created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
