"""AI 서비스 — 리뷰 제안, 요약, 감성 분석, AI 점수.

AI Service — Text generation for review assistance plus the weighted
performance score.

Every generation call tries OpenAI first and Gemini second; a provider
without an API key is skipped. Results are tagged dictionaries
(``{"success": True, ..., "provider": ...}`` or
``{"success": False, "error": ...}``) so callers decide how to surface a
failure. Nothing in this module raises on provider errors.
"""

import json
import logging
import math
import re
from datetime import datetime
from typing import Any

import httpx

from app.config import Settings, settings
from app.utils.exceptions import BadRequestError

logger = logging.getLogger(__name__)

# 가중치 — Component weights of the AI score (sum = 1.0)
SCORE_WEIGHTS: dict[str, float] = {
    "recent_feedback_score": 0.35,
    "okr_score": 0.25,
    "peer_feedback_score": 0.15,
    "manager_feedback_score": 0.15,
    "self_assessment_score": 0.05,
    "tenure_adjustment_score": 0.05,
}

MAX_INPUT_LENGTH: int = 1000

_POSITIVE_WORDS: tuple[str, ...] = (
    "good", "great", "excellent", "outstanding", "positive", "strong", "effective",
)
_NEGATIVE_WORDS: tuple[str, ...] = (
    "bad", "poor", "weak", "ineffective", "negative", "lacking", "needs improvement",
)

# 프롬프트 주입 / 범위 외 요청 패턴 — Prompt-injection and off-platform patterns.
# 단어 단위로 매칭 — matched on whole words, never across line breaks
_BLOCKED_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bignore\b.{0,20}\b(previous|above|earlier)\b.{0,20}\binstructions?\b",
        r"\bforget\s+(everything|all\s+(previous|prior|your)\b)",
        r"\byou\s+are\s+now\b",
        r"\bpretend\s+to\s+be\b",
        r"\bact\s+as\s+(if|an?)\b",
        r"\brole[\s-]?play\b",
        r"\bsystem\s+prompt\b",
        r"\boverride\s+(your|the\s+system)\b",
        r"\bbreak\s+character\b",
        r"\bnew\s+instructions\b",
        r"\bdeveloper\s+mode\b",
        r"\n\n(user|system|assistant):",
        r"<\|.+?\|>",
        r"```[^`]*\bsystem\b[^`]*```",
        r"\[/?INST\]",
        r"\btell\s+me\s+a\s+joke\b",
        r"\bwrite\s+(me\s+)?(a\s+|some\s+)?(code|program|script)\b",
    )
)

_RESPONSE_RE = re.compile(r"Response:\s*(.+?)(?=Rating:|$)", re.DOTALL)
_RATING_RE = re.compile(r"Rating:\s*(\d+)")
_LOOSE_RATING_RE = re.compile(r"(\d+)\s*/\s*10|(\d+)\s*out\s*of\s*10", re.IGNORECASE)


class ProviderError(Exception):
    """AI 공급자 호출 실패 — A single provider call failed."""


def validate_and_sanitize_input(text: str, max_length: int = MAX_INPUT_LENGTH) -> str:
    """AI 입력 검증 — 주입 패턴을 거부하고 길이를 제한합니다.

    Strip the input, reject prompt-injection attempts with 400 and cut it
    to ``max_length`` characters.
    """
    cleaned = (text or "").strip()
    for pattern in _BLOCKED_PATTERNS:
        if pattern.search(cleaned):
            raise BadRequestError(
                "Input rejected: please keep requests about performance reviews, "
                "OKRs, feedback or time tracking"
            )
    return cleaned[:max_length]


def calculate_ai_score(components: dict[str, float | None]) -> float:
    """AI 점수 계산 — 가중합, 소수점 둘째 자리 반올림.

    Weighted sum of the six score components. Missing components count as 0,
    each component is clamped to [0, 10] and the weights are not
    re-normalised.

    Example:
        calculate_ai_score({"recent_feedback_score": 10, "okr_score": 10,
                            "peer_feedback_score": 10, "manager_feedback_score": 10,
                            "self_assessment_score": 10, "tenure_adjustment_score": 2})
        → 9.6
    """
    total = 0.0
    for name, weight in SCORE_WEIGHTS.items():
        value = components.get(name) or 0.0
        total += min(max(float(value), 0.0), 10.0) * weight
    return round(total, 2)


def compute_tenure_adjustment(joined_at: datetime, now: datetime) -> float:
    """근속 보정 — ``min(floor(days/30)/12, 1) * 2``."""
    days = max((now - joined_at).days, 0)
    months = math.floor(days / 30)
    return min(months / 12, 1.0) * 2


def keyword_sentiment(text: str) -> dict[str, Any]:
    """키워드 기반 감성 분석 — Local fallback used when no provider answers."""
    lowered = text.lower()
    positive = sum(1 for word in _POSITIVE_WORDS if word in lowered)
    negative = sum(1 for word in _NEGATIVE_WORDS if word in lowered)
    sentiment = "neutral"
    if positive > negative:
        sentiment = "positive"
    elif negative > positive:
        sentiment = "negative"
    return {
        "success": True,
        "sentiment": sentiment,
        "quality_flags": _quality_flags(text, model_says_vague=False),
        "provider": "fallback",
    }


def _quality_flags(text: str, model_says_vague: bool) -> list[str]:
    flags: list[str] = []
    if model_says_vague or len(text) < 20:
        flags.append("vague_response")
    if len(text.split()) < 5:
        flags.append("too_short")
    return flags


class AIService:
    """AI 텍스트 생성 서비스.

    AI text-generation service with OpenAI → Gemini fallback.

    Attributes:
        config: 공급자 키와 모델 설정 (Settings carrying provider keys and models)
        client: 공유 httpx 클라이언트 (Shared async HTTP client, closed on shutdown)
    """

    def __init__(self, config: Settings = settings, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self.client = client or httpx.AsyncClient(timeout=config.AI_TIMEOUT_SECONDS)

    @property
    def configured_providers(self) -> list[str]:
        providers: list[str] = []
        if self.config.OPENAI_API_KEY:
            providers.append("openai")
        if self.config.GEMINI_API_KEY:
            providers.append("gemini")
        return providers

    async def close(self) -> None:
        await self.client.aclose()

    # --- 공급자 호출 (Provider calls) ---

    async def _call_openai(self, prompt: str, system: str, max_tokens: int, temperature: float) -> str:
        try:
            response = await self.client.post(
                f"{self.config.OPENAI_BASE_URL}/chat/completions",
                headers={"Authorization": f"Bearer {self.config.OPENAI_API_KEY}"},
                json={
                    "model": self.config.OPENAI_MODEL,
                    "messages": [
                        {"role": "system", "content": system},
                        {"role": "user", "content": prompt},
                    ],
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            )
            response.raise_for_status()
            return response.json()["choices"][0]["message"]["content"]
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as exc:
            raise ProviderError(f"openai: {exc}") from exc

    async def _call_gemini(self, prompt: str, system: str, max_tokens: int, temperature: float) -> str:
        try:
            response = await self.client.post(
                f"{self.config.GEMINI_BASE_URL}/models/{self.config.GEMINI_MODEL}:generateContent",
                params={"key": self.config.GEMINI_API_KEY},
                json={
                    "contents": [{"parts": [{"text": f"{system}\n\n{prompt}"}]}],
                    "generationConfig": {"maxOutputTokens": max_tokens, "temperature": temperature},
                },
            )
            response.raise_for_status()
            return response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as exc:
            raise ProviderError(f"gemini: {exc}") from exc

    async def _generate(
        self,
        prompt: str,
        system: str,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> dict[str, Any]:
        """공급자 순서대로 시도 — Try each configured provider in order."""
        calls = {"openai": self._call_openai, "gemini": self._call_gemini}
        errors: list[str] = []
        for provider in self.configured_providers:
            try:
                text = await calls[provider](prompt, system, max_tokens, temperature)
                return {"success": True, "text": text, "provider": provider}
            except ProviderError as exc:
                logger.warning("AI provider failed", extra={"provider": provider, "error": str(exc)})
                errors.append(str(exc))
        if not errors:
            logger.warning("No AI provider configured")
        return {"success": False, "error": "AI services temporarily unavailable"}

    # --- 공개 작업 (Public operations) ---

    async def generate_review_suggestion(
        self,
        review_data: dict[str, Any],
        reviewee_context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """리뷰 제안 생성 — Draft a review suggestion from reviewee context.

        Only ``review_data`` (caller input) goes through the input filter;
        ``reviewee_context`` is stored feedback and OKR text loaded by the
        server and is passed through unchanged.
        """
        validate_and_sanitize_input(json.dumps(review_data, default=str), max_length=4000)
        context = json.dumps({**review_data, **(reviewee_context or {})}, default=str)[:4000]
        result = await self._generate(
            f"Generate a professional review suggestion based on: {context}",
            "You are a helpful HR assistant generating performance review suggestions.",
        )
        if not result["success"]:
            return result
        return {"success": True, "suggestion": result["text"], "provider": result["provider"]}

    async def summarize_self_assessment(self, responses: list[dict[str, Any]]) -> dict[str, Any]:
        """자기 평가 요약 — Key themes, strengths, improvements and impact."""
        qa = "\n\n".join(
            f"Q: {validate_and_sanitize_input(str(item.get('question', '')))}\n"
            f"A: {validate_and_sanitize_input(str(item.get('response', '')))}"
            for item in responses
        )
        result = await self._generate(
            "Summarize this self-assessment:\n\n"
            f"{qa}\n\n"
            "Please provide:\n"
            "1. Key Themes (2-3 main points)\n"
            "2. Strengths (2-3 items)\n"
            "3. Areas for Improvement (2-3 items)\n"
            "4. Impact Statements (1-2 key achievements)",
            "You are an AI assistant that helps summarize self-assessments. "
            "Extract key themes, strengths, weaknesses, and impact statements.",
            max_tokens=400,
            temperature=0.5,
        )
        if not result["success"]:
            return {"success": False, "error": "AI summarization temporarily unavailable"}
        return {"success": True, "summary": result["text"], "provider": result["provider"]}

    async def generate_question_response(
        self,
        question: str,
        reviewee_name: str,
        requires_rating: bool = True,
        past_feedback: str | None = None,
        okr_progress: str | None = None,
        check_input: bool = True,
    ) -> dict[str, Any]:
        """질문별 답변 생성 — Answer one review question, optionally with a 1-10 rating."""
        if check_input:
            question = validate_and_sanitize_input(question)
        rating_line = "Rating: [number]" if requires_rating else ""
        prompt = (
            f"Answer this specific review question for {reviewee_name}:\n\n"
            f'Question: "{question}"\n'
            f"Requires Rating: {'Yes (1-10 scale)' if requires_rating else 'No'}\n\n"
            "Employee Context:\n"
            f"- Past Feedback: {past_feedback or 'No previous feedback available'}\n"
            f"- OKR Progress: {okr_progress or 'No OKR data available'}\n\n"
            "Format your response as:\n"
            f"Response: [your answer here]\n{rating_line}"
        )
        result = await self._generate(
            prompt,
            "You are a helpful HR assistant generating specific answers to performance "
            "review questions. Provide professional, constructive responses.",
            max_tokens=300,
        )
        if not result["success"]:
            return {"success": False, "error": "AI question response temporarily unavailable"}

        text: str = result["text"]
        match = _RESPONSE_RE.search(text)
        rating: int | None = None
        if requires_rating:
            rating_match = _RATING_RE.search(text) or _LOOSE_RATING_RE.search(text)
            if rating_match:
                digits = next(group for group in rating_match.groups() if group)
                rating = min(max(int(digits), 1), 10)
        return {
            "success": True,
            "response": match.group(1).strip() if match else text.strip(),
            "rating": rating,
            "provider": result["provider"],
        }

    async def analyze_sentiment(self, text: str) -> dict[str, Any]:
        """감성 분석 — positive / neutral / negative plus quality flags.

        Falls back to a keyword count when no provider answers, so the
        result is always successful.
        """
        text = (text or "").strip()[:2000]
        result = await self._generate(
            f'Analyze the sentiment and quality of this text: "{text}"',
            "You are a sentiment analysis AI. Reply with JSON only: "
            '{"sentiment": "positive|neutral|negative", "vague": true|false}. '
            "Set vague to true when the text is vague or ambiguous.",
            max_tokens=50,
            temperature=0.1,
        )
        if not result["success"]:
            return keyword_sentiment(text)

        raw: str = result["text"].strip().lower()
        sentiment = "neutral"
        vague = "vague" in raw and '"vague": false' not in raw
        try:
            parsed = json.loads(raw)
            sentiment = parsed.get("sentiment", "neutral")
            vague = bool(parsed.get("vague", False))
        except (json.JSONDecodeError, AttributeError):
            if "positive" in raw:
                sentiment = "positive"
            elif "negative" in raw:
                sentiment = "negative"
        if sentiment not in ("positive", "neutral", "negative"):
            sentiment = "neutral"
        return {
            "success": True,
            "sentiment": sentiment,
            "quality_flags": _quality_flags(text, model_says_vague=vague),
            "provider": result["provider"],
        }

    async def test_connection(self) -> dict[str, Any]:
        """공급자 연결 확인 — Probe every provider with a tiny request."""
        results: dict[str, Any] = {"openai": False, "gemini": False, "errors": {}}
        probes = {
            "openai": (self.config.OPENAI_API_KEY, self._call_openai),
            "gemini": (self.config.GEMINI_API_KEY, self._call_gemini),
        }
        for provider, (api_key, call) in probes.items():
            if not api_key:
                results["errors"][provider] = "API key not configured"
                continue
            try:
                await call("Test connection", "Reply with OK.", 5, 0.0)
                results[provider] = True
                logger.info("AI connection test succeeded", extra={"provider": provider})
            except ProviderError as exc:
                results["errors"][provider] = str(exc)
                logger.error("AI connection test failed", extra={"provider": provider, "error": str(exc)})
        return results
