"""
ATS Scoring Client

OpenRouter exposes an OpenAI-compatible API, so we use the openai library
with a custom base_url.

- One call per request, plain-text output in a fixed layout
- Score and grade are pulled out of the text with regexes
- Input is truncated to keep the prompt bounded
"""

import logging
import re
from typing import Optional

from openai import OpenAI, OpenAIError

from placement.core.config import get_settings
from placement.core.errors import InternalError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

MIN_RESUME_CHARS = 50
MAX_RESUME_CHARS = 12000

SCORE_PATTERN = re.compile(r"ATS SCORE:\s*(\d+)", re.IGNORECASE)
GRADE_PATTERN = re.compile(r"GRADE:\s*([A-F][+]?)", re.IGNORECASE)

SYSTEM_PROMPT = """You are an ATS analyzer. Analyze the resume and provide ONLY the score, grade, and brief analysis. No markdown, no asterisks, plain text only.

OUTPUT FORMAT (EXACTLY AS SHOWN):

ATS SCORE: [0-100]

GRADE: [A+/A/B+/B/C+/C/D/F]

STRENGTHS:
1. [First strength]
2. [Second strength]
3. [Third strength]

CRITICAL ISSUES:
1. [First issue]
2. [Second issue]
3. [Third issue]

RECOMMENDATIONS:
1. [First recommendation]
2. [Second recommendation]
3. [Third recommendation]

KEYWORDS FOUND: [number]

MISSING KEYWORDS: [list 5-7 important keywords]

Be concise. No formatting. Plain text only."""


def parse_ats_response(analysis: str) -> dict:
    """Pull score and grade out of the model's text. Missing values become 0 / "N/A"."""
    score_match = SCORE_PATTERN.search(analysis or "")
    grade_match = GRADE_PATTERN.search(analysis or "")
    return {
        "score": int(score_match.group(1)) if score_match else 0,
        "grade": grade_match.group(1).upper() if grade_match else "N/A",
        "fullAnalysis": analysis,
    }


class ATSClient:
    """
    Wrapper for the ATS scoring model.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, model: Optional[str] = None):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.openrouter_api_key
        self.base_url = base_url or settings.openrouter_base_url
        self.model = model or settings.ats_model
        self._client: Optional[OpenAI] = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                default_headers={"X-Title": "Placement ATS Scorer"},
            )
        return self._client

    def _call_api(self, system_prompt: str, user_content: str, max_tokens: int = 1000) -> str:
        """
        Internal method to call the chat completions API.
        Returns raw text response.
        """
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            max_tokens=max_tokens,
            temperature=0.1,
        )
        return response.choices[0].message.content or "No analysis generated."

    def score_resume(self, resume_text: str) -> dict:
        """
        Score resume text for ATS compatibility.
        Returns {score, grade, fullAnalysis}.
        """
        if not resume_text or len(resume_text.strip()) < MIN_RESUME_CHARS:
            raise ValidationError(
                f"Please provide resume text with at least {MIN_RESUME_CHARS} characters",
                error="Resume text is required",
            )
        if not self.api_key:
            raise InternalError(
                "OPENROUTER_API_KEY environment variable is not set",
                error="API key not configured",
            )

        logger.info("Analyzing resume (%d chars)", len(resume_text))
        user_prompt = (
            "Analyze this resume quickly:\n\n"
            f"{resume_text[:MAX_RESUME_CHARS]}\n\n"
            "Provide analysis in the exact format specified. Be concise."
        )

        try:
            analysis = self._call_api(SYSTEM_PROMPT, user_prompt)
        except OpenAIError as e:
            logger.error("ATS scoring failed: %s", e)
            raise UpstreamError(str(e), error="Failed to analyze resume") from e

        return parse_ats_response(analysis)

    def test_connection(self) -> bool:
        """Test if the scoring API is reachable"""
        try:
            response = self._call_api(
                "You are a test assistant.",
                "Reply with exactly: OK",
                max_tokens=10,
            )
            return "OK" in response.upper()
        except OpenAIError as e:
            logger.warning("ATS connection failed: %s", e)
            return False


# Singleton instance
_ats_client: Optional[ATSClient] = None


def get_ats_client() -> ATSClient:
    """Get or create ATS client (singleton pattern)"""
    global _ats_client
    if _ats_client is None:
        _ats_client = ATSClient()
    return _ats_client
