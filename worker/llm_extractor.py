"""OpenAI adapter for contract field analysis.

Sends document text to the Chat Completions API with a JSON schema response
format and validates the reply into an AnalysisExtraction.
"""

import json
import os
from typing import Optional

from openai import (
    APIConnectionError,
    APITimeoutError,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    OpenAI,
    RateLimitError,
)
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.schemas.domain import AnalysisExtraction, parse_iso_date

LLM_MODEL = os.environ.get("LLM_MODEL", os.environ.get("MODEL_NAME", "gpt-4o-mini"))
LLM_MAX_CHARS = int(os.environ.get("LLM_MAX_CHARS", "15000"))
LLM_TEMPERATURE = float(os.environ.get("LLM_TEMPERATURE", "0.1"))
LLM_TIMEOUT_S = int(os.environ.get("LLM_TIMEOUT_S", "60"))
LLM_MAX_RETRIES = int(os.environ.get("LLM_MAX_RETRIES", "3"))

RETRYABLE_ERRORS = (
    RateLimitError,
    APIConnectionError,
    APITimeoutError,
    InternalServerError,
)

SYSTEM_PROMPT = """You are an expert contract analyst. From the contract text, extract:

1. vendor: the vendor or counterparty name
2. contract_title: the contract title or subject
3. doc_type: the document type, one of MSA, SOW, NDA, SLA, SERVICE_AGREEMENT,
   SUBSCRIPTION_AGREEMENT, LPA, SIDE_LETTER, AMENDMENT, PURCHASE_ORDER, LEASE,
   LICENSE, CONSULTING, EMPLOYMENT, OTHER
4. effective_date: the effective date (YYYY-MM-DD)
5. termination_date: the termination or expiry date (YYYY-MM-DD)

For each field give a confidence between 0 and 1 in the "confidence" object.
If a field cannot be determined, return null for it with confidence 0.1.
Do not guess dates that are not stated or derivable from the text."""


class LLMAnalyzeError(RuntimeError):
    """Raised when the AI analysis fails."""


_client: Optional[OpenAI] = None


def _get_client() -> OpenAI:
    global _client
    if _client is None:
        _client = OpenAI(timeout=LLM_TIMEOUT_S)
    return _client


def _truncate_text(text: str, max_chars: int) -> str:
    """Cut text to max_chars, ending on a sentence boundary when one is close."""
    if len(text) <= max_chars:
        return text

    truncated = text[:max_chars]
    last_period = truncated.rfind(".")
    if last_period > max_chars * 0.8:
        truncated = truncated[: last_period + 1]
    return truncated + "\n[content truncated]"


def _make_retry_decorator():
    return retry(
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        stop=stop_after_attempt(LLM_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        reraise=True,
    )


def _call_openai(client: OpenAI, text: str, document_title: str) -> AnalysisExtraction:
    response = client.chat.completions.create(
        model=LLM_MODEL,
        temperature=LLM_TEMPERATURE,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"Document title: {document_title}\n\nDocument content:\n{text}",
            },
        ],
        response_format={
            "type": "json_schema",
            "json_schema": {
                "name": "contract_analysis",
                "schema": AnalysisExtraction.model_json_schema(),
            },
        },
    )

    content = response.choices[0].message.content
    if not content:
        raise LLMAnalyzeError("Empty response from LLM")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise LLMAnalyzeError(f"Invalid JSON response: {e}")

    try:
        extraction = AnalysisExtraction.model_validate(data)
    except ValidationError as e:
        raise LLMAnalyzeError(f"Response did not match schema: {e.error_count()} errors")

    # Drop dates the model didn't return in ISO form
    for field in ("effective_date", "termination_date"):
        value = getattr(extraction, field)
        if value and parse_iso_date(value) is None:
            setattr(extraction, field, None)
            setattr(extraction.confidence, field, 0.1)
    return extraction


def analyze_contract_text(
    text: str,
    *,
    document_title: str = "",
    client: Optional[OpenAI] = None,
) -> AnalysisExtraction:
    """Run AI field extraction over contract text.

    Raises:
        LLMAnalyzeError: On any failure (API, validation, exhausted retries).
    """
    if not text or not text.strip():
        raise LLMAnalyzeError("Empty text provided")

    actual_client = client if client is not None else _get_client()
    truncated_text = _truncate_text(text, LLM_MAX_CHARS)
    retryable_call = _make_retry_decorator()(_call_openai)

    try:
        return retryable_call(actual_client, truncated_text, document_title)
    except LLMAnalyzeError:
        raise
    except RETRYABLE_ERRORS as e:
        raise LLMAnalyzeError(f"API error after {LLM_MAX_RETRIES} retries: {e}")
    except (AuthenticationError, BadRequestError) as e:
        raise LLMAnalyzeError(f"Non-retryable API error: {e}")
    except Exception as e:
        raise LLMAnalyzeError(f"Unexpected error: {e}")
