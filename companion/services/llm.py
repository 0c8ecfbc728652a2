# companion/services/llm.py
from __future__ import annotations

from typing import Any, Optional

import httpx

from companion.core.config import settings
from companion.core.logging import get_logger

logger = get_logger(__name__)

AI_ERROR_MESSAGE = "Error communicating with AI service."
MISSING_KEY_SUMMARY = "API Key missing. Cannot generate summary."
MISSING_KEY = "API Key missing."


def _openai_base_url() -> str:
    """
    Allow overriding the base URL (useful for proxies/self-hosted gateways).
    """
    return (settings.OPENAI_BASE_URL or "https://api.openai.com").rstrip("/")


def _first_choice_text(data: dict[str, Any]) -> str:
    return ((data.get("choices") or [{}])[0].get("message", {}).get("content") or "").strip()


# ---------- Core call ----------

async def generate(
    prompt: str,
    *,
    missing_key_message: str = MISSING_KEY,
    empty_message: str = "",
    api_key: Optional[str] = None,
) -> str:
    """
    One non-streaming chat completion. Never raises: a missing key, any
    transport/HTTP error and any malformed body all come back as text.
    """
    api_key = api_key or settings.OPENAI_API_KEY
    if not api_key:
        return missing_key_message

    payload = {
        "model": settings.OPENAI_MODEL or "gpt-4o-mini",
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": int(settings.RESPONSE_MAX_TOKENS),
    }
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    try:
        async with httpx.AsyncClient(base_url=_openai_base_url(), timeout=30.0) as client:
            resp = await client.post("/v1/chat/completions", headers=headers, json=payload)
            resp.raise_for_status()
            text = _first_choice_text(resp.json())
    except (httpx.HTTPError, ValueError, AttributeError, IndexError, TypeError) as e:
        logger.error("llm_request_failed", error=str(e), error_type=type(e).__name__)
        return AI_ERROR_MESSAGE

    return text or empty_message


# ---------- Prompt helpers ----------

async def generate_clinical_summary(raw_notes: str, patient_name: str) -> str:
    prompt = (
        "You are an assistant to a psychologist.\n"
        f'Please rewrite the following raw session notes for patient "{patient_name}" '
        "into a concise, professional clinical summary.\n"
        "Maintain a neutral, non-diagnostic tone. Focus on observations and reported feelings.\n\n"
        "Raw Notes:\n"
        f"{raw_notes}"
    )
    return await generate(
        prompt,
        missing_key_message=MISSING_KEY_SUMMARY,
        empty_message="Could not generate summary.",
    )


async def generate_reminder_email(patient_name: str, date: str, time: str) -> str:
    prompt = (
        "Draft a short, warm, and professional email reminder for a therapy session.\n"
        f"Patient: {patient_name}\n"
        f"Date: {date}\n"
        f"Time: {time}\n\n"
        "The tone should be supportive but professional. Do not include subject lines, just the body."
    )
    return await generate(prompt, empty_message="Could not generate email draft.")


async def suggest_therapeutic_questions(context: str) -> str:
    prompt = (
        "Based on the following context, suggest 3 open-ended, non-intrusive questions "
        "a therapist might ask to facilitate reflection.\n"
        f"Context: {context}\n\n"
        "Format as a bulleted list."
    )
    return await generate(prompt, empty_message="Could not generate suggestions.")
