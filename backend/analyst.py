"""Sentinel Backend — Gemini crime analyst.

Two best-effort calls to Gemini:
  - generate_crime_analysis: executive summary + recommendations for a set
    of region statistics
  - chat_with_data: conversational Q&A grounded in a compact JSON summary
    of the active statistics and a sample of incidents

Neither raises. A missing API key or any SDK/network failure is logged and
answered with a fixed message so the dashboard always has text to show.
"""

import json
import logging

import google.generativeai as genai

from config import GEMINI_API_KEY, GEMINI_MODEL
from models import (
    AnalysisResponse, ChatResponse, ChatTurn, CrimeIncident, Language, RegionStats,
)
from region_stats import format_stats_summary

logger = logging.getLogger("sentinel.analyst")

MISSING_KEY_MESSAGE = "API Key Configuration Missing. Please check your environment variables."
ANALYSIS_EMPTY_MESSAGE = "Analysis unavailable."
ANALYSIS_FALLBACK_MESSAGE = "AI Analysis service is temporarily unavailable."
CHAT_FALLBACK_MESSAGE = (
    "I'm having trouble connecting right now. Please try again in a moment, "
    "or call 102 for immediate police assistance."
)

CONTEXT_SAMPLE_SIZE = 20
MAX_HISTORY_TURNS = 10

_LANGUAGE_NAMES = {
    Language.UZ: "Uzbek",
    Language.RU: "Russian",
    Language.EN: "English",
}


def language_name(language: Language) -> str:
    return _LANGUAGE_NAMES.get(language, "English")


def build_context_summary(stats: list[RegionStats], crimes: list[CrimeIncident]) -> str:
    """Stats plus a small incident sample, kept short to stay well inside token limits."""
    return json.dumps({
        "stats": [s.model_dump(mode="json") for s in stats],
        "recentSample": [
            {"type": c.type.value, "district": c.district, "date": c.date}
            for c in crimes[:CONTEXT_SAMPLE_SIZE]
        ],
    }, ensure_ascii=False)


def build_analysis_prompt(stats: list[RegionStats], language: Language) -> str:
    return f"""As a Senior Crime Analyst for Uzbekistan, provide a brief executive summary and 3 actionable tactical recommendations based on this regional data:
{format_stats_summary(stats)}

Focus on resource allocation and predictive risks. Keep it concise (under 200 words).
IMPORTANT: Provide the response in {language_name(language)}."""


def build_system_instruction(context_summary: str, language: Language) -> str:
    return f"""You are 'Sentinel', an advanced AI Crime Analytics Assistant for Uzbekistan.
You have access to a dataset of crime statistics in JSON format.
Current Data Context: {context_summary}

Rules:
1. Answer specifically about the provided data.
2. Be professional, concise, and objective.
3. If asked about future trends, use the data to make a logical inference but state it is a prediction.
4. Do not make up crimes that are not in the context.
5. Always reply in {language_name(language)}."""


async def generate_crime_analysis(
    stats: list[RegionStats],
    crimes: list[CrimeIncident],
    language: Language = Language.UZ,
) -> AnalysisResponse:
    if not GEMINI_API_KEY:
        logger.error("Gemini API key missing")
        return AnalysisResponse(summary=MISSING_KEY_MESSAGE, error="no_api_key")

    try:
        genai.configure(api_key=GEMINI_API_KEY)
        model = genai.GenerativeModel(GEMINI_MODEL)

        result = model.generate_content(build_analysis_prompt(stats, language))
        text = (result.text or "").strip()
        logger.info(f"Gemini analysis for {len(stats)} regions ({len(crimes)} incidents in view)")
        return AnalysisResponse(summary=text or ANALYSIS_EMPTY_MESSAGE)

    except Exception as e:
        logger.warning(f"Gemini analysis error: {e}")
        return AnalysisResponse(summary=ANALYSIS_FALLBACK_MESSAGE, error="fallback")


async def chat_with_data(
    message: str,
    stats: list[RegionStats],
    crimes: list[CrimeIncident],
    history: list[ChatTurn] | None = None,
    language: Language = Language.UZ,
) -> ChatResponse:
    if not GEMINI_API_KEY:
        logger.error("Gemini API key missing")
        return ChatResponse(reply=MISSING_KEY_MESSAGE, error="no_api_key")

    try:
        genai.configure(api_key=GEMINI_API_KEY)
        model = genai.GenerativeModel(
            GEMINI_MODEL,
            system_instruction=build_system_instruction(build_context_summary(stats, crimes), language),
        )

        prior = [
            {"role": turn.role, "parts": [turn.text]}
            for turn in (history or [])[-MAX_HISTORY_TURNS:]
        ]
        chat = model.start_chat(history=prior)
        result = chat.send_message(message)
        return ChatResponse(reply=(result.text or "").strip(), error=None)

    except Exception as e:
        logger.warning(f"Gemini chat error: {e}")
        return ChatResponse(reply=CHAT_FALLBACK_MESSAGE, error="fallback")
