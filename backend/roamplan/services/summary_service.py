# backend/roamplan/services/summary_service.py

from typing import Any, Dict

from openai import OpenAI, OpenAIError

from roamplan.core.config_loader import settings
from roamplan.core.logger import logger
from roamplan.models.itinerary_models import ItineraryIn


_client = None


def _get_client() -> OpenAI:
    global _client
    if _client is None:
        _client = OpenAI(api_key=settings.OPENAI_API_KEY)
    return _client


# ---------------------------------------------------------------------------
# GPT-mini: NATURAL LANGUAGE OUTPUT (itinerary summary)
# ---------------------------------------------------------------------------
def _gpt_mini(prompt: str) -> str:
    completion = _get_client().chat.completions.create(
        model=settings.gpt_model_mini,
        messages=[{"role": "user", "content": prompt}],
        temperature=0.7,
    )
    return completion.choices[0].message.content


def _template_summary(itinerary: ItineraryIn) -> str:
    activities = [a for d in itinerary.days for a in d.activities]
    nights = itinerary.trip_length - 1
    length = f"{itinerary.trip_length}-day" + (f", {nights}-night" if nights else "")

    text = f"A {length} {itinerary.budget_tier} trip to {itinerary.destination}"
    if itinerary.travelers > 1:
        text += f" for {itinerary.travelers} travelers"
    text += f", {itinerary.start_date.isoformat()} to {itinerary.end_date.isoformat()}."

    if activities:
        highlights = ", ".join(a.name for a in activities[:3])
        text += f" {len(activities)} planned activities, including {highlights}."
    else:
        text += " No activities planned yet."
    return text


def summarize_itinerary(itinerary: ItineraryIn) -> Dict[str, Any]:
    """
    Short marketing-style description of an itinerary.
    Falls back to a template when the LLM is not configured or fails.
    """
    if not settings.OPENAI_API_KEY:
        return {"summary": _template_summary(itinerary), "source": "template"}

    prompt = f"""
Write a short, appealing description of the travel itinerary below.
Use 3-5 sentences, concise and professional.

Itinerary:
{itinerary.model_dump_json(exclude={"budget_limit"})}
"""
    try:
        text = _gpt_mini(prompt)
    except OpenAIError as e:
        logger.warning(f"LLM summary failed, using template: {e}")
        return {"summary": _template_summary(itinerary), "source": "template"}

    if not text or not text.strip():
        return {"summary": _template_summary(itinerary), "source": "template"}
    return {"summary": text.strip(), "source": "llm"}
