"""
Steel-Man Validator.

WHAT THIS DOES:
Judges whether a user's reformulation of an opposing argument is a fair
and strong rendering of it ("steel-manning"). An accepted reformulation
earns the steel_manning reputation award.

The model must answer with a structured verdict:
    {"accepted": true | false, "rationale": "..."}

Anything else (free text, missing or non-boolean "accepted", API errors)
fails closed as not accepted, so a garbled response never awards points.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from openai import AsyncOpenAI

from agora.config import get_settings

logger = logging.getLogger(__name__)

STEELMAN_SYSTEM_PROMPT = """Du bist ein Experte für faire Argumentation und Steel-Manning.
Bewerte, ob eine Neuformulierung eines Arguments dessen Kernaussage fair wiedergibt
und es in seiner stärksten Form darstellt. Verzerrungen, Abschwächungen oder
Strohmann-Versionen sind nicht akzeptabel.

AUSGABEFORMAT (JSON):
{
    "accepted": true | false,
    "rationale": "Kurze Begründung auf Deutsch"
}"""

VALIDATION_FAILED_RATIONALE = "Die Bewertung konnte nicht durchgeführt werden."


@dataclass(frozen=True)
class SteelManVerdict:
    accepted: bool
    rationale: str
    available: bool = True
    """False when the verdict is a fail-closed fallback, not a real judgment."""


def parse_verdict(payload: object) -> SteelManVerdict:
    """Parse the model's JSON verdict, failing closed on anything unexpected."""
    if not isinstance(payload, dict) or not isinstance(payload.get("accepted"), bool):
        logger.warning("Steel-man verdict missing a boolean 'accepted'; rejecting")
        return SteelManVerdict(
            accepted=False, rationale=VALIDATION_FAILED_RATIONALE, available=False
        )

    rationale = payload.get("rationale")
    return SteelManVerdict(
        accepted=payload["accepted"],
        rationale=rationale.strip() if isinstance(rationale, str) else "",
    )


class SteelManValidator:
    """Validates steel-man reformulations with the OpenAI chat API."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        settings = get_settings()
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self.model = model or settings.analysis_model

    async def validate(self, original_argument: str, reformulation: str) -> SteelManVerdict:
        user_prompt = f"""Originalargument:
"{original_argument}"

Neuformulierung:
"{reformulation}"

Stellt die Neuformulierung eine faire und starke Interpretation des Originalarguments dar?
Antworte als JSON."""

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": STEELMAN_SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
                temperature=0.3,
                max_tokens=300,
            )
            payload = json.loads(response.choices[0].message.content)
        except Exception as e:
            logger.error(f"Steel-man validation failed: {e}")
            return SteelManVerdict(
                accepted=False, rationale=VALIDATION_FAILED_RATIONALE, available=False
            )

        verdict = parse_verdict(payload)
        logger.info(f"Steel-man verdict: accepted={verdict.accepted}")
        return verdict
