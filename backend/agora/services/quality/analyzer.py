"""
Argument Analyzer.

WHAT THIS DOES:
Asks the analysis model to rate one argument along four dimensions
(relevance, evidence, specificity, fallacy) in the context of its debate,
and returns a typed QualityAnalysis.

FAILURE MODE:
The analysis is an enrichment, not a precondition. Network errors, API
errors and unparseable output are logged and come back as
AnalysisUnavailable. Argument creation carries on without a score.

USAGE:
    analyzer = ArgumentAnalyzer(cache=TTLCache())
    outcome = await analyzer.analyze(
        argument_text="Ein Tempolimit senkt nachweislich die Unfallzahlen...",
        debate_context="Tempolimit auf Autobahnen: Sollte es eingeführt werden?",
    )
    if isinstance(outcome, QualityAnalysis):
        score = calculate_quality_score(outcome)
"""

import json
import logging
from typing import Optional

from openai import AsyncOpenAI

from agora.config import get_settings
from agora.services.cache import TTLCache
from agora.services.quality.analysis import (
    AnalysisOutcome,
    AnalysisUnavailable,
    parse_analysis,
)

logger = logging.getLogger(__name__)

# Shorter drafts don't carry enough content to judge
MIN_ANALYSIS_LENGTH = 20

ANALYSIS_SYSTEM_PROMPT = """Du bist ein Experte für logische Argumentation und bewertest Beiträge in einer strukturierten Online-Debatte.

Bewerte das Argument in vier Dimensionen:
1. Relevanz: Wie gut bezieht sich das Argument auf das Debattenthema? (Score 1-5)
2. Substantiierung: Werden Belege, Daten oder Quellen genannt? ("Vorhanden" oder "Nicht vorhanden")
3. Spezifität: Ist das Argument konkret oder bleibt es vage? ("Konkret" oder "Vage")
4. Fehlschluss: Enthält das Argument einen logischen Fehlschluss wie Ad-hominem, Strohmann,
   falsches Dilemma, Zirkelschluss oder hastige Verallgemeinerung? ("Keiner" oder der Name des Fehlschlusses)

Gib zu jeder Dimension eine kurze, neutrale Begründung auf Deutsch.

AUSGABEFORMAT (JSON):
{
    "relevanz": {"score": 1-5, "begruendung": "..."},
    "substantiierung": {"status": "Vorhanden" | "Nicht vorhanden", "begruendung": "..."},
    "spezifitaet": {"status": "Konkret" | "Vage", "begruendung": "..."},
    "fehlschluss": {"status": "Keiner" | "<Name des Fehlschlusses>", "begruendung": "..."}
}"""


class ArgumentAnalyzer:
    """
    Four-dimension argument analysis via the OpenAI chat API.

    Results are memoised per (text, context) in the injected cache, so
    repeated analysis of an unchanged draft costs nothing.
    """

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
    ):
        settings = get_settings()
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self.model = model or settings.analysis_model
        self.cache = cache

    async def analyze(self, argument_text: str, debate_context: str = "") -> AnalysisOutcome:
        """
        Analyze an argument within its debate context.

        Args:
            argument_text: The (sanitized) argument text
            debate_context: Debate title and description, "Titel: Beschreibung"

        Returns:
            QualityAnalysis, or AnalysisUnavailable if the model output
            could not be obtained or trusted
        """
        argument_text = (argument_text or "").strip()
        if len(argument_text) < MIN_ANALYSIS_LENGTH:
            return AnalysisUnavailable(
                error=f"Argument zu kurz für eine Analyse (min. {MIN_ANALYSIS_LENGTH} Zeichen)."
            )

        cache_key = (argument_text, debate_context)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Analysis cache hit")
                return cached

        user_prompt = f"""DEBATTENTHEMA:
{debate_context or "(kein Kontext angegeben)"}

ARGUMENT:
"{argument_text}"

Bewerte das Argument und antworte als JSON."""

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
                temperature=0.3,
                max_tokens=600,
            )
            payload = json.loads(response.choices[0].message.content)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse analysis response: {e}")
            return AnalysisUnavailable()
        except Exception as e:
            logger.error(f"Argument analysis failed: {e}")
            return AnalysisUnavailable()

        outcome = parse_analysis(payload)

        # Only cache real analyses; a failure should be retried next time
        if self.cache is not None and not isinstance(outcome, AnalysisUnavailable):
            self.cache.set(cache_key, outcome)

        return outcome


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

async def analyze_argument(argument_text: str, debate_context: str = "") -> AnalysisOutcome:
    """
    Convenience function for a one-off, uncached analysis.
    """
    analyzer = ArgumentAnalyzer()
    return await analyzer.analyze(argument_text, debate_context)
