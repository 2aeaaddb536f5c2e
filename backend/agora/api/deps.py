"""
Request dependencies shared by the API routes.

Identity: authentication happens upstream (auth gateway / BaaS). The
gateway forwards the authenticated user id in the X-User-Id header;
mutations without it, or with an id too long for the user id columns, are
rejected with 401.

Per-app singletons (rate limiter, analysis cache, AI clients) live on
app.state and are handed out here, so tests can swap them through
app.dependency_overrides.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from agora.config import Settings, get_settings
from agora.models.debate import USER_ID_LENGTH
from agora.services.quality.analyzer import ArgumentAnalyzer
from agora.services.quality.steelman import SteelManValidator
from agora.services.rate_limiter import RateLimiter
from agora.services.reputation.rules import RuleTable, build_rule_table


async def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Anmeldung erforderlich",
        )
    user_id = x_user_id.strip()
    # Must fit the user id columns
    if len(user_id) > USER_ID_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Ungültige Benutzerkennung",
        )
    return user_id


async def get_optional_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Identity for reads that personalise their answer; anonymous is fine."""
    if not x_user_id or not x_user_id.strip():
        return None
    return await get_current_user_id(x_user_id)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_argument_analyzer(request: Request) -> ArgumentAnalyzer:
    analyzer = getattr(request.app.state, "argument_analyzer", None)
    if analyzer is None:
        analyzer = ArgumentAnalyzer(cache=request.app.state.analysis_cache)
        request.app.state.argument_analyzer = analyzer
    return analyzer


def get_steelman_validator(request: Request) -> SteelManValidator:
    validator = getattr(request.app.state, "steelman_validator", None)
    if validator is None:
        validator = SteelManValidator()
        request.app.state.steelman_validator = validator
    return validator


def get_rule_table(settings: Settings = Depends(get_settings)) -> RuleTable:
    return build_rule_table(settings)
