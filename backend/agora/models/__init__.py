# Database models
# API schemas live in agora.models.schemas (imported directly; they depend
# on service enums, which in turn depend on these models)
from agora.models.debate import (
    Argument,
    Debate,
    Rating,
    ReputationTransaction,
    UserProfile,
)

__all__ = [
    "Argument",
    "Debate",
    "Rating",
    "ReputationTransaction",
    "UserProfile",
]
