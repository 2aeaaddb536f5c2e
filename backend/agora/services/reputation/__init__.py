# Reputation Services
#
# - rules: the fixed action → points table, level names, and which rules
#   fire for a newly created argument
# - service: the ledger (append transaction + update running total in one
#   commit), the guarded rating flow and concessions

from agora.services.reputation.rules import (
    RatingType,
    ReputationAction,
    ReputationRule,
    build_rule_table,
    reputation_level,
    rules_for_new_argument,
)
from agora.services.reputation.service import (
    ConcessionOutcome,
    ConcessionStatus,
    ProfileSummary,
    RatingOutcome,
    RatingStatus,
    ReputationService,
)

__all__ = [
    "RatingType",
    "ReputationAction",
    "ReputationRule",
    "build_rule_table",
    "reputation_level",
    "rules_for_new_argument",
    "ConcessionOutcome",
    "ConcessionStatus",
    "ProfileSummary",
    "RatingOutcome",
    "RatingStatus",
    "ReputationService",
]
