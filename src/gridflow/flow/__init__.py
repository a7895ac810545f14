from .drives import DriveSummary, DriveTracker
from .orchestrator import PENALTY_CHOICE, GameFlow, build_resolver
from .policy import DefaultPolicy, FieldGoalModel, NFL2025Policy, policy_context
from .special_teams import SpecialTeamsFlow

__all__ = [
    "DefaultPolicy",
    "DriveSummary",
    "DriveTracker",
    "FieldGoalModel",
    "GameFlow",
    "NFL2025Policy",
    "PENALTY_CHOICE",
    "SpecialTeamsFlow",
    "build_resolver",
    "policy_context",
]
