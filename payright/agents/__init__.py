"""AI agents package."""

from payright.agents.ai_agents import (
    AIFlowError,
    AIServiceError,
    AlternativesAgent,
    ChargeDetectionAgent,
    InputValidationError,
    RenewalAgent,
)

__all__ = [
    "AIFlowError",
    "AIServiceError",
    "AlternativesAgent",
    "ChargeDetectionAgent",
    "InputValidationError",
    "RenewalAgent",
]
