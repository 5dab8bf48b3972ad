"""
AI Agents for PayRight

DESIGN DECISION: Each AI feature is one fixed prompt template sent to
Gemini, whose JSON reply is validated against a pydantic schema.
There is no tool calling and no multi-turn conversation.

CRITICAL BOUNDARIES:

1. CHARGE DETECTION AGENT:
   - CAN: Read bank or email text and list the recurring charges in it
   - CAN: Estimate next due dates and a mock usage count
   - CANNOT: Persist anything; the caller merges the result into storage

2. ALTERNATIVES AGENT:
   - CAN: Suggest cheaper or free alternatives with its reasoning
   - CANNOT: Change the subscription it was asked about

3. RENEWAL AGENT:
   - CAN: Predict the next renewal date with a confidence score
   - CANNOT: Update the stored due date on its own

FAILURE MODE: an empty reply, a reply that is not JSON, or JSON that does
not match the schema raises AIFlowError. Nothing is retried and nothing
falls back to a guess; the error message goes back to the user as-is.
"""

import json
from decimal import Decimal
from typing import Any, Optional, Union

import google.generativeai as genai
import structlog
from pydantic import BaseModel, ValidationError

from payright.config import get_settings
from payright.models.subscription import (
    AlternativeSuggestion,
    DetectedCharge,
    RenewalPrediction,
    SubscriptionCategory,
)
from payright.validation import SubscriptionValidator


logger = structlog.get_logger(__name__)


class AIFlowError(Exception):
    """The model call failed or its reply could not be used."""

    def __init__(self, flow: str, message: str):
        self.flow = flow
        self.message = message
        super().__init__(message)


class AIServiceError(AIFlowError):
    """The model service itself could not be reached or refused the request."""
    pass


class InputValidationError(Exception):
    """The request was rejected before the model was called."""

    def __init__(self, messages: list[str]):
        self.messages = messages
        super().__init__(", ".join(messages))


# =============================================================================
# PROMPT TEMPLATES
# =============================================================================

_CHARGE_FIELDS = """- vendor: The name of the subscription vendor (e.g., Netflix, Spotify, AWS).
- amount: The recurring charge amount."""

BANK_DATA_PROMPT = """You are an expert financial analyst. Analyze the following bank transaction data and identify any recurring subscription payments.
For each detected subscription, return a JSON array of objects, where each object contains:
""" + _CHARGE_FIELDS + """
- frequency: The frequency of the charge (e.g., monthly, yearly).
- last_payment_date: The date of the last recorded payment for this subscription from the provided data (format YYYY-MM-DD). If multiple payments for the same vendor, use the latest one.
- next_due_date: Estimate the next due date based on the last_payment_date and frequency (format YYYY-MM-DD).
- usage_count: (Optional) Provide a mock or simulated usage count for this subscription. If the subscription appears unused or based on hints in the data (like "UnusedGym"), set this to 0. Otherwise, provide a small positive integer (e.g., 1 to 5).

Flag subscriptions that may be unused or underutilized by setting usage_count to 0.

Respond with ONLY the JSON array.

Bank Data:
{bank_data}
"""

EMAIL_PROMPT = """You are an expert financial analyst. Analyze the following email content (which might contain multiple emails separated by '---' or similar) and identify any recurring subscription payments, sign-up confirmations, or billing statements.
For each detected subscription, extract or infer the following:
""" + _CHARGE_FIELDS + """ If multiple amounts are mentioned for the same service (e.g., an old price and a new price), prefer the most recent or current price.
- frequency: The frequency of the charge (e.g., monthly, yearly). Infer if not explicitly stated (e.g., "billed every month" means monthly).
- last_payment_date: The date of the last recorded payment from the email content (format YYYY-MM-DD). If it's a sign-up confirmation, this might be the sign-up date or first payment date.
- next_due_date: Estimate the next due date based on the last_payment_date and frequency (format YYYY-MM-DD). If it's a sign-up confirmation and a trial period is mentioned, estimate the first payment date after the trial.
- usage_count: (Optional) Provide a mock or simulated usage count. Default to a small positive integer (e.g., 1 to 3) unless the email suggests non-usage.
- category: Classify the subscription into one of the following categories: {categories}. If unsure or it doesn't fit well, use "Other".

Return a JSON array of objects. Respond with ONLY the JSON array.

Email Content:
{email_content}
"""

ALTERNATIVES_PROMPT = """You are a personal finance advisor. A user has a subscription to "{subscription_name}" that currently costs {current_cost}.
Based on common uses for "{subscription_name}", please suggest some free or cheaper alternatives.{user_needs_line}
For each alternative, explain your reasoning. This reasoning should include the primary use case(s) you assumed for the original subscription when making your suggestions.

Respond with ONLY a JSON object in this exact format:
{{"alternatives": ["alternative one", "alternative two"], "reasoning": "explanation"}}"""

RENEWAL_PROMPT = """You are a subscription renewal date prediction expert.

Given the subscription name, last payment date, and billing cycle, predict the next renewal date.
Also, provide a confidence score (0-1) for your prediction.

Subscription Name: {subscription_name}
Last Payment Date: {last_payment_date}
Billing Cycle: {billing_cycle}

Respond with ONLY a JSON object in this exact format:
{{"predictedRenewalDate": "YYYY-MM-DD", "confidence": 0.9}}"""


# =============================================================================
# SHARED PLUMBING
# =============================================================================

class _GeminiAgent:
    """
    Base for the prompt agents: model setup, the call, and JSON parsing.

    A model can be injected (anything with an async generate_content_async
    returning an object with .text); otherwise one is built from settings.
    """

    flow_name = "ai_flow"

    def __init__(
        self,
        model: Optional[Any] = None,
        validator: Optional[SubscriptionValidator] = None,
    ):
        if model is None:
            model = self._configure_genai()
        self._model = model
        self._validator = validator or SubscriptionValidator()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        settings = get_settings().gemini
        genai.configure(api_key=settings.api_key)
        return genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,
                "max_output_tokens": settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    async def _generate(self, prompt: str) -> str:
        try:
            response = await self._model.generate_content_async(prompt)
            text = response.text
        except Exception as e:
            logger.error("gemini_request_failed", flow=self.flow_name, error=str(e))
            raise AIServiceError(self.flow_name, f"AI request failed: {e}")

        if not text or not text.strip():
            raise AIFlowError(self.flow_name, "AI returned an empty response.")
        return text.strip()

    def _extract_json(self, text: str, opener: str, closer: str) -> Any:
        # Models sometimes wrap JSON in prose or code fences
        start = text.find(opener)
        end = text.rfind(closer) + 1
        if start < 0 or end <= start:
            raise AIFlowError(self.flow_name, "AI response did not contain valid JSON.")
        try:
            return json.loads(text[start:end])
        except json.JSONDecodeError:
            raise AIFlowError(self.flow_name, "AI response did not contain valid JSON.")

    def _parse_object(self, text: str, schema: type[BaseModel]) -> Any:
        data = self._extract_json(text, "{", "}")
        try:
            return schema.model_validate(data)
        except ValidationError as e:
            raise AIFlowError(
                self.flow_name,
                f"AI response did not match the expected format: {e.error_count()} invalid field(s).",
            )

    @staticmethod
    def _raise_if_invalid(result) -> None:
        if result.has_errors:
            raise InputValidationError(result.error_messages)


# =============================================================================
# AGENTS
# =============================================================================

class ChargeDetectionAgent(_GeminiAgent):
    """
    Finds recurring charges in free text.

    Two entry points, one per source: a pasted bank statement, or the
    body of one or more emails.
    """

    flow_name = "detect_charges"

    async def detect_from_bank_data(self, bank_data: str) -> list[DetectedCharge]:
        """
        Detect recurring charges in bank transaction text.

        Raises:
            InputValidationError: bank data too short
            AIFlowError: unusable model reply
        """
        self._raise_if_invalid(self._validator.validate_bank_data(bank_data))
        prompt = BANK_DATA_PROMPT.format(bank_data=bank_data)
        return self._parse_charges(await self._generate(prompt))

    async def detect_from_email(self, email_content: str) -> list[DetectedCharge]:
        """Detect subscriptions in email text (receipts, sign-ups, statements)."""
        self._raise_if_invalid(self._validator.validate_email_content(email_content))
        prompt = EMAIL_PROMPT.format(
            categories=", ".join(c.value for c in SubscriptionCategory),
            email_content=email_content,
        )
        return self._parse_charges(await self._generate(prompt))

    def _parse_charges(self, text: str) -> list[DetectedCharge]:
        data = self._extract_json(text, "[", "]")
        if not isinstance(data, list):
            raise AIFlowError(self.flow_name, "AI response was not a list of charges.")

        try:
            charges = [DetectedCharge.model_validate(item) for item in data]
        except ValidationError as e:
            raise AIFlowError(
                self.flow_name,
                f"AI response did not match the expected format: {e.error_count()} invalid field(s).",
            )

        logger.info("charges_parsed", flow=self.flow_name, count=len(charges))
        return charges


class AlternativesAgent(_GeminiAgent):
    """Suggests free or cheaper alternatives to a subscription."""

    flow_name = "suggest_alternatives"

    async def suggest_alternatives(
        self,
        subscription_name: str,
        current_cost: Union[Decimal, float],
        user_needs: Optional[str] = None,
    ) -> AlternativeSuggestion:
        self._raise_if_invalid(
            self._validator.validate_alternatives_request(subscription_name, current_cost)
        )

        user_needs_line = ""
        if user_needs and user_needs.strip():
            user_needs_line = f"\nThe user describes their needs as: {user_needs.strip()}"

        prompt = ALTERNATIVES_PROMPT.format(
            subscription_name=subscription_name,
            current_cost=current_cost,
            user_needs_line=user_needs_line,
        )
        return self._parse_object(await self._generate(prompt), AlternativeSuggestion)


class RenewalAgent(_GeminiAgent):
    """Predicts the next renewal date of a subscription."""

    flow_name = "predict_renewal"

    async def predict_renewal(
        self,
        subscription_name: str,
        last_payment_date: str,
        billing_cycle: str,
    ) -> RenewalPrediction:
        self._raise_if_invalid(
            self._validator.validate_renewal_request(
                subscription_name, last_payment_date, billing_cycle
            )
        )
        prompt = RENEWAL_PROMPT.format(
            subscription_name=subscription_name,
            last_payment_date=last_payment_date,
            billing_cycle=billing_cycle,
        )
        return self._parse_object(await self._generate(prompt), RenewalPrediction)
