"""
LLM Narrator

Asks a chat model to explain the current step to a beginner. The chat
client is created on first use and owned by the narrator instance.
"""

import json
import logging
from typing import Any, Dict, Optional

import openai
from langchain_openai import ChatOpenAI

from flashsim.core.state import Step
from flashsim.narrative.base import AuthError, Narrator, NetworkError
from flashsim.narrative.config import NarrativeSettings


logger = logging.getLogger(__name__)

EMPTY_RESPONSE_TEXT = "Analysis unavailable."

STEP_GUIDANCE = {
    Step.IDLE: "Explain we are an attacker with almost no money looking for an opportunity.",
    Step.FLASH_LOAN: "Explain borrowing massive funds without collateral (Flash Loan).",
    Step.ORACLE_MANIPULATION: "Explain buying a huge amount of token to artificially pump the price on the DEX.",
    Step.DEPOSIT_COLLATERAL: "Explain depositing the pumped token into a Lending Protocol which trusts the DEX price.",
    Step.MAX_BORROW: "Explain borrowing stablecoins against the falsely inflated collateral value.",
    Step.REPAY_LOAN: "Explain repaying the flash loan and its fee.",
    Step.PROFIT: "Explain the net profit generated from nothing.",
}


def build_prompt(step: Step, context: Dict[str, Any]) -> str:
    """Prompt for one step; context must be JSON serializable."""
    step = Step(step)
    return (
        "You are a DeFi Security Expert explaining a Flash Loan Oracle Attack to a beginner.\n\n"
        f"Current Step: {step.display_name}\n"
        f"Context Data: {json.dumps(context, default=str)}\n\n"
        "Explain specifically what is happening in this step in 2-3 concise sentences.\n"
        "Focus on the flow of money and why this step is critical to the attack.\n"
        "Do not use complex jargon without simplifying it.\n\n"
        f"{STEP_GUIDANCE[step]}"
    )


class LLMNarrator(Narrator):
    """Narrator backed by an OpenAI-compatible chat model."""

    def __init__(
        self,
        settings: Optional[NarrativeSettings] = None,
        client: Optional[Any] = None,
    ):
        """
        Args:
            settings: Backend settings (read from the environment if omitted)
            client: Pre-built chat model exposing invoke(); mainly for tests
        """
        self.settings = settings or NarrativeSettings()
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.settings.is_configured:
                raise AuthError("FLASHSIM_API_KEY is not set")
            self._client = ChatOpenAI(
                model=self.settings.model,
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                temperature=self.settings.temperature,
                timeout=self.settings.timeout,
            )
        return self._client

    def explain(self, step: Step, context: Dict[str, Any]) -> str:
        prompt = build_prompt(step, context)
        client = self.client

        try:
            response = client.invoke(prompt)
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise AuthError(str(e)) from e
        except (openai.APIConnectionError, openai.RateLimitError, openai.APIStatusError) as e:
            raise NetworkError(str(e)) from e
        except openai.APIError as e:
            raise NetworkError(str(e)) from e
        except Exception as e:
            raise NetworkError(f"{type(e).__name__}: {e}") from e

        text = getattr(response, "content", response)
        if not isinstance(text, str) or not text.strip():
            logger.debug("Empty narrative response for step %s", Step(step).name)
            return EMPTY_RESPONSE_TEXT
        return text.strip()
