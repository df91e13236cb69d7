"""LLM client using LiteLLM for model abstraction."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from litellm import completion

from config import LlmConfig

logger = logging.getLogger(__name__)


class LLMClient:
    """Wrapper around LiteLLM for consistent LLM access."""

    def __init__(self, config: LlmConfig, api_key: Optional[str] = None):
        """Initialize the client from planner model settings."""
        self.config = config
        self.api_key = api_key
        self.model = self._normalize_model_name(config.model)

    def _normalize_model_name(self, model: str) -> str:
        """Normalize model name for LiteLLM compatibility.

        LiteLLM expects Anthropic models without the 'anthropic:' prefix.
        For example: 'claude-sonnet-4-20250514', not 'anthropic:claude-sonnet-4-20250514'.
        """
        if model.startswith("anthropic:"):
            return model[len("anthropic:") :]
        return model

    def _litellm_kwargs(self) -> Dict[str, Any]:
        """Build LiteLLM keyword arguments from settings."""
        extra: Dict[str, Any] = {}
        if self.config.base_url:
            extra["api_base"] = self.config.base_url
        if self.api_key and self._uses_anthropic():
            extra["api_key"] = self.api_key
        return extra

    def _uses_anthropic(self) -> bool:
        """Return True if the configured model is an Anthropic model."""
        model = (self.model or "").lower()
        return "claude" in model or "anthropic" in model

    def complete_sync(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.0,
        max_tokens: int = 4000,
        **kwargs,
    ) -> str:
        """Synchronous completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature
            max_tokens: Maximum response tokens
            **kwargs: Additional LiteLLM parameters

        Returns:
            Response text
        """
        logger.debug("LLM completion: model=%s messages=%s", self.model, len(messages))
        response = completion(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=self.config.timeout,
            **self._litellm_kwargs(),
            **kwargs,
        )
        return response.choices[0].message.content
