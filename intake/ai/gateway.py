"""
Site Intake
LLM Gateway: copy generation for the intake form.

The gateway picks a provider from the model name, retries with capped
backoff, records one GenerationLog row per call and collapses every
failure into GenerationError.

Usage:
    from intake.ai.gateway import LLMGateway
    gw = LLMGateway(app=flask_app)
    text = gw.generate("Write a hero headline for ...", tone="FRIENDLY")
"""

import logging
import os
import threading
import time

from flask import has_app_context
from sqlalchemy.exc import SQLAlchemyError

from intake.ai.prompts import system_prompt
from intake.ai.providers import SDK_PROVIDERS, LLMProvider, LocalStubProvider
from intake.core.exceptions import GenerationError
from intake.models import db
from intake.models.ai import PREVIEW_CHARS, GenerationLog, calculate_cost

logger = logging.getLogger(__name__)

__all__ = ["LLMGateway", "LLMProvider", "LocalStubProvider"]

# Model name prefix → provider; anything else is served by the local stub
MODEL_PREFIXES = (
    ("claude-", "anthropic"),
    ("gpt-", "openai"),
    ("gemini-", "gemini"),
)

MAX_BACKOFF_SECONDS = 4


def provider_for(model: str) -> str:
    return next((name for prefix, name in MODEL_PREFIXES if model.startswith(prefix)), "local")


def _default_providers() -> dict:
    providers = {"local": LocalStubProvider()}
    for name, cls in SDK_PROVIDERS.items():
        if cls.configured():
            providers[name] = cls()
    return providers


class LLMGateway:
    """
    Central entry point for copy generation.

    ``providers`` replaces the environment-derived registry (tests pass
    fakes here). With ``stub_fallback`` on, a model whose provider has no
    API key is answered by the local stub; with it off that is a
    GenerationError.
    """

    def __init__(self, app=None, *, model=None, max_tokens=1024, stub_fallback=True,
                 max_retries=1, providers=None):
        if app is not None:
            model = model or app.config.get("LLM_DEFAULT_CHAT_MODEL")
            max_tokens = app.config.get("AI_GENERATION_MAX_TOKENS", max_tokens)
            stub_fallback = app.config.get("AI_STUB_FALLBACK", stub_fallback)
        self.model = model or os.getenv("LLM_DEFAULT_CHAT_MODEL", "claude-sonnet-4-5-20250929")
        self.max_tokens = max_tokens
        self.stub_fallback = stub_fallback
        self.max_retries = max(1, max_retries)
        self._providers = dict(providers) if providers is not None else _default_providers()

    @property
    def available_providers(self) -> list[str]:
        return sorted(self._providers)

    def _resolve(self, model: str) -> tuple[LLMProvider, str]:
        name = provider_for(model)
        if name in self._providers:
            return self._providers[name], name
        if self.stub_fallback and "local" in self._providers:
            logger.warning("No '%s' provider configured; answering '%s' from the local stub",
                           name, model)
            return self._providers["local"], "local"
        logger.error("No '%s' provider configured for model '%s'", name, model)
        raise GenerationError()

    def generate(self, prompt: str, tone: str | None = None, *, model: str | None = None) -> str:
        """
        Produce copy for one instruction built from the form.

        Returns the non-empty generated text. Raises ValueError for a blank
        prompt and GenerationError for everything that goes wrong upstream.
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt is required")

        messages = [
            {"role": "system", "content": system_prompt(tone)},
            {"role": "user", "content": prompt},
        ]
        return self.chat(messages, model=model, tone=tone)["content"]

    def chat(self, messages: list, model: str | None = None, *, tone: str | None = None,
             **kwargs) -> dict:
        """
        Run one completion through the resolved provider.

        The returned dict is the provider's, plus cost_usd, latency_ms and
        provider.
        """
        model = model or self.model
        kwargs.setdefault("max_tokens", self.max_tokens)
        provider, provider_name = self._resolve(model)
        log = {
            "provider": provider_name,
            "model": model,
            "tone": tone,
            "prompt_preview": messages[-1]["content"][:PREVIEW_CHARS] if messages else "",
        }

        error = None
        for attempt in range(1, self.max_retries + 1):
            started = time.monotonic()
            try:
                result = provider.chat(messages, model, **kwargs)
                if not (result.get("content") or "").strip():
                    raise ValueError("empty completion")
            except Exception as exc:  # provider SDKs raise their own hierarchies
                error = exc
                logger.warning("Generation attempt %d/%d failed: %s",
                               attempt, self.max_retries, type(exc).__name__)
                if attempt < self.max_retries:
                    threading.Event().wait(min(2 ** (attempt - 1), MAX_BACKOFF_SECONDS))
                continue

            latency_ms = int((time.monotonic() - started) * 1000)
            cost = calculate_cost(model, result["prompt_tokens"], result["completion_tokens"])
            result.update(cost_usd=cost, latency_ms=latency_ms, provider=provider_name)
            self._record(**log, model_used=result.get("model", model), success=True,
                         prompt_tokens=result["prompt_tokens"],
                         completion_tokens=result["completion_tokens"],
                         cost_usd=cost, latency_ms=latency_ms)
            return result

        self._record(**log, model_used=model, success=False, error_message=str(error))
        raise GenerationError() from error

    @staticmethod
    def _record(*, model_used, **fields):
        """Write the GenerationLog row; skipped outside an app context."""
        if not has_app_context():
            return
        fields["model"] = model_used
        try:
            db.session.add(GenerationLog(**fields))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error("Failed to record generation: %s", exc)
