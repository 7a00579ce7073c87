"""
Chat providers behind the LLM gateway.

Every provider takes OpenAI-style ``messages`` and returns::

    {"content": str, "prompt_tokens": int, "completion_tokens": int, "model": str}

The SDK-backed providers import their SDK on first use, so only the
extras that are actually configured need to be installed
(``pip install site-intake[anthropic]`` and friends).
"""

import os
from abc import ABC, abstractmethod


def _split_system(messages: list) -> tuple[str, list]:
    """Pull system messages out; Anthropic and Gemini take them separately."""
    system = [m["content"] for m in messages if m["role"] == "system"]
    rest = [m for m in messages if m["role"] != "system"]
    return "\n\n".join(system), rest


def _last_user_message(messages: list) -> str:
    for m in reversed(messages):
        if m["role"] == "user":
            return m["content"]
    return ""


class LLMProvider(ABC):
    """One chat-completion backend."""

    @abstractmethod
    def chat(self, messages: list, model: str, **kwargs) -> dict:
        ...


class _SDKProvider(LLMProvider):
    """Provider whose client is built lazily from an API key in the environment."""

    env_var = ""
    default_model = ""

    def __init__(self, api_key=None):
        self.api_key = api_key or os.getenv(self.env_var, "")
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = self._make_client()
        return self._client

    @abstractmethod
    def _make_client(self):
        ...

    @classmethod
    def configured(cls) -> bool:
        return bool(os.getenv(cls.env_var))


class AnthropicProvider(_SDKProvider):
    env_var = "ANTHROPIC_API_KEY"
    default_model = "claude-sonnet-4-5-20250929"

    def _make_client(self):
        import anthropic
        return anthropic.Anthropic(api_key=self.api_key)

    def chat(self, messages, model=None, **kwargs):
        model = model or self.default_model
        system, turns = _split_system(messages)
        params = {"model": model, "messages": turns, "max_tokens": kwargs.get("max_tokens", 1024)}
        if system:
            params["system"] = system
        if "temperature" in kwargs:
            params["temperature"] = kwargs["temperature"]

        response = self.client.messages.create(**params)
        text = "".join(block.text for block in response.content if getattr(block, "text", None))
        return {
            "content": text,
            "prompt_tokens": response.usage.input_tokens,
            "completion_tokens": response.usage.output_tokens,
            "model": model,
        }


class OpenAIProvider(_SDKProvider):
    env_var = "OPENAI_API_KEY"
    default_model = "gpt-4o-mini"

    def _make_client(self):
        import openai
        return openai.OpenAI(api_key=self.api_key)

    def chat(self, messages, model=None, **kwargs):
        model = model or self.default_model
        response = self.client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=kwargs.get("max_tokens", 1024),
            temperature=kwargs.get("temperature", 0.7),
        )
        usage = response.usage
        return {
            "content": response.choices[0].message.content or "",
            "prompt_tokens": usage.prompt_tokens if usage else 0,
            "completion_tokens": usage.completion_tokens if usage else 0,
            "model": model,
        }


class GeminiProvider(_SDKProvider):
    """Google Gemini; key from https://aistudio.google.com/apikey."""

    env_var = "GEMINI_API_KEY"
    default_model = "gemini-2.5-flash"

    def _make_client(self):
        from google import genai
        return genai.Client(api_key=self.api_key)

    def chat(self, messages, model=None, **kwargs):
        from google.genai import types

        model = model or self.default_model
        system, turns = _split_system(messages)
        contents = [
            types.Content(role="model" if m["role"] == "assistant" else "user",
                          parts=[types.Part(text=m["content"])])
            for m in turns
        ]
        config = types.GenerateContentConfig(
            temperature=kwargs.get("temperature", 0.7),
            max_output_tokens=kwargs.get("max_tokens", 1024),
            system_instruction=system or None,
        )
        response = self.client.models.generate_content(model=model, contents=contents, config=config)

        usage = response.usage_metadata
        return {
            "content": response.text or "",
            "prompt_tokens": getattr(usage, "prompt_token_count", 0) or 0,
            "completion_tokens": getattr(usage, "candidates_token_count", 0) or 0,
            "model": model,
        }


# Keyword in the instruction → canned copy; first match wins
STUB_REPLIES = (
    ("tagline", "1. Quality Work, Honest Prices\n2. Your Neighborhood Experts\n"
                "3. Done Right the First Time\n4. Local Pros You Can Trust\n"
                "5. Service That Shows Up"),
    ("subheadline", "Licensed, insured and trusted by your neighbors. "
                    "Call today for a free estimate."),
    ("headline", "Reliable Local Service, Done Right the First Time"),
    ("why choose us", "1. ✅ Licensed and insured\n2. ⏱️ On-time, every time\n"
                      "3. 💬 Upfront, honest pricing\n4. 🏠 Locally owned and operated"),
    ("call-to-action", "1. Get a Free Estimate\n2. Book Your Service\n3. Call Now"),
    ("service description", "Our team handles every job with care, from the first inspection "
                            "to the final walkthrough. You get clear pricing and work that lasts."),
)
STUB_DEFAULT = ("We are a locally owned business built on honest work and friendly service. "
                "Our customers count on us to show up on time and get the job done right.")


class LocalStubProvider(LLMProvider):
    """Deterministic copy for development and tests; needs no API key."""

    def chat(self, messages, model="local-stub", **kwargs):
        prompt = _last_user_message(messages)
        lower = prompt.lower()
        content = next((reply for key, reply in STUB_REPLIES if key in lower), STUB_DEFAULT)
        return {
            "content": content,
            "prompt_tokens": len(prompt.split()) * 2,
            "completion_tokens": len(content.split()) * 2,
            "model": "local-stub",
        }


SDK_PROVIDERS = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
}
