"""
Site Intake
AI module — website copy generation.

Submodules:
    - gateway: LLM Gateway (provider routing, retry, cost tracking)
    - providers: Anthropic, OpenAI, Gemini and local-stub chat backends
    - prompts: copywriter system prompt + per-field prompt catalogue
"""
