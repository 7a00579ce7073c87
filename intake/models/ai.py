"""
Site Intake
Copy-generation bookkeeping.

Models:
    - GenerationLog: one row per gateway call with provider, model, tone,
      token counts, cost, latency and outcome. Only a short preview of the
      instruction is kept.
"""

from datetime import datetime, timezone

from intake.models import db

# USD per 1M tokens: (input, output)
PRICING = {
    "claude-sonnet-4-5-20250929": (3.00, 15.00),
    "claude-3-5-haiku-20241022": (1.00, 5.00),
    "gpt-4o": (2.50, 10.00),
    "gpt-4o-mini": (0.15, 0.60),
}

PREVIEW_CHARS = 200


def calculate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """USD cost of one call; unpriced models (Gemini free tier, local stub) cost nothing."""
    per_input, per_output = PRICING.get(model, (0.0, 0.0))
    return (prompt_tokens * per_input + completion_tokens * per_output) / 1_000_000


class GenerationLog(db.Model):
    __tablename__ = "ai_generation_logs"

    id = db.Column(db.Integer, primary_key=True)
    provider = db.Column(db.String(30), nullable=False, comment="anthropic / openai / gemini / local")
    model = db.Column(db.String(80), nullable=False)
    tone = db.Column(db.String(20), nullable=True)

    prompt_tokens = db.Column(db.Integer, default=0)
    completion_tokens = db.Column(db.Integer, default=0)
    cost_usd = db.Column(db.Float, default=0.0)
    latency_ms = db.Column(db.Integer, default=0)
    prompt_preview = db.Column(db.String(PREVIEW_CHARS), default="")

    success = db.Column(db.Boolean, default=True)
    error_message = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @classmethod
    def totals(cls) -> dict:
        """Call, failure, token and cost totals across every logged call."""
        calls, failures, prompt, completion, cost = db.session.query(
            db.func.count(cls.id),
            db.func.coalesce(db.func.sum(db.case((cls.success.is_(False), 1), else_=0)), 0),
            db.func.coalesce(db.func.sum(cls.prompt_tokens), 0),
            db.func.coalesce(db.func.sum(cls.completion_tokens), 0),
            db.func.coalesce(db.func.sum(cls.cost_usd), 0.0),
        ).one()
        return {
            "calls": calls,
            "failures": int(failures),
            "prompt_tokens": int(prompt),
            "completion_tokens": int(completion),
            "cost_usd": round(float(cost), 6),
        }

    def to_dict(self):
        return {
            "id": self.id,
            "provider": self.provider,
            "model": self.model,
            "tone": self.tone,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": (self.prompt_tokens or 0) + (self.completion_tokens or 0),
            "cost_usd": round(self.cost_usd or 0.0, 6),
            "latency_ms": self.latency_ms,
            "success": self.success,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        outcome = "ok" if self.success else "failed"
        return f"<GenerationLog {self.id} {self.provider}/{self.model} {outcome}>"
