"""
Site Intake
Copy Prompt Catalogue.

Every AI-assisted field on the intake form is described by a CopyPrompt:
which field receives the generated text, which field (if any) must be
filled in first, and how the instruction is built from the current form
snapshot. Generated text always lands in a field distinct from the
owner's own wording.

Usage:
    from intake.ai.prompts import FIELD_PROMPTS, SERVICE_PROMPT, system_prompt

    prompt = FIELD_PROMPTS["hero_headline"]
    if prompt.is_ready(form):
        text = generator.generate(prompt.build(form), tone=form.get("tone"))
"""

from intake.models.submission import DEFAULT_TONE

SYSTEM_PROMPT_TEMPLATE = (
    "You are a professional website copywriter specializing in local service businesses.\n"
    "You write compelling, benefit-focused copy that converts visitors into customers.\n"
    "Keep your tone {tone} and write for a local audience.\n"
    "Never use generic filler; every sentence should be specific and useful.\n"
    "Return only the requested copy, no preamble or explanation."
)


def system_prompt(tone: str | None = None) -> str:
    """Copywriter system prompt for the given tone (PROFESSIONAL when unset)."""
    return SYSTEM_PROMPT_TEMPLATE.format(tone=tone or DEFAULT_TONE)


class CopyPrompt:
    """One AI-assisted field.

    Args:
        target: field that receives the generated text.
        builder: callable(form) -> instruction string.
        source: field whose text the prompt rewrites, if any.
        source_threshold: the source must be longer than this many
            characters before generation is offered.
    """

    def __init__(self, target: str, builder, source: str | None = None, source_threshold: int = 0):
        self.target = target
        self.builder = builder
        self.source = source
        self.source_threshold = source_threshold

    def is_ready(self, record: dict) -> bool:
        if not self.source:
            return True
        return len(record.get(self.source) or "") > self.source_threshold

    def build(self, form: dict, record: dict | None = None) -> str:
        if record is None:
            return self.builder(form)
        return self.builder(form, record)

    def __repr__(self):
        return f"<CopyPrompt {self.target}>"


def _v(form, key, default=""):
    return form.get(key) or default


def _when(value, text):
    return text if value else ""


def _join(*parts):
    return " ".join(p for p in parts if p).strip()


# ── Builders ─────────────────────────────────────────────────────────────────


def _polished_description(form):
    return (
        "Polish this business description into a professional 2-3 paragraph About Us "
        f"section for a {_v(form, 'business_category', 'home services')} company called "
        f"\"{_v(form, 'business_name')}\": {_v(form, 'raw_description')}"
    )


def _tagline_options(form):
    return _join(
        f"Generate 5 short, punchy taglines for a {_v(form, 'business_category', 'home services')} "
        f"company called \"{_v(form, 'business_name')}\".",
        _when(form.get("raw_description"), f"About: {form.get('raw_description')}"),
        _when(form.get("city"), f"Located in {form.get('city')}, {_v(form, 'state')}."),
        "Return as a numbered list.",
    )


def _hero_headline(form):
    return _join(
        f"Write a compelling hero headline (max 10 words) for a {_v(form, 'business_category')} "
        f"company called \"{_v(form, 'business_name')}\" in {_v(form, 'city', 'Maryland')}.",
        _when(form.get("what_makes_different"),
              f"Key differentiator: {form.get('what_makes_different')}"),
    )


def _hero_subheadline(form):
    return (
        f"Write a hero subheadline (1-2 sentences) for \"{_v(form, 'business_name')}\", a "
        f"{_v(form, 'business_category')} company. Headline: \"{_v(form, 'hero_headline')}\". "
        "Include a call to action."
    )


def _about_us(form):
    return _join(
        "Write a warm, professional \"About Us\" section (2-3 paragraphs) for "
        f"\"{_v(form, 'business_name')}\", a {_v(form, 'business_category')} company in "
        f"{_v(form, 'city')}, {_v(form, 'state', 'MD')}.",
        _when(form.get("raw_description"), f"Owner description: {form.get('raw_description')}"),
        _when(form.get("year_established"), f"Established: {form.get('year_established')}"),
        _when(form.get("owner_names"), f"Owners: {form.get('owner_names')}"),
    )


def _why_choose_us(form):
    return _join(
        f"Write 4-6 \"Why Choose Us\" bullet points for \"{_v(form, 'business_name')}\", a "
        f"{_v(form, 'business_category')} company.",
        _when(form.get("what_makes_different"), f"Differentiators: {form.get('what_makes_different')}"),
        _when(form.get("license_number"), f"Licensed: {form.get('license_number')}"),
        _when(form.get("insurance_info"), f"Insurance: {form.get('insurance_info')}"),
        _when(form.get("warranties"), f"Warranty: {form.get('warranties')}"),
        _when(form.get("year_established"), f"Since: {form.get('year_established')}"),
        "Return as a numbered list with emoji bullets.",
    )


def _cta_text(form):
    return _join(
        f"Suggest 3 call-to-action button text options for a {_v(form, 'business_category')} "
        "company website.",
        _when(form.get("emergency_service"), "They offer 24/7 emergency service."),
        "Return as numbered list.",
    )


def _service_description(form, service):
    return (
        "Write a professional 2-3 sentence service description for a "
        f"{_v(form, 'business_category', 'home services')} company's "
        f"\"{_v(service, 'service_name')}\" service. Raw input from owner: "
        f"\"{_v(service, 'description')}\". Business name: \"{_v(form, 'business_name')}\". "
        "Make it customer-facing and benefit-focused."
    )


# ── Catalogue ────────────────────────────────────────────────────────────────

FIELD_PROMPTS = {
    p.target: p
    for p in (
        CopyPrompt("polished_description", _polished_description,
                   source="raw_description", source_threshold=20),
        CopyPrompt("ai_tagline_options", _tagline_options),
        CopyPrompt("hero_headline", _hero_headline),
        CopyPrompt("hero_subheadline", _hero_subheadline),
        CopyPrompt("about_us", _about_us),
        CopyPrompt("why_choose_us", _why_choose_us),
        CopyPrompt("cta_text", _cta_text),
    )
}

# Per-record prompt for the services collection: description → ai_description
SERVICE_PROMPT = CopyPrompt("ai_description", _service_description,
                            source="description", source_threshold=15)
