"""
Site Intake
Submission domain models.

Models:
    - Submission:    one client's intake record (scalar fields + lifecycle state)
    - ServiceItem:   ordered services offered (step 4)
    - Testimonial:   ordered customer testimonials (step 8)
    - BusinessHour:  ordered opening hours, one row per weekday (step 9)
    - BuildLog:      operator-triggered site build attempts

Architecture:
    Submission ──1:N──▶ ServiceItem
    Submission ──1:N──▶ Testimonial
    Submission ──1:N──▶ BusinessHour
    Submission ──1:N──▶ BuildLog

Lifecycle states:
    Submission: draft → submitted → in_review → building → ready_for_qc
                → client_preview → approved → published  |  * → archived

Child collections are never edited row-by-row: each flush replaces the
whole collection for a submission and re-derives sort_order from the
client's buffer position.
"""

import secrets
from datetime import datetime, timezone

from intake.models import db


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


def generate_access_token() -> str:
    """Unguessable, URL-safe capability token for the resumable client link."""
    return secrets.token_urlsafe(24)


# ── Constants ────────────────────────────────────────────────────────────────

SUBMISSION_STATUSES = (
    "draft", "submitted", "in_review", "building", "ready_for_qc",
    "client_preview", "approved", "published", "archived",
)

# Forward flow offered to operators as quick actions (draft is entry-only)
STATUS_FLOW = (
    "submitted", "in_review", "building", "ready_for_qc",
    "client_preview", "approved", "published",
)

TERMINAL_STATUSES = frozenset({"published", "archived"})

STATUS_LABELS = {
    "draft": "Draft",
    "submitted": "Submitted",
    "in_review": "In Review",
    "building": "Building",
    "ready_for_qc": "Ready for QC",
    "client_preview": "Client Preview",
    "approved": "Approved",
    "published": "Published",
    "archived": "Archived",
}

# Strict-policy edges: linear forward flow, archival from any non-terminal state
STATUS_TRANSITIONS = {
    "draft":          ["submitted", "archived"],
    "submitted":      ["in_review", "archived"],
    "in_review":      ["building", "archived"],
    "building":       ["ready_for_qc", "archived"],
    "ready_for_qc":   ["client_preview", "archived"],
    "client_preview": ["approved", "archived"],
    "approved":       ["published", "archived"],
    "published":      [],
    "archived":       [],
}

VERTICALS = {
    "home_services": "Home Services",
    "healthcare": "Healthcare",
    "professional_services": "Professional Services",
    "retail": "Retail",
    "restaurant_hospitality": "Restaurant & Hospitality",
}
# Only home services has a form today; the rest are listed as "coming soon"
OPEN_VERTICALS = frozenset({"home_services"})

HOME_SERVICE_CATEGORIES = (
    "Plumbing", "HVAC", "Electrical", "Roofing", "Landscaping",
    "Painting", "Remodeling", "Pest Control", "Cleaning", "Other",
)

TONES = ("CONVERSATIONAL", "PROFESSIONAL", "FORMAL", "FRIENDLY")
DEFAULT_TONE = "PROFESSIONAL"

# Client-editable scalar fields, grouped by the step that collects them
EDITABLE_FIELDS = (
    # 1. Business identity
    "business_name", "business_category", "raw_description", "polished_description",
    "year_established", "owner_names", "license_number", "insurance_info",
    # 2. Contact & location
    "street", "city", "state", "zip", "primary_phone", "secondary_phone",
    "email", "emergency_service",
    # 3. Online presence
    "existing_website", "gbp_url", "facebook", "instagram", "youtube",
    "linkedin", "nextdoor",
    # 5. Service areas
    "primary_city", "additional_cities", "county", "service_radius",
    # 6. Brand & design
    "primary_color", "secondary_color", "tone", "design_style", "tagline",
    "ai_tagline_options",
    # 7. Website copy
    "what_makes_different", "warranties", "financing", "hero_headline",
    "hero_subheadline", "about_us", "why_choose_us", "cta_text",
    # 8. Social proof
    "google_review_count", "google_star_rating", "certifications",
)

BOOLEAN_FIELDS = frozenset({"emergency_service"})

# Columns the client may never write through update_submission
PROTECTED_FIELDS = frozenset({
    "id", "access_token", "vertical", "status",
    "created_at", "updated_at", "submitted_at",
    "site_url", "published_url",
    "services_version", "testimonials_version", "business_hours_version",
})


# ═════════════════════════════════════════════════════════════════════════════
# 1. Submission
# ═════════════════════════════════════════════════════════════════════════════


class Submission(db.Model):
    """
    Root aggregate for one client's intake.

    Identity is two-fold: ``access_token`` is the capability handed to the
    client (possession grants read/write), ``id`` is used for every call
    once the token has been resolved.
    """

    __tablename__ = "submissions"

    id = db.Column(db.Integer, primary_key=True)
    access_token = db.Column(
        db.String(64), unique=True, nullable=False, index=True,
        default=generate_access_token,
        comment="Capability token for the resumable client link",
    )
    vertical = db.Column(db.String(40), nullable=False, default="home_services")
    status = db.Column(
        db.String(30), nullable=False, default="draft", index=True,
        comment="draft | submitted | in_review | building | ready_for_qc | "
                "client_preview | approved | published | archived",
    )

    # 1. Business identity
    business_name = db.Column(db.String(200), nullable=True)
    business_category = db.Column(db.String(60), nullable=True)
    raw_description = db.Column(db.Text, nullable=True)
    polished_description = db.Column(db.Text, nullable=True, comment="AI output from raw_description")
    year_established = db.Column(db.String(10), nullable=True)
    owner_names = db.Column(db.String(200), nullable=True)
    license_number = db.Column(db.String(100), nullable=True)
    insurance_info = db.Column(db.String(200), nullable=True)

    # 2. Contact & location
    street = db.Column(db.String(200), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(40), nullable=True)
    zip = db.Column(db.String(20), nullable=True)
    primary_phone = db.Column(db.String(40), nullable=True)
    secondary_phone = db.Column(db.String(40), nullable=True)
    email = db.Column(db.String(200), nullable=True, index=True)
    emergency_service = db.Column(db.Boolean, nullable=False, default=False)

    # 3. Online presence
    existing_website = db.Column(db.String(500), nullable=True)
    gbp_url = db.Column(db.String(500), nullable=True, comment="Google Business Profile")
    facebook = db.Column(db.String(500), nullable=True)
    instagram = db.Column(db.String(500), nullable=True)
    youtube = db.Column(db.String(500), nullable=True)
    linkedin = db.Column(db.String(500), nullable=True)
    nextdoor = db.Column(db.String(500), nullable=True)

    # 5. Service areas
    primary_city = db.Column(db.String(100), nullable=True)
    additional_cities = db.Column(db.Text, nullable=True, comment="One city per line")
    county = db.Column(db.String(100), nullable=True)
    service_radius = db.Column(db.String(40), nullable=True)

    # 6. Brand & design
    primary_color = db.Column(db.String(20), nullable=True)
    secondary_color = db.Column(db.String(20), nullable=True)
    tone = db.Column(db.String(20), nullable=True, default=DEFAULT_TONE)
    design_style = db.Column(db.String(200), nullable=True)
    tagline = db.Column(db.String(300), nullable=True)
    ai_tagline_options = db.Column(db.Text, nullable=True)

    # 7. Website copy
    what_makes_different = db.Column(db.Text, nullable=True)
    warranties = db.Column(db.String(300), nullable=True)
    financing = db.Column(db.String(300), nullable=True)
    hero_headline = db.Column(db.String(300), nullable=True)
    hero_subheadline = db.Column(db.Text, nullable=True)
    about_us = db.Column(db.Text, nullable=True)
    why_choose_us = db.Column(db.Text, nullable=True)
    cta_text = db.Column(db.Text, nullable=True)

    # 8. Social proof
    google_review_count = db.Column(db.String(20), nullable=True)
    google_star_rating = db.Column(db.String(10), nullable=True)
    certifications = db.Column(db.Text, nullable=True)

    # Operator-side site builder links
    site_url = db.Column(db.String(500), nullable=True, comment="Builder preview URL")
    published_url = db.Column(db.String(500), nullable=True)

    # Optimistic-concurrency tokens, one per child collection
    services_version = db.Column(db.Integer, nullable=False, default=0)
    testimonials_version = db.Column(db.Integer, nullable=False, default=0)
    business_hours_version = db.Column(db.Integer, nullable=False, default=0)

    # Metadata
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    submitted_at = db.Column(
        db.DateTime(timezone=True), nullable=True,
        comment="Stamped once, on first entry into 'submitted'",
    )

    # ── Constraints ──────────────────────────────────────────────────────
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('draft','submitted','in_review','building','ready_for_qc',"
            "'client_preview','approved','published','archived')",
            name="ck_submission_status",
        ),
    )

    # ── Relationships ────────────────────────────────────────────────────
    services = db.relationship(
        "ServiceItem", backref="submission", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ServiceItem.sort_order",
    )
    testimonials = db.relationship(
        "Testimonial", backref="submission", lazy="dynamic",
        cascade="all, delete-orphan", order_by="Testimonial.sort_order",
    )
    business_hours = db.relationship(
        "BusinessHour", backref="submission", lazy="dynamic",
        cascade="all, delete-orphan", order_by="BusinessHour.sort_order",
    )
    build_logs = db.relationship(
        "BuildLog", backref="submission", lazy="dynamic",
        cascade="all, delete-orphan", order_by="BuildLog.started_at.desc()",
    )

    def touch(self):
        """Bump the last-updated timestamp; every persisted mutation calls this."""
        self.updated_at = _utcnow()

    def collection_versions(self) -> dict:
        return {name: getattr(self, f"{name}_version") or 0 for name in COLLECTION_NAMES}

    def to_dict(self, include_children=False):
        result = {
            "id": self.id,
            "access_token": self.access_token,
            "vertical": self.vertical,
            "status": self.status,
            "status_label": STATUS_LABELS.get(self.status, self.status),
            "site_url": self.site_url,
            "published_url": self.published_url,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "submitted_at": _iso(self.submitted_at),
            "collection_versions": self.collection_versions(),
        }
        for name in EDITABLE_FIELDS:
            result[name] = getattr(self, name)
        if include_children:
            result["services"] = [s.to_dict() for s in self.services]
            result["testimonials"] = [t.to_dict() for t in self.testimonials]
            result["business_hours"] = [h.to_dict() for h in self.business_hours]
        return result

    def to_summary_dict(self):
        """Listing row for the operator dashboard."""
        return {
            "id": self.id,
            "business_name": self.business_name,
            "vertical": self.vertical,
            "status": self.status,
            "status_label": STATUS_LABELS.get(self.status, self.status),
            "email": self.email,
            "primary_phone": self.primary_phone,
            "site_url": self.site_url,
            "published_url": self.published_url,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Submission {self.id}: {self.business_name or 'Unnamed'} [{self.status}]>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. Child collections
# ═════════════════════════════════════════════════════════════════════════════


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ServiceItem(db.Model):
    """One service the business offers, in display order."""

    __tablename__ = "services"

    # Record field → default applied when the client leaves it empty
    RECORD_FIELDS = {
        "service_name": None,
        "category": None,
        "description": None,
        "ai_description": None,
        "price_range": None,
        "is_emergency": False,
    }

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(
        db.Integer, db.ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    service_name = db.Column(db.String(200), nullable=True)
    category = db.Column(db.String(60), nullable=True)
    description = db.Column(db.Text, nullable=True, comment="Owner's raw wording")
    ai_description = db.Column(db.Text, nullable=True, comment="AI polish of description")
    price_range = db.Column(db.String(100), nullable=True)
    is_emergency = db.Column(db.Boolean, nullable=False, default=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "service_name": self.service_name,
            "category": self.category,
            "description": self.description,
            "ai_description": self.ai_description,
            "price_range": self.price_range,
            "is_emergency": self.is_emergency,
            "sort_order": self.sort_order,
        }


class Testimonial(db.Model):
    """A customer quote shown as social proof."""

    __tablename__ = "testimonials"

    RECORD_FIELDS = {
        "quote_text": None,
        "author_name": None,
        "author_city": None,
        "rating": 5,
        "service_type": None,
    }

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(
        db.Integer, db.ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    quote_text = db.Column(db.Text, nullable=True)
    author_name = db.Column(db.String(120), nullable=True)
    author_city = db.Column(db.String(120), nullable=True)
    rating = db.Column(db.Integer, nullable=False, default=5)
    service_type = db.Column(db.String(120), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "quote_text": self.quote_text,
            "author_name": self.author_name,
            "author_city": self.author_city,
            "rating": self.rating,
            "service_type": self.service_type,
            "sort_order": self.sort_order,
        }


class BusinessHour(db.Model):
    """Opening hours for one day of the week."""

    __tablename__ = "business_hours"

    RECORD_FIELDS = {
        "day_of_week": None,
        "open_time": None,
        "close_time": None,
        "is_closed": False,
    }

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(
        db.Integer, db.ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    day_of_week = db.Column(db.String(12), nullable=True)
    open_time = db.Column(db.String(8), nullable=True, comment="HH:MM")
    close_time = db.Column(db.String(8), nullable=True, comment="HH:MM")
    is_closed = db.Column(db.Boolean, nullable=False, default=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "day_of_week": self.day_of_week,
            "open_time": self.open_time,
            "close_time": self.close_time,
            "is_closed": self.is_closed,
            "sort_order": self.sort_order,
        }


# Collection name (API / session key) → row model
COLLECTION_MODELS = {
    "services": ServiceItem,
    "testimonials": Testimonial,
    "business_hours": BusinessHour,
}
COLLECTION_NAMES = tuple(COLLECTION_MODELS)


def build_collection_row(model, submission_id: int, record: dict, position: int):
    """
    Normalise one client-side record into a row.

    Unknown keys (including any client-held ``id``) are dropped, empty
    strings become NULL, unset fields take the model's default, and
    ``sort_order`` is the record's buffer index.
    """
    values = {}
    for field, default in model.RECORD_FIELDS.items():
        value = _blank_to_none(record.get(field))
        values[field] = default if value is None else value
    return model(submission_id=submission_id, sort_order=position, **values)


# ═════════════════════════════════════════════════════════════════════════════
# 3. BuildLog
# ═════════════════════════════════════════════════════════════════════════════


BUILD_STATUSES = {"queued", "running", "succeeded", "failed"}


class BuildLog(db.Model):
    """One site-build request made from the operator dashboard."""

    __tablename__ = "build_logs"

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(
        db.Integer, db.ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    provider = db.Column(db.String(40), nullable=False, default="stub")
    status = db.Column(db.String(20), nullable=False, default="queued")
    message = db.Column(db.Text, nullable=True)
    requested_by = db.Column(db.String(150), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "provider": self.provider,
            "status": self.status,
            "message": self.message,
            "requested_by": self.requested_by,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
        }
