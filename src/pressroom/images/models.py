"""Image pipeline data types — pure Pydantic v2 models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from pressroom.content.models import ImageApproach


class ImageAnalysis(BaseModel):
    """Pre-analysis output: which approach to take and what the image should say."""

    approach: ImageApproach = ImageApproach.STRUCTURED
    mood: str = ""
    color_palette: str = ""
    emotion: str = ""
    core_idea: str = ""
    visual_metaphor: str = ""
    fallback: bool = False


class ClassifierOutput(BaseModel):
    """Structured facts extracted for template filling."""

    company_name: str
    company_domain: str = ""
    category: str
    product_type: str = ""
    key_features: list[str] = Field(default_factory=list)
    visual_elements: list[str] = Field(default_factory=list)
    visual_concept: str
    color_scheme: str = ""
    style_hint: str = ""


class ArticleContext(BaseModel):
    """What the critic needs to know about the article."""

    title: str
    category: str = "general"
    language: str = "en"


class Critique(BaseModel):
    """Critic verdict for one rendered image."""

    relevance: int = 7
    quality: int = 7
    branding: bool = True
    artifacts: list[str] = Field(default_factory=list)
    text_issues: list[str] = Field(default_factory=list)
    overall_score: int = 7
    issues: list[str] = Field(default_factory=list)
    improvement_suggestions: list[str] = Field(default_factory=list)
    is_valid: bool = True
    should_retry: bool = False
    fail_open: bool = False


class RenderedImage(BaseModel):
    data: bytes
    mime_type: str = "image/png"

    @property
    def extension(self) -> str:
        return {"image/jpeg": "jpg", "image/webp": "webp"}.get(self.mime_type, "png")
