"""Prompts, style seeds, and category templates for image generation.

Structured prompts come from a category template filled with classifier
output.  Creative prompts are free prose from the creative writer with
fixed quality and branding directives appended.
"""

from __future__ import annotations

from pressroom.images.models import ClassifierOutput, ImageAnalysis

# Pre-authored surreal scenes.  Variant proposal grafts one keyword from
# the article onto a randomly chosen seed.
STYLE_SEEDS: list[str] = [
    "A lighthouse made of stacked glass books on a calm black sea, its beam "
    "projecting a slow-moving aurora across the clouds.",
    "An endless greenhouse where every plant grows out of a vintage circuit "
    "board, lit by a single low sun through misted panes.",
    "A paper-origami city floating above a desert, held up by thousands of "
    "thin threads that disappear into the sky.",
    "A giant brass clock half-sunk in a turquoise lagoon, flamingos standing "
    "on its hands at dawn.",
    "A narrow staircase spiralling out of an open laptop into a night sky "
    "full of hand-drawn constellations.",
    "An orchestra of chairs without musicians in an empty concert hall, "
    "their shadows playing instruments on the back wall.",
    "A winter forest where the snowflakes are tiny glowing pixels frozen "
    "mid-air around a single red umbrella.",
    "A whale made of cloud drifting over a quiet fjord village, lights "
    "switching on in the windows beneath it.",
]

CATEGORIES = (
    "tech_product",
    "marketing_campaign",
    "ai_research",
    "business_news",
    "science",
    "lifestyle",
    "general",
)

CATEGORY_COLORS: dict[str, tuple[str, str]] = {
    "tech_product": ("#00E5FF", "#FF2D92"),
    "marketing_campaign": ("#FF6B35", "#004E89"),
    "ai_research": ("#7C3AED", "#00E5FF"),
    "business_news": ("#0066CC", "#00AA55"),
    "science": ("#10B981", "#3B82F6"),
    "lifestyle": ("#F59E0B", "#EC4899"),
    "general": ("#6366F1", "#8B5CF6"),
}

_TEMPLATE_FOOTER = """
COLOR PALETTE:
- Primary accent: {color_primary}
- Secondary accent: {color_secondary}
- Scheme: {color_scheme}

STYLE: {style_hint}
- NO text, logos, or written words in the image
- 4:5 aspect ratio (portrait orientation)"""

CATEGORY_TEMPLATES: dict[str, str] = {
    "tech_product": """Premium product hero shot for {company_name} ({company_domain}).

SUBJECT: {product_type}, shown as {visual_concept}
DETAILS to suggest visually, without writing them:
{key_features_formatted}
SUPPORTING ELEMENTS: {visual_elements}

COMPOSITION: product floating at the optical centre, soft reflection below,
studio rim light, shallow depth of field, dark gradient background."""
    + _TEMPLATE_FOOTER,
    "marketing_campaign": """Bold campaign key visual for {company_name}.

CONCEPT: {visual_concept}
ELEMENTS: {visual_elements}
OFFER FEELING: an inviting "{cta_text}" moment expressed through gesture and light, not text

COMPOSITION: dynamic diagonal layout, energetic colour blocking, crisp
commercial photography finish."""
    + _TEMPLATE_FOOTER,
    "ai_research": """Conceptual illustration of an AI research result from {company_name}.

CORE IDEA: {visual_concept}
ELEMENTS: {visual_elements}
CAPABILITIES to hint at visually:
{key_features_formatted}

COMPOSITION: abstract neural structures resolving into a recognisable form,
volumetric light, glassy layered depth."""
    + _TEMPLATE_FOOTER,
    "business_news": """Editorial business illustration about {company_name}.

STORY: {visual_concept}
ELEMENTS: {visual_elements}

COMPOSITION: clean corporate setting or symbolic object, confident
perspective, magazine-cover polish, balanced negative space."""
    + _TEMPLATE_FOOTER,
    "science": """Scientific visualisation for a discovery involving {company_name}.

PHENOMENON: {visual_concept}
ELEMENTS: {visual_elements}

COMPOSITION: macro or cosmic scale as the subject demands, accurate
textures, luminous highlights against a deep background."""
    + _TEMPLATE_FOOTER,
    "lifestyle": """Warm lifestyle scene featuring {product_type} by {company_name}.

MOMENT: {visual_concept}
ELEMENTS: {visual_elements}

COMPOSITION: natural light, candid framing, people shown from behind or in
soft focus, inviting everyday setting."""
    + _TEMPLATE_FOOTER,
    "general": """Professional technology news illustration about {company_name}.

MAIN SUBJECT: {visual_concept}
VISUAL ELEMENTS: {visual_elements}

COMPOSITION: central focus on the main concept, clean modern aesthetic,
abstract geometric background elements."""
    + _TEMPLATE_FOOTER,
}

DEFAULT_TEMPLATE = """Professional technology news illustration.

MAIN SUBJECT:
{visual_concept}

VISUAL ELEMENTS to include:
{visual_elements}

COMPOSITION:
- Central focus on the main visual concept
- Professional, editorial quality suitable for tech news
- Clean, modern aesthetic with balanced composition
- 4:5 aspect ratio (portrait orientation)

COLOR PALETTE:
- Primary accent: {color_primary}
- Secondary accent: {color_secondary}
- Professional gradient backgrounds

STYLE GUIDE:
- Photorealistic 3D rendering with soft lighting
- Subtle depth of field effect
- Abstract geometric elements in background
- NO text, logos, or written words in the image
- Focus purely on visual storytelling

MOOD: Professional, innovative, forward-thinking technology"""

CTA_TEXT = "Learn More"


def normalize_category(category: str) -> str:
    value = (category or "").strip().lower()
    return value if value in CATEGORY_TEMPLATES else "general"


def format_key_features(features: list[str]) -> str:
    return "\n".join(f'□ "{feature.upper()}"' for feature in features)


def fill_template(template: str, data: ClassifierOutput) -> str:
    """Substitute classifier fields and category colours into a template."""
    primary, secondary = CATEGORY_COLORS[normalize_category(data.category)]
    replacements = {
        "{company_name}": data.company_name or "Brand",
        "{company_domain}": data.company_domain,
        "{product_type}": data.product_type,
        "{visual_concept}": data.visual_concept,
        "{color_scheme}": data.color_scheme,
        "{style_hint}": data.style_hint,
        "{color_primary}": primary,
        "{color_secondary}": secondary,
        "{visual_elements}": ", ".join(data.visual_elements),
        "{key_features_formatted}": format_key_features(data.key_features),
        "{cta_text}": CTA_TEXT,
    }
    result = template
    for placeholder, value in replacements.items():
        result = result.replace(placeholder, value)
    return result


def quality_directives(brand_name: str) -> str:
    """Fixed directives appended to every free-form prompt."""
    lines = [
        "",
        "QUALITY REQUIREMENTS:",
        "- Sharp focus on the main subject, no distorted anatomy or objects",
        "- Cohesive lighting and colour grading, editorial magazine finish",
        "- 4:5 portrait composition with breathing room at the edges",
        "- NO text, captions, letters or UI elements anywhere in the image",
    ]
    if brand_name:
        lines.append(f'- A small, subtle "{brand_name}" watermark in the bottom corner')
    return "\n".join(lines)


def fold_suggestions(prompt: str, suggestions: list[str]) -> str:
    """Append critic feedback so the next attempt addresses it."""
    cleaned = [s.strip() for s in suggestions if s and s.strip()]
    if not cleaned:
        return prompt
    bullet_list = "\n".join(f"- {s}" for s in cleaned)
    header = "IMPROVEMENTS REQUIRED (from review of the previous attempt):"
    return f"{prompt}\n\n{header}\n{bullet_list}"


# ── LLM prompts ──────────────────────────────────────────────────

IMAGE_SYSTEM_PROMPT = (
    "You are an art director for a technology news site. "
    "Always respond with valid JSON only, no markdown formatting, no explanations."
)

CREATIVE_SYSTEM_PROMPT = (
    "You are an art director who writes image-generation prompts as vivid prose."
)

MAX_CONTEXT_CHARS = 5000


def get_variants_prompt(title: str, body: str, style_seed: str) -> str:
    return f"""Propose four distinct illustration concepts for this article.

Each concept takes ONE concrete keyword from the article and grafts it onto
the style scene below, so the scene stays recognisable but now carries the
article's subject.

STYLE SCENE:
{style_seed}

ARTICLE:
Title: {title}

{body[:MAX_CONTEXT_CHARS]}

Respond with JSON:
{{"variants": [{{"label": "2-4 word name", "description": "one or two sentences"}}, ...]}}"""


def get_variant_selection_prompt(title: str, variants: list[tuple[str, str]]) -> str:
    numbered = "\n".join(
        f"{idx}. {label}: {description}" for idx, (label, description) in enumerate(variants, 1)
    )
    return f"""Pick the illustration concept that best fits this headline.

HEADLINE: {title}

CONCEPTS:
{numbered}

Respond with JSON: {{"selected_index": <1-{len(variants)}>}}"""


def get_pre_analysis_prompt(title: str, body: str, variant: str = "") -> str:
    variant_section = f"\nPREFERRED CONCEPT (bias toward it):\n{variant}\n" if variant else ""
    return f"""Analyse this article and decide how to illustrate it.

Approaches:
- structured: product, company, or announcement news that suits a clean templated hero image
- creative: abstract ideas, trends, opinions; a conceptual scene works best
- hero_image: a single dramatic photographic moment or object
- artistic: cultural or human stories that suit a painterly, stylised treatment

Then name the transformation or conflict at the heart of the story (core_idea)
and a visual metaphor that encodes it.
{variant_section}
ARTICLE:
Title: {title}

{body[:MAX_CONTEXT_CHARS]}

Respond with JSON:
{{
  "approach": "structured|creative|hero_image|artistic",
  "mood": "...",
  "color_palette": "...",
  "emotion": "...",
  "core_idea": "...",
  "visual_metaphor": "..."
}}"""


def get_classifier_prompt(title: str, body: str) -> str:
    categories = ", ".join(CATEGORIES)
    return f"""Extract structured facts for an illustration of this article.

ARTICLE:
Title: {title}

{body[:MAX_CONTEXT_CHARS]}

Respond with JSON:
{{
  "company_name": "main company or organisation, or the main subject",
  "company_domain": "example.com or empty",
  "category": "one of: {categories}",
  "product_type": "...",
  "key_features": ["up to 4 short features"],
  "visual_elements": ["3-6 concrete visual elements"],
  "visual_concept": "one sentence describing the central image",
  "color_scheme": "...",
  "style_hint": "..."
}}"""


def get_creative_writer_prompt(
    title: str,
    body: str,
    analysis: ImageAnalysis,
    variant: str = "",
) -> str:
    variant_section = f"\nCHOSEN CONCEPT to build on:\n{variant}\n" if variant else ""
    return f"""Write one image-generation prompt for this article, 150 to 250 words of prose.

Method, in order:
1. IDEA: state what the image must make the viewer understand ({analysis.core_idea or "derive it"}).
2. METAPHOR: stage it through a concrete visual metaphor ({analysis.visual_metaphor or "invent one"}).
3. TENSION: show the conflict or transformation inside the frame, not beside it.
4. STYLE: approach "{analysis.approach}", mood "{analysis.mood}", emotion "{analysis.emotion}",
   palette "{analysis.color_palette}". Describe lens, light and texture.
{variant_section}
ARTICLE:
Title: {title}

{body[:2000]}

Return only the prompt text."""


def get_critic_prompt(
    brand_name: str, original_prompt: str, title: str, category: str, language: str
) -> str:
    branding = (
        f'3. BRANDING (true/false): Is the "{brand_name}" watermark visible?\n'
        "   - Should appear subtly at the bottom corner"
        if brand_name
        else "3. BRANDING: always true (no watermark required)"
    )
    return f"""You are an expert image quality critic for a professional news website.
Analyze the generated image and evaluate it against the original requirements.

1. RELEVANCE (1-10): How well does the image match the news topic and original prompt?
2. QUALITY (1-10): Sharpness, colour, professional appearance, absence of distortions.
{branding}
4. ARTIFACTS: List any visual problems (distorted elements, unnatural textures, blur, banding).
5. TEXT_ISSUES: Problems with any rendered text (illegible, misspelled, wrong language).

NEWS CONTEXT:
- Title: {title}
- Category: {category}
- Language: {language}

ORIGINAL IMAGE PROMPT:
{original_prompt}

Respond with ONLY valid JSON:
{{
  "relevance": <1-10>,
  "quality": <1-10>,
  "branding": <true/false>,
  "artifacts": ["..."],
  "text_issues": ["..."],
  "overall_score": <1-10>,
  "should_retry": <true/false>,
  "improvement_suggestions": ["..."]
}}"""
