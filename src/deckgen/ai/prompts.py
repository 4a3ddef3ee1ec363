"""
Prompt templates for document analysis, slide writing, image generation and moderation
"""

from typing import List

from ..models.project import Audience, KeyPoint


ANALYSIS_SYSTEM_PROMPT = """You are an expert educational content analyst.
Your role is to read a document and extract the key teaching points that would work well as individual presentation slides.

Guidelines:
- Each key point is clear, concise and focused on a single concept
- Extract between 3 and 20 key points depending on the length and depth of the text
- Keep the points in the order they should be presented
- Match the complexity of the language to the target audience

Respond with JSON only."""

SLIDE_SYSTEM_PROMPT = """You are an expert presentation designer.
You write engaging, well structured slide content that communicates one idea per slide.

Guidelines:
- Titles are short and engaging (at most 60 characters)
- Content is well structured and never overcrowded
- Image prompts describe an illustration without any text in it
- Language and tone match the target audience

Respond with JSON only."""

CONTENT_FILTER_SYSTEM_PROMPT = """You are a content moderator for educational presentations.
Your role is to make sure every piece of content is appropriate and suitable for its intended audience.

Evaluation criteria:
1. Age appropriateness: the content suits the target audience
2. Respectfulness: people and sensitive themes are treated with care
3. Educational value: the content serves a clear educational purpose
4. Safety: the content is free from harmful or disturbing material

Respond with JSON only."""


_AUDIENCE_GUIDELINES = {
    Audience.KIDS: """For CHILDREN:
- Use simple, age-appropriate language
- Focus on concrete concepts and stories
- Keep points short and visual
- Limit each slide to 3-4 short bullet points""",
    Audience.ADULTS: """For ADULTS:
- Use clear but sophisticated language
- Deeper insights and context are welcome
- Up to 5-7 bullet points per slide""",
    Audience.BUSINESS: """For a BUSINESS audience:
- Use precise, professional language
- Lead with conclusions and concrete outcomes
- Up to 5 concise bullet points per slide""",
}

_IMAGE_STYLE_SUFFIX = {
    Audience.KIDS: ", cartoon style, bright colors, simple shapes, cheerful and friendly",
    Audience.ADULTS: ", professional style, clean composition, sophisticated",
    Audience.BUSINESS: ", professional style, clean composition, sophisticated",
}


class PromptTemplates:
    """Builds the chat prompts sent to the generation service"""

    @staticmethod
    def audience_guidelines(audience: Audience) -> str:
        return _AUDIENCE_GUIDELINES[audience]

    @staticmethod
    def analysis_prompt(text: str, audience: Audience) -> str:
        return f"""Analyze the following text and extract the key teaching points for a presentation.

TARGET AUDIENCE: {audience.value}

{PromptTemplates.audience_guidelines(audience)}

TEXT TO ANALYZE:
{text}

Provide your response in the following JSON format:
{{
    "keyPoints": [
        {{"content": "First key point", "order": 1}},
        {{"content": "Second key point", "order": 2}}
    ],
    "suggestedSlideCount": 5
}}"""

    @staticmethod
    def slide_prompt(key_point: KeyPoint, audience: Audience, slide_number: int, total_slides: int) -> str:
        return f"""Create content for slide {slide_number} of {total_slides} in a presentation.

TARGET AUDIENCE: {audience.value}

KEY POINT TO PRESENT:
{key_point.content}

{PromptTemplates.audience_guidelines(audience)}

Provide your response in the following JSON format:
{{
    "title": "Concise, engaging slide title",
    "content": "Main content text (2-5 bullet points or 1-2 short paragraphs)",
    "imagePrompt": "Detailed description for generating an illustration",
    "speakerNotes": "Additional notes for the presenter"
}}"""

    @staticmethod
    def enhance_image_prompt(prompt: str, audience: Audience) -> str:
        """Append the audience's visual style to an image prompt"""
        return f"{prompt.strip()}{_IMAGE_STYLE_SUFFIX[audience]}"

    @staticmethod
    def content_validation_prompt(content: str, audience: Audience) -> str:
        return f"""Evaluate the following content for use in an educational presentation for {audience.display_name.lower()}.

CONTENT TO EVALUATE:
{content}

CONTENT TO AVOID:
- Content that could cause fear or anxiety, especially for children
- Concepts far too complex for the audience
- Culturally insensitive material
- Violent, disturbing or explicit imagery
- Political or divisive topics unrelated to the lesson

Provide your response in the following JSON format:
{{
    "isApproved": true,
    "concerns": ["list of any concerns"],
    "suggestions": ["list of improvements"]
}}"""

    @staticmethod
    def improvement_system_prompt(concerns: List[str], audience: Audience) -> str:
        concern_lines = "\n".join(f"- {concern}" for concern in concerns) or "- none given"
        return f"""You are an educational content editor. Improve content that has been flagged as inappropriate or concerning.

AUDIENCE: {audience.display_name}

CONCERNS:
{concern_lines}

Provide an improved version that:
1. Addresses all the concerns
2. Keeps the core educational message
3. Is appropriate for the target audience
4. Uses clear, engaging language

Return ONLY the improved content, no explanations."""
