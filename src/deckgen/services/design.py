"""
Audience-driven slide design
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List

from ..models.project import (
    Audience, BulletStyle, DesignSpec, FontSizeSpec, ImagePosition, LayoutType
)

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


@dataclass(frozen=True)
class DesignPreferences:
    layout: LayoutType
    background_color: str
    font_size: FontSizeSpec


AUDIENCE_PREFERENCES: Dict[Audience, DesignPreferences] = {
    # bright scheme, simple layout
    Audience.KIDS: DesignPreferences(LayoutType.TITLE_AND_CONTENT, "#FFEB3B", FontSizeSpec.LARGE),
    # professional scheme, detailed layout
    Audience.ADULTS: DesignPreferences(LayoutType.SPLIT_VIEW, "#FFFFFF", FontSizeSpec.MEDIUM),
    # neutral scheme, moderate layout
    Audience.BUSINESS: DesignPreferences(LayoutType.TITLE_CONTENT_AND_IMAGE, "#F5F5F5", FontSizeSpec.MEDIUM),
}


@dataclass
class DesignValidationResult:
    is_valid: bool
    issues: List[str] = field(default_factory=list)


class SlideDesigner:
    """Creates design specifications from audience preferences"""

    def design_spec_for(self, audience: Audience) -> DesignSpec:
        prefs = AUDIENCE_PREFERENCES[audience]
        spec = DesignSpec(
            layout=prefs.layout,
            background_color=prefs.background_color,
            text_color="#000000",
            font_size=prefs.font_size,
            font_family="Helvetica",
            image_position=ImagePosition.RIGHT,
            bullet_style=BulletStyle.CHECKMARK
        )
        logger.debug(f"Design spec for {audience.value}: {spec.background_color} background, "
                     f"{spec.font_size.value} font")
        return spec

    def validate(self, spec: DesignSpec) -> DesignValidationResult:
        issues = []
        if spec.font_size == FontSizeSpec.SMALL:
            issues.append("Small font size may not be suitable for all audiences")
        if not _HEX_COLOR.match(spec.background_color):
            issues.append("Invalid background color format")
        if not _HEX_COLOR.match(spec.text_color):
            issues.append("Invalid text color format")
        return DesignValidationResult(is_valid=not issues, issues=issues)
