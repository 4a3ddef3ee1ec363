"""
Audience-driven design specs
"""

from deckgen.models.project import (
    Audience, BulletStyle, DesignSpec, FontSizeSpec, ImagePosition, LayoutType
)
from deckgen.services.design import SlideDesigner


def test_kids_design_is_bright_and_large():
    spec = SlideDesigner().design_spec_for(Audience.KIDS)
    assert spec.background_color == "#FFEB3B"
    assert spec.text_color == "#000000"
    assert spec.font_size == FontSizeSpec.LARGE
    assert spec.layout == LayoutType.TITLE_AND_CONTENT
    assert spec.bullet_style == BulletStyle.CHECKMARK
    assert spec.image_position == ImagePosition.RIGHT


def test_adult_and_business_designs():
    designer = SlideDesigner()
    adults = designer.design_spec_for(Audience.ADULTS)
    business = designer.design_spec_for(Audience.BUSINESS)

    assert (adults.background_color, adults.layout) == ("#FFFFFF", LayoutType.SPLIT_VIEW)
    assert (business.background_color, business.layout) == ("#F5F5F5", LayoutType.TITLE_CONTENT_AND_IMAGE)
    assert adults.font_size == business.font_size == FontSizeSpec.MEDIUM


def test_every_audience_spec_is_valid():
    designer = SlideDesigner()
    for audience in Audience:
        assert designer.validate(designer.design_spec_for(audience)).is_valid


def test_validation_reports_each_issue():
    spec = DesignSpec(background_color="yellow", text_color="#12345", font_size=FontSizeSpec.SMALL)
    result = SlideDesigner().validate(spec)

    assert not result.is_valid
    assert len(result.issues) == 3


def test_font_point_sizes():
    assert [size.point_size for size in FontSizeSpec] == [14.0, 18.0, 24.0, 32.0]
    assert FontSizeSpec.LARGE.title_point_size == 48.0
