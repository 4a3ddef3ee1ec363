"""
Generation pipeline stages
"""

from .base import BoundedRunResult, run_bounded
from .analysis_stage import ContentAnalysisStage
from .slide_content_stage import SlideContentStage
from .image_stage import ImageStage

__all__ = [
    "BoundedRunResult",
    "run_bounded",
    "ContentAnalysisStage",
    "SlideContentStage",
    "ImageStage"
]
