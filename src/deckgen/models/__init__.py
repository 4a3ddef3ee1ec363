"""
Domain models
"""

from .project import (
    Audience, BulletStyle, DesignSpec, DocumentType, FontSizeSpec, ImageData, ImageFormat,
    ImagePosition, ImageQuality, KeyPoint, LayoutType, Project, ProjectSettings, Slide,
    SourceFile, TransitionStyle
)
from .workflow import ProgressChannel, ProgressEvent, WorkflowStage, WorkflowState, WorkflowStatus

__all__ = [
    "Audience",
    "BulletStyle",
    "DesignSpec",
    "DocumentType",
    "FontSizeSpec",
    "ImageData",
    "ImageFormat",
    "ImagePosition",
    "ImageQuality",
    "KeyPoint",
    "LayoutType",
    "Project",
    "ProjectSettings",
    "Slide",
    "SourceFile",
    "TransitionStyle",
    "ProgressChannel",
    "ProgressEvent",
    "WorkflowStage",
    "WorkflowState",
    "WorkflowStatus"
]
