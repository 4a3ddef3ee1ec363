"""
deckgen services
"""

from .content_filter import ContentFilter
from .design import SlideDesigner
from .file_processor import FileProcessor
from .generation_client import (
    AnalysisResult, ContentValidationResult, GenerationClient, ImageDownloader, ImagePayload, SlideContent
)
from .interfaces import (
    CredentialProvider, DocumentIngestor, EnvironmentCredentialProvider, PresentationExporter,
    StaticCredentialProvider
)
from .orchestrator import GenerationOrchestrator, GenerationRun
from .project_store import ProjectStore
from .service_instances import Services, build_services, build_store

__all__ = [
    "ContentFilter",
    "SlideDesigner",
    "FileProcessor",
    "AnalysisResult",
    "ContentValidationResult",
    "GenerationClient",
    "ImageDownloader",
    "ImagePayload",
    "SlideContent",
    "CredentialProvider",
    "DocumentIngestor",
    "EnvironmentCredentialProvider",
    "PresentationExporter",
    "StaticCredentialProvider",
    "GenerationOrchestrator",
    "GenerationRun",
    "ProjectStore",
    "Services",
    "build_services",
    "build_store"
]
