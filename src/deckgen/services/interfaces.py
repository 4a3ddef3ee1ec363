"""
Collaborator interfaces consumed by the pipeline, and the credential providers
"""

from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from ..core.config import AIConfig
from ..models.project import Project


@runtime_checkable
class DocumentIngestor(Protocol):
    """Stateless conversion of a document file to plain text"""

    async def extract_text(self, path: Union[str, Path]) -> str:
        ...


@runtime_checkable
class CredentialProvider(Protocol):

    def current_key(self) -> Optional[str]:
        ...


@runtime_checkable
class PresentationExporter(Protocol):
    """Writes a persisted project to a presentation file"""

    async def export(self, project: Project, destination: Union[str, Path]) -> Path:
        ...


class EnvironmentCredentialProvider:
    """Reads the key from the AIConfig environment settings"""

    def __init__(self, ai_config: AIConfig):
        self.ai_config = ai_config

    def current_key(self) -> Optional[str]:
        return self.ai_config.openai_api_key or None


class StaticCredentialProvider:

    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key

    def current_key(self) -> Optional[str]:
        return self.api_key
