"""
Explicit wiring of the service graph

Every collaborator is constructed here and passed down; a missing
dependency fails at construction instead of deep inside a run.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..ai.retry import RetryPolicy
from ..core.config import AIConfig, AppConfig
from .content_filter import ContentFilter
from .design import SlideDesigner
from .file_processor import FileProcessor
from .generation_client import GenerationClient
from .interfaces import CredentialProvider, EnvironmentCredentialProvider
from .orchestrator import GenerationOrchestrator
from .project_store import ProjectStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    ai_config: AIConfig
    app_config: AppConfig
    store: ProjectStore
    client: GenerationClient
    orchestrator: GenerationOrchestrator
    ingestor: FileProcessor
    designer: SlideDesigner
    content_filter: Optional[ContentFilter] = None

    async def close(self):
        await self.client.close()


def build_store(app_config: AppConfig) -> ProjectStore:
    return ProjectStore(app_config.data_dir)


def build_services(ai_config: AIConfig, app_config: AppConfig,
                   credentials: Optional[CredentialProvider] = None,
                   store: Optional[ProjectStore] = None) -> Services:
    """Build the full service graph; raises ConfigurationError without a key"""
    credentials = credentials or EnvironmentCredentialProvider(ai_config)
    client = GenerationClient.from_credentials(credentials, ai_config, RetryPolicy.from_config(ai_config))
    store = store or build_store(app_config)
    ingestor = FileProcessor()
    designer = SlideDesigner()
    content_filter = ContentFilter(client) if app_config.filter_image_prompts else None
    orchestrator = GenerationOrchestrator(client, store, app_config, ingestor=ingestor, designer=designer,
                                          content_filter=content_filter)
    logger.debug(f"Services built with data dir {store.root}")
    return Services(
        ai_config=ai_config,
        app_config=app_config,
        store=store,
        client=client,
        orchestrator=orchestrator,
        ingestor=ingestor,
        designer=designer,
        content_filter=content_filter
    )
