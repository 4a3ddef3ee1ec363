"""
Project store: JSON project records plus a shared image directory
"""

import asyncio
import dataclasses
import io
import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from PIL import Image, UnidentifiedImageError

from ..core.exceptions import ProjectNotFoundError, ProjectStorageError, RunInProgressError
from ..models.project import (
    Audience, ImageData, ImageFormat, Project, ProjectSettings, new_id, now
)

logger = logging.getLogger(__name__)

_PIL_FORMATS = {
    "PNG": ImageFormat.PNG,
    "JPEG": ImageFormat.JPG,
    "WEBP": ImageFormat.WEBP,
}


def _inspect_image(data: bytes) -> Dict[str, Any]:
    """Read pixel size and format with Pillow; falls back to generation defaults"""
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            image_format = _PIL_FORMATS.get(img.format or "")
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not read image metadata: {e}")
        return {"width": 1024, "height": 1024, "format": None}
    return {"width": width, "height": height, "format": image_format}


class ProjectStore:
    """Owns the on-disk layout of projects and their image files.

    Layout under ``root``::

        projects/<project id>.json
        images/<image id>.<ext>

    Image files are exclusively owned by one slide of one project. The
    images directory is shared by every project, so duplicate, cleanup and
    image writes are serialized by a single lock.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        self.projects_dir = self.root / "projects"
        self.images_dir = self.root / "images"
        self.projects_dir.mkdir(parents=True, exist_ok=True)
        self.images_dir.mkdir(parents=True, exist_ok=True)

        self._images_lock = asyncio.Lock()
        # Written by save_image but not yet referenced by a saved project
        self._pending_images: Set[str] = set()
        self._active_runs: Set[str] = set()

    # ------------------------------------------------------------------
    # Generation run bookkeeping
    # ------------------------------------------------------------------

    def begin_generation(self, project_id: str):
        if project_id in self._active_runs:
            raise RunInProgressError(project_id)
        self._active_runs.add(project_id)

    def end_generation(self, project_id: str):
        self._active_runs.discard(project_id)

    def is_generating(self, project_id: str) -> bool:
        return project_id in self._active_runs

    def _ensure_idle(self, project_id: str):
        if project_id in self._active_runs:
            raise RunInProgressError(project_id)

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _project_path(self, project_id: str) -> Path:
        return self.projects_dir / f"{project_id}.json"

    def image_path(self, image_id: str, image_format: ImageFormat = ImageFormat.PNG) -> Path:
        return self.images_dir / f"{image_id}{image_format.file_extension}"

    def _image_file(self, image: ImageData) -> Path:
        if image.local_path:
            return Path(image.local_path)
        return self.image_path(image.id, image.format)

    @staticmethod
    def _write_atomic(path: Path, data: bytes):
        tmp_path = path.with_name(f".{path.name}.tmp")
        with open(tmp_path, 'wb') as f:
            f.write(data)
        os.replace(tmp_path, path)

    async def _run(self, func, *args):
        return await asyncio.get_running_loop().run_in_executor(None, func, *args)

    async def _write_project(self, project: Project):
        payload = json.dumps(project.to_dict(), ensure_ascii=False, indent=2).encode('utf-8')
        try:
            await self._run(self._write_atomic, self._project_path(project.id), payload)
        except OSError as e:
            raise ProjectStorageError(f"Failed to write project {project.id}: {e}") from e

    async def _read_project(self, path: Path) -> Project:
        def _load():
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)

        try:
            data = await self._run(_load)
            return Project.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise ProjectStorageError(f"Failed to read project file {path.name}: {e}") from e

    async def _remove_file(self, path: Path) -> bool:
        """Best-effort delete; a missing file is not an error"""
        try:
            await self._run(path.unlink)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to delete {path}: {e}")
            return False

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create(self, name: str, audience: Audience,
                     settings: Optional[ProjectSettings] = None) -> Project:
        project = Project(name=name, audience=audience, settings=settings or ProjectSettings())
        await self._write_project(project)
        logger.info(f"Created project {project.id} ({name})")
        return project

    def exists(self, project_id: str) -> bool:
        return self._project_path(project_id).exists()

    async def load(self, project_id: str) -> Project:
        path = self._project_path(project_id)
        if not path.exists():
            raise ProjectNotFoundError(project_id)
        return await self._read_project(path)

    async def load_all(self) -> List[Project]:
        """All readable projects, most recently modified first"""
        projects = []
        for path in sorted(self.projects_dir.glob("*.json")):
            try:
                projects.append(await self._read_project(path))
            except ProjectStorageError as e:
                logger.warning(f"Skipping unreadable project: {e}")
        projects.sort(key=lambda project: project.modified_at, reverse=True)
        return projects

    async def save(self, project: Project) -> Project:
        """Persist a project, refreshing its modification timestamp.

        Image files the previously stored version referenced but this
        version no longer does are removed.
        """
        current_ids = set(project.image_ids())
        # Record write and pending hand-off are one step for cleanup
        async with self._images_lock:
            previous_images: Dict[str, ImageData] = {}
            if self.exists(project.id):
                try:
                    previous = await self.load(project.id)
                    previous_images = {image.id: image for image in _images_of(previous)}
                except ProjectStorageError as e:
                    logger.warning(f"Previous version of {project.id} unreadable, not pruning images: {e}")
            dropped = set(previous_images) - current_ids

            project.modified_at = max(now(), project.created_at)
            await self._write_project(project)
            self._pending_images.difference_update(current_ids)
            for image_id in dropped:
                await self._remove_file(self._image_file(previous_images[image_id]))
                logger.debug(f"Removed image {image_id} no longer used by project {project.id}")

        logger.info(f"Saved project {project.id}")
        return project

    async def update(self, project: Project) -> Project:
        return await self.save(project)

    async def delete(self, project_id: str):
        """Delete a project record and, best-effort, every image file it references"""
        self._ensure_idle(project_id)
        project = await self.load(project_id)
        try:
            await self._run(self._project_path(project_id).unlink)
        except OSError as e:
            raise ProjectStorageError(f"Failed to delete project {project_id}: {e}") from e

        async with self._images_lock:
            for image in _images_of(project):
                await self._remove_file(self._image_file(image))
        logger.info(f"Deleted project {project_id}")

    async def duplicate(self, project_id: str, new_name: Optional[str] = None) -> Project:
        """Deep copy a project; every image file is copied, never shared"""
        self._ensure_idle(project_id)
        source = await self.load(project_id)

        copy = Project.from_dict(source.to_dict())
        timestamp = now()
        copy.id = new_id()
        copy.name = new_name or f"{source.name} (Copy)"
        copy.created_at = timestamp
        copy.modified_at = timestamp
        copy.key_points = [dataclasses.replace(point, id=new_id()) for point in copy.key_points]

        copied: List[Path] = []
        async with self._images_lock:
            try:
                for slide in copy.slides:
                    slide.id = new_id()
                    if slide.image_data is None:
                        continue
                    source_file = self._image_file(slide.image_data)
                    slide.image_data.id = new_id()
                    target = self.image_path(slide.image_data.id, slide.image_data.format)
                    await self._run(shutil.copyfile, source_file, target)
                    copied.append(target)
                    slide.image_data.local_path = str(target)
                await self._write_project(copy)
            except (OSError, ProjectStorageError) as e:
                for path in copied:
                    await self._remove_file(path)
                raise ProjectStorageError(f"Failed to duplicate project {project_id}: {e}") from e

        logger.info(f"Duplicated project {project_id} as {copy.id}")
        return copy

    async def export_project(self, project_id: str, destination: Union[str, Path]) -> Path:
        """Write a project's JSON record to ``destination``"""
        project = await self.load(project_id)
        destination = Path(destination)
        payload = json.dumps(project.to_dict(), ensure_ascii=False, indent=2).encode('utf-8')
        try:
            await self._run(self._write_atomic, destination, payload)
        except OSError as e:
            raise ProjectStorageError(f"Failed to export project {project_id}: {e}") from e
        return destination

    async def import_project(self, source: Union[str, Path]) -> Project:
        """Store a project record exported earlier, overwriting any project with its id"""
        project = await self._read_project(Path(source))
        self._ensure_idle(project.id)
        async with self._images_lock:
            await self._write_project(project)
        logger.info(f"Imported project {project.id}")
        return project

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def save_image(self, data: bytes, prompt: Optional[str] = None,
                         source_url: Optional[str] = None,
                         image_format: Optional[ImageFormat] = None) -> ImageData:
        """Write image bytes under a fresh id; the caller attaches the result to a slide"""
        info = _inspect_image(data)
        image_format = info["format"] or image_format or ImageFormat.PNG
        image = ImageData(
            generation_prompt=prompt,
            remote_url=source_url,
            width=info["width"],
            height=info["height"],
            file_size=len(data),
            format=image_format
        )
        path = self.image_path(image.id, image_format)
        async with self._images_lock:
            try:
                await self._run(self._write_atomic, path, data)
            except OSError as e:
                raise ProjectStorageError(f"Failed to write image {image.id}: {e}") from e
            self._pending_images.add(image.id)
        image.local_path = str(path)
        return image

    async def delete_image(self, image: ImageData) -> bool:
        async with self._images_lock:
            self._pending_images.discard(image.id)
            return await self._remove_file(self._image_file(image))

    async def used_image_ids(self) -> Set[str]:
        """Image ids referenced by any stored project, from one snapshot"""
        used: Set[str] = set()
        for project in await self.load_all():
            used.update(project.image_ids())
        return used

    async def cleanup_unused_images(self) -> List[str]:
        """Delete image files no stored project references; returns their ids"""
        async with self._images_lock:
            pending = set(self._pending_images)
            keep = await self.used_image_ids() | pending
            removed = []
            for path in sorted(self.images_dir.iterdir()):
                if not path.is_file() or path.name.startswith("."):
                    continue
                if path.stem in keep:
                    continue
                if await self._remove_file(path):
                    removed.append(path.stem)
        if removed:
            logger.info(f"Removed {len(removed)} unused image files")
        return removed

    async def total_images_size(self) -> int:
        def _size() -> int:
            return sum(path.stat().st_size for path in self.images_dir.iterdir() if path.is_file())

        return await self._run(_size)


def _images_of(project: Project) -> List[ImageData]:
    return [slide.image_data for slide in project.slides if slide.image_data]
