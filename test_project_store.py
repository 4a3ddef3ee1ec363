"""
Project store: persistence, image ownership, duplication and cleanup
"""

import asyncio
import io
import json
from pathlib import Path

import pytest
from PIL import Image

from deckgen.core.exceptions import ProjectNotFoundError
from deckgen.models.project import (
    Audience, DesignSpec, DocumentType, FontSizeSpec, ImageFormat, ImageQuality, KeyPoint,
    LayoutType, ProjectSettings, Slide, SourceFile, TransitionStyle
)


async def project_with_images(store, png_factory, count=2, name="Deck"):
    project = await store.create(name, Audience.ADULTS)
    project.key_points = [KeyPoint(content=f"Point {i}", order=i) for i in range(1, count + 1)]
    for i in range(1, count + 1):
        image = await store.save_image(png_factory(color=(i * 50, 0, 0)), prompt=f"Image {i}")
        project.slides.append(Slide(slide_number=i, title=f"Slide {i}", content="body", image_data=image))
    await store.save(project)
    return project


def test_create_and_load_round_trip(store):
    async def scenario():
        project = await store.create("Roundtrip", Audience.BUSINESS)
        project.source_files.append(SourceFile(filename="notes.md", file_type=DocumentType.MD, file_size=42))
        project.key_points = [KeyPoint(content="Only point", order=1, importance="high")]
        project.slides.append(Slide(
            slide_number=1, title="Title", content="Body", notes="Say hello", image_prompt="A cat",
            design_spec=DesignSpec(layout=LayoutType.SPLIT_VIEW, font_size=FontSizeSpec.LARGE)
        ))
        project.settings = ProjectSettings(image_quality=ImageQuality.LOW,
                                           slide_transition_style=TransitionStyle.PUSH)
        await store.save(project)
        return project, await store.load(project.id)

    project, loaded = asyncio.run(scenario())

    assert loaded.to_dict() == project.to_dict()
    assert loaded.slides[0].design_spec.font_size == FontSizeSpec.LARGE
    assert loaded.settings.slide_transition_style == TransitionStyle.PUSH


def test_load_missing_project(store):
    with pytest.raises(ProjectNotFoundError):
        asyncio.run(store.load("does-not-exist"))


def test_save_refreshes_modification_time(store):
    async def scenario():
        project = await store.create("Deck", Audience.ADULTS)
        first = project.modified_at
        await asyncio.sleep(0.01)
        await store.save(project)
        return project, first

    project, first = asyncio.run(scenario())
    assert project.modified_at > first
    assert project.modified_at >= project.created_at


def test_load_all_sorts_by_modification_and_skips_corrupt_files(store):
    async def scenario():
        older = await store.create("Older", Audience.ADULTS)
        await asyncio.sleep(0.01)
        newer = await store.create("Newer", Audience.KIDS)
        (store.projects_dir / "broken.json").write_text("{not json", encoding="utf-8")
        return older, newer, await store.load_all()

    older, newer, projects = asyncio.run(scenario())
    assert [project.id for project in projects] == [newer.id, older.id]


def test_delete_removes_project_and_image_files(store, png_factory):
    async def scenario():
        project = await project_with_images(store, png_factory)
        paths = [Path(slide.image_data.local_path) for slide in project.slides]
        # an already missing file is not an error
        paths[0].unlink()
        await store.delete(project.id)
        return project, paths

    project, paths = asyncio.run(scenario())

    assert not store.exists(project.id)
    assert all(not path.exists() for path in paths)


def test_duplicate_copies_image_files(store, png_factory):
    async def scenario():
        original = await project_with_images(store, png_factory)
        copy = await store.duplicate(original.id)
        return original, copy, await store.load(copy.id)

    original, copy, stored_copy = asyncio.run(scenario())

    assert copy.id != original.id
    assert copy.name == "Deck (Copy)"
    assert stored_copy.to_dict() == copy.to_dict()
    assert {slide.id for slide in copy.slides}.isdisjoint({slide.id for slide in original.slides})
    for source, duplicate in zip(original.slides, copy.slides):
        source_path = Path(source.image_data.local_path)
        copy_path = Path(duplicate.image_data.local_path)
        assert duplicate.image_data.id != source.image_data.id
        assert copy_path != source_path
        assert copy_path.read_bytes() == source_path.read_bytes()

    # mutating one copy leaves the other untouched
    original_bytes = Path(original.slides[0].image_data.local_path).read_bytes()
    Path(copy.slides[0].image_data.local_path).write_bytes(b"changed")
    assert Path(original.slides[0].image_data.local_path).read_bytes() == original_bytes


def test_duplicate_with_name_and_delete_leaves_original_intact(store, png_factory):
    async def scenario():
        original = await project_with_images(store, png_factory)
        copy = await store.duplicate(original.id, "Second deck")
        await store.delete(copy.id)
        return original, copy

    original, copy = asyncio.run(scenario())

    assert copy.name == "Second deck"
    assert all(Path(slide.image_data.local_path).exists() for slide in original.slides)


def test_cleanup_only_removes_unreferenced_images(store, png_factory):
    async def scenario():
        project = await project_with_images(store, png_factory)
        orphan = store.image_path("orphan-image")
        orphan.write_bytes(png_factory())
        pending = await store.save_image(png_factory())
        removed = await store.cleanup_unused_images()
        return project, orphan, pending, removed

    project, orphan, pending, removed = asyncio.run(scenario())

    assert removed == ["orphan-image"]
    assert not orphan.exists()
    assert Path(pending.local_path).exists()
    assert all(Path(slide.image_data.local_path).exists() for slide in project.slides)


def test_cleanup_keeps_images_of_every_project(store, png_factory):
    async def scenario():
        first = await project_with_images(store, png_factory, name="First")
        second = await store.duplicate(first.id)
        removed = await store.cleanup_unused_images()
        used = await store.used_image_ids()
        return first, second, removed, used

    first, second, removed, used = asyncio.run(scenario())

    assert removed == []
    assert used == set(first.image_ids()) | set(second.image_ids())


def test_save_during_cleanup_scan_keeps_the_new_image(store, png_factory, monkeypatch):
    load_all = store.load_all
    scanning = asyncio.Event()

    async def slow_load_all():
        scanning.set()
        await asyncio.sleep(0.05)
        return await load_all()

    monkeypatch.setattr(store, "load_all", slow_load_all)

    async def scenario():
        project = await store.create("Deck", Audience.ADULTS)
        image = await store.save_image(png_factory(), prompt="Sunrise")
        project.slides.append(Slide(slide_number=1, title="Sunrise", content="body", image_data=image))

        cleanup = asyncio.create_task(store.cleanup_unused_images())
        await scanning.wait()
        await store.save(project)
        return image, await cleanup, await store.load(project.id)

    image, removed, saved = asyncio.run(scenario())

    assert removed == []
    assert saved.slides[0].image_data.id == image.id
    assert Path(image.local_path).exists()


def test_delete_image_removes_file_and_pending_entry(store, png_factory):
    async def scenario():
        image = await store.save_image(png_factory())
        deleted = await store.delete_image(image)
        deleted_again = await store.delete_image(image)
        return image, deleted, deleted_again, await store.cleanup_unused_images()

    image, deleted, deleted_again, removed = asyncio.run(scenario())

    assert deleted is True
    assert deleted_again is False
    assert not Path(image.local_path).exists()
    assert removed == []


def test_save_drops_files_of_removed_images(store, png_factory):
    async def scenario():
        project = await project_with_images(store, png_factory)
        dropped = project.slides[1].image_data
        project.slides[1].image_data = None
        await store.save(project)
        return project, dropped

    project, dropped = asyncio.run(scenario())

    assert not Path(dropped.local_path).exists()
    assert Path(project.slides[0].image_data.local_path).exists()


def test_save_image_reads_metadata_with_pillow(store, png_factory):
    buffer = io.BytesIO()
    Image.new("RGB", (40, 30), (0, 0, 255)).save(buffer, format="JPEG")

    async def scenario():
        png = await store.save_image(png_factory(64, 32), prompt="wide")
        jpeg = await store.save_image(buffer.getvalue())
        return png, jpeg

    png, jpeg = asyncio.run(scenario())

    assert (png.width, png.height, png.format) == (64, 32, ImageFormat.PNG)
    assert png.generation_prompt == "wide"
    assert png.local_path.endswith(".png")
    assert (jpeg.width, jpeg.height, jpeg.format) == (40, 30, ImageFormat.JPG)
    assert jpeg.file_size == len(buffer.getvalue())
    assert Path(jpeg.local_path).read_bytes() == buffer.getvalue()


def test_unreadable_image_keeps_default_metadata(store):
    image = asyncio.run(store.save_image(b"not an image", image_format=ImageFormat.WEBP))
    assert (image.width, image.height) == (1024, 1024)
    assert image.format == ImageFormat.WEBP


def test_export_and_import(store, tmp_path, png_factory):
    async def scenario():
        project = await project_with_images(store, png_factory)
        exported = await store.export_project(project.id, tmp_path / "export.json")
        data = json.loads(exported.read_text(encoding="utf-8"))
        data["name"] = "Renamed elsewhere"
        exported.write_text(json.dumps(data), encoding="utf-8")
        imported = await store.import_project(exported)
        return project, imported, await store.load(project.id)

    project, imported, loaded = asyncio.run(scenario())

    assert imported.id == project.id
    assert loaded.name == "Renamed elsewhere"
    assert loaded.modified_at == project.modified_at


def test_total_images_size(store, png_factory):
    async def scenario():
        first = await store.save_image(png_factory())
        second = await store.save_image(png_factory(32, 32))
        return first.file_size + second.file_size, await store.total_images_size()

    expected, total = asyncio.run(scenario())
    assert total == expected
