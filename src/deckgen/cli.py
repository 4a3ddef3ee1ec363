"""
deckgen command-line interface
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .core.config import load_settings
from .core.exceptions import DeckGenException, ErrorKind
from .core.logging_config import setup_logging
from .models.project import Audience
from .models.workflow import WorkflowStatus
from .services.content_filter import ContentFilter
from .services.file_processor import FileProcessor
from .services.service_instances import build_services, build_store

logger = logging.getLogger(__name__)


async def _watch_progress(run):
    async for event in run.progress:
        print(f"  {event.state.describe()}")


async def cmd_generate(args, ai_config, app_config) -> int:
    services = build_services(ai_config, app_config)
    try:
        project = await services.store.create(args.name, Audience(args.audience))
        text = None
        if args.text_file is None and not args.files:
            text = sys.stdin.read()
        elif args.text_file is not None:
            with open(args.text_file, 'r', encoding='utf-8') as f:
                text = f.read()

        run = services.orchestrator.create_run(project, text=text, source_paths=args.files)
        print(f"🚀 Generating presentation {project.name} ({project.id})")
        watcher = asyncio.create_task(_watch_progress(run))
        await services.orchestrator.execute(run)
        await watcher

        if run.state.status == WorkflowStatus.READY:
            print(f"✅ Presentation ready with {len(run.project.slides)} slides")
            return 0
        print(f"❌ Generation failed: {run.state.describe()}: {run.error}")
        if run.state.error_kind == ErrorKind.CONTENT_FILTERED:
            print("💡 The content was refused; edit it and run `deckgen check --suggest` for a revision")
        return 1
    finally:
        await services.close()


async def cmd_list(args, ai_config, app_config) -> int:
    store = build_store(app_config)
    projects = await store.load_all()
    if not projects:
        print("No projects found")
        return 0
    for project in projects:
        print(f"{project.id}  {project.modified_at:%Y-%m-%d %H:%M}  "
              f"{project.audience.display_name:<8}  {len(project.slides):>3} slides  {project.name}")
    return 0


async def cmd_duplicate(args, ai_config, app_config) -> int:
    store = build_store(app_config)
    copy = await store.duplicate(args.project_id, args.name)
    print(f"✅ Duplicated as {copy.name} ({copy.id})")
    return 0


async def cmd_delete(args, ai_config, app_config) -> int:
    store = build_store(app_config)
    await store.delete(args.project_id)
    print(f"🗑️  Deleted project {args.project_id}")
    return 0


async def cmd_cleanup(args, ai_config, app_config) -> int:
    store = build_store(app_config)
    removed = await store.cleanup_unused_images()
    size = await store.total_images_size()
    print(f"🧹 Removed {len(removed)} unused images, {size / (1024 * 1024):.1f}MB in use")
    return 0


async def cmd_check(args, ai_config, app_config) -> int:
    services = build_services(ai_config, app_config)
    content_filter = services.content_filter or ContentFilter(services.client)
    audience = Audience(args.audience)
    try:
        with open(args.text_file, 'r', encoding='utf-8') as f:
            content = f.read()
        result = await content_filter.validate_content(content, audience)
        if result.is_approved:
            print(f"✅ Content is suitable for {audience.display_name}")
            return 0
        print(f"⚠️  Content was rejected for {audience.display_name}:")
        for concern in result.concerns:
            print(f"  - {concern}")
        if args.suggest:
            improved = await content_filter.suggest_improvement(content, result.concerns, audience)
            print("\n💡 Suggested revision:\n")
            print(improved)
        return 1
    finally:
        await services.close()


async def cmd_validate_key(args, ai_config, app_config) -> int:
    services = build_services(ai_config, app_config)
    try:
        if await services.client.validate_credential():
            print("✅ API key is valid")
            return 0
        print("❌ API key was rejected")
        return 1
    finally:
        await services.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="deckgen", description="Generate slide decks from documents")
    parser.add_argument("--data-dir", help="Project store directory")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate a new presentation")
    generate.add_argument("name", help="Project name")
    formats = ", ".join(FileProcessor().get_supported_formats())
    generate.add_argument("files", nargs="*", help=f"Documents to import ({formats})")
    generate.add_argument("--audience", choices=[a.value for a in Audience], default=Audience.ADULTS.value)
    generate.add_argument("--text-file", help="Plain text file to use as the document (default: stdin)")
    generate.add_argument("--concurrency", type=int, help="Concurrent requests per stage")
    generate.add_argument("--filter-images", action="store_true",
                          help="Screen image prompts with the content filter first")
    generate.set_defaults(handler=cmd_generate)

    subparsers.add_parser("list", help="List projects").set_defaults(handler=cmd_list)

    duplicate = subparsers.add_parser("duplicate", help="Duplicate a project")
    duplicate.add_argument("project_id")
    duplicate.add_argument("--name", help="Name for the copy")
    duplicate.set_defaults(handler=cmd_duplicate)

    delete = subparsers.add_parser("delete", help="Delete a project and its images")
    delete.add_argument("project_id")
    delete.set_defaults(handler=cmd_delete)

    subparsers.add_parser("cleanup", help="Remove unused image files").set_defaults(handler=cmd_cleanup)
    check = subparsers.add_parser("check", help="Check a text for audience suitability")
    check.add_argument("text_file", help="Text file to check")
    check.add_argument("--audience", choices=[a.value for a in Audience], default=Audience.ADULTS.value)
    check.add_argument("--suggest", action="store_true", help="Suggest a revision when rejected")
    check.set_defaults(handler=cmd_check)

    subparsers.add_parser("validate-key", help="Check the configured API key").set_defaults(
        handler=cmd_validate_key
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {}
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if args.log_level:
        overrides["log_level"] = args.log_level
    if getattr(args, "concurrency", None):
        overrides["max_concurrency"] = args.concurrency
    if getattr(args, "filter_images", False):
        overrides["filter_image_prompts"] = True
    ai_config, app_config = load_settings(**overrides)
    setup_logging(app_config.log_level)

    try:
        return asyncio.run(args.handler(args, ai_config, app_config))
    except DeckGenException as e:
        logger.debug("Command failed", exc_info=True)
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n👋 Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
