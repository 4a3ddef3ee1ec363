"""
Project aggregate and the value types it owns
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


def new_id() -> str:
    return str(uuid.uuid4())


def now() -> datetime:
    return datetime.now()


def _parse_datetime(value: Optional[str]) -> datetime:
    if not value:
        return now()
    return datetime.fromisoformat(value)


class Audience(Enum):
    """Target audience"""
    KIDS = "kids"
    ADULTS = "adults"
    BUSINESS = "business"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class LayoutType(Enum):
    TITLE_ONLY = "titleOnly"
    TITLE_AND_CONTENT = "titleAndContent"
    TITLE_CONTENT_AND_IMAGE = "titleContentAndImage"
    IMAGE_ONLY = "imageOnly"
    SPLIT_VIEW = "splitView"
    FULL_IMAGE = "fullImage"


class FontSizeSpec(Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    EXTRA_LARGE = "extraLarge"

    @property
    def point_size(self) -> float:
        return {
            FontSizeSpec.SMALL: 14.0,
            FontSizeSpec.MEDIUM: 18.0,
            FontSizeSpec.LARGE: 24.0,
            FontSizeSpec.EXTRA_LARGE: 32.0,
        }[self]

    @property
    def title_point_size(self) -> float:
        return self.point_size * 2


class ImagePosition(Enum):
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"
    BACKGROUND = "background"
    CENTER = "center"


class BulletStyle(Enum):
    DISC = "disc"
    CIRCLE = "circle"
    SQUARE = "square"
    DASH = "dash"
    ARROW = "arrow"
    CHECKMARK = "checkmark"


class ImageFormat(Enum):
    PNG = "png"
    JPG = "jpg"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def file_extension(self) -> str:
        return f".{self.value}"

    @property
    def mime_type(self) -> str:
        if self in (ImageFormat.JPG, ImageFormat.JPEG):
            return "image/jpeg"
        return f"image/{self.value}"

    @classmethod
    def from_mime_type(cls, mime_type: Optional[str]) -> "ImageFormat":
        mime_type = (mime_type or "").lower()
        if "jpeg" in mime_type or "jpg" in mime_type:
            return cls.JPG
        if "webp" in mime_type:
            return cls.WEBP
        return cls.PNG


class DocumentType(Enum):
    DOC = "doc"
    DOCX = "docx"
    TXT = "txt"
    MD = "md"
    RTF = "rtf"


class ImageQuality(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ORIGINAL = "original"


class TransitionStyle(Enum):
    NONE = "none"
    FADE = "fade"
    PUSH = "push"
    REVEAL = "reveal"
    SLIDE_OVER = "slideOver"


@dataclass
class DesignSpec:
    """Audience-driven styling for a slide"""
    layout: LayoutType = LayoutType.TITLE_AND_CONTENT
    background_color: str = "#FFFFFF"
    text_color: str = "#000000"
    font_size: FontSizeSpec = FontSizeSpec.MEDIUM
    font_family: str = "Helvetica"
    image_position: ImagePosition = ImagePosition.RIGHT
    bullet_style: Optional[BulletStyle] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layout": self.layout.value,
            "background_color": self.background_color,
            "text_color": self.text_color,
            "font_size": self.font_size.value,
            "font_family": self.font_family,
            "image_position": self.image_position.value,
            "bullet_style": self.bullet_style.value if self.bullet_style else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DesignSpec':
        bullet_style = data.get("bullet_style")
        return cls(
            layout=LayoutType(data.get("layout", LayoutType.TITLE_AND_CONTENT.value)),
            background_color=data.get("background_color", "#FFFFFF"),
            text_color=data.get("text_color", "#000000"),
            font_size=FontSizeSpec(data.get("font_size", FontSizeSpec.MEDIUM.value)),
            font_family=data.get("font_family", "Helvetica"),
            image_position=ImagePosition(data.get("image_position", ImagePosition.RIGHT.value)),
            bullet_style=BulletStyle(bullet_style) if bullet_style else None,
        )


@dataclass(frozen=True)
class KeyPoint:
    """One teaching point; its order is the 1-based ordinal of its slide"""
    content: str
    order: int
    importance: Optional[str] = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "order": self.order,
            "importance": self.importance,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KeyPoint':
        return cls(
            id=data.get("id") or new_id(),
            content=data["content"],
            order=int(data["order"]),
            importance=data.get("importance"),
        )


@dataclass
class ImageData:
    """A generated or uploaded image file owned by exactly one slide"""
    id: str = field(default_factory=new_id)
    local_path: Optional[str] = None
    remote_url: Optional[str] = None
    generation_prompt: Optional[str] = None
    width: int = 1024
    height: int = 1024
    file_size: int = 0
    format: ImageFormat = ImageFormat.PNG

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "local_path": self.local_path,
            "remote_url": self.remote_url,
            "generation_prompt": self.generation_prompt,
            "width": self.width,
            "height": self.height,
            "file_size": self.file_size,
            "format": self.format.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImageData':
        return cls(
            id=data["id"],
            local_path=data.get("local_path"),
            remote_url=data.get("remote_url"),
            generation_prompt=data.get("generation_prompt"),
            width=int(data.get("width", 1024)),
            height=int(data.get("height", 1024)),
            file_size=int(data.get("file_size", 0)),
            format=ImageFormat(data.get("format", ImageFormat.PNG.value)),
        )


@dataclass
class Slide:
    """A single slide; slide_number mirrors its key point's ordinal"""
    slide_number: int
    title: str
    content: str
    design_spec: DesignSpec = field(default_factory=DesignSpec)
    image_data: Optional[ImageData] = None
    image_prompt: Optional[str] = None
    notes: Optional[str] = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "slide_number": self.slide_number,
            "title": self.title,
            "content": self.content,
            "design_spec": self.design_spec.to_dict(),
            "image_data": self.image_data.to_dict() if self.image_data else None,
            "image_prompt": self.image_prompt,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Slide':
        image_data = data.get("image_data")
        return cls(
            id=data["id"],
            slide_number=int(data["slide_number"]),
            title=data.get("title", ""),
            content=data.get("content", ""),
            design_spec=DesignSpec.from_dict(data.get("design_spec") or {}),
            image_data=ImageData.from_dict(image_data) if image_data else None,
            image_prompt=data.get("image_prompt"),
            notes=data.get("notes"),
        )


@dataclass
class SourceFile:
    """Reference to an imported document"""
    filename: str
    file_type: DocumentType
    path: Optional[str] = None
    file_size: int = 0
    imported_at: datetime = field(default_factory=now)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "file_type": self.file_type.value,
            "path": self.path,
            "file_size": self.file_size,
            "imported_at": self.imported_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceFile':
        return cls(
            id=data["id"],
            filename=data["filename"],
            file_type=DocumentType(data["file_type"]),
            path=data.get("path"),
            file_size=int(data.get("file_size", 0)),
            imported_at=_parse_datetime(data.get("imported_at")),
        )

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> 'SourceFile':
        path = Path(path)
        suffix = path.suffix.lower().lstrip('.')
        file_type = DocumentType.MD if suffix == 'markdown' else DocumentType(suffix)
        return cls(
            filename=path.name,
            file_type=file_type,
            path=str(path.resolve()),
            file_size=path.stat().st_size
        )


@dataclass
class ProjectSettings:
    default_layout: LayoutType = LayoutType.TITLE_CONTENT_AND_IMAGE
    default_font_family: str = "Helvetica"
    default_font_size: FontSizeSpec = FontSizeSpec.MEDIUM
    auto_save_enabled: bool = True
    image_quality: ImageQuality = ImageQuality.HIGH
    slide_transition_style: TransitionStyle = TransitionStyle.FADE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "default_layout": self.default_layout.value,
            "default_font_family": self.default_font_family,
            "default_font_size": self.default_font_size.value,
            "auto_save_enabled": self.auto_save_enabled,
            "image_quality": self.image_quality.value,
            "slide_transition_style": self.slide_transition_style.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectSettings':
        defaults = cls()
        return cls(
            default_layout=LayoutType(data.get("default_layout", defaults.default_layout.value)),
            default_font_family=data.get("default_font_family", defaults.default_font_family),
            default_font_size=FontSizeSpec(data.get("default_font_size", defaults.default_font_size.value)),
            auto_save_enabled=bool(data.get("auto_save_enabled", defaults.auto_save_enabled)),
            image_quality=ImageQuality(data.get("image_quality", defaults.image_quality.value)),
            slide_transition_style=TransitionStyle(
                data.get("slide_transition_style", defaults.slide_transition_style.value)
            ),
        )


@dataclass
class Project:
    """A slide deck project as persisted by the project store"""
    name: str
    audience: Audience
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=now)
    modified_at: datetime = field(default_factory=now)
    source_files: List[SourceFile] = field(default_factory=list)
    key_points: List[KeyPoint] = field(default_factory=list)
    slides: List[Slide] = field(default_factory=list)
    settings: ProjectSettings = field(default_factory=ProjectSettings)

    def image_ids(self) -> List[str]:
        """Ids of every image referenced by this project's slides"""
        return [slide.image_data.id for slide in self.slides if slide.image_data]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "audience": self.audience.value,
            "created_at": self.created_at.isoformat(),
            "modified_at": self.modified_at.isoformat(),
            "source_files": [source.to_dict() for source in self.source_files],
            "key_points": [point.to_dict() for point in self.key_points],
            "slides": [slide.to_dict() for slide in self.slides],
            "settings": self.settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Project':
        return cls(
            id=data["id"],
            name=data["name"],
            audience=Audience(data["audience"]),
            created_at=_parse_datetime(data.get("created_at")),
            modified_at=_parse_datetime(data.get("modified_at")),
            source_files=[SourceFile.from_dict(item) for item in data.get("source_files", [])],
            key_points=[KeyPoint.from_dict(item) for item in data.get("key_points", [])],
            slides=[Slide.from_dict(item) for item in data.get("slides", [])],
            settings=ProjectSettings.from_dict(data.get("settings") or {}),
        )
