"""Book, metadata, chapter and table-of-contents models."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from bookle.models.block import Block
from bookle.models.resource import ResourceStore


def _new_identifier() -> str:
    return str(uuid.uuid4())


class ReadingDirection(str, Enum):
    """Page progression direction."""

    LEFT_TO_RIGHT = "LeftToRight"
    RIGHT_TO_LEFT = "RightToLeft"
    TOP_TO_BOTTOM = "TopToBottom"


class SeriesInfo(BaseModel):
    name: str
    position: float | None = None


class Metadata(BaseModel):
    """Book-level metadata (Dublin Core plus a few extras)."""

    title: str
    creator: list[str] = Field(default_factory=list)
    subject: list[str] = Field(default_factory=list)
    description: str | None = None
    publisher: str | None = None
    date: datetime | None = None
    language: str = "en"
    identifier: str = Field(default_factory=_new_identifier)
    cover_resource_key: str | None = None
    series: SeriesInfo | None = None
    reading_direction: ReadingDirection = ReadingDirection.LEFT_TO_RIGHT
    rights: str | None = None


class Chapter(BaseModel):
    """Chapter title and content blocks."""

    title: str
    id: str | None = None
    content: list[Block] = Field(default_factory=list)

    def add_block(self, block: Block) -> "Chapter":
        self.content.append(block)
        return self


class TocEntry(BaseModel):
    """Single entry in table of contents; level is nesting depth from 0."""

    title: str
    href: str
    level: int = 0
    children: list["TocEntry"] = Field(default_factory=list)

    def add_child(self, child: "TocEntry") -> "TocEntry":
        self.children.append(child)
        return self


class Book(BaseModel):
    """Complete in-memory book: the record every codec reads or writes."""

    id: str = Field(default_factory=_new_identifier)
    metadata: Metadata
    chapters: list[Chapter] = Field(default_factory=list)
    resources: ResourceStore = Field(default_factory=ResourceStore)
    toc: list[TocEntry] = Field(default_factory=list)

    @classmethod
    def new(cls, title: str, language: str = "en") -> "Book":
        return cls(metadata=Metadata(title=title, language=language))

    def add_chapter(self, chapter: Chapter) -> "Book":
        self.chapters.append(chapter)
        return self

    def add_toc_entry(self, entry: TocEntry) -> "Book":
        self.toc.append(entry)
        return self

    @property
    def title(self) -> str:
        return self.metadata.title

    @property
    def primary_author(self) -> str | None:
        return self.metadata.creator[0] if self.metadata.creator else None
