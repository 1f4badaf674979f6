"""Block and inline content nodes of the book AST."""

from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import (
    BaseModel,
    Field,
    field_validator,
    model_serializer,
    model_validator,
)


class _Node(BaseModel):
    """Base for tagged AST nodes.

    On the wire every node is ``{"type": tag, "value": payload}``. Nodes with a
    single field (named by ``value_field``) carry that field's value directly as
    the payload and accept it positionally; nodes without fields omit ``value``.
    """

    value_field: ClassVar[str | None] = None

    def __init__(self, *args: Any, **data: Any) -> None:
        if args:
            field_name = type(self).value_field
            if field_name is None or len(args) > 1:
                raise TypeError(
                    f"{type(self).__name__} does not take positional arguments"
                )
            data[field_name] = args[0]
        super().__init__(**data)

    @model_validator(mode="before")
    @classmethod
    def _unwrap_value(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "value" not in data:
            return data
        payload = data["value"]
        rest = {k: v for k, v in data.items() if k != "value"}
        if cls.value_field is not None:
            return {**rest, cls.value_field: payload}
        if isinstance(payload, dict):
            return {**rest, **payload}
        return rest

    @model_serializer(mode="plain")
    def _wrap_value(self) -> dict[str, Any]:
        # Nested nodes are left as models and serialized by their own rule
        data = {
            name: getattr(self, name)
            for name in type(self).model_fields
            if name != "type"
        }
        if self.value_field is not None:
            return {"type": self.type, "value": data[self.value_field]}
        if not data:
            return {"type": self.type}
        return {"type": self.type, "value": data}


# =============================================================================
# Inline nodes
# =============================================================================


class Text(_Node):
    """Plain text."""

    value_field: ClassVar[str | None] = "text"
    type: Literal["text"] = "text"
    text: str


class Bold(_Node):
    value_field: ClassVar[str | None] = "children"
    type: Literal["bold"] = "bold"
    children: list["Inline"] = Field(default_factory=list)


class Italic(_Node):
    value_field: ClassVar[str | None] = "children"
    type: Literal["italic"] = "italic"
    children: list["Inline"] = Field(default_factory=list)


class Code(_Node):
    """Inline code span (text only, no nested markup)."""

    value_field: ClassVar[str | None] = "code"
    type: Literal["code"] = "code"
    code: str


class Link(_Node):
    type: Literal["link"] = "link"
    children: list["Inline"] = Field(default_factory=list)
    url: str


class Superscript(_Node):
    value_field: ClassVar[str | None] = "children"
    type: Literal["superscript"] = "superscript"
    children: list["Inline"] = Field(default_factory=list)


class Subscript(_Node):
    value_field: ClassVar[str | None] = "children"
    type: Literal["subscript"] = "subscript"
    children: list["Inline"] = Field(default_factory=list)


class Strikethrough(_Node):
    value_field: ClassVar[str | None] = "children"
    type: Literal["strikethrough"] = "strikethrough"
    children: list["Inline"] = Field(default_factory=list)


class FootnoteRef(_Node):
    type: Literal["footnote_ref"] = "footnote_ref"
    id: str


class Ruby(_Node):
    """Ruby annotation (CJK reading aids)."""

    type: Literal["ruby"] = "ruby"
    base: str
    annotation: str


class Break(_Node):
    """Hard line break."""

    type: Literal["break"] = "break"


Inline = Annotated[
    Union[
        Text,
        Bold,
        Italic,
        Code,
        Link,
        Superscript,
        Subscript,
        Strikethrough,
        FootnoteRef,
        Ruby,
        Break,
    ],
    Field(discriminator="type"),
]


# =============================================================================
# Block nodes
# =============================================================================


class TableCell(BaseModel):
    """Single table cell."""

    content: list["Inline"] = Field(default_factory=list)
    colspan: int = 1
    rowspan: int = 1


class Header(_Node):
    """Heading, level clamped to 1-6."""

    type: Literal["header"] = "header"
    level: int = 1
    content: list["Inline"] = Field(default_factory=list)
    anchor: str | None = None

    @field_validator("level")
    @classmethod
    def _clamp_level(cls, level: int) -> int:
        return max(1, min(6, level))


class Paragraph(_Node):
    value_field: ClassVar[str | None] = "content"
    type: Literal["paragraph"] = "paragraph"
    content: list["Inline"] = Field(default_factory=list)


class ListBlock(_Node):
    """Ordered or unordered list; each item is a sequence of blocks."""

    type: Literal["list"] = "list"
    items: list[list["Block"]] = Field(default_factory=list)
    ordered: bool = False


class Image(_Node):
    type: Literal["image"] = "image"
    resource_key: str
    caption: str | None = None
    alt: str = ""


class CodeBlock(_Node):
    type: Literal["code_block"] = "code_block"
    lang: str | None = None
    code: str


class Blockquote(_Node):
    value_field: ClassVar[str | None] = "content"
    type: Literal["blockquote"] = "blockquote"
    content: list["Block"] = Field(default_factory=list)


class ThematicBreak(_Node):
    type: Literal["thematic_break"] = "thematic_break"


class Table(_Node):
    type: Literal["table"] = "table"
    headers: list[TableCell] = Field(default_factory=list)
    rows: list[list[TableCell]] = Field(default_factory=list)


class Footnote(_Node):
    """Footnote definition."""

    type: Literal["footnote"] = "footnote"
    id: str
    content: list["Block"] = Field(default_factory=list)


Block = Annotated[
    Union[
        Header,
        Paragraph,
        ListBlock,
        Image,
        CodeBlock,
        Blockquote,
        ThematicBreak,
        Table,
        Footnote,
    ],
    Field(discriminator="type"),
]


for _model in (
    Bold,
    Italic,
    Link,
    Superscript,
    Subscript,
    Strikethrough,
    TableCell,
    Header,
    Paragraph,
    ListBlock,
    Blockquote,
    Table,
    Footnote,
):
    _model.model_rebuild()


def plain_text(inlines: list[Inline]) -> str:
    """Flatten inline content to plain text."""
    parts = []
    for inline in inlines:
        if isinstance(inline, Text):
            parts.append(inline.text)
        elif isinstance(inline, Code):
            parts.append(inline.code)
        elif isinstance(inline, FootnoteRef):
            parts.append(f"[{inline.id}]")
        elif isinstance(inline, Ruby):
            parts.append(inline.base)
        elif isinstance(inline, Break):
            parts.append(" ")
        else:
            parts.append(plain_text(inline.children))
    return "".join(parts)
