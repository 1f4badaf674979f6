"""Split a flat block sequence into chapters at top-level headers."""

from bookle.models import Block, Chapter, Header, plain_text


def _is_chapter_heading(block: Block, max_level: int) -> bool:
    return isinstance(block, Header) and block.level <= max_level


def split_into_chapters(
    blocks: list[Block],
    max_level: int = 2,
    fallback_title: str = "Content",
) -> list[Chapter]:
    """Start a new chapter at every Header with level <= max_level.

    The header's text becomes the chapter title and the header itself stays
    as the first block. Blocks before the first such header form an
    "Untitled" chapter. With no qualifying header at all, everything goes
    into a single chapter named ``fallback_title`` (empty when there were no
    blocks).

    Args:
        blocks: Flat block sequence in reading order
        max_level: Deepest header level that starts a chapter
        fallback_title: Title of the single chapter used without headers

    Returns:
        Chapters in reading order, never empty
    """
    if not any(_is_chapter_heading(b, max_level) for b in blocks):
        return [Chapter(title=fallback_title, content=list(blocks))]

    chapters: list[Chapter] = []
    current: Chapter | None = None

    for block in blocks:
        if _is_chapter_heading(block, max_level):
            if current is not None:
                chapters.append(current)
            current = Chapter(title=plain_text(block.content), content=[block])
        else:
            if current is None:
                current = Chapter(title="Untitled")
            current.add_block(block)

    chapters.append(current)
    return chapters
