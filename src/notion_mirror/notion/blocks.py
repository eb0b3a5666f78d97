"""Pure helpers over Notion block and page JSON objects.

Blocks stay plain dicts, exactly as the Notion API returns and accepts them.
Nothing here mutates its input.
"""

from collections.abc import Iterator

# Fields Notion sets on read and rejects or ignores on append.
VOLATILE_BLOCK_FIELDS: frozenset[str] = frozenset(
    {
        "id",
        "parent",
        "created_time",
        "last_edited_time",
        "last_edited_by",
        "has_children",
        "archived",
        "created_by",
    }
)

MAX_BLOCKS_PER_APPEND = 100


def strip_volatile_fields(block: dict) -> dict:
    """Return a copy of ``block`` without the volatile read-only fields."""
    return {key: value for key, value in block.items() if key not in VOLATILE_BLOCK_FIELDS}


def is_image_block(block: dict) -> bool:
    """True for blocks of type ``image``."""
    return block.get("type") == "image"


def image_source_url(block: dict) -> str | None:
    """Resolve an image block's source URL: hosted file first, then external link."""
    image = block.get("image") or {}
    file_url = (image.get("file") or {}).get("url")
    if file_url:
        return file_url
    return (image.get("external") or {}).get("url") or None


def image_caption(block: dict) -> list[dict]:
    """Return the image caption rich_text list, or an empty list."""
    return list((block.get("image") or {}).get("caption") or [])


def build_external_image_block(url: str, caption: list[dict]) -> dict:
    """Create an image block pointing at an external URL."""
    return {
        "object": "block",
        "type": "image",
        "image": {
            "caption": caption,
            "type": "external",
            "external": {"url": url},
        },
    }


def chunk_blocks(blocks: list[dict], size: int = MAX_BLOCKS_PER_APPEND) -> Iterator[list[dict]]:
    """Yield consecutive slices of at most ``size`` blocks, in order."""
    for i in range(0, len(blocks), size):
        yield blocks[i : i + size]


def page_title(page: dict) -> str | None:
    """Extract the plain-text title from a Notion page object.

    Looks for the property of type ``title`` since its name varies between
    databases. Returns None when the page has no non-empty title.
    """
    for prop in (page.get("properties") or {}).values():
        if not isinstance(prop, dict) or prop.get("type") != "title":
            continue
        parts = [item.get("plain_text", "") for item in prop.get("title") or []]
        title = "".join(parts).strip()
        return title or None
    return None
