"""Tagged-block parsing for executor payloads and node info.

Executor output is free text that carries:
- exactly one terminal <summary>...</summary> element, and
- zero or more <info type="kind">...</info> elements (e.g. "llm", "search").

The scan is tolerant: surrounding prose and unknown tags are ignored.
<summary> elements nested inside an <info> block (search results carry
their own snippets) are not mistaken for the task summary.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

INFO_KINDS = ("llm", "search")

_INFO_BLOCK_RE = re.compile(
    r"<info\b[^>]*\btype\s*=\s*[\"']([a-zA-Z_-]+)[\"'][^>]*>[\s\S]*?</info>",
    re.IGNORECASE,
)
_SUMMARY_RE = re.compile(r"<summary>[\s\S]*?</summary>", re.IGNORECASE)


@dataclass
class TaggedBlocks:
    """Blocks extracted from one payload, full elements preserved."""

    summary: Optional[str] = None
    info: dict[str, list[str]] = field(default_factory=dict)

    def first_info(self, kind: str) -> str:
        blocks = self.info.get(kind.lower())
        return blocks[0] if blocks else ""

    def info_text(self, kinds: Iterable[str] = INFO_KINDS) -> str:
        """Join the first block of each kind, in the given kind order."""
        parts = [self.first_info(kind) for kind in kinds]
        return "\n\n".join(p for p in parts if p)


def parse_tagged_blocks(text: str) -> TaggedBlocks:
    blocks = TaggedBlocks()
    if not text:
        return blocks

    for match in _INFO_BLOCK_RE.finditer(text):
        kind = match.group(1).lower()
        blocks.info.setdefault(kind, []).append(match.group(0))

    outside_info = _INFO_BLOCK_RE.sub("", text)
    summaries = _SUMMARY_RE.findall(outside_info)
    if len(summaries) > 1:
        logger.warning(
            f"Payload has {len(summaries)} <summary> blocks; keeping the last one"
        )
    if summaries:
        blocks.summary = summaries[-1].strip()

    return blocks


def extract_info_block(text: str, kind: str) -> str:
    """Return the first <info type="kind"> element in ``text`` or ""."""
    if not text:
        return ""
    return parse_tagged_blocks(text).first_info(kind)
