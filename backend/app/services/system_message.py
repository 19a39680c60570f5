"""
System message derivation for bot personalities.

WHAT: Renders a knowledge base item into the text that the n8n AI Agent
node uses as its system message.

WHY: The same rendering feeds the remote n8n push, the local workflow cache
and the stored BotPersonality.system_message, so it lives in one pure
module with no I/O.

HOW: Knowledge content comes from a rich-text editor, so HTML is reduced
to plain text first. Layout:

    === KNOWLEDGE BASE CONTENT ===
    <content>

    === FREQUENTLY ASKED QUESTIONS ===

    Q1: <question>
    A1: <answer>
    Context: <context>
    Keywords: <k1>, <k2>

Either section is omitted when it has nothing to show.
"""

import html
import re
from typing import Any, Iterable, Optional

KNOWLEDGE_BASE_HEADER = "=== KNOWLEDGE BASE CONTENT ==="
FAQ_HEADER = "=== FREQUENTLY ASKED QUESTIONS ==="

# Closing block tags and <br> end a line of text
_BLOCK_BREAK_RE = re.compile(
    r"<br\s*/?>|</p\s*>|</div\s*>|</li\s*>|</h[1-6]\s*>|</tr\s*>",
    re.IGNORECASE,
)
_TAG_RE = re.compile(r"<[^>]+>")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")


def clean_html(text: Optional[str]) -> str:
    """
    Convert rich-text HTML into plain text with line breaks preserved.

    Args:
        text: HTML or plain text (None is treated as empty)

    Returns:
        Plain text, trimmed, with at most one blank line between paragraphs
    """
    if not text:
        return ""

    cleaned = text.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = _BLOCK_BREAK_RE.sub("\n", cleaned)
    cleaned = _TAG_RE.sub("", cleaned)
    cleaned = html.unescape(cleaned).replace("\xa0", " ")
    cleaned = "\n".join(line.rstrip() for line in cleaned.split("\n"))
    cleaned = _EXCESS_NEWLINES_RE.sub("\n\n", cleaned)
    return cleaned.strip()


def _format_keywords(keywords: Any) -> str:
    if not keywords:
        return ""
    if isinstance(keywords, str):
        return keywords.strip()
    return ", ".join(str(keyword).strip() for keyword in keywords if str(keyword).strip())


def build_system_message(content: Optional[str], qa_items: Iterable[Any]) -> str:
    """
    Build the system message from knowledge content and Q&A entries.

    Args:
        content: Knowledge base item content (may contain HTML)
        qa_items: Active Q&A entries in display order. Each needs
            question and answer attributes; context and keywords are optional.

    Returns:
        The rendered system message; empty string when there is neither
        content nor any Q&A entry
    """
    parts = []

    main_content = clean_html(content)
    if main_content:
        parts.extend([KNOWLEDGE_BASE_HEADER, main_content, ""])

    qa_list = list(qa_items)
    if qa_list:
        parts.append(FAQ_HEADER)
        for index, qa in enumerate(qa_list, start=1):
            parts.append("")
            parts.append(f"Q{index}: {(qa.question or '').strip()}")
            parts.append(f"A{index}: {(qa.answer or '').strip()}")

            context = (getattr(qa, "context", None) or "").strip()
            if context:
                parts.append(f"Context: {context}")

            keywords = _format_keywords(getattr(qa, "keywords", None))
            if keywords:
                parts.append(f"Keywords: {keywords}")

    return "\n".join(parts).strip()
