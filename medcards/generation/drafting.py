"""
Single-card drafting: create a card from a prompt, or edit an existing one.

The model answers with styled HTML rather than JSON. The title is the first
``<strong>`` element, and sources come from the trailing
``<p><strong>📚 Sources:</strong> a, b</p>`` paragraph. Both are removed
from the returned content. In edit mode the current card HTML is part of
the system prompt, and the model must return the whole card with its
existing sections kept.
"""

import re
from typing import List, Optional

from medcards.generation.parsing import strip_code_fences

TITLE_FALLBACK_LENGTH = 50

FORMAT_RULES = """OUTPUT FORMAT - Generate only valid, visually engaging HTML:
- Start with title tag: <strong>🎯 Card Title</strong>
- Use <h3> with color and margin for section headers
- Use relevant emojis throughout (🔍 📋 ⚠️ 💊 🩺 ⚡ 🧪)
- Use <strong>bold</strong> and <u>underline</u> for key terms
- Use <ul><li> for bullet points and <ol><li> for numbered protocols
- Use <table border='1' style='border-collapse: collapse; width: 100%; margin: 0.5em 0;'> for comparisons, dosing and lab values
- Use <span style='color: #dc2626;'>red text</span> for warnings and contraindications
- Use <span style='background-color: #fef3c7; padding: 2px 4px;'>yellow highlighting</span> for key points
- End with sources: <p><strong>📚 Sources:</strong> Source1, Source2</p>

Clean, semantic HTML only. No markdown."""

CREATE_PROMPT = f"""You are a medical education assistant creating quick-reference study cards for medical students during clinical rotations.

Create a concise, accurate, clinically useful card that is easy to scan.

{FORMAT_RULES}"""

EDIT_PROMPT = """You are a medical education assistant helping EDIT and ENHANCE an existing study card for medical students during clinical rotations.

EDITING RULES:
1. PRESERVE all existing content unless explicitly asked to remove or change something
2. When asked to "add" or "include" something, add it without removing anything
3. When asked to "change" or "fix" something, only modify that part
4. If a placement is given (e.g. "between Diagnostic Approach and Common Causes"), insert exactly there
5. ALWAYS return the FULL updated card, never only the new section

CURRENT CONTENT:
{current_content}

{format_rules}

CRITICAL: Return the complete updated HTML for the entire card."""

_TITLE = re.compile(r"<strong>(.+?)</strong>", re.S)
_SOURCES = re.compile(r"<strong>[^<]*Sources:\s*</strong>\s*([^<]+)", re.I)
_SOURCES_PARAGRAPH = re.compile(r"<p>(?:(?!</p>).)*?<strong>[^<]*Sources:\s*</strong>.*?</p>", re.I | re.S)
_H3 = re.compile(r"<h3[^>]*>(.+?)</h3>", re.S)
_TAG = re.compile(r"<[^>]+>")


def is_editing(current_content: Optional[str]) -> bool:
    return bool(current_content and current_content.strip())


def draft_messages(prompt: str, history: Optional[List[dict]] = None, current_content: Optional[str] = None) -> List[dict]:
    """
    Chat messages for one drafting turn.

    Parameters
    ----------
    prompt : str
        The user's latest instruction.
    history : list[dict], optional
        Earlier ``{role, content}`` turns of the same drafting conversation.
    current_content : str, optional
        HTML of the card being edited. Empty or missing means create mode.
    """
    if is_editing(current_content):
        system = EDIT_PROMPT.format(current_content=current_content, format_rules=FORMAT_RULES)
    else:
        system = CREATE_PROMPT
    turns = [{"role": m["role"], "content": m["content"]} for m in history or []]
    return [{"role": "system", "content": system}, *turns, {"role": "user", "content": prompt}]


def _plain(html: str) -> str:
    return re.sub(r"\s+", " ", _TAG.sub(" ", html)).strip()


def parse_draft_response(raw: str) -> dict:
    """Split a drafted card into ``{title, content, sources}``."""
    content = strip_code_fences(raw)
    title = ""
    sources: List[str] = []

    match = _TITLE.search(content)
    if match and "sources:" not in match.group(1).lower():
        title = _plain(match.group(1))
        content = (content[:match.start()] + content[match.end():]).strip()

    match = _SOURCES.search(content)
    if match:
        sources = [s.strip() for s in match.group(1).split(",") if s.strip()]
        content = _SOURCES_PARAGRAPH.sub("", content, count=1).strip()

    if not title:
        heading = _H3.search(content)
        if heading:
            title = _plain(heading.group(1))
        else:
            text = _plain(content)
            title = text[:TITLE_FALLBACK_LENGTH] + "..." if len(text) > TITLE_FALLBACK_LENGTH else text

    return {"title": title or "Untitled", "content": content, "sources": sources}
