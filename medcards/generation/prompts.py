"""
Prompt templates for batched card generation.

Three modes share one output contract (a bare JSON array of card objects):

- ``prompt``   : free-form request, N cards per batch;
- ``list``     : one card per item of an explicit list;
- ``document`` : cards extracted from one chunk of an uploaded document.
"""

from typing import List, Optional

SECTION_KEYS = [
    "consultations",
    "prescriptions",
    "investigations",
    "procedures",
    "templates",
    "calculators",
    "urgences",
]
SECTIONS_TEXT = ", ".join(SECTION_KEYS)

OUTPUT_CONTRACT = f"""Each card object must include:
- title (string)
- content (string, HTML only)
- sources (array of strings, MUST be real, verifiable sources such as "UpToDate", \
"Product Monograph", "ACOG Practice Bulletins", "SOGC Clinical Practice Guidelines", \
"Williams Obstetrics", "Harrison's Principles of Internal Medicine")
Optional fields:
- sections (array of section keys chosen from: {SECTIONS_TEXT})

HTML FORMAT REQUIREMENTS:
- Use <h3> headers, <strong> and <u> for key terms, tables for comparisons
- Use <span style='color: #dc2626;'> for warnings
- End with sources: <p><strong>📚 Sources:</strong> ...</p>

JSON FORMATTING RULES (CRITICAL):
- ONLY output a valid JSON array, nothing else
- Properly escape all quotes inside strings
- No trailing commas before ] or }}
- Do NOT include markdown code blocks or any text outside the JSON array"""

PROMPT_MODE = """You are a medical education assistant. Based on the user request, create multiple study cards.

IMPORTANT - Your response MUST be valid JSON only, an array of card objects. No other text.

CRITICAL OUTPUT RULES:
1. Each card MUST be a self-contained, complete card with FULL HTML content.
2. ONE ITEM = ONE CARD: each card covers one single medication/item/topic only.
3. Generate EXACTLY {batch_count} cards in this response.
4. If the user explicitly requests a tab/section, set sections accordingly for ALL cards.
{constraints}
{exclusions}
{contract}"""

LIST_MODE = """You are a medical education assistant. Create one study card for EACH item below, and only for these items.

IMPORTANT - Your response MUST be valid JSON only, an array of card objects. No other text.

ITEMS:
{items}

CRITICAL OUTPUT RULES:
1. Exactly one card per item; the card title must contain the item name.
2. Do NOT combine items and do NOT add items that are not listed.
{constraints}
{contract}"""

DOCUMENT_MODE = """You are a medical education assistant. Extract key medical information from the provided document and create multiple study cards.

IMPORTANT - Your response MUST be valid JSON only, an array of card objects. No other text.

CRITICAL OUTPUT RULES:
1. Divide the document into distinct topics and generate 1 card per topic.
2. Preserve the original content; do NOT summarize away key details.
3. Follow the user's instructions EXACTLY and prioritize their scope above all else.
This is chunk {chunk_number} of {chunk_total}.
{target_hint}
{constraints}
{exclusions}
{contract}"""


def _exclusions(seen_titles: List[str]) -> str:
    if not seen_titles:
        return ""
    # only the most recent titles, to bound prompt size
    recent = seen_titles[-100:]
    return "Do NOT repeat any of these already generated cards:\n" + "\n".join(f"- {t}" for t in recent)


def prompt_mode_messages(request: str, batch_count: int, constraints: str, seen_titles: List[str]) -> List[dict]:
    system = PROMPT_MODE.format(
        batch_count=batch_count,
        constraints=constraints,
        exclusions=_exclusions(seen_titles),
        contract=OUTPUT_CONTRACT,
    )
    return [{"role": "system", "content": system}, {"role": "user", "content": request}]


def list_mode_messages(request: str, items: List[str], constraints: str, context: Optional[str] = None) -> List[dict]:
    system = LIST_MODE.format(
        items="\n".join(f"- {item}" for item in items),
        constraints=constraints,
        contract=OUTPUT_CONTRACT,
    )
    user = request if not context else f"Based on this document:\n\n{context}\n\n{request}"
    return [{"role": "system", "content": system}, {"role": "user", "content": user}]


def document_mode_messages(
    request: str,
    chunk: str,
    chunk_number: int,
    chunk_total: int,
    constraints: str,
    seen_titles: List[str],
    target: Optional[int] = None,
) -> List[dict]:
    target_hint = f"Aim to produce approximately {target} cards from this chunk." if target else ""
    system = DOCUMENT_MODE.format(
        chunk_number=chunk_number,
        chunk_total=chunk_total,
        target_hint=target_hint,
        constraints=constraints,
        exclusions=_exclusions(seen_titles),
        contract=OUTPUT_CONTRACT,
    )
    user = f"Based on this document:\n\n{chunk}\n\n{request}"
    return [{"role": "system", "content": system}, {"role": "user", "content": user}]
