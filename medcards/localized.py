"""
Localized card text.

Card titles and bodies arrive either as a plain string or as an
``{"en": ..., "fr": ...}`` object. Both shapes are normalized here into a
single tagged type so the rest of the code never branches on the raw shape:

    LocalizedText = PlainText | Localized

``to_localized_text`` parses the wire value, ``to_wire`` gives it back in the
shape it came in, and ``text_of`` picks the display string for a language.
"""

from typing import Any, Literal, Union

from pydantic import BaseModel


class PlainText(BaseModel):
    kind: Literal["plain"] = "plain"
    text: str = ""


class Localized(BaseModel):
    kind: Literal["localized"] = "localized"
    en: str = ""
    fr: str = ""


LocalizedText = Union[PlainText, Localized]


def to_localized_text(value: Any) -> LocalizedText:
    """
    Normalize a raw wire value into a `LocalizedText`.

    Strings (and None) become `PlainText`; mappings with `en`/`fr` keys become
    `Localized`; already-normalized values pass through.

    Raises
    ------
    ValueError
        For any other shape.
    """
    if isinstance(value, (PlainText, Localized)):
        return value
    if value is None:
        return PlainText(text="")
    if isinstance(value, str):
        return PlainText(text=value)
    if isinstance(value, dict):
        if value.get("kind") == "plain":
            return PlainText(text=str(value.get("text") or ""))
        if "en" in value or "fr" in value:
            return Localized(en=str(value.get("en") or ""), fr=str(value.get("fr") or ""))
    raise ValueError("expected a string or an object with 'en'/'fr' keys")


def to_wire(value: LocalizedText) -> Union[str, dict]:
    if isinstance(value, Localized):
        return {"en": value.en, "fr": value.fr}
    return value.text


def text_of(value: Any, lang: str = "en") -> str:
    """Display string for `lang`, falling back to the other language."""
    value = to_localized_text(value)
    if isinstance(value, PlainText):
        return value.text
    primary, fallback = (value.fr, value.en) if lang == "fr" else (value.en, value.fr)
    return primary or fallback


def searchable_text(value: Any) -> str:
    """Every variant joined, for search and keyword matching."""
    value = to_localized_text(value)
    if isinstance(value, PlainText):
        return value.text
    return " ".join(part for part in (value.en, value.fr) if part)
