"""Turn generated cards into AnkiConnect notes."""

from typing import List

from .models import EnglishClozeCard, HindiCard, Note, NoteOptions


def _note_options() -> NoteOptions:
    return NoteOptions(allow_duplicate=False, duplicate_scope="deck")


def sanitize_tag(value: str) -> str:
    """Anki tags cannot contain whitespace; separators are replaced as well."""
    return "".join(
        "_" if char.isspace() or char in ":;," else char
        for char in value.strip()
    )


def collect_tags(base: List[str], word: str, language_tag: str) -> List[str]:
    tags = list(base)
    for tag in (language_tag, f"word_{sanitize_tag(word)}"):
        if not any(existing.lower() == tag.lower() for existing in tags):
            tags.append(tag)
    return tags


def build_hindi_notes(card: HindiCard, deck: str, base_tags: List[str]) -> List[Note]:
    """Forward (Hindi -> English) and reverse Basic notes for one card."""
    tags = collect_tags(base_tags, card.word, "hindi")
    pairs = [
        (card.hindi_sentence, card.english_sentence),
        (card.english_sentence, card.hindi_sentence),
    ]
    return [
        Note(
            deck_name=deck,
            model_name="Basic",
            fields={"Front": front, "Back": back},
            tags=list(tags),
            options=_note_options(),
        )
        for front, back in pairs
    ]


def build_english_note(card: EnglishClozeCard, deck: str, base_tags: List[str]) -> Note:
    back_extra = f"Explanation: {card.translation.strip()}"
    if card.hint and card.hint.strip():
        back_extra += f"\nHint: {card.hint.strip()}"

    return Note(
        deck_name=deck,
        model_name="Cloze",
        fields={"Text": card.cloze_sentence, "Back Extra": back_extra},
        tags=collect_tags(base_tags, card.word, "english"),
        options=_note_options(),
    )
