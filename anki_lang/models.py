"""Data models for the Anki language card generator."""

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EnglishClozePayload(BaseModel):
    """JSON object the model returns for an English cloze card."""

    word: str
    cloze_sentence: str
    translation: str
    hint: Optional[str] = None


class HindiCardPayload(BaseModel):
    """JSON object the model returns for a Hindi sentence card."""

    word: str
    hindi_sentence: str
    english_sentence: str


class EnglishClozeCard(BaseModel):
    """A finished English cloze card, ready to be turned into a note."""

    word: str
    cloze_sentence: str
    translation: str
    hint: Optional[str] = None


class HindiCard(BaseModel):
    """A finished Hindi/English sentence pair."""

    word: str
    hindi_sentence: str
    english_sentence: str


class NoteOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    allow_duplicate: Optional[bool] = None
    duplicate_scope: Optional[str] = None


class Note(BaseModel):
    """A note in the shape AnkiConnect's ``addNotes`` expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True,
                              protected_namespaces=())

    deck_name: str
    model_name: str
    note_fields: Dict[str, str] = Field(alias="fields")
    tags: List[str] = Field(default_factory=list)
    options: Optional[NoteOptions] = None

    def to_anki(self) -> dict:
        """Serialize with camelCase keys, omitting unset options and empty tags."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        if not self.tags:
            data.pop("tags")
        return data


class ProcessingResult(BaseModel):
    """Outcome of processing one word through a workflow."""

    word: str
    card: Optional[Union[EnglishClozeCard, HindiCard]] = None
    note_ids: List[Optional[int]] = Field(default_factory=list)
    skipped: bool = False
    error: Optional[str] = None
