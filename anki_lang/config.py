"""Configuration and runtime constants."""

import os
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from dotenv import load_dotenv
from platformdirs import user_config_dir
from pydantic import BaseModel, Field, ValidationError

load_dotenv()

log = structlog.get_logger()

APP_NAME = "anki-lang"
CONFIG_FILE = "config.yaml"

# Model Configuration
DEFAULT_MODEL = "gpt-4o"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TEMPERATURE = 0.7

# Anki Configuration
DEFAULT_ANKI_URL = "http://127.0.0.1:8765"
HINDI_DECK = "Hindi Sentence Practice"
ENGLISH_DECK = "English Cloze Practice"
DEFAULT_TAGS = ["generated"]

# Pipeline Configuration
MAX_PARALLEL_REQUESTS = int(os.getenv("MAX_PARALLEL_REQUESTS", "4"))

# Testing Configuration
LIVE_TESTING = os.getenv("ANKI_LANG_LIVE", "0") == "1"

DECK_FIELDS = ("hindi_deck", "english_deck")


class ConfigError(ValueError):
    """Settings could not be assembled from the config file and environment."""


class FileConfig(BaseModel):
    """Keys accepted in the YAML config file; all optional."""

    openai_api_key: Optional[str] = None
    openai_model: Optional[str] = None
    openai_base_url: Optional[str] = None
    anki_connect_url: Optional[str] = None
    hindi_deck: Optional[str] = None
    english_deck: Optional[str] = None
    temperature: Optional[float] = None
    tags: Optional[List[str]] = None


class ConfigOverrides(BaseModel):
    """Values supplied on the command line for a single run."""

    model: Optional[str] = None
    anki_url: Optional[str] = None
    hindi_deck: Optional[str] = None
    english_deck: Optional[str] = None
    temperature: Optional[float] = None
    extra_tags: Optional[List[str]] = None


class Settings(BaseModel):
    """Resolved settings for a run."""

    openai_api_key: str
    openai_model: str = DEFAULT_MODEL
    openai_base_url: str = DEFAULT_BASE_URL
    anki_connect_url: str = DEFAULT_ANKI_URL
    hindi_deck: str = HINDI_DECK
    english_deck: str = ENGLISH_DECK
    temperature: float = DEFAULT_TEMPERATURE
    tags: List[str] = Field(default_factory=lambda: list(DEFAULT_TAGS))
    config_path: Optional[Path] = None


def default_config_path() -> Path:
    return Path(user_config_dir(APP_NAME)) / CONFIG_FILE


def read_config_file(path: Path) -> FileConfig:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to read config file at {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config file at {path} must contain a mapping")

    try:
        return FileConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"failed to parse config file at {path}: {e}") from e


def load_file_config(path: Optional[Path]) -> FileConfig:
    """Read an explicit config file, or the default one if it exists."""
    if path is not None:
        if not path.exists():
            raise ConfigError(f"config path {path} does not exist")
        return read_config_file(path)

    default_path = default_config_path()
    if default_path.exists():
        return read_config_file(default_path)

    return FileConfig()


def _clean_tags(tags: List[str]) -> List[str]:
    return [tag.strip() for tag in tags if tag.strip()]


def merge_tags(base: List[str], extra: Optional[List[str]]) -> List[str]:
    """Append ``extra`` tags to ``base``, skipping case-insensitive duplicates."""
    tags = _clean_tags(base) or list(DEFAULT_TAGS)
    for tag in _clean_tags(extra or []):
        if not any(existing.lower() == tag.lower() for existing in tags):
            tags.append(tag)
    return tags


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def load_settings(config_path: Optional[Path] = None,
                  overrides: Optional[ConfigOverrides] = None) -> Settings:
    """Resolve settings: CLI overrides, then config file, then environment, then defaults."""
    overrides = overrides or ConfigOverrides()
    file_config = load_file_config(config_path)

    api_key = _first(file_config.openai_api_key, os.getenv("OPENAI_API_KEY"))
    if not api_key:
        raise ConfigError("missing OpenAI API key; set OPENAI_API_KEY or add it to the config file")

    env_temperature = os.getenv("OPENAI_TEMPERATURE")

    settings = Settings(
        openai_api_key=api_key,
        openai_model=_first(overrides.model, file_config.openai_model,
                            os.getenv("OPENAI_MODEL"), DEFAULT_MODEL),
        openai_base_url=_first(file_config.openai_base_url, os.getenv("OPENAI_BASE_URL"),
                               DEFAULT_BASE_URL),
        anki_connect_url=_first(overrides.anki_url, file_config.anki_connect_url,
                                os.getenv("ANKI_CONNECT_URL"), DEFAULT_ANKI_URL),
        hindi_deck=_first(overrides.hindi_deck, file_config.hindi_deck, HINDI_DECK),
        english_deck=_first(overrides.english_deck, file_config.english_deck, ENGLISH_DECK),
        temperature=_first(overrides.temperature, file_config.temperature,
                           float(env_temperature) if env_temperature else None,
                           DEFAULT_TEMPERATURE),
        tags=merge_tags(_first(file_config.tags, DEFAULT_TAGS), overrides.extra_tags),
        config_path=config_path or default_config_path(),
    )

    log.debug("Settings loaded",
              model=settings.openai_model,
              anki_url=settings.anki_connect_url,
              config_path=str(settings.config_path))
    return settings


def save_deck(settings: Settings, field: str, deck_name: str):
    """Persist a deck name to the config file so later runs reuse it."""
    if field not in DECK_FIELDS:
        raise ConfigError(f"unknown deck field: {field}")

    path = settings.config_path or default_config_path()

    data = {}
    if path.exists():
        data = read_config_file(path).model_dump(exclude_none=True)
    data[field] = deck_name

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)

    log.debug("Deck saved to config file", field=field, deck=deck_name, path=str(path))
