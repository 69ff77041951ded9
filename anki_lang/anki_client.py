"""AnkiConnect client for creating decks and adding notes."""

from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from .models import Note

ANKI_CONNECT_VERSION = 6

log = structlog.get_logger()


class AnkiConnectError(RuntimeError):
    """AnkiConnect could not be reached or reported an error."""


class AnkiConnectClient:
    """Minimal async client for the AnkiConnect add-on."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/") + "/"

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(self.base_url, json=payload) as response:
                    if response.status != 200:
                        body = await response.text()
                        raise AnkiConnectError(f"AnkiConnect HTTP error {response.status}: {body}")
                    return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise AnkiConnectError(f"failed to reach AnkiConnect at {self.base_url}: {e}") from e

    async def invoke(self, action: str, **params) -> Dict[str, Any]:
        """Send one action and return the raw ``{"result", "error"}`` envelope."""
        payload = {"action": action, "version": ANKI_CONNECT_VERSION, "params": params}
        data = await self._post(payload)
        if not isinstance(data, dict):
            raise AnkiConnectError(f"unexpected AnkiConnect response for {action}: {data!r}")
        return data

    async def ensure_deck_exists(self, deck_name: str):
        response = await self.invoke("createDeck", deck=deck_name)

        error = response.get("error")
        if error:
            if "exists" in error:
                log.debug("Deck already exists", deck=deck_name)
                return
            raise AnkiConnectError(f"Anki returned error: {error}")

        log.info("Deck ready", deck=deck_name)

    async def add_notes(self, notes: List[Note]) -> List[Optional[int]]:
        """Add notes; each entry of the result is a note id, or None for a duplicate."""
        if not notes:
            return []

        response = await self.invoke("addNotes", notes=[note.to_anki() for note in notes])

        error = response.get("error")
        if error:
            raise AnkiConnectError(f"Anki returned error: {error}")

        result = response.get("result")
        if result is None:
            raise AnkiConnectError("missing result payload from AnkiConnect addNotes response")
        return result
