from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from ..config import settings
from ..core.errors import DefinitionLookupError, UnknownProviderError

logger = logging.getLogger(__name__)


class DefinitionProvider(ABC):
    """Abstract base class for external dictionary APIs."""

    name: str = "abstract"

    @abstractmethod
    async def get_definition(self, term: str) -> Optional[str]:
        """
        Return the definition for term, or None when the API has no entry for it.
        Raises DefinitionLookupError for any other failure.
        """
        ...

    def supports_type(self, entry_type: str) -> bool:
        return entry_type == "word"


class FreeDictionaryProvider(DefinitionProvider):
    """https://dictionaryapi.dev/ - no key, English single words only."""

    name = "free-dictionary"
    base_url = "https://api.dictionaryapi.dev/api/v2/entries/en"

    def __init__(
        self,
        timeout_sec: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_sec = timeout_sec if timeout_sec is not None else settings.def_request_timeout_sec
        self.transport = transport

    def build_url(self, term: str) -> str:
        return f"{self.base_url}/{quote(term.strip(), safe='')}"

    async def get_definition(self, term: str) -> Optional[str]:
        url = self.build_url(term)
        logger.debug("Fetching definition for %r", term)

        try:
            async with httpx.AsyncClient(timeout=self.timeout_sec, transport=self.transport) as client:
                r = await client.get(url)
        except httpx.HTTPError as exc:
            raise DefinitionLookupError(f"Free Dictionary API request failed: {exc}") from exc

        if r.status_code == 404:
            logger.info("Definition not found for %r", term)
            return None

        if not r.is_success:
            raise DefinitionLookupError(
                f"Free Dictionary API returned status {r.status_code}: {r.reason_phrase}"
            )

        try:
            data = r.json()
        except ValueError as exc:
            raise DefinitionLookupError("Free Dictionary API returned invalid JSON") from exc

        return self._first_definition(term, data)

    @staticmethod
    def _first_definition(term: str, data: Any) -> Optional[str]:
        if not isinstance(data, list) or not data:
            logger.warning("Unexpected response structure for %r", term)
            return None

        first = data[0]
        meanings = first.get("meanings") if isinstance(first, dict) else None
        if not isinstance(meanings, list) or not meanings:
            logger.warning("No meanings found for %r", term)
            return None

        meaning = meanings[0]
        definitions = meaning.get("definitions") if isinstance(meaning, dict) else None
        if not isinstance(definitions, list) or not definitions:
            logger.warning("No definitions in first meaning for %r", term)
            return None

        first_definition = definitions[0]
        if not isinstance(first_definition, dict):
            return None
        definition = first_definition.get("definition")
        if not isinstance(definition, str):
            return None
        return definition.strip() or None


PROVIDERS: Dict[str, type[DefinitionProvider]] = {
    FreeDictionaryProvider.name: FreeDictionaryProvider,
}


def get_definition_provider(name: str | None = None) -> DefinitionProvider:
    """
    Resolve a provider by explicit name, then DEFINITION_API_PROVIDER,
    then the free-dictionary default.
    """
    selected = name or settings.definition_api_provider or FreeDictionaryProvider.name
    provider_cls = PROVIDERS.get(selected)
    if provider_cls is None:
        raise UnknownProviderError(
            f'Unknown definition API provider: "{selected}". '
            f"Supported providers: {', '.join(sorted(PROVIDERS))}"
        )
    return provider_cls()
