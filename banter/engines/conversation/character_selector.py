"""
Character Selector - resolves which persona backs a new conversation.

Priority:
1. ``config.character`` (fully resolved persona) is used verbatim
2. ``config.character_id`` is resolved from the persona catalog
3. Scenarios pick uniformly at random from ``scenario.characters_present``
4. The default persona
"""

import random
from typing import Optional, Protocol, Union

from banter.kernel.models.character import Character
from banter.kernel.models.conversation import ConversationKind, LessonConfig, ScenarioConfig
from banter.logging_config import get_logger

logger = get_logger(__name__)


class CharacterCatalog(Protocol):
    def resolve_character(self, character_id: str) -> Optional[Character]: ...
    def default_character(self) -> Character: ...


class CharacterSelector:
    """Resolves a persona once per conversation. Randomness is injectable."""

    def __init__(self, catalog: CharacterCatalog, rng: Optional[random.Random] = None):
        self.catalog = catalog
        self.rng = rng or random.Random()

    def select(
        self,
        kind: ConversationKind,
        config: Union[LessonConfig, ScenarioConfig],
    ) -> Character:
        if config.character is not None:
            return config.character

        if config.character_id:
            return self._resolve_or_default(config.character_id)

        if kind == ConversationKind.SCENARIO and isinstance(config, ScenarioConfig):
            present = config.scenario.characters_present if config.scenario else ()
            if present:
                return self._resolve_or_default(self.rng.choice(present))

        return self.catalog.default_character()

    def _resolve_or_default(self, character_id: str) -> Character:
        character = self.catalog.resolve_character(character_id)
        if character is None:
            logger.warning(
                "Unknown character id, using default persona",
                extra={"character_id": character_id},
            )
            return self.catalog.default_character()
        return character
