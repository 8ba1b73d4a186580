"""
Persona models.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CoreTraits(BaseModel):
    """Personality profile that shapes generated replies."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    social_energy: str = ""
    persona: str = ""
    response_style: str = ""
    comfort_zone: str = ""
    social_skill_level: str = ""


class Character(BaseModel):
    """A persona bound to a conversation. Immutable once resolved."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str
    name: str
    type: str = "practice_partner"
    gender: Optional[str] = None
    description: str = ""
    avatar: Optional[str] = None
    core_traits: CoreTraits = Field(default_factory=CoreTraits)
    interests: List[str] = Field(default_factory=list)
    knowledge_areas: Dict[str, List[str]] = Field(default_factory=dict)
    behavioral_rules: List[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.id
