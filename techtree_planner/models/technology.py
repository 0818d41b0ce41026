"""Technology data models."""

from dataclasses import dataclass
from enum import Enum


class Category(Enum):
    """Research categories, one research lane each."""

    PHYSICS = "physics"
    SOCIETY = "society"
    ENGINEERING = "engineering"


@dataclass(frozen=True)
class Technology:
    """Represents a technology node in the research graph."""

    id: str
    name: str
    tier: int
    category: str  # e.g., "physics"
    area: str  # e.g., "weapons"
    cost: float = 0
    description: str = ""
    prerequisites: tuple[str, ...] = ()
    display_name: str = ""
    is_starting_tech: bool = False
    is_rare: bool = False
    is_dangerous: bool = False
    source_mod: str | None = None  # None for base game

    @property
    def label(self) -> str:
        """Name shown to the user."""
        return self.display_name or self.name or self.id

    @property
    def is_root(self) -> bool:
        """Tier 0 technology without prerequisites."""
        return self.tier == 0 and not self.prerequisites

    def to_dict(self) -> dict:
        """Serialize using the catalog's camelCase keys."""
        return {
            "id": self.id,
            "name": self.name,
            "displayName": self.label,
            "tier": self.tier,
            "category": self.category,
            "area": self.area,
            "cost": self.cost,
            "description": self.description,
            "prerequisites": list(self.prerequisites),
            "isStartingTech": self.is_starting_tech,
            "isRare": self.is_rare,
            "isDangerous": self.is_dangerous,
            "sourceMod": self.source_mod,
        }
