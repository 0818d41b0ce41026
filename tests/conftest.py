"""
Shared pytest fixtures for the technology tree planner tests.

Provides:
  - The sample catalog from data/technologies.json
  - A GraphIndex over it
  - A factory for small hand-built catalogs
"""

import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Ensure the project root is on sys.path so main.py and the package import
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from techtree_planner.engine.index import GraphIndex  # noqa: E402
from techtree_planner.models import Technology  # noqa: E402
from techtree_planner.utils.tech_loader import load_technologies  # noqa: E402

DATA_DIR = PROJECT_ROOT / "data"


def make_tech(
    tech_id: str,
    tier: int = 0,
    prerequisites: tuple[str, ...] = (),
    category: str = "physics",
    area: str = "weapons",
    cost: float = 100,
) -> Technology:
    """Minimal Technology for hand-built graphs."""
    return Technology(
        id=tech_id,
        name=tech_id.replace("_", " ").title(),
        tier=tier,
        category=category,
        area=area,
        cost=cost,
        prerequisites=tuple(prerequisites),
    )


@pytest.fixture()
def technologies() -> list[Technology]:
    return load_technologies(DATA_DIR / "technologies.json")


@pytest.fixture()
def index(technologies) -> GraphIndex:
    return GraphIndex.build(technologies)


@pytest.fixture()
def lasers() -> GraphIndex:
    """lasers1 (tier 0, no prerequisites) -> lasers2 (tier 1)."""
    return GraphIndex.build(
        [
            make_tech("lasers1", tier=0),
            make_tech("lasers2", tier=1, prerequisites=("lasers1",)),
        ]
    )


@pytest.fixture()
def cyclic() -> GraphIndex:
    """a -> b -> c -> a, plus d depending on the loop."""
    return GraphIndex.build(
        [
            make_tech("a", tier=1, prerequisites=("c",)),
            make_tech("b", tier=1, prerequisites=("a",)),
            make_tech("c", tier=1, prerequisites=("b",)),
            make_tech("d", tier=2, prerequisites=("c",)),
        ]
    )
