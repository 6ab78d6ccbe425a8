"""The fixed catalog of module categories.

The registry knows exactly five categories. The catalog is read-only data;
the builder copies it into a fresh CategoryDefinition per build.
"""

from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class CategoryInfo:
    """Static display metadata for a category."""

    name: str
    description: str
    icon: str
    color: str
    priority: int


CATEGORY_CATALOG: MappingProxyType[str, CategoryInfo] = MappingProxyType({
    "development": CategoryInfo(
        name="Development Tools",
        description="Programming languages, version control, and development utilities",
        icon="🛠️",
        color="#007ACC",
        priority=1,
    ),
    "ai-tools": CategoryInfo(
        name="AI Tools",
        description="Artificial Intelligence and Machine Learning development tools",
        icon="🤖",
        color="#FF6B35",
        priority=2,
    ),
    "enterprise": CategoryInfo(
        name="Enterprise",
        description="Security, compliance, and enterprise-specific configurations",
        icon="🏢",
        color="#6F42C1",
        priority=3,
    ),
    "devops": CategoryInfo(
        name="DevOps",
        description="Infrastructure, deployment, and operations tools",
        icon="⚙️",
        color="#28A745",
        priority=4,
    ),
    "platform": CategoryInfo(
        name="Platform",
        description="Operating system and platform-specific configurations",
        icon="💻",
        color="#6C757D",
        priority=5,
    ),
})

# Known category keys, in priority order
CATEGORY_KEYS: tuple[str, ...] = tuple(
    key for key, _ in sorted(CATEGORY_CATALOG.items(), key=lambda item: item[1].priority)
)


def is_known_category(category: str) -> bool:
    """Return True if category is one of the catalog keys."""
    return category in CATEGORY_CATALOG
