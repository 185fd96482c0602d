"""Category families.

A family groups categories that share one auto-detection pipeline. Membership
is data: an explicit id allowlist first, then keywords matched against the
category's display/ancestry path, so a new category under a known branch is
picked up without editing this table.
"""
from dataclasses import dataclass, field
from typing import Optional


VIDEO_GAMES = "video_games"
ELECTRONICS = "electronics"
CLOTHING = "clothing"


@dataclass(frozen=True)
class CategoryFamily:
    name: str
    category_ids: frozenset[str] = field(default_factory=frozenset)
    path_keywords: tuple[str, ...] = ()

    def matches_path(self, path: str) -> bool:
        lowered = path.lower()
        return any(kw in lowered for kw in self.path_keywords)


CATEGORY_FAMILIES: list[CategoryFamily] = [
    CategoryFamily(
        name=VIDEO_GAMES,
        category_ids=frozenset({
            "139973",  # Video Games
            "175672",  # Video Games & Consoles
            "1249",    # Video Games & Consoles (root)
            "139971",  # Video Game Consoles
            "139972",  # Video Game Accessories
            "139976",
            "139977",
            "139978",
        }),
        path_keywords=("video game",),
    ),
    CategoryFamily(
        name=ELECTRONICS,
        category_ids=frozenset({
            "293",     # Consumer Electronics
            "58058",   # Computers/Tablets & Networking
            "9355",    # Cell Phones & Smartphones
            "15032",   # Cell Phones & Accessories
            "171485",  # Tablets & eBook Readers
            "177",     # PC Laptops & Netbooks
        }),
        path_keywords=(
            "electronics", "cell phone", "smartphone", "laptop", "tablet",
            "computer", "headphone", "camera",
        ),
    ),
    CategoryFamily(
        name=CLOTHING,
        category_ids=frozenset({
            "11450",   # Clothing, Shoes & Accessories
            "1059",    # Men's Clothing
            "15724",   # Women's Clothing
            "15687",   # Men's T-Shirts
        }),
        path_keywords=("clothing", "shoes", "apparel"),
    ),
]


def classify(
    category_id: str,
    category_path: str = "",
    families: Optional[list[CategoryFamily]] = None,
) -> Optional[str]:
    """Return the family name for a category, or None if unsupported."""
    table = CATEGORY_FAMILIES if families is None else families
    for family in table:
        if category_id in family.category_ids:
            return family.name
    if category_path:
        for family in table:
            if family.matches_path(category_path):
                return family.name
    return None
