"""Experience and level progression."""

from dataclasses import dataclass

# XP needed to go from level n to level n+1 is XP_STEP * n
XP_STEP = 100


@dataclass(frozen=True)
class Progress:
    """A wallet's progression after an XP change."""

    xp: int
    level: int

    @property
    def xp_to_next_level(self) -> int:
        """XP still missing before the next level-up."""
        return xp_for_level(self.level + 1) - self.xp


def xp_for_level(level: int) -> int:
    """Total XP required to reach a level.

    Triangular curve: level 2 at 100 XP, level 3 at 300, level 4 at 600.

    Args:
        level: Target level (1 or higher)

    Returns:
        Total XP threshold for that level
    """
    if level <= 1:
        return 0
    return XP_STEP * (level - 1) * level // 2


def calculate_level(xp: int) -> int:
    """Get the level reached with a given XP total.

    Args:
        xp: Total accumulated XP

    Returns:
        Level, never below 1
    """
    level = 1
    while xp >= xp_for_level(level + 1):
        level += 1
    return level
