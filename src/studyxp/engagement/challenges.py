"""Daily challenge pool and deterministic selection.

Every user sees the same three challenges on a given calendar day. `type`
decides what counts toward progress; `category` is the diversity key (at most
one challenge per category per day).
"""

from __future__ import annotations

from dataclasses import dataclass

CHALLENGES_PER_DAY = 3
SWEEP_BONUS_XP = 25
SWEEP_BONUS_ID = "sweep_bonus"

# Slot offsets for category / in-category picks
CATEGORY_PRIME = 2654435761
CHALLENGE_PRIME = 40503

CHALLENGE_TYPES = ("task", "flashcard", "assignment", "xp", "any")


@dataclass(frozen=True)
class ChallengeDefinition:
    id: str
    title: str
    description: str
    icon: str
    target_count: int
    xp_reward: int
    type: str
    category: str


CHALLENGE_POOL: list[ChallengeDefinition] = [
    # tasks
    ChallengeDefinition("tasks_2", "Double Check", "Complete 2 tasks today", "check-circle", 2, 15, "task", "tasks"),
    ChallengeDefinition("tasks_3", "Task Tackler", "Complete 3 tasks today", "check-circle", 3, 15, "task", "tasks"),
    ChallengeDefinition("tasks_5", "Task Master", "Complete 5 tasks today", "check-circle", 5, 15, "task", "tasks"),
    # flashcards
    ChallengeDefinition("flashcards_5", "Flash Five", "Study 5 flashcards today", "book-open", 5, 15, "flashcard", "flashcards"),
    ChallengeDefinition("flashcards_10", "Quick Study", "Study 10 flashcards today", "book-open", 10, 15, "flashcard", "flashcards"),
    ChallengeDefinition("flashcards_20", "Card Shark", "Study 20 flashcards today", "book-open", 20, 15, "flashcard", "flashcards"),
    ChallengeDefinition("flashcards_30", "Study Machine", "Study 30 flashcards today", "book-open", 30, 15, "flashcard", "flashcards"),
    # assignments
    ChallengeDefinition("assignments_2", "Double Down", "Finish 2 assignments today", "file-text", 2, 15, "assignment", "assignments"),
    ChallengeDefinition("assignments_3", "Triple Threat", "Finish 3 assignments today", "file-text", 3, 15, "assignment", "assignments"),
    # xp
    ChallengeDefinition("xp_15", "XP Starter", "Earn 15 XP today", "zap", 15, 15, "xp", "xp"),
    ChallengeDefinition("xp_25", "XP Hunter", "Earn 25 XP today", "zap", 25, 15, "xp", "xp"),
    ChallengeDefinition("xp_50", "XP Grinder", "Earn 50 XP today", "zap", 50, 15, "xp", "xp"),
    ChallengeDefinition("xp_75", "XP Machine", "Earn 75 XP today", "zap", 75, 15, "xp", "xp"),
    # volume
    ChallengeDefinition("any_2", "Getting Started", "Complete 2 items today", "target", 2, 15, "any", "volume"),
    ChallengeDefinition("any_4", "Momentum", "Complete 4 items today", "target", 4, 15, "any", "volume"),
    ChallengeDefinition("any_6", "Productive Day", "Complete 6 items today", "target", 6, 15, "any", "volume"),
    ChallengeDefinition("any_8", "On a Roll", "Complete 8 items today", "target", 8, 15, "any", "volume"),
    # grind
    ChallengeDefinition("grind_10", "Grind Mode", "Complete 10 items today", "flame", 10, 15, "any", "grind"),
    ChallengeDefinition("grind_12", "Unstoppable", "Complete 12 items today", "flame", 12, 15, "any", "grind"),
    ChallengeDefinition("grind_15", "Beast Mode", "Complete 15 items today", "flame", 15, 15, "any", "grind"),
]


def hash_date_key(key: str) -> int:
    """djb2 string hash, masked to a positive 31-bit integer at every step."""
    value = 5381
    for char in key:
        value = ((value << 5) + value + ord(char)) & 0x7FFFFFFF
    return value


def group_by_category(pool: list[ChallengeDefinition]) -> dict[str, list[ChallengeDefinition]]:
    """Group the pool by category, keeping first-seen category order."""
    grouped: dict[str, list[ChallengeDefinition]] = {}
    for challenge in pool:
        grouped.setdefault(challenge.category, []).append(challenge)
    return grouped


def select_challenges(
    date_key: str,
    pool: list[ChallengeDefinition] | None = None,
) -> list[ChallengeDefinition]:
    """Pick the day's challenges from distinct categories.

    Pure and deterministic for a given key. Returns fewer than
    CHALLENGES_PER_DAY when the pool has fewer categories.
    """
    seed = hash_date_key(date_key)
    by_category = group_by_category(CHALLENGE_POOL if pool is None else pool)
    categories = list(by_category)

    selected: list[ChallengeDefinition] = []
    used: set[str] = set()
    for slot in range(CHALLENGES_PER_DAY):
        available = [c for c in categories if c not in used]
        if not available:
            break

        category = available[(seed + slot * CATEGORY_PRIME) % len(available)]
        used.add(category)

        candidates = by_category[category]
        selected.append(candidates[(seed + slot * CHALLENGE_PRIME) % len(candidates)])

    return selected
