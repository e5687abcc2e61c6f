"""
Request Parser

Turns a free-text (or voice-transcribed) ordering request into an Intent by
lexical pattern matching. Parsing never fails: anything it cannot recognise
falls back to a default.

Example:
    >>> intent = parse_user_message("нас трое, бюджет 30 000, кальян обязателен, без алкоголя")
    >>> intent.people, intent.budget, intent.must_have, intent.exclude
    (3, 30000, ['hookah'], [<Tag.NO_ALCOHOL: 'no-alcohol'>])
"""

import logging
import re
from dataclasses import dataclass, field

from smartmenu.services.catalog import Category, Tag

logger = logging.getLogger(__name__)

DEFAULT_PEOPLE = 2
DEFAULT_BUDGET = 30000

PEOPLE_PATTERN = re.compile(r"(?<!\d)(\d{1,2})\s*(человек|чел|людей|нас|гост|персон)")
WE_ARE_PATTERN = re.compile(r"нас\s+(\d{1,2})(?!\d)")
BUDGET_PATTERN = re.compile(
    r"(\d[\d\s]*)\s*₸|бюджет\s*(\d[\d\s]*)|(\d[\d\s]*)\s*тенге|(\d[\d\s]*)\s*тг"
)

# Applied in order after the regexes; a later word wins.
PEOPLE_WORDS = {
    "двое": 2,
    "трое": 3,
    "четверо": 4,
    "пятеро": 5,
    "шестеро": 6,
}

MUST_HAVE_TRIGGERS = [
    (Category.HOOKAH, ("кальян",)),
    (Category.SETS, ("центр", "сет")),
]

EXCLUDE_TRIGGERS = [
    (Tag.NO_ALCOHOL, ("без алкоголя", "безалкоголь")),
    (Tag.HALAL, ("без свинины", "халяль")),
    (Tag.NOT_SPICY, ("не остр", "без остр")),
    (Tag.VEGAN, ("веган",)),
]

PREFERENCE_TRIGGERS = [
    (Tag.SWEET, ("сладк",)),
    (Tag.FOR_HOOKAH, ("под кальян",)),
]


@dataclass
class Intent:
    """
    Structured reading of one ordering request.

    ``exclude`` is handed to the catalog tag filter as-is, which keeps only
    items carrying every listed tag (so "halal" means "halal only").
    ``preferences`` is carried through but not used for scoring.
    """
    people: int = DEFAULT_PEOPLE
    budget: int = DEFAULT_BUDGET
    must_have: list[str] = field(default_factory=list)
    exclude: list[Tag] = field(default_factory=list)
    preferences: list[Tag] = field(default_factory=list)


def _parse_people(lower: str) -> int:
    people = DEFAULT_PEOPLE

    match = PEOPLE_PATTERN.search(lower)
    if match:
        people = int(match.group(1))

    match = WE_ARE_PATTERN.search(lower)
    if match:
        people = int(match.group(1))

    for word, count in PEOPLE_WORDS.items():
        if word in lower:
            people = count

    return people


def _parse_budget(lower: str) -> int:
    match = BUDGET_PATTERN.search(lower)
    if not match:
        return DEFAULT_BUDGET
    raw = next(group for group in match.groups() if group)
    return int(re.sub(r"\s", "", raw))


def _collect(lower: str, triggers) -> list:
    found = []
    for value, phrases in triggers:
        if any(phrase in lower for phrase in phrases):
            found.append(value)
    return found


def parse_user_message(message: str) -> Intent:
    """Map an arbitrary string to an Intent, defaulting every undetected field."""
    lower = message.lower()

    intent = Intent(
        people=_parse_people(lower),
        budget=_parse_budget(lower),
        must_have=[category.value for category in _collect(lower, MUST_HAVE_TRIGGERS)],
        exclude=_collect(lower, EXCLUDE_TRIGGERS),
        preferences=_collect(lower, PREFERENCE_TRIGGERS),
    )

    logger.debug(
        f"Parsed request: people={intent.people} budget={intent.budget} "
        f"must_have={intent.must_have} exclude={[t.value for t in intent.exclude]}"
    )
    return intent
