"""
Fixed cleaning checklist, keyed by area.
Every new cleaning assignment is seeded with one item per task listed here.
"""
from typing import Dict, Iterator, List, Tuple

from .errors import InvalidInput


CHECKLIST_TEMPLATES: Dict[str, Tuple[str, ...]] = {
    "living_area": (
        "Dust all surfaces",
        "Vacuum or mop floors",
        "Clean windows and mirrors",
        "Empty trash bins",
        "Organize furniture",
        "Clean light fixtures",
    ),
    "bathroom": (
        "Clean toilet",
        "Clean sink and counter",
        "Clean shower/bathtub",
        "Clean mirrors",
        "Mop floor",
        "Empty trash",
        "Restock supplies",
    ),
    "bedroom": (
        "Change bed linens",
        "Dust furniture",
        "Vacuum or mop floors",
        "Organize items",
        "Empty trash",
        "Clean mirrors",
    ),
}


def tasks_for(area: str) -> List[str]:
    try:
        return list(CHECKLIST_TEMPLATES[area])
    except KeyError:
        raise InvalidInput(f"Unknown checklist area: {area}") from None


def iter_template() -> Iterator[Tuple[str, str]]:
    """Yield (area, task_name) pairs in template order."""
    for area, tasks in CHECKLIST_TEMPLATES.items():
        for task_name in tasks:
            yield area, task_name


def template_size() -> int:
    return sum(len(tasks) for tasks in CHECKLIST_TEMPLATES.values())
