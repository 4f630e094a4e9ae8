"""
Entity classification into popular / growing / decaying.

Categories overlap: each tracked metric signals its own direction, so
an entity with impressions up and clicks down is both growing and
decaying.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from .config import EngineConfig
from .models import Category, Direction, Entity

CLASSIFIER_WHITELIST = [
    Category.POPULAR.value,
    Category.GROWING.value,
    Category.DECAYING.value,
]


class Classifier(ABC):
    """Base class for category predicates."""

    name: str = "base"

    @abstractmethod
    def matches(self, entity: Entity, metrics: Sequence[str] | None = None) -> bool:
        """True if the entity belongs to this category. Never mutates the entity."""


class PopularClassifier(Classifier):
    """Unfiltered default view."""

    name = Category.POPULAR.value

    def matches(self, entity: Entity, metrics: Sequence[str] | None = None) -> bool:
        return True


class _DirectionClassifier(Classifier):
    direction: Direction

    def matches(self, entity: Entity, metrics: Sequence[str] | None = None) -> bool:
        names = metrics if metrics is not None else EngineConfig().tracked_metrics
        for name in names:
            trend = entity.trend(name)
            if trend is not None and trend.direction == self.direction:
                return True
        return False


class GrowingClassifier(_DirectionClassifier):
    """Any tracked metric trending up."""

    name = Category.GROWING.value
    direction = Direction.UP


class DecayingClassifier(_DirectionClassifier):
    """Any tracked metric trending down."""

    name = Category.DECAYING.value
    direction = Direction.DOWN


class ClassifierRegistry:
    """Registry of whitelisted classifiers."""

    def __init__(self):
        self._classifiers = {
            Category.POPULAR.value: PopularClassifier(),
            Category.GROWING.value: GrowingClassifier(),
            Category.DECAYING.value: DecayingClassifier(),
        }

    def get(self, name: str) -> Classifier:
        """Get classifier by name. Raises if not in whitelist."""
        if name not in CLASSIFIER_WHITELIST:
            raise ValueError(f"Classifier '{name}' not in whitelist")
        return self._classifiers[name]

    def is_allowed(self, name: str) -> bool:
        return name in CLASSIFIER_WHITELIST


_registry = ClassifierRegistry()


def _category_name(category: Category | str) -> str:
    return category.value if isinstance(category, Category) else category


def classify(
    entity: Entity,
    category: Category | str,
    metrics: Sequence[str] | None = None,
) -> bool:
    """
    Whether entity falls into category.

    Args:
        entity: Entity to test
        category: popular, growing or decaying
        metrics: Metrics whose trends count (default: the tracked metrics)
    """
    return _registry.get(_category_name(category)).matches(entity, metrics)


def filter_entities(
    entities: Iterable[Entity],
    category: Category | str,
    metrics: Sequence[str] | None = None,
) -> list[Entity]:
    """Entities in category, in input order."""
    classifier = _registry.get(_category_name(category))
    return [entity for entity in entities if classifier.matches(entity, metrics)]


def count_by_category(
    entities: Sequence[Entity],
    metrics: Sequence[str] | None = None,
) -> dict[str, int]:
    """Per-category counts for summary badges. Counts may exceed the total."""
    return {
        name: sum(1 for entity in entities if _registry.get(name).matches(entity, metrics))
        for name in CLASSIFIER_WHITELIST
    }


def is_known_category(category: Category | str) -> bool:
    return _registry.is_allowed(_category_name(category))
