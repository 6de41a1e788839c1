"""
Keyword classifier that groups catalog items into clothing buckets.
"""

from typing import Dict, Iterable, List, Sequence, Tuple

import structlog

from catalog.models import Item
from scheduler.models import Bucket

logger = structlog.get_logger(__name__)


class ClassificationRule:
    """Substring rule over a lowercased title."""

    def __init__(
        self,
        name: str,
        label: str,
        keywords: Sequence[str],
        excludes: Sequence[str] = ()
    ):
        self.name = name
        self.label = label
        self.keywords = tuple(k.lower() for k in keywords)
        self.excludes = tuple(e.lower() for e in excludes)

    def matches(self, title: str) -> bool:
        """Check a lowercased title against the rule."""
        if any(excluded in title for excluded in self.excludes):
            return False
        return any(keyword in title for keyword in self.keywords)

    def __repr__(self) -> str:
        return f"ClassificationRule(name={self.name!r})"


TRACK_PANT_KEYWORDS = ("trackpant", "track pant", "track-pant")

# Order is the order of the bucket messages. "pant" is shared with track pants and
# "tshirt" is a substring of "sweatshirt", so those two rules carry exclusions.
DEFAULT_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule("tshirt", "T-SHIRTS", ("t-shirt", "tshirt", "t shirt"), excludes=("sweatshirt",)),
    ClassificationRule("hoodie", "HOODIES", ("hoodie",)),
    ClassificationRule("sweatshirt", "SWEATSHIRTS", ("sweatshirt",)),
    ClassificationRule("cardigan", "CARDIGANS", ("cardigan",)),
    ClassificationRule("jeans", "JEANS", ("jean",)),
    ClassificationRule("pants", "PANTS", ("pant",), excludes=TRACK_PANT_KEYWORDS),
    ClassificationRule("trouser", "TROUSERS", ("trouser",)),
    ClassificationRule("trackpant", "TRACKPANTS", TRACK_PANT_KEYWORDS),
    ClassificationRule("pyjama", "PYJAMA", ("pyjama", "pajama")),
)


class Classifier:
    """Partition items into non-exclusive buckets by title keywords."""

    def __init__(self, rules: Sequence[ClassificationRule] = DEFAULT_RULES):
        self.rules = tuple(rules)
        self.logger = logger.bind(component="classifier")

    def classify(self, items: Iterable[Item]) -> Dict[str, List[Item]]:
        """
        Assign every item to each bucket whose rule matches its title.

        Args:
            items: Items to classify, in display order

        Returns:
            Mapping of rule name to matched items, one entry per rule in rule order
        """
        buckets: Dict[str, List[Item]] = {rule.name: [] for rule in self.rules}
        skipped = 0

        for item in items:
            if not item.link or not item.title:
                skipped += 1
                continue

            title = item.title.lower()
            for rule in self.rules:
                if rule.matches(title):
                    buckets[rule.name].append(item)

        if skipped:
            self.logger.debug("Skipped items without title or link", skipped=skipped)

        return buckets

    def classify_into_buckets(self, items: Iterable[Item]) -> List[Bucket]:
        """Classify items and wrap the result as labelled buckets."""
        matched = self.classify(items)
        return [
            Bucket(name=rule.name, label=rule.label, items=matched[rule.name])
            for rule in self.rules
        ]

    def labels(self) -> Dict[str, str]:
        """Rule name to display label."""
        return {rule.name: rule.label for rule in self.rules}
