"""
Class Classifier

Assigns every session exactly one category from its title.

Category vocabularies overlap ("Sculpt & Flow", "Slow Flow", "Hot Flow"),
so rules are tried top to bottom and the first match wins. Keep the most
specific categories first.
"""

import json
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

FALLBACK_CATEGORY = "other"

# Categories end up in calendar file names
CATEGORY_SLUG = re.compile(r"[a-z0-9-]+")


@dataclass(frozen=True)
class CategoryRule:
    """A category and the lower-case title fragments that select it."""
    category: str
    patterns: Tuple[str, ...]
    label: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.label or self.category.replace("-", " ").title()


DEFAULT_RULES: Tuple[CategoryRule, ...] = (
    CategoryRule("sculpt", ("sculpt",)),
    CategoryRule("power", ("power",)),
    CategoryRule("signature-hot", ("y6 hot", "signature hot", "hot yoga", "hot 60"), "Signature Hot"),
    CategoryRule("restore-yin", ("restore", "restorative", "yin"), "Restore & Yin"),
    CategoryRule("slow-flow", ("slow flow",), "Slow Flow"),
    CategoryRule("mobility", ("mobility", "deep stretch", "stretch")),
    CategoryRule("flow", ("hot flow", "flow", "vinyasa")),
    CategoryRule("private", ("private", "1:1", "one-on-one")),
    CategoryRule("special-events", ("workshop", "teacher training", "masterclass", "special event"), "Special Events"),
)


class Classifier:
    """Ordered, first-match-wins title classifier."""

    def __init__(self, rules: Iterable[CategoryRule] = DEFAULT_RULES,
                 fallback: str = FALLBACK_CATEGORY):
        self.rules: List[CategoryRule] = [
            CategoryRule(r.category, tuple(p.lower() for p in r.patterns), r.label)
            for r in rules
            if r.category != fallback
        ]
        self.fallback = fallback

    @property
    def categories(self) -> List[str]:
        """Every category this classifier can return, fallback last."""
        return [rule.category for rule in self.rules] + [self.fallback]

    def display_name(self, category: str) -> str:
        for rule in self.rules:
            if rule.category == category:
                return rule.display_name
        return category.replace("-", " ").title()

    def classify(self, title: Optional[str]) -> str:
        text = (title or "").lower()
        for rule in self.rules:
            if any(pattern in text for pattern in rule.patterns):
                return rule.category
        return self.fallback

    @classmethod
    def from_file(cls, path: str) -> "Classifier":
        """
        Load rules from a JSON file.

        Expected format:
            [{"category": "sculpt", "patterns": ["sculpt"], "label": "Sculpt"}, ...]

        Order in the file is the match order.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, list):
            raise ValueError(f"Category rules in {path} must be a JSON list")

        rules = []
        for entry in data:
            if not isinstance(entry, dict):
                raise ValueError(f"Invalid category rule in {path}: {entry!r}")
            category = entry.get("category")
            patterns = entry.get("patterns") or []
            if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
                raise ValueError(f"Invalid category rule in {path}: {entry!r}")
            if not isinstance(category, str) or not CATEGORY_SLUG.fullmatch(category):
                raise ValueError(f"Category {category!r} in {path} must use only a-z, 0-9 and \"-\"")
            rules.append(CategoryRule(category, tuple(patterns), entry.get("label")))
        return cls(rules)


def default_classifier(rules_file: Optional[str] = None) -> Classifier:
    if rules_file:
        return Classifier.from_file(rules_file)
    return Classifier()
