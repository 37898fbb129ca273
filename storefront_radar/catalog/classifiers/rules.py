"""
Data-driven heuristic rule tables.

A Rule is ``{pattern, weight, category}``. Patterns are either literal
phrases (case-insensitive containment) or compiled regexes. Tables are built
once at import time by the detectors and evaluated uniformly, so each table
can be tested without the scoring engine around it.
"""
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Tuple, Union

PatternLike = Union[str, Pattern[str]]


@dataclass(frozen=True)
class Rule:
    pattern: PatternLike
    weight: float = 0.0
    category: str = ""

    @property
    def label(self) -> str:
        return self.pattern if isinstance(self.pattern, str) else self.pattern.pattern

    def matches(self, text_lower: str) -> bool:
        if isinstance(self.pattern, str):
            return self.pattern in text_lower
        return self.pattern.search(text_lower) is not None

    def count(self, text_lower: str) -> int:
        if isinstance(self.pattern, str):
            return text_lower.count(self.pattern)
        return len(self.pattern.findall(text_lower))


@dataclass
class RuleScore:
    score: float
    hits: List[Rule]

    @property
    def signals(self) -> List[str]:
        return [f"{rule.category}:{rule.label}" for rule in self.hits]


class RuleTable:
    """Ordered collection of rules sharing one category."""

    def __init__(self, category: str, rules: Iterable[Rule]):
        self.category = category
        self.rules: Tuple[Rule, ...] = tuple(rules)

    @classmethod
    def from_phrases(cls, category: str, phrases: Iterable[PatternLike], weight: float) -> "RuleTable":
        return cls(category, (Rule(p, weight, category) for p in phrases))

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def first_match(self, text_lower: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.matches(text_lower):
                return rule
        return None

    def matching(self, text_lower: str) -> List[Rule]:
        return [rule for rule in self.rules if rule.matches(text_lower)]

    def score(
        self,
        text_lower: str,
        max_hits: Optional[int] = None,
        cap: Optional[float] = None,
    ) -> RuleScore:
        """
        Sum of matching rule weights in table order, stopping after
        ``max_hits`` matches or once the running total reaches ``cap``.
        """
        total = 0.0
        hits: List[Rule] = []
        for rule in self.rules:
            if not rule.matches(text_lower):
                continue
            total += rule.weight
            hits.append(rule)
            if max_hits is not None and len(hits) >= max_hits:
                break
            if cap is not None and total >= cap:
                break
        if cap is not None:
            total = min(total, cap)
        return RuleScore(score=total, hits=hits)


def word(phrase: str) -> Pattern[str]:
    """Whole-word, case-insensitive regex for ``phrase``."""
    return re.compile(rf"\b{re.escape(phrase.lower())}\b")
