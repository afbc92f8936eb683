"""Relevance and similarity rules for ingredient names.

Decides whether a provider label names a food, and whether two names refer to
the same (or a closely related) food. Everything here is pure given the food
data document.
"""

import re
from typing import Optional, List

from ..models.food_data import FoodData
from .translator import IngredientTranslator

# Words too generic to count as shared evidence between two names
SIMILARITY_STOP_WORDS = {"salad", "soup", "dish", "meal", "recipe", "cooking", "food"}

_COMPOUND_SPLIT = re.compile(r"[\s\-_]+")


def _first_token(name: str) -> str:
    tokens = [t for t in _COMPOUND_SPLIT.split(name) if t]
    return tokens[0] if tokens else ""


def _content_words(name: str) -> set:
    return {w for w in name.split(" ") if len(w) > 3 and w not in SIMILARITY_STOP_WORDS}


class IngredientFilter:
    """Food relevance classifier and synonym matcher."""

    def __init__(self, food_data: FoodData, translator: Optional[IngredientTranslator] = None):
        self.food_data = food_data
        self.translator = translator
        self._food_names = food_data.all_food_names()
        self._exclude_keywords = [k.lower() for k in food_data.filtering.exclude_keywords]
        self._generic_categories = {c.lower() for c in food_data.filtering.generic_categories}

    def is_food_related(self, label: str) -> bool:
        """
        Check whether a label names a specific food.

        Labels containing an exclude keyword or equal to a bare generic category
        are rejected. Otherwise the label must contain a known food name, or its
        first compound token must match one ("leaf vegetable salad" passes via
        "leaf vegetable" while "salad" alone does not).
        """
        lower_label = label.lower()

        if any(keyword in lower_label for keyword in self._exclude_keywords):
            return False

        if lower_label in self._generic_categories:
            return False

        if any(food in lower_label for food in self._food_names):
            return True

        first_word = _first_token(lower_label)
        if first_word and self._is_food_token(first_word):
            return True

        return False

    def is_similar(self, name1: str, name2: str) -> bool:
        """
        Check whether two names refer to the same or a closely related food.

        Symmetric. When a translator is attached and both names are display
        names, their source names are compared as well.
        """
        if self._is_similar_pair(name1, name2):
            return True

        source1 = self._source_name(name1)
        source2 = self._source_name(name2)
        if source1 is not None and source2 is not None:
            return self._is_similar_pair(source1, source2)
        return False

    def get_preferred_name(self, name1: str, name2: str) -> Optional[str]:
        """
        Pick the name a similarity group designates as primary.

        Returns the group primary when one name equals it, or the given name
        whose text (or translated counterpart) contains the primary. ``None``
        when no group covers both names; callers then apply their own
        tie-break.
        """
        forms1 = self._forms(name1)
        forms2 = self._forms(name2)

        for group in self.food_data.similar_pairs:
            if not any(group.contains(a, b) for a in forms1 for b in forms2):
                continue

            lower_primary = group.primary.lower()
            if name1.lower() == lower_primary or name2.lower() == lower_primary:
                return group.primary
            if any(f.lower() == lower_primary for f in forms1):
                return name1
            if any(f.lower() == lower_primary for f in forms2):
                return name2
            if any(lower_primary in f.lower() for f in forms1):
                return name1
            if any(lower_primary in f.lower() for f in forms2):
                return name2

        return None

    def category_of(self, name: str) -> Optional[str]:
        return self.food_data.category_of(name)

    def _is_similar_pair(self, name1: str, name2: str) -> bool:
        lower1 = name1.lower()
        lower2 = name2.lower()

        if lower1 == lower2:
            return True

        if lower1 in lower2 or lower2 in lower1:
            return True

        if any(group.contains(name1, name2) for group in self.food_data.similar_pairs):
            return True

        # Compound labels: when both start with a food, the food decides
        first1 = _first_token(lower1)
        first2 = _first_token(lower2)
        if first1 and first2 and self._is_food_token(first1) and self._is_food_token(first2):
            return first1 == first2 or first1 in first2 or first2 in first1

        return bool(_content_words(lower1) & _content_words(lower2))

    def _is_food_token(self, token: str) -> bool:
        return any(food in token or token in food for food in self._food_names)

    def _source_name(self, name: str) -> Optional[str]:
        if self.translator is None:
            return None
        return self.translator.to_source_name(name)

    def _forms(self, name: str) -> List[str]:
        source = self._source_name(name)
        return [name, source] if source else [name]
