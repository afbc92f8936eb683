"""Maps provider labels (English) to display names (Japanese) and back."""

from typing import Optional, List

from ..models.food_data import FoodData


class IngredientTranslator:
    """Dictionary-backed label translation."""

    def __init__(self, food_data: FoodData):
        self.food_data = food_data
        self._translations = {k.lower(): v for k, v in food_data.translations.items()}
        # Longest key first so "rice wine" wins over "rice"
        self._keys_by_length = sorted(self._translations, key=len, reverse=True)

    def to_display_name(self, label: str) -> str:
        """Translate a label; unknown labels pass through unchanged."""
        lower_label = label.lower()

        if lower_label in self._translations:
            return self._translations[lower_label]

        for key in self._keys_by_length:
            if key in lower_label:
                return self._translations[key]

        return label

    def to_source_name(self, display_name: str) -> Optional[str]:
        """Reverse lookup by value; ``None`` if no entry maps to the name."""
        for key, value in self._translations.items():
            if value == display_name:
                return key
        return None

    def display_names(self) -> List[str]:
        """Distinct display names, longest first."""
        return sorted(set(self._translations.values()), key=len, reverse=True)
