import random
from typing import Dict, List, Optional

from ..models import GardenTemplate


class TemplateHelper:
    """
    Holds the garden layouts. Template indices are 1-based, matching what is stored with each user.
    An unknown index falls back to the first template.
    """

    def __init__(self, templates: List[GardenTemplate], rng: Optional[random.Random] = None):
        if not templates:
            raise ValueError("At least one garden template is required.")

        self.templates: List[GardenTemplate] = sorted(templates, key=lambda t: t.index)
        self.templates_by_index: Dict[int, GardenTemplate] = {t.index: t for t in self.templates}
        self.rng = rng or random.Random()

    def get_template(self, index: Optional[int]) -> GardenTemplate:
        if index is None:
            return self.templates[0]
        return self.templates_by_index.get(index, self.templates[0])

    def choose_template_index(self) -> int:
        return self.rng.choice(self.templates).index

    def resolve_index(self, stored_index: Optional[int]) -> int:
        """The template index a user should play on: their stored one, or a freshly chosen one."""

        if stored_index:
            return stored_index
        return self.choose_template_index()
