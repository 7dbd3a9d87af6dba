from typing import Any, Dict, Iterable, List, Mapping, Tuple

from ..models import FLOWERS, GardenTemplate, Malformed, Ok, ParseResult, PlantedItem, SlotRef


class RemovalHelper:
    """Maps the transient numbers shown to the user back onto garden entries and removes them."""

    @staticmethod
    def assign_display_ids(template: GardenTemplate, garden_progress: Iterable[PlantedItem]) -> Dict[int, SlotRef]:
        """Numbers removable items 1..N in garden order. Items missing from the template get no number."""

        display_ids: Dict[int, SlotRef] = {}
        next_id = 1
        for item in garden_progress:
            slot = template.get_slot(item.category, item.garden_spot)
            if slot is None or not slot.removable:
                continue
            display_ids[next_id] = item.slot_ref
            next_id += 1
        return display_ids

    @staticmethod
    def parse_display_ids(raw_values: Any) -> ParseResult:
        """Turns spoken/typed numbers into ints, dropping anything that is not one."""

        if raw_values is None:
            return Malformed("no ids given")
        if isinstance(raw_values, (str, int)):
            raw_values = [raw_values]

        try:
            values = list(raw_values)
        except TypeError:
            return Malformed(f"cannot read ids from {type(raw_values).__name__}")

        ids = []
        for value in values:
            try:
                ids.append(int(str(value).strip().lstrip("#")))
            except ValueError:
                continue
        return Ok(ids) if ids else Malformed("no usable ids")

    @staticmethod
    def remove_by_display_id(
            garden_progress: List[PlantedItem], display_ids: Iterable[int], numbering: Mapping[int, SlotRef]
    ) -> Tuple[List[PlantedItem], List[str], List[SlotRef]]:
        """
        Removes the flowers behind the given display ids, using the numbering the user was shown.
        Unknown or non-removable ids are skipped without complaint.
        """

        remaining = list(garden_progress)
        removed_labels: List[str] = []
        freed_slots: List[SlotRef] = []

        for display_id in display_ids:
            slot_ref = numbering.get(display_id)
            if slot_ref is None or slot_ref.category != FLOWERS:
                continue

            index = next((i for i, entry in enumerate(remaining) if entry.slot_ref == slot_ref), -1)
            if index < 0:
                continue

            item = remaining.pop(index)
            removed_labels.append(item.label)
            freed_slots.append(slot_ref)

        return remaining, removed_labels, freed_slots

    @staticmethod
    def join_labels(labels: List[str]) -> str:
        labels = [label for label in labels if label]
        if not labels:
            return ""
        if len(labels) == 1:
            return labels[0]
        return f"{', '.join(labels[:-1])} and {labels[-1]}"
