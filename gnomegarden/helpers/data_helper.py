import json
import pathlib
import re
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Tuple

from ..models import (
    CATEGORIES,
    FLOWERS,
    Answer,
    ContentCatalog,
    GardenTemplate,
    Position,
    QuestionScript,
    SlotFill,
    TemplateSlot,
)
from .logging_helper import LoggingHelper


class DataHelper:
    """
    Handles the loading and validation of the bundled JSON data: garden templates and
    conversation content. Raw JSON is parsed into frozen dataclass objects.
    It operates in a read-only manner on the data path.
    """

    _TEMPLATE_FILE_PATTERN = re.compile(r"garden(\d+)-grid\.json$")

    def __init__(self, data_path_obj: pathlib.Path, logger: LoggingHelper):
        self.data_path = data_path_obj
        self.logger = logger

        self.templates: List[GardenTemplate] = []
        self.catalog: Optional[ContentCatalog] = None

    def load_all_data(self):
        """Master method to load all data files."""

        self.logger.init_log("Data loading process initiated.", "INFO")

        self.templates = self._load_templates()
        self.catalog = self._load_conversation_data()

        self.logger.init_log(
            f"All data files loaded and processed: {len(self.templates)} template(s), "
            f"{sum(len(q) for q in self.catalog.questions.values())} question(s).", "INFO")

    def _load_json_file(self, filename: str, default_data: Any) -> Any:
        """Generic JSON file loader with validation and logging. Does not write to disk."""

        file_path = self.data_path / filename
        log_prefix = f"Data Load ({filename}): "
        try:
            if file_path.exists():
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)

                if data:
                    self.logger.init_log(f"{log_prefix}Successfully loaded {len(data)} entries.", "INFO")
                    return data
                else:
                    self.logger.init_log(f"{log_prefix}File is empty. Using default fallback data.", "WARNING")
                    return default_data
            else:
                self.logger.init_log(
                    f"{log_prefix}File not found. This is a critical error if not intended. "
                    "Using default fallback data.", "ERROR"
                )
                return default_data
        except (json.JSONDecodeError, OSError) as e:
            self.logger.init_log(f"{log_prefix}Failed to load or parse: {e}. Using default fallback data.", "ERROR")
            return default_data

    @staticmethod
    def _parse_position(raw: Any) -> Optional[Position]:
        if not isinstance(raw, dict):
            return None
        return Position(x=float(raw.get("x", 0.0)), y=float(raw.get("y", 0.0)))

    def _parse_slot(self, category: str, raw: Dict[str, Any]) -> TemplateSlot:
        items = tuple(p for p in (self._parse_position(i) for i in raw.get("items", [])) if p is not None)
        return TemplateSlot(
            id=int(raw["id"]),
            category=category,
            size=float(raw.get("size", 1.0)),
            items=items,
            # Only flowers may ever be removed by the user.
            removable=bool(raw.get("removeable", raw.get("removable", False))) and category == FLOWERS,
            id_pos=self._parse_position(raw.get("id_pos")),
            gnome_pos=self._parse_position(raw.get("gnome_pos")),
        )

    def parse_template(self, index: int, name: str, raw: Dict[str, Any]) -> GardenTemplate:
        slots: Dict[str, Tuple[TemplateSlot, ...]] = {}
        for category in CATEGORIES:
            parsed = []
            seen_ids = set()
            for raw_slot in raw.get(category, []):
                try:
                    slot = self._parse_slot(category, raw_slot)
                except (KeyError, TypeError, ValueError) as e:
                    self.logger.init_log(f"Template '{name}': skipping malformed {category} slot: {e}", "WARNING")
                    continue
                if slot.id in seen_ids:
                    self.logger.init_log(f"Template '{name}': duplicate {category} slot id {slot.id}. Skipping.",
                                         "WARNING")
                    continue
                seen_ids.add(slot.id)
                parsed.append(slot)
            slots[category] = tuple(parsed)
        return GardenTemplate(index=index, name=name, slots=MappingProxyType(slots))

    def _load_templates(self) -> List[GardenTemplate]:
        directory_path = self.data_path / "templates"
        log_prefix = "Data Load (templates/): "

        templates = []
        if directory_path.is_dir():
            for file_path in sorted(directory_path.glob("*.json")):
                match = self._TEMPLATE_FILE_PATTERN.search(file_path.name)
                if not match:
                    self.logger.init_log(f"{log_prefix}'{file_path.name}' is not a garden grid file. Skipping.",
                                         "WARNING")
                    continue
                raw = self._load_json_file(f"templates/{file_path.name}", {})
                if not isinstance(raw, dict) or not raw:
                    continue
                templates.append(self.parse_template(int(match.group(1)), file_path.stem, raw))
        else:
            self.logger.init_log(f"{log_prefix}Directory not found.", "ERROR")

        if not templates:
            self.logger.init_log(f"{log_prefix}No templates loaded. Using default fallback layout.", "WARNING")
            templates = [self.parse_template(1, "fallback", {
                FLOWERS: [{"id": 0, "size": 1, "items": [{"x": -0.2, "y": 0.2}, {"x": 0.0, "y": 0.2}],
                           "removeable": True}],
                "background": [{"id": 0, "size": 2.4, "items": [{"x": 0.5, "y": -0.5}]}],
            })]
        return templates

    @staticmethod
    def _parse_answer(key: str, raw: Dict[str, Any], default_category: str) -> Answer:
        update = raw.get("update", {})
        return Answer(
            key=key.strip().lower(),
            update=SlotFill(
                asset_id=str(update.get("asset_id", "")).lower(),
                category=str(update.get("asset_type", default_category)).lower(),
                label=update.get("asset_label", "") or "",
            ),
            response_tts=raw.get("response_tts", "") or "",
            response_tos=raw.get("response_tos", "") or "",
        )

    def parse_questions(self, raw_questions: Dict[str, Any]) -> Dict[str, Tuple[QuestionScript, ...]]:
        questions: Dict[str, Tuple[QuestionScript, ...]] = {}
        for category in CATEGORIES:
            parsed = []
            for position, raw in enumerate(raw_questions.get(category, [])):
                answers = raw.get("answer", {}) if isinstance(raw, dict) else {}
                if len(answers) != 2:
                    self.logger.init_log(
                        f"Question {category}[{position}] does not have exactly two answers. Skipping.", "WARNING")
                    continue
                parsed.append(QuestionScript(
                    category=category,
                    question_tts=raw.get("question_tts", ""),
                    question_tos=raw.get("question_tos", "") or "",
                    answers=tuple(self._parse_answer(k, v, category) for k, v in answers.items()),
                ))
            if not parsed:
                self.logger.init_log(f"CRITICAL: No questions for category '{category}'. It can never be filled.",
                                     "WARNING")
            questions[category] = tuple(parsed)
        return questions

    def _load_conversation_data(self) -> ContentCatalog:
        data = self._load_json_file("conv.json", {})
        return ContentCatalog(
            questions=MappingProxyType(self.parse_questions(data.get("questions", {}))),
            scenes=MappingProxyType(dict(data.get("scenes", {}))),
            gnome_responses=MappingProxyType(dict(data.get("gnome_responses", {}))),
        )
