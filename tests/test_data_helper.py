import json

from gnomegarden.helpers import DataHelper
from gnomegarden.models import CATEGORIES, FLOWERS


def test_bundled_templates_load(data_helper):
    assert [template.index for template in data_helper.templates] == [1, 2, 3]
    for template in data_helper.templates:
        assert template.slots[FLOWERS]
        assert all(slot.removable for slot in template.slots[FLOWERS])
        assert not any(slot.removable for slot in template.iter_slots() if slot.category != FLOWERS)
        assert all(slot.items for slot in template.iter_slots())


def test_bundled_questions_cover_every_category(catalog):
    for category in CATEGORIES:
        assert catalog.question_count(category) >= 2
        for question in catalog.questions[category]:
            assert len(question.answers) == 2
            assert question.question_tts

    # The first flowers question is only asked once, so a second one must exist to wrap onto.
    assert catalog.question_count(FLOWERS) >= 3


def test_bundled_answers_fill_their_own_category(catalog):
    for category in CATEGORIES:
        for question in catalog.questions[category]:
            for answer in question.answers:
                assert answer.key == answer.key.lower()
                assert answer.update.category == category
                assert answer.update.asset_id


def test_bundled_scene_lines_exist(catalog):
    for key in ("device_error", "welcome_tts", "game_over_tts", "remove_response_tts"):
        assert catalog.scene_text(key)
    for level in (1, 2, 3):
        assert catalog.gnome_list(f"question_nomatch_{level}")
        assert catalog.gnome_text(f"remove_nomatch_{level}")


def test_missing_data_falls_back(tmp_path, logger):
    helper = DataHelper(tmp_path, logger)
    helper.load_all_data()

    assert len(helper.templates) == 1
    assert helper.templates[0].name == "fallback"
    assert helper.catalog.question_count(FLOWERS) == 0
    assert "ERROR" in logger.levels()


def test_invalid_entries_are_skipped(tmp_path, logger):
    (tmp_path / "templates").mkdir()
    (tmp_path / "templates" / "garden02-grid.json").write_text(json.dumps({
        "flowers": [
            {"id": 0, "items": [{"x": 0, "y": 0}], "removeable": True},
            {"id": 0, "items": [{"x": 1, "y": 1}], "removeable": True},
            {"items": []},
        ],
        "path": [{"id": 1, "items": [], "removeable": True}],
    }), encoding="utf-8")
    (tmp_path / "templates" / "notes.json").write_text("{}", encoding="utf-8")
    (tmp_path / "conv.json").write_text(json.dumps({
        "questions": {
            "flowers": [
                {"question_tts": "Pick one", "answer": {
                    "Red": {"update": {"asset_id": "poppy_red", "asset_type": "flowers"}},
                    "blue": {"update": {"asset_id": "cornflower", "asset_type": "flowers"}},
                }},
                {"question_tts": "Three answers", "answer": {"a": {}, "b": {}, "c": {}}},
            ],
        },
    }), encoding="utf-8")

    helper = DataHelper(tmp_path, logger)
    helper.load_all_data()

    template = helper.templates[0]
    assert template.index == 2
    assert [slot.id for slot in template.slots[FLOWERS]] == [0]
    assert not template.get_slot("path", 1).removable
    assert helper.catalog.question_count(FLOWERS) == 1
    assert helper.catalog.questions[FLOWERS][0].answer_keys == ("red", "blue")
    assert "WARNING" in logger.levels()


def test_corrupt_json_is_logged_not_raised(tmp_path, logger):
    (tmp_path / "conv.json").write_text("{not json", encoding="utf-8")

    helper = DataHelper(tmp_path, logger)
    helper.load_all_data()

    assert helper.catalog.question_count(FLOWERS) == 0
    assert any("Failed to load or parse" in message for message, _ in logger.messages)
