import random
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from ..models import (
    AnswerOutcome,
    CanvasState,
    ContentCatalog,
    GardenSnapshot,
    Malformed,
    Ok,
    PlantedItem,
    RenderCommand,
    RenderedItem,
    Scene,
    SessionState,
    SlotFill,
    UserProfile,
)
from .lifecycle_helper import LifeCycleHelper
from .question_helper import QuestionHelper
from .removal_helper import RemovalHelper
from .slot_helper import SlotHelper
from .template_helper import TemplateHelper


class ConversationHelper:
    """
    Drives one conversation turn at a time. Each handler reads the user's profile and session,
    mutates them in place and returns a RenderCommand. Persisting the profile afterwards is the
    caller's job; session state is thrown away when the session ends.

    A handler that sets `next_scene` asks for that scene's entry handler to run right after it,
    the way a canvas animation hands control back to the game scene.
    """

    MAX_CHAINED_TURNS = 5
    MAX_NO_MATCH = 3

    # Intents accepted per scene. None means the intent is accepted anywhere.
    INTENT_SCENES: Dict[str, Optional[FrozenSet[str]]] = {
        "play": None,
        "story": frozenset({Scene.WELCOME, Scene.STORY}),
        "answer": frozenset({Scene.GAME}),
        "both": frozenset({Scene.GAME}),
        "repeat": frozenset({Scene.GAME}),
        "skip": frozenset({Scene.GAME}),
        "weed": frozenset({Scene.GAME, Scene.FIRST_WEED, Scene.GAME_OVER, Scene.CLOSE_REMOVE}),
        "skip_weeding": frozenset({Scene.FIRST_WEED}),
        "open_remove": frozenset({Scene.GAME, Scene.GAME_OVER, Scene.CLOSE_REMOVE, Scene.REMOVE}),
        "remove_by_ids": frozenset({Scene.REMOVE}),
        "confirm_new_garden": frozenset({Scene.GAME, Scene.GAME_OVER, Scene.SETTINGS, Scene.CLOSE_REMOVE}),
        "reset_game": frozenset({Scene.CONFIRM_NEW_GARDEN}),
        "keep_garden": frozenset({Scene.CONFIRM_NEW_GARDEN, Scene.GAME_OVER}),
        "open_settings": None,
        "set_sound": frozenset({Scene.SETTINGS}),
        "open_instructions": None,
        "close": None,
    }

    NO_MATCH_KEYS: Dict[str, str] = {
        Scene.WELCOME: "default",
        Scene.STORY: "default",
        Scene.ON_BOARDING: "default",
        Scene.INSTRUCTIONS: "instructions",
        Scene.SETTINGS: "settings",
        Scene.FIRST_WEED: "first_weed",
        Scene.GAME_OVER: "gardenfull",
        Scene.CONFIRM_NEW_GARDEN: "newgarden",
        Scene.REMOVE: "remove",
        Scene.CLOSE_REMOVE: "remove_end",
    }

    def __init__(
            self,
            catalog: ContentCatalog,
            template_helper: TemplateHelper,
            slot_helper: SlotHelper,
            question_helper: QuestionHelper,
            lifecycle_helper: LifeCycleHelper,
            removal_helper: RemovalHelper,
            rng: Optional[random.Random] = None,
    ):
        self.catalog = catalog
        self.template_helper = template_helper
        self.slot_helper = slot_helper
        self.question_helper = question_helper
        self.lifecycle_helper = lifecycle_helper
        self.removal_helper = removal_helper
        self.rng = rng or random.Random()

        self.scene_entries: Dict[str, Callable[[UserProfile, SessionState, int], RenderCommand]] = {
            Scene.WELCOME: self.welcome,
            Scene.STORY: self.story,
            Scene.ON_BOARDING: self.onboarding,
            Scene.GAME: self.play,
            Scene.GARDEN_ANIMATION: self.play,
            Scene.FIRST_WEED: self.first_weed,
            Scene.GAME_OVER: self.game_over,
            Scene.CONFIRM_NEW_GARDEN: self.confirm_new_garden,
            Scene.REMOVE: self.open_remove,
            Scene.CLOSE_REMOVE: self.close_remove,
        }

    def accepts(self, intent: str, session: SessionState) -> bool:
        scenes = self.INTENT_SCENES.get(intent, frozenset())
        return scenes is None or session.scene in scenes

    def handle(
            self, intent: str, profile: UserProfile, session: SessionState, now: int, argument: Any = None
    ) -> List[RenderCommand]:
        """
        Runs an intent and any scene entries it chains into.
        An intent the current scene does not expect counts as a no-match.
        """

        if session.ended:
            return []

        if not self.accepts(intent, session):
            renders = [self.no_match(profile, session, now)]
        else:
            session.no_match_count = 0
            handler = getattr(self, intent)
            if intent in ("answer", "remove_by_ids", "set_sound"):
                renders = [handler(profile, session, now, argument)]
            else:
                renders = [handler(profile, session, now)]

        return self._follow_scenes(profile, session, now, renders)

    def start(self, profile: UserProfile, session: SessionState, now: int, capable: bool = True) -> List[RenderCommand]:
        return self._follow_scenes(profile, session, now, [self.init_game(profile, session, now, capable)])

    def _follow_scenes(
            self, profile: UserProfile, session: SessionState, now: int, renders: List[RenderCommand]
    ) -> List[RenderCommand]:
        for _ in range(self.MAX_CHAINED_TURNS):
            last = renders[-1]
            if last.end_session or not last.next_scene:
                break
            entry = self.scene_entries.get(last.next_scene)
            if entry is None:
                break
            self._enter_scene(session, last.next_scene)
            renders.append(entry(profile, session, now))
        return renders

    @staticmethod
    def _enter_scene(session: SessionState, scene: str):
        if session.scene != scene:
            session.no_match_count = 0
        session.scene = scene

    def build_snapshot(self, profile: UserProfile, session: SessionState, now: int) -> GardenSnapshot:
        """Resolves the garden against the template. Stale entries are left out of the picture."""

        template = self.template_helper.get_template(profile.template_index)
        numbering = self.removal_helper.assign_display_ids(template, profile.garden)
        display_by_slot = {slot_ref: display_id for display_id, slot_ref in numbering.items()}

        items: List[RenderedItem] = []
        for item in profile.garden:
            slot = template.get_slot(item.category, item.garden_spot)
            if slot is None:
                continue
            positions = max(1, len(slot.items))
            items.append(RenderedItem(
                category=item.category,
                slot_id=item.garden_spot,
                asset_id=item.asset_id,
                label=item.label,
                stage=self.lifecycle_helper.stage(item, now),
                weed_count=self.lifecycle_helper.weed_count(item, now, positions),
                positions=slot.items,
                growth=self.lifecycle_helper.growth(item, now, positions),
                size=slot.size,
                remove_id=display_by_slot.get(item.slot_ref, 0),
                id_pos=slot.id_pos,
            ))

        session.display_ids = numbering
        session.first_weed_timestamp = self.lifecycle_helper.first_weed_timestamp(self._placed_items(profile))

        gnome_size = 2 if session.scene == Scene.ON_BOARDING and not profile.onboarding_2 else 1
        gnome_pos = session.next_position.slot_id if session.next_position else -1
        return GardenSnapshot(gnome_pos=gnome_pos, gnome_size=gnome_size, items=tuple(items))

    def _placed_items(self, profile: UserProfile) -> List[PlantedItem]:
        """Garden entries whose slot exists in the user's template."""
        template = self.template_helper.get_template(profile.template_index)
        return [i for i in profile.garden if template.get_slot(i.category, i.garden_spot) is not None]

    def _render(
            self,
            profile: UserProfile,
            session: SessionState,
            now: int,
            state: str,
            speech: str = "",
            text_ui: str = "",
            suggestions: Sequence[str] = (),
            next_scene: Optional[str] = None,
            end_session: bool = False,
    ) -> RenderCommand:
        if end_session:
            session.ended = True
            session.scene = Scene.END
        return RenderCommand(
            state=state,
            progress_snapshot=profile.progress.as_dict(),
            garden_snapshot=self.build_snapshot(profile, session, now),
            prompt_suggestions=tuple(suggestions),
            speech=speech,
            text_ui=text_ui,
            next_scene=next_scene,
            end_session=end_session,
            template_index=profile.template_index,
        )

    def _sound(self, profile: UserProfile, key: str) -> str:
        return self.catalog.gnome_text(key) if profile.sound_enabled else ""

    def _random_line(self, key: str) -> str:
        lines = self.catalog.gnome_list(key)
        return self.rng.choice(lines) if lines else ""

    def init_garden_data(self, profile: UserProfile, session: SessionState):
        """Settles the user's template and rebuilds the session's free slots from their garden."""

        profile.template_index = self.template_helper.resolve_index(profile.template_index)
        template = self.template_helper.get_template(profile.template_index)
        session.available_spots = self.slot_helper.compute_available(template, profile.garden)
        session.next_position = None
        session.current_question = None

    def init_game(self, profile: UserProfile, session: SessionState, now: int, capable: bool = True) -> RenderCommand:
        if not capable:
            return self._render(profile, session, now, CanvasState.DEFAULT,
                                speech=self.catalog.scene_text("device_error"), end_session=True)

        self.init_garden_data(profile, session)
        session.new_visitor = profile.onboarding_2
        session.error_count = 0
        session.scene = Scene.WELCOME
        return self._render(profile, session, now, CanvasState.PRELOAD, next_scene=Scene.WELCOME)

    def welcome(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        suggestions = self.catalog.scene_list(
            "welcome_suggestion" if profile.story_visited else "welcome_new_suggestion")
        session.scene = Scene.WELCOME
        return self._render(profile, session, now, CanvasState.WELCOME,
                            speech=self.catalog.scene_text("welcome_tts"), suggestions=suggestions)

    def story(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        profile.story_visited = True
        session.scene = Scene.STORY
        return self._render(profile, session, now, CanvasState.STORY,
                            speech=self.catalog.scene_text("story_tts"),
                            suggestions=self.catalog.scene_list("story_suggestion"))

    def onboarding(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        session.scene = Scene.ON_BOARDING

        if session.new_visitor:
            session.new_visitor = False
            return self._render(profile, session, now, CanvasState.UPDATE_GARDEN,
                                speech=self._random_line("welcome_back"), next_scene=Scene.GARDEN_ANIMATION)

        if not profile.onboarding_1:
            profile.onboarding_1 = True
            return self._render(profile, session, now, CanvasState.ON_BOARDING,
                                speech=self.catalog.scene_text("onboarding_tts"),
                                suggestions=self.catalog.scene_list("onboarding_suggestion"))

        profile.onboarding_2 = True
        return self._render(profile, session, now, CanvasState.ON_BOARDING,
                            speech=self.catalog.scene_text("onboarding2_tts"),
                            text_ui=self.catalog.scene_text("onboarding2_tos"),
                            suggestions=self.catalog.scene_list("onboarding2_suggestion"))

    def _redirect(self, profile: UserProfile, session: SessionState, now: int, scene: str) -> RenderCommand:
        return self._render(profile, session, now, CanvasState.DEFAULT, next_scene=scene)

    def play(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        """Routes unfinished onboarding first, then asks the question for the next slot."""

        session.first_weed_timestamp = self.lifecycle_helper.first_weed_timestamp(self._placed_items(profile))

        if not profile.story_visited:
            return self._redirect(profile, session, now, Scene.STORY)
        if not profile.onboarding_1:
            return self._redirect(profile, session, now, Scene.ON_BOARDING)
        if not profile.onboarding_2 and profile.progress.flowers == 1:
            return self._redirect(profile, session, now, Scene.ON_BOARDING)
        if not profile.onboarding_3 and 0 < session.first_weed_timestamp <= now:
            session.new_visitor = False
            return self._redirect(profile, session, now, Scene.FIRST_WEED)
        if session.new_visitor:
            return self._redirect(profile, session, now, Scene.ON_BOARDING)

        gnome_moving = False
        if session.current_question is None:
            previous = session.next_position
            session.next_position = self.slot_helper.select_next(session.available_spots, profile.progress)
            if session.next_position is None:
                return self._redirect(profile, session, now, Scene.GAME_OVER)
            gnome_moving = session.next_position != previous
            category = session.next_position.category
            session.current_question = (category, profile.progress.get(category))
            session.error_count = 0

        category = session.next_position.category
        question = self.question_helper.next_question(category, profile.progress)
        prefix = self.question_helper.question_prefix(category, profile.progress)
        moving_sound = self._sound(profile, "gnome_moving_sound") if gnome_moving else ""

        session.scene = Scene.GAME
        return self._render(profile, session, now, CanvasState.GAME,
                            speech=moving_sound + prefix + question.question_tts,
                            text_ui=question.question_tos,
                            suggestions=question.answer_keys)

    def _plant(self, profile: UserProfile, session: SessionState, fill: SlotFill, now: int) -> Optional[PlantedItem]:
        spot = session.next_position
        if spot is None or not self.slot_helper.take_spot(session.available_spots, spot):
            return None

        item = PlantedItem(
            asset_id=fill.asset_id,
            category=spot.category,
            garden_spot=spot.slot_id,
            timestamp=self.lifecycle_helper.planting_timestamp(now),
            label=fill.label,
        )
        profile.garden.append(item)
        return item

    def _finish_question(self, profile: UserProfile, session: SessionState):
        self.question_helper.advance(session.next_position.category, profile.progress)
        session.current_question = None
        session.error_count = 0

    def answer(self, profile: UserProfile, session: SessionState, now: int, raw: Any) -> RenderCommand:
        if session.next_position is None or session.current_question is None:
            return self._redirect(profile, session, now, Scene.GAME)

        category = session.next_position.category
        question = self.question_helper.next_question(category, profile.progress)
        resolution = self.question_helper.resolve_answer(question, raw, session)

        if resolution.outcome is AnswerOutcome.ACCEPTED:
            answer = question.find_answer(resolution.answer_key)
            self._plant(profile, session, answer.update, now)
            self._finish_question(profile, session)

            speech = answer.response_tts or self.catalog.gnome_text("default_response")
            speech = self._sound(profile, "growing_response_start") + speech
            session.scene = Scene.GARDEN_ANIMATION
            return self._render(profile, session, now, CanvasState.UPDATE_GARDEN,
                                speech=speech + self.catalog.gnome_text("growing_response_end"),
                                text_ui=answer.response_tos, next_scene=Scene.GARDEN_ANIMATION)

        if resolution.outcome is AnswerOutcome.AMBIGUOUS:
            return self._render(profile, session, now, CanvasState.DEFAULT,
                                speech=self.catalog.gnome_text("question_both"), next_scene=Scene.GAME)

        if resolution.outcome is AnswerOutcome.REPEATED:
            return self._render(profile, session, now, CanvasState.DEFAULT,
                                speech=self.catalog.gnome_text("question_repeat"), next_scene=Scene.GAME)

        return self._reject(profile, session, now, resolution.error_count, resolution.give_up)

    def _reject(self, profile: UserProfile, session: SessionState, now: int, error_count: int,
                give_up: bool) -> RenderCommand:
        line = self.question_helper.retry_line(error_count)
        if give_up:
            return self._render(profile, session, now, CanvasState.DEFAULT, speech=line, end_session=True)
        return self._render(profile, session, now, CanvasState.DEFAULT, speech=line, next_scene=Scene.GAME)

    def both(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        return self._render(profile, session, now, CanvasState.DEFAULT,
                            speech=self.catalog.gnome_text("question_both"), next_scene=Scene.GAME)

    def repeat(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        return self._render(profile, session, now, CanvasState.DEFAULT,
                            speech=self.catalog.gnome_text("question_repeat"), next_scene=Scene.GAME)

    def skip(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        if session.next_position is None or session.current_question is None:
            return self._redirect(profile, session, now, Scene.GAME)

        self._finish_question(profile, session)
        session.scene = Scene.GARDEN_ANIMATION
        return self._render(profile, session, now, CanvasState.UPDATE_GARDEN,
                            speech=self.catalog.gnome_text("question_skip"), next_scene=Scene.GARDEN_ANIMATION)

    def weed(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        first_weeding = session.scene == Scene.FIRST_WEED
        profile.garden, updated = self.lifecycle_helper.weed(profile.garden, now)

        speech = self._sound(profile, "removing_sound") if updated else ""
        if first_weeding:
            speech += self.catalog.scene_text("first_weeding_response_tts")
            text_ui = self.catalog.scene_text("first_weeding_response_tos")
        elif updated:
            speech += self.catalog.scene_text("weeding_response_tts")
            text_ui = self.catalog.scene_text("weeding_response_tos")
        else:
            speech += self.catalog.scene_text("nothing_to_weed_tts")
            text_ui = self.catalog.scene_text("nothing_to_weed_tos")

        session.scene = Scene.GARDEN_ANIMATION
        return self._render(profile, session, now, CanvasState.UPDATE_GARDEN,
                            speech=speech, text_ui=text_ui, next_scene=Scene.GARDEN_ANIMATION)

    def skip_weeding(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        session.scene = Scene.GARDEN_ANIMATION
        return self._render(profile, session, now, CanvasState.UPDATE_GARDEN,
                            speech=self.catalog.scene_text("skip_weeding_response_tts"),
                            text_ui=self.catalog.scene_text("skip_weeding_response_tos"),
                            next_scene=Scene.GARDEN_ANIMATION)

    def first_weed(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        profile.onboarding_3 = True
        session.scene = Scene.FIRST_WEED
        return self._render(profile, session, now, CanvasState.GAME,
                            speech=self.catalog.scene_text("onboarding_weeding_tts"),
                            text_ui=self.catalog.scene_text("onboarding_weeding_tos"),
                            suggestions=self.catalog.scene_list("onboarding_weeding_suggestion"))

    def game_over(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        session.scene = Scene.GAME_OVER
        return self._render(profile, session, now, CanvasState.GAME_OVER,
                            speech=self.catalog.scene_text("game_over_tts"),
                            text_ui=self.catalog.scene_text("game_over_tos"),
                            suggestions=self.catalog.scene_list("game_over_suggestion"))

    def confirm_new_garden(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        session.scene = Scene.CONFIRM_NEW_GARDEN
        return self._render(profile, session, now, CanvasState.GAME_OVER,
                            speech=self.catalog.scene_text("confirm_new_garden_tts"),
                            text_ui=self.catalog.scene_text("confirm_new_garden_tos"),
                            suggestions=self.catalog.scene_list("confirm_new_garden_suggestion"))

    def reset_game(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        """Starts over on a fresh template. Question progress and onboarding flags are kept."""

        profile.template_index = None
        profile.garden = []
        session.error_count = 0
        session.first_weed_timestamp = 0
        self.init_garden_data(profile, session)

        session.scene = Scene.GARDEN_ANIMATION
        return self._render(profile, session, now, CanvasState.RESET_GAME,
                            speech=self._sound(profile, "removing_sound") + self.catalog.scene_text("new_garden_tts"),
                            next_scene=Scene.GARDEN_ANIMATION)

    def keep_garden(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        session.scene = Scene.GAME_OVER
        return self._render(profile, session, now, CanvasState.GAME_OVER,
                            speech=self.catalog.scene_text("keep_intro_tts"),
                            text_ui=self.catalog.scene_text("keep_intro_tos"),
                            next_scene=Scene.REMOVE)

    def open_remove(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        session.scene = Scene.REMOVE
        return self._render(profile, session, now, CanvasState.REMOVE,
                            speech=self.catalog.scene_text("remove_intro_tts"),
                            text_ui=self.catalog.scene_text("remove_intro_tos"))

    def remove_by_ids(self, profile: UserProfile, session: SessionState, now: int, raw_ids: Any) -> RenderCommand:
        parsed = self.removal_helper.parse_display_ids(raw_ids)
        display_ids: Tuple[int, ...] = tuple(parsed.value) if isinstance(parsed, Ok) else ()

        profile.garden, labels, freed = self.removal_helper.remove_by_display_id(
            profile.garden, display_ids, session.display_ids)
        for spot in freed:
            self.slot_helper.release_spot(session.available_spots, spot)

        speech = ""
        if labels:
            joined = self.removal_helper.join_labels(labels) or self.catalog.gnome_text("unnamed_plants", "them")
            speech = self._sound(profile, "removing_sound") + self.catalog.scene_text(
                "remove_response_tts").replace("<plant_plural_name>", joined)

        session.scene = Scene.CLOSE_REMOVE
        return self._render(profile, session, now, CanvasState.UPDATE_GARDEN, speech=speech,
                            next_scene=Scene.CLOSE_REMOVE)

    def close_remove(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        session.scene = Scene.CLOSE_REMOVE
        return self._render(profile, session, now, CanvasState.GAME,
                            speech=self.catalog.scene_text("remove_end_tts"),
                            text_ui=self.catalog.scene_text("remove_end_tos"),
                            suggestions=self.catalog.scene_list("remove_end_suggestion"))

    def open_settings(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        session.scene = Scene.SETTINGS
        return self._render(profile, session, now, CanvasState.SETTINGS,
                            speech=self.catalog.scene_text("menu_tts"),
                            suggestions=self.catalog.scene_list("menu_suggestion"))

    def set_sound(self, profile: UserProfile, session: SessionState, now: int, raw_state: Any) -> RenderCommand:
        parsed = self.question_helper.parse_answer(raw_state)
        if isinstance(parsed, Malformed) or parsed.value not in ("on", "off"):
            state = "on" if profile.sound_enabled else "off"
        else:
            state = parsed.value

        profile.sound_enabled = state == "on"
        session.scene = Scene.SETTINGS
        return self._render(profile, session, now, CanvasState.SETTINGS,
                            speech=self.catalog.gnome_text("audio_config_response").replace("<audio-state>", state))

    def open_instructions(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        session.scene = Scene.INSTRUCTIONS
        return self._render(profile, session, now, CanvasState.INSTRUCTIONS,
                            speech=self.catalog.scene_text("instructions_tts"),
                            suggestions=self.catalog.scene_list("instructions_suggestion"))

    def no_match(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        """Scene-specific "didn't catch that". In the game scene this is a wrong answer."""

        if session.scene == Scene.GAME and session.current_question is not None:
            session.error_count += 1
            give_up = session.error_count >= self.question_helper.MAX_ERRORS
            return self._reject(profile, session, now, session.error_count, give_up)

        session.no_match_count += 1
        level = min(session.no_match_count, self.MAX_NO_MATCH)
        key = self.NO_MATCH_KEYS.get(session.scene, "default")
        return self._render(profile, session, now, CanvasState.DEFAULT,
                            speech=self.catalog.gnome_text(f"{key}_nomatch_{level}"),
                            end_session=session.no_match_count >= self.MAX_NO_MATCH)

    def close(self, profile: UserProfile, session: SessionState, now: int) -> RenderCommand:
        return self._render(profile, session, now, CanvasState.DEFAULT,
                            speech=self.catalog.gnome_text("game_exit"), end_session=True)
