"""Unit tests for persona prompts and reply post-processing."""

from banter.ai.llm_client import DeepSeekClient
from banter.ai.prompts import (
    NEUTRAL_MOOD,
    build_system_prompt,
    character_state,
    clean_reply,
    extract_mood,
    process_reply,
)
from banter.kernel.models.conversation import LessonConfig, ScenarioConfig


class TestBuildSystemPrompt:
    """Persona plus lesson or scenario context."""

    def test_lesson_prompt(self, catalog):
        config = LessonConfig(lesson_id="basic_weaving", level="silver", lesson=catalog.get_lesson("basic_weaving"))
        prompt = build_system_prompt(catalog.default_character(), config)
        assert "You are Riley" in prompt
        assert "LESSON CONTEXT" in prompt
        assert "Basic Weaving (silver level)" in prompt
        assert "Choose between several threads" in prompt
        assert "Your role: coffee shop regular" in prompt
        assert "RESPONSE FORMAT" in prompt

    def test_lesson_prompt_without_snapshot(self, catalog):
        prompt = build_system_prompt(catalog.default_character(), LessonConfig(lesson_id="mystery"))
        assert "mystery (bronze level)" in prompt
        assert "Your role: conversation partner" in prompt

    def test_scenario_prompt_with_mission(self, catalog):
        config = ScenarioConfig(
            scenario_id="coffee_shop",
            scenario=catalog.get_scenario("coffee_shop"),
            mission=catalog.get_mission("make_plans"),
        )
        prompt = build_system_prompt(catalog.resolve_character("quiet_observer"), config)
        assert "You are Alex" in prompt
        assert "SCENARIO CONTEXT" in prompt
        assert "Setting: Coffee Shop" in prompt
        assert "Mission: The user is trying to suggest doing something together later" in prompt
        assert "- You don't volunteer much about yourself unless asked directly" in prompt


class TestProcessReply:
    """Stage directions become mood and state."""

    def test_actions_are_stripped(self):
        assert clean_reply("*rolls eyes*   Sure,  whatever. *sighs*") == "Sure, whatever."

    def test_surrounding_quotes_removed(self):
        assert clean_reply('*nods* "Sounds good."') == "Sounds good."

    def test_longest_keyword_wins(self):
        assert extract_mood("*looks unimpressed* Okay.") == "😑"
        assert extract_mood("*looks impressed* Okay.") == "😮"

    def test_no_action_is_neutral(self):
        assert extract_mood("Just words.") == NEUTRAL_MOOD

    def test_unmapped_action_is_neutral(self):
        assert extract_mood("*waves* Hi.") == NEUTRAL_MOOD

    def test_character_state(self):
        assert character_state("*takes a step back* Um.") == "uncomfortable"
        assert character_state("*excited* Yes!") == "excited"
        assert character_state("*looks bored* Cool.") == "bored"
        assert character_state("*pauses* What?") == "confused"
        assert character_state("Hello.") == "neutral"

    def test_process_reply(self):
        processed = process_reply("*grins* No way!")
        assert processed.text == "No way!"
        assert processed.mood == "😁"
        assert processed.character_state == "neutral"


class TestDeepSeekClient:
    """Message assembly for the chat completion call."""

    def test_build_messages(self):
        messages = DeepSeekClient.build_messages(
            "SYSTEM",
            [{"role": "assistant", "content": "Hi"}],
            "hello",
        )
        assert messages == [
            {"role": "system", "content": "SYSTEM"},
            {"role": "assistant", "content": "Hi"},
            {"role": "user", "content": "hello"},
        ]
