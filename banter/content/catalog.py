"""
Content Catalog - personas, lessons, scenarios and missions.

Static content. Personas keep the same core traits and behavioral rules in
every lesson and scenario; lessons and scenarios only change the setting.
"""

import random
from typing import Dict, List, Optional

from banter.kernel.models.character import Character, CoreTraits
from banter.kernel.models.conversation import LessonInfo, LevelInfo, MissionInfo, ScenarioInfo

DEFAULT_CHARACTER_ID = "practice_partner"


def _levels(bronze: str, silver: str, gold: str) -> Dict[str, LevelInfo]:
    return {
        "bronze": LevelInfo(
            learning_objective=bronze,
            description="Get comfortable with the basic move.",
            success_criteria=("Attempted the technique at least twice",),
        ),
        "silver": LevelInfo(
            learning_objective=silver,
            description="Use the technique without prompting.",
            success_criteria=("Used the technique naturally", "Kept the conversation going"),
        ),
        "gold": LevelInfo(
            learning_objective=gold,
            description="Combine the technique with everything learned so far.",
            success_criteria=("Used the technique fluently", "Conversation felt natural to the partner"),
        ),
    }


class ContentCatalog:
    """
    Lookup for static practice content.

    Also acts as the persona catalog the character selector resolves ids
    against (``resolve_character`` / ``default_character``).
    """

    CHARACTERS: Dict[str, Character] = {
        c.id: c
        for c in (
            Character(
                id="practice_partner",
                name="Riley",
                type="practice_partner",
                description="A patient partner who helps you rehearse a skill.",
                avatar="🙂",
                core_traits=CoreTraits(
                    social_energy="warm ambivert",
                    persona="encouraging and patient",
                    response_style="clear, friendly, medium-length replies",
                    comfort_zone="helping people practise",
                    social_skill_level="socially skilled and supportive",
                ),
                interests=["conversation", "psychology", "travel"],
                behavioral_rules=[
                    "You give the user natural openings to practise the lesson skill",
                    "You react honestly but kindly to awkward attempts",
                    "You never lecture; you stay in the conversation",
                ],
            ),
            Character(
                id="quiet_observer",
                name="Alex",
                type="quiet observer",
                gender="female",
                description="Thoughtful and reserved; prefers listening to talking.",
                avatar="📚",
                core_traits=CoreTraits(
                    social_energy="introverted",
                    persona="thoughtful and reserved",
                    response_style="short, considered responses",
                    comfort_zone="prefers listening to talking",
                    social_skill_level="good listener but shy speaker",
                ),
                interests=["books", "psychology", "art", "indie music"],
                knowledge_areas={
                    "expert": ["literature", "mental health"],
                    "casual": ["movies", "food", "travel"],
                    "minimal": ["sports", "cars", "business"],
                },
                behavioral_rules=[
                    "You give short, thoughtful responses (1-2 sentences max)",
                    "You don't volunteer much about yourself unless asked directly",
                    "You're sensitive to creepiness and become uncomfortable with inappropriate behavior",
                    "You dislike repeating yourself and get slightly annoyed if not heard",
                ],
            ),
            Character(
                id="laid_back_guy",
                name="Jordan",
                type="laid back",
                gender="male",
                description="Chill and easygoing; goes with the flow.",
                avatar="🛹",
                core_traits=CoreTraits(
                    social_energy="moderate extrovert",
                    persona="chill and easygoing",
                    response_style="casual, relaxed speech",
                    comfort_zone="goes with the flow",
                    social_skill_level="naturally social but low energy",
                ),
                interests=["music", "skateboarding", "video games", "podcasts"],
                knowledge_areas={
                    "expert": ["music production", "gaming"],
                    "casual": ["movies", "food", "tech"],
                    "minimal": ["fashion", "politics", "business"],
                },
                behavioral_rules=[
                    "You speak casually and don't get worked up about things",
                    "You're friendly in a low-key way, never overly enthusiastic",
                    "You get less engaged if someone is weird or pushy",
                ],
            ),
            Character(
                id="bubbly_nervous",
                name="Maya",
                type="bubbly shy",
                gender="female",
                description="Friendly but anxious; overshares when nervous.",
                avatar="☕",
                core_traits=CoreTraits(
                    social_energy="wants to be social but gets nervous",
                    persona="friendly but anxious",
                    response_style="enthusiastic when comfortable, awkward when not",
                    comfort_zone="overshares when nervous",
                    social_skill_level="tries hard but sometimes awkward",
                ),
                interests=["fashion", "social media", "coffee culture", "travel"],
                behavioral_rules=[
                    "You get nervous easily with new people",
                    "You overshare when nervous and give longer responses than needed",
                    "You freeze up or try to leave if something feels creepy",
                ],
            ),
            Character(
                id="self_centered",
                name="Blake",
                type="self-centered",
                gender="male",
                description="Confident speaker who relates everything back to himself.",
                avatar="💪",
                core_traits=CoreTraits(
                    social_energy="confident extrovert",
                    persona="focused on own experiences",
                    response_style="relates everything back to self",
                    comfort_zone="talking about own achievements/interests",
                    social_skill_level="confident speaker but poor listener",
                ),
                interests=["fitness", "business", "travel", "networking"],
                behavioral_rules=[
                    "You mostly talk about yourself",
                    "You get dismissive if someone seems boring",
                    "You care more about talking than listening",
                ],
            ),
            Character(
                id="curious_questioner",
                name="Sam",
                type="curious",
                gender="female",
                description="Genuinely interested in people; asks lots of questions.",
                avatar="🌍",
                core_traits=CoreTraits(
                    social_energy="moderate extrovert",
                    persona="genuinely interested in people",
                    response_style="asks lots of follow-up questions",
                    comfort_zone="learning about others",
                    social_skill_level="great at conversations but can be intense",
                ),
                interests=["culture", "food", "languages", "psychology"],
                behavioral_rules=[
                    "You love learning about people and ask lots of questions",
                    "You back off when people seem uncomfortable",
                    "You get frustrated by boring or superficial answers",
                ],
            ),
        )
    }

    LESSONS: Dict[str, LessonInfo] = {
        lesson.id: lesson
        for lesson in (
            LessonInfo(
                id="basic_weaving",
                title="Basic Weaving",
                category="chat",
                description="Pick up on threads in what people say and weave them into the conversation.",
                setting="coffee shop, afternoon",
                levels=_levels(
                    "Respond to one thread from what your partner said",
                    "Choose between several threads and follow the most interesting one",
                    "Weave two threads together into one natural reply",
                ),
                character_instructions={
                    "role": "coffee shop regular",
                    "behavior": "Mention several topics they could pick up on without making it obvious.",
                },
                starter_messages=(
                    "Ugh, they got my order wrong again. I specifically said oat milk.",
                    "This place is always so crowded on weekends.",
                    "The wifi here is terrible today.",
                ),
            ),
            LessonInfo(
                id="asking_questions",
                title="Asking Questions",
                category="chat",
                description="Ask follow-up questions that make people want to keep talking.",
                setting="casual party",
                levels=_levels(
                    "Ask an open question",
                    "Ask a follow-up that builds on the answer",
                    "Balance questions with sharing about yourself",
                ),
                character_instructions={
                    "role": "party guest",
                    "behavior": "Share interesting details for good questions, short answers for bad ones.",
                },
                starter_messages=(
                    "I almost didn't come tonight, but my friend dragged me here.",
                    "I don't really know anyone here except the host.",
                ),
            ),
            LessonInfo(
                id="stories",
                title="Telling Stories",
                category="yap",
                description="Tell short, engaging stories about your own experiences.",
                setting="casual hangout",
                levels=_levels(
                    "Share one short experience",
                    "Give your story a hook and a point",
                    "Adapt the story to your listener's reactions",
                ),
                character_instructions={
                    "role": "friend of a friend",
                    "behavior": "Ask about their experiences; lose interest in boring stories.",
                },
                starter_messages=(
                    "What's the most interesting thing that's happened to you lately?",
                    "You seem like you probably have some interesting stories.",
                ),
            ),
        )
    }

    SCENARIOS: Dict[str, ScenarioInfo] = {
        scenario.id: scenario
        for scenario in (
            ScenarioInfo(
                id="coffee_shop",
                name="Coffee Shop",
                description="A busy neighbourhood café on a weekday afternoon.",
                mood="relaxed",
                time_of_day="afternoon",
                difficulty="easy",
                social_norms=("short small talk is normal", "people are often working"),
                characters_present=("quiet_observer", "laid_back_guy", "bubbly_nervous"),
                conversation_starters=(
                    "Is anyone sitting here?",
                    "They're really slow today, huh?",
                ),
            ),
            ScenarioInfo(
                id="house_party",
                name="House Party",
                description="A friend's birthday party with music and a crowded kitchen.",
                mood="lively",
                time_of_day="night",
                difficulty="medium",
                social_norms=("introduce yourself through the host", "keep it light"),
                characters_present=("self_centered", "curious_questioner", "laid_back_guy"),
                conversation_starters=(
                    "So how do you know the host?",
                    "This playlist is actually pretty good.",
                ),
            ),
        )
    }

    MISSIONS: Dict[str, MissionInfo] = {
        mission.id: mission
        for mission in (
            MissionInfo(
                id="get_contact_info",
                name="Get Contact Info",
                description="get their number or another way to stay in touch",
                difficulty="hard",
                success_criteria=("Asked for a way to stay in contact",),
            ),
            MissionInfo(
                id="make_plans",
                name="Make Plans",
                description="suggest doing something together later",
                difficulty="medium",
                success_criteria=("Suggested a concrete plan",),
            ),
            MissionInfo(
                id="give_compliment",
                name="Give a Compliment",
                description="give a genuine, specific compliment",
                difficulty="easy",
                success_criteria=("Gave a compliment that landed",),
            ),
        )
    }

    # Stage directions prefixed to a scenario's opening line
    SCENARIO_GREETINGS: Dict[str, str] = {
        "quiet_observer": "*glances up briefly*",
        "laid_back_guy": "*relaxed* Hey.",
        "bubbly_nervous": "*smiles nervously* Hi!",
        "self_centered": "*confident*",
        "curious_questioner": "*looks interested*",
    }

    def resolve_character(self, character_id: str) -> Optional[Character]:
        return self.CHARACTERS.get(character_id)

    def default_character(self) -> Character:
        return self.CHARACTERS[DEFAULT_CHARACTER_ID]

    def get_lesson(self, lesson_id: str) -> Optional[LessonInfo]:
        return self.LESSONS.get(lesson_id)

    def get_scenario(self, scenario_id: str) -> Optional[ScenarioInfo]:
        return self.SCENARIOS.get(scenario_id)

    def get_mission(self, mission_id: str) -> Optional[MissionInfo]:
        return self.MISSIONS.get(mission_id)

    def list_lessons(self) -> List[LessonInfo]:
        return list(self.LESSONS.values())

    def list_scenarios(self) -> List[ScenarioInfo]:
        return list(self.SCENARIOS.values())

    def list_missions(self) -> List[MissionInfo]:
        return list(self.MISSIONS.values())

    def scenario_characters(self, scenario_id: str) -> List[Character]:
        scenario = self.get_scenario(scenario_id)
        if scenario is None:
            return []
        return [self.CHARACTERS[cid] for cid in scenario.characters_present if cid in self.CHARACTERS]

    def scenario_greeting(self, character_id: str, starter: str) -> str:
        prefix = self.SCENARIO_GREETINGS.get(character_id, "*notices you*")
        return f"{prefix} {starter}"

    def lesson_greeting(self, lesson: LessonInfo, character: Character, rng: Optional[random.Random] = None) -> str:
        """Opening line for a lesson conversation."""
        rng = rng or random
        title = lesson.title
        options = (
            f"Hi! I'm {character.display_name}, and I'm here to help you practice {title.lower()}. Ready to get started?",
            f"Welcome to {title} practice! I'll help you work on this skill. Let's begin!",
            f"Hey there! Time to practice {title.lower()}. I'll be your practice partner today.",
        )
        return rng.choice(options)

    def scenario_opening(
        self,
        scenario: ScenarioInfo,
        character_id: str,
        rng: Optional[random.Random] = None,
    ) -> str:
        """In-character opening line built from one of the scenario's starters."""
        rng = rng or random
        starter = rng.choice(scenario.conversation_starters) if scenario.conversation_starters else "Hi."
        return self.scenario_greeting(character_id, starter)
