"""
Story catalogue: themes, story templates and the "If I Were an Animal" book.

Themes drive the story-writing brief; templates are the curated books a
subscription tier unlocks; the animal book is a fixed rhyming story whose
pages only need the child's name substituted.
"""

from dataclasses import asdict, dataclass, field
from typing import Optional

from .modules.magical_prompts import MAGICAL_SCENE_PROMPTS, create_emotional_prompt


# =============================================================================
# Themes
# =============================================================================

THEME_CATEGORIES = ["emotional", "stem", "diversity", "life-skills", "fantasy", "adventure"]


@dataclass
class StoryTheme:
    """A theme a parent can pick for an AI-written story."""

    id: str
    name: str
    icon: str
    description: str
    short_description: str
    category: str
    age_groups: list[str]
    default_settings: dict  # {tone, length, complexity}
    custom_options: dict  # {settings, characters, learning_goals}
    image_style: str
    color_palette: list[str] = field(default_factory=list)

    def covers_age(self, age: int) -> bool:
        for group in self.age_groups:
            low, high = (int(part) for part in group.split("-"))
            if low <= age <= high:
                return True
        return False

    def to_dict(self) -> dict:
        return asdict(self)


STORY_THEMES: list[StoryTheme] = [
    StoryTheme(
        id="emotional-intelligence",
        name="Emotional Intelligence",
        icon="🌈",
        description="Help your child understand and manage complex emotions through relatable scenarios and friendly characters.",
        short_description="Understanding feelings and emotions",
        category="emotional",
        age_groups=["3-5", "6-8", "9-12"],
        default_settings={"tone": "calming", "length": "medium", "complexity": "simple"},
        custom_options={
            "settings": ["Home", "School", "Playground", "Family gathering"],
            "characters": ["Friends", "Family members", "Emotion characters", "Wise mentor"],
            "learning_goals": [
                "Understanding different emotions",
                "Managing anger and frustration",
                "Building empathy",
                "Expressing feelings healthily",
                "Conflict resolution",
            ],
        },
        image_style="Soft, warm illustrations with expressive characters showing various emotions",
        color_palette=["#FFE5CC", "#FFB3BA", "#BAE1FF", "#BAFFC9", "#FFFFBA"],
    ),
    StoryTheme(
        id="stem-adventures",
        name="STEM Adventures",
        icon="🚀",
        description="Exciting journeys through science, technology, engineering, and math concepts made fun and accessible.",
        short_description="Science and discovery adventures",
        category="stem",
        age_groups=["5-7", "8-10", "11-13"],
        default_settings={"tone": "exciting", "length": "long", "complexity": "moderate"},
        custom_options={
            "settings": ["Space station", "Laboratory", "Ocean depths", "Prehistoric times", "Future city"],
            "characters": ["Scientists", "Robots", "Alien friends", "Time travelers", "Animal experts"],
            "learning_goals": [
                "Scientific method basics",
                "Simple coding concepts",
                "Environmental science",
                "Space exploration",
                "Math problem-solving",
                "Engineering design",
            ],
        },
        image_style="Vibrant, detailed scientific illustrations with futuristic elements",
        color_palette=["#4ECDC4", "#556270", "#FF6B6B", "#C44D58", "#FFE66D"],
    ),
    StoryTheme(
        id="diversity-culture",
        name="Diversity & Culture",
        icon="🌍",
        description="Celebrate different cultures, traditions, and ways of life around the world.",
        short_description="Cultural exploration and diversity",
        category="diversity",
        age_groups=["4-6", "7-9", "10-12"],
        default_settings={"tone": "inspiring", "length": "medium", "complexity": "moderate"},
        custom_options={
            "settings": ["Different countries", "Cultural festivals", "International school", "World market"],
            "characters": ["Children from different cultures", "Grandparents with stories", "Cultural guides"],
            "learning_goals": [
                "Appreciating differences",
                "Learning about traditions",
                "Understanding different families",
                "Global citizenship",
                "Language appreciation",
            ],
        },
        image_style="Rich, culturally authentic illustrations with traditional patterns and vibrant colors",
        color_palette=["#FF6F61", "#6B5B95", "#88B0D3", "#82B366", "#F7CAC9"],
    ),
    StoryTheme(
        id="life-skills",
        name="Life Skills & Values",
        icon="⭐",
        description="Practical lessons about responsibility, problem-solving, and important life skills.",
        short_description="Building essential life skills",
        category="life-skills",
        age_groups=["4-6", "7-9", "10-12"],
        default_settings={"tone": "educational", "length": "medium", "complexity": "simple"},
        custom_options={
            "settings": ["Home", "School", "Community", "Store", "Garden"],
            "characters": ["Helpful neighbors", "Wise grandparent", "Teacher", "Community helpers"],
            "learning_goals": [
                "Money and saving basics",
                "Time management",
                "Healthy habits",
                "Problem-solving skills",
                "Responsibility and chores",
                "Safety awareness",
            ],
        },
        image_style="Clear, relatable illustrations showing everyday situations and practical activities",
        color_palette=["#A8E6CF", "#FFD3B6", "#FFAAA5", "#FF8B94", "#C7CEEA"],
    ),
    StoryTheme(
        id="fantasy-magic",
        name="Fantasy & Magic",
        icon="✨",
        description="Magical adventures with dragons, fairies, and enchanted worlds full of wonder.",
        short_description="Magical and fantastical adventures",
        category="fantasy",
        age_groups=["5-7", "8-10", "11-13"],
        default_settings={"tone": "exciting", "length": "long", "complexity": "moderate"},
        custom_options={
            "settings": ["Enchanted forest", "Magic kingdom", "Dragon mountain", "Fairy realm", "Wizard school"],
            "characters": ["Dragons", "Fairies", "Wizards", "Magical creatures", "Brave knights"],
            "learning_goals": [
                "Imagination and creativity",
                "Courage and bravery",
                "Good vs evil concepts",
                "Teamwork in quests",
                "Problem-solving through magic",
            ],
        },
        image_style="Whimsical, Studio Ghibli-inspired illustrations with magical elements and soft lighting",
        color_palette=["#E0BBE4", "#957DAD", "#D291BC", "#FEC8D8", "#FFDFD3"],
    ),
    StoryTheme(
        id="animal-nature",
        name="Animal & Nature Tales",
        icon="🦁",
        description="Learn from wise animals and explore the wonders of the natural world.",
        short_description="Wildlife and nature adventures",
        category="adventure",
        age_groups=["3-5", "6-8", "9-11"],
        default_settings={"tone": "inspiring", "length": "medium", "complexity": "simple"},
        custom_options={
            "settings": ["Safari", "Ocean", "Rainforest", "Farm", "Mountain"],
            "characters": ["Wild animals", "Pet friends", "Nature spirits", "Park ranger", "Veterinarian"],
            "learning_goals": [
                "Animal behavior and habitats",
                "Environmental conservation",
                "Respect for nature",
                "Animal care and empathy",
                "Ecosystem understanding",
            ],
        },
        image_style="Natural, detailed animal illustrations with lush environmental backgrounds",
        color_palette=["#8FBC8F", "#DEB887", "#87CEEB", "#F0E68C", "#FFB6C1"],
    ),
]


def get_theme_by_id(theme_id: str) -> Optional[StoryTheme]:
    return next((theme for theme in STORY_THEMES if theme.id == theme_id), None)


def get_themes_by_category(category: str) -> list[StoryTheme]:
    return [theme for theme in STORY_THEMES if theme.category == category]


def get_themes_for_age(age: int) -> list[StoryTheme]:
    return [theme for theme in STORY_THEMES if theme.covers_age(age)]


# =============================================================================
# Templates
# =============================================================================

AGE_GROUPS = ["3-5", "6-8", "9-12", "13+"]
SUBSCRIPTION_TIERS = ["basic", "premium", "all"]


@dataclass
class StoryTemplate:
    """A curated book template gated by subscription tier."""

    id: str
    title: str
    description: str
    category: str
    age_groups: list[str]
    educational_focus: list[str]
    difficulty: str  # beginner, intermediate, advanced
    pages: int
    estimated_reading_time: int  # minutes
    subscription_tier: str  # basic, premium, all
    themes: list[str]
    learning_objectives: list[str]
    preview: dict  # {cover_text, sample_page}; "{childName}" is substituted client side
    parent_guide: Optional[str] = None
    therapeutic_value: list[str] = field(default_factory=list)
    cultural_adaptations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


STORY_TEMPLATES: list[StoryTemplate] = [
    StoryTemplate(
        id="if_i_were_an_animal",
        title="If I Were an Animal",
        description="A magical journey where your child meets 8 different animals and learns valuable life lessons from each one.",
        category="classic_adventures",
        age_groups=["3-5", "6-8"],
        educational_focus=["sel", "social_skills"],
        difficulty="beginner",
        pages=10,
        estimated_reading_time=8,
        subscription_tier="basic",
        themes=["courage", "perseverance", "teamwork", "curiosity", "growth_mindset"],
        learning_objectives=[
            "Understand different animal characteristics",
            "Learn patience and perseverance",
            "Develop empathy and kindness",
            "Build courage and confidence",
        ],
        parent_guide="This story helps children explore different personality traits through animal metaphors. Great for bedtime reading and discussing emotions.",
        preview={
            "cover_text": "Join {childName} on a magical adventure meeting wise animals who teach important life lessons!",
            "sample_page": "If I were a wise owl like Oliver, I would help my friends see things from different perspectives...",
        },
    ),
    StoryTemplate(
        id="when_i_feel_big_emotions",
        title="When I Feel Big Emotions",
        description="Help your child understand and manage complex emotions through relatable scenarios and coping strategies.",
        category="emotional_intelligence",
        age_groups=["3-5", "6-8"],
        educational_focus=["sel", "social_skills"],
        difficulty="beginner",
        pages=8,
        estimated_reading_time=6,
        subscription_tier="premium",
        themes=["emotional_regulation", "empathy", "self_confidence"],
        learning_objectives=[
            "Identify different emotions",
            "Learn healthy coping strategies",
            "Understand that all feelings are valid",
            "Develop emotional vocabulary",
        ],
        parent_guide="Perfect for children who struggle with emotional regulation. Includes discussion prompts and coping strategy cards.",
        therapeutic_value=["anxiety_reduction", "emotional_regulation", "coping_strategies"],
        preview={
            "cover_text": "Sometimes {childName} feels angry, sad, or worried. Let's learn how to handle big emotions together!",
            "sample_page": "When I feel angry like a volcano about to erupt, I take three deep breaths and count to ten...",
        },
    ),
    StoryTemplate(
        id="my_worry_monster",
        title="My Worry Monster and Me",
        description="A therapeutic story that helps children understand anxiety and learn practical tools to manage worries.",
        category="therapeutic",
        age_groups=["6-8", "9-12"],
        educational_focus=["sel", "social_skills"],
        difficulty="intermediate",
        pages=12,
        estimated_reading_time=10,
        subscription_tier="premium",
        themes=["emotional_regulation", "courage", "problem_solving"],
        learning_objectives=[
            "Externalize anxiety as a manageable character",
            "Learn worry-reduction techniques",
            "Build resilience and coping skills",
            "Understand that worries are normal",
        ],
        parent_guide="Developed with child psychologists. Includes parent resources for supporting anxious children.",
        therapeutic_value=["anxiety_reduction", "coping_strategies", "emotional_regulation"],
        preview={
            "cover_text": "{childName} meets their worry monster and learns it's not as scary as it seems!",
            "sample_page": "My worry monster whispers \"what if\" stories, but I've learned to tell it better stories instead...",
        },
    ),
    StoryTemplate(
        id="space_explorer_adventure",
        title="If I Were a Space Explorer",
        description="Join your child on an educational journey through space, learning about planets, stars, and the scientific method.",
        category="stem_education",
        age_groups=["6-8", "9-12"],
        educational_focus=["stem", "critical_thinking"],
        difficulty="intermediate",
        pages=14,
        estimated_reading_time=12,
        subscription_tier="premium",
        themes=["curiosity", "problem_solving", "perseverance", "creativity"],
        learning_objectives=[
            "Learn basic astronomy concepts",
            "Understand the scientific method",
            "Develop problem-solving skills",
            "Foster curiosity about STEM careers",
        ],
        parent_guide="Includes real space facts and hands-on activities. Great for budding scientists and engineers.",
        preview={
            "cover_text": "Astronaut {childName} blasts off on a mission to explore the solar system and make amazing discoveries!",
            "sample_page": "As I float past Mars, I use my tools to collect rock samples and test my hypothesis about life on other planets...",
        },
    ),
    StoryTemplate(
        id="inventor_workshop",
        title="My Amazing Invention Workshop",
        description="Your child becomes an inventor, creating solutions to everyday problems while learning engineering principles.",
        category="stem_education",
        age_groups=["6-8", "9-12"],
        educational_focus=["stem", "creativity"],
        difficulty="intermediate",
        pages=10,
        estimated_reading_time=8,
        subscription_tier="premium",
        themes=["creativity", "problem_solving", "perseverance", "growth_mindset"],
        learning_objectives=[
            "Understand the design thinking process",
            "Learn basic engineering concepts",
            "Develop creative problem-solving skills",
            "Build confidence in STEM abilities",
        ],
        parent_guide="Encourages hands-on experimentation. Includes simple DIY projects to try at home.",
        preview={
            "cover_text": "Inventor {childName} opens their workshop and creates amazing gadgets to help friends and family!",
            "sample_page": "When my little brother has trouble reaching the light switch, I design a special step stool that folds flat...",
        },
    ),
    StoryTemplate(
        id="our_beautiful_differences",
        title="Our Beautiful Differences",
        description="Celebrate diversity and learn about different cultures, abilities, and family structures in an inclusive adventure.",
        category="diversity_inclusion",
        age_groups=["3-5", "6-8"],
        educational_focus=["cultural_awareness", "social_skills"],
        difficulty="beginner",
        pages=10,
        estimated_reading_time=8,
        subscription_tier="premium",
        themes=["diversity", "empathy", "friendship", "kindness"],
        learning_objectives=[
            "Celebrate different cultures and traditions",
            "Understand different family structures",
            "Develop empathy for people with disabilities",
            "Learn that differences make us stronger",
        ],
        parent_guide="Promotes inclusive thinking and cultural awareness. Includes discussion questions about diversity.",
        cultural_adaptations=["Indian festivals", "Global traditions", "Different languages", "Various religions"],
        preview={
            "cover_text": "{childName} meets friends from around the world and learns that our differences make us special!",
            "sample_page": "My friend Arjun teaches me about Diwali, while I share my family's traditions with him...",
        },
    ),
    StoryTemplate(
        id="responsibility_hero",
        title="The Responsibility Hero",
        description="Your child learns about responsibility through age-appropriate tasks and sees how helping others feels amazing.",
        category="life_skills",
        age_groups=["6-8", "9-12"],
        educational_focus=["life_skills", "social_skills"],
        difficulty="intermediate",
        pages=10,
        estimated_reading_time=8,
        subscription_tier="basic",
        themes=["responsibility", "kindness", "growth_mindset", "family"],
        learning_objectives=[
            "Understand age-appropriate responsibilities",
            "Learn the connection between effort and results",
            "Develop pride in contributing to family/community",
            "Build time management skills",
        ],
        parent_guide="Perfect for teaching chores and responsibilities. Includes a responsibility chart template.",
        preview={
            "cover_text": "Super-helper {childName} discovers that being responsible gives them amazing powers!",
            "sample_page": "When I remember to feed my pet fish without being reminded, I feel like I have a responsibility superpower...",
        },
    ),
    StoryTemplate(
        id="first_day_adventure",
        title="My First Day Adventure",
        description="Ease first-day jitters with a story about starting school, making friends, and discovering new things.",
        category="special_occasions",
        age_groups=["3-5", "6-8"],
        educational_focus=["sel", "social_skills"],
        difficulty="beginner",
        pages=8,
        estimated_reading_time=6,
        subscription_tier="basic",
        themes=["courage", "friendship", "curiosity", "growth_mindset"],
        learning_objectives=[
            "Reduce anxiety about new experiences",
            "Learn strategies for making friends",
            "Build confidence in new situations",
            "Understand that nervousness is normal",
        ],
        parent_guide="Perfect for school transitions. Includes tips for parents to support children during new beginnings.",
        therapeutic_value=["anxiety_reduction", "social_skills", "self_esteem"],
        preview={
            "cover_text": "{childName} is nervous about their first day, but discovers it's the beginning of an amazing adventure!",
            "sample_page": "My tummy feels fluttery like butterflies, but I remember that feeling excited and nervous can happen together...",
        },
    ),
    StoryTemplate(
        id="earth_helper",
        title="If I Were an Earth Helper",
        description="Learn about environmental protection through fun activities and discover how children can make a difference.",
        category="environmental",
        age_groups=["6-8", "9-12"],
        educational_focus=["environmental_awareness", "social_skills"],
        difficulty="intermediate",
        pages=10,
        estimated_reading_time=8,
        subscription_tier="premium",
        themes=["responsibility", "problem_solving", "teamwork"],
        learning_objectives=[
            "Understand environmental challenges",
            "Learn practical conservation actions",
            "Develop sense of environmental responsibility",
            "Connect individual actions to global impact",
        ],
        parent_guide="Includes family activities for environmental conservation and sustainable living tips.",
        preview={
            "cover_text": "Eco-warrior {childName} learns how small actions can make a big difference for our planet!",
            "sample_page": "When I turn off lights and use both sides of paper, I'm being a superhero for the Earth...",
        },
    ),
]


def get_template_by_id(template_id: str) -> Optional[StoryTemplate]:
    return next((t for t in STORY_TEMPLATES if t.id == template_id), None)


def filter_templates(
    category: Optional[str] = None,
    age_group: Optional[str] = None,
    subscription_tier: Optional[str] = None,
) -> list[StoryTemplate]:
    """
    Filter the template catalogue.

    `None` or "all" disables a filter. A "basic" tier sees basic templates
    only; "premium" sees premium and basic.
    """
    templates = list(STORY_TEMPLATES)

    if category and category != "all":
        templates = [t for t in templates if t.category == category]

    if age_group and age_group != "all":
        templates = [t for t in templates if age_group in t.age_groups]

    if subscription_tier == "basic":
        templates = [t for t in templates if t.subscription_tier == "basic"]
    elif subscription_tier == "premium":
        templates = [t for t in templates if t.subscription_tier in ("premium", "basic")]

    return templates


def get_therapeutic_templates() -> list[StoryTemplate]:
    return [t for t in STORY_TEMPLATES if t.therapeutic_value]


# =============================================================================
# "If I Were an Animal" book
# =============================================================================


@dataclass
class Animal:
    """One animal spread of the rhyming animal book."""

    name: str
    emoji: str
    text: str
    lesson: str
    interaction_prompt: str


STORY_ANIMALS: list[Animal] = [
    Animal(
        name="bird",
        emoji="🕊️",
        text="I would flap my wings and fly up high,\nAnd learn to see the world from the sky.",
        lesson="Perspective / Imagination",
        interaction_prompt="A child flying alongside a beautiful white dove through fluffy clouds in a bright blue sky, both with their arms/wings spread wide, feeling free and joyful",
    ),
    Animal(
        name="lion",
        emoji="🦁",
        text="I would roar with pride and walk so tall,\nAnd learn to be brave, even if I'm small.",
        lesson="Courage",
        interaction_prompt="A child walking confidently next to a majestic but gentle lion through a golden savanna, the lion teaching the child to stand tall and proud",
    ),
    Animal(
        name="turtle",
        emoji="🐢",
        text="I would take my time and not rush past,\nAnd learn that slow can still be fast!",
        lesson="Patience",
        interaction_prompt="A child sitting peacefully beside a wise old turtle near a tranquil pond, both enjoying the calm moment and watching lily pads float by",
    ),
    Animal(
        name="monkey",
        emoji="🐒",
        text="I would swing from trees and giggle all day,\nAnd learn that laughter is the best way to play!",
        lesson="Joy / Fun",
        interaction_prompt="A child playing and laughing with a playful monkey in a lush jungle, both swinging from vines and having the time of their lives",
    ),
    Animal(
        name="ant",
        emoji="🐜",
        text="I would carry big things with all my might,\nAnd learn that teamwork makes things right.",
        lesson="Teamwork / Strength",
        interaction_prompt="A child helping a group of ants carry a large leaf together, all working as a team with the child shrunk down to ant size in imagination",
    ),
    Animal(
        name="butterfly",
        emoji="🦋",
        text="I would change my colours and float around,\nAnd learn that growing up is safe and sound.",
        lesson="Change / Self-Discovery",
        interaction_prompt="A child watching in wonder as a butterfly emerges from its chrysalis, surrounded by a magical garden full of colorful flowers",
    ),
    Animal(
        name="dog",
        emoji="🐶",
        text="I would wag my tail and stay by your side,\nAnd learn that love is nothing to hide.",
        lesson="Loyalty / Love",
        interaction_prompt="A child hugging a friendly golden retriever in a sunny meadow, both showing pure love and affection for each other",
    ),
    Animal(
        name="fish",
        emoji="🐠",
        text="I would swim through water deep and blue,\nAnd learn that exploring is fun to do!",
        lesson="Curiosity",
        interaction_prompt="A child swimming underwater with colorful tropical fish in a crystal-clear ocean, discovering a magical underwater world together",
    ),
]

INTRO_PAGE = {
    "text": "Hello, my name is {{childName}}.\nToday, I'm going to imagine being all kinds of animals!\nWhat would I learn if I were them?",
    "image_prompt": "A curious child standing in a magical forest clearing, surrounded by gentle glowing lights and various friendly animals peeking from behind trees, Studio Ghibli style",
}

OUTRO_PAGE = {
    "text": "Now I'm just me, and that's the best!\nBut I've learned from animals, I've passed the test!\nBeing kind, brave, and smart too,\nThere's so much to learn, from the wild to you!",
    "image_prompt": "A happy child surrounded by all the animal friends from the story in a beautiful sunset scene, all together in harmony, Studio Ghibli style",
}


def build_animal_book_pages(
    selected_animals: Optional[list[str]] = None,
    child_name: Optional[str] = None,
    child_appearance: Optional[str] = None,
) -> list[dict]:
    """
    Assemble the animal book: intro, one page per animal, outro.

    Animals keep catalogue order. An empty or missing selection includes
    every animal. Page text keeps the `{{childName}}` placeholder for the
    reader and PDF exporter to fill in.

    With a child appearance the image prompts switch to the Ghibli scene
    prompts, each animal page naming the child and its lesson.
    """
    magical = bool(child_name and child_appearance)
    if selected_animals:
        animals = [a for a in STORY_ANIMALS if a.name in selected_animals]
    else:
        animals = list(STORY_ANIMALS)

    pages = [
        {
            "id": "intro",
            "pageNumber": 1,
            "text": INTRO_PAGE["text"],
            "imagePrompt": MAGICAL_SCENE_PROMPTS["introduction"] if magical else INTRO_PAGE["image_prompt"],
            "status": "pending",
        }
    ]

    for index, animal in enumerate(animals):
        pages.append(
            {
                "id": f"animal-{animal.name}",
                "pageNumber": index + 2,
                "text": f"If I were a {animal.name}...\n{animal.text}",
                "imagePrompt": (
                    create_emotional_prompt(
                        child_name, child_appearance, animal.name, animal.lesson, animal.interaction_prompt
                    )
                    if magical
                    else animal.interaction_prompt
                ),
                "animal": animal.emoji,
                "lesson": animal.lesson,
                "status": "pending",
            }
        )

    pages.append(
        {
            "id": "outro",
            "pageNumber": len(pages) + 1,
            "text": OUTRO_PAGE["text"],
            "imagePrompt": MAGICAL_SCENE_PROMPTS["conclusion"] if magical else OUTRO_PAGE["image_prompt"],
            "status": "pending",
        }
    )
    return pages
