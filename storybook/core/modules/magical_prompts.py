"""
Studio Ghibli-inspired prompt builders for single illustrations.

Lighting, atmosphere and "nature magic" are picked from scene keywords;
a couple of random background creatures keep repeated scenes from
looking identical.
"""

import random
from typing import Optional

MAGICAL_ELEMENTS: dict[str, dict[str, str]] = {
    "lighting": {
        "golden_hour": "bathed in warm golden hour light with volumetric god rays, dust motes dancing like tiny stars",
        "ethereal_glow": "surrounded by thousands of floating light particles, bioluminescent spirits glowing softly",
        "moonlight": "illuminated by ethereal moonlight with aurora-like ribbons in the sky, stars twinkling magically",
        "forest_rays": "dramatic shafts of sunlight piercing through ancient tree canopy, creating pools of golden light",
        "underwater": "filtered through crystal water with caustic patterns dancing on everything, bubbles catching rainbow light",
    },
    "atmosphere": {
        "mystical": "air thick with magic: floating seeds, glowing spores, tiny spirits, butterflies leaving light trails",
        "dreamy": "soft watercolor edges blending reality with dream, distant elements fading into pastel mist",
        "magical": "visible magic everywhere: sparkles, floating crystals, energy wisps, petals suspended mid-air",
        "serene": "gentle wind making grass dance in waves, clouds drifting lazily, leaves spiraling gracefully",
        "wonder": "impossible beauty: floating rocks, upside-down waterfalls, trees growing into sky bridges",
    },
    "nature_magic": {
        "enchanted_forest": "massive ancient trees with doors in trunks, glowing mushroom villages, tiny spirits peeking from leaves, roots forming natural staircases, moss that pulses with soft light",
        "flower_meadow": "infinite wildflower ocean with waves of color, butterflies creating living rainbows, flowers that sing in the wind, hidden fairy rings",
        "sky_wonders": "floating islands connected by rainbow bridges, cloud whales swimming by, castle ruins on distant peaks, birds leaving trails of stardust",
        "water_magic": "crystal streams with visible water spirits, koi fish made of starlight, lily pads large enough to sit on, underwater gardens visible through clear depths",
        "wind_spirits": "visible wind beings dancing through air, leaves and petals caught in magical spirals, dandelion seeds floating impossibly slowly, wind chimes singing without touch",
    },
    "ghibli_signature": {
        "totoro_forest": "lush green forest with enormous ancient trees and hidden spirits",
        "spirited_away": "otherworldly beauty with traditional Japanese elements and magic",
        "howls_castle": "rolling hills with moving castles in the distance, flower fields",
        "ponyo_ocean": "vibrant underwater world with jellyfish and coral gardens",
        "kiki_sky": "coastal town view from above with red-tiled roofs and blue ocean",
    },
}

MAGICAL_CREATURES = [
    "tiny kodama spirits hiding in trees",
    "dust bunnies (susuwatari) scurrying in corners",
    "forest spirits glowing softly",
    "magical butterflies leaving trails of light",
    "small totoro-like creatures peeking from bushes",
]

MAGICAL_ENHANCEMENTS = [
    "with butterflies dancing around in spirals",
    "as flower petals float gently through the air",
    "while magical sparkles drift like stardust",
    "with rainbow light refracting through dewdrops",
    "as gentle spirits peek from behind trees",
    "with clouds forming whimsical shapes above",
    "while fireflies create constellations in the air",
    "as the wind carries whispers of adventure",
]

ANIMAL_ENHANCEMENTS = {
    "bird": "with clouds forming sky castles, rainbow bridges, wind spirits dancing",
    "lion": "golden savanna rippling like waves, dust devils dancing, spirits in clouds",
    "turtle": "cherry blossoms falling in slow motion, ripples turning gold, time visible as threads",
    "monkey": "ancient temples with bioluminescent vines, butterflies forming bridges",
    "ant": "dewdrops as crystal balls, glowing mushrooms, pollen like golden snow",
    "butterfly": "thousands creating living stained glass, flowers blooming in their path",
    "dog": "sunflower fields touching clouds, petals swirling, flowers following their movement",
    "fish": "coral castles glowing, schools painting murals, underwater auroras",
}

DEFAULT_ANIMAL_ENHANCEMENT = "in a magical landscape filled with wonder"


def _pick_environment(scene: str) -> tuple[str, str, str]:
    """Return (lighting, atmosphere, nature_magic) for a scene."""
    lowered = scene.lower()
    lighting = MAGICAL_ELEMENTS["lighting"]["golden_hour"]
    atmosphere = MAGICAL_ELEMENTS["atmosphere"]["wonder"]
    nature_magic = ""

    if "forest" in lowered or "tree" in lowered:
        lighting = MAGICAL_ELEMENTS["lighting"]["forest_rays"]
        nature_magic = MAGICAL_ELEMENTS["nature_magic"]["enchanted_forest"]
    elif "ocean" in lowered or "underwater" in lowered:
        lighting = MAGICAL_ELEMENTS["lighting"]["underwater"]
        nature_magic = MAGICAL_ELEMENTS["nature_magic"]["water_magic"]
    elif "sky" in lowered or "fly" in lowered:
        atmosphere = MAGICAL_ELEMENTS["atmosphere"]["dreamy"]
        nature_magic = MAGICAL_ELEMENTS["nature_magic"]["sky_wonders"]
    elif "night" in lowered or "moon" in lowered:
        lighting = MAGICAL_ELEMENTS["lighting"]["moonlight"]
        atmosphere = MAGICAL_ELEMENTS["atmosphere"]["mystical"]

    return lighting, atmosphere, nature_magic


def simplify_child_description(child_description: str) -> str:
    """Keep the first three comma-separated parts; DALL-E follows short descriptions better."""
    return ",".join(child_description.split(",")[:3])


def create_magical_prompt(
    child_description: str,
    scene: str,
    rng: Optional[random.Random] = None,
) -> str:
    """Full Ghibli-style DALL-E prompt for one scene featuring the child."""
    rng = rng or random
    simple_child = simplify_child_description(child_description)
    lighting, atmosphere, nature_magic = _pick_environment(scene)
    creatures = ", ".join(rng.sample(MAGICAL_CREATURES, 2))

    return (
        f"STUDIO GHIBLI ANIME FILM STILL by Hayao Miyazaki - ULTRA DETAILED MAGICAL SCENE. "
        f"{simple_child} in an AWE-INSPIRING moment of pure magic. {scene}.\n\n"
        f"ENVIRONMENT: {lighting}, {atmosphere}. {nature_magic}. Background has MULTIPLE LAYERS "
        f"of detail: foreground elements, mid-ground action, distant magical vistas. {creatures}.\n\n"
        "ARTISTIC STYLE: Authentic hand-painted watercolor anime EXACTLY like My Neighbor Totoro, "
        "Spirited Away, Princess Mononoke. Soft brushstrokes, color bleeding, paper texture visible. "
        "Muted earthy colors with magical glows. Professional anime film frame.\n\n"
        "MAGICAL ELEMENTS: Wind visibly moving everything, floating particles everywhere, impossible "
        "physics, dreamlike proportions, nature alive and breathing. Every leaf, every cloud has personality.\n\n"
        "EMOTIONAL IMPACT: Must inspire childlike wonder and take viewer's breath away. "
        "This is the most beautiful moment the child has ever experienced."
    )


def enhance_scene_with_magic(basic_scene: str, rng: Optional[random.Random] = None) -> str:
    """Append two random magical touches to a plain scene description."""
    rng = rng or random
    return f"{basic_scene}, {', '.join(rng.sample(MAGICAL_ENHANCEMENTS, 2))}"


def create_emotional_prompt(
    child_name: str,
    child_appearance: str,
    animal_companion: str,
    lesson: str,
    original_scene: Optional[str] = None,
) -> str:
    """Prompt for an animal-book page that keeps the original scene and adds animal-specific magic."""
    enhancement = ANIMAL_ENHANCEMENTS.get(animal_companion.lower(), DEFAULT_ANIMAL_ENHANCEMENT)
    base_scene = original_scene or f"{child_name} with {animal_companion}"

    return (
        f"AUTHENTIC STUDIO GHIBLI ANIME by Hayao Miyazaki - {base_scene}, {enhancement}. "
        f"{child_name} ({child_appearance}) shows pure joy and wonder. MUST look EXACTLY like scenes "
        "from My Neighbor Totoro, Spirited Away, or Princess Mononoke. Hand-painted watercolor anime "
        "with visible brush textures, ethereal lighting, floating particles of light. Rich detailed "
        f'backgrounds with depth. The scene captures the lesson "{lesson}" through visual storytelling. '
        "Soft muted colors, dreamlike quality, breathtaking composition. Professional anime film quality."
    )


MAGICAL_SCENE_PROMPTS: dict[str, str] = {
    "introduction": (
        "STUDIO GHIBLI ANIME MASTERPIECE by Hayao Miyazaki (NOT cartoon style!): A child standing at their "
        "bedroom window at dawn, golden light streaming in creating god rays, as magical forest spirits peek "
        "through the glass. The room filled with floating particles of light that dance in the air. Outside, "
        "a fantastical world with ancient trees, floating islands, and aurora-like sky. Hand-painted watercolor "
        "anime style EXACTLY like My Neighbor Totoro opening. Soft brushstrokes, muted colors, dreamlike "
        "atmosphere. Professional anime film quality."
    ),
    "conclusion": (
        "STUDIO GHIBLI ANIME FINALE in the style of Hayao Miyazaki (MUST NOT be cartoon!): A child surrounded "
        "by all their magical animal friends in a circular meadow at golden hour. Each animal has an ethereal "
        "glow. The sky painted in breathtaking gradients of lavender, gold and rose. Thousands of flower petals "
        "and dandelion seeds swirl in a gentle magical vortex. The child's expression shows transcendent joy. "
        "Epic composition like Princess Mononoke's ending. Hand-painted textures, visible brushwork, "
        "professional anime quality."
    ),
    "bird": (
        "BREATHTAKING AERIAL SCENE: Child riding on the back of a giant phoenix-like bird through a sea of "
        "clouds that form impossible sky kingdoms. The setting sun turns everything to liquid gold. Below, "
        "floating islands connected by waterfalls that flow upward. Wind spirits with translucent wings escort "
        "them. The bird's feathers trail stardust."
    ),
    "lion": (
        "MAJESTIC SAVANNA MAGIC: Child and noble lion stand atop a rock as the entire savanna comes alive. "
        "Grass waves form a golden ocean, every acacia tree has a spirit guardian, dust devils dance like ballet. "
        "The lion's mane flows with cosmic energy. The setting sun is three times larger than normal, painting "
        "the world in impossible colors."
    ),
    "turtle": (
        "TIMELESS POND OF WISDOM: Child and ancient turtle sit by an enchanted pond where time flows "
        "differently. Cherry blossoms fall upward, water flows in spirals, ripples form mandala patterns. "
        "The turtle's shell contains a miniature galaxy. Koi fish made of pure starlight swim through air and "
        "water alike. Fireflies write messages in ancient scripts."
    ),
    "butterfly": (
        "TRANSFORMATION CATHEDRAL: Child witnesses butterfly friend's metamorphosis in a glass cathedral made "
        "of flower petals. Thousands of butterflies create living stained glass murals that tell stories. "
        "Each wing beat releases musical notes visible as golden ribbons. The chrysalis cracks open releasing "
        "aurora lights."
    ),
}


def select_prompt_strategy(
    requires_magic: bool = True,
    requires_consistency: bool = True,
    art_style: str = "studio_ghibli",
) -> str:
    """Return "magical_ghibli", "technical_consistent" or "balanced"."""
    if requires_magic and art_style == "studio_ghibli":
        return "magical_ghibli"
    if requires_consistency and not requires_magic:
        return "technical_consistent"
    return "balanced"
