"""
DSPy Signature for scoring an illustration prompt against its page.
"""

import dspy


class PromptQualitySignature(dspy.Signature):
    """
    Score how well an image prompt will illustrate a children's storybook page.

    Rate each criterion from 0 to 10. Be strict: 7 is good, 5 is mediocre.
    - character_consistency: the child is described exactly as in the character reference
    - scene_accuracy: setting, characters and action match the page text
    - art_quality: the prompt asks for a clear, polished single-scene composition
    - child_appropriateness: nothing scary, unsafe or unsuitable for young children
    - story_alignment: the illustration would support the page's purpose in the story
    """

    page_text: str = dspy.InputField(desc="The story text printed on the page")
    image_prompt: str = dspy.InputField(desc="The prompt sent to the image model")
    character_reference: str = dspy.InputField(desc="How the child must look in every image")

    character_consistency: int = dspy.OutputField(desc="0-10")
    scene_accuracy: int = dspy.OutputField(desc="0-10")
    art_quality: int = dspy.OutputField(desc="0-10")
    child_appropriateness: int = dspy.OutputField(desc="0-10")
    story_alignment: int = dspy.OutputField(desc="0-10")
    feedback: str = dspy.OutputField(desc="The single most useful fix for the prompt")
