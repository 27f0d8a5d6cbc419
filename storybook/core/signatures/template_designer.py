"""
DSPy Signature for designing a story template around one child.
"""

import dspy


class TemplateDesignerSignature(dspy.Signature):
    """
    You are an expert children's content creator specializing in personalized,
    educational storytelling. Create a story template that is pedagogically
    sound, culturally sensitive, and deeply engaging for the specific child.

    The template must:
    1. Incorporate the child's specific interests
    2. Address the learning goals
    3. Be culturally appropriate and inclusive
    4. Provide educational value while being entertaining
    5. Be age-appropriate for the child's age

    The title features the child by name. The outline has 8-12 pages.
    """

    child_profile: str = dspy.InputField(
        desc="Name, age, interests, learning goals, parent concerns and cultural background"
    )

    title: str = dspy.OutputField(desc="Story title featuring the child")
    description: str = dspy.OutputField(desc="Engaging one or two sentence description")
    age_groups: list[str] = dspy.OutputField(desc="Suitable age groups from: 3-5, 6-8, 9-12, 13+")
    educational_focus: list[str] = dspy.OutputField(desc="Relevant focus areas")
    difficulty: str = dspy.OutputField(desc="beginner, intermediate or advanced")
    themes: list[str] = dspy.OutputField(desc="Relevant themes")
    learning_objectives: list[str] = dspy.OutputField(desc="Specific learning objectives")
    cover_text: str = dspy.OutputField(desc="Cover description")
    sample_page: str = dspy.OutputField(desc="Sample page content, 2-3 sentences")
    story_outline: list[str] = dspy.OutputField(
        desc="One entry per page: what happens and what the page teaches"
    )
    parent_guide: str = dspy.OutputField(desc="How parents can extend the learning")
    cultural_elements: list[str] = dspy.OutputField(desc="Relevant cultural considerations")
