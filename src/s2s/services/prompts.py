"""Prompt text sent to the generation backend."""

from ..models import GenerationConfig

STORYBOARD_QUALIFIERS = " --aspect-ratio 16:9 --style cinematic --high-quality"

# Cycled while the video job is still running
PROGRESS_MESSAGES = (
    "Drafting storyboards...",
    "Setting up virtual lighting...",
    "Capturing initial frames...",
    "Refining textures...",
    "Applying cinematic color grade...",
    "Finalizing render...",
)


def build_analysis_prompt(options: GenerationConfig) -> str:
    """Build the instruction that accompanies the PDF script."""
    archetypes = ", ".join(a.value for a in options.archetypes)
    camera = options.camera.value

    prompt_parts = [
        "Analyze this movie script and extract a cinematic scene that fits the following parameters:",
        f"- Target Genre: {options.genre.value}",
        f"- Target Mood: {options.mood.value}",
        f"- Camera Movement Style: {camera}",
        f"- Required Character Archetypes to feature: {archetypes}",
        "",
        "Your task:",
        "1. Identify or adapt a scene from the PDF that best matches these parameters.",
        "2. Provide a compelling movie title.",
        "3. Write a short cinematic description of the scene's emotional core.",
        "4. Create a highly detailed visual prompt for an AI video generator.",
        f'   CRITICAL: Start the prompt by describing the camera movement: "{camera}".',
        "   Include details about lighting (e.g., volumetric, high-contrast), texture,",
        "   and specific details about the environment and character actions that reflect "
        f"the {options.mood.value} mood.",
        "5. List which characters/archetypes are featured.",
    ]

    if options.include_subtitles:
        prompt_parts.append(
            "6. Generate exactly 2-4 lines of cinematic dialogue (subtitles) that match the "
            "visual prompt. Each subtitle must have a start_time and end_time (in seconds, "
            "between 0 and 6)."
        )

    return "\n".join(prompt_parts)


def progress_message(poll_index: int) -> str:
    """Return the status line for the given not-done poll, wrapping around."""
    return PROGRESS_MESSAGES[poll_index % len(PROGRESS_MESSAGES)]
