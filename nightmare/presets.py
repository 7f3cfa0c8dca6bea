"""
Preset Library - hidden prompts for the horror transformation and animation.
Users toggle a style and pick a camera move, we inject the actual direction.
"""

TRANSFORM_STYLE_PROMPTS = {
    "stylized": (
        "Transform the person in this photo into a terrifying horror-movie version of "
        "themselves. Keep their face, pose and composition recognizable. Pale decaying "
        "skin, hollow eyes, dark veins, cinematic horror poster lighting, desaturated "
        "palette with deep shadows and a sickly green tint, painterly film-still look."
    ),
    "realistic": (
        "Transform the person in this photo into a photorealistic horror-movie version of "
        "themselves. Keep their face, pose and composition recognizable. Practical "
        "special-effects makeup, realistic skin texture, subtle wounds and decay, natural "
        "low-key lighting, shot on 35mm film, indistinguishable from a real photograph."
    ),
}

VIDEO_BASE_PROMPT = (
    "The person in the image slowly comes to life in an unsettling, creepy way. "
    "Subtle eerie movement, flickering light, horror film atmosphere."
)

CAMERA_MOTION_DIRECTIVES = {
    "Camera Shake (Static)": "Static camera with a faint nervous handheld shake.",
    "Slow Zoom In": "Camera slowly zooms in on the subject's face.",
    "Slow Zoom Out": "Camera slowly zooms out revealing the surroundings.",
    "Pan Left": "Camera pans slowly to the left.",
    "Pan Right": "Camera pans slowly to the right.",
    "Dolly Forward": "Camera dollies forward towards the subject.",
    "Handheld Drift": "Loose handheld camera drifting around the subject, found-footage feel.",
    "Orbit": "Camera orbits slowly around the subject.",
}

# Shown in order while the video job is pending, cycling if the job outlasts them.
VIDEO_GENERATION_MESSAGES = [
    "Warming up the nightmare engine...",
    "Summoning the spirits of motion...",
    "Rendering frames from the abyss...",
    "Stitching together your living nightmare...",
    "Adding the final creepy touches...",
    "Almost there... don't look behind you...",
]


def build_transform_prompt(prompt: str, negative_prompt: str, realistic: bool) -> str:
    """Compose the full transformation instruction from style + user input."""
    parts = [TRANSFORM_STYLE_PROMPTS["realistic" if realistic else "stylized"]]
    if prompt.strip():
        parts.append(f"Additional direction: {prompt.strip()}")
    if negative_prompt.strip():
        parts.append(f"Avoid: {negative_prompt.strip()}")
    return "\n\n".join(parts)


def build_video_prompt(prompt: str, camera_motion: str) -> str:
    """Compose the animation prompt; ``camera_motion`` must be a catalogue label."""
    return " ".join([
        prompt.strip() or VIDEO_BASE_PROMPT,
        CAMERA_MOTION_DIRECTIVES[camera_motion],
    ])
