"""
Prompt library: hidden prompts for listing video generation.
Scenes pick a motion template and projects pick a music genre, we inject the
actual provider prompt.
"""

_CONTINUOUS = "throughout the entire clip duration from first frame to last frame"

MOTION_PROMPTS = {
    "push_in": (
        f"Continuous slow and steady dolly push-in camera movement {_CONTINUOUS}, "
        "gradually moving forward into the room revealing architectural details and depth, "
        "cinematic real estate interior, the camera glides deeper into the space at a "
        "constant pace without stopping, pausing, or reversing at any point"
    ),
    "pan_left": (
        f"Continuous smooth horizontal pan sweeping from right to left {_CONTINUOUS}, "
        "slowly and steadily revealing the full room panorama and showcasing the room's "
        "width, cinematic real estate interior, the camera rotation never stops or "
        "hesitates, maintaining a constant speed from start to finish"
    ),
    "pan_right": (
        f"Continuous smooth horizontal pan sweeping from left to right {_CONTINUOUS}, "
        "slowly and steadily revealing the full room panorama and showcasing the room's "
        "width, cinematic real estate interior, the camera rotation never stops or "
        "hesitates, maintaining a constant speed from start to finish"
    ),
    "tilt_up": (
        f"Continuous smooth vertical tilt upward {_CONTINUOUS}, slowly and steadily "
        "revealing from floor level up to ceiling and architectural details such as crown "
        "molding, beams, and height, cinematic real estate interior, the upward camera "
        "tilt maintains constant speed without pausing"
    ),
    "tilt_down": (
        f"Continuous smooth vertical tilt downward {_CONTINUOUS}, slowly and steadily "
        "revealing from ceiling down to floor level showcasing flooring materials and "
        "furnishings, cinematic real estate interior, the downward camera tilt maintains "
        "constant speed without pausing"
    ),
    "orbit": (
        f"Continuous slow orbital camera movement circling around the room's focal point "
        f"{_CONTINUOUS}, the camera arcs gracefully around the subject at a slow and steady "
        "pace showcasing the room's depth and three-dimensional space, cinematic real "
        "estate interior, the orbital motion never stops or slows down"
    ),
    "crane_up": (
        f"Continuous smooth crane-up camera movement rising vertically {_CONTINUOUS}, "
        "starting from a low angle and gradually accelerating upward to reveal the full "
        "height of the space and architectural grandeur, cinematic real estate interior, "
        "the upward crane motion maintains consistent velocity from start to finish"
    ),
    "tracking_left": (
        f"Continuous smooth lateral tracking shot moving left {_CONTINUOUS}, the camera "
        "glides sideways along the room at a slow and steady pace revealing depth and "
        "dimension and showcasing the room's full length, cinematic real estate interior, "
        "the lateral motion never stops or pauses"
    ),
    "tracking_right": (
        f"Continuous smooth lateral tracking shot moving right {_CONTINUOUS}, the camera "
        "glides sideways along the room at a slow and steady pace revealing depth and "
        "dimension and showcasing the room's full length, cinematic real estate interior, "
        "the lateral motion never stops or pauses"
    ),
    "dolly_back": (
        f"Continuous smooth dolly pull-back camera movement {_CONTINUOUS}, slowly and "
        "steadily moving backward to reveal the full scope of the room and its "
        "relationship to adjacent spaces, cinematic real estate interior, the backward "
        "motion maintains constant speed without stopping or reversing"
    ),
}

DEFAULT_MOTION_TEMPLATE = "push_in"

GENERIC_MOTION_PROMPT = (
    f"Continuous smooth cinematic camera movement {_CONTINUOUS}, real estate interior, "
    "slow and steady motion that never stops or pauses, showcasing the room's "
    "architectural details and depth"
)

NEGATIVE_PROMPT = "blurry, distorted, low quality, watermark, text overlay"

MUSIC_PROMPTS = {
    "ambient": (
        "Calm ambient background music for a luxury real estate property video tour, "
        "soft pads, gentle atmosphere, elegant and modern"
    ),
    "cinematic piano": (
        "Cinematic piano background music for an upscale real estate property tour, "
        "emotional, elegant, inspiring, soft strings accompaniment"
    ),
    "upbeat electronic": (
        "Upbeat electronic background music for a modern real estate property showcase, "
        "energetic but not overwhelming, clean production, contemporary feel"
    ),
    "acoustic": (
        "Warm acoustic guitar background music for a cozy real estate home tour, "
        "inviting, friendly, natural feel, light percussion"
    ),
}

GENERIC_MUSIC_PROMPT = (
    "Background music for a real estate property video tour, elegant and professional"
)


def get_motion_prompt(motion_template: str = None) -> str:
    """Get the camera-motion prompt for a scene, falling back to a generic move."""
    return MOTION_PROMPTS.get(motion_template or DEFAULT_MOTION_TEMPLATE, GENERIC_MOTION_PROMPT)


def get_music_prompt(genre: str = None) -> str:
    """Get the music prompt for a genre keyword."""
    return MUSIC_PROMPTS.get(genre or "ambient", GENERIC_MUSIC_PROMPT)
