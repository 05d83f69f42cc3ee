"""Prompt text for the analysis model and the video metadata files."""

from __future__ import annotations

from typing import Optional

from app.utils.helpers import now_iso

MASTER_PROMPT = """You are the director of a short Halloween horror film shot inside a haunted high school.
Look at the attached photobooth picture and write ONE prompt for an image-to-video model.

Rules:
- Keep every person from the photo recognisable: same faces, costumes, poses and group size.
- Describe their costumes and weave them into the haunting (hallways, cafeteria, library,
  gymnasium, classroom or a ghostly prom).
- Name a camera move (push in, orbit, tracking shot, tilt) and the lighting mood.
- Add one or two supernatural details: floating lockers, phantom students, flickering lights, fog.
- Spooky and cinematic, never gory. 5 to 7 seconds of action.

Answer with the prompt text only, no preamble, no markdown."""


METADATA_TEMPLATE = """# Halloween Video - {title}
Generated from: {original_name}
Prompt: {prompt}
Timestamp: {timestamp}
Model: {model}
Video file: {video_file}

{note}
"""


def render_metadata(
    *,
    title: str,
    original_name: str,
    prompt: str,
    model: str,
    video_file: str,
    note: str,
    timestamp: Optional[str] = None,
) -> str:
    """Render the ``.txt`` description stored next to a generated video."""
    return METADATA_TEMPLATE.format(
        title=title,
        original_name=original_name,
        prompt=prompt,
        timestamp=timestamp or now_iso(),
        model=model,
        video_file=video_file,
        note=note,
    )
