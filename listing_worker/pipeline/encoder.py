"""
ffmpeg concat encoder.

The bundled imageio-ffmpeg binary is preferred; a system ffmpeg on PATH is
the fallback. Concatenation is a stream copy (no re-encode), so every clip
must share codec and resolution, which holds for clips from a single provider.
"""

import os
import shutil
import logging
import subprocess
from typing import Optional

import imageio_ffmpeg

logger = logging.getLogger(__name__)

ENCODER_TIMEOUT_SECONDS = float(os.getenv("ENCODER_TIMEOUT_SECONDS", "30"))


class EncoderError(RuntimeError):
    pass


def resolve_encoder_path() -> Optional[str]:
    """Return a runnable ffmpeg path, or None when no binary is available."""
    try:
        bundled = imageio_ffmpeg.get_ffmpeg_exe()
        if bundled:
            logger.info(f"[Render] imageio-ffmpeg resolved to: {bundled}")
            return bundled
    except Exception as e:
        logger.warning(f"[Render] Bundled ffmpeg not available: {e}")

    system = shutil.which("ffmpeg")
    if system:
        logger.info(f"[Render] System ffmpeg found at: {system}")
        return system

    logger.warning("[Render] System ffmpeg not found")
    return None


def write_concat_manifest(clip_paths: list, manifest_path: str) -> str:
    """Write an ffmpeg concat-demuxer list, one `file '...'` line per clip."""
    lines = []
    for p in clip_paths:
        escaped = str(p).replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    with open(manifest_path, "w") as f:
        f.write("\n".join(lines) + "\n")
    return manifest_path


def concat_command(ffmpeg_path: str, manifest_path: str, output_path: str) -> list:
    return [
        ffmpeg_path,
        "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", manifest_path,
        "-c", "copy",
        "-movflags", "+faststart",
        output_path,
    ]


def concat_clips(
    ffmpeg_path: str,
    clip_paths: list,
    work_dir: str,
    timeout: float = ENCODER_TIMEOUT_SECONDS,
) -> str:
    """
    Concatenate clips into work_dir/final.mp4 and return its path.
    Raises EncoderError on a non-zero exit, a timeout or an empty output.
    """
    manifest = write_concat_manifest(clip_paths, os.path.join(work_dir, "concat.txt"))
    output = os.path.join(work_dir, "final.mp4")
    cmd = concat_command(ffmpeg_path, manifest, output)

    logger.info(f"[Render] Running ffmpeg concat with {len(clip_paths)} clips (timeout {timeout:.0f}s)")
    try:
        subprocess.run(cmd, check=True, capture_output=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise EncoderError(f"ffmpeg timed out after {timeout:.0f}s") from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or b"").decode("utf-8", errors="replace")[-500:]
        raise EncoderError(f"ffmpeg exited with {e.returncode}: {stderr}") from e

    if not os.path.exists(output) or os.path.getsize(output) == 0:
        raise EncoderError("Output file is empty")

    logger.info(f"[Render] ffmpeg output: {os.path.getsize(output) / 1024 / 1024:.2f} MB")
    return output
