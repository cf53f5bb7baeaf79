"""ffmpeg helpers - bundled binaries and the silent placeholder."""

import subprocess
from pathlib import Path

import static_ffmpeg

PLACEHOLDER_SAMPLE_RATE = 24000


def get_ffmpeg() -> str:
    """Return the path to the bundled ffmpeg executable.

    Downloads binaries on first use if not already present.
    """
    ffmpeg, _ = static_ffmpeg.run.get_or_fetch_platform_executables_else_raise()
    return ffmpeg


def check_ffmpeg() -> None:
    """Verify that ffmpeg is available (downloads if needed)."""
    try:
        get_ffmpeg()
    except Exception as e:
        raise RuntimeError(
            f"Impossibile ottenere ffmpeg: {e}\n"
            f"Prova a reinstallare: pip install --force-reinstall static-ffmpeg"
        ) from e


def render_silence(output_path: Path, seconds: float) -> None:
    """Encode `seconds` of mono silence as MP3 into output_path."""
    subprocess.run(
        [
            get_ffmpeg(), "-y",
            "-f", "lavfi",
            "-i", f"anullsrc=r={PLACEHOLDER_SAMPLE_RATE}:cl=mono",
            "-t", f"{seconds:.3f}",
            "-c:a", "libmp3lame", "-b:a", "32k",
            str(output_path),
        ],
        check=True,
        capture_output=True,
    )
