"""Screenshot embedding.

Screenshots are stored inside issues as ``data:`` URLs so that reports and
HTML exports stay self-contained.
"""

import base64
import mimetypes
from pathlib import Path


class ScreenshotError(Exception):
    """Raised when a screenshot file cannot be read or is not an image."""


def load_screenshot(path: str | Path) -> str:
    """Return the image at *path* as a ``data:<mime>;base64,...`` URL."""
    path = Path(path)
    mime, _ = mimetypes.guess_type(path.name)
    if not mime or not mime.startswith("image/"):
        raise ScreenshotError(f"'{path}' must be an image file")
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ScreenshotError(f"Error reading '{path}': {exc}") from exc
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"
