"""
Helper utilities for the widget runner
"""
from pathlib import Path
from datetime import datetime


def save_screenshot(screenshot_bytes: bytes, name: str, output_dir: Path) -> str:
    """
    Save a screenshot to disk with a timestamped filename.

    Args:
        screenshot_bytes: Raw screenshot bytes
        name: Scenario or step name used as the filename prefix
        output_dir: Directory to save screenshots

    Returns:
        Path to saved screenshot
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    safe_name = "".join(c if c.isalnum() or c in "-_" else "_" for c in name)
    filepath = output_dir / f"{safe_name}_{timestamp}.png"

    with open(filepath, "wb") as f:
        f.write(screenshot_bytes)

    return str(filepath)


def shorten(text: str, limit: int = 60) -> str:
    """
    Collapse whitespace and cut long values for table cells.

    Args:
        text: Any value rendered with str()
        limit: Maximum length including the ellipsis

    Returns:
        Single-line string no longer than limit
    """
    if text is None:
        return ""
    flat = " ".join(str(text).split())
    if len(flat) <= limit:
        return flat
    return flat[:limit - 3] + "..."
