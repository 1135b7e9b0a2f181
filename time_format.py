"""Human-readable track lengths."""


def format_length(length_ms: int) -> str:
    """Milliseconds -> 'H:MM:SS', 'M:SS' or '0:SS', truncated to whole seconds."""
    length_ms = max(0, int(length_ms or 0))
    hours = length_ms // (60 * 60 * 1000)
    minutes = (length_ms % (60 * 60 * 1000)) // (60 * 1000)
    seconds = (length_ms % (60 * 1000)) // 1000

    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    if minutes > 0:
        return f"{minutes}:{seconds:02d}"
    return f"0:{seconds:02d}"
