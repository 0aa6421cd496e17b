def format_number(value: float) -> str:
    """Compact display form: 1.2B / 3.4M / 5.6K / 7.0, negatives in parentheses."""
    magnitude = abs(value)
    if magnitude >= 1_000_000_000:
        text = f"{magnitude / 1_000_000_000:.1f}B"
    elif magnitude >= 1_000_000:
        text = f"{magnitude / 1_000_000:.1f}M"
    elif magnitude >= 1_000:
        text = f"{magnitude / 1_000:.1f}K"
    else:
        text = f"{magnitude:.1f}"
    return f"({text})" if value < 0 else text
