"""Utility functions for common operations across the application."""


def default_display_name(email: str) -> str:
    """Derive a display name from the local part of an email address."""
    return email.split("@", 1)[0]


def normalize_todo_text(text: str | None) -> str | None:
    """Strip surrounding whitespace; None when nothing is left."""
    if text is None:
        return None
    text = text.strip()
    return text or None


def parse_todo_id(raw_id: str) -> int | None:
    """Integer todo id from a path segment; None when it cannot name a todo."""
    try:
        return int(raw_id)
    except ValueError:
        return None
