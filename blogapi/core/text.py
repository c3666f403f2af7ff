import bleach


def clean_text(value: str) -> str:
    """Strip every HTML tag from user-supplied text before it is stored."""
    return bleach.clean(value or "", tags=set(), attributes={}, strip=True).strip()
