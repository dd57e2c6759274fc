"""Free-text clean-up for clinical fields, which are stored as plain text."""
from typing import Optional

import bleach


def clean_text(text: Optional[str]) -> str:
    """Strip every HTML tag and surrounding whitespace from ``text``."""
    return bleach.clean((text or '').strip(), tags=set(), strip=True).strip()
