# backend/roamplan/utils/text_utils.py

import re
import unicodedata


def normalize_text(text: str) -> str:
    """
    Lower-case and strip accents so place names compare loosely.

    Example:
        "Đà Lạt" -> "da lat"
        "  São  Paulo " -> "sao paulo"
    """
    if not text:
        return ""

    text = text.lower().strip()

    # NFD splits letters from their combining accents
    text = unicodedata.normalize("NFD", text)
    text = re.sub(r'[\u0300-\u036f]', '', text)

    # đ has no decomposition
    text = text.replace("đ", "d")

    text = re.sub(r'\s+', ' ', text).strip()
    return text
