"""Script-based source language detection.

Presence of a script decides the result; rules are checked in a fixed
order and the first match wins, so mixed Hangul/Latin text is Korean and
Thai text quoting Korean names is still Thai.
"""

import re


_THAI = re.compile(r"[\u0E00-\u0E7F]")
_HANGUL = re.compile(r"[\u1100-\u11FF\u3130-\u318F\uAC00-\uD7AF]")
_KANA = re.compile(r"[\u3040-\u309F\u30A0-\u30FF]")
_CJK = re.compile(r"[\u4E00-\u9FFF]")

DEFAULT_LANGUAGE = "en"
LANGUAGE_CODES = frozenset({"ko", "en", "th", "ja", "zh"})

_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (_THAI, "th"),
    (_HANGUL, "ko"),
    (_KANA, "ja"),
    (_CJK, "zh"),
)


def detect_language(text: str) -> str:
    """Return an ISO 639-1 code for the first matching script in ``text``.

    Args:
        text: Text to inspect.

    Returns:
        ``th``, ``ko``, ``ja``, ``zh``, or ``en`` when no rule matches.
    """
    for pattern, code in _RULES:
        if pattern.search(text or ""):
            return code
    return DEFAULT_LANGUAGE
