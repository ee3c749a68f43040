import re

MAX_TEXT_CHARS = 10_000

_ANGLE_BRACKETS = re.compile(r"[<>]")
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+=", re.IGNORECASE)
_SCRIPT = re.compile(r"script", re.IGNORECASE)


def sanitize_text(text: object, max_chars: int = MAX_TEXT_CHARS) -> str:
    """Strip markup and script fragments from user-supplied text.

    Removes angle brackets, ``javascript:`` protocols, inline ``on*=``
    handlers and the word ``script``, then trims and truncates. Non-string
    input yields an empty string.

    Args:
        text: Raw input value.
        max_chars: Maximum length of the returned text.

    Returns:
        str: Sanitized text.
    """
    if not isinstance(text, str):
        return ""
    text = text.strip()
    text = _ANGLE_BRACKETS.sub("", text)
    text = _JS_PROTOCOL.sub("", text)
    text = _EVENT_HANDLER.sub("", text)
    text = _SCRIPT.sub("", text)
    return text[:max_chars]
