"""Text helpers for bridging voice-oriented engine output into chat."""

import re

from chat_bridge.core.settings import BusinessConfig

_NON_DIGITS = re.compile(r"\D")

_APPOINTMENT_WORDS = re.compile(
    r"\b(appointment|appt|schedul\w*|reschedul\w*|cancel\w*|book(ed|ing)?|"
    r"technician|tech coming|visit)\b",
    re.IGNORECASE,
)

# Spellings that only exist to make speech synthesis pronounce things right.
_SPEECH_SPELLINGS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bH[\s.-]?V[\s.-]?A[\s.-]?C\b", re.IGNORECASE), "HVAC"),
    (re.compile(r"\bA[\s.-]C\b"), "AC"),
    (re.compile(r"\be[\s-]mail\b", re.IGNORECASE), "email"),
    (re.compile(r"\bA\.M\.", re.IGNORECASE), "AM"),
    (re.compile(r"\bP\.M\.", re.IGNORECASE), "PM"),
)

_VOICE_ONLY_SENTENCES = re.compile(
    r"(?:^|(?<=[.!?]))\s*(?:"
    r"thanks? (?:you )?for calling[^.!?]*|"
    r"please (?:stay|hold) on the line[^.!?]*|"
    r"(?:i'?ll|let me) transfer you[^.!?]*|"
    r"press \d[^.!?]*"
    r")[.!?]*",
    re.IGNORECASE,
)

_TRAILING_GOODBYE = re.compile(
    r"(?:^|(?<=[.!?]))\s*(?:ok(?:ay)?,?\s*)?(?:good\s?bye|bye(?: now| bye)?)"
    r"(?:\s+(?:for now|and take care))?[.!]*\s*$",
    re.IGNORECASE,
)

_WHITESPACE = re.compile(r"\s+")


def extract_phone(text: str) -> str | None:
    """Return the canonical 10-digit phone number in ``text``, or None.

    All non-digits are dropped; 10 digits are accepted as-is and 11 digits
    only with a leading country code ``1``.
    """
    digits = _NON_DIGITS.sub("", text)
    if len(digits) == 10:
        return digits
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    return None


def mentions_appointment(text: str) -> bool:
    return bool(_APPOINTMENT_WORDS.search(text))


def phone_prompt(first_input: str) -> str:
    """Pick the phone-collection prompt for the visitor's first message."""
    if mentions_appointment(first_input):
        return (
            "I can help with your appointment! "
            "What's the phone number on your account?"
        )
    return (
        "Happy to help! To find your info, "
        "what's the best phone number to reach you?"
    )


def invalid_phone_prompt() -> str:
    return (
        "Hmm, that doesn't look like a phone number. "
        "Please enter your 10-digit number, like (303) 555-1234."
    )


def normalize_reply_text(text: str, business: BusinessConfig) -> str:
    """Rewrite a voice-oriented engine reply for a text chat.

    Undoes pronunciation spellings, removes phrases that only make sense on a
    phone call and drops a trailing goodbye.
    """
    original = text.strip()
    result = original

    if business.spoken_name and business.spoken_name != business.short_name:
        spoken = re.compile(rf"\b{re.escape(business.spoken_name)}\b")
        result = spoken.sub(business.short_name, result)
    for pattern, replacement in _SPEECH_SPELLINGS:
        result = pattern.sub(replacement, result)

    result = _VOICE_ONLY_SENTENCES.sub("", result)
    result = _TRAILING_GOODBYE.sub("", result)
    result = _WHITESPACE.sub(" ", result).strip()

    return result or original
