"""
Content filter for usernames and doodle captions.

Input is lower-cased and stripped of `_`, `-` and `.` before matching, so
"f_u.c-k" is caught the same as the plain word. Matching is substring based;
short entries like "ass" will also flag innocent words containing them.
"""
import re
from typing import Optional

BLOCKED_WORDS = frozenset({
    # explicit
    "fuck", "shit", "ass", "bitch", "damn", "cunt", "dick", "cock", "pussy",
    "bastard", "whore", "slut", "fag", "faggot", "nigger", "nigga", "retard",
    # substitutions
    "f4ck", "sh1t", "b1tch", "d1ck", "c0ck", "fuk", "fuq", "azz", "a55",
    # slurs
    "nazi", "hitler", "kkk",
})

BLOCKED_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"f+u+c+k+",
        r"s+h+[i1]+t+",
        r"b+[i1]+t+c+h+",
        r"a+[s5]+[s5]+",
        r"n+[i1]+g+",
        r"c+u+n+t+",
        r"d+[i1]+c+k+",
        r"c+[o0]+c+k+",
        r"f+a+g+",
        r"r+e+t+a+r+d+",
    )
)

USERNAME_MESSAGE = "Username contains inappropriate content"
CAPTION_MESSAGE = "Your caption contains inappropriate content. Please revise it and try again."

_SEPARATORS = re.compile(r"[_\-.]")


def normalize(text: str) -> str:
    return _SEPARATORS.sub("", (text or "").lower())


def contains_profanity(text: str) -> bool:
    normalized = normalize(text)
    if not normalized:
        return False
    if any(word in normalized for word in BLOCKED_WORDS):
        return True
    return any(pattern.search(normalized) for pattern in BLOCKED_PATTERNS)


def validate_username_content(username: str) -> Optional[str]:
    """Error message when the username is inappropriate, else None."""
    if contains_profanity(username):
        return USERNAME_MESSAGE
    return None


def validate_caption_content(caption: Optional[str]) -> Optional[str]:
    if caption and contains_profanity(caption):
        return CAPTION_MESSAGE
    return None
