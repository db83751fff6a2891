"""
Content filter for usernames and captions.
"""
import pytest

from dailydoodle.features.moderation.profanity import (
    CAPTION_MESSAGE,
    USERNAME_MESSAGE,
    contains_profanity,
    normalize,
    validate_caption_content,
    validate_username_content,
)


def test_normalize_strips_separators_and_lowercases():
    assert normalize("Sk_et-Ch.Er") == "sketcher"
    assert normalize(None) == ""


@pytest.mark.parametrize("text", ["shit", "SHIT", "s_h.i-t", "sh1t", "fuuuuck", "b1tch"])
def test_blocked_words_and_variants(text):
    assert contains_profanity(text) is True


@pytest.mark.parametrize("text", ["sketcher", "doodle_fan", "Sunset over the lake", "", "rainbow42"])
def test_clean_text_passes(text):
    assert contains_profanity(text) is False


def test_username_validation_message():
    assert validate_username_content("cool_shit_99") == USERNAME_MESSAGE
    assert validate_username_content("cool_cat_99") is None


def test_caption_validation_allows_empty():
    assert validate_caption_content(None) is None
    assert validate_caption_content("") is None
    assert validate_caption_content("what the f.u.c.k") == CAPTION_MESSAGE
