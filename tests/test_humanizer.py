"""Tests for the prosody humanizer."""

import random
import re

from anchorsync.humanizer import humanize
from anchorsync.models import Settings, WaitDuration


TEXT = "Good evening and welcome. Our top story tonight comes from Washington. Markets closed higher."


def _prosody_rates(markup):
    return [float(r) for r in re.findall(r'rate="([\d.]+)"', markup)]


def _breaks(markup):
    return [int(ms) for ms in re.findall(r'<break time="(\d+)ms"/>', markup)]


def test_plain_text_is_original_words():
    result = humanize(TEXT, Settings(stutter_rate=100, filler_rate=100), 1.05, rng=random.Random(1))
    assert result.plain == TEXT


def test_plain_text_has_no_markup():
    result = humanize(TEXT, Settings(stutter_rate=100), 1.0, rng=random.Random(3))
    assert "<" not in result.plain


def test_markup_wrapped_in_speak(calm_settings):
    result = humanize(TEXT, calm_settings, 1.05, rng=random.Random(0))
    assert result.annotated.startswith("<speak>")
    assert result.annotated.endswith("</speak>")
    assert result.annotated.count("<prosody") == 3


def test_natural_pause_between_sentences_only(calm_settings):
    """One pause per sentence boundary, none before the first."""
    result = humanize(TEXT, calm_settings, 1.05, rng=random.Random(0))
    assert _breaks(result.annotated) == [400, 400]
    assert result.annotated.startswith("<speak><prosody")


def test_long_wait_duration():
    settings = Settings(stutter_rate=0, filler_rate=0, wait_duration=WaitDuration.LONG)
    result = humanize(TEXT, settings, 1.0, rng=random.Random(0))
    assert _breaks(result.annotated) == [1000, 1000]


def test_random_wait_duration_in_range():
    settings = Settings(stutter_rate=0, filler_rate=0, wait_duration=WaitDuration.RANDOM)
    for seed in range(20):
        result = humanize(TEXT, settings, 1.0, rng=random.Random(seed))
        assert all(200 <= ms <= 1000 for ms in _breaks(result.annotated))


def test_rate_centered_on_persona(calm_settings):
    result = humanize(TEXT, calm_settings, 1.05, rng=random.Random(0))
    assert _prosody_rates(result.annotated) == [1.05, 1.05, 1.05]


def test_rate_jitter_bounded():
    settings = Settings(stutter_rate=0, filler_rate=0, speed_variation=100)
    for seed in range(20):
        rates = _prosody_rates(humanize(TEXT, settings, 1.0, rng=random.Random(seed)).annotated)
        assert all(0.79 <= r <= 1.21 for r in rates)


def test_without_asymmetry_chunk_shares_one_rate():
    settings = Settings(stutter_rate=0, filler_rate=0, speed_variation=100, asymmetry=False)
    rates = _prosody_rates(humanize(TEXT, settings, 1.0, rng=random.Random(5)).annotated)
    assert len(set(rates)) == 1


def test_certain_stutter_repeats_an_early_word():
    settings = Settings(stutter_rate=100, filler_rate=0, wait_duration=WaitDuration.NATURAL)
    result = humanize("Markets closed higher today.", settings, 1.0, rng=random.Random(2))
    assert '<break time="150ms"/>' in result.annotated
    match = re.search(r'([A-Za-z]+)<break time="150ms"/> ([A-Za-z]+)', result.annotated)
    assert match and match.group(1) == match.group(2)
    assert match.group(1) in ("Markets", "closed", "higher")


def test_short_sentence_never_stutters():
    settings = Settings(stutter_rate=100, filler_rate=100, wait_duration=WaitDuration.NATURAL)
    result = humanize("Good evening.", settings, 1.0, rng=random.Random(0))
    assert "<break" not in result.annotated


def test_certain_filler_inserted():
    """filler_rate 200 is past the 0-100 range and makes a filler certain."""
    settings = Settings(stutter_rate=0, filler_rate=200, wait_duration=WaitDuration.NATURAL)
    result = humanize("Markets closed higher today.", settings, 1.0, rng=random.Random(0))
    assert re.search(r">(uhm|err),<break", result.annotated)


def test_same_seed_same_markup():
    settings = Settings()
    a = humanize(TEXT, settings, 1.02, rng=random.Random(42))
    b = humanize(TEXT, settings, 1.02, rng=random.Random(42))
    assert a == b


def test_markup_escapes_special_characters(calm_settings):
    result = humanize("Profits & losses <rose>.", calm_settings, 1.0, rng=random.Random(0))
    assert "&amp;" in result.annotated
    assert "&lt;rose&gt;" in result.annotated
    assert result.plain == "Profits & losses <rose>."


def test_decimals_and_initialisms_stay_in_one_sentence(calm_settings):
    text = "Stocks rose 3.5 percent in the U.S. today."
    result = humanize(text, calm_settings, 1.0, rng=random.Random(0))
    assert result.plain == text
    assert "<break" not in result.annotated
    assert result.annotated.count("<prosody") == 1
    assert ">Stocks rose 3.5 percent in the U.S. today.</prosody>" in result.annotated
