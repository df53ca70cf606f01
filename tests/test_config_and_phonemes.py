"""
Tests for phonosim/config.py thresholds and phonosim/phonemes.py reference table.
"""

from phonosim.config import AnalysisThresholds, DEFAULT_THRESHOLDS
from phonosim.phonemes import PHONEME_GROUPS, PHONEMES, get_phoneme, phoneme_symbols

# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------


def test_default_thresholds():
    assert DEFAULT_THRESHOLDS.energy_floor == 0.001
    assert DEFAULT_THRESHOLDS.voicing_zcr == 0.2
    assert DEFAULT_THRESHOLDS.fricative_zcr == 0.15
    assert (DEFAULT_THRESHOLDS.quiet_level, DEFAULT_THRESHOLDS.clipping_level) == (0.3, 0.95)


def test_env_override(monkeypatch):
    monkeypatch.setenv("PHONO_VOICING_ZCR", "0.25")
    assert AnalysisThresholds.from_env().voicing_zcr == 0.25


def test_env_override_bad_value_ignored(monkeypatch, capsys):
    monkeypatch.setenv("PHONO_QUIET_LEVEL", "quiet")
    assert AnalysisThresholds.from_env().quiet_level == 0.3
    assert "[config][warn]" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Phonemes
# ---------------------------------------------------------------------------


def test_groups_cover_table():
    grouped = {s for group in PHONEME_GROUPS.values() for s in group}
    assert grouped == set(phoneme_symbols())


def test_vowels_and_nasals_have_formants():
    for symbol in PHONEME_GROUPS["vowels"] + PHONEME_GROUPS["nasals"]:
        target = PHONEMES[symbol].target_frequencies
        assert target["F1"] < target["F2"]


def test_get_phoneme():
    assert get_phoneme("f").friction
    assert not get_phoneme("f").voiced
    assert get_phoneme("x") is None
