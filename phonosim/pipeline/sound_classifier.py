from __future__ import annotations

from typing import List, Optional, Tuple

from phonosim.config import DEFAULT_THRESHOLDS, AnalysisThresholds
from phonosim.messages import Characteristics, FeatureRecord, PhonemeGuess, Quality, Summary
from phonosim.phonemes import PHONEME_GROUPS, PHONEMES

UNVOICED_FRICATIVE = "unvoiced fricative"
VOICED_FRICATIVE = "voiced fricative"
UNVOICED_STOP = "unvoiced stop"
VOICED_SOUND = "voiced sound (vowel/nasal/voiced stop)"
UNKNOWN = "unknown"

# (guess, confidence, alternatives) per label; confidences are the centres
# of the ranges the practice UI used to draw from.
_FIXED_GUESSES = {
    UNVOICED_FRICATIVE: ("f", 0.8, (("s", 0.25), ("ʃ", 0.25), ("θ", 0.2))),
    VOICED_FRICATIVE: ("v", 0.75, (("z", 0.15), ("ð", 0.1))),
    UNVOICED_STOP: ("p", 0.7, (("t", 0.15), ("k", 0.1))),
}


class SoundClassifier:
    """Rule-based labelling of a finished FeatureRecord.

    Stateless apart from its thresholds; every method is a pure function of
    the record it is given.
    """

    def __init__(self, thresholds: Optional[AnalysisThresholds] = None):
        self.thresholds = thresholds or DEFAULT_THRESHOLDS

    def classify(self, record: FeatureRecord) -> str:
        voiced = record.voicing.is_voiced
        fricative = record.zero_crossing_rate.is_fricative
        if not voiced and fricative:
            return UNVOICED_FRICATIVE
        if voiced and fricative:
            return VOICED_FRICATIVE
        if not voiced and not fricative:
            return UNVOICED_STOP
        if voiced and record.pitch.mean > self.thresholds.voiced_pitch_hz:
            return VOICED_SOUND
        return UNKNOWN

    def assess_quality(self, record: FeatureRecord) -> Quality:
        # Judged on the raw sample peak; normalized frame energy always peaks at 1.
        th = self.thresholds
        peak = record.energy.peak_amplitude
        issues = []
        if peak < th.quiet_level:
            issues.append("too quiet")
        if peak > th.clipping_level:
            issues.append("clipping/distortion")
        return Quality(score=100 - 20 * len(issues), issues=tuple(issues), is_good=not issues)

    def hints(self, record: FeatureRecord) -> Tuple[str, ...]:
        th = self.thresholds
        out = []
        if record.voicing.is_voiced:
            out.append("This is VOICED (vocal cords vibrating)")
        else:
            out.append("This is UNVOICED (no vocal cord vibration)")
        if record.zero_crossing_rate.is_fricative:
            out.append("High friction noise - could be fricative or affricate")
        f1 = record.formants.f1.frequency
        if f1 > th.hint_f1_hz:
            out.append(f"F1 at ~{round(f1)}Hz suggests vowel-like sound")
        pitch = record.pitch.mean
        if th.hint_pitch_min_hz < pitch < th.hint_pitch_max_hz:
            out.append(f"Pitch around {round(pitch)}Hz detected")
        return tuple(out)

    def characteristics(self, record: FeatureRecord) -> Characteristics:
        pitch = record.pitch.mean
        return Characteristics(
            voicing="voiced" if record.voicing.is_voiced else "unvoiced",
            is_fricative=record.zero_crossing_rate.is_fricative,
            brightness="bright" if record.spectral_centroid.brightness > self.thresholds.brightness_split else "dark",
            pitch=f"~{round(pitch)}Hz" if pitch > 0 else "no pitch",
            energy=f"{record.energy.db:.1f}dB",
        )

    def guess_phoneme(self, record: FeatureRecord, sound_type: Optional[str] = None) -> Optional[PhonemeGuess]:
        """Most likely practice phoneme with ranked alternatives, or None for unknown sounds.

        Voiced sounds are ranked against the vowel and nasal formant targets
        (relative F1/F2 distance); the other classes map to fixed guesses.
        """
        sound_type = sound_type or self.classify(record)
        if sound_type in _FIXED_GUESSES:
            phoneme, confidence, alternatives = _FIXED_GUESSES[sound_type]
            return PhonemeGuess(phoneme=phoneme, confidence=confidence, alternatives=alternatives)
        if sound_type != VOICED_SOUND:
            return None

        f1 = record.formants.f1.frequency
        f2 = record.formants.f2.frequency
        scored: List[Tuple[str, float]] = []
        for symbol in PHONEME_GROUPS["vowels"] + PHONEME_GROUPS["nasals"]:
            target = PHONEMES[symbol].target_frequencies
            dist = abs(f1 - target["F1"]) / target["F1"]
            if f2 > 0:
                dist += abs(f2 - target["F2"]) / target["F2"]
            scored.append((symbol, round(1.0 / (1.0 + dist), 3)))
        scored.sort(key=lambda item: -item[1])
        best, confidence = scored[0]
        return PhonemeGuess(phoneme=best, confidence=confidence, alternatives=tuple(scored[1:3]))

    def summarize(self, record: FeatureRecord) -> Summary:
        sound_type = self.classify(record)
        return Summary(
            sound_type=sound_type,
            quality=self.assess_quality(record),
            characteristics=self.characteristics(record),
            phoneme_hints=self.hints(record),
            phoneme_guess=self.guess_phoneme(record, sound_type),
        )
