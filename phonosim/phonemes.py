"""
Reference acoustic targets for the practice phonemes.

Values are textbook approximations (adult speaker, ~100 Hz F0). The
'peak', 'F1' and 'F2' keys feed Spectrum.compare_with_phoneme().
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

@dataclass(frozen=True)
class Phoneme:
    symbol: str
    name: str
    articulation: str
    voiced: bool
    target_frequencies: Dict[str, float] = field(default_factory=dict)
    friction: bool = False
    aspiration: bool = False
    nasality: bool = False
    duration: str = 'medium'

PHONEMES: Dict[str, Phoneme] = {
    'f': Phoneme('f', 'voiceless labiodental fricative', 'Labiodental fricative', False,
                 {'min': 1500, 'max': 8000, 'peak': 4500}, friction=True),
    'v': Phoneme('v', 'voiced labiodental fricative', 'Labiodental fricative', True,
                 {'min': 1000, 'max': 7000, 'peak': 4000, 'F0': 100}, friction=True),
    'k': Phoneme('k', 'voiceless velar stop', 'Velar stop', False,
                 {'min': 0, 'max': 3000, 'peak': 1500}, aspiration=True, duration='short'),
    'g': Phoneme('g', 'voiced velar stop', 'Velar stop', True,
                 {'min': 50, 'max': 2500, 'peak': 1200, 'F0': 100}, duration='short'),
    'ɑ': Phoneme('ɑ', 'open back unrounded vowel', 'Vowel', True,
                 {'min': 50, 'max': 3000, 'F1': 700, 'F2': 1100, 'F0': 100}, duration='long'),
    'i': Phoneme('i', 'close front unrounded vowel', 'Vowel', True,
                 {'min': 50, 'max': 4000, 'F1': 240, 'F2': 2400, 'F0': 100}, duration='long'),
    'u': Phoneme('u', 'close back rounded vowel', 'Vowel', True,
                 {'min': 50, 'max': 3500, 'F1': 300, 'F2': 870, 'F0': 100}, duration='long'),
    'ə': Phoneme('ə', 'schwa', 'Vowel', True,
                 {'min': 50, 'max': 3500, 'F1': 500, 'F2': 1500, 'F0': 100}, duration='short'),
    'm': Phoneme('m', 'bilabial nasal', 'Nasal', True,
                 {'min': 50, 'max': 2000, 'F1': 300, 'F2': 900, 'F0': 100, 'nasal': 300}, nasality=True),
    'n': Phoneme('n', 'alveolar nasal', 'Nasal', True,
                 {'min': 50, 'max': 2500, 'F1': 350, 'F2': 1500, 'F0': 100, 'nasal': 350}, nasality=True),
}

PHONEME_GROUPS: Dict[str, Tuple[str, ...]] = {
    'fricatives': ('f', 'v'),
    'stops': ('k', 'g'),
    'vowels': ('ɑ', 'i', 'u', 'ə'),
    'nasals': ('m', 'n'),
}

def get_phoneme(symbol: str) -> Optional[Phoneme]:
    return PHONEMES.get(symbol)

def phoneme_symbols() -> List[str]:
    return list(PHONEMES.keys())
