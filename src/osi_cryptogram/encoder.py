import random
from collections import Counter
from dataclasses import dataclass
from typing import Mapping

from osi_cryptogram.algorithm.derangement import generate_cipher
from osi_cryptogram.models.puzzle import Passage, Puzzle
from osi_cryptogram.utils import FrequencyMap, invert_map, is_letter


@dataclass(frozen=True, slots=True)
class EncodedText:
    encrypted_text: str
    frequency_map: FrequencyMap


def substitute(text: str, letter_map: Mapping[str, str]) -> str:
    """Map every letter through letter_map (upper-case keys), keeping its case."""
    out = []
    for ch in text:
        if is_letter(ch):
            sub = letter_map[ch.upper()]
            out.append(sub if ch.isupper() else sub.lower())
        else:
            out.append(ch)
    return "".join(out)


def frequency_map(text: str) -> FrequencyMap:
    """Count each letter of the text, case-folded to upper case."""
    return dict(Counter(ch.upper() for ch in text if is_letter(ch)))


def encode(plaintext: str, cipher_map: Mapping[str, str]) -> EncodedText:
    """Encrypt plaintext and compute the ciphertext letter frequencies."""
    encrypted = substitute(plaintext, cipher_map)
    return EncodedText(encrypted_text=encrypted, frequency_map=frequency_map(encrypted))


def decode(encrypted_text: str, cipher_map: Mapping[str, str]) -> str:
    """Invert encode() using the same plaintext -> ciphertext map."""
    return substitute(encrypted_text, invert_map(cipher_map))


def build_puzzle(passage: Passage, rng: random.Random | None = None) -> Puzzle:
    cipher_map = generate_cipher(rng)
    encoded = encode(passage.text, cipher_map)
    return Puzzle(
        id=passage.id,
        name=passage.name,
        cipher_map=cipher_map,
        encrypted_text=encoded.encrypted_text,
        frequency_map=encoded.frequency_map,
    )
