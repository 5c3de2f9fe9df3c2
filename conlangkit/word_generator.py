"""Generate words from a phonology's inventories and syllable patterns."""

import logging
import random
from typing import List, Sequence

from .constants import CONSONANT_SYMBOL, VOWEL_SYMBOL, DEFAULT_WORD_COUNT


def draw(inventory: Sequence[str], rng=None) -> str:
    """Pick a grapheme from the inventory, or an empty string if there are none."""
    if not inventory:
        return ""
    rng = random if rng is None else rng
    return rng.choice(inventory)


def generate_word(
        consonants: Sequence[str],
        vowels: Sequence[str],
        pattern: str,
        rng=None
) -> str:
    """Expand a syllable pattern into a word.

    Every C in the pattern is replaced by a random consonant, every V by a
    random vowel (case-insensitive), and other characters are kept as is.

    Parameters
    ----------
    consonants: Sequence[str]
    vowels: Sequence[str]
    pattern: str
        e.g. "CVC" or "CV-CV"
    rng: random.Random
        Source of randomness. Defaults to the random module.
    """
    graphemes = []
    for symbol in pattern:
        lowered = symbol.lower()
        if lowered == CONSONANT_SYMBOL:
            graphemes.append(draw(consonants, rng))
        elif lowered == VOWEL_SYMBOL:
            graphemes.append(draw(vowels, rng))
        else:
            graphemes.append(symbol)
    return "".join(graphemes)


def generate_words(
        consonants: Sequence[str],
        vowels: Sequence[str],
        syllable_patterns: Sequence[str],
        count: int = DEFAULT_WORD_COUNT,
        rng=None
) -> List[str]:
    """Generate ``count`` words, each from a randomly chosen syllable pattern."""
    if count < 0:
        raise ValueError(f"Can't generate a negative number of words: {count}")
    if not syllable_patterns:
        logging.warning("No syllable patterns to generate words from.")
        return []
    rng = random if rng is None else rng
    words = [
        generate_word(consonants, vowels, rng.choice(syllable_patterns), rng)
        for _ in range(count)
    ]
    logging.debug("Generated %s words: %s", len(words), words)
    return words
