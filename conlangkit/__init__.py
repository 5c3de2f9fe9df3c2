"""Toolkit for constructed languages: word generation and sound changes."""

from .sound_changes import apply_sound_changes, trace_sound_changes
from .word_generator import generate_word, generate_words
