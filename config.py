"""Configure default values for the conlangkit command line interface."""

DATABASE = "data/conlang.db"
"""Path to the sqlite3 db with users, lexica, phonologies and rulesets"""

OUTPUT_DIR = "data/output"
"""Path to the output folder for derivations, exports and the log file"""

RULES_FILE = "rules.py"
"""Path to a file with sound change rulesets.

Used when applying sound changes without logging in,
and as the default file to import rulesets from.
"""

DEFAULT_PHONOLOGY = {
    "consonants": ["p", "t", "k", "m", "n", "s", "l", "r"],
    "vowels": ["a", "i", "u", "e", "o"],
    "syllable_patterns": ["CV", "CVC", "V"],
}
"""Phonology used to generate words when no phonology is saved"""

WORD_COUNT = 10
"""Number of words generated per call"""
