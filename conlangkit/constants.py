"""Constant values used by conlangkit.

* Notation symbols and character classes for the sound change rules.
* Validation schemas for rule sets, phonology configs and lexicon entries.
* SQL query template strings to create tables, insert, select and update
records in the storage database.
"""

import pandera as pa
from pandera import Column, DataFrameSchema, Check
from schema import Schema, And, Optional

# Sound change notation
RULE_SEPARATOR = "/"
ARROW = ">"
FOCUS = "_"
DELETION_MARKER = "Ø"

VOWELS = "aeiouāēīōū"
"""Vowels recognised by the V and C environment macros, long vowels included."""

VOWEL_CLASS = f"[{VOWELS}]"
CONSONANT_CLASS = f"[^{VOWELS}]"

ENVIRONMENT_MACROS = {
    "V": VOWEL_CLASS,
    "C": CONSONANT_CLASS,
}
"""Environment tokens that expand to a character class.

Only an environment side that is exactly one of these tokens is expanded.
"""

CONSONANT_SYMBOL = "c"
VOWEL_SYMBOL = "v"

DEFAULT_PHONOLOGY = {
    "consonants": ["p", "t", "k", "m", "n", "s", "l", "r"],
    "vowels": ["a", "i", "u", "e", "o"],
    "syllable_patterns": ["CV", "CVC", "V"],
}

DEFAULT_WORD_COUNT = 10

TRACK_ARROW = "===>"
DERIVATION_PREFIX = "derivation"
EVOLVED_PREFIX = "evolved_lexicon"

# Define validation Schemas
non_empty_str = And(str, lambda s: len(s.strip()) > 0)

rule_schema = Schema(non_empty_str)

ruleset_schema = Schema({
    "name": non_empty_str,
    "rules": [rule_schema.schema],
})

phonology_schema = Schema({
    "consonants": [str],
    "vowels": [str],
    "syllable_patterns": [str],
})

lexicon_entry_schema = Schema({
    "word": non_empty_str,
    "definition": non_empty_str,
    "category": non_empty_str,
    Optional("notes"): str,
})

lexicon_column_names = [
    "word",
    "definition",
    "category",
    "notes",
]

lexicon_schema = DataFrameSchema({
    "word": Column(pa.String, Check.str_length(min_value=1)),
    "definition": Column(pa.String, Check.str_length(min_value=1)),
    "category": Column(pa.String, Check.str_length(min_value=1)),
    "notes": Column(pa.String, required=False),
}, coerce=True)

# Define SQL query templates
USER_TABLE = "users"
LEXICON_TABLE = "lexicon_entries"
PHONOLOGY_TABLE = "phonology_configs"
RULESET_TABLE = "sound_change_rules"

CREATE_USER_TABLE_STMT = """CREATE TABLE IF NOT EXISTS {table_name} (
id INTEGER PRIMARY KEY AUTOINCREMENT,
username TEXT NOT NULL UNIQUE,
password TEXT NOT NULL,
display_name TEXT NOT NULL
);"""

CREATE_LEXICON_TABLE_STMT = """CREATE TABLE IF NOT EXISTS {table_name} (
id INTEGER PRIMARY KEY AUTOINCREMENT,
word TEXT NOT NULL,
definition TEXT NOT NULL,
category TEXT NOT NULL,
notes TEXT DEFAULT '',
created_by INTEGER NOT NULL,
shared_with TEXT NOT NULL DEFAULT '[]',
FOREIGN KEY(created_by) REFERENCES users(id)
);"""

CREATE_PHONOLOGY_TABLE_STMT = """CREATE TABLE IF NOT EXISTS {table_name} (
id INTEGER PRIMARY KEY AUTOINCREMENT,
consonants TEXT NOT NULL,
vowels TEXT NOT NULL,
syllable_patterns TEXT NOT NULL,
created_by INTEGER NOT NULL,
shared_with TEXT NOT NULL DEFAULT '[]',
FOREIGN KEY(created_by) REFERENCES users(id)
);"""

CREATE_RULESET_TABLE_STMT = """CREATE TABLE IF NOT EXISTS {table_name} (
id INTEGER PRIMARY KEY AUTOINCREMENT,
name TEXT NOT NULL,
rules TEXT NOT NULL,
created_by INTEGER NOT NULL,
shared_with TEXT NOT NULL DEFAULT '[]',
FOREIGN KEY(created_by) REFERENCES users(id)
);"""

INSERT_QUERY = "INSERT INTO {table} ({columns}) VALUES ({vars});"

SELECT_BY_ID_QUERY = "SELECT * FROM {table} WHERE id = ?;"

SELECT_VISIBLE_QUERY = (
    "SELECT * FROM {table} "
    "WHERE created_by = ? OR SHARED_WITH(shared_with, ?) "
    "ORDER BY id {order};"
)

SELECT_SHARED_QUERY = (
    "SELECT * FROM {table} WHERE SHARED_WITH(shared_with, ?) ORDER BY id;"
)

UPDATE_QUERY = "UPDATE {table} SET {assignments} WHERE id = ?;"

DELETE_QUERY = "DELETE FROM {table} WHERE id = ?;"

USER_COLUMNS = ("id", "username", "display_name")
LEXICON_COLUMNS = ("word", "definition", "category", "notes")
PHONOLOGY_COLUMNS = ("consonants", "vowels", "syllable_patterns")
RULESET_COLUMNS = ("name", "rules")

JSON_COLUMNS = (
    "shared_with",
    "consonants",
    "vowels",
    "syllable_patterns",
    "rules",
)
"""Columns holding lists, stored as JSON text."""
