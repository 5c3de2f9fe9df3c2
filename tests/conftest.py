"""Configuration values for the unit tests."""

import pytest

from conlangkit.db_handler import LexiconDatabase
from conlangkit.rule_objects import Rule, RuleSet


@pytest.fixture
def rule_fixture():
    """Dummy rule to be used in tests."""
    return Rule("p > b / V_V", ruleset="test_rule_set", idx=0)


@pytest.fixture
def ruleset_fixture(rule_fixture):
    """Dummy rule set object."""
    return RuleSet(
        name="test_rule_set",
        rules=[rule_fixture, "b > m"],
    )


@pytest.fixture(scope="session")
def ruleset_list():
    """Set up a test value for the rules."""
    from dummy_rules import lenition, h_loss
    return [lenition, h_loss]


@pytest.fixture(scope="session")
def phonology_fixture():
    return {
        "consonants": ["p", "t", "k"],
        "vowels": ["a", "i"],
        "syllable_patterns": ["CV", "CVC"],
    }


@pytest.fixture
def entry_fixture():
    return {
        "word": "papa",
        "definition": "father",
        "category": "noun",
        "notes": "",
    }


@pytest.fixture
def db_obj():
    """Empty in-memory database."""
    database = LexiconDatabase(":memory:")
    yield database
    database.close()


@pytest.fixture
def users(db_obj):
    """Two registered users, as (owner, other) dicts."""
    owner = db_obj.create_user("ana", "secret", "Ana")
    other = db_obj.create_user("bo", "hunter2", "Bo")
    return owner, other


@pytest.fixture
def lexicon_csv(tmp_path):
    """A csv file with lexicon entries and an extra column."""
    csv_file = tmp_path / "lexicon.csv"
    csv_file.write_text(
        "word,definition,category,notes,extra\n"
        "papa,father,noun,,ignored\n"
        "haha,laugh,verb,onomatopoeic,ignored\n",
        encoding="utf-8",
    )
    return csv_file
