"""Test suite for the LexiconDatabase storage."""
import pytest
from schema import SchemaError

from conlangkit import db_handler
from conlangkit.rule_objects import RuleSet


def test_add_placeholders():
    assert db_handler.add_placeholders(["a", "b", "c"]) == "?, ?, ?"


@pytest.mark.parametrize(
    "shared_json,user_id,expected",
    [("[1, 2]", 2, True), ("[1, 2]", 3, False), ("[]", 1, False), (None, 1, False)]
)
def test_shared_with(shared_json, user_id, expected):
    assert db_handler.shared_with(shared_json, user_id) == expected


def test_create_user(db_obj):
    # when
    user = db_obj.create_user("ana", "secret", "Ana")
    # then
    assert user == {"id": 1, "username": "ana", "display_name": "Ana"}
    assert db_obj.get_user("ana") == user
    assert db_obj.get_user_by_id(1) == user
    assert db_obj.get_user("nobody") is None


def test_password_is_hashed(db_obj, users):
    # when
    stored = db_obj.get_connection().execute(
        "SELECT password FROM users WHERE username = 'ana';").fetchone()[0]
    # then
    assert stored != "secret"
    assert db_handler.pwd_context.verify("secret", stored)


def test_create_user_with_taken_username(db_obj, users):
    with pytest.raises(ValueError):
        db_obj.create_user("ana", "other", "Another Ana")


@pytest.mark.parametrize(
    "username,password,is_valid",
    [("ana", "secret", True), ("ana", "wrong", False), ("nobody", "secret", False)]
)
def test_authenticate(db_obj, users, username, password, is_valid):
    # when
    result = db_obj.authenticate(username, password)
    # then
    if is_valid:
        assert result == users[0]
    else:
        assert result is None


def test_lexicon_entries_are_private_until_shared(db_obj, users, entry_fixture):
    # given
    owner, other = users
    entry = db_obj.create_lexicon_entry(entry_fixture, created_by=owner["id"])
    # then
    assert entry["created_by"] == owner["id"]
    assert entry["shared_with"] == []
    assert db_obj.get_lexicon_entries(owner["id"]) == [entry]
    assert db_obj.get_lexicon_entries(other["id"]) == []
    # when
    assert db_obj.share_lexicon_entry(entry["id"], other["id"])
    assert db_obj.share_lexicon_entry(entry["id"], other["id"])
    # then
    shared = db_obj.get_lexicon_entry(entry["id"])
    assert shared["shared_with"] == [other["id"]]
    assert db_obj.get_lexicon_entries(other["id"]) == [shared]
    assert db_obj.get_shared_lexicon_entries(other["id"]) == [shared]
    assert db_obj.get_shared_lexicon_entries(owner["id"]) == []
    # when
    assert db_obj.unshare_lexicon_entry(entry["id"], other["id"])
    # then
    assert db_obj.get_lexicon_entries(other["id"]) == []


def test_create_lexicon_entry_without_notes(db_obj, users):
    entry = db_obj.create_lexicon_entry(
        {"word": "kiki", "definition": "bird", "category": "noun"}, created_by=1)
    assert entry["notes"] == ""


@pytest.mark.parametrize(
    "bad_entry",
    [
        {"word": "", "definition": "father", "category": "noun"},
        {"word": "papa", "category": "noun"},
        {"word": "papa", "definition": "father", "category": "noun", "extra": 1},
    ]
)
def test_create_invalid_lexicon_entry(db_obj, users, bad_entry):
    with pytest.raises(SchemaError):
        db_obj.create_lexicon_entry(bad_entry, created_by=1)


def test_create_lexicon_entries_skips_invalid(db_obj, users, entry_fixture):
    # when
    result = db_obj.create_lexicon_entries(
        [entry_fixture, {"word": "haha"}], created_by=1)
    # then
    assert len(result) == 1
    assert len(db_obj.get_lexicon_entries(1)) == 1


def test_update_lexicon_entry(db_obj, users, entry_fixture):
    # given
    owner, other = users
    entry = db_obj.create_lexicon_entry(entry_fixture, created_by=owner["id"])
    db_obj.share_lexicon_entry(entry["id"], other["id"])
    # when
    result = db_obj.update_lexicon_entry(
        entry["id"], {**entry_fixture, "definition": "dad", "notes": "informal"})
    # then
    assert result["definition"] == "dad"
    assert result["notes"] == "informal"
    assert result["created_by"] == owner["id"]
    assert result["shared_with"] == [other["id"]]
    assert db_obj.update_lexicon_entry(99, entry_fixture) is None


def test_delete_lexicon_entry(db_obj, users, entry_fixture):
    entry = db_obj.create_lexicon_entry(entry_fixture, created_by=1)
    assert db_obj.delete_lexicon_entry(entry["id"])
    assert not db_obj.delete_lexicon_entry(entry["id"])
    assert db_obj.get_lexicon_entry(entry["id"]) is None


def test_share_missing_record(db_obj, users):
    assert not db_obj.share_lexicon_entry(99, 2)
    assert not db_obj.unshare_ruleset(99, 2)


def test_phonology_config(db_obj, users, phonology_fixture):
    # given
    owner, other = users
    assert db_obj.get_phonology_config(owner["id"]) is None
    first = db_obj.save_phonology_config(phonology_fixture, created_by=owner["id"])
    newer = {**phonology_fixture, "syllable_patterns": ["V"]}
    # when
    latest = db_obj.save_phonology_config(newer, created_by=owner["id"])
    # then
    assert db_obj.get_phonology_config(owner["id"]) == latest
    assert db_obj.get_phonology_config_by_id(first["id"]) == first
    assert first["consonants"] == ["p", "t", "k"]
    assert db_obj.get_phonology_config(other["id"]) is None
    # when
    db_obj.share_phonology_config(first["id"], other["id"])
    # then
    assert db_obj.get_phonology_config(other["id"])["id"] == first["id"]
    assert len(db_obj.get_shared_phonology_configs(other["id"])) == 1
    db_obj.unshare_phonology_config(first["id"], other["id"])
    assert db_obj.get_phonology_config(other["id"]) is None


def test_save_invalid_phonology_config(db_obj, users):
    with pytest.raises(SchemaError):
        db_obj.save_phonology_config(
            {"consonants": "ptk", "vowels": ["a"], "syllable_patterns": ["CV"]},
            created_by=1)


def test_rulesets(db_obj, users):
    # given
    owner, other = users
    # when
    lenition = db_obj.create_ruleset("lenition", ["p > b / V_V"], created_by=owner["id"])
    h_loss = db_obj.create_ruleset("h_loss", ["h > Ø / V_V"], created_by=owner["id"])
    # then
    assert isinstance(lenition, RuleSet)
    assert lenition.id_ == 1
    assert lenition.created_by == owner["id"]
    assert h_loss.rule_strings == ["h > Ø / V_V"]
    assert [r.name for r in db_obj.get_rulesets(owner["id"])] == ["lenition", "h_loss"]
    assert db_obj.get_rulesets(other["id"]) == []
    # when
    db_obj.share_ruleset(h_loss.id_, other["id"])
    # then
    assert db_obj.get_rulesets(other["id"]) == [h_loss]
    assert db_obj.get_shared_rulesets(other["id"])[0].is_shared_with(other["id"])
    assert db_obj.get_ruleset(h_loss.id_).shared_with == [other["id"]]
    # when
    db_obj.unshare_ruleset(h_loss.id_, other["id"])
    assert db_obj.delete_ruleset(lenition.id_)
    # then
    assert db_obj.get_rulesets(other["id"]) == []
    assert db_obj.get_ruleset(lenition.id_) is None


def test_ruleset_keeps_malformed_rules(db_obj, users):
    ruleset = db_obj.create_ruleset("mixed", ["nonsense", "a > e"], created_by=1)
    assert ruleset.rule_strings == ["nonsense", "a > e"]
    assert ruleset.apply("papa") == "pepe"


@pytest.mark.parametrize("name,rules", [("", ["p > b"]), ("empty_rule", ["p > b", ""])])
def test_create_invalid_ruleset(db_obj, users, name, rules):
    with pytest.raises(SchemaError):
        db_obj.create_ruleset(name, rules, created_by=1)


def test_database_file_persists(tmp_path):
    # given
    db_file = tmp_path / "conlang.db"
    database = db_handler.LexiconDatabase(db_file)
    database.create_user("ana", "secret", "Ana")
    database.close()
    # when
    reopened = db_handler.LexiconDatabase(db_file)
    # then
    assert reopened.authenticate("ana", "secret") is not None
    reopened.close()
