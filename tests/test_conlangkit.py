"""
Test suite for the conlangkit.py command line interface
"""

import pytest
from click.testing import CliRunner

from conlangkit import conlangkit

ANA = ("ana", "secret")
BO = ("bo", "hunter2")


@pytest.fixture
def cli(tmp_path):
    """Invoke the CLI with a database and output directory in tmp_path."""
    db_file = tmp_path / "conlang.db"
    output_dir = tmp_path / "output"
    runner = CliRunner()

    def invoke(args, user=None, **kwargs):
        options = ["-db", str(db_file), "-o", str(output_dir)]
        if user is not None:
            options += ["-u", user[0], "-p", user[1]]
        return runner.invoke(conlangkit.main, options + args, **kwargs)

    invoke.output_dir = output_dir
    return invoke


@pytest.fixture
def registered(cli):
    for username, password in (ANA, BO):
        result = cli(["register", username, "--new-password", password])
        assert result.exit_code == 0
    return cli


def last_line(result):
    return result.output.strip().splitlines()[-1]


def test_register(cli):
    # when
    result = cli(["register", "ana", "-n", "Ana", "--new-password", "secret"])
    duplicate = cli(["register", "ana", "--new-password", "other"])
    # then
    assert result.exit_code == 0
    assert "Registered ana" in result.output
    assert duplicate.exit_code == 1
    assert "already exists" in duplicate.output


@pytest.mark.parametrize(
    "user,expected_code",
    [(None, 2), (("ana", "wrong"), 2), (("nobody", "x"), 2), (ANA, 0)]
)
def test_login_required(registered, user, expected_code):
    result = registered(["lexicon", "list"], user=user)
    assert result.exit_code == expected_code


def test_password_from_environment(registered):
    # when
    result = registered(
        ["-u", "ana", "lexicon", "list"], env={"CONLANGKIT_PASSWORD": "secret"})
    # then
    assert result.exit_code == 0
    assert "The lexicon is empty." in result.output


def test_generate_without_login(cli):
    # when
    result = cli(["generate", "-n", "5", "--pattern", "CVC", "--seed", "1"])
    # then
    assert result.exit_code == 0
    words = result.output.split()
    assert len(words) == 5
    assert all(len(word) == 3 for word in words)


def test_generate_is_reproducible(cli):
    first = cli(["generate", "--seed", "7"])
    second = cli(["generate", "--seed", "7"])
    assert first.output == second.output


def test_generate_negative_count(cli):
    assert cli(["generate", "-n", "-1"]).exit_code == 2


def test_phonology(registered):
    # given
    default = registered(["phonology", "show"], user=ANA)
    # when
    result = registered(
        ["phonology", "set", "-c", "t", "-V", "a", "-s", "CV,CVCV"], user=ANA)
    shown = registered(["phonology", "show"], user=ANA)
    words = registered(["generate", "-n", "4"], user=ANA).output.split()
    # then
    assert "default phonology" in default.output
    assert result.exit_code == 0
    assert "Consonants: t" in shown.output
    assert "Syllable patterns: CV CVCV" in shown.output
    assert len(words) == 4
    assert set(words) <= {"ta", "tata"}


def test_share_phonology(registered):
    # given
    registered(["phonology", "set", "-c", "k", "-V", "i", "-s", "CV"], user=ANA)
    # when
    not_owner = registered(["phonology", "share", "1", "ana"], user=BO)
    result = registered(["phonology", "share", "1", "bo"], user=ANA)
    words = registered(["generate", "-n", "2"], user=BO).output.split()
    # then
    assert not_owner.exit_code == 1
    assert result.exit_code == 0
    assert words == ["ki", "ki"]
    # when
    registered(["phonology", "unshare", "1", "bo"], user=ANA)
    # then
    assert "default phonology" in registered(["phonology", "show"], user=BO).output


def test_apply_with_rules_file(cli):
    # when
    result = cli(["apply", "papa", "-r", "tests/dummy_rules.py"])
    # then
    assert result.exit_code == 0
    assert last_line(result) == "paba"


def test_apply_with_default_rules_file(cli):
    result = cli(["apply", "haha"])
    assert result.exit_code == 0
    assert last_line(result) == "haa"


def test_apply_track(cli):
    # when
    result = cli(["apply", "papa", "--track", "-r", "tests/dummy_rules.py"])
    # then
    assert result.exit_code == 0
    derivation = cli.output_dir / "derivation_papa.csv"
    assert derivation.exists()
    assert "lenition_0" in derivation.read_text(encoding="utf-8")
    assert "===>" in result.output


def test_rules(registered):
    # when
    added = registered(
        ["rules", "add", "lenition", "p > b / V_V", "nonsense"], user=ANA)
    listed = registered(["rules", "list"], user=ANA)
    applied = registered(["apply", "papa"], user=ANA)
    # then
    assert added.exit_code == 0
    assert "Skipped rule" in added.output
    assert "[1] lenition" in listed.output
    assert "lenition_0: p > b / V_V" in listed.output
    assert last_line(applied) == "paba"
    assert registered(["rules", "list"], user=BO).output == ""


def test_share_and_delete_rules(registered):
    # given
    registered(["rules", "add", "lenition", "p > b / V_V"], user=ANA)
    # when
    shared = registered(["rules", "share", "1", "bo"], user=ANA)
    listed = registered(["rules", "list"], user=BO)
    not_owner = registered(["rules", "delete", "1"], user=BO)
    unknown_user = registered(["rules", "share", "1", "nobody"], user=ANA)
    deleted = registered(["rules", "delete", "1"], user=ANA)
    # then
    assert shared.exit_code == 0
    assert "(shared with you)" in listed.output
    assert not_owner.exit_code == 1
    assert unknown_user.exit_code == 2
    assert deleted.exit_code == 0
    assert registered(["rules", "list"], user=ANA).output == ""


def test_import_and_export_rules(registered):
    # when
    imported = registered(["rules", "import", "-r", "tests/dummy_rules.py"], user=ANA)
    exported = registered(["rules", "export"], user=ANA)
    # then
    assert imported.exit_code == 0
    assert "Imported ruleset lenition" in imported.output
    assert "Imported ruleset h_loss" in imported.output
    rules_file = registered.output_dir / "rules.py"
    assert exported.exit_code == 0
    assert "h_loss = " in rules_file.read_text(encoding="utf-8")


def test_lexicon(registered):
    # when
    added = registered(
        ["lexicon", "add", "papa", "father", "-c", "noun", "-n", "informal"], user=ANA)
    updated = registered(["lexicon", "update", "1", "-d", "dad"], user=ANA)
    listed = registered(["lexicon", "list"], user=ANA)
    not_owner = registered(["lexicon", "delete", "1"], user=BO)
    # then
    assert added.exit_code == 0
    assert "Added papa (id 1)" in added.output
    assert updated.exit_code == 0
    assert "dad" in listed.output
    assert "informal" in listed.output
    assert not_owner.exit_code == 1
    # when
    registered(["lexicon", "share", "1", "bo"], user=ANA)
    # then
    assert "papa" in registered(["lexicon", "list"], user=BO).output
    # when
    registered(["lexicon", "unshare", "1", "bo"], user=ANA)
    deleted = registered(["lexicon", "delete", "1"], user=ANA)
    # then
    assert deleted.exit_code == 0
    assert "The lexicon is empty." in registered(["lexicon", "list"], user=ANA).output


def test_lexicon_add_invalid_entry(registered):
    result = registered(["lexicon", "add", " ", "father", "-c", "noun"], user=ANA)
    assert result.exit_code == 1


def test_lexicon_import_export_evolve(registered, lexicon_csv):
    # when
    imported = registered(["lexicon", "import", str(lexicon_csv)], user=ANA)
    exported = registered(["lexicon", "export"], user=ANA)
    evolved = registered(
        ["lexicon", "evolve", "-t", "-r", "tests/dummy_rules.py"], user=ANA)
    # then
    assert "Imported 2 lexicon entries" in imported.output
    assert exported.exit_code == 0
    assert evolved.exit_code == 0
    export_file = registered.output_dir / "lexicon.csv"
    assert export_file.read_text(encoding="utf-8").startswith(
        "word,definition,category,notes\n")
    evolved_file = registered.output_dir / "evolved_lexicon.csv"
    assert evolved_file.read_text(encoding="utf-8") == "word,evolved\npapa,paba\nhaha,haa\n"
    assert (registered.output_dir / "derivation_lexicon.csv").exists()


def test_lexicon_import_invalid_file(registered, tmp_path):
    # given
    csv_file = tmp_path / "bad.csv"
    csv_file.write_text("word,definition\npapa,father\n", encoding="utf-8")
    # when
    result = registered(["lexicon", "import", str(csv_file)], user=ANA)
    # then
    assert result.exit_code == 1


def test_anonymous_commands_after_login(registered):
    # given
    logged_in = registered(["lexicon", "list"], user=ANA)
    # when
    generated = registered(["generate", "-n", "2", "--pattern", "CV"])
    applied = registered(["apply", "haha"])
    # then
    assert logged_in.exit_code == 0
    assert generated.exit_code == 0
    assert len(generated.output.split()) == 2
    assert applied.exit_code == 0
    assert last_line(applied) == "haa"
