"""Command line toolkit for constructed languages.

Generate words from a phonology, apply sound change rules to words and
lexica, and keep a lexicon, all stored in an sqlite3 db.
"""

import logging
import pathlib
import pprint
import random
import re

import click
import pandas as pd
from pandera.errors import SchemaError as TableSchemaError
from schema import SchemaError

from .constants import (
    DEFAULT_PHONOLOGY,
    DEFAULT_WORD_COUNT,
    DERIVATION_PREFIX,
    EVOLVED_PREFIX,
    lexicon_column_names,
)
from .db_handler import LexiconDatabase
from .rule_objects import (
    construct_rulesets,
    flatten_rulesets,
    save_rulesets,
)
from .sound_changes import (
    skipped_rules,
    trace_sound_changes,
    track_sound_changes,
    evolve_words,
)
from .utils import (
    ensure_path_exists,
    load_config,
    load_lexicon,
    load_rules,
    make_list,
    set_logging_config,
    write_table,
)
from .word_generator import generate_words

CFG = {
    'database': 'data/conlang.db',
    'output_dir': 'data/output',
    'rules_file': 'rules.py',
    'default_phonology': DEFAULT_PHONOLOGY,
    'word_count': DEFAULT_WORD_COUNT,
}
CONFIG_FILE = load_config("./config.py")
CFG.update(CONFIG_FILE)
CONTEXT_SETTINGS = dict(
    default_map=dict(CFG),
    help_option_names=['-h', '--help'],
)
OUTPUT_DIR = pathlib.Path(CFG.get("output_dir"))


def ensure_dir(ctx, param, path):
    if path is not None:
        return ensure_path_exists(path)
    return ensure_path_exists(OUTPUT_DIR)


def split_inventory(ctx, param, arg):
    """Create a list from a comma- or whitespace-separated option value."""
    if arg is None:
        return None
    return make_list(arg) if "," in arg else make_list(arg, segments=True)


def configure_logging(ctx, param, verbose):
    """Configure logging level and destination based on user input."""
    return set_logging_config(
        verbose, logfile=(ensure_path_exists(OUTPUT_DIR) / "log.txt"))


def safe_filename(text: str) -> str:
    return re.sub(r"[^\w-]+", "_", text)


def login(ctx) -> dict:
    """Authenticate the user given by the --username and --password options."""
    username, password = ctx.meta.get("credentials", (None, None))
    if not username or password is None:
        raise click.UsageError(
            "Log in with --username and --password "
            "(or the CONLANGKIT_PASSWORD environment variable).", ctx)
    user = ctx.obj.authenticate(username, password)
    if user is None:
        raise click.UsageError("Incorrect username or password.", ctx)
    return user


def optional_login(ctx):
    username, _ = ctx.meta.get("credentials", (None, None))
    return login(ctx) if username else None


def lookup_user(db_obj, username) -> dict:
    user = db_obj.get_user(username)
    if user is None:
        raise click.BadParameter(f"Unknown user: {username}")
    return user


def check_owner(record, user, kind="Record"):
    """Fail unless the user created the record."""
    owner = getattr(record, "created_by", None) if not isinstance(record, dict) \
        else record.get("created_by")
    if record is None or owner != user["id"]:
        raise click.ClickException(f"{kind} not found among your own records.")


def file_rulesets(rules_file):
    return list(construct_rulesets(load_rules(rules_file)))


def select_rulesets(ctx, rules_file):
    """Rulesets from the rules file, else the user's stored rulesets.

    Without a login or a rules file, the rules file from the config is used.
    """
    if rules_file is not None:
        return file_rulesets(rules_file)
    user = optional_login(ctx)
    if user is not None:
        return ctx.obj.get_rulesets(user["id"])
    logging.info("Not logged in, using rules from %s", CFG.get("rules_file"))
    return file_rulesets(CFG.get("rules_file"))


def report_skipped(diagnostics):
    for diagnostic in diagnostics:
        click.secho(f"Skipped rule {diagnostic}", fg="yellow", err=True)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-db",
    "--database",
    type=click.Path(dir_okay=False, path_type=pathlib.Path),
    help="The path to the conlang database.",
)
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(resolve_path=True, file_okay=False, path_type=pathlib.Path),
    callback=ensure_dir,
    help="The directory path that files are written to.",
)
@click.option(
    "-u",
    "--username",
    type=str,
    help="Log in as this user.",
)
@click.option(
    "-p",
    "--password",
    type=str,
    envvar="CONLANGKIT_PASSWORD",
    help="Password of the user.",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    callback=configure_logging,
    help="Print logging messages to the console in addition to the log file. "
         "-v is informative, -vv is detailed (for debugging)."
)
@click.pass_context
def main(ctx, database, output_dir, username, password, verbose):
    """Generate words, apply sound changes and keep a lexicon for your conlang.

    Default values for the database, the output directory, the rules file and
    the phonology used without a login are specified in the config.py file.

    If provided, CLI arguments override the default values from the config.
    """
    logging.info("START LOG")
    CFG.update({k: ctx.params[k] for k in ("database", "output_dir")})
    if verbose:
        click.secho("Configuration values:", fg="yellow")
        click.echo(pprint.pformat(CFG))
        click.echo(f"Invoked command: {ctx.invoked_subcommand}")

    ctx.meta["credentials"] = (username, password)
    ctx.meta["output_dir"] = output_dir
    if str(database) != ":memory:":
        ensure_path_exists(database.parent)
    ctx.obj = db = LexiconDatabase(db=database)

    @ctx.call_on_close
    def close_db():
        db.close()
        logging.debug("DATABASE CLOSED")


@main.command("register")
@click.argument("username")
@click.option("-n", "--display-name", help="Name shown to other users. Defaults to the username.")
@click.password_option("--new-password", help="Password for the new account.")
@click.pass_obj
def register(db_obj, username, display_name, new_password):
    """Create a user account."""
    try:
        user = db_obj.create_user(username, new_password, display_name or username)
    except ValueError as error:
        raise click.ClickException(str(error))
    click.secho(f"Registered {user['username']} (id {user['id']})", fg="cyan")


@main.command("generate")
@click.option(
    "-n",
    "--count",
    type=click.IntRange(min=0),
    default=CFG.get("word_count"),
    show_default=True,
    help="Number of words to generate.",
)
@click.option(
    "--pattern",
    type=str,
    help="Use this syllable pattern for every word, e.g. CVCV.",
)
@click.option("--seed", type=int, help="Seed the random generator.")
@click.pass_context
def generate(ctx, count, pattern, seed):
    """Generate words from your phonology, or the default phonology."""
    user = optional_login(ctx)
    phonology = ctx.obj.get_phonology_config(user["id"]) if user else None
    if phonology is None:
        phonology = CFG.get("default_phonology")
    patterns = [pattern] if pattern else phonology["syllable_patterns"]
    words = generate_words(
        phonology["consonants"],
        phonology["vowels"],
        patterns,
        count=count,
        rng=random.Random(seed),
    )
    for word in words:
        click.echo(word)


@main.command("apply")
@click.argument("word")
@click.option(
    "-r",
    "--rules-file",
    type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path),
    help="Apply the rulesets in this file instead of your stored rulesets.",
)
@click.option(
    "-t",
    "--track",
    is_flag=True,
    help="Print and save the derivation: the word before and after each rule.",
)
@click.pass_context
def apply_rules(ctx, word, rules_file, track):
    """Apply sound change rules to a word, in order."""
    rules = flatten_rulesets(select_rulesets(ctx, rules_file))
    rule_strings = [rule.rule for rule in rules]
    rule_ids = [rule.id_ for rule in rules]
    trace = trace_sound_changes(word, rule_strings, rule_ids)
    report_skipped(trace.skipped)
    if track:
        derivation = track_sound_changes([word], rule_strings, rule_ids)
        click.echo(derivation.to_string(index=False))
        out_file = ctx.meta["output_dir"] / f"{DERIVATION_PREFIX}_{safe_filename(word)}.csv"
        write_table(out_file, derivation)
    click.echo(trace.result)


@main.group("phonology")
def phonology_group():
    """Show and configure your phonology."""


@phonology_group.command("show")
@click.pass_context
def show_phonology(ctx):
    """Print your current phonology config."""
    user = login(ctx)
    config = ctx.obj.get_phonology_config(user["id"])
    if config is None:
        click.secho("No phonology saved, the default phonology is used:", fg="yellow")
        config = CFG.get("default_phonology")
    else:
        click.echo(f"Config id: {config['id']}")
    click.echo(f"Consonants: {' '.join(config['consonants'])}")
    click.echo(f"Vowels: {' '.join(config['vowels'])}")
    click.echo(f"Syllable patterns: {' '.join(config['syllable_patterns'])}")


@phonology_group.command("set")
@click.option("-c", "--consonants", required=True, callback=split_inventory,
              help="Consonants, separated by commas or spaces.")
@click.option("-V", "--vowels", required=True, callback=split_inventory,
              help="Vowels, separated by commas or spaces.")
@click.option("-s", "--patterns", required=True, callback=split_inventory,
              help="Syllable patterns of C, V and literal characters, e.g. CV,CVC.")
@click.pass_context
def set_phonology(ctx, consonants, vowels, patterns):
    """Save a new phonology config."""
    user = login(ctx)
    config = ctx.obj.save_phonology_config(
        {"consonants": consonants, "vowels": vowels, "syllable_patterns": patterns},
        created_by=user["id"],
    )
    click.secho(f"Saved phonology config {config['id']}", fg="cyan")


@phonology_group.command("share")
@click.argument("config_id", type=int)
@click.argument("username")
@click.pass_context
def share_phonology(ctx, config_id, username):
    """Share a phonology config with another user."""
    user = login(ctx)
    check_owner(ctx.obj.get_phonology_config_by_id(config_id), user, "Phonology config")
    other = lookup_user(ctx.obj, username)
    ctx.obj.share_phonology_config(config_id, other["id"])
    click.echo(f"Shared phonology config {config_id} with {username}")


@phonology_group.command("unshare")
@click.argument("config_id", type=int)
@click.argument("username")
@click.pass_context
def unshare_phonology(ctx, config_id, username):
    """Stop sharing a phonology config with another user."""
    user = login(ctx)
    check_owner(ctx.obj.get_phonology_config_by_id(config_id), user, "Phonology config")
    other = lookup_user(ctx.obj, username)
    ctx.obj.unshare_phonology_config(config_id, other["id"])
    click.echo(f"Unshared phonology config {config_id} with {username}")


@main.group("rules")
def rules_group():
    """Manage your sound change rulesets."""


@rules_group.command("add")
@click.argument("name")
@click.argument("rules", nargs=-1, required=True)
@click.pass_context
def add_ruleset(ctx, name, rules):
    """Store a ruleset NAME with the RULES in the given order.

    Rules are written 'from > to / before_after', e.g. 'p > b / V_V'.
    """
    user = login(ctx)
    report_skipped(skipped_rules(rules))
    try:
        ruleset = ctx.obj.create_ruleset(name, list(rules), created_by=user["id"])
    except SchemaError as error:
        raise click.ClickException(f"Invalid ruleset: {error}")
    click.secho(f"Saved ruleset {ruleset.name} (id {ruleset.id_})", fg="cyan")


@rules_group.command("list")
@click.pass_context
def list_rulesets(ctx):
    """List your rulesets and the rulesets shared with you."""
    user = login(ctx)
    for ruleset in ctx.obj.get_rulesets(user["id"]):
        shared = "" if ruleset.created_by == user["id"] else " (shared with you)"
        click.secho(f"[{ruleset.id_}] {ruleset.name}{shared}", fg="cyan")
        for rule in ruleset.rules:
            click.echo(f"  {rule.id_}: {rule.rule}")


@rules_group.command("delete")
@click.argument("ruleset_id", type=int)
@click.pass_context
def delete_ruleset(ctx, ruleset_id):
    """Delete one of your rulesets."""
    user = login(ctx)
    check_owner(ctx.obj.get_ruleset(ruleset_id), user, "Ruleset")
    ctx.obj.delete_ruleset(ruleset_id)
    click.echo(f"Deleted ruleset {ruleset_id}")


@rules_group.command("share")
@click.argument("ruleset_id", type=int)
@click.argument("username")
@click.pass_context
def share_ruleset(ctx, ruleset_id, username):
    """Share one of your rulesets with another user."""
    user = login(ctx)
    check_owner(ctx.obj.get_ruleset(ruleset_id), user, "Ruleset")
    other = lookup_user(ctx.obj, username)
    ctx.obj.share_ruleset(ruleset_id, other["id"])
    click.echo(f"Shared ruleset {ruleset_id} with {username}")


@rules_group.command("unshare")
@click.argument("ruleset_id", type=int)
@click.argument("username")
@click.pass_context
def unshare_ruleset(ctx, ruleset_id, username):
    """Stop sharing one of your rulesets with another user."""
    user = login(ctx)
    check_owner(ctx.obj.get_ruleset(ruleset_id), user, "Ruleset")
    other = lookup_user(ctx.obj, username)
    ctx.obj.unshare_ruleset(ruleset_id, other["id"])
    click.echo(f"Unshared ruleset {ruleset_id} with {username}")


@rules_group.command("import")
@click.option(
    "-r",
    "--rules-file",
    type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path),
    default=CFG.get("rules_file"),
    help="Python file with ruleset dicts.",
)
@click.pass_context
def import_rulesets(ctx, rules_file):
    """Store the rulesets of a rules file."""
    user = login(ctx)
    for ruleset in file_rulesets(rules_file):
        report_skipped(skipped_rules(ruleset.rule_strings))
        stored = ctx.obj.create_ruleset(
            ruleset.name, ruleset.rule_strings, created_by=user["id"])
        click.echo(f"Imported ruleset {stored.name} (id {stored.id_})")


@rules_group.command("export")
@click.pass_context
def export_rulesets(ctx):
    """Append your rulesets to rules.py in the output directory."""
    user = login(ctx)
    rulesets = [
        ruleset for ruleset in ctx.obj.get_rulesets(user["id"])
        if ruleset.created_by == user["id"]
    ]
    try:
        rule_file = save_rulesets(rulesets, ctx.meta["output_dir"])
    except ValueError as error:
        raise click.ClickException(str(error))
    click.echo(f"Saved {len(rulesets)} rulesets to {rule_file}")


@main.group("lexicon")
def lexicon_group():
    """Manage your lexicon."""


@lexicon_group.command("add")
@click.argument("word")
@click.argument("definition")
@click.option("-c", "--category", required=True, help="Part of speech or semantic field.")
@click.option("-n", "--notes", default="", help="Free text notes.")
@click.pass_context
def add_entry(ctx, word, definition, category, notes):
    """Add a WORD with its DEFINITION to your lexicon."""
    user = login(ctx)
    entry = {"word": word, "definition": definition, "category": category, "notes": notes}
    try:
        stored = ctx.obj.create_lexicon_entry(entry, created_by=user["id"])
    except SchemaError as error:
        raise click.ClickException(f"Invalid lexicon entry: {error}")
    click.secho(f"Added {stored['word']} (id {stored['id']})", fg="cyan")


@lexicon_group.command("list")
@click.pass_context
def list_entries(ctx):
    """Print the entries you created or that are shared with you."""
    user = login(ctx)
    entries = ctx.obj.get_lexicon_entries(user["id"])
    if not entries:
        click.echo("The lexicon is empty.")
        return
    table = pd.DataFrame(entries, columns=["id", *lexicon_column_names, "created_by"])
    click.echo(table.to_string(index=False))


@lexicon_group.command("update")
@click.argument("entry_id", type=int)
@click.option("-w", "--word")
@click.option("-d", "--definition")
@click.option("-c", "--category")
@click.option("-n", "--notes")
@click.pass_context
def update_entry(ctx, entry_id, word, definition, category, notes):
    """Change the fields of one of your lexicon entries."""
    user = login(ctx)
    current = ctx.obj.get_lexicon_entry(entry_id)
    check_owner(current, user, "Lexicon entry")
    changes = {"word": word, "definition": definition, "category": category, "notes": notes}
    entry = {
        key: changes[key] if changes[key] is not None else current[key]
        for key in lexicon_column_names
    }
    try:
        ctx.obj.update_lexicon_entry(entry_id, entry)
    except SchemaError as error:
        raise click.ClickException(f"Invalid lexicon entry: {error}")
    click.echo(f"Updated lexicon entry {entry_id}")


@lexicon_group.command("delete")
@click.argument("entry_id", type=int)
@click.pass_context
def delete_entry(ctx, entry_id):
    """Delete one of your lexicon entries."""
    user = login(ctx)
    check_owner(ctx.obj.get_lexicon_entry(entry_id), user, "Lexicon entry")
    ctx.obj.delete_lexicon_entry(entry_id)
    click.echo(f"Deleted lexicon entry {entry_id}")


@lexicon_group.command("share")
@click.argument("entry_id", type=int)
@click.argument("username")
@click.pass_context
def share_entry(ctx, entry_id, username):
    """Share one of your lexicon entries with another user."""
    user = login(ctx)
    check_owner(ctx.obj.get_lexicon_entry(entry_id), user, "Lexicon entry")
    other = lookup_user(ctx.obj, username)
    ctx.obj.share_lexicon_entry(entry_id, other["id"])
    click.echo(f"Shared lexicon entry {entry_id} with {username}")


@lexicon_group.command("unshare")
@click.argument("entry_id", type=int)
@click.argument("username")
@click.pass_context
def unshare_entry(ctx, entry_id, username):
    """Stop sharing one of your lexicon entries with another user."""
    user = login(ctx)
    check_owner(ctx.obj.get_lexicon_entry(entry_id), user, "Lexicon entry")
    other = lookup_user(ctx.obj, username)
    ctx.obj.unshare_lexicon_entry(entry_id, other["id"])
    click.echo(f"Unshared lexicon entry {entry_id} with {username}")


@lexicon_group.command("import")
@click.argument(
    "csv_file",
    type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path),
)
@click.pass_context
def import_entries(ctx, csv_file):
    """Add the entries of a csv file with word, definition, category and notes columns."""
    user = login(ctx)
    try:
        lexicon = load_lexicon(csv_file)
    except TableSchemaError as error:
        raise click.ClickException(f"Invalid lexicon file {csv_file}: {error}")
    created = ctx.obj.create_lexicon_entries(lexicon.to_dict("records"), created_by=user["id"])
    click.secho(f"Imported {len(created)} lexicon entries", fg="cyan")


@lexicon_group.command("export")
@click.option(
    "-f",
    "--outfile",
    type=click.Path(dir_okay=False, path_type=pathlib.Path),
    default="lexicon.csv",
    help="File name in the output directory.",
)
@click.pass_context
def export_entries(ctx, outfile):
    """Write your lexicon to a csv file."""
    user = login(ctx)
    entries = ctx.obj.get_lexicon_entries(user["id"])
    table = pd.DataFrame(entries, columns=lexicon_column_names)
    out_file = ctx.meta["output_dir"] / outfile
    write_table(out_file, table)
    click.echo(f"Wrote {len(table.index)} entries to {out_file}")


@lexicon_group.command("evolve")
@click.option(
    "-r",
    "--rules-file",
    type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path),
    help="Apply the rulesets in this file instead of your stored rulesets.",
)
@click.option(
    "-f",
    "--outfile",
    type=click.Path(dir_okay=False, path_type=pathlib.Path),
    default=f"{EVOLVED_PREFIX}.csv",
    help="File name in the output directory.",
)
@click.option(
    "-t",
    "--track",
    is_flag=True,
    help="Also save every rule application that changed a word.",
)
@click.pass_context
def evolve_lexicon(ctx, rules_file, outfile, track):
    """Apply sound change rules to every word in your lexicon."""
    user = login(ctx)
    rules = flatten_rulesets(select_rulesets(ctx, rules_file))
    rule_strings = [rule.rule for rule in rules]
    report_skipped(skipped_rules(rule_strings))
    words = [entry["word"] for entry in ctx.obj.get_lexicon_entries(user["id"])]
    out_dir = ctx.meta["output_dir"]
    write_table(out_dir / outfile, evolve_words(words, rule_strings))
    if track:
        derivations = track_sound_changes(
            words, rule_strings, [rule.id_ for rule in rules])
        write_table(out_dir / f"{DERIVATION_PREFIX}_lexicon.csv", derivations)
    click.echo(f"Evolved {len(words)} words into {out_dir / outfile}")
