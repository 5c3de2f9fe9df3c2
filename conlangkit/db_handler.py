"""Connect to and query the database with users, lexica, phonologies and rulesets."""
from typing import List, Iterable, Optional
import json
import logging
import sqlite3

from passlib.context import CryptContext
from schema import SchemaError

from .constants import (
    USER_TABLE,
    LEXICON_TABLE,
    PHONOLOGY_TABLE,
    RULESET_TABLE,
    CREATE_USER_TABLE_STMT,
    CREATE_LEXICON_TABLE_STMT,
    CREATE_PHONOLOGY_TABLE_STMT,
    CREATE_RULESET_TABLE_STMT,
    INSERT_QUERY,
    SELECT_BY_ID_QUERY,
    SELECT_VISIBLE_QUERY,
    SELECT_SHARED_QUERY,
    UPDATE_QUERY,
    DELETE_QUERY,
    USER_COLUMNS,
    LEXICON_COLUMNS,
    PHONOLOGY_COLUMNS,
    RULESET_COLUMNS,
    JSON_COLUMNS,
    lexicon_entry_schema,
    phonology_schema,
    ruleset_schema,
)
from .rule_objects import RuleSet

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def add_placeholders(vals):
    """Create a string of question mark placeholders for sqlite queries."""
    return ', '.join('?' for _ in vals)


def shared_with(shared_json, user_id):
    """Check whether a user id is in a JSON list of user ids.

    To be used in SQL queries.
    """
    return user_id in json.loads(shared_json or "[]")


class LexiconDatabase:
    """Handler of the db connection.

    Every lexicon entry, phonology config and ruleset is owned by the user
    who created it (``created_by``) and visible to the users it is shared
    with (``shared_with``).

    Parameters
    ----------
    db: str
        Name of database to connect to, e.g. file path to the local db on disk,
        or ":memory:"
    """

    def __init__(self, db=":memory:"):
        """Set object attributes, connect to db and create tables."""
        self._db = str(db)
        self._connect_and_populate()

    def _connect_and_populate(self):
        """Connect to db. Create the tables if they don't exist."""
        logging.debug("Connecting to the database %s", self._db)
        self._connection = sqlite3.connect(self._db)
        self._connection.row_factory = sqlite3.Row
        self._connection.create_function("SHARED_WITH", 2, shared_with)
        self._cursor = self._connection.cursor()
        self._create_tables()

    def _create_tables(self):
        logging.debug("Creating tables if missing")
        for stmt, table in (
                (CREATE_USER_TABLE_STMT, USER_TABLE),
                (CREATE_LEXICON_TABLE_STMT, LEXICON_TABLE),
                (CREATE_PHONOLOGY_TABLE_STMT, PHONOLOGY_TABLE),
                (CREATE_RULESET_TABLE_STMT, RULESET_TABLE),
        ):
            self._cursor.execute(stmt.format(table_name=table))
        self._connection.commit()

    def _run_selection(self, query, values=()) -> List[dict]:
        logging.debug("Execute SQL Query: %s %s", query, values)
        rows = self._cursor.execute(query, values).fetchall()
        return [self._to_record(row) for row in rows]

    def _run_update(self, query, values) -> sqlite3.Cursor:
        logging.debug("Execute SQL Query: %s %s", query, values)
        cursor = self._cursor.execute(query, values)
        self._connection.commit()
        return cursor

    @staticmethod
    def _to_record(row: sqlite3.Row) -> dict:
        record = dict(row)
        for column in JSON_COLUMNS:
            if column in record:
                record[column] = json.loads(record[column])
        return record

    @staticmethod
    def _to_values(record: dict, columns: Iterable) -> tuple:
        return tuple(
            json.dumps(record[col], ensure_ascii=False) if col in JSON_COLUMNS
            else record[col]
            for col in columns
        )

    def _insert(self, table: str, record: dict, columns: tuple) -> dict:
        query = INSERT_QUERY.format(
            table=table,
            columns=", ".join(columns),
            vars=add_placeholders(columns),
        )
        cursor = self._run_update(query, self._to_values(record, columns))
        return self._get(table, cursor.lastrowid)

    def _get(self, table: str, record_id: int) -> Optional[dict]:
        records = self._run_selection(
            SELECT_BY_ID_QUERY.format(table=table), (record_id,))
        return records[0] if records else None

    def _update(self, table: str, record_id: int, record: dict, columns: tuple) -> bool:
        assignments = ", ".join(f"{col} = ?" for col in columns)
        query = UPDATE_QUERY.format(table=table, assignments=assignments)
        values = (*self._to_values(record, columns), record_id)
        return self._run_update(query, values).rowcount > 0

    def _delete(self, table: str, record_id: int) -> bool:
        cursor = self._run_update(DELETE_QUERY.format(table=table), (record_id,))
        return cursor.rowcount > 0

    def _select_visible(self, table: str, user_id: int, newest_first=False) -> List[dict]:
        query = SELECT_VISIBLE_QUERY.format(
            table=table, order="DESC" if newest_first else "ASC")
        return self._run_selection(query, (user_id, user_id))

    def _select_shared(self, table: str, user_id: int) -> List[dict]:
        return self._run_selection(
            SELECT_SHARED_QUERY.format(table=table), (user_id,))

    def _share(self, table: str, record_id: int, user_id: int) -> bool:
        record = self._get(table, record_id)
        if record is None:
            return False
        if user_id not in record["shared_with"]:
            record["shared_with"].append(user_id)
            self._update(table, record_id, record, ("shared_with",))
        logging.info("Shared %s %s with user %s", table, record_id, user_id)
        return True

    def _unshare(self, table: str, record_id: int, user_id: int) -> bool:
        record = self._get(table, record_id)
        if record is None:
            return False
        record["shared_with"] = [uid for uid in record["shared_with"] if uid != user_id]
        self._update(table, record_id, record, ("shared_with",))
        logging.info("Unshared %s %s with user %s", table, record_id, user_id)
        return True

    # User management
    def create_user(self, username: str, password: str, display_name: str) -> dict:
        """Register a user with a hashed password.

        Raises
        ------
        ValueError
            If the username is taken.
        """
        record = {
            "username": username,
            "password": pwd_context.hash(password),
            "display_name": display_name,
        }
        try:
            user = self._insert(USER_TABLE, record, ("username", "password", "display_name"))
        except sqlite3.IntegrityError as error:
            raise ValueError(f"Username already exists: {username}") from error
        logging.info("Created user %s", username)
        return self._public_user(user)

    @staticmethod
    def _public_user(user: Optional[dict]) -> Optional[dict]:
        if user is None:
            return None
        return {key: user[key] for key in USER_COLUMNS}

    def _get_user_with_password(self, username: str) -> Optional[dict]:
        users = self._run_selection(
            f"SELECT * FROM {USER_TABLE} WHERE username = ?;", (username,))
        return users[0] if users else None

    def get_user(self, username: str) -> Optional[dict]:
        return self._public_user(self._get_user_with_password(username))

    def get_user_by_id(self, user_id: int) -> Optional[dict]:
        return self._public_user(self._get(USER_TABLE, user_id))

    def authenticate(self, username: str, password: str) -> Optional[dict]:
        """Return the user if the password matches, else None."""
        user = self._get_user_with_password(username)
        if user is None:
            logging.info("Unknown user %s", username)
            return None
        if not pwd_context.verify(password, user["password"]):
            logging.info("Incorrect password for user %s", username)
            return None
        return self._public_user(user)

    # Lexicon
    def get_lexicon_entries(self, user_id: int) -> List[dict]:
        """Entries created by or shared with the user."""
        return self._select_visible(LEXICON_TABLE, user_id)

    def get_shared_lexicon_entries(self, user_id: int) -> List[dict]:
        return self._select_shared(LEXICON_TABLE, user_id)

    def get_lexicon_entry(self, entry_id: int) -> Optional[dict]:
        return self._get(LEXICON_TABLE, entry_id)

    def create_lexicon_entry(self, entry: dict, created_by: int) -> dict:
        """Add a word to the lexicon.

        Raises
        ------
        schema.SchemaError
            If the entry is missing a word, definition or category.
        """
        entry = lexicon_entry_schema.validate(entry)
        record = {**entry, "notes": entry.get("notes") or "",
                  "created_by": created_by, "shared_with": []}
        return self._insert(
            LEXICON_TABLE, record, (*LEXICON_COLUMNS, "created_by", "shared_with"))

    def create_lexicon_entries(self, entries: Iterable[dict], created_by: int) -> List[dict]:
        """Add many words to the lexicon, skipping invalid entries."""
        created = []
        for entry in entries:
            try:
                created.append(self.create_lexicon_entry(entry, created_by))
            except SchemaError as error:
                logging.error("Skipping invalid lexicon entry %s: %s", entry, error)
        return created

    def update_lexicon_entry(self, entry_id: int, entry: dict) -> Optional[dict]:
        """Replace the content of an entry, keeping its owner and sharing."""
        if self.get_lexicon_entry(entry_id) is None:
            return None
        entry = lexicon_entry_schema.validate(entry)
        record = {**entry, "notes": entry.get("notes") or ""}
        self._update(LEXICON_TABLE, entry_id, record, LEXICON_COLUMNS)
        return self.get_lexicon_entry(entry_id)

    def delete_lexicon_entry(self, entry_id: int) -> bool:
        return self._delete(LEXICON_TABLE, entry_id)

    def share_lexicon_entry(self, entry_id: int, user_id: int) -> bool:
        return self._share(LEXICON_TABLE, entry_id, user_id)

    def unshare_lexicon_entry(self, entry_id: int, user_id: int) -> bool:
        return self._unshare(LEXICON_TABLE, entry_id, user_id)

    # Phonology config
    def get_phonology_config(self, user_id: int) -> Optional[dict]:
        """The most recently saved config created by or shared with the user."""
        configs = self._select_visible(PHONOLOGY_TABLE, user_id, newest_first=True)
        return configs[0] if configs else None

    def get_phonology_config_by_id(self, config_id: int) -> Optional[dict]:
        return self._get(PHONOLOGY_TABLE, config_id)

    def get_shared_phonology_configs(self, user_id: int) -> List[dict]:
        return self._select_shared(PHONOLOGY_TABLE, user_id)

    def save_phonology_config(self, config: dict, created_by: int) -> dict:
        """Store a phonology config.

        Raises
        ------
        schema.SchemaError
            If an inventory or the syllable patterns aren't lists of strings.
        """
        config = phonology_schema.validate(config)
        record = {**config, "created_by": created_by, "shared_with": []}
        return self._insert(
            PHONOLOGY_TABLE, record, (*PHONOLOGY_COLUMNS, "created_by", "shared_with"))

    def share_phonology_config(self, config_id: int, user_id: int) -> bool:
        return self._share(PHONOLOGY_TABLE, config_id, user_id)

    def unshare_phonology_config(self, config_id: int, user_id: int) -> bool:
        return self._unshare(PHONOLOGY_TABLE, config_id, user_id)

    # Sound change rulesets
    def get_rulesets(self, user_id: int) -> List[RuleSet]:
        """Rulesets created by or shared with the user, in storage order."""
        return [RuleSet.from_dict(r) for r in self._select_visible(RULESET_TABLE, user_id)]

    def get_shared_rulesets(self, user_id: int) -> List[RuleSet]:
        return [RuleSet.from_dict(r) for r in self._select_shared(RULESET_TABLE, user_id)]

    def get_ruleset(self, ruleset_id: int) -> Optional[RuleSet]:
        record = self._get(RULESET_TABLE, ruleset_id)
        return RuleSet.from_dict(record) if record else None

    def create_ruleset(self, name: str, rules: List[str], created_by: int) -> RuleSet:
        """Store a named list of sound change rules.

        Raises
        ------
        schema.SchemaError
            If the name is empty or a rule isn't a non-empty string.
        """
        ruleset = ruleset_schema.validate({"name": name, "rules": list(rules)})
        record = {**ruleset, "created_by": created_by, "shared_with": []}
        stored = self._insert(
            RULESET_TABLE, record, (*RULESET_COLUMNS, "created_by", "shared_with"))
        logging.info("Created ruleset %s with %s rules", name, len(ruleset["rules"]))
        return RuleSet.from_dict(stored)

    def delete_ruleset(self, ruleset_id: int) -> bool:
        return self._delete(RULESET_TABLE, ruleset_id)

    def share_ruleset(self, ruleset_id: int, user_id: int) -> bool:
        return self._share(RULESET_TABLE, ruleset_id, user_id)

    def unshare_ruleset(self, ruleset_id: int, user_id: int) -> bool:
        return self._unshare(RULESET_TABLE, ruleset_id, user_id)

    def get_connection(self):
        """Return the object instance's sqlite3 connection."""
        return self._connection

    def close(self):
        """Close the object instance's sqlite3 connection."""
        self._connection.close()
