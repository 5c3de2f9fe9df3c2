import logging
from collections import Counter
from pathlib import Path
from typing import List, Union, Iterable, Generator

from schema import SchemaError

from .constants import (
    ARROW,
    DELETION_MARKER,
    FOCUS,
    RULE_SEPARATOR,
    rule_schema,
    ruleset_schema,
)
from .sound_changes import (
    SoundChangeError,
    apply_sound_changes,
    compile_rule,
    split_rule,
)
from .utils import (
    load_data,
    format_rulesets,
    ensure_path_exists,
)


def create_rule_string(
        source: str, target: str, before: str = None, after: str = None
) -> str:
    """Write a well-formed sound change rule.

    An empty target is written as the deletion marker.
    """
    target = target if target else DELETION_MARKER
    rule = f"{source} {ARROW} {target}"
    if before or after:
        rule += f" {RULE_SEPARATOR} {before or ''}{FOCUS}{after or ''}"
    return rule


class Rule:
    """Sound change rule used to transform words.

    Each rule is a string in the notation ``from > to / before_after``,
    where the environment part is optional.
    """
    def __init__(self, rule: str, ruleset: str = None, idx: int = 0):
        self.rule = rule
        self.ruleset = ruleset
        self.idx = idx
        self.id_ = self.hash_ if ruleset is None else f"{ruleset}_{idx}"
        if not self.is_valid:
            logging.warning("Instantiated a rule that will be skipped: %r", rule)

    @classmethod
    def from_parts(cls, source: str, target: str, before: str = None,
                   after: str = None, **kwargs):
        """Instantiate a Rule from its source, target and environment."""
        return cls(create_rule_string(source, target, before, after), **kwargs)

    def __repr__(self):
        return "{}(rule={!r}, ruleset={!r}, idx={!r})".format(
            self.__class__.__name__, self.rule, self.ruleset, self.idx)

    def __str__(self):
        return self.rule

    def __eq__(self, other):
        return str(self) == str(other)

    @property
    def hash_(self):
        """Identifier of the rule string.

        This property is deliberately not implemented as the magic
        method __hash__, because the same rule string may occur at
        different positions in a ruleset.
        """
        return hash(self.rule)

    @property
    def parts(self):
        """The (source, replacement, before, after) parts, or None if malformed.

        Environment macros are expanded to their character classes.
        """
        try:
            return split_rule(self.rule)
        except SoundChangeError:
            return None

    @property
    def source(self):
        return self.parts[0] if self.parts else None

    @property
    def target(self):
        return self.parts[1] if self.parts else None

    @property
    def before(self):
        return self.parts[2] if self.parts else None

    @property
    def after(self):
        return self.parts[3] if self.parts else None

    @property
    def is_valid(self):
        """Whether or not the rule will be applied."""
        if not isinstance(self.rule, str):
            return False
        try:
            compile_rule(self.rule)
        except SoundChangeError:
            return False
        return True

    def apply(self, word: str) -> str:
        """Apply only this rule to a word."""
        return apply_sound_changes(word, [self.rule])


class RuleSet:
    """A named, ordered collection of sound change rules."""
    def __init__(
            self,
            name: str,
            rules: list = None,
            id_: int = None,
            created_by: int = None,
            shared_with: list = None,
    ):
        self.name: str = name
        self.id_ = id_
        self.created_by = created_by
        self.shared_with: List = [] if shared_with is None else list(shared_with)
        self._rules: List[Rule] = []

        if rules is not None:
            self.add_multiple_rules(rules)

    @classmethod
    def from_dict(cls, ruleset_dict: dict):
        """Instantiate a RuleSet object from a ruleset dictionary.

        Parameters
        ----------
        ruleset_dict: dict
            Format is {"name": str, "rules": list}, optionally with the
            storage fields "id", "created_by" and "shared_with"
        """
        return cls(
            name=ruleset_dict["name"],
            rules=ruleset_dict["rules"],
            id_=ruleset_dict.get("id"),
            created_by=ruleset_dict.get("created_by"),
            shared_with=ruleset_dict.get("shared_with"),
        )

    def to_dict(self):
        """Create a validated ruleset dict."""
        ruleset = {
            "name": self.name,
            "rules": self.rule_strings,
        }
        return ruleset_schema.validate(ruleset)

    def __repr__(self):
        """String representation of the RuleSet instance."""
        instance_repr = (
            "{}(name={!r}, rules={!r}, id_={!r}, created_by={!r}, shared_with={!r})"
        ).format(
            self.__class__.__name__,
            self.name, self.rule_strings, self.id_, self.created_by, self.shared_with
        )
        return instance_repr

    def __str__(self):
        return str(self.to_dict())

    def __eq__(self, other):
        return str(self) == str(other)

    def __len__(self):
        return len(self._rules)

    @property
    def rules(self):
        """Sound change rules, in the order they are applied."""
        return self._rules

    @rules.setter
    def rules(self, rule_list: list):
        self._rules = []
        self.add_multiple_rules(rule_list)

    @property
    def rule_strings(self) -> List[str]:
        return [rule.rule for rule in self._rules]

    @property
    def rule_ids(self) -> List[str]:
        return [rule.id_ for rule in self._rules]

    def add_rule(self, rule: Union[Rule, str]):
        """Add a rule string or Rule object to the end of self.rules.

        Rules that don't parse are kept, with a warning,
        and are skipped when the rules are applied.

        Raises
        ------
        ValueError
            If the rule is not a non-empty string.
        """
        rule_str = rule.rule if isinstance(rule, Rule) else rule
        if not rule_schema.is_valid(rule_str):
            raise ValueError(f"Invalid rule: {rule!r}")
        rule_obj = Rule(rule_str, ruleset=self.name, idx=len(self._rules))
        self._rules.append(rule_obj)
        logging.debug("Adding %s to %s", rule_obj.id_, self.name)

    def add_multiple_rules(self, rule_list):
        """Add a collection of rules to self.rules."""
        for rule_obj in rule_list:
            try:
                self.add_rule(rule_obj)
            except ValueError as error:
                logging.debug(
                    "Skipping invalid rule: %s due to %s. "
                    "The rule_list must contain either Rule objects "
                    "or non-empty strings.",
                    rule_obj, error)

    def is_shared_with(self, user_id: int) -> bool:
        return user_id in self.shared_with

    def apply(self, word: str) -> str:
        """Apply the rules of this set to a word, in order."""
        return apply_sound_changes(word, self.rule_strings)


def construct_rulesets(rulesets: Iterable) -> Generator:
    """Create RuleSet objects from a list of ruleset dicts.

    Invalid ruleset dicts are skipped. RuleSet objects are passed through.
    """
    for ruleset in rulesets:
        if isinstance(ruleset, RuleSet):
            yield ruleset
            continue
        try:
            ruleset_schema.validate(
                {key: ruleset.get(key) for key in ("name", "rules")})
        except (SchemaError, AttributeError) as error:
            logging.error("Skipping invalid ruleset %s: %s", ruleset, error)
            continue
        yield RuleSet.from_dict(ruleset)


def flatten_rulesets(rulesets: Iterable[RuleSet]) -> List[Rule]:
    """Concatenate the rules of the rulesets, keeping their order."""
    return [rule for ruleset in rulesets for rule in ruleset.rules]


def check_duplicate_ruleset_names(rulesets: Iterable):
    """Check if any rule sets share the same name."""
    seen = Counter([ruleset.name for ruleset in rulesets])
    duplicates = [name for name in seen if seen[name] >= 2]
    if duplicates:
        logging.warning(
            "Some rulesets have the same names: %s. "
            "Change their names before saving them to file.", duplicates)
    return duplicates


def verify_all_rulesets(rule_file: Union[str, Path], ruleset_list: list):
    """Verify that no new or existing rule sets share the same name."""
    try:
        file_rulesets = list(construct_rulesets(load_data(rule_file)))
        all_rulesets = file_rulesets + list(ruleset_list)
    except (AssertionError, FileNotFoundError):
        all_rulesets = list(ruleset_list)
    duplicates = check_duplicate_ruleset_names(all_rulesets)
    if duplicates:
        raise ValueError(f"Ruleset names are not unique: {duplicates}")


def save_rulesets(ruleset_list: list, output_dir: Union[str, Path] = ".") -> Path:
    """Format rule sets and append them to the rules.py file in output_dir."""
    out_dir = ensure_path_exists(output_dir)
    rule_file = out_dir / "rules.py"
    verify_all_rulesets(rule_file, ruleset_list)
    rules = format_rulesets(ruleset_list)
    with rule_file.open(mode="a+", encoding="utf-8") as r_file:
        r_file.write(rules)
    return rule_file
