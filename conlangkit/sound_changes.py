"""Parse sound change rules and apply them to words.

A rule is written ``from > to / before_after``:

* ``from`` is a regex pattern for the sound(s) to replace,
* ``to`` is the replacement, or ``Ø`` to delete the match,
* the optional environment after ``/`` gives the context that must
  precede (``before``) and follow (``after``) the match without being
  replaced. An environment side that is exactly ``V`` or ``C`` is
  expanded to the vowel or non-vowel character class.

Rules are applied in order, each to the output of the previous one.
A rule that can't be parsed or compiled is skipped.
"""

import functools
import logging
import re
from typing import Iterable, List, NamedTuple, Sequence, Tuple

import pandas as pd

from .constants import (
    ARROW,
    DELETION_MARKER,
    ENVIRONMENT_MACROS,
    FOCUS,
    RULE_SEPARATOR,
    TRACK_ARROW,
)


class SoundChangeError(ValueError):
    """A sound change rule that can't be applied."""


class MalformedRuleError(SoundChangeError):
    """The rule string doesn't follow the ``from > to / before_after`` notation."""


class PatternCompileError(SoundChangeError):
    """The pattern or replacement built from the rule isn't valid regex syntax."""


class CompiledRule(NamedTuple):
    pattern: re.Pattern
    replacement: str


class RuleDiagnostic(NamedTuple):
    """A rule that was skipped, and why."""
    rule_id: object
    rule: object
    error: SoundChangeError

    def __str__(self):
        return f"{self.rule_id}: {self.rule!r} skipped ({self.error})"


class SoundChangeStep(NamedTuple):
    rule_id: object
    rule: str
    before: str
    after: str

    @property
    def changed(self) -> bool:
        return self.before != self.after


class SoundChangeTrace:
    """Derivation of a word through a list of sound change rules.

    ``steps`` holds every rule that was applied, in order,
    and ``skipped`` the diagnostics of rules that were not.
    """

    def __init__(self, word: str):
        self.word = word
        self.result = word
        self.steps: List[SoundChangeStep] = []
        self.skipped: List[RuleDiagnostic] = []

    def __repr__(self):
        return "{}(word={!r}, result={!r}, steps={}, skipped={})".format(
            self.__class__.__name__,
            self.word,
            self.result,
            len(self.steps),
            len(self.skipped),
        )

    @property
    def changes(self) -> List[SoundChangeStep]:
        """The steps that altered the word."""
        return [step for step in self.steps if step.changed]


def _split_parts(text: str, separator: str) -> List[str]:
    return [part.strip() for part in text.split(separator)]


def expand_macro(context: str) -> str:
    """Replace a bare V or C with its character class."""
    return ENVIRONMENT_MACROS.get(context, context)


def split_environment(environment: str) -> Tuple[str, str]:
    """Split an environment on the focus marker into (before, after).

    Without a focus marker, the whole environment is the left context.
    """
    parts = _split_parts(environment, FOCUS)
    before = parts[0]
    after = parts[1] if len(parts) > 1 else ""
    return expand_macro(before), expand_macro(after)


def split_rule(rule: str) -> Tuple[str, str, str, str]:
    """Parse a rule string into (source, replacement, before, after).

    Empty strings mean no left or right context.

    Raises
    ------
    MalformedRuleError
        If the rule has no ``from`` or ``to`` part.
    """
    if not isinstance(rule, str):
        raise MalformedRuleError(
            f"expected a rule string, got {type(rule).__name__}")
    parts = _split_parts(rule, RULE_SEPARATOR)
    main_part = parts[0]
    environment = parts[1] if len(parts) > 1 else ""
    if not main_part:
        raise MalformedRuleError("missing the 'from > to' part")

    sound_parts = _split_parts(main_part, ARROW)
    source = sound_parts[0]
    target = sound_parts[1] if len(sound_parts) > 1 else ""
    if not source or not target:
        raise MalformedRuleError(f"expected 'from {ARROW} to', got {main_part!r}")

    replacement = "" if target == DELETION_MARKER else target
    before, after = split_environment(environment) if environment else ("", "")
    return source, replacement, before, after


def build_pattern(source: str, before: str = "", after: str = "") -> str:
    """Wrap the source pattern in lookbehind/lookahead assertions."""
    lookbehind = f"(?<={before})" if before else ""
    lookahead = f"(?={after})" if after else ""
    return f"{lookbehind}{source}{lookahead}"


@functools.lru_cache(maxsize=1024)
def compile_rule(rule: str) -> CompiledRule:
    """Compile a rule string to a regex pattern and its replacement.

    Compiled rules are cached on the rule string.

    Raises
    ------
    MalformedRuleError
    PatternCompileError
    """
    source, replacement, before, after = split_rule(rule)
    pattern = build_pattern(source, before, after)
    try:
        compiled = re.compile(pattern)
    except (re.error, OverflowError, RecursionError) as error:
        raise PatternCompileError(f"invalid pattern {pattern!r}: {error}") from error
    return CompiledRule(compiled, replacement)


def apply_rule(word: str, rule: str) -> str:
    """Replace every match of the rule in the word."""
    if not isinstance(rule, str):
        raise MalformedRuleError(
            f"expected a rule string, got {type(rule).__name__}")
    compiled = compile_rule(rule)
    try:
        return compiled.pattern.sub(compiled.replacement, word)
    except (re.error, IndexError, OverflowError, RecursionError) as error:
        raise PatternCompileError(
            f"invalid replacement {compiled.replacement!r}: {error}") from error


def trace_sound_changes(
        word: str, rules: Iterable, rule_ids: Sequence = None
) -> SoundChangeTrace:
    """Apply the rules in order and record each step of the derivation.

    Parameters
    ----------
    word: str
    rules: Iterable[str]
        Sound change rules, applied in the given order
    rule_ids: Sequence
        Labels for the rules in the trace. Defaults to their index numbers.

    Returns
    -------
    SoundChangeTrace
    """
    if not isinstance(word, str):
        raise TypeError(f"word must be a string, not {type(word).__name__}")
    if rules is None:
        raise TypeError("rules must be a sequence of rule strings, not None")

    trace = SoundChangeTrace(word)
    for idx, rule in enumerate(rules):
        rule_id = rule_ids[idx] if rule_ids is not None else idx
        try:
            new_word = apply_rule(trace.result, rule)
        except MalformedRuleError as error:
            logging.debug("Skipping malformed rule %s %r: %s", rule_id, rule, error)
            trace.skipped.append(RuleDiagnostic(rule_id, rule, error))
            continue
        except PatternCompileError as error:
            logging.error("Invalid rule %s %r: %s", rule_id, rule, error)
            trace.skipped.append(RuleDiagnostic(rule_id, rule, error))
            continue
        trace.steps.append(SoundChangeStep(rule_id, rule, trace.result, new_word))
        trace.result = new_word
    return trace


def apply_sound_changes(word: str, rules: Iterable) -> str:
    """Apply a list of sound change rules to a word, in order.

    >>> apply_sound_changes("papa", ["p > b", "b > m"])
    'mama'
    """
    return trace_sound_changes(word, rules).result


def track_sound_changes(
        words: Iterable[str], rules: Sequence, rule_ids: Sequence = None
) -> pd.DataFrame:
    """Tabulate the rule applications that changed each word.

    Returns
    -------
    pd.DataFrame
        Columns: word, rule_id, rule, before, arrow, after
    """
    rules = list(rules)
    rows = []
    for word in words:
        trace = trace_sound_changes(word, rules, rule_ids)
        for step in trace.changes:
            rows.append((word, step.rule_id, step.rule, step.before,
                         TRACK_ARROW, step.after))
    logging.info("%s sound changes applied", len(rows))
    return pd.DataFrame(
        rows, columns=["word", "rule_id", "rule", "before", "arrow", "after"])


def evolve_words(words: Iterable[str], rules: Sequence) -> pd.DataFrame:
    """Apply the rules to every word.

    Returns
    -------
    pd.DataFrame
        Columns: word, evolved
    """
    rules = list(rules)
    words = list(words)
    evolved = [apply_sound_changes(word, rules) for word in words]
    return pd.DataFrame({"word": words, "evolved": evolved})


def skipped_rules(rules: Iterable) -> List[RuleDiagnostic]:
    """Check which rules would be skipped, without applying them to a word.

    Only the pattern is compiled, so an invalid replacement template
    isn't detected until the rule is applied.
    """
    diagnostics = []
    for idx, rule in enumerate(rules):
        try:
            if not isinstance(rule, str):
                raise MalformedRuleError(
                    f"expected a rule string, got {type(rule).__name__}")
            compile_rule(rule)
        except SoundChangeError as error:
            diagnostics.append(RuleDiagnostic(idx, rule, error))
    return diagnostics
