"""Utility functions for conlangkit"""

import csv
import importlib.util
import logging
import re
import sys
from pathlib import Path
from typing import Union, Iterable, List, Generator, Dict

import autopep8
import pandas as pd
from schema import SchemaError

from .constants import lexicon_column_names, lexicon_schema, ruleset_schema


def ensure_path_exists(path):
    """Make sure a directory exists and is a Path object."""
    path_obj = Path(path)
    path_obj.mkdir(exist_ok=True, parents=True)
    return path_obj


def write_table(output_file: Union[str, Path], data: Iterable, delimiter: str = ","):
    """Write rows or a DataFrame to a csv file.

    Parameters
    ----------
    output_file: str or Path
        Name of the file to write data to
    data: pd.DataFrame or Iterable[Iterable]
        A DataFrame is written with its header, other rows as they are
    delimiter: str
        character to separate items in a row
    """
    logging.info("Write data to %s", output_file)
    if isinstance(data, pd.DataFrame):
        data.to_csv(output_file, header=True, index=False, sep=delimiter)
    else:
        with open(output_file, 'w', encoding="utf-8", newline='') as csvfile:
            out_writer = csv.writer(csvfile, delimiter=delimiter)
            out_writer.writerows(data)


def resolve_rel_path(file_rel_path: Union[str, Path]) -> Path:
    """Resolve the full path from a potential relative path to the local or parent directory."""

    full_path = Path(file_rel_path).resolve()
    if not full_path.exists():
        full_path = Path.cwd().parent / file_rel_path
    return full_path


def load_module_from_path(file_path):
    """Use importlib to load a module from a .py file path."""
    module_path = resolve_rel_path(file_path)
    assert module_path.suffix == ".py", (
            f"Inappropriate file type: {module_path.suffix} ({file_path})")
    module_name = module_path.stem

    spec = importlib.util.spec_from_file_location(module_name, module_path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


def load_module_vars(module_path) -> List:
    """Return all public variables' values that are defined in a module."""
    module_vars = list(load_module_dict(module_path).values())
    return module_vars


def load_module_dict(module_path) -> Dict:
    """Load a dict of the public variables defined in a python module, ``{var_name:value}``."""
    module = load_module_from_path(module_path)
    module_dict = module.__dict__
    return {
        key: value for key, value in module_dict.items()
        if value and not key.startswith("_")
    }


def load_data(file_path: Union[str, Path]) -> List:
    """Load data from a python file path."""
    return load_module_vars(file_path)


def load_config(filename):
    """Load variable names (lower case) and their values as a dict from a .py file."""
    try:
        return {k.lower(): v for k, v in load_module_dict(filename).items()}
    except FileNotFoundError:
        return {}


def load_rules(file_path: Union[str, Path]) -> Generator:
    """Load rulesets from a .py file and validate the ruleset dicts.

    Rulesets are yielded in the order they are defined in the file.
    """
    rules = load_module_dict(file_path)

    for name, ruleset_dict in rules.items():
        try:
            ruleset_schema.validate(ruleset_dict)
        except SchemaError as error:
            logging.error("SKIPPING RULESET %s BECAUSE OF %s", name, type(error))
            logging.error("Error message: %s", error)
            continue
        yield ruleset_dict


def load_lexicon(csv_path: Union[str, Path]) -> pd.DataFrame:
    """Load a csv file with lexicon entries into a validated DataFrame.

    These are the columns expected in the csv file:
        "word": the word in the constructed language
        "definition": its meaning
        "category": part of speech or semantic field
        "notes": Free text. May be empty or left out

    Other columns are ignored.

    Raises
    ------
    pandera.errors.SchemaError
        If a required column is missing or has empty values.
    """
    full_path = resolve_rel_path(csv_path)
    lexicon = pd.read_csv(
        full_path,
        header=0,
        index_col=None,
        dtype=str,
        keep_default_na=False,
        usecols=lambda x: x in lexicon_column_names,
    )
    return lexicon_schema.validate(lexicon)


def ruleset_variable_name(name: str) -> str:
    """Turn a ruleset name into a python variable name."""
    variable = re.sub(r"\W+", "_", name.strip()).strip("_").lower()
    if not variable or variable[0].isdigit():
        variable = f"ruleset_{variable}"
    return variable


def format_rulesets(ruleset_list: list) -> str:
    """Format a code string that assigns rulesets to variables."""
    rules = ""

    for ruleset in ruleset_list:
        rules += (
            f"\n"
            f"{ruleset_variable_name(ruleset.name)} = {ruleset.to_dict()}"
            f"\n")
    return autopep8.fix_code(rules, options={'aggressive': 2})


def make_list(value, segments=False):
    """Turn a string, list or other collection into a list.

    Split a string on comma, newline, whitespace(set segments=True) or characters.
    """
    if isinstance(value, list):
        return value
    elif isinstance(value, str):
        if segments:
            return value.split()
        if "," in value:
            return [v.strip(" ") for v in value.split(",") if v.strip(" ")]
        if "\n" in value:
            return value.strip("\n").split("\n")
        return [value]
    return list(value)


def log_level(verbosity: int):
    """Calculate the log level given by the number of -v flags.

    0 = logging.WARNING (30)
    1 = logging.INFO (20)
    2 = logging.DEBUG (10)
    """
    return (3 - verbosity) * 10 if verbosity in (0, 1, 2) else 10


def set_logging_config(verbose=False, logfile="log.txt"):
    """Configure logging level and destination based on user input."""
    logging.basicConfig(
        level=logging.DEBUG,
        format=(
            "%(asctime)s | %(levelname)s "
            "| %(module)s-%(funcName)s-%(lineno)04d | %(message)s"),
        datefmt='%Y-%m-%d %H:%M',
        filename=logfile,
        filemode='a')

    if verbose:
        # define a Handler which writes log messages to stderr
        console = logging.StreamHandler()
        console.setLevel(log_level(verbose))
        # set a format which is simpler for console use
        formatter = logging.Formatter(
            '%(asctime)-10s | %(levelname)s | %(message)s')
        console.setFormatter(formatter)
        logging.getLogger('').addHandler(console)

    return verbose
