"""General IO helpers for configuration, input tables, and result artifacts.

Input tables
------------
- ``.cfe`` / ``.ocx``: one row per polymer, monomer counts followed by the
  polymer free energy in the last column. NUPACK ``.ocx`` files prepend two
  columns (complex index starting at 1, then 1) which are dropped.
- ``.con``: one initial monomer concentration per line.

Delimiters (tab, comma, semicolon or runs of spaces) are detected per file.
"""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any, Tuple

import numpy as np
import pandas as pd
import yaml

from coffee.core.errors import DimensionMismatch, InvalidInput

WHITESPACE = r"\s+"
# Rows inspected when deciding whether a table carries the NUPACK prefix.
NUPACK_SAMPLE_ROWS = 20


def load_yaml(path: str | Path) -> dict:
    """Load a YAML file into a dictionary."""
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def save_json(obj: Any, path: str | Path) -> None:
    """Serialize an object to JSON with indentation."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(obj, handle, indent=2)


def atomic_write_text(path: str | Path, text: str) -> None:
    """Atomically write text to a file by using a temporary file swap."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding="utf-8")
    tmp_path.replace(path)


def detect_delimiter(text: str) -> str:
    """Pick the column separator from the first non-empty line."""
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        for candidate in ("\t", ",", ";"):
            if candidate in line:
                return candidate
        return WHITESPACE
    raise InvalidInput("Failed to detect delimiter: file is empty.")


def read_table(text: str) -> pd.DataFrame:
    """Parse a headerless numeric table; every cell must be a number."""
    sep = detect_delimiter(text)
    try:
        df = pd.read_csv(
            io.StringIO(text.strip()),
            sep=sep,
            header=None,
            engine="python",
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise InvalidInput(f"Could not parse table: {exc}") from exc
    df = df.dropna(axis=1, how="all")
    try:
        return df.apply(pd.to_numeric).astype(float)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"Table contains non-numeric values: {exc}") from exc


def is_nupack_table(df: pd.DataFrame) -> bool:
    """True when the first rows look like ``index, 1, counts..., energy``."""
    if df.shape[1] < 4:
        return False
    sample = df.iloc[:NUPACK_SAMPLE_ROWS]
    expected = np.arange(1, len(sample) + 1, dtype=float)
    return bool(np.array_equal(sample.iloc[:, 0].to_numpy(), expected) and np.all(sample.iloc[:, 1] == 1.0))


def parse_cfe(text: str) -> Tuple[np.ndarray, np.ndarray]:
    """Return (composition (monomers x polymers), free energies) from ``.cfe``/``.ocx`` text."""
    df = read_table(text)
    if df.shape[1] < 2:
        raise DimensionMismatch("Composition file needs at least one monomer column and a free-energy column.")
    energies = df.iloc[:, -1].to_numpy(dtype=float)
    counts = df.iloc[:, :-1]
    if is_nupack_table(df):
        counts = counts.iloc[:, 2:]
    return counts.to_numpy(dtype=float).T.copy(), energies


def parse_con(text: str) -> np.ndarray:
    """Return the initial monomer concentrations from ``.con`` text."""
    df = read_table(text)
    if df.shape[1] != 1:
        raise InvalidInput(f"Invalid .con file: expected one column, found {df.shape[1]}.")
    return df.iloc[:, 0].to_numpy(dtype=float)


def read_inputs(cfe_path: str | Path, con_path: str | Path) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Read (composition, free energies, x0) from a composition file and a concentration file."""
    cfe_text = Path(cfe_path).read_text(encoding="utf-8")
    con_text = Path(con_path).read_text(encoding="utf-8")
    composition, energies = parse_cfe(cfe_text)
    return composition, energies, parse_con(con_text)
