from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional
from uuid import uuid4

import pandas as pd

RESULT_SUBDIRS = ("age_only", "selective", "replicates", "figures")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def package_root() -> Path:
    """Return the package directory (repo-relative results live under this)."""
    return Path(__file__).resolve().parent


def results_root() -> Path:
    return package_root() / "results"


def mode_suffix(mode: str) -> str:
    return "" if mode == "full" else f"_{mode}"


def ensure_results_layout(root: Optional[Path] = None) -> Path:
    root = results_root() if root is None else Path(root)
    for sub in RESULT_SUBDIRS:
        (root / sub).mkdir(parents=True, exist_ok=True)
    return root


def get_logger(*, mode: str = "full", root: Optional[Path] = None) -> logging.Logger:
    """
    Diagnostics logger writing to `<root>/diagnostics{suffix}.log` and stderr.

    Handlers are attached on the first call only; later calls return the
    same logger whatever root they pass.
    """
    logger = logging.getLogger("illusory_senescence")
    if getattr(logger, "_configured", False):
        return logger

    root = ensure_results_layout(root)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers = [
        logging.FileHandler(root / f"diagnostics{mode_suffix(mode)}.log", mode="a", encoding="utf-8"),
        logging.StreamHandler(),
    ]
    for handler in handlers:
        handler.setLevel(logging.INFO)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(logging.INFO)
    logger.propagate = False
    logger._configured = True  # type: ignore[attr-defined]
    return logger


def atomic_write_csv(df: pd.DataFrame, path: Path) -> None:
    """Write via a temp file and os.replace so a killed run never leaves half a CSV."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.parent / f".{path.name}.{os.getpid()}.{uuid4().hex}.tmp"
    df.to_csv(tmp, index=False)
    os.replace(tmp, path)


def read_csv_or_empty(path: Path, *, expected_columns: Optional[Iterable[str]] = None) -> pd.DataFrame:
    columns = None if expected_columns is None else list(expected_columns)
    if not path.exists():
        return pd.DataFrame(columns=columns)
    df = pd.read_csv(path)
    missing = [c for c in columns or [] if c not in df.columns]
    if missing:
        raise ValueError(f"{path} is missing required columns {missing}")
    return df


def _key_mask(df: pd.DataFrame, key: dict) -> pd.Series:
    mask = pd.Series(True, index=df.index)
    for col, value in key.items():
        mask &= df[col] == value
    return mask


def upsert_row(df: pd.DataFrame, row: dict, *, key_cols: list[str]) -> pd.DataFrame:
    """Return a copy of df with the row matching key_cols replaced by row, or row appended."""
    new = pd.DataFrame([row])
    if df.empty:
        return new
    keep = df.loc[~_key_mask(df, {k: row[k] for k in key_cols})]
    return pd.concat([keep, new], ignore_index=True)


def seed_indices_present(
    seed_df: pd.DataFrame,
    *,
    key: dict,
    seed_index_col: str = "seed_index",
) -> set[int]:
    if seed_df.empty:
        return set()
    done = seed_df.loc[_key_mask(seed_df, key), seed_index_col]
    return {int(i) for i in done}
