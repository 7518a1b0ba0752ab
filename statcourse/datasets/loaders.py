"""Dataset loaders.

Two small tables ship with the package so the lessons run offline; anything
else is fetched from the Rdatasets collection through statsmodels.
"""
from __future__ import annotations

import logging
from importlib import resources
from typing import TYPE_CHECKING

import pandas as pd
from statsmodels.datasets import get_rdataset

from statcourse.core import config

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = ["as_factor", "list_datasets", "load_dataset", "load_rdataset"]

_LOGGER = logging.getLogger(__name__)

# name -> (file, description)
_BUNDLED: dict[str, tuple[str, str]] = {
    "dyestuff": (
        "dyestuff.csv",
        "Yield of dyestuff (grams of standard colour) from 5 samples of each of 6 batches",
    ),
    "puromycin": (
        "puromycin.csv",
        "Reaction velocity versus substrate concentration, treated and untreated cells",
    ),
}


def as_factor(data: pd.DataFrame, columns: str | Iterable[str] | None = None) -> pd.DataFrame:
    """Return a copy of ``data`` with ``columns`` converted to categoricals.

    With ``columns=None`` every string/object column is converted.
    """
    out = data.copy()
    if columns is None:
        cols = [
            c for c in out.columns
            if pd.api.types.is_object_dtype(out[c]) or pd.api.types.is_string_dtype(out[c])
        ]
    elif isinstance(columns, str):
        cols = [columns]
    else:
        cols = list(columns)
    for c in cols:
        if c not in out.columns:
            raise KeyError(f"Column '{c}' not found in data.")
        if not isinstance(out[c].dtype, pd.CategoricalDtype):
            out[c] = pd.Categorical(out[c])
    return out


def list_datasets() -> pd.DataFrame:
    """Bundled datasets with a one-line description each."""
    return pd.DataFrame(
        {"description": [desc for _, desc in _BUNDLED.values()]},
        index=pd.Index(list(_BUNDLED), name="name"),
    )


def load_dataset(name: str) -> pd.DataFrame:
    """Load a bundled dataset by (case-insensitive) name."""
    key = str(name).lower().strip()
    if key not in _BUNDLED:
        msg = f"Unknown dataset {name!r}. Available: {sorted(_BUNDLED)}"
        raise ValueError(msg)
    fname, _ = _BUNDLED[key]
    with resources.files("statcourse.datasets").joinpath("data", fname).open("r") as fh:
        data = pd.read_csv(fh)
    _LOGGER.debug("Loaded bundled dataset %s (%d rows)", key, data.shape[0])
    return as_factor(data)


def load_rdataset(
    name: str, package: str = "datasets", cache: bool | str | None = None,
) -> pd.DataFrame:
    """Fetch ``package::name`` from the Rdatasets collection.

    Parameters
    ----------
    name : str
        Dataset name, e.g. ``"sleepstudy"``.
    package : str, default="datasets"
        R package holding the dataset, e.g. ``"lme4"``.
    cache : bool or str, optional
        Passed to :func:`statsmodels.datasets.get_rdataset`. ``None`` uses the
        ``STATCOURSE_DATA_CACHE`` setting.

    Notes
    -----
    Requires network access unless the table is already cached.
    """
    use_cache = config.data_cache() if cache is None else cache
    _LOGGER.debug("Fetching Rdataset %s::%s (cache=%r)", package, name, use_cache)
    try:
        rd = get_rdataset(name, package, cache=use_cache)
    except (OSError, ValueError) as exc:
        msg = f"Could not load Rdataset {package}::{name}: {exc}"
        raise ValueError(msg) from exc
    return as_factor(rd.data)
