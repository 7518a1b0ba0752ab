"""Formula parser for statcourse.

Patsy-based formula parsing with lme4-style random-effects terms
``(expr | group)`` split off for the mixed-model wrapper.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
import patsy

__all__ = ["FormulaParser", "RandomTerm", "split_random_terms"]

_RE_TERM_PAT = re.compile(
    r"\(\s*(?P<expr>[^()|]*?)\s*(?P<bar>\|\|?)\s*(?P<group>[^()|]+?)\s*\)",
)


@dataclass(frozen=True)
class RandomTerm:
    """One ``(expr | group)`` term of a mixed-model formula."""

    expr: str
    group: str

    @property
    def intercept_only(self) -> bool:
        return _cleanup_rhs(self.expr) == "1"

    @property
    def re_formula(self) -> str:
        """Right-hand side for the random-effects design (patsy syntax)."""
        return "1" if self.intercept_only else _cleanup_rhs(self.expr)


def _cleanup_rhs(rhs: str) -> str:
    """Remove empty/duplicate additive operators after dropping special terms so
    that Patsy receives a valid additive formula. Returns "1" when nothing is left.
    """
    s = re.sub(r"\s*\+\s*", " + ", rhs)
    # collapse multiple consecutive pluses
    s = re.sub(r"(?:\s*\+\s*){2,}", " + ", s)
    s = s.strip()
    s = re.sub(r"^\+\s*", "", s)
    s = re.sub(r"\s*\+$", "", s)
    return s if s else "1"


def split_random_terms(formula: str) -> tuple[str, list[RandomTerm]]:
    """Split ``y ~ x + (1 + x | g)`` into ``"y ~ x"`` and its random terms."""
    if "~" not in formula:
        msg = "Formula must contain '~'."
        raise ValueError(msg)
    lhs, rhs = (s.strip() for s in formula.split("~", 1))
    terms: list[RandomTerm] = []
    for m in _RE_TERM_PAT.finditer(rhs):
        if m.group("bar") == "||":
            msg = (
                f"Uncorrelated random-effects term {m.group(0)!r} is not supported; "
                "write separate terms or use a correlated '|' term."
            )
            raise ValueError(msg)
        expr = m.group("expr").strip()
        group = m.group("group").strip()
        if not expr or not group:
            raise ValueError(f"Malformed random-effects term {m.group(0)!r}.")
        terms.append(RandomTerm(expr=expr, group=group))
    fixed_rhs = _cleanup_rhs(_RE_TERM_PAT.sub("", rhs))
    return f"{lhs} ~ {fixed_rhs}", terms


class FormulaParser:
    """Formula parser for the model wrappers.

    Extensions
    ----------
    (expr | group)
        lme4-style random-effects term. Removed from the fixed-effects part and
        returned as :class:`RandomTerm` objects; the grouping variables take
        part in missing-value handling.

    Rows with missing values in any used variable are dropped, mirroring R's
    ``model.frame`` default. The original row labels are reported so callers
    can map results back to the data.
    """

    def __init__(self, data: pd.DataFrame) -> None:
        if not isinstance(data, pd.DataFrame):
            raise TypeError("data must be a pandas DataFrame")
        if data.index.has_duplicates:
            msg = "Input DataFrame index must be unique for deterministic row mapping."
            raise ValueError(msg)
        self.data = data

    def parse(self, formula: str) -> dict[str, Any]:
        """Parse formula into design components.

        Returns dict with keys: y, X, y_name, var_names, design_info,
        row_index_used, random_terms.
        """
        fixed_formula, random_terms = split_random_terms(formula)
        lhs = fixed_formula.split("~", 1)[0].strip()

        df = self.data
        group_cols = [t.group for t in random_terms]
        for g in group_cols:
            if g not in df.columns:
                msg = f"Grouping variable '{g}' not found in data."
                raise KeyError(msg)
        if group_cols:
            keep = df[group_cols].notna().all(axis=1).to_numpy()
            df = df.loc[keep]

        na = patsy.NAAction(on_NA="drop")
        try:
            y_df, X_df = patsy.dmatrices(
                fixed_formula, df, NA_action=na, return_type="dataframe",
            )
        except patsy.PatsyError as exc:
            msg = f"Unable to build design matrices for {fixed_formula!r}: {exc}"
            raise ValueError(msg) from exc
        if y_df.shape[1] != 1:
            msg = (
                f"Response {lhs!r} expands to {y_df.shape[1]} columns; "
                "use a numeric response."
            )
            raise ValueError(msg)
        return {
            "y": y_df.iloc[:, 0].to_numpy(dtype=np.float64),
            "X": X_df.to_numpy(dtype=np.float64),
            "y_name": lhs,
            "var_names": list(X_df.columns),
            "design_info": X_df.design_info,
            "row_index_used": X_df.index,
            "random_terms": random_terms,
        }

    @staticmethod
    def build_matrix(design_info: Any, data: pd.DataFrame) -> np.ndarray:
        """Rebuild a design matrix for new data from stored ``design_info``."""
        (X_new,) = patsy.build_design_matrices([design_info], data, return_type="dataframe")
        return X_new.to_numpy(dtype=np.float64)
