"""Summary tables.

Coefficient tables for single fits, side-by-side model comparisons rendered
with tabulate, and bootstrap summaries with shortest intervals.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

import numpy as np
import pandas as pd
from tabulate import tabulate

from statcourse.core.intervals import normalize_ci_level
from statcourse.estimators.base import BaseModel, FitResult
from statcourse.utils.helpers import (
    collect_info as _collect_info,
)
from statcourse.utils.helpers import (
    collect_param_index as _collect_param_index,
)
from statcourse.utils.helpers import (
    escape_latex as _escape_latex,
)
from statcourse.utils.helpers import (
    filter_and_order_params as _filter_and_order_params,
)
from statcourse.utils.helpers import (
    format_value as _format_value,
)
from statcourse.utils.helpers import (
    pretty_term as _pretty_term,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from statcourse.core.bootstrap import BootstrapResult

__all__ = ["bootstrap_table", "coef_table", "modelsummary"]

# model_info key -> footer label
_DEFAULT_FOOTER: tuple[tuple[str, str], ...] = (
    ("n_obs", "N"),
    ("loglik", "Log-lik."),
    ("aic", "AIC"),
)


def _as_result(obj: FitResult | BaseModel) -> FitResult:
    if isinstance(obj, BaseModel):
        return obj.results
    if isinstance(obj, FitResult):
        return obj
    raise TypeError(f"Expected a FitResult or fitted model, got {type(obj).__name__}.")


def coef_table(result: FitResult | BaseModel, level: float = 0.95) -> pd.DataFrame:
    """Estimate, standard error, Wald statistic, p-value and interval bounds."""
    res = _as_result(result)
    stat_name = "t" if res.model_info.get("dist") == "t" else "z"
    ci = res.conf_int(level)
    return pd.DataFrame(
        {
            "estimate": res.params,
            "std_error": res.se,
            stat_name: res.tvalues,
            "p_value": res.pvalues(),
            "lower": ci["lower"],
            "upper": ci["upper"],
        },
    )


def modelsummary(  # noqa: PLR0913
    results: Sequence[FitResult | BaseModel],
    model_names: Sequence[str] | None = None,
    *,
    digits: int = 3,
    params: Sequence[str] | None = None,
    include: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
    sort: str = "none",
    footer: Sequence[tuple[str, str]] | None = None,
    output: str = "text",
    latex_booktabs: bool = True,
) -> str:
    """Side-by-side coefficient table.

    Each parameter occupies two rows, the estimate and its standard error in
    parentheses. The footer reports ``model_info`` entries (default: number
    of observations, log-likelihood, AIC); rows that are empty for every
    model are dropped.

    Parameters
    ----------
    results : sequence of FitResult or fitted models
    model_names : sequence of str, optional
        Column headers; defaults to ``(1)``, ``(2)``, ...
    params, include, exclude, sort
        Row selection, see :func:`statcourse.utils.helpers.filter_and_order_params`.
    footer : sequence of (key, label), optional
        ``model_info`` keys to report under the coefficients.
    output : {"text", "latex"}
    """
    fits = [_as_result(r) for r in results]
    if not fits:
        raise ValueError("modelsummary needs at least one result.")
    if model_names is None:
        model_names = [f"({i + 1})" for i in range(len(fits))]
    if len(model_names) != len(fits):
        raise ValueError(
            f"{len(model_names)} model names given for {len(fits)} results.",
        )
    if output not in {"text", "latex"}:
        raise ValueError("output must be either 'text' or 'latex'.")

    rows_order = _filter_and_order_params(
        _collect_param_index(fits), params=params, include=include, exclude=exclude, sort=sort,
    )
    table_data: list[list[str]] = []
    for name in rows_order:
        row = [_pretty_term(name)]
        se_row = [""]
        for res in fits:
            if name in res.params.index:
                row.append(_format_value(float(res.params[name]), digits))
                se_val = None if res.se is None else float(res.se[name])
                se_row.append("" if se_val is None else f"({_format_value(se_val, digits)})")
            else:
                row.append("")
                se_row.append("")
        table_data.append(row)
        table_data.append(se_row)

    footer_rows: list[list[str]] = []
    for key, label in footer if footer is not None else _DEFAULT_FOOTER:
        if key == "n_obs":
            footer_rows.append([label, *[_format_value(r.n_obs) for r in fits]])
            continue
        row = _collect_info(fits, key, label, digits=digits)
        if any(cell.strip() for cell in row[1:]):
            footer_rows.append(row)

    headers = ["", *model_names]
    if output == "latex":
        headers = [_escape_latex(h) for h in headers]
        body = [[_escape_latex(c) for c in r] for r in [*table_data, *footer_rows]]
        tablefmt = "latex_booktabs" if latex_booktabs else "latex"
        return cast("str", tabulate(body, headers=headers, stralign="center", tablefmt=tablefmt))
    # text: one tabulate call so body and footer share the column layout
    sep = ["" for _ in headers]
    table_all = [*table_data, sep, *footer_rows]
    return cast("str", tabulate(table_all, headers=headers, stralign="center"))


def bootstrap_table(
    boot: BootstrapResult, level: float | None = None, *, digits: int = 3,
) -> str:
    """Text table of bootstrap estimates, standard errors and shortest intervals."""
    lev = normalize_ci_level(boot.config.level if level is None else level)
    summ = boot.summary(lev)
    pct = f"{100.0 * lev:g}%"
    rows: list[list[Any]] = [
        [_pretty_term(name), *(_format_value(float(v), digits) for v in vals)]
        for name, vals in zip(summ.index, summ.to_numpy(dtype=np.float64))
    ]
    headers = ["", "estimate", "boot. s.e.", f"{pct} lower", f"{pct} upper"]
    table = cast("str", tabulate(rows, headers=headers, stralign="right"))
    notes = [f"Parametric bootstrap, B = {boot.n_boot}"]
    if boot.n_failed:
        notes.append(f"{boot.n_failed} failed refits skipped")
    if boot.n_warned:
        notes.append(f"{boot.n_warned} refits with convergence warnings")
    return table + "\n" + "; ".join(notes) + "."
