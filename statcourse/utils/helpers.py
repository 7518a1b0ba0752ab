"""Shared helper utilities.

Parameter selection and cell formatting for the summary tables.
"""
from __future__ import annotations

import re
from collections import Counter
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - import only for type checking
    from collections.abc import Sequence

    from statcourse.estimators.base import FitResult

__all__ = [
    "collect_info",
    "collect_param_index",
    "escape_latex",
    "filter_and_order_params",
    "format_value",
    "pretty_term",
]


def collect_param_index(results: Sequence[FitResult], *, skip_missing: bool = False) -> list[Any]:
    """Return an ordered list of parameter names appearing across results.

    Parameters are ordered by first appearance. When ``skip_missing`` is True,
    only parameters present in *all* results are returned.
    """
    per_result = [list(res.params.index) for res in results]
    seen = Counter(name for names in per_result for name in dict.fromkeys(names))
    ordered = list(dict.fromkeys(name for names in per_result for name in names))
    if skip_missing:
        ordered = [name for name in ordered if seen[name] == len(per_result)]
    return ordered


def _pattern_matches(label: Any, pattern: str) -> bool:
    text = str(label)
    try:
        return bool(re.search(pattern, text))
    except re.error:
        return text == pattern


def filter_and_order_params(
    raw_pool: Sequence[Any],
    *,
    params: Sequence[Any] | None = None,
    include: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
    sort: str = "none",
) -> list[Any]:
    """Filter and order parameter names for summary tables.

    ``params`` selects and orders explicitly (missing names raise
    ``ValueError``). ``include``/``exclude`` take regular expressions, falling
    back to literal comparison when a pattern does not compile. ``sort`` is
    ``"none"`` (first appearance) or ``"alpha"``.
    """
    available = list(dict.fromkeys(raw_pool))
    if params is not None:
        missing = [p for p in params if p not in available]
        if missing:
            joined = ", ".join(str(m) for m in missing)
            raise ValueError(f"Requested parameter(s) not found: {joined}")
        selected = list(dict.fromkeys(params))
    else:
        selected = available
    if include:
        selected = [s for s in selected if any(_pattern_matches(s, p) for p in include)]
        if not selected:
            raise ValueError("include patterns filtered out all parameters.")
    if exclude:
        selected = [s for s in selected if not any(_pattern_matches(s, p) for p in exclude)]
    if sort == "alpha":
        selected = sorted(selected, key=lambda x: str(x).lower())
    elif sort != "none":
        raise ValueError("sort must be one of {'alpha','none'}")
    return selected


def escape_latex(obj: Any) -> str:
    """Minimal LaTeX escaping (consistent with tabulate's expectations)."""
    text = str(obj)
    replacements = {
        "\\": r"\textbackslash{}",
        "&": r"\&",
        "%": r"\%",
        "$": r"\$",
        "#": r"\#",
        "_": r"\_",
        "{": r"\{",
        "}": r"\}",
        "~": r"\textasciitilde{}",
        "^": r"\textasciicircum{}",
    }
    return "".join(replacements.get(ch, ch) for ch in text)


def pretty_term(name: Any) -> str:
    """Readable label for patsy term names: ``C(group)[T.b]`` -> ``group: b``."""
    text = str(name)
    m = re.match(r"^C\((?P<var>[^,)]+)[^)]*\)\[T\.(?P<level>.+)\]$", text)
    if m:
        return f"{m.group('var').strip()}: {m.group('level')}"
    m = re.match(r"^(?P<var>[A-Za-z_][\w.]*)\[T\.(?P<level>.+)\]$", text)
    if m:
        return f"{m.group('var')}: {m.group('level')}"
    return text


def format_value(val: Any, digits: int = 3) -> str:
    if val is None:
        return ""
    if isinstance(val, bool):
        return str(val)
    if isinstance(val, int):
        return f"{val:d}"
    if isinstance(val, float):
        return "" if val != val else f"{val:.{digits}f}"
    return str(val)


def collect_info(
    results: Sequence[FitResult], key: str, label: str | None = None, *, digits: int = 3,
) -> list[str]:
    """Collect values from ``res.model_info[key]`` across results."""
    row: list[str] = [label or key]
    for res in results:
        info = getattr(res, "model_info", {}) or {}
        row.append(format_value(info.get(key), digits))
    return row
