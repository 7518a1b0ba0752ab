import numpy as np
import pandas as pd
import pytest

from statcourse.utils.formula import FormulaParser, RandomTerm, split_random_terms


def _toy_df() -> pd.DataFrame:
    n = 10
    return pd.DataFrame(
        {
            "y": np.arange(n, dtype=float),
            "x": np.arange(n, dtype=float) + 1.0,
            "g": list("aabbccddee"),
        },
        index=pd.RangeIndex(n),
    )


def test_zero_plus_x_drops_intercept_column() -> None:
    out = FormulaParser(_toy_df()).parse("y ~ 0 + x")
    assert out["var_names"] == ["x"]
    assert out["X"].shape == (10, 1)


def test_x_minus_1_drops_intercept_column() -> None:
    out = FormulaParser(_toy_df()).parse("y ~ x - 1")
    assert out["var_names"] == ["x"]


def test_intercept_column_by_default() -> None:
    out = FormulaParser(_toy_df()).parse("y ~ x")
    np.testing.assert_allclose(out["X"][:, 0], 1.0)
    assert out["var_names"] == ["Intercept", "x"]


def test_split_random_terms() -> None:
    fixed, terms = split_random_terms("Reaction ~ Days + (1 + Days | Subject)")
    assert fixed == "Reaction ~ Days"
    assert terms == [RandomTerm(expr="1 + Days", group="Subject")]
    assert not terms[0].intercept_only
    assert terms[0].re_formula == "1 + Days"


def test_split_intercept_only_terms() -> None:
    fixed, terms = split_random_terms("y ~ 1 + (1 | a) + (1|b)")
    assert fixed == "y ~ 1"
    assert [t.group for t in terms] == ["a", "b"]
    assert all(t.intercept_only for t in terms)


def test_random_only_formula_keeps_intercept() -> None:
    fixed, _ = split_random_terms("y ~ (1 | g)")
    assert fixed == "y ~ 1"


def test_double_bar_rejected() -> None:
    with pytest.raises(ValueError, match="Uncorrelated"):
        split_random_terms("y ~ x + (x || g)")


def test_missing_tilde_rejected() -> None:
    with pytest.raises(ValueError, match="~"):
        split_random_terms("y + x")


def test_parse_with_random_terms_drops_missing_groups() -> None:
    df = _toy_df()
    df["g"] = df["g"].astype(object)
    df.loc[3, "g"] = None
    out = FormulaParser(df).parse("y ~ x + (1 | g)")
    assert out["X"].shape == (9, 2)
    assert 3 not in out["row_index_used"]
    assert out["var_names"] == ["Intercept", "x"]
    assert [t.group for t in out["random_terms"]] == ["g"]


def test_parser_validation() -> None:
    with pytest.raises(TypeError):
        FormulaParser(np.zeros((3, 2)))
    df = pd.DataFrame({"y": [1.0, 2.0], "x": [1.0, 2.0]}, index=[0, 0])
    with pytest.raises(ValueError, match="unique"):
        FormulaParser(df)
    with pytest.raises(ValueError, match="design matrices"):
        FormulaParser(_toy_df()).parse("y ~ nonexistent")


def test_build_matrix_for_new_data() -> None:
    out = FormulaParser(_toy_df()).parse("y ~ x + I(x**2)")
    new = pd.DataFrame({"x": [2.0, 3.0]})
    X_new = FormulaParser.build_matrix(out["design_info"], new)
    np.testing.assert_allclose(X_new, [[1.0, 2.0, 4.0], [1.0, 3.0, 9.0]])
