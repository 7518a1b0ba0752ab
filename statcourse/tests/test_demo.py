import pytest

from statcourse import demo
from statcourse.sim import (
    simulate_crossed_data,
    simulate_logistic_data,
    simulate_michaelis_menten_data,
    simulate_sleepstudy_data,
)


@pytest.fixture
def fig_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(demo, "DEMO_FIG_DIR", tmp_path)
    return tmp_path


def test_quadrature_demo_writes_figure(fig_dir, capsys):
    demo.demo_quadrature()
    out = capsys.readouterr().out
    assert "GAUSS-HERMITE" in out
    assert (fig_dir / "gauss_hermite.png").exists()


def test_nonlinear_demo_writes_figure(fig_dir):
    demo.demo_nonlinear()
    assert (fig_dir / "puromycin_fit.png").exists()


def test_run_demo_block_reports_soft_failure(capsys):
    def broken():
        raise ValueError("bad input")

    demo._run_demo_block("Broken", broken)
    assert "Broken demo failed: bad input" in capsys.readouterr().out


def test_simulators_are_seeded():
    a = simulate_logistic_data(n_obs=30, seed=5)
    b = simulate_logistic_data(n_obs=30, seed=5)
    assert a.equals(b)
    assert set(a["y"].unique()) <= {0, 1}

    mm = simulate_michaelis_menten_data(n_rep=3)
    assert mm.shape == (18, 2)

    sleep = simulate_sleepstudy_data(n_subjects=4, n_days=5)
    assert sleep.shape == (20, 3)
    assert list(sleep["Subject"].cat.categories) == ["S01", "S02", "S03", "S04"]

    crossed = simulate_crossed_data(n_a=3, n_b=2, n_rep=2)
    assert crossed.shape == (12, 3)
    assert crossed.groupby(["plate", "sample"], observed=True).size().eq(2).all()
