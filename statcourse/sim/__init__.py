"""Simulated teaching data."""
from .montecarlo import (
    simulate_crossed_data,
    simulate_linear_data,
    simulate_logistic_data,
    simulate_michaelis_menten_data,
    simulate_poisson_data,
    simulate_sleepstudy_data,
)

__all__ = [
    "simulate_crossed_data",
    "simulate_linear_data",
    "simulate_logistic_data",
    "simulate_michaelis_menten_data",
    "simulate_poisson_data",
    "simulate_sleepstudy_data",
]
