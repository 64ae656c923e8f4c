from __future__ import annotations

# Threshold substituted for exact zero in the solver's degenerate-case checks.
EPS = 1e-10

# Allowed |u*v + p/3| before Cardano's v is rotated to another cube-root branch.
BRANCH_TOL = 1e-8

# Largest imaginary remnant tolerated when expanding roots into real coefficients.
IMAG_REMNANT_TOL = 1e-8

DEFAULT_PRECISION = 3

COEFFS_ENV = "GALOIS_COEFFS"
SEED_ENV = "GALOIS_SEED"
DEGREE_ENV = "GALOIS_DEGREE"
DEFAULT_COEFFS = "1 -3 -3 61 -156"
