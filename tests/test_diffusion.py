"""
Unit tests for the vapor diffusion schemes.
"""

import numpy as np
import pytest

from snow_sim import DiffusionSolver, GravnerGriffeathParameters, HexLattice, ReiterParameters
from snow_sim.diffusion import REFLECT, SINK
from snow_sim.lattice import VAPOR


def _vapor_lattice(size, boundary, params, rng):
    """Lattice with random vapor and no ice at all."""
    lattice = HexLattice(size, boundary=boundary)
    lattice.reset(None, params)
    cur = lattice.current
    cur.frozen[:] = False
    cur.state[:] = VAPOR
    cur.ice[:] = 0.0
    cur.diffusive[:] = rng.uniform(0.0, 1.0, lattice.num_cells)
    return lattice


@pytest.mark.parametrize("scheme", [SINK, REFLECT])
@pytest.mark.parametrize("boundary", ["periodic", "reflecting"])
def test_diffusion_conserves_mass(scheme, boundary):
    """Total diffusive mass is unchanged by one pass on a closed lattice."""
    rng = np.random.default_rng(7)
    params = ReiterParameters(alpha=1.0) if scheme == SINK else GravnerGriffeathParameters()
    lattice = _vapor_lattice(12, boundary, params, rng)
    solver = DiffusionSolver(scheme)

    before = lattice.current.diffusive.sum()
    solver.solve(0, lattice.num_cells, lattice, params)
    after = lattice.next.diffusive.sum()
    assert after == pytest.approx(before, rel=1e-12)
    # diffusion actually moved mass around
    assert not np.allclose(lattice.next.diffusive, lattice.current.diffusive)


def test_reflect_conserves_mass_around_ice():
    """Ice cells act as walls for the seven-point average."""
    rng = np.random.default_rng(3)
    params = GravnerGriffeathParameters()
    lattice = HexLattice(11)
    lattice.reset(None, params)
    cur = lattice.current
    cur.diffusive[:] = rng.uniform(0.0, 1.0, lattice.num_cells)
    cur.diffusive[cur.frozen] = 0.0

    before = cur.diffusive.sum()
    DiffusionSolver(REFLECT).solve(0, lattice.num_cells, lattice, params)
    assert lattice.next.diffusive.sum() == pytest.approx(before, rel=1e-12)
    assert np.all(lattice.next.diffusive[cur.frozen] == 0.0)


@pytest.mark.parametrize("scheme", [SINK, REFLECT])
def test_open_edge_keeps_uniform_field(scheme):
    """An open lattice at ambient density is already in equilibrium."""
    params = ReiterParameters(beta=0.35) if scheme == SINK else GravnerGriffeathParameters(rho=0.35)
    lattice = _vapor_lattice(9, "open", params, np.random.default_rng(0))
    lattice.current.diffusive[:] = 0.35

    DiffusionSolver(scheme).solve(0, lattice.num_cells, lattice, params)
    np.testing.assert_allclose(lattice.next.diffusive, 0.35)


def test_sink_relaxes_towards_neighbors():
    params = ReiterParameters(alpha=1.0)
    lattice = _vapor_lattice(7, "periodic", params, np.random.default_rng(0))
    lattice.current.diffusive[:] = 0.0
    centre = lattice.index(lattice.center)
    lattice.current.diffusive[centre] = 1.0

    DiffusionSolver(SINK).solve(0, lattice.num_cells, lattice, params)
    d = lattice.next.diffusive
    # u' = u + alpha/2 * (mean - u)
    assert d[centre] == pytest.approx(0.5)
    for nb in lattice.neighbors(lattice.center):
        assert d[lattice.index(nb)] == pytest.approx(0.5 / 6.0)


def test_partial_ranges_match_full_pass():
    """Solving in pieces gives exactly the same field as one pass."""
    rng = np.random.default_rng(11)
    params = GravnerGriffeathParameters()
    lattice = _vapor_lattice(10, "reflecting", params, rng)
    solver = DiffusionSolver(REFLECT)

    solver.solve(0, lattice.num_cells, lattice, params)
    full = lattice.next.diffusive.copy()
    lattice.next.diffusive[:] = -1.0
    for start in range(0, lattice.num_cells, 30):
        solver.solve(start, min(start + 30, lattice.num_cells), lattice, params)
    np.testing.assert_array_equal(lattice.next.diffusive, full)


def test_unknown_scheme():
    with pytest.raises(ValueError):
        DiffusionSolver("explicit")
