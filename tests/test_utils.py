"""
Unit tests for snapshot files and crystal outlines.
"""

import numpy as np
import pytest

from snow_sim import GravnerGriffeathParameters, SimulationController, utils
from snow_sim.contours import extract_contours, hex_centers, write_svg


def test_save_and_load_snapshot(tmp_path):
    params = GravnerGriffeathParameters(beta=0.8)
    with SimulationController("gravner_griffeath", 13, parameters=params, workers=1) as sim:
        sim.start()
        sim.run(6)
        snap = sim.snapshot()

    path = tmp_path / "out" / "crystal.npz"
    utils.save_snapshot(path, snap)
    loaded = utils.load_snapshot(path)

    assert loaded.tick == 6
    assert loaded.model == "gravner_griffeath"
    assert loaded.boundary == "periodic"
    assert loaded.seed == (6, 6)
    assert loaded.parameters == params.as_dict()
    np.testing.assert_array_equal(loaded.diffusive, snap.diffusive)
    np.testing.assert_array_equal(loaded.boundary_mass, snap.boundary_mass)
    np.testing.assert_array_equal(loaded.ice, snap.ice)
    np.testing.assert_array_equal(loaded.state, snap.state)
    assert not loaded.ice.flags.writeable

    with pytest.raises(FileExistsError):
        utils.save_snapshot(path, snap, overwrite=False)


def test_hex_centers():
    x, y = hex_centers(4)
    assert x.shape == (4, 4)
    # neighboring cells are one unit apart
    assert np.hypot(x[1, 0] - x[0, 0], y[1, 0] - y[0, 0]) == pytest.approx(1.0)
    assert np.hypot(x[0, 1] - x[0, 0], y[0, 1] - y[0, 0]) == pytest.approx(1.0)
    assert np.hypot(x[0, 1] - x[1, 0], y[0, 1] - y[1, 0]) == pytest.approx(1.0)


def test_contours_of_empty_lattice():
    assert extract_contours(np.zeros((5, 5), dtype=bool)) == []


def test_contour_of_single_cell():
    frozen = np.zeros((5, 5), dtype=bool)
    frozen[2, 2] = True
    (contour,) = extract_contours(frozen)
    assert len(contour) == 7
    assert contour[0] == contour[-1]

    x, y = hex_centers(5)
    cx, cy = x[2, 2], y[2, 2]
    for px, py in contour:
        # corners of a unit-spaced hexagon sit 1/sqrt(3) from its centre
        assert np.hypot(px - cx, py - cy) == pytest.approx(1.0 / np.sqrt(3.0))


def test_contour_of_two_adjacent_cells():
    frozen = np.zeros((5, 5), dtype=bool)
    frozen[2, 2] = True
    frozen[3, 2] = True
    (contour,) = extract_contours(frozen)
    # the shared edge cancels, leaving ten outline edges
    assert len(contour) == 11


def test_separate_cells_give_separate_contours():
    frozen = np.zeros((7, 7), dtype=bool)
    frozen[1, 1] = True
    frozen[5, 5] = True
    assert len(extract_contours(frozen)) == 2


def test_write_svg(tmp_path):
    frozen = np.zeros((5, 5), dtype=bool)
    frozen[2, 2] = True
    frozen[1, 1] = True
    path = tmp_path / "crystal.svg"
    write_svg(path, frozen)
    text = path.read_text()
    assert text.startswith("<svg")
    # one subpath per separate outline
    assert text.count("M") == 2
    assert text.count("Z") == 2
