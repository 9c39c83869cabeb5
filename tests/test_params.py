"""
Unit tests for model parameter sets.
"""

import pytest

from snow_sim import (
    GravnerGriffeathParameters,
    ParameterError,
    ReiterParameters,
    parameters_from_dict,
    utils,
)


def test_defaults():
    """Defaults follow the published parameter choices."""
    reiter = ReiterParameters()
    assert reiter.alpha == pytest.approx(0.502)
    assert reiter.ambient_density == pytest.approx(0.4)

    gg = GravnerGriffeathParameters()
    assert gg.beta == pytest.approx(1.4)
    assert gg.ambient_density == pytest.approx(0.5)


def test_reset_only_fields():
    """Only the ambient vapor field of each model is deferred to reset."""
    assert ReiterParameters.is_reset_only("beta")
    assert not ReiterParameters.is_reset_only("alpha")
    assert GravnerGriffeathParameters.is_reset_only("rho")
    # beta is a live attachment threshold in Gravner-Griffeath
    assert not GravnerGriffeathParameters.is_reset_only("beta")


@pytest.mark.parametrize(
    "name, value",
    [
        ("rho", -0.1),
        ("kappa", 1.5),
        ("sigma", float("nan")),
        ("mu", float("inf")),
        ("beta", "abc"),
        ("delta", 0.1),
    ],
)
def test_invalid_values_rejected(name, value):
    with pytest.raises(ParameterError):
        GravnerGriffeathParameters.validate(name, value)


def test_constructor_validates():
    with pytest.raises(ParameterError):
        ReiterParameters(alpha=-1.0)
    # ParameterError is also a ValueError for callers that only know builtins
    with pytest.raises(ValueError):
        ReiterParameters(beta=2.0)


def test_reiter_background_must_stay_below_ice():
    """A background of 1 would make every vapor cell ice before the first tick."""
    assert ReiterParameters(beta=0.999).beta == pytest.approx(0.999)
    with pytest.raises(ParameterError):
        ReiterParameters(beta=1.0)
    with pytest.raises(ParameterError):
        ReiterParameters().replace(beta=1.0)
    with pytest.raises(ParameterError):
        parameters_from_dict("reiter", {"beta": 1})
    # other fields keep their closed upper bound
    assert ReiterParameters(gamma=1.0).gamma == pytest.approx(1.0)


def test_values_are_stored_as_floats():
    params = ReiterParameters(beta=1)
    assert isinstance(params.beta, float)


def test_replace_returns_new_instance():
    params = ReiterParameters()
    changed = params.replace(gamma=0.01)
    assert params.gamma == pytest.approx(0.0001)
    assert changed.gamma == pytest.approx(0.01)
    with pytest.raises(ParameterError):
        params.replace(delta=1.0)
    with pytest.raises(ParameterError):
        params.replace(gamma=-0.5)


def test_parameters_from_dict():
    params = parameters_from_dict("gravner_griffeath", {"rho": 0.6, "mu": 0.01})
    assert isinstance(params, GravnerGriffeathParameters)
    assert params.rho == pytest.approx(0.6)
    assert params.mu == pytest.approx(0.01)
    assert params.beta == pytest.approx(1.4)

    with pytest.raises(ParameterError):
        parameters_from_dict("reiter", {"rho": 0.5})
    with pytest.raises(ParameterError):
        parameters_from_dict("packard", {})


def test_load_params_files(tmp_path):
    json_path = tmp_path / "reiter.json"
    json_path.write_text('{"alpha": 1.0, "gamma": 0.001}')
    params = parameters_from_dict("reiter", utils.load_params(json_path))
    assert params.alpha == pytest.approx(1.0)
    assert params.gamma == pytest.approx(0.001)

    toml_path = tmp_path / "gg.toml"
    toml_path.write_text("rho = 0.65\nsigma = 0.01\n")
    params = parameters_from_dict("gravner_griffeath", utils.load_params(toml_path))
    assert params.rho == pytest.approx(0.65)

    yaml_path = tmp_path / "params.yaml"
    yaml_path.write_text("rho: 0.65\n")
    with pytest.raises(ValueError):
        utils.load_params(yaml_path)
