from pathlib import Path

import pytest
import yaml

from coffee.core import InvalidInput, OptimizerConfig

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


def test_defaults():
    cfg = OptimizerConfig()
    assert cfg.max_iterations == 250
    assert cfg.initial_delta == 1.0
    assert cfg.max_delta == 1000.0
    assert cfg.eta == 0.15
    assert cfg.rho_thresholds == (0.25, 0.75)
    assert cfg.scale_factors == (0.25, 2.0)
    assert cfg.subproblem == "auto"
    assert cfg.scalarity and cfg.use_terminal and not cfg.verbose


def test_shipped_yaml_matches_defaults():
    assert OptimizerConfig.from_yaml(CONFIG_DIR / "optimizer.yaml") == OptimizerConfig()


def test_from_dict_converts_pairs_and_round_trips():
    cfg = OptimizerConfig.from_dict({"rho_thresholds": [0.1, 0.9], "max_iterations": 10})
    assert cfg.rho_thresholds == (0.1, 0.9)
    assert OptimizerConfig.from_dict(cfg.to_dict()) == cfg


def test_from_yaml_flat_and_nested(tmp_path):
    flat = tmp_path / "flat.yaml"
    flat.write_text(yaml.safe_dump({"temp_celsius": 25.0, "scalarity": False}))
    nested = tmp_path / "nested.yaml"
    nested.write_text(yaml.safe_dump({"optimizer": {"subproblem": "steihaug"}}))
    empty = tmp_path / "empty.yaml"
    empty.write_text("")

    assert OptimizerConfig.from_yaml(flat).temp_celsius == 25.0
    assert OptimizerConfig.from_yaml(nested).subproblem == "steihaug"
    assert OptimizerConfig.from_yaml(empty) == OptimizerConfig()


def test_unknown_keys_rejected():
    with pytest.raises(InvalidInput, match="max_iter"):
        OptimizerConfig.from_dict({"max_iter": 5})


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_iterations": -1},
        {"max_iterations": 2.5},
        {"max_iterations": True},
        {"initial_delta": 0.0},
        {"max_delta": float("inf")},
        {"min_delta": 2000.0},
        {"norm_ratio_threshold": 1.5},
        {"rho_thresholds": (0.8, 0.2)},
        {"rho_thresholds": (0.1,)},
        {"scale_factors": (1.5, 2.0)},
        {"scale_factors": (0.25, 0.5)},
        {"gradient_tol": -1.0},
        {"subproblem": "lbfgs"},
        {"direct_solve_limit": 0},
        {"temp_celsius": -300.0},
    ],
)
def test_invalid_settings_rejected(overrides):
    with pytest.raises(InvalidInput):
        OptimizerConfig(**overrides)


def test_config_is_frozen():
    cfg = OptimizerConfig()
    with pytest.raises(AttributeError):
        cfg.eta = 0.5


def test_yaml_exponent_without_dot_is_a_number(tmp_path):
    path = tmp_path / "opt.yaml"
    path.write_text("optimizer:\n  min_delta: 1e-14\n  gradient_tol: 1e-10\n")
    cfg = OptimizerConfig.from_yaml(path)
    assert cfg.min_delta == 1e-14
    assert cfg.gradient_tol == 1e-10


@pytest.mark.parametrize("overrides", [{"eta": "abc"}, {"min_delta": None}, {"direct_solve_limit": "10"}])
def test_non_numeric_settings_rejected(overrides):
    with pytest.raises(InvalidInput):
        OptimizerConfig.from_dict(overrides)
