import logging
import os
import sys
import pytest  # noqa: F401
import numpy as np
import polars as pl
import yaml

import main_kriging


def _write_inputs(tmp_path) -> tuple[str, str, str, str]:
    np.random.seed(90210)
    n = 50
    x = np.random.uniform(0, 10, size=n)
    y = np.random.uniform(0, 10, size=n)
    value = 1.0 + 0.2 * x + np.sin(y) + np.random.normal(0, 0.3, size=n)
    obs_path = os.path.join(tmp_path, "obs.csv")
    pl.DataFrame({"x": x, "y": y, "value": value}).write_csv(obs_path)

    out_path = os.path.join(tmp_path, "out.csv")
    log_path = os.path.join(tmp_path, "kriging.log")
    config = {
        "observations": {"path": obs_path},
        "fit": {"families": ["exponential", "spherical"]},
        "grid": {"resolution": 2.0, "bounds": [[0.0, 10.0], [0.0, 10.0]]},
        "output": {"path": out_path},
        "logging": {"file": log_path, "level": "info"},
    }
    config_path = os.path.join(tmp_path, "config.yaml")
    with open(config_path, "w") as io:
        yaml.safe_dump(config, io)
    return config_path, obs_path, out_path, log_path


def test_main(tmp_path, monkeypatch, capsys) -> None:
    config_path, _, out_path, log_path = _write_inputs(tmp_path)
    monkeypatch.setattr(
        sys, "argv", ["main_kriging.py", "-config", config_path]
    )

    main_kriging.main()

    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    logging.captureWarnings(False)

    out = pl.read_csv(out_path)
    assert out.columns == ["x", "y", "prediction", "variance"]
    assert out.height == 36
    assert (out["variance"] >= 0).all()

    # Fit summary goes to the log, not stdout
    assert capsys.readouterr().out == ""
    with open(log_path, "r") as io:
        contents = io.read()
    assert "Variogram fits" in contents
    return None
