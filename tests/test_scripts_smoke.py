import os
import subprocess
import sys

import pandas as pd
import pytest


def run_script(repo_root, name, *args):
    cmd = [sys.executable, str(repo_root / "scripts" / name), *map(str, args)]
    env = {**os.environ, "PYTHONPATH": str(repo_root)}
    subprocess.run(cmd, cwd=repo_root, env=env, check=True)


def test_wshape_oscillator_smoke(repo_root, tmp_path):
    run_script(repo_root, "bootstrapped_wshape_oscillator.py",
               "--repetitions", 2, "--maxiters", 3, "--workers", 2, "--outdir", tmp_path)

    assert (tmp_path / "2_sample_wshape_oscillator.pdf").exists()
    results = pd.read_csv(tmp_path / "wshape_oscillator_results.csv")
    assert results.columns.tolist() == ["rep", "loss", "x0", "v0"]


def test_synthetic_kepler_smoke(repo_root, tmp_path):
    run_script(repo_root, "bootstrapped_synthetic_kepler.py",
               "--repetitions", 2, "--maxiters", 2, "--outdir", tmp_path)

    params = pd.read_csv(tmp_path / "synthetic_kepler_parameters.csv", index_col="parameter")
    assert params.index.tolist() == ["U0", "dU0", "inclination", "node", "periapsis"]
    assert (tmp_path / "BootstrappedSyntheticNeuralKepler.pdf").exists()
    assert (tmp_path / "BootstrappedSyntheticNeuralKeplerPotential.pdf").exists()


def test_sagittarius_kepler_smoke(repo_root, tmp_path, star_csv):
    run_script(repo_root, "bootstrapped_sagittarius_kepler.py",
               "--data", star_csv, "--repetitions", 2, "--maxiters", 2, "--outdir", tmp_path)

    assert (tmp_path / "sagittarius_kepler_parameters.csv").exists()
    assert (tmp_path / "BootstrappedSagittariusKepler.pdf").exists()
    assert (tmp_path / "BootstrappedSagittariusNeuralKeplerPotential.pdf").exists()


def test_sagittarius_missing_star_fails(repo_root, tmp_path, star_csv):
    with pytest.raises(subprocess.CalledProcessError):
        run_script(repo_root, "bootstrapped_sagittarius_kepler.py",
                   "--data", star_csv, "--star", "S99", "--repetitions", 1, "--outdir", tmp_path)


def test_sagittarius_neural_kepler_smoke(repo_root, tmp_path, star_csv):
    run_script(repo_root, "sagittarius_neural_kepler.py",
               "--data", star_csv, "--maxiters", 2, "--frame-every", 1, "--outdir", tmp_path)

    assert (tmp_path / "sagittarius_neural_kepler.gif").exists()


def test_friedmann_smoke(repo_root, tmp_path):
    run_script(repo_root, "friedmann_equations.py",
               "--repetitions", 2, "--maxiters", 2, "--resample", "--outdir", tmp_path)

    params = pd.read_csv(tmp_path / "friedmann_parameters.csv", index_col="parameter")
    assert params.index.tolist() == ["omega_m0", "omega_de0", "H0", "w0"]
    assert (tmp_path / "FriedmannEquations.pdf").exists()


def test_quintessence_smoke(repo_root, tmp_path):
    run_script(repo_root, "quintessence.py", "--maxiters", 2, "--outdir", tmp_path)

    assert (tmp_path / "Quintessence.pdf").exists()


def test_wshape_oscillator_app_smoke(repo_root):
    pytest.importorskip("marimo")
    cmd = [sys.executable, str(repo_root / "marimo" / "wshape_oscillator_app.py")]
    env = {**os.environ, "PYTHONPATH": str(repo_root), "MPLBACKEND": "Agg"}
    subprocess.run(cmd, cwd=repo_root, env=env, check=True)
