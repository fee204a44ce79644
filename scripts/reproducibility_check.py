"""
Reproducibility Checks
======================
Runs the example ABC analysis repeatedly and checks that fixed seeds give
identical posteriors, that worker count does not matter, and that
different seeds give similar posterior means.
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd

sys.path.insert(0, str(Path(__file__).parent.parent))

from ctabc.calibration.abc import run_abc_rejection
from ctabc.calibration.priors import priors_from_mapping
from ctabc.config import load_config, load_dataset
from ctabc.model.factory import build_simulator

CONFIG_PATH = Path(__file__).parent.parent / "configs" / "example.yaml"
OUTPUT_DIR = Path(__file__).parent.parent / "validation_results"
OUTPUT_DIR.mkdir(exist_ok=True)


def _run(seed, n_sim=500, tol=0.05, workers=1):
    cfg = load_config(CONFIG_PATH)
    cfg.abc.n_sim = n_sim
    cfg.abc.tol = tol
    cfg.abc.workers = workers
    dataset = load_dataset(cfg, root=CONFIG_PATH.parent)
    simulator = build_simulator(cfg.model, dataset)
    return run_abc_rejection(
        simulator,
        priors_from_mapping(cfg.priors),
        dataset.target_frequencies,
        cfg.abc,
        seed=seed,
        stat_names=dataset.target_labels,
    )


def run_deterministic_test():
    """Same seed, same accepted sample."""
    print("\n" + "=" * 60)
    print("DETERMINISTIC EXECUTION TEST")
    print("=" * 60)

    results = [_run(seed=42) for _ in range(3)]
    for i, result in enumerate(results):
        mean = result.posterior_mean()
        print(f"  Run {i}: mu={mean['mu']:.6f}, b={mean['b']:.6f}")

    if all(r.params.equals(results[0].params) for r in results[1:]):
        print("\n  [OK] All runs produced identical posteriors")
        return "PASS"
    print("\n  [FAIL] Runs differ")
    return "FAIL"


def run_worker_test():
    """Serial and parallel runs must agree draw for draw."""
    print("\n" + "=" * 60)
    print("WORKER INDEPENDENCE TEST")
    print("=" * 60)

    serial = _run(seed=7, n_sim=200)
    parallel = _run(seed=7, n_sim=200, workers=4)
    if np.allclose(serial.params.to_numpy(), parallel.params.to_numpy()):
        print("  [OK] 1 and 4 workers give the same posterior")
        return "PASS"
    print("  [FAIL] Posterior depends on worker count")
    return "FAIL"


def run_cross_seed_consistency():
    """Posterior means under different seeds should overlap."""
    print("\n" + "=" * 60)
    print("CROSS-SEED CONSISTENCY TEST")
    print("=" * 60)

    rows = []
    for seed in range(5):
        result = _run(seed=seed)
        row = {"seed": seed, **result.posterior_mean(), "n_failed": result.n_failed}
        rows.append(row)
        print(f"  seed {seed}: mu={row['mu']:.4g} b={row['b']:.4g}")

    frame = pd.DataFrame(rows)
    frame.to_csv(OUTPUT_DIR / "reproducibility_seeds.csv", index=False)
    spread = frame["b"].max() - frame["b"].min()
    print(f"\n  Range of posterior mean b across seeds: {spread:.4f}")
    if spread < 0.05:
        print("  [OK] Posterior is stable across seeds")
        return "PASS"
    print("  [WARNING] Posterior varies across seeds; consider more simulations")
    return "WARN"


def main():
    statuses = {
        "deterministic": run_deterministic_test(),
        "workers": run_worker_test(),
        "cross_seed": run_cross_seed_consistency(),
    }
    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    for name, status in statuses.items():
        print(f"  {name}: {status}")
    print(f"\nResults saved to {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
