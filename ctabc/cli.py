from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

import numpy as np
import pandas as pd

from ctabc.calibration.abc import run_abc_rejection
from ctabc.calibration.priors import priors_from_mapping
from ctabc.calibration.validation import (
    compute_coverage,
    posterior_predictive_check,
    summarize_predictive,
)
from ctabc.config import RunConfig, dump_config, load_config, load_dataset
from ctabc.io.logging import setup_logging
from ctabc.io.metadata import build_run_metadata
from ctabc.model.factory import build_simulator
from ctabc.rng import RNGManager


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ctabc", description="Cultural transmission ABC")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file", default=None, help="Also write the log to this file")
    sub = parser.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="Run the simulator for fixed parameter values")
    sim.add_argument("--config", required=True, help="Path to config YAML")
    sim.add_argument("--theta", nargs="+", type=float, required=True,
                     help="Parameter values in free_params order")
    sim.add_argument("--n", type=int, default=1, help="Number of repeated simulations")
    sim.add_argument("--seed", type=int, default=None)
    sim.add_argument("--out", required=True, help="Output directory")

    abc = sub.add_parser("abc", help="Run ABC rejection")
    abc.add_argument("--config", required=True, help="Path to config YAML")
    abc.add_argument("--seed", type=int, default=None)
    abc.add_argument("--n-sim", type=int, default=None)
    abc.add_argument("--tol", type=float, default=None)
    abc.add_argument("--workers", type=int, default=None)
    abc.add_argument("--out", required=True, help="Output directory")

    ppc = sub.add_parser("ppc", help="Posterior predictive check")
    ppc.add_argument("--config", required=True, help="Path to config YAML")
    ppc.add_argument("--posterior", required=True, help="accepted_params.csv from an abc run")
    ppc.add_argument("--n-draws", type=int, default=None)
    ppc.add_argument("--seed", type=int, default=None)
    ppc.add_argument("--workers", type=int, default=None)
    ppc.add_argument("--out", required=True, help="Output directory")

    return parser.parse_args(argv)


def override_config(cfg: RunConfig, args: argparse.Namespace) -> None:
    if args.seed is not None:
        cfg.seed = args.seed
    if getattr(args, "n_sim", None) is not None:
        cfg.abc.n_sim = args.n_sim
    if getattr(args, "tol", None) is not None:
        cfg.abc.tol = args.tol
        cfg.abc.threshold = None
    if getattr(args, "workers", None) is not None:
        cfg.abc.workers = args.workers
    if getattr(args, "n_draws", None) is not None:
        cfg.predictive.n_draws = args.n_draws


def prepare(args: argparse.Namespace):
    config_path = Path(args.config)
    cfg = load_config(config_path)
    override_config(cfg, args)
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    dump_config(cfg, out_dir / "config_resolved.yaml")
    with (out_dir / "run_metadata.json").open("w") as f:
        json.dump(build_run_metadata(cfg, args.command), f, indent=2)
    dataset = load_dataset(cfg, root=config_path.parent)
    simulator = build_simulator(cfg.model, dataset)
    return cfg, dataset, simulator, out_dir


def run_simulate(args: argparse.Namespace) -> None:
    cfg, dataset, simulator, out_dir = prepare(args)
    rng_manager = RNGManager(cfg.seed)
    rows = [simulator(args.theta, rng=ss) for ss in rng_manager.spawn(args.n)]
    frame = pd.DataFrame(np.vstack(rows), columns=dataset.target_labels)
    frame.insert(0, "run", np.arange(1, args.n + 1))
    frame.to_csv(out_dir / "simulations.csv", index=False)
    logging.info("Wrote %d simulations to %s", args.n, out_dir / "simulations.csv")


def run_abc(args: argparse.Namespace) -> None:
    cfg, dataset, simulator, out_dir = prepare(args)
    priors = priors_from_mapping(cfg.priors)
    result = run_abc_rejection(
        simulator,
        priors,
        dataset.target_frequencies,
        cfg.abc,
        seed=cfg.seed,
        stat_names=dataset.target_labels,
    )
    result.save(out_dir)
    for name, (lower, upper) in ((n, result.credible_interval(n)) for n in result.params.columns):
        logging.info("%s: mean=%.4g 95%% CI=[%.4g, %.4g]", name, result.params[name].mean(), lower, upper)


def run_ppc(args: argparse.Namespace) -> None:
    cfg, dataset, simulator, out_dir = prepare(args)
    posterior = pd.read_csv(args.posterior)
    draws = posterior_predictive_check(
        dataset,
        simulator,
        posterior,
        n_draws=cfg.predictive.n_draws,
        seed=cfg.seed,
        workers=cfg.abc.workers,
        chunksize=cfg.abc.chunksize,
    )
    draws.to_csv(out_dir / "predictive_draws.csv", index=False)
    summary = summarize_predictive(draws, dataset, level=cfg.predictive.level)
    summary.to_csv(out_dir / "predictive_summary.csv", index=False)
    coverage = compute_coverage(summary)
    logging.info("Predictive coverage %.2f over %d targets", coverage["coverage"], coverage["n_targets"])


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    if args.command == "simulate":
        run_simulate(args)
    elif args.command == "abc":
        run_abc(args)
    elif args.command == "ppc":
        run_ppc(args)


if __name__ == "__main__":
    main()
