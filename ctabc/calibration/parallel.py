from __future__ import annotations

import inspect
import logging
import os
from dataclasses import dataclass
from multiprocessing import get_context
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ctabc.errors import DomainError


@dataclass
class BatchResult:
    """Outputs of a batch of simulations, in task order."""

    sumstats: np.ndarray  # (n_tasks, n_stats); NaN rows for failed tasks
    failed: np.ndarray  # bool mask
    errors: List[str]

    @property
    def n_failed(self) -> int:
        return int(self.failed.sum())


def accepts_rng(simulator: Callable) -> bool:
    try:
        sig = inspect.signature(simulator)
    except (TypeError, ValueError):
        return False
    return "rng" in sig.parameters or any(
        p.kind == p.VAR_KEYWORD for p in sig.parameters.values()
    )


_WORKER_SIMULATOR: Optional[Callable] = None


def _init_worker(simulator: Callable) -> None:
    global _WORKER_SIMULATOR
    _WORKER_SIMULATOR = simulator


def _run_task(
    args: Tuple[int, np.ndarray, np.random.SeedSequence, bool],
    simulator: Callable,
) -> Tuple[int, Optional[np.ndarray], Optional[str]]:
    idx, theta, seed_seq, pass_rng = args
    try:
        if pass_rng:
            out = simulator(theta, rng=np.random.default_rng(seed_seq))
        else:
            out = simulator(theta)
    except DomainError as exc:
        return idx, None, str(exc)
    return idx, np.asarray(out, dtype=float), None


def _pool_task(args):
    return _run_task(args, _WORKER_SIMULATOR)


def resolve_workers(workers: int) -> int:
    if workers <= 0:
        return max(1, (os.cpu_count() or 2) - 1)
    return workers


def run_parallel(
    simulator: Callable,
    thetas: np.ndarray,
    seed_sequences: Sequence[np.random.SeedSequence],
    workers: int = 1,
    chunksize: int = 1,
    progress_fnc: Optional[Callable[[int, int], None]] = None,
) -> BatchResult:
    """
    Run ``simulator`` once per row of ``thetas``.

    Each task draws from its own child seed sequence, so results do not
    depend on the number of workers or the order tasks complete in. A
    DomainError fails only its own task.
    """
    thetas = np.atleast_2d(np.asarray(thetas, dtype=float))
    n_tasks = thetas.shape[0]
    if len(seed_sequences) != n_tasks:
        raise ValueError(f"need {n_tasks} seed sequences, got {len(seed_sequences)}")
    pass_rng = accepts_rng(simulator)
    tasks = [
        (i, thetas[i], seed_sequences[i], pass_rng) for i in range(n_tasks)
    ]
    workers = min(resolve_workers(workers), max(n_tasks, 1))

    outputs: List[Optional[np.ndarray]] = [None] * n_tasks
    errors: List[str] = []
    done = 0

    def collect(result: Tuple[int, Optional[np.ndarray], Optional[str]]) -> None:
        nonlocal done
        idx, out, err = result
        outputs[idx] = out
        if err is not None:
            errors.append(err)
            logging.debug("Simulation %d failed: %s", idx, err)
        done += 1
        if progress_fnc is not None:
            progress_fnc(done, n_tasks)

    if workers > 1:
        ctx = get_context("spawn")
        with ctx.Pool(processes=workers, initializer=_init_worker, initargs=(simulator,)) as pool:
            for result in pool.imap_unordered(_pool_task, tasks, chunksize=chunksize):
                collect(result)
    else:
        for task in tasks:
            collect(_run_task(task, simulator))

    n_stats = next((o.shape[0] for o in outputs if o is not None), 0)
    sumstats = np.full((n_tasks, n_stats), np.nan)
    failed = np.zeros(n_tasks, dtype=bool)
    for i, out in enumerate(outputs):
        if out is None:
            failed[i] = True
        elif out.shape[0] != n_stats:
            raise ValueError(
                f"simulator returned {out.shape[0]} statistics for task {i}, expected {n_stats}"
            )
        else:
            sumstats[i] = out
    return BatchResult(sumstats=sumstats, failed=failed, errors=errors)
