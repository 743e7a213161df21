from __future__ import annotations

import argparse
import json
import logging
import os
import random
import time
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Optional

from board.Core import Layout
from solver.session import solve_layout
from solver.settings_store import load_settings


def _default_workers() -> int:
    return max(1, (os.cpu_count() or 1) - 1)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Batch-solve seeded deals and record solution lengths.")
    parser.add_argument("--start-seed", type=int, required=True, help="Start seed (inclusive).")
    parser.add_argument("--count", type=int, required=True, help="How many seeds to scan.")
    parser.add_argument("--past-limit", type=int, default=None, help="Visited-state budget per deal.")
    parser.add_argument("--step-limit", type=int, default=None, help="Move-count ceiling per search branch.")
    parser.add_argument("--heuristic", choices=("none", "moves", "progress"), default=None, help="Move ordering.")
    parser.add_argument("--no-cheat", action="store_true", help="Never use forced placements.")
    parser.add_argument("--target-solved", type=int, default=0, help="Stop early after this many solved deals.")
    parser.add_argument("--workers", type=int, default=1, help=f"Parallel workers (this machine: {_default_workers()}).")
    parser.add_argument("--jsonl", type=str, default="", help="Optional output jsonl path.")
    parser.add_argument("--settings", type=str, default="", help="Settings ini path.")
    parser.add_argument("--no-optimize", action="store_true", help="Skip shortening solutions.")
    parser.add_argument("--verbose", action="store_true", help="Log search progress.")
    return parser.parse_args(argv)


def _apply_overrides(settings: dict, args: argparse.Namespace) -> dict:
    solver = dict(settings["solver"])
    if args.past_limit is not None:
        solver["past_limit"] = str(args.past_limit)
    if args.step_limit is not None:
        solver["step_limit"] = str(args.step_limit)
    if args.heuristic is not None:
        solver["heuristic"] = args.heuristic
    if args.no_cheat:
        solver["no_cheat"] = "true"
    return {**settings, "solver": solver}


def mine_seed(seed: int, settings: dict, optimize_solution: bool = True) -> dict:
    """Solve the deal for ``seed`` and return a json-ready row."""
    layout = Layout.deal(random.Random(seed))
    t0 = time.perf_counter()
    report = solve_layout(layout, settings, optimize_solution=optimize_solution)
    payload = report.to_dict()
    payload["seed"] = seed
    payload["layout"] = layout.canonical()
    payload["wall_ms"] = round((time.perf_counter() - t0) * 1000.0, 3)
    return payload


def iter_rows(
    seeds: list[int],
    settings: dict,
    optimize_solution: bool = True,
    workers: int = 1,
    on_row: Optional[Callable[[dict], bool]] = None,
) -> list[dict]:
    """
    Mine every seed, serially or on a process pool. ``on_row`` sees each row as
    it completes and may return True to stop early; rows still queued are
    cancelled.
    """
    rows: list[dict] = []

    if workers <= 1:
        for seed in seeds:
            row = mine_seed(seed, settings, optimize_solution)
            rows.append(row)
            if on_row is not None and on_row(row):
                break
        return rows

    def run(executor_type, batch: list[int]) -> None:
        with executor_type(max_workers=workers) as exe:
            futures = {exe.submit(mine_seed, seed, settings, optimize_solution): seed for seed in batch}
            for fut in as_completed(futures):
                row = fut.result()
                rows.append(row)
                if on_row is not None and on_row(row):
                    for pending in futures:
                        pending.cancel()
                    break

    try:
        run(ProcessPoolExecutor, seeds)
        return rows
    except PermissionError:
        print("process pool unavailable in current environment; fallback to thread pool")

    # Rows that finished before the failure were already reported through on_row.
    mined = {row["seed"] for row in rows}
    run(ThreadPoolExecutor, [seed for seed in seeds if seed not in mined])
    return rows


def summarize(rows: list[dict], total_ms: float) -> dict:
    lengths = [len(row["solution"]) for row in rows if row["status"] == "solved"]
    return {
        "scanned": len(rows),
        "solved": len(lengths),
        "not_found": len(rows) - len(lengths),
        "shortest": min(lengths) if lengths else None,
        "mean_len": round(sum(lengths) / len(lengths), 2) if lengths else None,
        "total_ms": round(total_ms, 1),
    }


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    settings = load_settings(Path(args.settings).expanduser()) if args.settings else load_settings()
    settings = _apply_overrides(settings, args)

    out_path = Path(args.jsonl).expanduser() if args.jsonl else None
    if out_path is not None:
        out_path.parent.mkdir(parents=True, exist_ok=True)

    solved = 0

    def on_row(row: dict) -> bool:
        nonlocal solved
        if out_path is not None:
            with out_path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(row, ensure_ascii=False) + "\n")
        if row["status"] == "solved":
            solved += 1
        print(
            f"seed={row['seed']} status={row['status']} reason={row['stop_reason']} "
            f"wall_ms={row['wall_ms']:.1f} found={row['found_count']} unique={row['unique_states']} "
            f"len={row['original_len']}->{row['optimized_len']}"
        )
        return bool(args.target_solved) and solved >= args.target_solved

    started = time.perf_counter()
    seeds = [args.start_seed + i for i in range(args.count)]
    rows = iter_rows(seeds, settings, not args.no_optimize, max(1, args.workers), on_row)
    summary = summarize(rows, (time.perf_counter() - started) * 1000.0)
    print("summary " + " ".join(f"{key}={value}" for key, value in summary.items()))


if __name__ == "__main__":
    main()
