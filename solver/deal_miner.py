from __future__ import annotations

import argparse
import itertools
import json
import logging
import math
import random
import time
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional

from solver import settings_store
from solver.analyzer import ALWAYS_LOSE, ALWAYS_WIN, CAN_WIN, GAVE_UP, SearchLimits, SearchResult, analyze_seed

logger = logging.getLogger("accordion.miner")


@dataclass(slots=True)
class Tally:
    """
    Running counts of the four outcomes.

    Choice-point counts are kept as a fixed-size uniform sample (reservoir
    sampling) plus a running max, so an endless run stays in constant memory.
    """

    always_win: int = 0
    always_lose: int = 0
    can_win: int = 0
    gave_up: int = 0
    sample_size: int = 10_000
    sample: list[int] = field(default_factory=list)
    max_choice_points: int = 0
    rng: random.Random = field(default_factory=lambda: random.Random(0), repr=False)

    @property
    def games(self) -> int:
        return self.always_win + self.always_lose + self.can_win + self.gave_up

    def record(self, result: SearchResult) -> None:
        if result.status == ALWAYS_WIN:
            self.always_win += 1
        elif result.status == ALWAYS_LOSE:
            self.always_lose += 1
        elif result.status == CAN_WIN:
            self.can_win += 1
        elif result.status == GAVE_UP:
            self.gave_up += 1
        else:
            raise ValueError(f"unknown status: {result.status!r}")
        self.max_choice_points = max(self.max_choice_points, result.choice_points)
        if len(self.sample) < self.sample_size:
            self.sample.append(result.choice_points)
            return
        slot = self.rng.randrange(self.games)
        if slot < self.sample_size:
            self.sample[slot] = result.choice_points

    def status_line(self, last: SearchResult) -> str:
        return (
            f"Always win {self.always_win}, Always lose {self.always_lose}, Can win {self.can_win}, "
            f"Gave up on {self.gave_up} out of {self.games} games. "
            f"Last game had {last.choice_points} choice points"
        )

    def summary(self) -> dict:
        values = sorted(float(v) for v in self.sample)
        quantiles = {}
        if values:
            quantiles = {
                "p50": round(_quantile(values, 0.5), 3),
                "p90": round(_quantile(values, 0.9), 3),
                "max": float(self.max_choice_points),
            }
        return {
            "games": self.games,
            ALWAYS_WIN: self.always_win,
            ALWAYS_LOSE: self.always_lose,
            CAN_WIN: self.can_win,
            GAVE_UP: self.gave_up,
            "choice_points": quantiles,
        }


def _quantile(values: list[float], q: float) -> float:
    if not values:
        raise ValueError("empty values")
    if q <= 0:
        return values[0]
    if q >= 1:
        return values[-1]

    pos = (len(values) - 1) * q
    lo = int(math.floor(pos))
    hi = int(math.ceil(pos))
    if lo == hi:
        return values[lo]
    alpha = pos - lo
    return values[lo] * (1.0 - alpha) + values[hi] * alpha


def _analyze_one(seed: int, max_choice_points: int) -> SearchResult:
    return analyze_seed(seed, SearchLimits(max_choice_points=max_choice_points))


def _iter_pool(exe, seeds: Iterator[int], max_choice_points: int, workers: int, pending: dict) -> Iterator[SearchResult]:
    # Keep a bounded number of deals in flight so an endless seed stream never piles up.
    # ``pending`` holds the seeds submitted but not yet yielded, in submission order.
    in_flight = set()

    def submit(seed: int) -> None:
        pending[seed] = None
        in_flight.add(exe.submit(_analyze_one, seed, max_choice_points))

    for seed in itertools.islice(seeds, workers * 2):
        submit(seed)
    while in_flight:
        done, in_flight = wait(in_flight, return_when=FIRST_COMPLETED)
        for fut in done:
            row = fut.result()
            pending.pop(row.seed, None)
            yield row
            for seed in itertools.islice(seeds, 1):
                submit(seed)


def iter_results(seeds: Iterable[int], limits: SearchLimits, workers: int = 1) -> Iterator[SearchResult]:
    """Classify each seed; with several workers results arrive in completion order."""

    seeds = iter(seeds)
    if workers <= 1:
        for seed in seeds:
            yield _analyze_one(seed, limits.max_choice_points)
        return

    pending: dict[int, None] = {}
    try:
        with ProcessPoolExecutor(max_workers=workers) as exe:
            yield from _iter_pool(exe, seeds, limits.max_choice_points, workers, pending)
        return
    except PermissionError:
        logger.warning("process pool unavailable in current environment; fallback to thread pool")

    retry = itertools.chain(list(pending), seeds)
    pending.clear()
    with ThreadPoolExecutor(max_workers=workers) as exe:
        yield from _iter_pool(exe, retry, limits.max_choice_points, workers, pending)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Classify Accordion deals in a loop and print running tallies.")
    parser.add_argument("--settings", type=str, default="", help="INI file with [search] defaults.")
    parser.add_argument("--count", type=int, default=0, help="How many deals to classify; 0 runs until interrupted.")
    parser.add_argument("--start-seed", type=int, default=None, help="Start seed inclusive. Default: random.")
    parser.add_argument("--workers", type=int, default=None, help="Parallel workers.")
    parser.add_argument("--max-choice-points", type=int, default=None, help="Per-deal choice-point cap.")
    parser.add_argument("--jsonl", type=str, default=None, help="Optional output jsonl path.")
    parser.add_argument("--verbose", action="store_true", help="Log search progress.")
    args = parser.parse_args()

    settings = settings_store.load_settings(args.settings or None)
    if args.workers is None:
        args.workers = int(settings["workers"])
    if args.max_choice_points is None:
        args.max_choice_points = int(settings["max_choice_points"])
    if args.jsonl is None:
        args.jsonl = settings["jsonl"]
    return args


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    if args.start_seed is None:
        args.start_seed = random.SystemRandom().randrange(0, 2_147_483_647)
        print(f"start-seed not set; selected random start_seed={args.start_seed}")

    if args.count > 0:
        seeds: Iterable[int] = range(args.start_seed, args.start_seed + args.count)
    else:
        seeds = itertools.count(args.start_seed)

    out_path: Optional[Path] = Path(args.jsonl).expanduser() if args.jsonl else None
    if out_path is not None:
        out_path.parent.mkdir(parents=True, exist_ok=True)

    limits = SearchLimits(max_choice_points=max(0, args.max_choice_points))
    tally = Tally()
    started = time.perf_counter()
    try:
        for result in iter_results(seeds, limits, workers=max(1, args.workers)):
            tally.record(result)
            if out_path is not None:
                with out_path.open("a", encoding="utf-8") as f:
                    f.write(json.dumps(result.to_dict(), ensure_ascii=False) + "\n")
            print(tally.status_line(result))
    except KeyboardInterrupt:
        print()

    summary = tally.summary()
    summary["total_ms"] = round((time.perf_counter() - started) * 1000.0, 1)
    print("summary " + json.dumps(summary, ensure_ascii=False))


if __name__ == "__main__":
    main()
