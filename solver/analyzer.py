from __future__ import annotations

import argparse
import json
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from accordion.Core import Deck, Game, Match, PlayState, SavedGame

logger = logging.getLogger("accordion.search")

ALWAYS_WIN = "always_win"
ALWAYS_LOSE = "always_lose"
CAN_WIN = "can_win"
GAVE_UP = "gave_up"

STATUSES = (ALWAYS_WIN, ALWAYS_LOSE, CAN_WIN, GAVE_UP)


@dataclass(frozen=True, slots=True)
class SearchLimits:
    # The search stops once the running choice-point count goes past this value.
    max_choice_points: int = 1_000_000


@dataclass(slots=True)
class SearchResult:
    status: str
    choice_points: int
    wins: int
    losses: int
    max_pending: int
    elapsed_ms: float
    seed: Optional[int] = None

    @property
    def branches(self) -> int:
        return self.wins + self.losses

    def to_dict(self) -> dict:
        return {
            "seed": self.seed,
            "status": self.status,
            "choice_points": self.choice_points,
            "wins": self.wins,
            "losses": self.losses,
            "branches": self.branches,
            "max_pending": self.max_pending,
            "elapsed_ms": round(self.elapsed_ms, 3),
        }


def classify(wins: int, losses: int) -> str:
    if losses == 0:
        return ALWAYS_WIN
    if wins == 0:
        return ALWAYS_LOSE
    return CAN_WIN


def search_game(game: Game, limits: SearchLimits = SearchLimits(), seed: Optional[int] = None) -> SearchResult:
    """
    Visit every branch reachable from ``game`` and classify the deal.

    Alternatives are kept on an explicit stack of (snapshot, match) pairs.
    Every candidate of a choice point is pushed, then the most recently pushed
    one is popped, so the traversal is depth-first with the last candidate first.
    """

    started = time.perf_counter()
    wins = 0
    losses = 0
    to_retry: list[tuple[SavedGame, Match]] = []
    max_pending = 0
    trace = logger.isEnabledFor(logging.DEBUG)

    def result(status: str) -> SearchResult:
        return SearchResult(
            status=status,
            choice_points=game.choice_points,
            wins=wins,
            losses=losses,
            max_pending=max_pending,
            elapsed_ms=(time.perf_counter() - started) * 1000.0,
            seed=seed,
        )

    while True:
        choices = game.play_to_choice()
        if choices.kind == PlayState.CHOOSE:
            saved = game.save_game()
            for match in choices.matches:
                to_retry.append((saved, match))
            max_pending = max(max_pending, len(to_retry))
            if game.choice_points > limits.max_choice_points:
                logger.info("giving up after %d choice points (seed=%s)", game.choice_points, seed)
                return result(GAVE_UP)
        elif choices.kind == PlayState.WON:
            wins += 1
        else:
            losses += 1

        if not to_retry:
            break
        saved, match = to_retry.pop()
        if trace:
            logger.debug("retry %s at deck pos %d, %d pending", match.to_notation(), saved.pos, len(to_retry))
        game.restore(saved)
        game.make_choice(match)

    status = classify(wins, losses)
    logger.debug("seed=%s %s wins=%d losses=%d choice_points=%d", seed, status, wins, losses, game.choice_points)
    return result(status)


def analyze_deck(deck: Deck, limits: SearchLimits = SearchLimits(), seed: Optional[int] = None) -> SearchResult:
    return search_game(Game(deck), limits, seed=seed)


def analyze_seed(seed: int, limits: SearchLimits = SearchLimits()) -> SearchResult:
    return analyze_deck(Deck.from_seed(seed), limits, seed=seed)


def analyze_seeds(seeds: Iterable[int], limits: SearchLimits = SearchLimits()) -> list[SearchResult]:
    return [analyze_seed(seed, limits) for seed in seeds]


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Classify Accordion patience deals by exhaustive search.")
    parser.add_argument("--seed", type=int, action="append", default=[], help="Seed to analyze; can be repeated.")
    parser.add_argument("--unshuffled", action="store_true", help="Analyze the deck in new-deck order.")
    parser.add_argument("--max-choice-points", type=int, default=SearchLimits().max_choice_points, help="Choice-point cap.")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print json output.")
    parser.add_argument("--verbose", action="store_true", help="Trace every play step.")
    args = parser.parse_args()
    if not args.seed and not args.unshuffled:
        parser.error("give at least one --seed or --unshuffled")
    return args


def main() -> None:
    args = _parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    limits = SearchLimits(max_choice_points=max(0, args.max_choice_points))

    results = analyze_seeds(args.seed, limits=limits)
    if args.unshuffled:
        results.append(analyze_deck(Deck.new_unshuffled(), limits))

    payload = [result.to_dict() for result in results]
    if len(payload) == 1:
        payload = payload[0]

    if args.pretty:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(json.dumps(payload, ensure_ascii=False))


if __name__ == "__main__":
    main()
