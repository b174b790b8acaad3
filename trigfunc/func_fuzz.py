#!/usr/bin/env python3
"""
Differential fuzzer for the parameter splitter.

Generates random and mutated parameter lists and looks for:
- Crashes (exceptions other than FunctionParseError)
- Slow inputs (a single check taking longer than SLOW_SECONDS)
- Disagreements with the grammar in func_grammar.lark: anything the
  grammar accepts must split into the same parameters by hand

Usage:
    trigfunc-fuzz [--duration MINUTES] [--iterations N] [--seed SEED]

Findings are saved to ./fuzz_findings/
"""

import argparse
import hashlib
import logging
import random
import sys
import time
import traceback
from collections import Counter
from pathlib import Path
from typing import List, Optional

from lark.exceptions import UnexpectedInput

from .func_ast import FunctionParseError
from .func_peg_parser import parse_params
from .func_splitter import split_params
from .func_validate import validate

logger = logging.getLogger(__name__)

FINDINGS_DIR = Path("fuzz_findings")
SLOW_SECONDS = 1.0
MAX_CORPUS = 1000

STAT_KEYS = ("iterations", "accepted", "rejected", "disagreements", "crashes", "slow")


class Disagreement(Exception):
    """The splitter and the grammar disagree on an input."""


class FuzzSlowInput(Exception):
    pass


class Fuzzer:
    """Parameter list fuzzer."""

    FUNCTIONS = ["avg", "last", "min", "max", "count", "nodata", "find", "trendavg"]
    ITEM_KEYS = ["/host/key", "/host/system.cpu.load[all,avg1]", "/*/vfs.fs.size[/,free]",
                 "//agent.ping", "/host/net.if.in[\"eth0\",bytes]"]
    PERIODS = ["5m", "1h", "#3", "1d:now/d", "30s", "0"]
    SPECIAL = ["(", ")", "[", "]", ",", '"', "\\", " ", "\t", "{$MACRO}", "{HOST.HOST}"]

    # Seed corpus - known valid parameter lists
    SEED_CORPUS = [
        '',
        '/host/key',
        '/host/key,5m',
        '/host/key,5m,"regexp","^error"',
        '/host/key, 5m, 0',
        '"a,b",c',
        '"escaped \\"quote\\"",x',
        '"back\\\\slash"',
        '/host/key[a,"b,c",[d]],#5',
        ',,',
        ' , ',
        'last(/host/key),5m',
        'avg(/host/key,1h),"1",2',
        '"",""',
        '"ünïcödé",ключ',
    ]

    def __init__(self, seed=None, findings_dir: Path = FINDINGS_DIR):
        self.rng = random.Random(seed)
        self.findings_dir = findings_dir
        self.stats: Counter = Counter()
        self.saved = set()

    def random_param(self, depth=0) -> str:
        """Generate a random parameter."""
        choice = self.rng.randint(0, 5)
        if choice == 0:
            return self.rng.choice(self.ITEM_KEYS)
        if choice == 1:
            return self.rng.choice(self.PERIODS)
        if choice == 2:
            text = "".join(self.rng.choice("ab ,()[]\\\"x") for _ in range(self.rng.randint(0, 8)))
            escaped = text.replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}"'
        if choice == 3 and depth < 3:
            return f"{self.rng.choice(self.FUNCTIONS)}({self.generate_params(depth + 1)})"
        if choice == 4:
            return ""
        return " " * self.rng.randint(1, 3) + self.rng.choice(self.PERIODS)

    def generate_params(self, depth=0) -> str:
        """Generate a random parameter list."""
        count = self.rng.randint(1, 5)
        return ",".join(self.random_param(depth) for _ in range(count))

    def mutate(self, input_str: str) -> str:
        """Mutate an input string."""
        mutations = [
            self._mutate_insert_special,
            self._mutate_delete_chunk,
            self._mutate_repeat_chunk,
            self._mutate_flip_char,
        ]

        mutation = self.rng.choice(mutations)
        return mutation(input_str)

    def _mutate_insert_special(self, s: str) -> str:
        """Insert delimiters and other edge case characters."""
        pos = self.rng.randint(0, len(s))
        special = self.rng.choice(self.SPECIAL + ["α", "🎉", "\r\n"])
        return s[:pos] + special + s[pos:]

    def _mutate_delete_chunk(self, s: str) -> str:
        """Delete a random chunk."""
        if len(s) < 2:
            return s
        start = self.rng.randint(0, len(s) - 1)
        end = self.rng.randint(start + 1, min(start + 10, len(s)))
        return s[:start] + s[end:]

    def _mutate_repeat_chunk(self, s: str) -> str:
        """Repeat a chunk."""
        if len(s) < 2:
            return s * 2
        start = self.rng.randint(0, len(s) - 1)
        end = self.rng.randint(start + 1, min(start + 10, len(s)))
        chunk = s[start:end]
        return s[:end] + chunk * self.rng.randint(1, 3) + s[end:]

    def _mutate_flip_char(self, s: str) -> str:
        """Replace a random character with a delimiter."""
        if not s:
            return s
        pos = self.rng.randint(0, len(s) - 1)
        return s[:pos] + self.rng.choice(self.SPECIAL) + s[pos + 1:]

    def save_finding(self, input_str: str, error: Exception, category: str) -> Optional[Path]:
        """Write a finding to the findings directory, once per distinct input."""
        digest = hashlib.sha1(input_str.encode('utf-8', errors='replace')).hexdigest()[:10]
        if digest in self.saved:
            return None
        self.saved.add(digest)

        self.findings_dir.mkdir(parents=True, exist_ok=True)
        path = self.findings_dir / f"{category}-{digest}.txt"
        lines = [
            f"category: {category}",
            f"error: {type(error).__name__}: {error}",
            f"input: {input_str!r}",
        ]
        if category == "crash":
            lines += ["", traceback.format_exc()]
        path.write_text("\n".join(lines) + "\n")

        logger.warning("saved %s finding: %s", category, path)
        return path

    def check(self, input_str: str) -> None:
        """Run both parsers on input_str, raising Disagreement on a mismatch."""
        try:
            expected = parse_params(input_str)
        except UnexpectedInput:
            expected = None

        try:
            actual = split_params(input_str)
        except FunctionParseError as e:
            if expected is not None:
                raise Disagreement(f"grammar accepts, splitter rejects: {e}") from e
            raise

        if expected is not None and expected != actual:
            raise Disagreement(f"grammar gives {expected!r}, splitter gives {actual!r}")

        # Nested calls are only checked for crashes
        validate(f"f({input_str})")

    def test_input(self, input_str: str) -> bool:
        """Test a single input. Returns True if it produced a finding."""
        started = time.perf_counter()
        try:
            self.check(input_str)
        except FunctionParseError:
            self.stats["rejected"] += 1
            return False
        except Disagreement as e:
            self.stats["disagreements"] += 1
            self.save_finding(input_str, e, "disagreement")
            return True
        except Exception as e:
            self.stats["crashes"] += 1
            self.save_finding(input_str, e, "crash")
            return True

        self.stats["accepted"] += 1
        elapsed = time.perf_counter() - started
        if elapsed > SLOW_SECONDS:
            self.stats["slow"] += 1
            self.save_finding(input_str, FuzzSlowInput(f"took {elapsed:.2f}s"), "slow")
            return True
        return False

    def next_input(self, corpus: List[str]) -> str:
        strategy = self.rng.random()
        if strategy < 0.3:
            return self.generate_params()
        if strategy < 0.8:
            input_str = self.mutate(self.rng.choice(corpus))
            for _ in range(self.rng.randint(0, 3)):
                input_str = self.mutate(input_str)
            return input_str
        return self.rng.choice(corpus)

    def run(self, duration_minutes: Optional[float] = None, iterations: Optional[int] = None):
        """Fuzz until the time or iteration limit, or until interrupted."""
        deadline = time.monotonic() + duration_minutes * 60 if duration_minutes else None
        corpus: List[str] = list(self.SEED_CORPUS)
        logger.info("fuzzing with %d seed inputs, findings in %s", len(corpus), self.findings_dir)

        try:
            while iterations is None or self.stats["iterations"] < iterations:
                if deadline is not None and time.monotonic() > deadline:
                    break
                self.stats["iterations"] += 1

                input_str = self.next_input(corpus)
                if self.test_input(input_str) and len(corpus) < MAX_CORPUS:
                    corpus.append(input_str)

                if self.stats["iterations"] % 1000 == 0:
                    logger.info("%s", self.summary())
        except KeyboardInterrupt:
            logger.info("interrupted")

        print(self.summary())

    def summary(self) -> str:
        counts = ", ".join(f"{key}={self.stats[key]}" for key in STAT_KEYS)
        return f"{counts}, saved={len(self.saved)}"


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Fuzz the function parameter splitter")
    parser.add_argument("--duration", type=float, default=None,
                        help="Duration in minutes (default: run until --iterations or forever)")
    parser.add_argument("--iterations", type=int, default=None,
                        help="Stop after this many inputs")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for reproducibility")
    parser.add_argument("--findings-dir", type=Path, default=FINDINGS_DIR,
                        help="Where to save findings")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    seed = args.seed if args.seed is not None else int(time.time())
    print(f"Random seed: {seed}")

    fuzzer = Fuzzer(seed=seed, findings_dir=args.findings_dir)
    fuzzer.run(duration_minutes=args.duration, iterations=args.iterations)
    return 1 if fuzzer.stats["crashes"] or fuzzer.stats["disagreements"] else 0


if __name__ == "__main__":
    sys.exit(main())
