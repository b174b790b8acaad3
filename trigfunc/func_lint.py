#!/usr/bin/env python3
"""
Lint files of monitoring expressions for function-call errors and warnings.

Each non-blank line that is not a comment holds one expression.

Usage:
    trigfunc-lint <file> [file2 ...]
    trigfunc-lint -e 'avg(/host/key,5m)'
    trigfunc-lint --fix FILE         # Drop needless quotes and trailing spaces
    trigfunc-lint --config lint.yaml FILE
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .func_config import ConfigError, LintConfig, load_config
from .func_validate import Fix, ValidationResult, check_expression

logger = logging.getLogger(__name__)


def apply_fixes(expression: str, fixes: List[Fix]) -> str:
    """Apply fixes to one expression.

    Fixes are applied from the end of the line backwards so earlier byte
    offsets stay valid; a fix overlapping one already applied is skipped.
    """
    data = expression.encode('utf-8')
    applied_start = len(data)
    for fix in sorted(fixes, key=lambda f: f.start, reverse=True):
        if fix.end > applied_start:
            logger.debug("skipping overlapping fix at %d-%d", fix.start, fix.end)
            continue
        data = data[:fix.start] + fix.new_text.encode('utf-8') + data[fix.end:]
        applied_start = fix.start
    return data.decode('utf-8')


def save_backup(path: Path, content: str) -> Path:
    """Save content next to path as .<name>.bak before rewriting it."""
    backup = path.parent / f".{path.name}.bak"
    backup.write_text(content)
    return backup


def iter_expressions(source: str, config: LintConfig):
    """Yield (line_number, expression) for every line that should be linted."""
    for number, line in enumerate(source.split('\n'), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith(config.comment_prefix):
            continue
        yield number, line


def report(label: str, result: ValidationResult) -> None:
    for error in result.errors:
        print(f"{label}:{error.column}: error: {error.message}")

    for warning in result.warnings:
        fix_marker = " [fixable]" if warning.fix else ""
        print(f"{label}:{warning.column}: warning: {warning.message}{fix_marker}")


def lint_file(path: Path, config: LintConfig, apply_fix: bool = False) -> Tuple[int, int, int]:
    """Lint a single file. Returns (error_count, warning_count, fix_count)."""
    try:
        with open(path) as f:
            source = f.read()
    except FileNotFoundError:
        print(f"{path}: file not found")
        return 1, 0, 0

    results = [
        (number, line, check_expression(line, config))
        for number, line in iter_expressions(source, config)
    ]

    if apply_fix:
        lines = source.split('\n')
        fix_count = 0
        for number, line, result in results:
            if result.fixes:
                lines[number - 1] = apply_fixes(line, result.fixes)
                fix_count += result.fixable_count
        fixed_source = '\n'.join(lines)

        if fixed_source != source:
            bak_path = save_backup(path, source)
            with open(path, 'w') as f:
                f.write(fixed_source)
            print(f"{path}: applied {fix_count} fix(es)")
            print(f"  Pre-fix backup: {bak_path}")

            # Re-lint to show remaining issues
            return lint_file(path, config, apply_fix=False)

    errors = warnings = fixable = 0
    for number, _, result in results:
        report(f"{path}:{number}", result)
        errors += len(result.errors)
        warnings += len(result.warnings)
        fixable += result.fixable_count

    return errors, warnings, fixable


def lint_expression(expression: str, config: LintConfig) -> Tuple[int, int, int]:
    result = check_expression(expression, config)
    report("<expression>:1", result)
    return len(result.errors), len(result.warnings), result.fixable_count


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Lint monitoring expressions for function-call errors and warnings."
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="Files to lint, one expression per line"
    )
    parser.add_argument(
        "-e", "--expression",
        action="append",
        default=[],
        help="Expression to lint (may be repeated)"
    )
    parser.add_argument(
        "--fix",
        action="store_true",
        help="Remove needless quotes and trailing spaces from parameters"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML file with lint settings"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug output"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
    )

    if not args.files and not args.expression:
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"error: {e}")
        return 1

    total_errors = 0
    total_warnings = 0
    total_fixable = 0

    for expression in args.expression:
        errors, warnings, fixable = lint_expression(expression, config)
        total_errors += errors
        total_warnings += warnings
        total_fixable += fixable

    for path in (Path(f) for f in args.files):
        errors, warnings, fixable = lint_file(path, config, apply_fix=args.fix)
        total_errors += errors
        total_warnings += warnings
        total_fixable += fixable

    if total_errors or total_warnings:
        print(f"\n{total_errors} error(s), {total_warnings} warning(s)")

        if total_fixable > 0 and not args.fix and args.files:
            print(f"\n{total_fixable} issue(s) can be auto-fixed. Run with --fix to apply.")

    return 1 if total_errors else 0


if __name__ == "__main__":
    sys.exit(main())
