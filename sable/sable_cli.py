"""
Command-line front-end: an interactive REPL and a script-file runner.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from sable.sable_errors import SableError, ParseError
from sable.sable_printer import Printer
from sable.sable_runtime import ScriptRunner, ExecutionResult
from sable.sable_serialize import load_globals
from sable.sable_values import Null


def read_line(prompt: str) -> str:
    """A basic input prompt. Returns "" on EOF."""
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return sys.stdin.readline()


def _print_result(result: ExecutionResult, printer: Printer, show_value: bool = True) -> bool:
    """Prints side effects and the final value. Returns False if the run failed."""
    for effect in result.side_effects:
        if effect.get('topics') == ['stdout']:
            print(effect.get('message', ''))
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        return False
    if show_value and not isinstance(result.value, Null):
        print(printer.pformat(result.value))
    return True


def _parses_as_expression(runner: ScriptRunner, line: str) -> bool:
    try:
        runner.interpreter.parser.parse(line, "expression")
    except ParseError:
        return False
    return True


def run_script_file(runner: ScriptRunner, file_path: str) -> int:
    """Run a Sable script file non-interactively; returns the exit status."""
    try:
        source = Path(file_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1
    result = runner.handle_script(source)
    return 0 if _print_result(result, Printer()) else 1


def run_repl(runner: ScriptRunner) -> int:
    print("Sable REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")
    printer = Printer()

    while True:
        raw = read_line(">> ")
        if raw == "":
            print("\nExiting.")
            break
        line = raw.strip()
        if not line:
            continue
        if line == "exit":
            break

        if _parses_as_expression(runner, line):
            result = runner.handle_expression(line)
        else:
            result = runner.handle_script(line)
        _print_result(result, printer)
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sable", description="Run Sable scripts or start a REPL.")
    parser.add_argument("file", nargs="?", help="script file to run")
    parser.add_argument("--globals", metavar="PATH",
                        help="JSON or YAML file whose entries are defined as constants")
    parser.add_argument("--expression", "-e", metavar="TEXT", help="evaluate a single expression")
    return parser


def main(argv: Optional[list] = None) -> int:
    """Run a script file or expression when provided, otherwise start the interactive REPL."""
    args = build_arg_parser().parse_args(argv)
    runner = ScriptRunner()

    if args.globals:
        try:
            runner.define_globals(load_globals(args.globals))
        except (OSError, SableError) as e:
            print(f"Error loading globals from {args.globals}: {e}", file=sys.stderr)
            return 1

    if args.expression is not None:
        return 0 if _print_result(runner.handle_expression(args.expression), Printer()) else 1
    if args.file:
        return run_script_file(runner, args.file)
    return run_repl(runner)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nExiting.")
