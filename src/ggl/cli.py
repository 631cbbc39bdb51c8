"""Command-line interface and interactive session for GGL."""

from __future__ import annotations

import argparse
import logging
import readline  # noqa: F401 - enables line editing in input()
import sys
from pathlib import Path

from ggl.dump import to_source
from ggl.engine import EngineConfig, GGLEngine
from ggl.errors import GGLError
from ggl.evaluator import Evaluator
from ggl.generators import GENERATORS


def brace_depth(text: str) -> int:
    """Net count of open braces outside string literals and comments."""
    depth = 0
    in_string = False
    escape = False
    i = 0
    while i < len(text):
        ch = text[i]
        if escape:
            escape = False
        elif in_string:
            if ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            if newline < 0:
                break
            i = newline
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            if close < 0:
                # Unterminated comment: keep reading
                return depth + 1
            i = close + 1
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        i += 1
    return depth


def needs_continuation(text: str) -> bool:
    """Check if we need more input before the buffered text can be parsed.

    A chunk is complete when its braces balance and it ends with ';' or '}'.
    """
    stripped = text.strip()
    if not stripped:
        return False
    if brace_depth(stripped) > 0:
        return True
    return not (stripped.endswith(";") or stripped.endswith("}"))


def emit(text: str, output: Path | None) -> None:
    if output is None:
        print(text)
    else:
        output.write_text(text + "\n")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_source(
    source: str,
    config: EngineConfig,
    output: Path | None = None,
    dump: bool = False,
) -> int:
    """Evaluate a program and print (or write) the result.

    Returns:
        0 on success, 1 on error
    """
    engine = GGLEngine(config)
    try:
        result = engine.run(source)
    except SyntaxError as e:
        print(f"Syntax error: {e}", file=sys.stderr)
        return 1
    except GGLError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if dump:
        text = to_source(result.graph, result.name).rstrip("\n")
    else:
        text = result.graph.to_json(indent=config.indent)
    try:
        emit(text, output)
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1
    for application in result.applications:
        if application.converged:
            logging.getLogger(__name__).info(
                "rule %s converged after %d of %d iteration(s)",
                application.rule, application.performed, application.requested,
            )
    return 0


def run_file(
    file_path: Path,
    config: EngineConfig,
    output: Path | None = None,
    dump: bool = False,
) -> int:
    """Evaluate a GGL file.

    Returns:
        0 on success, 1 on error
    """
    try:
        source = file_path.read_text()
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1
    return run_source(source, config, output, dump)


def print_help() -> None:
    print("Enter GGL statements; multi-line input continues until braces balance.")
    print("An input that fails leaves the session as it was before that input.")
    print()
    print("Commands:")
    print("  show      Print the current graph as JSON")
    print("  dump      Print the current graph as GGL source")
    print("  rules     List defined rules")
    print("  vars      List bound variables")
    print("  reset     Start over with an empty graph")
    print("  help      Show this message")
    print("  exit      Leave the session")
    print()
    print("Generators: " + ", ".join(sorted(GENERATORS)))


def execute_chunk(engine: GGLEngine, evaluator: Evaluator, source: str) -> bool:
    """Evaluate one session input against the persistent evaluator.

    Returns:
        True if every statement ran; on failure the session is unchanged
    """
    try:
        program = engine.parse(source)
        before = len(evaluator.applications)
        evaluator.execute_atomic(program.statements)
    except SyntaxError as e:
        print(f"Syntax error: {e}")
        return False
    except GGLError as e:
        print(f"Error: {e}")
        return False
    for application in evaluator.applications[before:]:
        status = "converged" if application.converged else "done"
        print(f"apply {application.rule}: {application.performed}/{application.requested} ({status})")
    print(f"{evaluator.graph.node_count()} node(s), {evaluator.graph.edge_count()} edge(s)")
    return True


def run_repl(config: EngineConfig) -> int:
    """Run the interactive session. State carries over between inputs."""
    print("GGL - Graph Generation Language")
    print("Type 'help' for commands, 'exit' to quit.\n")

    engine = GGLEngine(config)
    evaluator = Evaluator(config.default_prefix, config.default_seed)

    # Command history
    history_file = Path.home() / ".ggl_history"
    try:
        readline.read_history_file(history_file)
    except (FileNotFoundError, OSError):
        pass

    try:
        while True:
            try:
                line = input("ggl> ")
            except EOFError:
                print()
                break

            if not line.strip():
                continue

            command = line.strip().lower()
            if command in ("exit", "quit"):
                break
            if command == "help":
                print_help()
                continue
            if command == "show":
                print(evaluator.graph.to_json(indent=config.indent))
                continue
            if command == "dump":
                print(to_source(evaluator.graph), end="")
                continue
            if command == "rules":
                for name, rule in evaluator.rules.items():
                    print(f"  {name}: {len(rule.lhs.nodes)} lhs node(s), {len(rule.rhs.nodes)} rhs node(s)")
                continue
            if command == "vars":
                for name, value in evaluator.env.flatten().items():
                    print(f"  {name} = {value!r}")
                continue
            if command == "reset":
                evaluator = Evaluator(config.default_prefix, config.default_seed)
                print("Graph cleared.")
                continue

            buffer = line
            try:
                while needs_continuation(buffer):
                    buffer += "\n" + input("...> ")
            except EOFError:
                print()
                break

            execute_chunk(engine, evaluator, buffer)

    finally:
        # Save history
        try:
            readline.set_history_length(1000)
            readline.write_history_file(history_file)
        except OSError:
            pass

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        prog="ggl",
        description="Evaluate GGL (Graph Generation Language) programs",
    )
    arg_parser.add_argument(
        "file",
        type=Path,
        nargs="?",
        default=None,
        help="GGL program to evaluate (omit for an interactive session)",
    )
    arg_parser.add_argument(
        "-c", "--command",
        type=str,
        help="Evaluate GGL source given on the command line",
    )
    arg_parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Write the result to this file instead of stdout",
    )
    arg_parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indentation (0 for compact output)",
    )
    arg_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Default seed for the scale-free generator",
    )
    arg_parser.add_argument(
        "--prefix",
        type=str,
        default=None,
        help="Default node id prefix for generators",
    )
    arg_parser.add_argument(
        "--dump",
        action="store_true",
        help="Print the resulting graph as GGL source instead of JSON",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log evaluation steps to stderr",
    )

    args = arg_parser.parse_args(argv)
    configure_logging(args.verbose)

    config = EngineConfig(indent=args.indent if args.indent > 0 else None)
    if args.seed is not None:
        config.default_seed = args.seed
    if args.prefix is not None:
        config.default_prefix = args.prefix

    if args.command is not None:
        return run_source(args.command, config, args.output, args.dump)

    if args.file is not None:
        if not args.file.exists():
            print(f"Error: File not found: {args.file}", file=sys.stderr)
            return 1
        return run_file(args.file, config, args.output, args.dump)

    return run_repl(config)


if __name__ == "__main__":
    sys.exit(main())
