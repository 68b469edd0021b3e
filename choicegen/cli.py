"""
Choicegen CLI - Command-line interface for the compiler.

Usage:
    choicegen compile <spec_file>                  Summarize the compiled generator
    choicegen compile <spec_file> --format json    Print the generator layout as JSON
    choicegen compile <spec_file> --format source  Print the emitted Python
"""

import argparse
import logging
import os
import sys

# Environment configuration
CHOICEGEN_LOG_LEVEL = os.getenv("CHOICEGEN_LOG_LEVEL", "WARNING")


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Choicegen - Grammar Generator Compiler",
        prog="choicegen",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Compile command
    compile_parser = subparsers.add_parser("compile", help="Compile a generator specification")
    compile_parser.add_argument("spec_file", help="Path to specification file")
    compile_parser.add_argument("--seed", type=int, default=None, help="Seed for choice point numbering")
    compile_parser.add_argument(
        "--format",
        choices=["summary", "json", "source"],
        default="summary",
        help="Output format",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else CHOICEGEN_LOG_LEVEL.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "compile":
        return cmd_compile(args)

    parser.print_help()
    return 1


def cmd_compile(args) -> int:
    """Compile a specification file."""
    from .api import describe_generator
    from .errors import GeneratorCompileError
    from .rule_compiler import load_generator

    try:
        definition = load_generator(args.spec_file, seed=args.seed)
    except FileNotFoundError:
        print(f"Error: File not found: {args.spec_file}", file=sys.stderr)
        return 1
    except GeneratorCompileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.format == "source":
        print(definition.source)
        return 0

    schema = describe_generator(definition)
    if args.format == "json":
        print(schema.model_dump_json(indent=2))
        return 0

    print(f"Generator: {schema.name}")
    if schema.subgenerator_names:
        print(f"Sub-generators: {', '.join(schema.subgenerator_names)}")
    print(f"Rules: {len(schema.rule_name_map)}")
    print(f"Choice points: {len(schema.choice_points)}")
    for cp in schema.choice_points:
        bounds = f"[{_bound(cp.min)}, {_bound(cp.max)}]"
        label = cp.rule_name or cp.datatype or ""
        print(f"  {cp.id}  {cp.kind.value:<8} {label:<12} {bounds}")

    if definition.warnings:
        print("\nWarnings:")
        for w in definition.warnings:
            print(f"  - {w}")

    return 0


def _bound(value) -> str:
    return "?" if value is None else str(value)


if __name__ == "__main__":
    sys.exit(main())
