"""CLI entry point for genui-validator.

This module acts as the central entry point for the project's CLI tools.
It delegates commands to the appropriate submodules or runs specific tasks.
"""

import argparse
import json
import subprocess
import sys
from dataclasses import asdict
from pathlib import Path

from dotenv import load_dotenv

from src.config import get_data_dir, get_environment_info, list_environment_variables
from src.core import get_logger, setup_logging
from src.interface import ParseMode
from src.report import (
    build_batch_report,
    load_data_point,
    render_markdown,
    validate_data_point,
)
from src.validation import ValidationReport

# Load environment variables from .env file
load_dotenv()

logger = get_logger("cli")


def _parse_mode(args: argparse.Namespace) -> ParseMode:
    return ParseMode.LEGACY if args.legacy_parser else ParseMode.BALANCED


def _print_report(report: ValidationReport) -> None:
    for result in report.results:
        status = "PASS" if result.passed else "FAIL"
        print(f"[{status}] {result.check}: {result.message}")
        for detail in result.details or []:
            print(f"    - {detail}")
    print()
    print("All checks passed." if report.all_passed else "Some checks failed.")


# =============================================================================
# Validate Command
# =============================================================================


def _adjudicate(report: ValidationReport, conversation, model: str | None):
    """Replace the heuristic props-source result with LLM verdicts."""
    from src.llm import apply_adjudication, evaluate_violations, load_llm_config
    from src.trace import collect_props_source_violations

    config = load_llm_config(model=model)
    if not config.enabled:
        logger.warning("OPENAI_API_KEY not set, skipping LLM adjudication")
        return report

    violations = collect_props_source_violations(conversation)
    if not violations:
        return report

    logger.info(f"Adjudicating {len(violations)} violation(s) with {config.model}")
    evaluation = evaluate_violations(violations, conversation, config)
    return apply_adjudication(report, evaluation)


def cmd_validate(args: argparse.Namespace) -> int:
    """Handle the validate command."""
    if not args.folder.is_dir():
        logger.error(f"Not a directory: {args.folder}")
        return 1

    data_point = load_data_point(args.folder)
    try:
        report = validate_data_point(data_point, _parse_mode(args))
        if args.llm:
            report = _adjudicate(report, data_point.conversation, args.model)
    except (OSError, ValueError) as e:
        logger.error(f"Validation failed: {e}")
        return 1

    if args.json:
        print(report.model_dump_json(indent=2, exclude_none=True))
    else:
        _print_report(report)

    return 0 if report.all_passed else 1


def handle_validate_command(argv: list[str]) -> int:
    """Handle validate command."""
    parser = argparse.ArgumentParser(
        prog="python . validate",
        description="Validate one data point folder",
    )
    parser.add_argument("folder", type=Path, help="Data point folder")
    parser.add_argument(
        "--json", action="store_true", help="Print the report as JSON"
    )
    parser.add_argument(
        "--legacy-parser",
        action="store_true",
        help="Use the line-regex interface parser",
    )
    parser.add_argument(
        "--llm",
        action="store_true",
        help="Adjudicate props-source violations with an LLM (needs OPENAI_API_KEY)",
    )
    parser.add_argument(
        "--model",
        "-m",
        type=str,
        default=None,
        help="LLM model name (default: LLM_MODEL or gpt-4-turbo)",
    )
    return cmd_validate(parser.parse_args(argv))


# =============================================================================
# Report Command
# =============================================================================


def cmd_report(args: argparse.Namespace) -> int:
    """Handle the report command."""
    root = get_data_dir(args.root)
    if not root.is_dir():
        logger.error(f"Not a directory: {root}")
        return 1

    batch = build_batch_report(root, _parse_mode(args))

    if args.output:
        args.output.write_text(batch.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Report saved to {args.output}")
    if args.markdown:
        args.markdown.write_text(render_markdown(batch), encoding="utf-8")
        logger.info(f"Markdown report saved to {args.markdown}")

    print("Summary:")
    print(f"  Tier 1 (High Confidence): {len(batch.tier1)}")
    print(f"  Tier 2 (Medium Confidence): {len(batch.tier2)}")
    print(f"  Tier 3 (Low Confidence): {len(batch.tier3)}")
    return 0


def handle_report_command(argv: list[str]) -> int:
    """Handle report command."""
    parser = argparse.ArgumentParser(
        prog="python . report",
        description="Validate every data point under a folder and tier the results",
    )
    parser.add_argument(
        "root",
        type=Path,
        nargs="?",
        default=None,
        help="Folder of data points (default: GENUI_DATA_DIR or cwd)",
    )
    parser.add_argument(
        "--output", "-o", type=Path, default=None, help="Write the JSON report here"
    )
    parser.add_argument(
        "--markdown", type=Path, default=None, help="Write a Markdown report here"
    )
    parser.add_argument(
        "--legacy-parser",
        action="store_true",
        help="Use the line-regex interface parser",
    )
    return cmd_report(parser.parse_args(argv))


# =============================================================================
# Adjudicate Command
# =============================================================================


def cmd_adjudicate(args: argparse.Namespace) -> int:
    """Handle the adjudicate command."""
    from src.llm import LLMError, evaluate_violations, load_llm_config
    from src.trace import collect_props_source_violations

    if not args.folder.is_dir():
        logger.error(f"Not a directory: {args.folder}")
        return 1

    config = load_llm_config(model=args.model)
    if not config.enabled:
        logger.error("OPENAI_API_KEY not set")
        return 1

    data_point = load_data_point(args.folder)
    if data_point.conversation is None:
        logger.error(f"No readable conversation.json in {args.folder}")
        return 1

    violations = collect_props_source_violations(data_point.conversation)
    logger.info(f"Found {len(violations)} untraceable prop value(s)")

    try:
        evaluation = evaluate_violations(violations, data_point.conversation, config)
    except (LLMError, ValueError) as e:
        logger.error(f"Adjudication failed: {e}")
        return 1

    if args.json:
        print(json.dumps(asdict(evaluation), indent=2))
        return 0

    for detail in evaluation.details:
        verdict = "APPROVED" if detail.approved else "REJECTED"
        print(f"[{verdict}] {detail.violation} ({detail.category})")
        print(f"    {detail.reasoning}")
    print()
    print(
        f"{evaluation.approved_count} approved, {evaluation.rejected_count} rejected"
    )
    return 0


def cmd_list_models(_args: argparse.Namespace) -> int:
    """Handle the list models command."""
    from src.llm import LLMModel

    print("Available LLM Models:")
    for model in LLMModel:
        spec = model.spec
        print(f"  {spec.name:<15} {spec.description}")
    return 0


def handle_adjudicate_command(argv: list[str]) -> int:
    """Handle adjudicate command."""
    parser = argparse.ArgumentParser(
        prog="python . adjudicate",
        description="Ask an LLM to review untraceable component props",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Adjudicate one data point folder")
    run_parser.add_argument("folder", type=Path, help="Data point folder")
    run_parser.add_argument(
        "--model",
        "-m",
        type=str,
        default=None,
        help="LLM model name (default: LLM_MODEL or gpt-4-turbo)",
    )
    run_parser.add_argument(
        "--json", action="store_true", help="Print the evaluation as JSON"
    )
    run_parser.set_defaults(func=cmd_adjudicate)

    models_parser = subparsers.add_parser("models", help="List available LLM models")
    models_parser.set_defaults(func=cmd_list_models)

    # Default to run if a folder is given directly
    if argv and not argv[0].startswith("-") and argv[0] not in ("run", "models"):
        argv = ["run"] + argv

    if not argv:
        parser.print_help()
        return 1

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


# =============================================================================
# Dev Commands
# =============================================================================


def cmd_test(extra_args: list[str]) -> int:
    """Run pytest with provided arguments and test tier options.

    Usage:
        python . dev test                # Run all tests
        python . dev test --unit         # Run only unit tests
        python . dev test --integration  # Run integration tests (file system)
        python . dev test -k "schema"    # Run tests matching pattern

    Test Tiers:
        unit        - Fast tests with no I/O or external dependencies
        integration - Tests touching the file system
    """
    tier_markers = {
        "--unit": ["-m", "unit"],
        "--integration": ["-m", "integration"],
        "--all": [],
    }

    pytest_args: list[str] = []
    remaining_args: list[str] = []

    for arg in extra_args:
        if arg in tier_markers:
            pytest_args.extend(tier_markers[arg])
        else:
            remaining_args.append(arg)

    cmd = [sys.executable, "-m", "pytest", *pytest_args, *remaining_args]
    logger.info(f"Running: {' '.join(cmd)}")

    try:
        return subprocess.call(cmd)
    except KeyboardInterrupt:
        return 130


def cmd_env(extra_args: list[str]) -> int:
    """List the environment variables genui-validator reads."""
    category = extra_args[0] if extra_args else None
    for env_var in list_environment_variables(category):
        info = get_environment_info(env_var)
        print(f"  {info.name:<18} [{info.category}] {info.description}")
    return 0


def handle_dev_command(argv: list[str]) -> int:
    """Handle development workflow commands.

    Usage:
        python . dev test [args]       # Run pytest
        python . dev env [category]    # List environment variables
    """
    if not argv:
        print("Development workflow commands")
        print("\nUsage: python . dev {command} [args]")
        print("\nCommands:")
        print("  test       Run pytest with tier options")
        print("  env        List environment variables")
        print("\nExamples:")
        print("  python . dev test --unit           # Fast unit tests")
        print("  python . dev test --integration    # Integration tests")
        print("  python . dev env llm               # LLM settings")
        return 1

    subcommand = argv[0]
    subargs = argv[1:]

    dev_commands = {
        "test": lambda: cmd_test(subargs),
        "env": lambda: cmd_env(subargs),
    }

    if subcommand in dev_commands:
        return dev_commands[subcommand]()

    logger.error(f"Unknown dev command: {subcommand}")
    return handle_dev_command([])  # Show help


def show_help() -> None:
    """Display CLI help message."""
    print("Usage: python . {command} [args]")
    print("\n=== Validation ===")
    print("  validate   Validate one data point folder")
    print("  report     Tiered report over a folder of data points")
    print("  adjudicate LLM review of untraceable component props")
    print("\n=== Development ===")
    print("  dev        Development workflows (test, env)")
    print("\nExamples:")
    print("  python . validate data/show_weather_20251118_161005")
    print("  python . validate data/show_weather_20251118_161005 --llm --json")
    print("  python . report data -o report.json --markdown report.md")
    print("  python . adjudicate data/show_weather_20251118_161005")
    print("  python . adjudicate models")
    print("\nFor dev command details: python . dev")


def main() -> int:
    """Main entry point for the CLI."""
    if len(sys.argv) < 2:
        show_help()
        return 1

    command = sys.argv[1]
    rest_args = sys.argv[2:]

    if command in ("-h", "--help"):
        show_help()
        return 0

    commands = {
        "validate": lambda: handle_validate_command(rest_args),
        "report": lambda: handle_report_command(rest_args),
        "adjudicate": lambda: handle_adjudicate_command(rest_args),
    }

    # Development commands (nested under 'dev')
    if command == "dev":
        return handle_dev_command(rest_args)

    if command in commands:
        setup_logging()
        return commands[command]()

    logger.error(f"Unknown command: {command}")
    show_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
