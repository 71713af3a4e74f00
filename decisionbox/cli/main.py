"""
DecisionBox CLI — Read-Only Interface to the Rule Engine.

Commands:
    decisionbox check [config]                     — Validate a configuration
    decisionbox evaluate [config] --set name=value — Show feasible outputs and ranking
    decisionbox explain <output> [config] --set …  — Explain one output

Without a config file the built-in sample catalog is used.

This CLI is READ-ONLY. It cannot:
    - Modify rules or weights
    - Skip value validation
    - Show a ranking while mandatory fields are pending
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from ..domain import ConfigurationError, ValidationError
from ..ranking.scorer import ScoreResult, generate_explanation
from ..session import Evaluation, SessionState
from .runner import AssignmentSyntaxError, open_catalog, run_session


EXIT_OK = 0
EXIT_CONFIGURATION_ERROR = 1
EXIT_USAGE_ERROR = 2


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

def format_state_badge(state: SessionState) -> str:
    """Format the session state as a visual badge."""
    badges = {
        SessionState.LOADED: "[LOADED]",
        SessionState.AWAITING_MANDATORY_INPUT: "[PENDING]",
        SessionState.RANKED: "[RANKED]",
        SessionState.NO_FEASIBLE_OUTPUTS: "[NO MATCH]",
    }
    return badges.get(state, "[?]")


def format_result_row(position: int, result: ScoreResult) -> str:
    """Format a single ranked output for display."""
    marker = "*" if position == 1 else " "
    return (
        f"{marker}{position:>2}. {result.name:<20} "
        f"{result.probability:>7.1%}  (score {result.score:g})  {result.description}"
    )


def format_evaluation(evaluation: Evaluation, state: SessionState) -> str:
    """Format a full evaluation for display."""
    lines = [f"{format_state_badge(state)} {state.value}", ""]

    if evaluation.assignment:
        lines.append("ASSIGNMENT:")
        for name, value in evaluation.assignment.items():
            lines.append(f"  {name} = {value!r}")
        lines.append("")

    lines.append("FEASIBLE OUTPUTS: " + (
        ", ".join(output.name for output in evaluation.feasible) or "none"
    ))
    lines.append("RELEVANT FIELDS:  " + (", ".join(sorted(evaluation.relevant)) or "none"))
    lines.append("MANDATORY FIELDS: " + (", ".join(sorted(evaluation.mandatory)) or "none"))
    lines.append("")

    if evaluation.pending:
        lines.append("Mandatory fields pending: " + ", ".join(evaluation.pending))
        lines.append("Complete them to obtain recommendations.")
    elif not evaluation.feasible:
        lines.append("No solution matches the current values.")
    else:
        lines.append("RANKING:")
        for position, result in enumerate(evaluation.ranked, start=1):
            lines.append(format_result_row(position, result))

    return "\n".join(lines)


# =============================================================================
# CLI COMMANDS
# =============================================================================

def cmd_check(args: argparse.Namespace) -> int:
    """Validate a configuration and report every problem."""
    try:
        catalog = open_catalog(args.config)
    except ConfigurationError as e:
        print("Configuration is INVALID:")
        for problem in e.problems:
            print(f"  • {problem}")
        return EXIT_CONFIGURATION_ERROR

    print("Configuration is valid.")
    print(f"  Variables: {len(catalog.registry)}")
    print(f"  Outputs:   {len(catalog.outputs)}")
    print(f"  Bundles:   {len(catalog.bundles)}")
    return EXIT_OK


def cmd_evaluate(args: argparse.Namespace) -> int:
    """Apply assignments and show the resulting state."""
    session, evaluation = run_session(args.config, args.set)
    print(format_evaluation(evaluation, session.state))
    return EXIT_OK


def cmd_explain(args: argparse.Namespace) -> int:
    """Explain one output: its score breakdown or why it was ruled out."""
    session, evaluation = run_session(args.config, args.set)

    if session.catalog.get_output(args.output) is None:
        print(f"Output not found: {args.output}")
        print()
        print("Available outputs:")
        for output in session.catalog.outputs:
            print(f"  {output.name} — {output.description}")
        return EXIT_USAGE_ERROR

    reasons = session.explain(args.output)
    if reasons:
        print(f"{args.output} is ruled out:")
        for reason in reasons:
            print(f"  • {reason}")
        return EXIT_OK

    if evaluation.pending:
        print(f"{args.output} is still possible.")
        print("Mandatory fields pending: " + ", ".join(evaluation.pending))
        return EXIT_OK

    for result in evaluation.ranked:
        if result.name == args.output:
            print(generate_explanation(result))
            break
    return EXIT_OK


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "config",
        nargs="?",
        default=None,
        help="Configuration JSON file (defaults to the built-in sample)",
    )


def _add_set_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--set",
        action="append",
        metavar="NAME=VALUE",
        help="Assign a variable (repeatable)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="decisionbox",
        description="DecisionBox — Rule-Driven Solution Selection",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log evaluation details",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    # Check command
    check_parser = subparsers.add_parser(
        "check",
        help="Validate a configuration",
    )
    _add_config_argument(check_parser)
    check_parser.set_defaults(func=cmd_check)

    # Evaluate command
    evaluate_parser = subparsers.add_parser(
        "evaluate",
        help="Show feasible outputs, relevant fields and ranking",
    )
    _add_config_argument(evaluate_parser)
    _add_set_argument(evaluate_parser)
    evaluate_parser.set_defaults(func=cmd_evaluate)

    # Explain command
    explain_parser = subparsers.add_parser(
        "explain",
        help="Explain the score or disqualification of one output",
    )
    explain_parser.add_argument(
        "output",
        help="Output name to explain",
    )
    _add_config_argument(explain_parser)
    _add_set_argument(explain_parser)
    explain_parser.set_defaults(func=cmd_explain)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    try:
        return args.func(args)
    except ConfigurationError as e:
        print("ERROR: Invalid configuration")
        for problem in e.problems:
            print(f"  • {problem}")
        return EXIT_CONFIGURATION_ERROR
    except (ValidationError, AssignmentSyntaxError) as e:
        print(f"ERROR: {e}")
        return EXIT_USAGE_ERROR


if __name__ == "__main__":
    sys.exit(main())
