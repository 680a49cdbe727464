"""
Command line interface for the KoreKcel grader.

This module grades a batch of submissions from the terminal and writes
a JSON report of the results.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .core.grader import BatchGrader
from .models.configuration import SheetConfig
from .models.results import StudentResult
from .utils.config import Config
from .utils.exceptions import ConfigurationError, KorekcelError, ProcessingError, ValidationError
from .utils.validators import InputValidator


def setup_logging(level: str = "INFO") -> None:
    """
    Set up logging for CLI.

    Args:
        level: Logging level
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format='[%(levelname)s] %(message)s',
        stream=sys.stdout
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="KoreKcel - grade student workbooks or text documents against a reference",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Grade workbooks, every reference sheet weighted 1
  korekcel --reference corrige.xlsx --submissions copies/*.xlsx

  # Grade text documents with a configuration file
  korekcel --reference modele.docx --submissions copies/*.docx --config tp2.json

  # Custom tolerances and output directory
  korekcel --reference corrige.xlsx --submissions copies/*.xlsx --abs-tol 0.01 --out results/
        """
    )

    parser.add_argument(
        "--reference", "-r",
        required=True,
        help="Path to the reference document (.xlsx, .xlsm or .docx)"
    )

    parser.add_argument(
        "--submissions", "-s",
        nargs='+',
        required=True,
        help="Paths to the submission documents"
    )

    parser.add_argument(
        "--config", "-c",
        help="Path to a JSON configuration file"
    )

    parser.add_argument(
        "--mode",
        choices=["tabular", "text"],
        help="Document family (default: inferred from the reference extension)"
    )

    parser.add_argument(
        "--abs-tol",
        type=float,
        help="Absolute numeric tolerance"
    )

    parser.add_argument(
        "--rel-tol",
        type=float,
        help="Relative numeric tolerance"
    )

    parser.add_argument(
        "--out", "-o",
        help="Output directory for results (default: korekcel_results)"
    )

    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Print the effective configuration before grading"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    return parser.parse_args(argv)


def build_grader(args: argparse.Namespace) -> BatchGrader:
    """
    Build a batch grader from arguments, configuration file and reference.

    Tabular batches without configured sheets grade every reference sheet.
    """
    config = Config(args.config) if args.config else Config()

    mode = args.mode or InputValidator.detect_mode(args.reference)
    config.set_grading_option("mode", mode)

    tolerance = config.get_grading_config()["tolerance"]
    if args.abs_tol is not None:
        tolerance["absolute"] = InputValidator.validate_tolerance(args.abs_tol, "absolute")
    if args.rel_tol is not None:
        tolerance["relative"] = InputValidator.validate_tolerance(args.rel_tol, "relative")
    config.set_grading_option("tolerance", tolerance)

    configuration = config.grading_configuration()
    if not config.validate_configuration():
        raise ConfigurationError("Invalid configuration", config_key=str(args.config or "defaults"))
    if args.show_config:
        print(config.get_config_summary())

    reference_path = InputValidator.validate_document_file(args.reference, mode)
    grader = BatchGrader(configuration, config)
    reference = grader.loader.load_path(reference_path, mode)

    if mode == "tabular" and not configuration.sheets:
        configuration = configuration.with_sheets(SheetConfig(name) for name in reference.sheet_names)
        grader = BatchGrader(configuration, config)

    grader.set_reference(reference)
    return grader


def run_grading(args: argparse.Namespace) -> None:
    """
    Run a grading pass.

    Args:
        args: Parsed command line arguments
    """
    logger = logging.getLogger(__name__)

    try:
        grader = build_grader(args)

        files = grader.read_files(args.submissions)
        logger.info(f"Grading {len(files)} submissions against {args.reference}")
        results = grader.grade_files(files)

        out_dir = Path(args.out or grader.config.get_output_config()["default_output_dir"])
        if grader.config.get_output_config().get("save_json", True):
            report = write_report(grader, results, out_dir)
            logger.info(f"Results saved to {report}")

        if not args.quiet:
            print_results(grader, results)

    except ValidationError as e:
        logger.error(f"Validation error: {e}")
        sys.exit(1)
    except ProcessingError as e:
        logger.error(f"Processing error: {e}")
        sys.exit(1)
    except KorekcelError as e:
        logger.error(f"Grading error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.critical(f"Unexpected error: {e}", exc_info=args.verbose)
        sys.exit(1)


def write_report(grader: BatchGrader, results: List[StudentResult], out_dir: Path) -> Path:
    """Write results.json with the batch summary, export rows and full details."""
    out_dir.mkdir(parents=True, exist_ok=True)
    sheet_names = [s.name for s in grader.configuration.enabled_sheets] if grader.mode == "tabular" else None
    report = {
        "mode": grader.mode,
        "configuration": grader.configuration.to_dict(),
        "summary": grader.summary(results),
        "rows": [r.to_row(sheet_names) for r in results],
        "results": [r.to_dict() for r in results],
    }
    report_file = out_dir / "results.json"
    with open(report_file, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2, ensure_ascii=False)
    return report_file


def print_results(grader: BatchGrader, results: List[StudentResult]) -> None:
    """
    Print ranked results to console.

    Args:
        grader: Grader that produced the results
        results: Ranked results
    """
    summary = grader.summary(results)

    print("\n" + "=" * 80)
    print("GRADING RESULTS")
    print("=" * 80)
    print(f"Submissions: {summary['count']}  Unreadable: {summary['unreadable']}  "
          f"Class average: {summary['class_average']:.2f} / 20")
    print("-" * 80)

    for rank, result in enumerate(results, 1):
        identity = result.identity
        flag = ""
        if identity.has_conflict:
            flag = f"  [conflict: {identity.id_from_filename} / {identity.id_from_content}]"
        elif result.failed:
            flag = f"  [unreadable: {result.error_message}]"
        print(f"{rank:>3}. {identity.student_id:<10} {identity.name:<20} {identity.first_name:<15} "
              f"{result.final_score:>6.2f}{flag}")

    print("=" * 80)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main CLI entry point.
    """
    args = parse_arguments(argv)

    if args.quiet:
        log_level = "ERROR"
    elif args.verbose:
        log_level = "DEBUG"
    else:
        log_level = "INFO"

    setup_logging(log_level)

    run_grading(args)


if __name__ == "__main__":
    main()
