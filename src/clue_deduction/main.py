#!/usr/bin/env python
"""
Clue Deduction Engine
Command line entry point: run the engine over a detective sheet JSON file.
"""

import json
import logging
import os
import sys

from dotenv import load_dotenv

from clue_deduction.config import EngineSettings, catalog_from_env, env_flag
from clue_deduction.engine import DeductionResult, process_sheet
from clue_deduction.errors import ClueDeductionError
from clue_deduction.report import format_result


# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

USAGE = "Usage: python -m clue_deduction.main <sheet.json> [--json]"


def configure_logging():
    """Log to stderr; DEBUG shows every deduction step."""
    logging.basicConfig(
        level=logging.DEBUG if env_flag("CLUE_DEBUG") else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def run_sheet_file(path: str) -> DeductionResult:
    """
    Load a sheet file and run the engine over it.

    Args:
        path: Path to a JSON file with "players", "suggestions" and
            optionally "manualOverrides"

    Returns:
        The DeductionResult

    Raises:
        ClueDeductionError: if the sheet or card catalog is malformed
        OSError: if the file can't be read
    """
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ClueDeductionError(f"{path} is not valid JSON: {e}") from e

    catalog = catalog_from_env()
    settings = EngineSettings.from_env()
    logger.debug("Running %s with %s", path, settings)
    return process_sheet(data, catalog=catalog, settings=settings)


def main(argv=None) -> int:
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else argv
    configure_logging()

    as_json = "--json" in argv
    paths = [arg for arg in argv if arg != "--json"]
    if len(paths) != 1 or paths[0].startswith("-"):
        print(USAGE, file=sys.stderr)
        return 2

    path = paths[0]
    if not os.path.exists(path):
        print(f"❌ Error: {path} not found", file=sys.stderr)
        return 1

    try:
        result = run_sheet_file(path)
    except (ClueDeductionError, ValueError, OSError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    if as_json:
        print(json.dumps(result.as_dict(), indent=2, ensure_ascii=False))
    else:
        print(format_result(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
