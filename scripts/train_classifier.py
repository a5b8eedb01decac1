#!/usr/bin/env python3
"""
Run the batch classifier trainer once.

Parameters are read from the environment (same keys as the trigger's
parameter bag, e.g. nlcUrl, nlcUsername, cloudantDbName, NLC_LIMIT_MAX_RECORDS)
and can be overridden with flags.

Usage:
    python scripts/train_classifier.py --force
    python scripts/train_classifier.py --classifier my-classifier --log-level DEBUG

Output:
    Logs on stderr. Summary JSON on stdout, e.g.
    {"shouldTrain": true, "training": true, "cleanup": 1}
    Exit code 1 with the error message on failure.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Final

PROJECT_ROOT: Final[Path] = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.core.exceptions import ClassifierCoordinatorError  # noqa: E402
from src.core.logging import configure_logging  # noqa: E402
from src.trainer import REQUIRED_PARAMS, run_trainer  # noqa: E402

OPTIONAL_PARAMS: Final[tuple[str, ...]] = (
    "cloudantHost",
    "logLevel",
    "nlcForceTraining",
    "nlcClassifier",
    "trainingFrequency",
    "requestTimeout",
    "NLC_LIMIT_NUM_CLASSES",
    "NLC_LIMIT_TEXT_LENGTH",
    "NLC_LIMIT_MIN_RECORDS",
    "NLC_LIMIT_MAX_RECORDS",
)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Train a new classifier generation if needed and clean up old ones",
    )
    parser.add_argument("--force", action="store_true", help="Skip training checks and train")
    parser.add_argument("--classifier", help="Logical classifier name")
    parser.add_argument("--log-level", help="Log level (default INFO)")
    parser.add_argument(
        "--console-logs",
        action="store_true",
        help="Human-readable logs instead of JSON",
    )
    return parser.parse_args(argv)


def collect_params(env: Mapping[str, str], args: argparse.Namespace) -> dict[str, Any]:
    """Build the trainer parameter bag from the environment and CLI flags.

    A command-line run always counts as a local run, so the trigger
    document check is skipped.
    """
    params: dict[str, Any] = {
        key: env[key] for key in (*REQUIRED_PARAMS, *OPTIONAL_PARAMS) if key in env
    }
    params["localRun"] = "true"
    if args.force:
        params["nlcForceTraining"] = "true"
    if args.classifier:
        params["nlcClassifier"] = args.classifier
    if args.log_level:
        params["logLevel"] = args.log_level
    return params


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    params = collect_params(os.environ, args)

    configure_logging(
        log_level=params.get("logLevel", "INFO"),
        json_output=not args.console_logs,
        stream=sys.stderr,
    )

    try:
        summary = asyncio.run(run_trainer(params))
    except ClassifierCoordinatorError as e:
        print(str(e), file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
