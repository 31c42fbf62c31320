"""CLI entrypoint for the occurrence-density conservation area pipeline."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from habitat_priority.common.config_loader import ConfigBundle, load_all_configs
from habitat_priority.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, STAGES
from habitat_priority.common.errors import PipelineError, StageError
from habitat_priority.common.ids import generate_run_id
from habitat_priority.common.logging import build_logger, close_logger, log_event
from habitat_priority.common.time_utils import parse_run_date
from habitat_priority.pipeline.export import write_analysis_outputs
from habitat_priority.pipeline.ingest import load_points, run_ingest
from habitat_priority.pipeline.reports import write_run_summary
from habitat_priority.pipeline.run import run_analysis


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all"])
    parser.add_argument("--input", default=None, help="Occurrence records (.json or .csv) for the ingest stage")
    parser.add_argument("--run-date", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    return parser.parse_args(argv)


def execute_stage(
    stage: str,
    args: argparse.Namespace,
    bundle: ConfigBundle,
    data_dir: Path,
    run_id: str,
    run_date: str,
    logger: logging.Logger,
) -> None:
    if stage == "ingest":
        if not args.input:
            raise StageError("ingest requires --input")
        result = run_ingest(Path(args.input), bundle.validation, data_dir, run_id, run_date)
        log_event(
            logger,
            "records ingested",
            run_id=run_id,
            stage=stage,
            event="INGEST_COUNTS",
            status="ok",
            rows_in=result["raw_record_count"],
            rows_out=result["valid_record_count"],
        )
    elif stage == "analyse":
        points = load_points(data_dir)
        result = run_analysis(points, bundle.analysis, logger=logger, run_id=run_id)
        write_analysis_outputs(result, data_dir, run_id)
    elif stage == "report":
        write_run_summary(data_dir, run_id=run_id, run_date=run_date, analysis_radius_km=bundle.analysis.analysis_radius_km)
    else:
        raise ValueError(f"Unknown stage: {stage}")


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    run_date = parse_run_date(args.run_date)
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    try:
        bundle = load_all_configs(config_dir, overlay_config_dir=overlay_config_dir)
        stages = STAGES if args.command == "all" else (args.command,)
        had_partial_failure = False

        for stage in stages:
            log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
            try:
                execute_stage(stage, args, bundle, data_dir, run_id, run_date, logger)
            except PipelineError as exc:
                had_partial_failure = True
                log_event(
                    logger,
                    f"stage {stage} failed: {exc}",
                    level=logging.ERROR,
                    run_id=run_id,
                    stage=stage,
                    event="STAGE_FAIL",
                    status="error",
                    error_code=exc.error_code,
                )
                if exc.error_code == "CONTRACT_ERROR" or args.strict:
                    return EXIT_HARD_FAIL
                # Later stages read this stage's artifacts.
                break
            except Exception:
                log_event(
                    logger,
                    f"unexpected failure in stage {stage}",
                    level=logging.ERROR,
                    run_id=run_id,
                    stage=stage,
                    event="STAGE_FAIL",
                    status="error",
                    error_code="UNEXPECTED_ERROR",
                    exc_info=True,
                )
                return EXIT_HARD_FAIL
            log_event(logger, "stage end", run_id=run_id, stage=stage, event="STAGE_END", status="ok")

        if had_partial_failure:
            return EXIT_PARTIAL
        return EXIT_SUCCESS
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        print(f"{exc.error_code}: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
