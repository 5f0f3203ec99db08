"""Command-line entry points for Desync Detective."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from ..analysis.aggregator import Aggregator
from ..analyzer.pipeline import run_batch
from ..config.schema import (
    METHOD_START_DIFF,
    METHODS,
    UNIT_PACKETS,
    UNIT_SECONDS,
    AnalysisConfig,
    Measurement,
)
from ..errors import ProbeError, SourceListError
from ..ffmpeg.commands import FFprobeRunner, locate_tool
from ..fs.sources import load_sources_csv, single_source
from ..models.core import Source
from ..models.result import BatchReport, SourceOutcome
from ..report.results import write_batch_json
from ..report.summary import format_batch_summary, format_outcome, write_text_summary

EXIT_OK = 0
EXIT_DESYNC = 1
EXIT_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='desync-detective',
        description='An attempt to programmatically detect audio/video desynchronization',
    )
    parser.add_argument(
        'source',
        nargs='?',
        help='File or stream URI to analyze',
    )
    parser.add_argument(
        '-c',
        '--csv',
        type=Path,
        default=None,
        help='CSV file with name,uri,apart columns listing cameras to analyze',
    )
    measure = parser.add_mutually_exclusive_group()
    measure.add_argument(
        '-p',
        '--packets',
        type=_positive_int,
        default=None,
        help='Number of packets to analyze. Mutually exclusive with -t',
    )
    measure.add_argument(
        '-t',
        '--time',
        type=_positive_int,
        default=None,
        help='Seconds of the input to analyze. Mutually exclusive with -p',
    )
    parser.add_argument(
        '-m',
        '--method',
        choices=METHODS,
        default=METHOD_START_DIFF,
        help='Method to analyze (default: %(default)s)',
    )
    parser.add_argument(
        '-d',
        '--direct',
        action='store_true',
        help='Analyze the source directly instead of a recorded slice of it',
    )
    parser.add_argument(
        '--temp-dir',
        type=Path,
        default=Path('temp'),
        help='Directory for recorded slices (default: %(default)s)',
    )
    parser.add_argument(
        '-j',
        '--jobs',
        type=_positive_int,
        default=1,
        help='Analyze up to N sources in parallel',
    )
    parser.add_argument(
        '--probe-timeout',
        type=float,
        default=None,
        help='Abort a single ffprobe call after this many seconds (recordings get the clip length on top)',
    )
    parser.add_argument(
        '--json',
        dest='json_path',
        type=Path,
        default=None,
        help='Write the batch report as JSON to this path',
    )
    parser.add_argument(
        '--summary',
        dest='summary_path',
        type=Path,
        default=None,
        help='Write the text summary to this path',
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        help='Logging level (DEBUG, INFO, WARNING, ...)',
    )
    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))
    logger = logging.getLogger(__name__)

    measurement = _build_measurement(args.packets, args.time)
    if measurement is None and args.method != METHOD_START_DIFF:
        parser.error(f'specify either --time or --packets for method {args.method}')
    try:
        sources = _resolve_sources(args.source, args.csv)
    except SourceListError as exc:
        raise SystemExit(str(exc)) from exc

    cfg = AnalysisConfig(
        method=args.method,
        measurement=measurement,
        direct=args.direct,
        temp_dir=args.temp_dir,
        jobs=args.jobs,
        probe_timeout_s=args.probe_timeout,
    )
    logger.debug('Analysis config: %s', cfg)

    try:
        ffprobe_exe = locate_tool('ffprobe')
        ffmpeg_exe = None if cfg.direct else locate_tool('ffmpeg')
    except ProbeError as exc:
        raise SystemExit(str(exc)) from exc
    prober = FFprobeRunner(
        ffprobe_exe,
        ffmpeg_exe,
        temp_dir=cfg.temp_dir,
        timeout_s=cfg.probe_timeout_s,
    )

    aggregator = Aggregator(cfg.thresholds)
    report = run_batch(sources, cfg, aggregator, prober, on_outcome=_print_outcome)
    for line in format_batch_summary(report):
        print(line)

    if args.summary_path:
        write_text_summary(args.summary_path, report)
        logger.info('Wrote analysis summary to %s', args.summary_path)
    if args.json_path:
        write_batch_json(args.json_path, report)
        logger.info('Wrote analysis JSON to %s', args.json_path)

    return _exit_code(report)


def _print_outcome(outcome: SourceOutcome) -> None:
    print()
    for line in format_outcome(outcome):
        print(line)


def _exit_code(report: BatchReport) -> int:
    if report.failures:
        return EXIT_FAILED
    if report.has_problems:
        return EXIT_DESYNC
    return EXIT_OK


def _build_measurement(packets: Optional[int], seconds: Optional[int]) -> Optional[Measurement]:
    if packets is not None and seconds is not None:
        raise SystemExit('--packets and --time are mutually exclusive.')
    if seconds is not None:
        return Measurement(count=seconds, unit=UNIT_SECONDS)
    if packets is not None:
        return Measurement(count=packets, unit=UNIT_PACKETS)
    return None


def _resolve_sources(source: Optional[str], csv_path: Optional[Path]) -> List[Source]:
    if csv_path is not None:
        sources = load_sources_csv(csv_path)
        if not sources:
            raise SystemExit(f'No sources listed in {csv_path}.')
        return sources
    if not source:
        raise SystemExit('Specify a SOURCE or a --csv file.')
    return [single_source(source)]


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid integer '{value}'.") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"Value must be positive, got {parsed}.")
    return parsed
