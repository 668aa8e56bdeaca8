"""
Command-Line Interface (CLI) for tinythis.

    tinythis [quality|balanced|speed] FILE...   compress FILEs and exit
    tinythis --mode speed --gpu FILE...         same, with flags
    tinythis                                    open the interactive session

The first positional argument is taken as the preset when it names one and is
not also an existing file; everything else is an input file.
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from .config.common import DEFAULT_LOG_LEVEL, FAILURE_LOG_DIR
from .config.options import load_options
from .domain.exceptions import ResourceUnavailable
from .domain.presets import DEFAULT_PRESET, AcceleratorMode, Preset
from .pipeline.runner import EXIT_OK, EXIT_USAGE, CLIRunner
from .pipeline.session import SessionController
from .services.encoder_locator import EncoderLocator
from .services.job_queue import JobQueue
from .services.logging_service import FailureLog, configure_console_logging, configure_file_logging
from .ui.app import TinythisApp, persist_accelerator

PRESET_NAMES = [p.value for p in Preset]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tinythis",
        description="Compress videos with ffmpeg using one of three fixed presets.",
    )
    parser.add_argument(
        "inputs", nargs="*", metavar="[PRESET] FILE",
        help=f"Files to compress, optionally preceded by a preset ({', '.join(PRESET_NAMES)}). "
             "Without files the interactive session starts.",
    )
    parser.add_argument(
        "--mode", type=str.lower, choices=PRESET_NAMES, default=None,
        help=f"Preset to use (default: {DEFAULT_PRESET.value}).",
    )
    accel = parser.add_mutually_exclusive_group()
    accel.add_argument(
        "--gpu", action="store_true", help="Encode with NVENC (h264_nvenc)."
    )
    accel.add_argument(
        "--cpu", action="store_true", help="Encode with libx264."
    )
    parser.add_argument(
        "--log-level", type=str.upper, default=DEFAULT_LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level."
    )
    return parser


def parse_inputs(raw_inputs: Sequence[str], mode: Optional[str]) -> Tuple[Preset, List[Path]]:
    """
    Splits the positional arguments into a preset and the input files.

    Raises:
        ValueError: A positional preset conflicts with `--mode`.
    """
    inputs = list(raw_inputs)
    positional_preset = None
    if inputs and inputs[0].lower() in PRESET_NAMES and not Path(inputs[0]).exists():
        positional_preset = Preset.from_name(inputs.pop(0))

    flag_preset = Preset.from_name(mode) if mode else None
    if positional_preset and flag_preset and positional_preset is not flag_preset:
        raise ValueError(
            f"conflicting presets: '{positional_preset.value}' and --mode {flag_preset.value}"
        )
    preset = positional_preset or flag_preset or DEFAULT_PRESET
    return preset, [Path(p) for p in inputs]


def get_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments.

    Returns:
        argparse.Namespace: The parsed arguments, with `preset` (Preset) and
                            `files` (list of Path) filled in from the
                            positional arguments.
    """
    parser = build_parser()
    # Flags may appear between the preset and the files.
    args = parser.parse_intermixed_args(argv)
    try:
        args.preset, args.files = parse_inputs(args.inputs, args.mode)
    except ValueError as e:
        parser.error(str(e))
    return args


def resolve_accelerator(args: argparse.Namespace, saved_gpu: bool) -> AcceleratorMode:
    if args.gpu:
        return AcceleratorMode.GPU
    if args.cpu:
        return AcceleratorMode.CPU
    return AcceleratorMode.GPU if saved_gpu else AcceleratorMode.CPU


def run_interactive(preset: Preset, accelerator: AcceleratorMode, log_level: str) -> int:
    """Runs the textual session until the user quits."""
    log_file = configure_file_logging(level=log_level)
    logger.info(f"Interactive session started (log: {log_file})")

    locator = EncoderLocator()
    binaries = locator.locate()
    initial_status = None
    if binaries is None:
        initial_status = str(ResourceUnavailable())
    else:
        version = locator.verify(binaries)
        if version is None:
            initial_status = f"ffmpeg at '{binaries.ffmpeg}' could not be run"
        else:
            logger.info(f"Using {binaries.ffmpeg} ({binaries.source}): {version}")
            if binaries.source == "local":
                initial_status = "local mode: using ffmpeg next to tinythis"

    with JobQueue(locator=locator, failure_log=FailureLog(FAILURE_LOG_DIR)) as queue:
        controller = SessionController(
            queue,
            preset=preset,
            accelerator=accelerator,
            on_accelerator_change=persist_accelerator(),
        )
        TinythisApp(controller, initial_status=initial_status).run()
    logger.info("Interactive session ended.")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = get_args(argv)
    accelerator = resolve_accelerator(args, load_options().gpu)

    if not args.files:
        if args.inputs:
            # Only a preset was given.
            configure_console_logging(args.log_level)
            logger.error("no input files provided")
            return EXIT_USAGE
        return run_interactive(args.preset, accelerator, args.log_level)

    configure_console_logging(args.log_level)
    logger.debug(f"Parsed arguments: {args}")
    runner = CLIRunner(
        preset=args.preset,
        accelerator=accelerator,
        failure_log=FailureLog(FAILURE_LOG_DIR),
    )
    return runner.run(args.files)


if __name__ == "__main__":
    sys.exit(main())
