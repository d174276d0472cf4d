"""
RepertoireVision - Command line entry point.

Runs recognition over a directory of extracted frames and prints the
result as JSON on stdout. Progress is written to stderr as one JSON
object per line so a host process can stream it.
"""

import argparse
import json
import logging
import signal
import sys
from pathlib import Path

from repertoirevision.core.errors import RecognitionError
from repertoirevision.core.interfaces import CancellationToken
from repertoirevision.core.models import RecognitionStatus
from repertoirevision.orchestrator.pipeline import RecognitionConfig, RecognitionPipeline
from repertoirevision.tree.builder import PositionTreeBuilder, TreeBuilderOptions


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repertoirevision",
        description="Recognize chess positions in extracted video frames",
    )
    parser.add_argument(
        "frames_dir", type=Path,
        help="Directory of frame_<n>.png|jpg|jpeg images"
    )
    parser.add_argument(
        "--tree", action="store_true",
        help="Also build the repertoire tree from the recognized positions"
    )
    parser.add_argument(
        "--fps", type=float, default=1.0,
        help="Rate the frames were extracted at (default: 1.0)"
    )
    parser.add_argument(
        "--change-threshold", type=float, default=5.0,
        help="Mean pixel difference that counts as a board change (default: 5.0)"
    )
    parser.add_argument(
        "--search-limit", type=int, default=10,
        help="Number of leading frames searched for the board (default: 10)"
    )
    parser.add_argument(
        "--continuity-filter", action="store_true",
        help="Reject boards that differ too much from the previous one"
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for stderr (default: WARNING)"
    )
    return parser


def report_progress(processed_frames: int, total_frames: int) -> None:
    """Write one progress line to stderr."""
    line = json.dumps({"processedFrames": processed_frames, "totalFrames": total_frames})
    print(line, file=sys.stderr, flush=True)


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = RecognitionConfig(
            board_search_limit=args.search_limit,
            change_threshold=args.change_threshold,
            frames_per_second=args.fps,
        )
    except ValueError as e:
        parser.error(str(e))
    pipeline = RecognitionPipeline(config)

    token = CancellationToken()
    previous_handler = signal.signal(signal.SIGINT, lambda *_: token.cancel())

    try:
        result = pipeline.recognize(args.frames_dir, report_progress, token)
    except RecognitionError as e:
        logging.getLogger(__name__).error(str(e))
        return EXIT_ERROR
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    output = result.to_dict()

    if args.tree and result.status != RecognitionStatus.CANCELLED:
        builder = PositionTreeBuilder(
            TreeBuilderOptions(enable_continuity_filter=args.continuity_filter)
        )
        output["repertoire"] = builder.build(result.positions).to_dict()

    json.dump(output, sys.stdout)
    sys.stdout.write("\n")

    if result.status == RecognitionStatus.CANCELLED:
        return EXIT_CANCELLED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
