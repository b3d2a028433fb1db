#!/usr/bin/env python3
"""
Command-line replay for the reaction mapper.

Feeds a recorded session of detector frames through the reaction pipeline:
1. Frame parsing (face box, blend-shape expression, hand keypoints)
2. Motion ticks (head nodding, hand raising)
3. Reaction ticks (expression classification, reaction state)
4. Recommendation emission (EQ, volume, effects; only on change)

Usage:
    python main.py --frames session.jsonl --config configs/default.yaml --output recommendations.jsonl

Engineering approach:
- Ticks run on frame time, so a replay is deterministic
- Recommendations are written as JSON lines (stdout by default)
- Logs go to stderr so they never mix with stdout output
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from reaction_mapping import Recommendation
from sensing_pipeline import ReactionPipeline, parse_frame
from utils.config_loader import load_config
from utils.frame_io import iter_frame_payloads, write_json_lines

logger = logging.getLogger(__name__)


def setup_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def run_replay(frames_path: str, config: Dict) -> List[Recommendation]:
    """
    Replay a JSON-lines recording through a fresh pipeline.

    Args:
        frames_path: Path to the recording
        config: Configuration dictionary

    Returns:
        Emitted recommendations, in order
    """
    pipeline = ReactionPipeline(config)

    def frames():
        for payload in iter_frame_payloads(frames_path):
            try:
                yield parse_frame(payload)
            except ValueError as e:
                logger.warning(f"Skipping frame: {e}")

    return pipeline.replay(frames())


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Reaction mapper - replay detector frames into audio recommendations',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print recommendations to stdout
  python main.py --frames session.jsonl

  # With custom config and output file
  python main.py --frames session.jsonl --config custom.yaml --output recs.jsonl
        """
    )

    parser.add_argument(
        '--frames',
        type=str,
        required=True,
        help='Path to JSON-lines detector frame recording'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='configs/default.yaml',
        help='Path to configuration YAML file (default: configs/default.yaml)'
    )

    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output JSON-lines file for recommendations (default: stdout)'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Also write logs to this file'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log per-tick details'
    )

    args = parser.parse_args()
    setup_logging(args.log_file, args.verbose)

    frames_path = Path(args.frames)
    if not frames_path.exists():
        logger.error(f"Frame recording not found: {frames_path}")
        sys.exit(1)

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error(f"Config file not found: {config_path}")
        sys.exit(1)

    config = load_config(config_path)

    try:
        recommendations = run_replay(str(frames_path), config)
        records = [r.to_dict() for r in recommendations]

        if args.output:
            output_path = Path(args.output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w') as f:
                count = write_json_lines(records, f)
            logger.info(f"Wrote {count} recommendations to {output_path}")
        else:
            write_json_lines(records, sys.stdout)

        sys.exit(0)

    except KeyboardInterrupt:
        logger.warning("Replay interrupted by user")
        sys.exit(1)

    except Exception as e:
        logger.error(f"Replay failed: {type(e).__name__}: {e}")
        logger.exception("Full traceback:")
        sys.exit(1)


if __name__ == '__main__':
    main()
