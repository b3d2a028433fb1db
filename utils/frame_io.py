"""
Recorded detector frame I/O.

Recordings are JSON lines, one detector payload per line. Reading streams
lazily so long sessions never sit in memory at once.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Generator, Iterable

logger = logging.getLogger(__name__)


def iter_frame_payloads(frames_path) -> Generator[Dict[str, Any], None, None]:
    """
    Stream detector payloads from a JSON-lines recording.

    Blank lines are skipped. Lines that are not JSON objects are logged and
    skipped.

    Raises:
        FileNotFoundError: If the recording doesn't exist
    """
    frames_path = Path(frames_path)
    if not frames_path.exists():
        raise FileNotFoundError(f"Frame recording not found: {frames_path}")

    logger.info(f"Reading detector frames from {frames_path}")

    with open(frames_path, 'r') as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"{frames_path}:{line_no}: invalid JSON ({e}); skipped")
                continue
            if not isinstance(payload, dict):
                logger.warning(f"{frames_path}:{line_no}: not a JSON object; skipped")
                continue
            yield payload


def write_json_lines(records: Iterable[Dict[str, Any]], stream) -> int:
    """Write records as JSON lines to an open text stream; returns the count."""
    count = 0
    for record in records:
        stream.write(json.dumps(record) + '\n')
        count += 1
    return count
