"""
Payload extractors: isolate an embedded base64 payload from a log line

Both return None when the line has no payload; a miss is not an error.
"""

import re
from typing import Optional


PROGRAM_DATA_PREFIX = "Program data: "
RAY_LOG_PATTERN = re.compile(r"ray_log: (?P<base64>[A-Za-z0-9+/=]+)")


def extract_program_data(line: str) -> Optional[str]:
    """
    Extract the base64 text following a leading "Program data: " prefix

    Everything after the prefix is returned untouched.
    """
    if line.startswith(PROGRAM_DATA_PREFIX):
        return line[len(PROGRAM_DATA_PREFIX):]
    return None


def extract_ray_log(line: str) -> Optional[str]:
    """Extract the base64 run following "ray_log: " anywhere in the line"""
    match = RAY_LOG_PATTERN.search(line)
    if match:
        return match.group("base64")
    return None
