"""Parser for pip requirements files."""

from pathlib import Path
from typing import Optional

from ..dependency import Ecosystem
from ..logging_config import get_logger
from ._grammar import parse_generic, parse_vcs
from .base import ManifestParser, ParseResult, decode

logger = get_logger(__name__)

REQUIREMENTS = "requirements.txt"
REQUIREMENTS_DEV = "requirements-dev.txt"


def clean_line(raw: str) -> Optional[str]:
    """Strip comments, markers and editable prefixes; None for skipped lines."""
    line = raw.strip()
    if not line or line.startswith("#"):
        return None
    if "lib/python" in line:
        return None
    if line.startswith("-e ") or line.startswith("--editable "):
        line = line.split(None, 1)[1].strip()
    elif line.startswith("-"):
        # -r/--requirement includes, -i/--index-url, -c, -f and friends
        return None
    if " #" in line:
        line = line.split(" #", 1)[0].strip()
    if ";" in line:
        line = line.split(";", 1)[0].strip()
    return line or None


def parse_lines(text: str, filename: Optional[str] = None) -> ParseResult:
    result = ParseResult()
    for raw in text.splitlines():
        line = clean_line(raw)
        if line is None:
            continue
        spec = parse_vcs(line, Ecosystem.PYTHON) or parse_generic(line)
        if spec is None:
            logger.debug(f"Unrecognized requirement line in {filename or REQUIREMENTS}: {line!r}")
            continue
        result.dependencies.append(spec.dependency)
        if spec.issue is not None:
            result.issues.append(spec.issue)
    return result


def parse_requirements(
    data: bytes, dev_data: Optional[bytes] = None, include_test: bool = True
) -> ParseResult:
    """Parse a requirements file and, when test deps are included, its dev file."""
    result = parse_lines(decode(data, REQUIREMENTS), REQUIREMENTS)
    if include_test and dev_data is not None:
        result.extend(parse_lines(decode(dev_data, REQUIREMENTS_DEV), REQUIREMENTS_DEV))
    return result


class PipParser(ManifestParser):
    name = "pip"
    filenames = (REQUIREMENTS,)
    test_filenames = (REQUIREMENTS_DEV,)

    def parse(
        self, data: bytes, include_test: bool = True, companion_data: Optional[bytes] = None
    ) -> ParseResult:
        return parse_requirements(data, companion_data, include_test)

    def companion(self, path: Path) -> Optional[Path]:
        if path.name == REQUIREMENTS:
            return path.with_name(REQUIREMENTS_DEV)
        return None
