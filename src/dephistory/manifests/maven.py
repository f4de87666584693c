"""Maven dependencies, resolved by running ``mvn dependency:list``."""

import re
from pathlib import Path
from typing import Callable, Optional

from ..dependency import Dependency, Ecosystem
from ..process import run_command
from .base import ManifestParser, ParseResult, decode

POM_XML = "pom.xml"

# groupId:artifactId:packaging:version[:scope]
# groupId:artifactId:packaging:classifier:version:scope
_ARTIFACT_RE = re.compile(r"^[\w.\-]+(?::[\w.\-]+){3,5}(?:\s.*)?$")
_LOG_PREFIX_RE = re.compile(r"^\[(?:INFO|WARNING|DEBUG)\]\s*")

Runner = Callable[[list[str], int], str]


def parse_maven_output(text: str, include_test: bool = True) -> ParseResult:
    """Parse the resolved-artifact lines of ``mvn dependency:list`` output."""
    result = ParseResult()
    for raw in text.splitlines():
        line = _LOG_PREFIX_RE.sub("", raw).strip()
        if not line or not _ARTIFACT_RE.match(line):
            continue
        # "-- module foo" suffixes printed by newer plugins
        fields = line.split()[0].split(":")
        scope = ""
        if len(fields) == 4:
            group, artifact, _packaging, version = fields
        elif len(fields) == 5:
            group, artifact, _packaging, version, scope = fields
        else:
            group, artifact, _packaging, _classifier, version, scope = fields
        if scope == "test" and not include_test:
            continue
        result.dependencies.append(Dependency(f"{group}:{artifact}", version, Ecosystem.JAVA))
    return result


class MavenParser(ManifestParser):
    """Resolves a pom.xml through the Maven build tool.

    Results depend on the tool and remote repositories, so they are never
    cached.
    """

    name = "maven"
    filenames = (POM_XML,)
    cacheable = False

    def __init__(self, timeout: int = 900, runner: Optional[Runner] = None, executable: str = "mvn"):
        self.timeout = timeout
        self.runner = runner or run_command
        self.executable = executable

    def parse(
        self, data: bytes, include_test: bool = True, companion_data: Optional[bytes] = None
    ) -> ParseResult:
        """Parse already captured ``dependency:list`` output."""
        return parse_maven_output(decode(data, POM_XML), include_test)

    def parse_file(self, path: Path, include_test: bool = True) -> ParseResult:
        cmd = [self.executable, "-B", "-f", str(path.parent), "dependency:list"]
        output = self.runner(cmd, self.timeout)
        return parse_maven_output(output, include_test)
