"""File-name to parser bindings."""

from typing import Iterable, Optional

from ..logging_config import get_logger
from .base import ManifestParser
from .conda import CondaParser, MetaYamlParser
from .maven import MavenParser, Runner
from .npm import GlideParser, NpmParser
from .pip import PipParser

logger = get_logger(__name__)


class ParserRegistry:
    """Binds manifest file names to parser instances.

    Built by the caller and handed to the resolver and pipeline; there is no
    module-level table.
    """

    def __init__(self, parsers: Iterable[ManifestParser] = ()):
        self._by_filename: dict[str, ManifestParser] = {}
        self._test_filenames: set[str] = set()
        for parser in parsers:
            self.register(parser)

    def register(self, parser: ManifestParser) -> None:
        for filename in parser.filenames + parser.test_filenames:
            if filename in self._by_filename:
                logger.debug(
                    f"{filename} rebound from {self._by_filename[filename].name} to {parser.name}"
                )
            self._by_filename[filename] = parser
        self._test_filenames.update(parser.test_filenames)

    def parser_for(self, filename: str) -> Optional[ManifestParser]:
        return self._by_filename.get(filename)

    def is_test_file(self, filename: str) -> bool:
        return filename in self._test_filenames

    def known_filenames(self, include_test: bool = True) -> set[str]:
        return {
            name
            for name in self._by_filename
            if include_test or name not in self._test_filenames
        }

    def __contains__(self, filename: str) -> bool:
        return filename in self._by_filename

    def __len__(self) -> int:
        return len(self._by_filename)


def default_registry(
    maven_timeout: int = 900, maven_runner: Optional[Runner] = None
) -> ParserRegistry:
    """Registry with every supported manifest format."""
    return ParserRegistry(
        [
            MavenParser(timeout=maven_timeout, runner=maven_runner),
            GlideParser(),
            NpmParser(),
            CondaParser(),
            PipParser(),
            MetaYamlParser(),
        ]
    )
