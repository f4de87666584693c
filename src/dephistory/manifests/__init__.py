"""Manifest parsers: heterogeneous formats into one dependency model."""

from .base import ManifestParser, ParseResult
from .conda import CondaParser, MetaYamlParser, convert_dependencies, parse_environment, parse_meta_yaml
from .discovery import find_manifests
from .maven import MavenParser, parse_maven_output
from .npm import GlideParser, NpmParser, parse_glide, parse_package_json
from .pip import PipParser, parse_requirements
from .registry import ParserRegistry, default_registry
from .resolve import parse_manifest, resolve_files, resolve_project

__all__ = [
    "ManifestParser",
    "ParseResult",
    "ParserRegistry",
    "default_registry",
    "CondaParser",
    "GlideParser",
    "MavenParser",
    "MetaYamlParser",
    "NpmParser",
    "PipParser",
    "convert_dependencies",
    "parse_environment",
    "parse_glide",
    "parse_maven_output",
    "parse_meta_yaml",
    "parse_package_json",
    "parse_requirements",
    "find_manifests",
    "parse_manifest",
    "resolve_files",
    "resolve_project",
]
