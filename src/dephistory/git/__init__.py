"""Git collaborator interface and its subprocess adapter."""

from .base import GitCollaborator
from .cli import GitCli, parse_for_each_ref, parse_log_graph, parse_show_ref

__all__ = ["GitCollaborator", "GitCli", "parse_for_each_ref", "parse_log_graph", "parse_show_ref"]
