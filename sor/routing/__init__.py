"""Routing: candidate paths, split optimization and swap plan assembly."""

from sor.routing.assembler import format_swaps
from sor.routing.optimizer import OptimizerConfig, get_best_paths
from sor.routing.paths import create_path, quote_path
from sor.routing.proposer import RouteProposer, select_paths
from sor.routing.types import BestPaths, Path, PathAllocation

__all__ = [
    "BestPaths",
    "OptimizerConfig",
    "Path",
    "PathAllocation",
    "RouteProposer",
    "create_path",
    "format_swaps",
    "get_best_paths",
    "quote_path",
    "select_paths",
]
