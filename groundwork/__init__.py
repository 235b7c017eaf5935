"""Groundwork: a VPC with public and private subnets for AWS CDK apps."""

from .builder import NetworkTopologyBuilder
from .config import DEFAULT_TAGS, GroundworkConfig, NatStrategy, NetworkSpec, SubnetSpec
from .engines import CdkEngine, DryRunEngine
from .errors import ConfigurationError, DependencyError, GroundworkError
from .graph import ResourceGraph, ResourceHandle, ResourceKind, ResourceRecord, ids_of
from .topology import Topology


def plan(config: GroundworkConfig) -> tuple[ResourceGraph, Topology]:
    """Build a topology against a dry-run engine and return the graph with its summary."""
    graph = ResourceGraph(DryRunEngine())
    topology = NetworkTopologyBuilder(graph, config).build()
    return graph, topology


__all__ = [
    "DEFAULT_TAGS",
    "CdkEngine",
    "ConfigurationError",
    "DependencyError",
    "DryRunEngine",
    "GroundworkConfig",
    "GroundworkError",
    "NatStrategy",
    "NetworkSpec",
    "NetworkTopologyBuilder",
    "ResourceGraph",
    "ResourceHandle",
    "ResourceKind",
    "ResourceRecord",
    "SubnetSpec",
    "Topology",
    "ids_of",
    "plan",
]
