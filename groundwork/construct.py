"""
GroundWork construct - a VPC with public and private subnets behind NAT.
"""

from aws_cdk import Annotations
from constructs import Construct

from .builder import NetworkTopologyBuilder
from .config import GroundworkConfig
from .engines import CdkEngine
from .graph import ResourceGraph


class GroundWork(Construct):
    """Declares the whole network topology as L1 EC2 resources under this construct."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        config: GroundworkConfig,
        default_tags: dict[str, str] | None = None,
    ) -> None:
        super().__init__(scope, construct_id)

        self.engine = CdkEngine(self)
        self.graph = ResourceGraph(self.engine)
        self.topology = NetworkTopologyBuilder(self.graph, config, default_tags).build()

        zones = config.shared_nat_zones()
        if zones:
            Annotations.of(self).add_warning(
                f"Private subnets in {', '.join(zones)} share a single NAT gateway; "
                "use nat_strategy 'per_subnet' for per-zone egress"
            )
