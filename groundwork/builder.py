"""
Network topology builder.

Derives the resource graph of a VPC with public and private subnets:

    network -> public path (internet gateway, public route table, public subnets)
            -> NAT (elastic address, NAT gateway, private route table) per anchor
            -> private path (private subnets)

Each step needs handles produced by the previous one, so they always run in
that order. Registration names only depend on the configuration and input
order, so an unchanged configuration produces the same graph every time.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .config import GroundworkConfig, NatStrategy, NetworkSpec, SubnetSpec, merge_tags
from .errors import ConfigurationError
from .graph import ResourceGraph, ResourceHandle, ResourceKind, ids_of
from .topology import Topology

logger = logging.getLogger(__name__)

DEFAULT_ROUTE = "0.0.0.0/0"


@dataclass(frozen=True)
class PublicPath:
    internet_gateway: ResourceHandle
    attachment: ResourceHandle
    route_table: ResourceHandle
    subnets: tuple[ResourceHandle, ...]


@dataclass(frozen=True)
class NatPath:
    address: ResourceHandle
    nat_gateway: ResourceHandle
    route_table: ResourceHandle


class NetworkTopologyBuilder:
    """Builds one topology into a ``ResourceGraph``."""

    def __init__(
        self,
        graph: ResourceGraph,
        config: GroundworkConfig,
        default_tags: dict[str, str] | None = None,
    ) -> None:
        self.graph = graph
        self.config = config
        self.default_tags = dict(config.default_tags if default_tags is None else default_tags)

    @property
    def prefix(self) -> str:
        return self.config.network.name

    def _tags(self, name: str, tags: dict[str, str] | None = None) -> dict[str, str]:
        return merge_tags(self.default_tags, {"Name": name}, tags)

    def _suffix(self, index: int) -> str:
        if self.config.nat_strategy is NatStrategy.SHARED:
            return ""
        return f"-{index + 1}"

    def resource_names(self, nat_count: int) -> list[str]:
        """Every name ``build()`` registers, in registration order."""
        config = self.config
        names = [
            config.network.name,
            "internetGateway",
            "internetGatewayAttachment",
            "publicRouteTable",
            "publicRoute",
        ]
        for i, spec in enumerate(config.public_subnets):
            names += [spec.name, f"publicRouteTableAssociation-{i + 1}"]
        for i in range(nat_count):
            suffix = self._suffix(i)
            names += [
                f"elasticIp{suffix}",
                f"natGateway{suffix}",
                f"privateRouteTable{suffix}",
                f"privateRoute{suffix}",
            ]
        for i, spec in enumerate(config.private_subnets):
            names += [spec.name, f"privateRouteTableAssociation-{i + 1}"]
        return names

    def _check_names(self, nat_count: int) -> None:
        seen = set()
        for name in self.resource_names(nat_count):
            if name in seen:
                raise ConfigurationError(f"resource name {name!r} is used more than once")
            seen.add(name)

    def build(self) -> Topology:
        """
        Validate the configuration, then register the whole topology.

        Raises:
            ConfigurationError: before any registration if the configuration is invalid.
        """
        self.config.validate()
        anchor_indexes = self.config.resolve_nat_anchors()
        self._check_names(len(anchor_indexes))
        zones = self.config.shared_nat_zones()
        if zones:
            logger.warning(
                "Private subnets in %s share one NAT gateway; its zone is a single point of failure",
                ", ".join(zones),
            )

        network = self.allocate_network(self.config.network)
        public = self.build_public_path(network, self.config.public_subnets)
        anchors = [public.subnets[index] for index in anchor_indexes]
        nat_paths = self.provision_nat(
            network, anchors, len(self.config.private_subnets), public.attachment
        )
        private = self.build_private_path(
            network,
            self.config.private_subnets,
            [path.route_table for path in nat_paths],
        )

        return Topology(
            network_id=network.id,
            internet_gateway_id=public.internet_gateway.id,
            public_route_table_id=public.route_table.id,
            public_subnet_ids=ids_of(public.subnets),
            private_subnet_ids=ids_of(private),
            nat_gateway_ids=ids_of(path.nat_gateway for path in nat_paths),
            private_route_table_ids=ids_of(path.route_table for path in nat_paths),
        )

    def allocate_network(self, spec: NetworkSpec) -> ResourceHandle:
        spec.validate()
        logger.info("Allocating network %s (%s)", spec.name, spec.cidr_block)
        return self.graph.register(
            ResourceKind.NETWORK,
            spec.name,
            {
                "cidr_block": spec.cidr_block,
                "instance_tenancy": "default",
                "enable_dns_hostnames": spec.enable_dns_hostnames,
                "enable_dns_support": True,
                "tags": self._tags(spec.name, spec.tags),
            },
        )

    def build_public_path(
        self, network: ResourceHandle, subnets: Sequence[SubnetSpec]
    ) -> PublicPath:
        logger.info("Building public path with %d subnet(s)", len(subnets))
        gateway = self.graph.register(
            ResourceKind.INTERNET_GATEWAY,
            "internetGateway",
            {"tags": self._tags(f"{self.prefix}-Internet-Gateway")},
        )
        attachment = self.graph.register(
            ResourceKind.GATEWAY_ATTACHMENT,
            "internetGatewayAttachment",
            {"vpc_id": network.id, "internet_gateway_id": gateway.id},
            depends_on=[network, gateway],
        )
        route_table = self.graph.register(
            ResourceKind.ROUTE_TABLE,
            "publicRouteTable",
            {"vpc_id": network.id, "tags": self._tags(f"{self.prefix}-Public-RouteTable")},
            depends_on=[network],
        )
        # IGW routes fail unless the gateway is attached first
        self.graph.register(
            ResourceKind.ROUTE,
            "publicRoute",
            {
                "route_table_id": route_table.id,
                "destination_cidr_block": DEFAULT_ROUTE,
                "gateway_id": gateway.id,
            },
            depends_on=[route_table, gateway, attachment],
        )

        handles = []
        for i, spec in enumerate(subnets):
            subnet = self._subnet(network, spec)
            self._associate(f"publicRouteTableAssociation-{i + 1}", subnet, route_table)
            handles.append(subnet)

        return PublicPath(
            internet_gateway=gateway,
            attachment=attachment,
            route_table=route_table,
            subnets=tuple(handles),
        )

    def provision_nat(
        self,
        network: ResourceHandle,
        anchors: Sequence[ResourceHandle],
        private_count: int,
        attachment: ResourceHandle | None = None,
    ) -> list[NatPath]:
        """
        Create one elastic address, NAT gateway and private route table per anchor.

        Returns an empty list when there are no private subnets to serve.

        Raises:
            ConfigurationError: if private subnets exist but the anchors cannot
                serve them under the configured strategy.
        """
        if private_count == 0:
            return []
        if not anchors:
            raise ConfigurationError(
                "private subnets need a public subnet to anchor a NAT gateway"
            )
        if self.config.nat_strategy is NatStrategy.SHARED and len(anchors) != 1:
            raise ConfigurationError(
                f"shared NAT strategy takes exactly one anchor, got {len(anchors)}"
            )
        if self.config.nat_strategy is NatStrategy.PER_SUBNET and len(anchors) != private_count:
            raise ConfigurationError(
                f"per-subnet NAT strategy needs one anchor per private subnet: "
                f"{len(anchors)} anchors for {private_count} private subnets"
            )

        logger.info(
            "Provisioning %d NAT gateway(s) (%s)", len(anchors), self.config.nat_strategy.value
        )
        paths = []
        for i, anchor in enumerate(anchors):
            suffix = self._suffix(i)
            address = self.graph.register(
                ResourceKind.ELASTIC_ADDRESS,
                f"elasticIp{suffix}",
                {"domain": "vpc", "tags": self._tags(f"{self.prefix}-ElasticIp{suffix}")},
            )
            nat_depends = [address, anchor]
            if attachment is not None:
                nat_depends.append(attachment)
            nat_gateway = self.graph.register(
                ResourceKind.NAT_GATEWAY,
                f"natGateway{suffix}",
                {
                    "allocation_id": address.id,
                    "subnet_id": anchor.id,
                    "tags": self._tags(f"{self.prefix}-Nat-Gateway{suffix}"),
                },
                depends_on=nat_depends,
            )
            route_table = self.graph.register(
                ResourceKind.ROUTE_TABLE,
                f"privateRouteTable{suffix}",
                {
                    "vpc_id": network.id,
                    "tags": self._tags(f"{self.prefix}-Private-RouteTable{suffix}"),
                },
                depends_on=[network],
            )
            self.graph.register(
                ResourceKind.ROUTE,
                f"privateRoute{suffix}",
                {
                    "route_table_id": route_table.id,
                    "destination_cidr_block": DEFAULT_ROUTE,
                    "nat_gateway_id": nat_gateway.id,
                },
                depends_on=[route_table, nat_gateway],
            )
            paths.append(NatPath(address=address, nat_gateway=nat_gateway, route_table=route_table))
        return paths

    def build_private_path(
        self,
        network: ResourceHandle,
        subnets: Sequence[SubnetSpec],
        route_tables: Sequence[ResourceHandle],
    ) -> list[ResourceHandle]:
        if not subnets:
            return []
        if not route_tables:
            raise ConfigurationError("private subnets have no private route table to join")
        if self.config.nat_strategy is NatStrategy.SHARED:
            if len(route_tables) != 1:
                raise ConfigurationError(
                    f"shared NAT strategy expects one private route table, got {len(route_tables)}"
                )
            tables = [route_tables[0]] * len(subnets)
        else:
            if len(route_tables) != len(subnets):
                raise ConfigurationError(
                    f"{len(subnets)} private subnets but {len(route_tables)} private route tables"
                )
            tables = list(route_tables)

        logger.info("Building private path with %d subnet(s)", len(subnets))
        handles = []
        for i, (spec, route_table) in enumerate(zip(subnets, tables)):
            subnet = self._subnet(network, spec)
            self._associate(f"privateRouteTableAssociation-{i + 1}", subnet, route_table)
            handles.append(subnet)
        return handles

    def _subnet(self, network: ResourceHandle, spec: SubnetSpec) -> ResourceHandle:
        return self.graph.register(
            ResourceKind.SUBNET,
            spec.name,
            {
                "vpc_id": network.id,
                "cidr_block": spec.cidr_block,
                "availability_zone": spec.availability_zone,
                "map_public_ip_on_launch": spec.assign_public_address,
                "tags": self._tags(spec.name, spec.tags),
            },
            depends_on=[network],
        )

    def _associate(
        self, name: str, subnet: ResourceHandle, route_table: ResourceHandle
    ) -> ResourceHandle:
        return self.graph.register(
            ResourceKind.ROUTE_TABLE_ASSOCIATION,
            name,
            {"subnet_id": subnet.id, "route_table_id": route_table.id},
            depends_on=[subnet, route_table],
        )
