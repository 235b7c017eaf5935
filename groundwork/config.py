"""
Topology configuration: network, subnets and NAT strategy.

The configuration is normally read from the ``groundwork`` key of the CDK
context (see ``cdk.json``) and parsed with ``GroundworkConfig.from_dict``.
"""

import ipaddress
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import ConfigurationError

DEFAULT_TAGS: dict[str, str] = {
    "Package": "groundwork_aws",
    "Created-By": "aws-cdk",
}

# AWS accepts VPC and subnet blocks between /16 and /28
MIN_PREFIX = 16
MAX_PREFIX = 28

RESERVED_RANGES = (
    ipaddress.IPv4Network("0.0.0.0/8"),
    ipaddress.IPv4Network("127.0.0.0/8"),
    ipaddress.IPv4Network("169.254.0.0/16"),
    ipaddress.IPv4Network("224.0.0.0/4"),
    ipaddress.IPv4Network("240.0.0.0/4"),
)


class NatStrategy(str, Enum):
    """How many NAT gateways serve the private subnets."""

    SHARED = "shared"
    PER_SUBNET = "per_subnet"


def merge_tags(defaults: dict[str, str], *overrides: dict[str, str] | None) -> dict[str, str]:
    merged = dict(defaults)
    for tags in overrides:
        if tags:
            merged.update(tags)
    return merged


def parse_cidr(cidr_block: str, owner: str) -> ipaddress.IPv4Network:
    """Parse an IPv4 CIDR string, raising ConfigurationError on anything else."""
    if not isinstance(cidr_block, str) or not cidr_block:
        raise ConfigurationError(f"{owner}: missing CIDR block")
    try:
        network = ipaddress.ip_network(cidr_block, strict=True)
    except ValueError as exc:
        raise ConfigurationError(f"{owner}: invalid CIDR block {cidr_block!r}: {exc}") from exc
    if not isinstance(network, ipaddress.IPv4Network):
        raise ConfigurationError(f"{owner}: {cidr_block!r} is not an IPv4 CIDR block")
    if not MIN_PREFIX <= network.prefixlen <= MAX_PREFIX:
        raise ConfigurationError(
            f"{owner}: prefix /{network.prefixlen} outside /{MIN_PREFIX}../{MAX_PREFIX}"
        )
    return network


@dataclass(frozen=True)
class NetworkSpec:
    name: str
    cidr_block: str
    enable_dns_hostnames: bool = True
    tags: dict[str, str] = field(default_factory=dict)

    def validate(self) -> ipaddress.IPv4Network:
        if not self.name:
            raise ConfigurationError("network: missing name")
        network = parse_cidr(self.cidr_block, f"network {self.name!r}")
        for reserved in RESERVED_RANGES:
            if network.overlaps(reserved):
                raise ConfigurationError(
                    f"network {self.name!r}: {self.cidr_block} overlaps reserved range {reserved}"
                )
        return network


@dataclass(frozen=True)
class SubnetSpec:
    name: str
    cidr_block: str
    availability_zone: str
    assign_public_address: bool = False
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GroundworkConfig:
    """Complete input for one topology."""

    network: NetworkSpec
    public_subnets: tuple[SubnetSpec, ...] = ()
    private_subnets: tuple[SubnetSpec, ...] = ()
    nat_strategy: NatStrategy = NatStrategy.SHARED
    nat_anchors: tuple[str, ...] | None = None
    default_tags: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TAGS))

    def validate(self) -> None:
        """
        Check the whole configuration.

        Raises:
            ConfigurationError: on invalid CIDRs, subnets outside the network,
                overlapping subnets, duplicate names or unusable NAT anchors.
        """
        network = self.network.validate()

        seen: dict[str, ipaddress.IPv4Network] = {}
        for subnet in (*self.public_subnets, *self.private_subnets):
            owner = f"subnet {subnet.name!r}"
            if not subnet.name:
                raise ConfigurationError("subnet: missing name")
            if subnet.name in seen:
                raise ConfigurationError(f"{owner}: duplicate subnet name")
            if not subnet.availability_zone:
                raise ConfigurationError(f"{owner}: missing availability zone")
            block = parse_cidr(subnet.cidr_block, owner)
            if not block.subnet_of(network):
                raise ConfigurationError(
                    f"{owner}: {subnet.cidr_block} is not inside network {self.network.cidr_block}"
                )
            for other_name, other in seen.items():
                if block.overlaps(other):
                    raise ConfigurationError(
                        f"{owner}: {subnet.cidr_block} overlaps subnet {other_name!r} ({other})"
                    )
            seen[subnet.name] = block

        self.resolve_nat_anchors()

    def shared_nat_zones(self) -> list[str]:
        # empty unless one shared NAT serves private subnets in several zones
        if self.nat_strategy is not NatStrategy.SHARED:
            return []
        zones = sorted({subnet.availability_zone for subnet in self.private_subnets})
        return zones if len(zones) > 1 else []

    def resolve_nat_anchors(self) -> list[int]:
        """Indexes of the public subnets that anchor NAT gateways."""
        if not self.private_subnets:
            return []

        public_names = [subnet.name for subnet in self.public_subnets]
        if self.nat_anchors is None:
            indexes = list(range(len(public_names)))
            if self.nat_strategy is NatStrategy.SHARED:
                indexes = indexes[:1]
        else:
            indexes = []
            for name in self.nat_anchors:
                if name not in public_names:
                    raise ConfigurationError(f"NAT anchor {name!r} is not a public subnet")
                if public_names.index(name) in indexes:
                    raise ConfigurationError(f"NAT anchor {name!r} is listed more than once")
                indexes.append(public_names.index(name))

        if not indexes:
            raise ConfigurationError(
                "private subnets need at least one public subnet to anchor a NAT gateway"
            )
        if self.nat_strategy is NatStrategy.SHARED and len(indexes) != 1:
            raise ConfigurationError(
                f"shared NAT strategy takes exactly one anchor, got {len(indexes)}"
            )
        if self.nat_strategy is NatStrategy.PER_SUBNET and len(indexes) != len(self.private_subnets):
            raise ConfigurationError(
                f"per-subnet NAT strategy needs one anchor per private subnet: "
                f"{len(indexes)} anchors for {len(self.private_subnets)} private subnets"
            )
        return indexes

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GroundworkConfig":
        """Build a config from a plain mapping such as the CDK context value."""
        if not isinstance(data, dict):
            raise ConfigurationError("groundwork configuration must be a mapping")
        network = data.get("network")
        if not isinstance(network, dict):
            raise ConfigurationError("groundwork configuration is missing 'network'")

        try:
            strategy = NatStrategy(data.get("nat_strategy", NatStrategy.SHARED.value))
        except ValueError as exc:
            raise ConfigurationError(f"unknown NAT strategy {data.get('nat_strategy')!r}") from exc

        anchors = data.get("nat_anchors")
        default_tags = data.get("default_tags")
        return cls(
            network=NetworkSpec(
                name=_required(network, "name", "network"),
                cidr_block=_required(network, "cidr_block", "network"),
                enable_dns_hostnames=bool(network.get("enable_dns_hostnames", True)),
                tags=_tag_map(network.get("tags"), "network"),
            ),
            public_subnets=_subnets(data.get("public_subnets"), default_public=True),
            private_subnets=_subnets(data.get("private_subnets"), default_public=False),
            nat_strategy=strategy,
            nat_anchors=tuple(anchors) if anchors is not None else None,
            default_tags=(
                dict(DEFAULT_TAGS) if default_tags is None else _tag_map(default_tags, "default_tags")
            ),
        )


def _required(data: dict[str, Any], key: str, owner: str) -> Any:
    if key not in data:
        raise ConfigurationError(f"{owner}: missing '{key}'")
    return data[key]


def _subnets(items: list[dict[str, Any]] | None, default_public: bool) -> tuple[SubnetSpec, ...]:
    subnets = []
    for item in items or []:
        if not isinstance(item, dict):
            raise ConfigurationError(f"subnet entries must be mappings, got {item!r}")
        owner = f"subnet {item.get('name', '?')!r}"
        subnets.append(
            SubnetSpec(
                name=_required(item, "name", owner),
                cidr_block=_required(item, "cidr_block", owner),
                availability_zone=_required(item, "availability_zone", owner),
                assign_public_address=bool(item.get("assign_public_address", default_public)),
                tags=_tag_map(item.get("tags"), owner),
            )
        )
    return tuple(subnets)


def _tag_map(value: Any, owner: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{owner}: tags must be a mapping, got {value!r}")
    for key, item in value.items():
        if not isinstance(key, str) or not isinstance(item, str):
            raise ConfigurationError(f"{owner}: tag {key!r}={item!r} must map a string to a string")
    return dict(value)
