"""Tests for topology configuration parsing and validation."""

import json
from dataclasses import replace
from pathlib import Path

import pytest

from groundwork import (
    DEFAULT_TAGS,
    ConfigurationError,
    GroundworkConfig,
    NatStrategy,
    NetworkSpec,
    SubnetSpec,
)
from groundwork.config import merge_tags

from .factories import make_config

CDK_JSON = Path(__file__).resolve().parent.parent / "cdk.json"


class TestMergeTags:
    def test_later_sets_win(self) -> None:
        merged = merge_tags({"Package": "groundwork_aws", "Team": "a"}, {"Team": "b"})
        assert merged == {"Package": "groundwork_aws", "Team": "b"}

    def test_none_overrides_ignored(self) -> None:
        assert merge_tags({"A": "1"}, None, {}) == {"A": "1"}

    def test_defaults_not_mutated(self) -> None:
        defaults = {"A": "1"}
        merge_tags(defaults, {"A": "2"})
        assert defaults == {"A": "1"}


class TestNetworkValidation:
    @pytest.mark.parametrize(
        "cidr",
        ["", "10.0.0.0", "10.0.0.1/16", "not-a-cidr", "10.0.0.0/8", "10.0.0.0/29", "fd00::/56"],
    )
    def test_invalid_cidr_rejected(self, cidr: str) -> None:
        with pytest.raises(ConfigurationError):
            NetworkSpec(name="net", cidr_block=cidr).validate()

    def test_reserved_range_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="reserved"):
            NetworkSpec(name="net", cidr_block="169.254.0.0/16").validate()

    def test_missing_name_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            NetworkSpec(name="", cidr_block="10.0.0.0/16").validate()

    def test_valid_network(self) -> None:
        network = NetworkSpec(name="net", cidr_block="10.0.0.0/16").validate()
        assert network.prefixlen == 16


class TestSubnetValidation:
    def test_subnet_outside_network(self) -> None:
        config = make_config(public=0, private=0)
        config = replace(
            config,
            public_subnets=(SubnetSpec(name="out", cidr_block="10.1.0.0/20", availability_zone="a"),),
        )
        with pytest.raises(ConfigurationError, match="not inside"):
            config.validate()

    def test_overlap_between_public_and_private(self) -> None:
        config = make_config(public=1, private=0)
        config = replace(
            config,
            private_subnets=(SubnetSpec(name="clash", cidr_block="10.0.8.0/24", availability_zone="a"),),
        )
        with pytest.raises(ConfigurationError, match="overlaps"):
            config.validate()

    def test_duplicate_names(self) -> None:
        config = make_config(public=1, private=0)
        config = replace(
            config,
            private_subnets=(
                SubnetSpec(name="Public-1", cidr_block="10.0.128.0/20", availability_zone="a"),
            ),
        )
        with pytest.raises(ConfigurationError, match="duplicate"):
            config.validate()

    def test_missing_availability_zone(self) -> None:
        config = make_config(public=0, private=0)
        config = replace(
            config,
            public_subnets=(SubnetSpec(name="az", cidr_block="10.0.0.0/20", availability_zone=""),),
        )
        with pytest.raises(ConfigurationError, match="availability zone"):
            config.validate()


class TestNatAnchors:
    def test_no_private_subnets_no_anchors(self) -> None:
        assert make_config(public=2, private=0).resolve_nat_anchors() == []

    def test_shared_uses_first_public_subnet(self) -> None:
        assert make_config(public=3, private=2).resolve_nat_anchors() == [0]

    def test_shared_with_named_anchor(self) -> None:
        config = make_config(public=3, private=2, nat_anchors=("Public-3",))
        assert config.resolve_nat_anchors() == [2]

    def test_shared_rejects_several_anchors(self) -> None:
        config = make_config(public=2, private=1, nat_anchors=("Public-1", "Public-2"))
        with pytest.raises(ConfigurationError, match="exactly one"):
            config.resolve_nat_anchors()

    def test_private_without_public(self) -> None:
        with pytest.raises(ConfigurationError, match="anchor"):
            make_config(public=0, private=1).resolve_nat_anchors()

    def test_unknown_anchor(self) -> None:
        config = make_config(public=1, private=1, nat_anchors=("Nope",))
        with pytest.raises(ConfigurationError, match="not a public subnet"):
            config.resolve_nat_anchors()

    def test_per_subnet_count_mismatch(self) -> None:
        config = make_config(public=1, private=2, nat_strategy=NatStrategy.PER_SUBNET)
        with pytest.raises(ConfigurationError, match="one anchor per private subnet"):
            config.resolve_nat_anchors()

    def test_repeated_anchor_rejected(self) -> None:
        config = make_config(
            public=2,
            private=2,
            nat_strategy=NatStrategy.PER_SUBNET,
            nat_anchors=("Public-1", "Public-1"),
        )
        with pytest.raises(ConfigurationError, match="more than once"):
            config.resolve_nat_anchors()

    def test_per_subnet_explicit_anchors(self) -> None:
        config = make_config(
            public=3,
            private=2,
            nat_strategy=NatStrategy.PER_SUBNET,
            nat_anchors=("Public-3", "Public-1"),
        )
        assert config.resolve_nat_anchors() == [2, 0]


class TestSharedNatZones:
    def test_warns_across_zones(self) -> None:
        assert make_config(public=1, private=2).shared_nat_zones() == [
            "eu-central-1a",
            "eu-central-1b",
        ]

    def test_single_zone(self) -> None:
        assert make_config(public=1, private=1).shared_nat_zones() == []

    def test_per_subnet_never_warns(self) -> None:
        config = make_config(public=2, private=2, nat_strategy=NatStrategy.PER_SUBNET)
        assert config.shared_nat_zones() == []


class TestFromDict:
    def test_minimal_mapping(self) -> None:
        config = GroundworkConfig.from_dict(
            {"network": {"name": "net", "cidr_block": "10.0.0.0/16"}}
        )
        assert config.network.enable_dns_hostnames is True
        assert config.public_subnets == ()
        assert config.private_subnets == ()
        assert config.nat_strategy is NatStrategy.SHARED
        assert config.nat_anchors is None
        assert config.default_tags == DEFAULT_TAGS

    def test_subnet_visibility_defaults(self) -> None:
        config = GroundworkConfig.from_dict(
            {
                "network": {"name": "net", "cidr_block": "10.0.0.0/16"},
                "public_subnets": [
                    {"name": "pub", "cidr_block": "10.0.0.0/20", "availability_zone": "a"}
                ],
                "private_subnets": [
                    {"name": "priv", "cidr_block": "10.0.16.0/20", "availability_zone": "a"}
                ],
            }
        )
        assert config.public_subnets[0].assign_public_address is True
        assert config.private_subnets[0].assign_public_address is False

    def test_per_subnet_strategy(self) -> None:
        config = GroundworkConfig.from_dict(
            {
                "network": {"name": "net", "cidr_block": "10.0.0.0/16"},
                "nat_strategy": "per_subnet",
                "nat_anchors": ["a", "b"],
            }
        )
        assert config.nat_strategy is NatStrategy.PER_SUBNET
        assert config.nat_anchors == ("a", "b")

    def test_custom_default_tags(self) -> None:
        config = GroundworkConfig.from_dict(
            {
                "network": {"name": "net", "cidr_block": "10.0.0.0/16"},
                "default_tags": {"Owner": "platform"},
            }
        )
        assert config.default_tags == {"Owner": "platform"}

    @pytest.mark.parametrize(
        "data",
        [
            None,
            [],
            {},
            {"network": {"cidr_block": "10.0.0.0/16"}},
            {"network": {"name": "net"}},
            {"network": {"name": "net", "cidr_block": "10.0.0.0/16"}, "nat_strategy": "many"},
            {
                "network": {"name": "net", "cidr_block": "10.0.0.0/16"},
                "public_subnets": [{"name": "pub", "cidr_block": "10.0.0.0/20"}],
            },
            {"network": {"name": "net", "cidr_block": "10.0.0.0/16"}, "private_subnets": ["x"]},
        ],
    )
    def test_malformed_mapping(self, data) -> None:
        with pytest.raises(ConfigurationError):
            GroundworkConfig.from_dict(data)

    @pytest.mark.parametrize(
        "data",
        [
            {"network": {"name": "net", "cidr_block": "10.0.0.0/16", "tags": {"Team": 1}}},
            {"network": {"name": "net", "cidr_block": "10.0.0.0/16", "tags": ["Team"]}},
            {"network": {"name": "net", "cidr_block": "10.0.0.0/16"}, "default_tags": {"Owner": None}},
            {
                "network": {"name": "net", "cidr_block": "10.0.0.0/16"},
                "public_subnets": [
                    {
                        "name": "pub",
                        "cidr_block": "10.0.0.0/20",
                        "availability_zone": "a",
                        "tags": {"Tier": True},
                    }
                ],
            },
        ],
    )
    def test_non_string_tags_rejected(self, data) -> None:
        with pytest.raises(ConfigurationError, match="tag"):
            GroundworkConfig.from_dict(data)

    def test_cdk_json_context_is_valid(self) -> None:
        context = json.loads(CDK_JSON.read_text())["context"]
        config = GroundworkConfig.from_dict(context["groundwork"])
        config.validate()
        assert config.network.name == "EKS"
        assert len(config.public_subnets) == 2
        assert len(config.private_subnets) == 2
