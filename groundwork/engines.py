"""
Resource engines.

``CdkEngine`` declares each registration as a CloudFormation L1 construct in
a CDK scope, leaving ordering and apply to CloudFormation. ``DryRunEngine``
hands out deterministic placeholder ids so a topology can be planned and
inspected without synthesizing anything.
"""

from collections.abc import Sequence
from typing import Any

from aws_cdk import CfnResource, CfnTag
from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from .graph import ResourceHandle, ResourceKind, referenced_values

CFN_TYPES: dict[ResourceKind, type[CfnResource]] = {
    ResourceKind.NETWORK: ec2.CfnVPC,
    ResourceKind.INTERNET_GATEWAY: ec2.CfnInternetGateway,
    ResourceKind.GATEWAY_ATTACHMENT: ec2.CfnVPCGatewayAttachment,
    ResourceKind.ROUTE_TABLE: ec2.CfnRouteTable,
    ResourceKind.ROUTE: ec2.CfnRoute,
    ResourceKind.SUBNET: ec2.CfnSubnet,
    ResourceKind.ROUTE_TABLE_ASSOCIATION: ec2.CfnSubnetRouteTableAssociation,
    ResourceKind.ELASTIC_ADDRESS: ec2.CfnEIP,
    ResourceKind.NAT_GATEWAY: ec2.CfnNatGateway,
}


class CdkEngine:
    def __init__(self, scope: Construct) -> None:
        self.scope = scope
        self.resources: dict[str, CfnResource] = {}

    def register(
        self,
        kind: ResourceKind,
        name: str,
        properties: dict[str, Any],
        depends_on: Sequence[ResourceHandle],
    ) -> str:
        kwargs = dict(properties)
        if "tags" in kwargs:
            kwargs["tags"] = [CfnTag(key=key, value=value) for key, value in kwargs["tags"].items()]

        resource = CFN_TYPES[kind](self.scope, name, **kwargs)

        # Ref/GetAtt in the properties already order the resources
        implied = set(referenced_values(properties))
        for dependency in depends_on:
            if dependency.id not in implied:
                resource.add_dependency(self.resources[dependency.name])

        self.resources[name] = resource
        if kind is ResourceKind.ELASTIC_ADDRESS:
            return resource.attr_allocation_id
        return resource.ref


class DryRunEngine:
    """Engine that only remembers registrations, in order."""

    def __init__(self) -> None:
        self.registrations: list[tuple[ResourceKind, str]] = []

    def register(
        self,
        kind: ResourceKind,
        name: str,
        properties: dict[str, Any],
        depends_on: Sequence[ResourceHandle],
    ) -> str:
        self.registrations.append((kind, name))
        return f"<{kind.value}:{name}>"
