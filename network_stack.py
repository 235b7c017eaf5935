from aws_cdk import CfnOutput, Fn, Stack
from constructs import Construct

from groundwork import GroundworkConfig
from groundwork.construct import GroundWork


class NetworkStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, config: GroundworkConfig, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # VPC, public subnets behind the IGW, private subnets behind NAT
        self.groundwork = GroundWork(self, "GroundWork", config=config)
        self.topology = self.groundwork.topology

        # CloudFormation exports for downstream stacks
        CfnOutput(
            self, "VpcId",
            value=self.topology.network_id,
            export_name=f"{self.stack_name}-VpcId"
        )
        CfnOutput(
            self, "InternetGatewayId",
            value=self.topology.internet_gateway_id,
            export_name=f"{self.stack_name}-InternetGatewayId"
        )
        self._list_output("PublicSubnetIds", self.topology.public_subnet_ids)
        self._list_output("PrivateSubnetIds", self.topology.private_subnet_ids)
        self._list_output("NatGatewayIds", self.topology.nat_gateway_ids)

    def _list_output(self, name: str, ids: tuple[str, ...]) -> None:
        # Empty outputs are rejected by CloudFormation
        if not ids:
            return
        CfnOutput(
            self, name,
            value=Fn.join(",", list(ids)),
            export_name=f"{self.stack_name}-{name}"
        )
