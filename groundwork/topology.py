"""Read-only summary of a constructed topology."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Topology:
    network_id: str
    internet_gateway_id: str
    public_route_table_id: str
    public_subnet_ids: tuple[str, ...] = ()
    private_subnet_ids: tuple[str, ...] = ()
    nat_gateway_ids: tuple[str, ...] = ()
    private_route_table_ids: tuple[str, ...] = ()

    def as_outputs(self) -> dict[str, str | list[str]]:
        return {
            "networkId": self.network_id,
            "internetGatewayId": self.internet_gateway_id,
            "publicSubnetIds": list(self.public_subnet_ids),
            "privateSubnetIds": list(self.private_subnet_ids),
            "natGatewayIds": list(self.nat_gateway_ids),
        }
