import pytest

from groundwork import GroundworkConfig, NetworkSpec, SubnetSpec


@pytest.fixture
def example_config() -> GroundworkConfig:
    """One public subnet in zone a, one private subnet in zone b."""
    return GroundworkConfig(
        network=NetworkSpec(name="EKS", cidr_block="10.0.0.0/16"),
        public_subnets=(
            SubnetSpec(
                name="EKS-Public-1",
                cidr_block="10.0.0.0/20",
                availability_zone="a",
                assign_public_address=True,
            ),
        ),
        private_subnets=(
            SubnetSpec(name="EKS-Private-1", cidr_block="10.0.64.0/20", availability_zone="b"),
        ),
    )
