#!/usr/bin/env python3
import logging
import os

import aws_cdk as cdk
from groundwork import GroundworkConfig
from network_stack import NetworkStack

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

app = cdk.App()

# Get configuration from context
env = cdk.Environment(
    account=app.node.try_get_context("account"),
    region=app.node.try_get_context("region")
)
config = GroundworkConfig.from_dict(app.node.try_get_context("groundwork"))

stack_name = app.node.try_get_context("stack_name") or "GroundworkNetworkStack"
NetworkStack(app, stack_name, config=config, env=env)

app.synth()
