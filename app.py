#!/usr/bin/env python3
"""
EC2 Web App - CDK Entry Point

Loads the deployment config, logs diagnostics and validation results, and
synthesizes the Ec2WebAppStack. Context keys (`cdk synth -c key=value`):
- config: path to a deployment YAML file
- account / region / vpc_id / stack_name: override the file's values
"""

import aws_cdk as cdk

from ec2_web_app.config import load_config
from ec2_web_app.diagnostic_logger import DeploymentDiagnostics, configure_logging
from ec2_web_app.ec2_web_app_stack import Ec2WebAppStack
from ec2_web_app.validate import ConfigValidator

OVERRIDE_KEYS = ("account", "region", "vpc_id", "stack_name")


def main():
    configure_logging()
    diagnostics = DeploymentDiagnostics()
    diagnostics.log_environment()

    app = cdk.App()
    config = load_config(
        app.node.try_get_context("config"),
        overrides={key: app.node.try_get_context(key) for key in OVERRIDE_KEYS},
    )
    diagnostics.log_validation_report(ConfigValidator().validate_all(config))

    Ec2WebAppStack(
        app,
        config.stack_name,
        config=config,
        env=config.environment(),
        tags=config.tags,
        description="Single EC2 instance running the sample Python web app",
    )

    app.synth()
    diagnostics.generate_report()


if __name__ == "__main__":
    main()
