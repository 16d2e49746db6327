"""EC2 web app deployment: CDK stack, config loading and validation."""

__version__ = "0.1.0"
