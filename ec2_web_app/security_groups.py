#!/usr/bin/env python3
"""
Security Groups

Translates the high-level ingress rules of the deployment config into an
EC2 security group:
- Per-instance security group
- Ingress rules by protocol/port/CIDR
- Egress all (or nothing) as configured
"""

import ipaddress
import logging
from typing import List, Optional

from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from .config import IngressRule, SecurityGroupConfig

logger = logging.getLogger("security_groups")


def peer_for(cidr: str) -> ec2.IPeer:
    """Map a CIDR onto a CDK peer; the all-address ranges use the any-peers."""
    if cidr == "0.0.0.0/0":
        return ec2.Peer.any_ipv4()
    if cidr == "::/0":
        return ec2.Peer.any_ipv6()
    if ipaddress.ip_network(cidr).version == 6:
        return ec2.Peer.ipv6(cidr)
    return ec2.Peer.ipv4(cidr)


def port_for(protocol: str, port: Optional[int] = None) -> ec2.Port:
    if protocol == "tcp":
        return ec2.Port.tcp(port)
    if protocol == "udp":
        return ec2.Port.udp(port)
    if protocol == "icmp":
        return ec2.Port.all_icmp()
    raise ValueError(f"Unsupported protocol: {protocol}")


def describe_rules(rules: List[IngressRule]) -> List[str]:
    """Render rules as readable lines, e.g. 'ingress tcp/80 from 0.0.0.0/0'."""
    lines = []
    for rule in rules:
        target = rule.protocol if rule.protocol == "icmp" else f"{rule.protocol}/{rule.port}"
        line = f"ingress {target} from {rule.cidr}"
        if rule.description:
            line += f" ({rule.description})"
        lines.append(line)
    return lines


def build_security_group(
    scope: Construct, construct_id: str, vpc: ec2.IVpc, config: SecurityGroupConfig
) -> ec2.SecurityGroup:
    """Create the security group and add one ingress rule per configured rule."""
    security_group = ec2.SecurityGroup(
        scope,
        construct_id,
        vpc=vpc,
        allow_all_outbound=config.allow_all_outbound,
        description=config.description,
    )

    for rule, line in zip(config.ingress, describe_rules(config.ingress)):
        logger.info(f"  {construct_id}: {line}")
        security_group.add_ingress_rule(
            peer_for(rule.cidr),
            port_for(rule.protocol, rule.port),
            rule.description or None,
        )

    return security_group
