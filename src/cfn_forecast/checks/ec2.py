"""
EC2 predictors.
"""

from __future__ import annotations

import ipaddress
from typing import Any

from ..errors import CheckExecutionError
from ..models import Forecast, ResourceContext
from .base import predictor, property_line, string_property


def check_image_and_instance_type(context: ResourceContext, forecast: Forecast) -> None:
    """
    Check the AMI exists and the instance type can run its architecture.

    Shared by instances and launch configurations.
    """
    image_id = string_property(context, "ImageId")
    if image_id is None:
        return
    instance_type = string_property(context, "InstanceType")

    image_line = property_line(context, "ImageId")

    try:
        image = context.account.describe_image(image_id)
        if image is None:
            forecast.add(False, f"AMI {image_id} does not exist", image_line)
            return
        forecast.add(True, f"AMI {image_id} exists", image_line)

        if instance_type is None:
            return
        line = property_line(context, "InstanceType")
        architectures = context.account.get_instance_type_architectures(instance_type)
    except CheckExecutionError as e:
        forecast.add_unknown(f"Unable to check image {image_id}: {e.message}")
        return

    if not architectures:
        forecast.add(False, f"Instance type {instance_type} is not available", line)
        return

    architecture = image.get("Architecture", "")
    if architecture in architectures:
        forecast.add(True, f"Instance type {instance_type} supports {architecture}")
    else:
        forecast.add(
            False,
            f"Instance type {instance_type} does not support {architecture} image {image_id}",
            line,
        )


@predictor("AWS::EC2::Instance")
def check_ec2_instance(context: ResourceContext) -> Forecast:
    forecast = context.make_forecast()
    check_image_and_instance_type(context, forecast)
    return forecast


def _port(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def rule_problems(rule: dict[str, Any]) -> list[str]:
    """Describe what is wrong with one ingress or egress rule."""
    problems = []

    cidr = rule.get("CidrIp")
    if isinstance(cidr, str):
        try:
            ipaddress.IPv4Network(cidr, strict=False)
        except ValueError:
            problems.append(f"invalid CidrIp {cidr}")

    cidr6 = rule.get("CidrIpv6")
    if isinstance(cidr6, str):
        try:
            ipaddress.IPv6Network(cidr6, strict=False)
        except ValueError:
            problems.append(f"invalid CidrIpv6 {cidr6}")

    protocol = str(rule.get("IpProtocol", ""))
    if protocol not in ("-1", "all"):
        from_port = _port(rule.get("FromPort"))
        to_port = _port(rule.get("ToPort"))
        # ToPort -1 means all ICMP codes
        if from_port is not None and to_port is not None and to_port != -1:
            if from_port > to_port:
                problems.append(f"FromPort {from_port} is greater than ToPort {to_port}")

    return problems


@predictor("AWS::EC2::SecurityGroup")
def check_ec2_security_group(context: ResourceContext) -> Forecast:
    """Check the inline ingress and egress rules."""
    forecast = context.make_forecast()

    checked = 0
    invalid = False
    for key in ("SecurityGroupIngress", "SecurityGroupEgress"):
        rules = context.properties.get(key)
        if not isinstance(rules, list):
            continue
        for i, rule in enumerate(rules):
            if not isinstance(rule, dict):
                continue
            checked += 1
            for problem in rule_problems(rule):
                invalid = True
                forecast.add(False, f"{key} rule {i}: {problem}", property_line(context, key, i))

    if checked and not invalid:
        forecast.add(True, "Security group rules are valid")
    return forecast
