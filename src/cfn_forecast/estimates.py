"""
Deployment time estimates.

Expected duration, in seconds, of creating or updating each resource type.
Types missing from the table count as one second.
"""

from __future__ import annotations

import logging

from .models import Action
from .template import Template

logger = logging.getLogger(__name__)

DEFAULT_ESTIMATE = 1

# (create, update) seconds, observed from typical stack events
_ESTIMATES: dict[str, tuple[int, int]] = {
    "AWS::ApiGateway::Deployment": (2, 2),
    "AWS::ApiGateway::Method": (2, 2),
    "AWS::ApiGateway::Resource": (2, 2),
    "AWS::ApiGateway::RestApi": (3, 2),
    "AWS::ApiGateway::Stage": (2, 2),
    "AWS::AutoScaling::AutoScalingGroup": (90, 60),
    "AWS::AutoScaling::LaunchConfiguration": (2, 2),
    "AWS::CertificateManager::Certificate": (240, 5),
    "AWS::CloudFront::Distribution": (300, 300),
    "AWS::CloudWatch::Alarm": (2, 2),
    "AWS::DynamoDB::Table": (10, 5),
    "AWS::EC2::EIP": (3, 2),
    "AWS::EC2::Instance": (40, 30),
    "AWS::EC2::InternetGateway": (18, 2),
    "AWS::EC2::LaunchTemplate": (3, 2),
    "AWS::EC2::NatGateway": (100, 100),
    "AWS::EC2::Route": (2, 2),
    "AWS::EC2::RouteTable": (3, 2),
    "AWS::EC2::SecurityGroup": (6, 3),
    "AWS::EC2::SecurityGroupIngress": (2, 2),
    "AWS::EC2::Subnet": (5, 3),
    "AWS::EC2::SubnetRouteTableAssociation": (3, 2),
    "AWS::EC2::VPC": (15, 3),
    "AWS::EC2::VPCGatewayAttachment": (17, 2),
    "AWS::ECS::Cluster": (7, 3),
    "AWS::ECS::Service": (120, 120),
    "AWS::ECS::TaskDefinition": (3, 3),
    "AWS::ElasticLoadBalancingV2::Listener": (2, 2),
    "AWS::ElasticLoadBalancingV2::LoadBalancer": (180, 30),
    "AWS::ElasticLoadBalancingV2::TargetGroup": (3, 2),
    "AWS::Events::Rule": (60, 60),
    "AWS::IAM::InstanceProfile": (120, 120),
    "AWS::IAM::ManagedPolicy": (10, 10),
    "AWS::IAM::Policy": (17, 17),
    "AWS::IAM::Role": (20, 15),
    "AWS::KMS::Key": (60, 5),
    "AWS::Lambda::Function": (8, 5),
    "AWS::Lambda::Permission": (2, 2),
    "AWS::Logs::LogGroup": (2, 2),
    "AWS::RDS::DBCluster": (600, 300),
    "AWS::RDS::DBInstance": (600, 300),
    "AWS::RDS::DBSubnetGroup": (3, 2),
    "AWS::Route53::RecordSet": (40, 40),
    "AWS::S3::Bucket": (22, 2),
    "AWS::S3::BucketPolicy": (2, 2),
    "AWS::SNS::Subscription": (2, 2),
    "AWS::SNS::Topic": (11, 3),
    "AWS::SQS::Queue": (62, 62),
    "AWS::SQS::QueuePolicy": (2, 2),
    "AWS::SSM::Parameter": (2, 2),
    "AWS::SecretsManager::Secret": (3, 2),
    "AWS::StepFunctions::StateMachine": (4, 3),
}


def estimate(type_name: str, action: Action) -> int:
    """
    Get the expected duration of an action on a resource type.

    Returns:
        Seconds, or DEFAULT_ESTIMATE when the type is not in the table
    """
    entry = _ESTIMATES.get(type_name)
    if entry is None:
        logger.debug("No estimate for %s %s, using default", type_name, action)
        return DEFAULT_ESTIMATE
    create, update = entry
    return create if action == Action.CREATE else update


def total_estimate(template: Template, stack_exists: bool) -> int:
    """Sum the estimates of every resource, using one action for the whole run."""
    action = Action.for_stack(stack_exists)
    return sum(estimate(r.type_name, action) for r in template.resources())


def format_estimate(seconds: int) -> str:
    """Format a duration for display."""
    if seconds < 60:
        return f"{seconds} seconds"
    minutes, remainder = divmod(seconds, 60)
    unit = "minute" if minutes == 1 else "minutes"
    if remainder == 0:
        return f"{minutes} {unit}"
    return f"{minutes} {unit}, {remainder} seconds"
