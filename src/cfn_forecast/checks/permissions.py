"""
Generic permission check.

Simulates every IAM action the resource type's CloudFormation handler needs
for the stack action, against the role the deployment will run as.
"""

from __future__ import annotations

import logging

from ..errors import CheckExecutionError
from ..models import Forecast, ResourceContext
from .base import string_property

logger = logging.getLogger(__name__)

# (ARN format, name property) for types whose ARN can be derived from a name
ARN_FORMATS: dict[str, tuple[str, str]] = {
    "AWS::DynamoDB::Table": (
        "arn:{partition}:dynamodb:{region}:{account}:table/{name}",
        "TableName",
    ),
    "AWS::ECR::Repository": (
        "arn:{partition}:ecr:{region}:{account}:repository/{name}",
        "RepositoryName",
    ),
    "AWS::IAM::Role": ("arn:{partition}:iam::{account}:role/{name}", "RoleName"),
    "AWS::IAM::User": ("arn:{partition}:iam::{account}:user/{name}", "UserName"),
    "AWS::Lambda::Function": (
        "arn:{partition}:lambda:{region}:{account}:function:{name}",
        "FunctionName",
    ),
    "AWS::Logs::LogGroup": (
        "arn:{partition}:logs:{region}:{account}:log-group:{name}",
        "LogGroupName",
    ),
    "AWS::S3::Bucket": ("arn:{partition}:s3:::{name}", "BucketName"),
    "AWS::SNS::Topic": ("arn:{partition}:sns:{region}:{account}:{name}", "TopicName"),
    "AWS::SQS::Queue": ("arn:{partition}:sqs:{region}:{account}:{name}", "QueueName"),
}


def resource_arn_pattern(context: ResourceContext) -> str:
    """
    Get the ARN, or ARN pattern, the resource will have.

    Unnamed resources get a wildcard name; unknown types get "*".
    """
    entry = ARN_FORMATS.get(context.type_name)
    if entry is None:
        return "*"
    arn_format, name_property = entry
    name = string_property(context, name_property) or "*"
    return arn_format.format(
        partition=context.env.partition,
        region=context.env.region,
        account=context.env.account,
        name=name,
    )


def check_permissions(context: ResourceContext) -> Forecast:
    """
    Check the deploying role may perform every action the handler needs.

    Each action gives one entry. If the registry or the simulator cannot be
    reached, the entries gathered so far are kept and a single unknown entry
    is added.
    """
    forecast = context.make_forecast()

    try:
        actions = context.account.get_type_permissions(context.type_name, context.action)
        resource_arn = resource_arn_pattern(context)
        logger.debug(
            "Checking %d actions for %s on %s", len(actions), context.logical_id, resource_arn
        )
        for action in actions:
            if context.account.evaluate_authorization(context.role_arn, action, resource_arn):
                forecast.add(True, f"Permission granted: {action}")
            else:
                forecast.add(False, f"Insufficient permissions: {action}")
    except CheckExecutionError as e:
        logger.debug("Unable to check permissions for %s: %s", context.logical_id, e)
        forecast.add_unknown(f"Unable to check permissions: {e.message}")

    return forecast
