"""
Generic existence check.

A resource with an explicit name collides with anything of the same name
that already exists in the account, unless the target stack already
manages it.
"""

from __future__ import annotations

import logging

from ..errors import CheckExecutionError
from ..models import Forecast, ResourceContext
from .base import property_line, string_property

logger = logging.getLogger(__name__)

# Property holding the primary identifier, for types identified by name
NAME_PROPERTIES: dict[str, str] = {
    "AWS::DynamoDB::Table": "TableName",
    "AWS::EC2::KeyPair": "KeyName",
    "AWS::ECR::Repository": "RepositoryName",
    "AWS::ECS::Cluster": "ClusterName",
    "AWS::IAM::Group": "GroupName",
    "AWS::IAM::InstanceProfile": "InstanceProfileName",
    "AWS::IAM::Role": "RoleName",
    "AWS::IAM::User": "UserName",
    "AWS::KMS::Alias": "AliasName",
    "AWS::Kinesis::Stream": "Name",
    "AWS::Lambda::Function": "FunctionName",
    "AWS::Logs::LogGroup": "LogGroupName",
    "AWS::RDS::DBCluster": "DBClusterIdentifier",
    "AWS::RDS::DBInstance": "DBInstanceIdentifier",
    "AWS::S3::Bucket": "BucketName",
    "AWS::SSM::Parameter": "Name",
}


def expected_identity(context: ResourceContext) -> str | None:
    """
    Get the physical id the resource will have, if it is fixed by the template.

    Returns None when CloudFormation will generate the name, or when the
    name is an intrinsic that cannot be resolved before deployment.
    """
    name_property = NAME_PROPERTIES.get(context.type_name)
    if name_property is None:
        return None
    identity = string_property(context, name_property)
    if identity is None and name_property in context.properties:
        logger.debug("%s of %s is not resolvable", name_property, context.logical_id)
    return identity


def _owned_by_stack(context: ResourceContext, identity: str) -> bool:
    for resource in context.account.get_stack_resources(context.stack_name):
        if (
            resource.get("LogicalResourceId") == context.logical_id
            and resource.get("PhysicalResourceId") == identity
        ):
            return True
    return False


def check_exists(context: ResourceContext) -> Forecast:
    """Check that the resource will not collide with one outside the stack."""
    forecast = context.make_forecast()

    identity = expected_identity(context)
    if identity is None:
        forecast.add(True, "Does not exist")
        return forecast

    line = property_line(context, NAME_PROPERTIES[context.type_name])
    try:
        exists = context.account.resource_exists(context.type_name, identity)
        owned = exists and context.stack_exists and _owned_by_stack(context, identity)
    except CheckExecutionError as e:
        forecast.add_unknown(f"Unable to check if {identity} exists: {e.message}", line)
        return forecast

    logger.debug("%s %s exists=%s owned=%s", context.type_name, identity, exists, owned)
    if not exists:
        forecast.add(True, "Does not exist")
    elif owned:
        forecast.add(True, "Exists in stack")
    else:
        forecast.add(False, "Already exists", line)
    return forecast
