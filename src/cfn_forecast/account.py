"""
Account collaborators used by the forecast engine.

The engine only talks to the account through the AccountClient protocol, so
checks can be exercised against fakes. The boto3 implementation lives in
``cfn_forecast.aws``.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from .errors import IdentityResolutionError
from .models import Action, Environment

logger = logging.getLogger(__name__)

# A stack in one of these states has no resources to collide with
NOT_EXISTING_STATUSES = {"REVIEW_IN_PROGRESS", "DELETE_COMPLETE"}


class AccountClient(Protocol):
    """
    Read-only view of the target account.

    Implementations raise CheckExecutionError when an API call fails.
    """

    @property
    def region(self) -> str: ...

    def get_caller_arn(self) -> str: ...

    def resource_exists(self, type_name: str, identifier: str) -> bool: ...

    def get_stack(self, stack_name: str) -> dict[str, Any] | None: ...

    def get_stack_resources(self, stack_name: str) -> list[dict[str, Any]]: ...

    def get_type_permissions(self, type_name: str, action: Action) -> list[str]: ...

    def evaluate_authorization(self, role_arn: str, action: str, resource_arn: str) -> bool: ...

    def describe_image(self, image_id: str) -> dict[str, Any] | None: ...

    def get_instance_type_architectures(self, instance_type: str) -> list[str]: ...

    def get_engine_versions(self, engine: str) -> list[str]: ...


def parse_caller_arn(caller_arn: str, region: str) -> Environment:
    """
    Derive the caller environment from an ARN.

    Args:
        caller_arn: arn:partition:service:region:account:resource
        region: Region the run targets

    Raises:
        IdentityResolutionError: The ARN does not have six tokens
    """
    tokens = caller_arn.split(":")
    if len(tokens) != 6:
        raise IdentityResolutionError(f"Unexpected number of tokens in caller arn: {caller_arn}")
    return Environment(partition=tokens[1], region=region, account=tokens[4])


def role_arn_for_caller(caller_arn: str) -> str:
    """
    Get the IAM principal ARN to simulate for a caller.

    STS assumed-role session ARNs cannot be simulated, so they are mapped
    back to the role they were assumed from.
    """
    tokens = caller_arn.split(":")
    if len(tokens) == 6 and tokens[2] == "sts" and tokens[5].startswith("assumed-role/"):
        role_name = tokens[5].split("/")[1]
        return f"arn:{tokens[1]}:iam::{tokens[4]}:role/{role_name}"
    return caller_arn


def check_stack(client: AccountClient, stack_name: str) -> tuple[dict[str, Any] | None, bool]:
    """
    Look up the target stack.

    Returns:
        Tuple of (stack descriptor or None, whether the stack exists)
    """
    stack = client.get_stack(stack_name)
    if stack is None:
        logger.debug("Stack %s does not exist", stack_name)
        return None, False

    status = stack.get("StackStatus", "")
    if status in NOT_EXISTING_STATUSES:
        logger.debug("Stack %s is %s, treating as new", stack_name, status)
        return stack, False

    logger.debug("Stack %s exists (%s)", stack_name, status)
    return stack, True
