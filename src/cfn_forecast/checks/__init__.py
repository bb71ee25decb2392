"""
Checks run against each resource.

Generic checks (existence, permissions) run for every resource; predictors
registered in ``default_registry`` run for their type only.
"""

from . import autoscaling, ec2, rds, s3  # noqa: F401 - register built-in predictors
from .base import CheckerRegistry, Predictor, default_registry, predictor
from .existence import check_exists
from .permissions import check_permissions

__all__ = [
    "CheckerRegistry",
    "Predictor",
    "default_registry",
    "predictor",
    "check_exists",
    "check_permissions",
]
