"""
Auto Scaling predictors.
"""

from __future__ import annotations

from ..models import Forecast, ResourceContext
from .base import predictor
from .ec2 import check_image_and_instance_type


@predictor("AWS::AutoScaling::LaunchConfiguration")
def check_launch_configuration(context: ResourceContext) -> Forecast:
    """Launch configurations fail the same way instances do on a bad AMI."""
    forecast = context.make_forecast()
    check_image_and_instance_type(context, forecast)
    return forecast
