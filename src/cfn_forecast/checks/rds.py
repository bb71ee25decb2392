"""
RDS predictors.
"""

from __future__ import annotations

import logging

from ..errors import CheckExecutionError
from ..models import Forecast, ResourceContext
from .base import predictor, property_line, string_property

logger = logging.getLogger(__name__)


@predictor("AWS::RDS::DBCluster")
def check_rds_db_cluster(context: ResourceContext) -> Forecast:
    """Check the engine version is offered in the target region."""
    forecast = context.make_forecast()

    engine = string_property(context, "Engine")
    if engine is None:
        return forecast
    version = string_property(context, "EngineVersion")

    try:
        versions = context.account.get_engine_versions(engine)
    except CheckExecutionError as e:
        forecast.add_unknown(f"Unable to check engine {engine}: {e.message}")
        return forecast

    logger.debug("%d versions available for %s", len(versions), engine)
    if not versions:
        forecast.add(False, f"Engine {engine} is not available", property_line(context, "Engine"))
    elif version is None:
        forecast.add(True, f"Engine {engine} is available")
    elif version in versions:
        forecast.add(True, f"Engine version {engine} {version} is available")
    else:
        forecast.add(
            False,
            f"Engine version {engine} {version} is not available in {context.env.region}",
            property_line(context, "EngineVersion"),
        )
    return forecast
