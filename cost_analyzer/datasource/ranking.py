"""Ranking of service/region pairs by cost"""

import logging
from typing import Any, List

from ..config import AwsCredentials
from ..exceptions import DataSourceError
from ..storage.schema import RankedSubject
from .base import DataSource

logger = logging.getLogger(__name__)

COST_TOOL = "awsGetCostAndUsage"


def parse_cost_datapoints(datapoints: Any, unit: str = "USD") -> List[RankedSubject]:
    """
    Turn grouped cost datapoints into ranked subjects.

    Each datapoint carries a "dimensions" mapping whose keys look like
    "AWS Lambda, us-east-1". The last comma-separated part is the region;
    keys without one are treated as global. Non-positive costs are dropped.

    Args:
        datapoints: List of {"date": str, "dimensions": {key: cost}}
        unit: Currency of the cost values

    Returns:
        Subjects ordered by descending cost (duplicates across periods kept)
    """
    subjects: List[RankedSubject] = []
    if not isinstance(datapoints, list):
        return subjects

    for datapoint in datapoints:
        dimensions = datapoint.get("dimensions") or {}
        period = datapoint.get("date") or "Unknown"

        for key, raw_cost in dimensions.items():
            parts = key.split(", ")
            if len(parts) >= 2:
                region = parts[-1]
                service = ", ".join(parts[:-1])
            else:
                service = key
                region = "global"

            try:
                cost = float(raw_cost)
            except (TypeError, ValueError):
                logger.warning(f"Skipping non-numeric cost for {key}: {raw_cost!r}")
                continue

            if cost > 0:
                subjects.append(
                    RankedSubject(
                        name=service,
                        sub_category=region,
                        magnitude=cost,
                        unit=unit,
                        period=period,
                    )
                )

    subjects.sort(key=lambda s: s.magnitude, reverse=True)
    return subjects


def fetch_ranked_subjects(
    data_source: DataSource,
    credentials: AwsCredentials,
    region: str,
    top_n: int = 10,
) -> List[RankedSubject]:
    """
    Fetch the top service/region combinations by cost.

    Raises:
        DataSourceError: If the cost data could not be fetched or parsed
    """
    params = {"granularity": "MONTHLY", "groupBy": ["SERVICE", "REGION"], "lookBack": 1}
    logger.info(f"Fetching cost and usage data with {params}")

    try:
        result = data_source.invoke(COST_TOOL, params, credentials, region)
        subjects = parse_cost_datapoints(result.datapoints)
    except DataSourceError:
        raise
    except Exception as e:
        raise DataSourceError(f"Failed to fetch AWS cost data: {e}") from e

    return subjects[:top_n]
