"""AWS data-retrieval tools backed by boto3"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import boto3

from ..config import AwsCredentials
from ..exceptions import DataSourceError
from ..storage.schema import Capability, DataSourceResult, ParameterSchema
from .base import DataSource

logger = logging.getLogger(__name__)

VEGA_LITE_SCHEMA = "https://vega.github.io/schema/vega-lite/v5.json"

# Cost Explorer and Cost Optimization Hub are only served from us-east-1
BILLING_REGION = "us-east-1"

MAX_CHART_GROUPS = 10

COST_AND_USAGE = "awsGetCostAndUsage"
CLOUDWATCH_METRICS = "awsCloudWatchGetMetrics"
OPTIMIZATION_RECOMMENDATIONS = "awsCostOptimizationHubListRecommendations"

CAPABILITIES: List[Capability] = [
    Capability(
        name=COST_AND_USAGE,
        description=(
            "Retrieve AWS cost and usage data for analysis. Always use this tool "
            "when cost information is needed."
        ),
        parameters=ParameterSchema(
            properties={
                "granularity": {
                    "type": "string",
                    "enum": ["DAILY", "MONTHLY"],
                    "description": "The granularity of the cost data",
                },
                "groupBy": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": (
                        "Up to two dimensions to group by, e.g. SERVICE, REGION, "
                        "USAGE_TYPE, OPERATION, LINKED_ACCOUNT"
                    ),
                },
                "lookBack": {
                    "type": "integer",
                    "description": "Number of months to look back",
                },
                "filter": {
                    "type": "object",
                    "description": (
                        "Cost Explorer filter expression, e.g. "
                        '{"Dimensions": {"Key": "SERVICE", "Values": ["AWS Lambda"], '
                        '"MatchOptions": ["EQUALS"]}}'
                    ),
                },
            },
        ),
    ),
    Capability(
        name=CLOUDWATCH_METRICS,
        description=(
            "Retrieve CloudWatch metrics for any AWS service with flexible dimensions "
            "and time periods. Essential for analyzing performance trends, usage "
            "patterns, and operational metrics."
        ),
        parameters=ParameterSchema(
            properties={
                "namespace": {"type": "string", "description": "The namespace of the metric"},
                "metricName": {"type": "string", "description": "The name of the metric"},
                "dimensions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "Name": {"type": "string"},
                            "Value": {"type": "string"},
                        },
                    },
                    "description": "Dimensions to filter the metric",
                },
                "period": {
                    "type": "integer",
                    "description": "The granularity of the metric data in seconds",
                },
                "startTime": {"type": "string", "description": "ISO start time"},
                "endTime": {"type": "string", "description": "ISO end time"},
                "statistic": {
                    "type": "string",
                    "enum": ["Average", "Sum", "Minimum", "Maximum", "SampleCount"],
                    "description": "Statistic to retrieve (default Average)",
                },
            },
            required=["namespace", "metricName"],
        ),
    ),
    Capability(
        name=OPTIMIZATION_RECOMMENDATIONS,
        description=(
            "Retrieve cost optimization recommendations from AWS Cost Optimization Hub. "
            "Fetches all available recommendations, sorts them by estimated monthly "
            "savings in decreasing order, and returns the top N recommendations with "
            "the highest potential savings."
        ),
        parameters=ParameterSchema(
            properties={
                "maxResults": {
                    "type": "integer",
                    "description": "Maximum number of recommendations to return",
                },
                "filter": {
                    "type": "object",
                    "description": "Filter criteria for recommendations",
                    "properties": {
                        "regions": {"type": "array", "items": {"type": "string"}},
                        "resourceTypes": {"type": "array", "items": {"type": "string"}},
                        "actionTypes": {"type": "array", "items": {"type": "string"}},
                    },
                },
            },
        ),
    ),
]


def _months_ago(day: date, months: int) -> date:
    """First day of the month `months` before the month containing `day`"""
    index = day.year * 12 + (day.month - 1) - months
    return date(index // 12, index % 12 + 1, 1)


def _parse_time(value: Optional[str], default: datetime) -> datetime:
    if not value:
        return default
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class AwsToolsDataSource(DataSource):
    """Executes cost, metric and recommendation tools against AWS"""

    def __init__(self, session_factory: Optional[Callable[..., Any]] = None):
        """
        Initialize the AWS data source.

        Args:
            session_factory: Callable building a boto3 session from keyword
                arguments (defaults to boto3.Session)
        """
        self._session_factory = session_factory or boto3.Session
        self._handlers: Dict[str, Callable[[Any, Dict[str, Any]], DataSourceResult]] = {
            COST_AND_USAGE: self._get_cost_and_usage,
            CLOUDWATCH_METRICS: self._get_metrics,
            OPTIMIZATION_RECOMMENDATIONS: self._list_recommendations,
        }

    def capabilities(self) -> List[Capability]:
        return list(CAPABILITIES)

    def invoke(
        self,
        tool_name: str,
        params: Dict[str, Any],
        credentials: AwsCredentials,
        region: str,
    ) -> DataSourceResult:
        handler = self._handlers.get(tool_name)
        if handler is None:
            raise DataSourceError(f"Unknown AWS tool: {tool_name}")

        if not region or region in ("global", "NoRegion"):
            region = credentials.region

        session = self._session_factory(region_name=region, **credentials.boto3_kwargs())
        logger.debug(f"Invoking {tool_name} in {region}")
        return handler(session, params or {})

    def _get_cost_and_usage(self, session, params: Dict[str, Any]) -> DataSourceResult:
        granularity = str(params.get("granularity") or "MONTHLY").upper()
        group_by = list(params.get("groupBy") or [])[:2]
        look_back = max(int(params.get("lookBack") or 1), 1)

        end = date.today()
        start = _months_ago(end, look_back)
        request: Dict[str, Any] = {
            "TimePeriod": {"Start": start.isoformat(), "End": end.isoformat()},
            "Granularity": granularity,
            "Metrics": ["UnblendedCost"],
        }
        if group_by:
            request["GroupBy"] = [{"Type": "DIMENSION", "Key": key} for key in group_by]
        if params.get("filter"):
            request["Filter"] = params["filter"]

        client = session.client("ce", region_name=BILLING_REGION)
        results_by_time: List[Dict[str, Any]] = []
        while True:
            response = client.get_cost_and_usage(**request)
            results_by_time.extend(response.get("ResultsByTime", []))
            token = response.get("NextPageToken")
            if not token:
                break
            request["NextPageToken"] = token

        datapoints = []
        totals_by_group: Dict[str, float] = defaultdict(float)
        for period in results_by_time:
            period_start = period["TimePeriod"]["Start"]
            dimensions: Dict[str, float] = {}
            for group in period.get("Groups", []):
                key = ", ".join(group["Keys"])
                amount = float(group["Metrics"]["UnblendedCost"]["Amount"])
                dimensions[key] = amount
                totals_by_group[key] += amount
            if dimensions:
                total = sum(dimensions.values())
            else:
                total = float(period.get("Total", {}).get("UnblendedCost", {}).get("Amount", 0))
            datapoints.append({"date": period_start, "total": total, "dimensions": dimensions})

        grand_total = sum(d["total"] for d in datapoints)
        summary = (
            f"Retrieved {granularity.lower()} cost data for {len(datapoints)} period(s) "
            f"from {start.isoformat()} to {end.isoformat()}"
        )
        if group_by:
            summary += f" grouped by {', '.join(group_by)}"
        summary += f". Total cost: ${grand_total:.2f}."
        if totals_by_group:
            top = sorted(totals_by_group.items(), key=lambda kv: kv[1], reverse=True)[:5]
            summary += " Top groups: " + "; ".join(f"{k}: ${v:.2f}" for k, v in top) + "."

        return DataSourceResult(
            summary=summary,
            datapoints=datapoints,
            chart=self._cost_chart(datapoints, totals_by_group) if datapoints else None,
        )

    def _cost_chart(
        self, datapoints: List[Dict[str, Any]], totals_by_group: Dict[str, float]
    ) -> Dict[str, Any]:
        keep = {
            key
            for key, _ in sorted(totals_by_group.items(), key=lambda kv: kv[1], reverse=True)[
                :MAX_CHART_GROUPS
            ]
        }
        values = []
        for point in datapoints:
            if not point["dimensions"]:
                values.append({"date": point["date"], "group": "Total", "cost": point["total"]})
                continue
            for key, cost in point["dimensions"].items():
                values.append(
                    {"date": point["date"], "group": key if key in keep else "Other", "cost": cost}
                )

        return {
            "$schema": VEGA_LITE_SCHEMA,
            "title": "Cost by period",
            "width": 600,
            "height": 300,
            "data": {"values": values},
            "mark": "bar",
            "encoding": {
                "x": {"field": "date", "type": "ordinal", "title": "Period"},
                "y": {
                    "field": "cost",
                    "type": "quantitative",
                    "aggregate": "sum",
                    "title": "Cost (USD)",
                },
                "color": {"field": "group", "type": "nominal", "title": "Group"},
            },
        }

    def _get_metrics(self, session, params: Dict[str, Any]) -> DataSourceResult:
        now = datetime.now(timezone.utc)
        end_time = _parse_time(params.get("endTime"), now)
        start_time = _parse_time(params.get("startTime"), end_time - timedelta(days=7))
        period = int(params.get("period") or 3600)
        statistic = params.get("statistic") or "Average"

        client = session.client("cloudwatch")
        response = client.get_metric_statistics(
            Namespace=params["namespace"],
            MetricName=params["metricName"],
            Dimensions=params.get("dimensions") or [],
            StartTime=start_time,
            EndTime=end_time,
            Period=period,
            Statistics=[statistic],
        )

        points = sorted(response.get("Datapoints", []), key=lambda p: p["Timestamp"])
        datapoints = [
            {
                "timestamp": p["Timestamp"].isoformat(),
                "value": p.get(statistic),
                "unit": p.get("Unit"),
            }
            for p in points
        ]

        metric = f"{params['namespace']}/{params['metricName']}"
        if not datapoints:
            return DataSourceResult(
                summary=f"No datapoints found for {metric} between "
                f"{start_time.isoformat()} and {end_time.isoformat()}.",
                datapoints=[],
            )

        values = [d["value"] for d in datapoints if d["value"] is not None]
        summary = f"Retrieved {len(datapoints)} {statistic} datapoints for {metric} (period {period}s)."
        if values:
            unit = datapoints[0]["unit"] or ""
            summary += (
                f" Min: {min(values):.2f}, max: {max(values):.2f}, "
                f"mean: {sum(values) / len(values):.2f} {unit}".rstrip()
                + "."
            )
        chart = {
            "$schema": VEGA_LITE_SCHEMA,
            "title": metric,
            "width": 600,
            "height": 300,
            "data": {"values": datapoints},
            "mark": "line",
            "encoding": {
                "x": {"field": "timestamp", "type": "temporal", "title": "Time"},
                "y": {"field": "value", "type": "quantitative", "title": statistic},
            },
        }
        return DataSourceResult(summary=summary, datapoints=datapoints, chart=chart)

    def _list_recommendations(self, session, params: Dict[str, Any]) -> DataSourceResult:
        max_results = int(params.get("maxResults") or 10)
        request: Dict[str, Any] = {}
        if params.get("filter"):
            request["filter"] = params["filter"]

        client = session.client("cost-optimization-hub", region_name=BILLING_REGION)
        paginator = client.get_paginator("list_recommendations")
        items: List[Dict[str, Any]] = []
        for page in paginator.paginate(**request):
            items.extend(page.get("items", []))

        items.sort(key=lambda i: float(i.get("estimatedMonthlySavings") or 0), reverse=True)
        top = items[:max_results]
        datapoints = [
            {
                "recommendationId": i.get("recommendationId"),
                "resourceId": i.get("resourceId"),
                "resourceType": i.get("currentResourceType"),
                "actionType": i.get("actionType"),
                "region": i.get("region"),
                "estimatedMonthlySavings": float(i.get("estimatedMonthlySavings") or 0),
                "estimatedMonthlyCost": float(i.get("estimatedMonthlyCost") or 0),
            }
            for i in top
        ]

        total_savings = sum(d["estimatedMonthlySavings"] for d in datapoints)
        summary = (
            f"Found {len(items)} recommendation(s); returning the top {len(datapoints)} "
            f"with ${total_savings:.2f} estimated monthly savings."
        )
        chart = None
        if datapoints:
            chart = {
                "$schema": VEGA_LITE_SCHEMA,
                "title": "Estimated monthly savings by recommendation",
                "width": 600,
                "height": 300,
                "data": {"values": datapoints},
                "mark": "bar",
                "encoding": {
                    "y": {"field": "resourceId", "type": "nominal", "sort": "-x", "title": "Resource"},
                    "x": {
                        "field": "estimatedMonthlySavings",
                        "type": "quantitative",
                        "title": "Savings (USD/month)",
                    },
                    "color": {"field": "actionType", "type": "nominal", "title": "Action"},
                },
            }
        return DataSourceResult(summary=summary, datapoints=datapoints, chart=chart)
