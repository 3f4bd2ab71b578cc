"""
Module: metrics.py
Description: CloudWatch custom metrics publishing.

Publishes delivery and pruning counters to CloudWatch so that a run of
failed Matomo deliveries shows up without reading the audit log.

Key Components:
- MetricsClient: CloudWatch metrics client
- put_metric(): Publish individual metrics
- Metric failures are logged and never raised

Dependencies: boto3, typing, logger
Author: Order Tracking Team
"""

from typing import Dict, Optional

import boto3

from woo_matomo.utils.logger import get_logger

logger = get_logger(__name__)

DELIVERY_SUCCEEDED = "DeliverySucceeded"
DELIVERY_FAILED = "DeliveryFailed"
LOGS_PRUNED = "LogsPruned"


class MetricsClient:
    """CloudWatch metrics client."""

    def __init__(self, namespace: str = "WooMatomoTracking", region_name: Optional[str] = None):
        """
        Initialize metrics client.

        Args:
            namespace: CloudWatch metrics namespace
            region_name: AWS region, defaults to the boto3 session region
        """
        self.namespace = namespace
        self.cloudwatch = boto3.client('cloudwatch', region_name=region_name)

    def put_metric(
        self,
        metric_name: str,
        value: float = 1.0,
        unit: str = 'Count',
        dimensions: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Publish a metric to CloudWatch.

        Args:
            metric_name: Name of the metric
            value: Metric value
            unit: Metric unit (Count, Milliseconds, etc.)
            dimensions: Optional metric dimensions
        """
        metric_data = {
            'MetricName': metric_name,
            'Value': value,
            'Unit': unit
        }
        if dimensions:
            metric_data['Dimensions'] = [
                {'Name': k, 'Value': v}
                for k, v in dimensions.items()
            ]

        try:
            self.cloudwatch.put_metric_data(
                Namespace=self.namespace,
                MetricData=[metric_data]
            )
        except Exception as e:
            # Metrics must never fail an order event
            logger.warning(
                "Failed to publish metric",
                metric_name=metric_name,
                value=value,
                error=str(e),
                namespace=self.namespace
            )
            return

        logger.debug(
            "Metric published to CloudWatch",
            metric_name=metric_name,
            value=value,
            dimensions=dimensions,
            namespace=self.namespace
        )
