"""Build a registry from configuration."""
from typing import Iterable, Optional

import structlog

from .config import HrwConfig
from .hrw import HrwNodes
from .log import configure_logging
from .metrics.prometheus import RankingMetrics
from .registry import NodeRegistry
from .weighted_hrw import WeightedHrwNodes

logger = structlog.get_logger()

_VARIANTS = {
    "uniform": HrwNodes,
    "weighted": WeightedHrwNodes,
}


def build_registry(
    nodes: Iterable,
    config: Optional[HrwConfig] = None,
    metrics: Optional[RankingMetrics] = None,
    name: str = "default"
) -> NodeRegistry:
    """Build the registry variant, hash provider and metrics the config asks for.

    Applies the configured log level and format. When config.metrics_enabled
    and no metrics are given, creates them and serves /metrics on
    config.metrics_port; a caller-supplied metrics object is left as is.

    Args:
        nodes: Nodes to register
        config: Configuration (default: HrwConfig.from_env())
        metrics: Metrics sink
        name: Registry name (metrics label)

    Returns:
        HrwNodes or WeightedHrwNodes
    """
    if config is None:
        config = HrwConfig.from_env()
    config.validate()

    configure_logging(config.log_level, config.log_json)

    if metrics is None and config.metrics_enabled:
        metrics = RankingMetrics()
        metrics.serve(config.metrics_port)

    registry = _VARIANTS[config.variant](
        nodes, hash_provider=config.hash_provider(), metrics=metrics, name=name
    )
    logger.info("registry_configured", registry=repr(registry), name=name, **config.as_dict())
    return registry
