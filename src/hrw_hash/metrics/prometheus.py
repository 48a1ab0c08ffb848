"""Prometheus metrics for ranking registries."""
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest, make_wsgi_app
from wsgiref.simple_server import make_server, WSGIRequestHandler
import threading
from typing import Optional
import structlog

logger = structlog.get_logger()


class QuietHandler(WSGIRequestHandler):
    """WSGI request handler that leaves logging to structlog."""

    def log_message(self, format, *args):
        pass


def create_wsgi_app(registry: CollectorRegistry):
    """Create WSGI app serving /metrics for the given collector registry."""
    metrics_app = make_wsgi_app(registry)

    def app(environ, start_response):
        path = environ.get('PATH_INFO', '/')

        if path == '/metrics' or path == '/':
            return metrics_app(environ, start_response)

        start_response('404 Not Found', [('Content-Type', 'text/plain')])
        return [b'Not Found']

    return app


class RankingMetrics:
    """Prometheus metrics for HRW ranking.

    Each instance owns a CollectorRegistry, so several instances (or tests)
    never clash on metric names in the global default registry. Node
    registries sharing one instance are told apart by the "registry" label
    (their ``name``).
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics.

        Args:
            registry: Collector registry to register on (default: a private one)
        """
        self.registry = registry if registry is not None else CollectorRegistry()
        self._httpd = None

        self.rankings = Counter(
            'hrw_rankings_total',
            'Total ranking calls',
            ['variant', 'registry'],
            registry=self.registry
        )

        self.ranking_latency = Histogram(
            'hrw_ranking_latency_ms',
            'Ranking latency in milliseconds',
            ['variant', 'registry'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 50, 100],
            registry=self.registry
        )

        self.registry_nodes = Gauge(
            'hrw_registry_nodes',
            'Number of nodes in the registry',
            ['variant', 'registry'],
            registry=self.registry
        )

        self.registry_capacity = Gauge(
            'hrw_registry_capacity',
            'Total declared capacity of the registry',
            ['variant', 'registry'],
            registry=self.registry
        )

        self.contract_violations = Counter(
            'hrw_contract_violations_total',
            'Rankings aborted because of a contract violation',
            ['variant', 'registry'],
            registry=self.registry
        )

    def record_ranking(self, variant: str, name: str, duration_ms: float) -> None:
        """Record one ranking call.

        Args:
            variant: Ranking variant ("uniform" or "weighted")
            name: Registry name
            duration_ms: Duration in milliseconds
        """
        self.rankings.labels(variant=variant, registry=name).inc()
        self.ranking_latency.labels(variant=variant, registry=name).observe(duration_ms)

    def set_registry_size(self, variant: str, name: str, nodes: int, capacity: int) -> None:
        """Set node count and total capacity gauges."""
        self.registry_nodes.labels(variant=variant, registry=name).set(nodes)
        self.registry_capacity.labels(variant=variant, registry=name).set(capacity)

    def increment_contract_violation(self, variant: str, name: str) -> None:
        self.contract_violations.labels(variant=variant, registry=name).inc()

    def render(self) -> str:
        """Return metrics in Prometheus text exposition format."""
        return generate_latest(self.registry).decode('utf-8')

    def serve(self, port: int, host: str = '') -> None:
        """Start a background HTTP server exposing /metrics.

        Args:
            port: Port to listen on
            host: Interface to bind (default: all)
        """
        try:
            httpd = make_server(host, port, create_wsgi_app(self.registry), handler_class=QuietHandler)
        except OSError as e:
            if "Address already in use" in str(e):
                logger.warning("metrics_port_already_in_use", port=port)
                return
            raise

        server_thread = threading.Thread(target=httpd.serve_forever, daemon=True)
        server_thread.start()
        self._httpd = httpd

        logger.info("metrics_server_started", port=httpd.server_port, endpoints=["/metrics"])

    @property
    def port(self) -> Optional[int]:
        """Port the metrics server is bound to, or None when not serving."""
        return self._httpd.server_port if self._httpd is not None else None

    def shutdown(self) -> None:
        """Stop the HTTP server if one is running."""
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None

    def __repr__(self) -> str:
        return f"RankingMetrics(serving={self._httpd is not None})"
