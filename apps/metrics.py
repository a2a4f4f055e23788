from flask import Response, Blueprint
from prometheus_client import (
    PlatformCollector,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)
from prometheus_client.core import GaugeMetricFamily, Histogram, Counter
from prometheus_client.multiprocess import MultiProcessCollector
from sqlalchemy import func

from models import count_groups
from models.cfp import Message, Proposal, Rating
from models.event import Event

metrics = Blueprint("metric", __name__)

request_duration = Histogram("cfp_request_duration_seconds", "Request duration", ["endpoint", "method"])
request_total = Counter("cfp_request_total", "Total request count", ["endpoint", "method", "http_status"])


def gauge_groups(gauge, query, *entities):
    for count, *key in count_groups(query, *entities):
        gauge.add_metric(key, count)


class ExternalMetrics:
    def __init__(self, registry=None):
        if registry is not None:
            registry.register(self)

    def collect(self):
        cfp_events = GaugeMetricFamily("cfp_events", "Events", labels=["type", "visibility"])
        cfp_proposals = GaugeMetricFamily("cfp_proposals", "Proposals", labels=["status"])
        cfp_ratings = GaugeMetricFamily("cfp_ratings", "Proposal ratings", labels=["feeling"])
        cfp_messages = GaugeMetricFamily("cfp_messages", "Proposal messages", labels=["channel"])

        gauge_groups(cfp_events, Event.query, Event.type, Event.visibility)
        gauge_groups(cfp_proposals, Proposal.query, Proposal.status)
        gauge_groups(cfp_ratings, Rating.query, func.coalesce(Rating.feeling, "NONE"))
        gauge_groups(cfp_messages, Message.query, Message.channel)

        return [cfp_events, cfp_proposals, cfp_ratings, cfp_messages]


@metrics.route("/metrics")
def collect_metrics():
    registry = CollectorRegistry()
    MultiProcessCollector(registry)
    PlatformCollector(registry)
    ExternalMetrics(registry)

    data = generate_latest(registry)

    return Response(data, mimetype=CONTENT_TYPE_LATEST)
