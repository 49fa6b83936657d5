"""Attribution pipeline: model access, classification, validation and daily entry generation."""

from captrack.attribution.services.entry_attribution import EntryAttributionEngine
from captrack.attribution.services.model_gateway import ModelGateway
from captrack.attribution.services.model_health_service import ModelHealthService
from captrack.attribution.services.work_type_classifier import WorkTypeClassifier

__all__ = [
    "EntryAttributionEngine",
    "ModelGateway",
    "ModelHealthService",
    "WorkTypeClassifier",
]
