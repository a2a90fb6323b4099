from schoolops.core.enums import ErrorKind
from schoolops.client.api import SchoolApiClient
from schoolops.client.cache import QueryCache
from schoolops.client.errors import ApiError, LocalValidationError
from schoolops.client.fees import FeeCatalogWatcher, is_catalog_ready
from schoolops.client.promotions import ExecutionReport, PromotionCounts, PromotionWorkflow
from schoolops.client.validation import (
    PromotionChoice,
    validate_class_exam,
    validate_marks,
    validate_session_pair,
)

__all__ = [
    "ErrorKind",
    "SchoolApiClient",
    "QueryCache",
    "ApiError",
    "LocalValidationError",
    "FeeCatalogWatcher",
    "is_catalog_ready",
    "ExecutionReport",
    "PromotionCounts",
    "PromotionWorkflow",
    "PromotionChoice",
    "validate_class_exam",
    "validate_marks",
    "validate_session_pair",
]
