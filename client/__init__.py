"""Presentation-agnostic client for the upload -> analysis -> wizard pipeline."""

from client.confidence import ConfidenceLevel, ConfidencePolicy
from client.context import ClientContext, QueryCache
from client.disposition import ContractCandidate, DispositionResolver
from client.errors import (
    AuthError,
    ClientError,
    Conflict,
    NetworkError,
    NotFound,
    ServerError,
    Timeout,
    ValidationError,
)
from client.poller import AnalysisPoller
from client.settings import ClientSettings
from client.upload import (
    CancelToken,
    SelectedFile,
    UploadDialog,
    UploadMetadata,
    UploadResult,
    UploadStage,
)
from client.wizard import ContractDraft, ContractWizard, ObligationDraft, WizardStep

__all__ = [
    "AnalysisPoller",
    "AuthError",
    "CancelToken",
    "ClientContext",
    "ClientError",
    "ClientSettings",
    "ConfidenceLevel",
    "ConfidencePolicy",
    "Conflict",
    "ContractCandidate",
    "ContractDraft",
    "ContractWizard",
    "DispositionResolver",
    "NetworkError",
    "NotFound",
    "ObligationDraft",
    "QueryCache",
    "SelectedFile",
    "ServerError",
    "Timeout",
    "UploadDialog",
    "UploadMetadata",
    "UploadResult",
    "UploadStage",
    "ValidationError",
    "WizardStep",
]
