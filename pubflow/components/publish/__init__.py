"""
Publish component - CMS boundary and publication confirmations.
"""

from ._impl import (
    PublicationConfirmationService,
    build_publish_request,
    create_confirmation_service,
)
from .component import run, run_confirm
from .models import (
    ConfirmationOutput,
    ConfirmPublicationInput,
    PublishAdapterError,
    PublishReceipt,
    PublishRequest,
)
from .ports import CMSPublisherPort, PublishedContentRepoPort, TimePort

__all__ = [
    # Entry points
    "run",
    "run_confirm",
    # Input models
    "ConfirmPublicationInput",
    "PublishRequest",
    # Output models
    "ConfirmationOutput",
    "PublishReceipt",
    "PublishAdapterError",
    # Ports
    "CMSPublisherPort",
    "PublishedContentRepoPort",
    "TimePort",
    # Service
    "PublicationConfirmationService",
    "build_publish_request",
    "create_confirmation_service",
]
