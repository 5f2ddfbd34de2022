"""BounceBan email verification as a pipeline step."""

from .client import build_query, check_credentials, verify_single
from .config import Settings, load_settings
from .errors import BounceBanApiError, BounceBanError, CredentialsError, NodeOperationError
from .models import BounceBanCredentials, NodeParameters, OutputItem, Verbatim, VerifyOptions
from .node import execute

__all__ = [
    "BounceBanApiError",
    "BounceBanCredentials",
    "BounceBanError",
    "CredentialsError",
    "NodeOperationError",
    "NodeParameters",
    "OutputItem",
    "Settings",
    "Verbatim",
    "VerifyOptions",
    "build_query",
    "check_credentials",
    "execute",
    "load_settings",
    "verify_single",
]
