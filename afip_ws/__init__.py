"""AFIP (Argentina) web services SDK: WSAA login, wsfe and padron."""
from .auth import TicketManager, TokenAuthorization
from .client import Afip
from .config import AfipConfig
from .errors import (
    AfipError,
    AuthenticationError,
    BillingError,
    CertificateError,
    ConfigurationError,
    ErrorCode,
    FileError,
    SoapError,
    ValidationError,
    WebServiceError,
)
from .services import ElectronicBilling, TaxpayerRegistry
from .webservice import SERVICES, ServiceRegistration, WebService
from importlib.metadata import version as _v, PackageNotFoundError
try:
    __version__ = _v("afip-ws")
except PackageNotFoundError:
    __version__ = "0.0.0+editable"

__all__ = [
    "Afip",
    "AfipConfig",
    "TicketManager",
    "TokenAuthorization",
    # services
    "SERVICES",
    "ServiceRegistration",
    "WebService",
    "ElectronicBilling",
    "TaxpayerRegistry",
    # errors
    "ErrorCode",
    "AfipError",
    "ConfigurationError",
    "ValidationError",
    "FileError",
    "AuthenticationError",
    "SoapError",
    "WebServiceError",
    "BillingError",
    "CertificateError",
]
