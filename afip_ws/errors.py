from enum import IntEnum
from typing import Any, Mapping, Optional


class ErrorCode(IntEnum):
    """Stable numeric codes; the thousands digit is the error category."""

    CONFIG_GENERAL = 1000
    CONFIG_REQUIRED_FIELD = 1001
    CONFIG_INVALID_VALUE = 1002
    CONFIG_FILE_NOT_FOUND = 1003
    CONFIG_UNKNOWN_SERVICE = 1004

    VALIDATION_GENERAL = 2000
    VALIDATION_INVALID_CUIT = 2001
    VALIDATION_REQUIRED_PARAMETER = 2003
    VALIDATION_INCOMPLETE_DN = 2008
    VALIDATION_CUIT_FORMAT = 2009
    VALIDATION_INVALID_PARAMETER = 2010

    FILE_GENERAL = 3000
    FILE_NOT_FOUND = 3001
    FILE_READ = 3002
    FILE_WRITE = 3003

    AUTH_GENERAL = 4000
    AUTH_TOKEN_EXPIRED = 4001
    AUTH_TICKET_CORRUPT = 4002
    AUTH_TICKET_CREATION = 4003
    AUTH_TRA_SIGNING = 4004
    AUTH_WSAA = 4007

    SOAP_GENERAL = 5000
    SOAP_FAULT = 5001
    SOAP_INVALID_RESPONSE = 5002

    WEB_SERVICE_GENERAL = 6000
    WEB_SERVICE_MISSING_OPTION = 6001
    WEB_SERVICE_UNKNOWN_OPERATION = 6002
    WEB_SERVICE_CLIENT_INIT = 6003
    WEB_SERVICE_INVALID_RESPONSE = 6004
    WEB_SERVICE_WSDL_NOT_FOUND = 6005
    WEB_SERVICE_BILLING = 6100

    CERT_CSR_GENERATION = 7001
    CERT_CSR_EXPORT = 7002
    CERT_CSR_READ = 7003
    CERT_CERTIFICATE_READ = 7004
    CERT_INVALID_KEY = 7007

    @property
    def category(self) -> str:
        return _CATEGORIES.get(self.value // 1000, "web_service")

    @property
    def description(self) -> str:
        return self.name.replace("_", " ").capitalize()


_CATEGORIES = {
    1: "configuration",
    2: "validation",
    3: "file",
    4: "authentication",
    5: "soap",
    6: "web_service",
    7: "certificate",
}


class AfipError(RuntimeError):
    """Base class for every error raised by the SDK.

    ``context`` holds the structured details (field, value, service,
    operation ...) so callers never have to parse the message.
    """

    default_code = ErrorCode.WEB_SERVICE_GENERAL

    def __init__(
        self,
        msg: str,
        *,
        code: Optional[ErrorCode] = None,
        context: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(msg)
        self.code = code or self.default_code
        self.context = dict(context or {})

    @property
    def kind(self) -> str:
        return self.code.category


class ConfigurationError(AfipError):
    """Missing or invalid setup (options, files, unknown services)."""

    default_code = ErrorCode.CONFIG_GENERAL

    def __init__(self, msg: str, *, field: str = "", value: Any = None, code: Optional[ErrorCode] = None):
        super().__init__(msg, code=code, context={"field": field, "value": value})
        self.field = field
        self.value = value


class ValidationError(AfipError):
    """Malformed input such as a DN, a CUIT or a key size."""

    default_code = ErrorCode.VALIDATION_GENERAL

    def __init__(
        self,
        msg: str,
        *,
        field: str = "",
        value: Any = None,
        rule: str = "",
        code: Optional[ErrorCode] = None,
    ):
        super().__init__(msg, code=code, context={"field": field, "value": value, "rule": rule})
        self.field = field
        self.value = value
        self.rule = rule


class FileError(AfipError):
    """Unreadable or unwritable certificate, key, cache or temp file."""

    default_code = ErrorCode.FILE_GENERAL

    def __init__(self, msg: str, *, path: Any = "", operation: str = "", code: Optional[ErrorCode] = None):
        super().__init__(msg, code=code, context={"path": str(path), "operation": operation})
        self.path = str(path)
        self.operation = operation


class AuthenticationError(AfipError):
    """WSAA login problems: signing, round-trip, malformed or stale tickets."""

    default_code = ErrorCode.AUTH_GENERAL

    def __init__(self, msg: str, *, service: str = "", step: str = "", code: Optional[ErrorCode] = None):
        super().__init__(msg, code=code, context={"service": service, "step": step})
        self.service = service
        self.step = step


class SoapError(AfipError):
    """SOAP Faults returned by a remote service."""

    default_code = ErrorCode.SOAP_FAULT

    def __init__(
        self,
        msg: str,
        *,
        fault_code: str = "",
        fault_message: str = "",
        operation: str = "",
        code: Optional[ErrorCode] = None,
    ):
        super().__init__(
            msg,
            code=code,
            context={"fault_code": fault_code, "fault_message": fault_message, "operation": operation},
        )
        self.fault_code = fault_code
        self.fault_message = fault_message
        self.operation = operation


class WebServiceError(AfipError):
    """Invalid service registration or unexpected call results."""

    default_code = ErrorCode.WEB_SERVICE_GENERAL

    def __init__(
        self,
        msg: str,
        *,
        service: str = "",
        operation: str = "",
        field: str = "",
        code: Optional[ErrorCode] = None,
    ):
        super().__init__(msg, code=code, context={"service": service, "operation": operation, "field": field})
        self.service = service
        self.operation = operation
        self.field = field


class CertificateError(AfipError):
    """CSR / certificate parsing or generation failures."""

    default_code = ErrorCode.CERT_CSR_GENERATION

    def __init__(self, msg: str, *, operation: str = "", code: Optional[ErrorCode] = None):
        super().__init__(msg, code=code, context={"operation": operation})
        self.operation = operation


class BillingError(WebServiceError):
    """wsfe answered with an ``Errors`` block (rejected token, CUIT, voucher ...).

    ``errors`` holds the ``{"Code", "Msg"}`` entries as returned by AFIP.
    """

    default_code = ErrorCode.WEB_SERVICE_BILLING

    def __init__(self, msg: str, *, operation: str = "", errors=None, code: Optional[ErrorCode] = None):
        super().__init__(msg, service="wsfe", operation=operation, code=code)
        self.errors = list(errors or [])
        self.context["errors"] = self.errors
