"""Generic dispatcher for AFIP SOAP services.

Each registered service is described by a :class:`ServiceRegistration` row
(WSDL file + endpoint for production and for testing). The WSDL is looked up
in the caller's ``wsdl_dir`` first and then in the bundled resources.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests
from lxml import etree
from zeep.exceptions import Error as ZeepError
from zeep.exceptions import Fault

from .auth import TokenAuthorization
from .config import RESOURCES_DIR
from .errors import AfipError, ErrorCode, SoapError, WebServiceError
from .soap.client import SoapClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceRegistration:
    service: str
    wsdl: str
    url: str
    wsdl_test: str
    url_test: str
    soap_version: str = "1.2"

    def for_environment(self, production: bool) -> Tuple[str, str]:
        if production:
            return self.wsdl, self.url
        return self.wsdl_test, self.url_test


def _padron(service: str, path: str) -> ServiceRegistration:
    return ServiceRegistration(
        service=service,
        wsdl=f"{service}-production.wsdl",
        url=f"https://aws.afip.gov.ar/sr-padron/webservices/{path}",
        wsdl_test=f"{service}.wsdl",
        url_test=f"https://awshomo.afip.gov.ar/sr-padron/webservices/{path}",
    )


SERVICES: Dict[str, ServiceRegistration] = {
    reg.service: reg
    for reg in (
        ServiceRegistration(
            service="wsfe",
            wsdl="wsfe-production.wsdl",
            url="https://servicios1.afip.gov.ar/wsfev1/service.asmx",
            wsdl_test="wsfe.wsdl",
            url_test="https://wswhomo.afip.gov.ar/wsfev1/service.asmx",
        ),
        _padron("ws_sr_padron_a4", "personaServiceA4"),
        _padron("ws_sr_padron_a5", "personaServiceA5"),
        _padron("ws_sr_padron_a10", "personaServiceA10"),
        _padron("ws_sr_padron_a13", "personaServiceA13"),
        _padron("ws_sr_constancia_inscripcion", "constanciaInscripcion"),
    )
}

GENERIC_OPTIONS = ("wsdl", "url", "wsdl_test", "url_test", "service")


class WebService:
    """Resolves a service's WSDL/endpoint and executes its operations."""

    def __init__(self, afip, registration: ServiceRegistration, *, service=None):
        self.afip = afip
        self.registration = registration
        wsdl_name, self.endpoint = registration.for_environment(afip.is_production)
        self.wsdl_path = self._resolve_wsdl(wsdl_name)
        # Optional pre-built zeep service (tests, custom transports)
        self._service = service
        self._soap_client: Optional[SoapClient] = None

    @classmethod
    def generic(cls, afip, options: Mapping[str, Any], *, service=None) -> "WebService":
        """Build a dispatcher for a service that has no entry in ``SERVICES``."""
        for name in GENERIC_OPTIONS:
            if not options.get(name):
                raise WebServiceError(
                    f"Option {name} is required for a generic web service",
                    service=str(options.get("service") or ""),
                    field=name,
                    code=ErrorCode.WEB_SERVICE_MISSING_OPTION,
                )
        registration = ServiceRegistration(
            service=str(options["service"]),
            wsdl=str(options["wsdl"]),
            url=str(options["url"]),
            wsdl_test=str(options["wsdl_test"]),
            url_test=str(options["url_test"]),
            soap_version=str(options.get("soap_version") or "1.2"),
        )
        return cls(afip, registration, service=service)

    @property
    def service_name(self) -> str:
        return self.registration.service

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, operation: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Call ``operation`` with ``params`` and return the raw zeep result."""
        client = self._client()
        call = client.operation(operation)
        if call is None:
            raise WebServiceError(
                f'Operation "{operation}" is not defined by {self.service_name}',
                service=self.service_name,
                operation=operation,
                code=ErrorCode.WEB_SERVICE_UNKNOWN_OPERATION,
            )

        logger.debug("Calling %s.%s", self.service_name, operation)
        try:
            result = call(**dict(params or {}))
        except Fault as exc:
            raise self._soap_error(operation, exc) from exc
        except AfipError:
            raise
        except Exception as exc:
            raise WebServiceError(
                f'Unexpected error executing "{operation}": {exc}',
                service=self.service_name,
                operation=operation,
                code=ErrorCode.WEB_SERVICE_GENERAL,
            ) from exc

        if isinstance(result, Fault):
            raise self._soap_error(operation, result)
        return result

    def get_token_authorization(self) -> TokenAuthorization:
        return self.afip.get_ticket(self.service_name)

    def auth_header(self) -> Dict[str, Any]:
        """``Auth`` block used by wsfe-style services."""
        ta = self.get_token_authorization()
        return {"Token": ta.token, "Sign": ta.sign, "Cuit": self.afip.cuit}

    def padron_auth(self) -> Dict[str, Any]:
        """Flat credentials used by the padron services."""
        ta = self.get_token_authorization()
        return {"token": ta.token, "sign": ta.sign, "cuitRepresentada": self.afip.cuit}

    @property
    def last_exchange(self):
        if self._soap_client is None:
            return None, None
        return self._soap_client.last_exchange

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _search_dirs(self) -> List[Path]:
        dirs = []
        cfg = self.afip.config
        for candidate in (cfg.wsdl_dir, cfg.resources_dir, RESOURCES_DIR):
            if candidate is not None and Path(candidate) not in dirs:
                dirs.append(Path(candidate))
        return dirs

    def _resolve_wsdl(self, name: str) -> Path:
        path = Path(name)
        if path.is_absolute():
            candidates = [path]
        else:
            candidates = [directory / name for directory in self._search_dirs()]
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        raise WebServiceError(
            f"WSDL {name} for {self.service_name} not found in: " + ", ".join(str(c.parent) for c in candidates),
            service=self.service_name,
            field="wsdl",
            code=ErrorCode.WEB_SERVICE_WSDL_NOT_FOUND,
        )

    def _client(self) -> SoapClient:
        if self._soap_client is None:
            try:
                self._soap_client = SoapClient(
                    self.wsdl_path,
                    self.endpoint,
                    soap_version=self.registration.soap_version,
                    session=self.afip.session,
                    timeout=self.afip.config.timeout,
                    service=self._service,
                )
            except (OSError, ValueError, etree.XMLSyntaxError, requests.RequestException, ZeepError) as exc:
                raise WebServiceError(
                    f"Could not initialise the SOAP client for {self.wsdl_path}: {exc}",
                    service=self.service_name,
                    code=ErrorCode.WEB_SERVICE_CLIENT_INIT,
                ) from exc
        return self._soap_client

    def _soap_error(self, operation: str, fault: Fault) -> SoapError:
        fault_code = str(fault.code or "")
        fault_message = str(fault.message or "")
        return SoapError(
            f'SOAP Fault in operation "{operation}": {fault_code} - {fault_message}',
            fault_code=fault_code,
            fault_message=fault_message,
            operation=operation,
        )
