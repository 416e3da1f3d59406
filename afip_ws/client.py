import functools
import logging
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from .auth import TicketManager, TokenAuthorization
from .config import AfipConfig
from .errors import ConfigurationError, ErrorCode
from .services import PADRON_SERVICES, ElectronicBilling, TaxpayerRegistry
from .soap.client import build_session
from .webservice import WebService

logger = logging.getLogger(__name__)

ServiceFactory = Callable[["Afip"], WebService]


def default_service_factories() -> Dict[str, ServiceFactory]:
    factories: Dict[str, ServiceFactory] = {"wsfe": ElectronicBilling}
    for name in PADRON_SERVICES:
        factories[name] = functools.partial(TaxpayerRegistry, name=name)
    return factories


class Afip:
    """Entry point: owns the config, the HTTP session, the ticket cache and
    the registry of named services."""

    def __init__(
        self,
        cfg: AfipConfig,
        *,
        service_factories: Optional[Mapping[str, ServiceFactory]] = None,
        wsaa_service=None,
        session: Optional[requests.Session] = None,
    ):
        self.config = cfg
        self.session = session or build_session()
        self.tickets = TicketManager(cfg, session=self.session, service=wsaa_service)
        self._factories: Dict[str, ServiceFactory] = default_service_factories()
        if service_factories:
            self._factories.update(service_factories)
        self._instances: Dict[str, WebService] = {}

        if not cfg.soap_exceptions:
            logger.warning("soap_exceptions=False is ignored; SOAP faults are always raised as SoapError")
        logger.info(
            "AFIP client ready for CUIT %s (%s)",
            cfg.cuit,
            "production" if cfg.production else "testing",
        )

    @property
    def cuit(self) -> int:
        return self.config.cuit

    @property
    def is_production(self) -> bool:
        return self.config.production

    @property
    def version(self) -> str:
        from . import __version__

        return __version__

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_ticket(self, service: str) -> TokenAuthorization:
        """Valid access ticket for ``service``, logging in to WSAA if needed."""
        return self.tickets.get_ticket(service)

    def get_service(self, name: str) -> WebService:
        if name not in self._instances:
            factory = self._factories.get(name)
            if factory is None:
                raise ConfigurationError(
                    f'Unknown web service "{name}". Registered: {", ".join(sorted(self._factories))}',
                    field="service",
                    value=name,
                    code=ErrorCode.CONFIG_UNKNOWN_SERVICE,
                )
            self._instances[name] = factory(self)
        return self._instances[name]

    def register_service(self, name: str, factory: ServiceFactory) -> None:
        """Add or replace a named service; a cached instance is discarded."""
        self._factories[name] = factory
        self._instances.pop(name, None)

    def web_service(self, service: str, options: Optional[Mapping[str, Any]] = None, *, soap_service=None) -> WebService:
        """Dispatcher for a service without a dedicated class.

        ``options`` needs ``wsdl``, ``url``, ``wsdl_test`` and ``url_test``;
        ``service`` is the WSAA service key.
        """
        opts = dict(options or {})
        opts.setdefault("service", service)
        return WebService.generic(self, opts, service=soap_service)

    @property
    def electronic_billing(self) -> ElectronicBilling:
        return self.get_service("wsfe")
