import logging
import ssl
from pathlib import Path
from typing import Callable, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from zeep import Client, Settings
from zeep.plugins import HistoryPlugin
from zeep.transports import Transport
from zeep.wsdl.bindings.soap import Soap11Binding, Soap12Binding

logger = logging.getLogger(__name__)

# AFIP endpoints only negotiate this legacy suite; peer verification is off.
AFIP_CIPHERS = "AES256-SHA"


def build_ssl_context(ciphers: str = AFIP_CIPHERS) -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    try:
        ctx.set_ciphers(ciphers)
    except ssl.SSLError:
        logger.warning("OpenSSL rejected cipher list %r; using its defaults", ciphers)
    return ctx


class AfipTLSAdapter(HTTPAdapter):
    """HTTPAdapter pinning the TLS options every AFIP endpoint is called with."""

    def __init__(self, ciphers: str = AFIP_CIPHERS, **kwargs):
        self._ssl_context = build_ssl_context(ciphers)
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs["ssl_context"] = self._ssl_context
        return super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, *args, **kwargs):
        kwargs["ssl_context"] = self._ssl_context
        return super().proxy_manager_for(*args, **kwargs)


def build_session() -> requests.Session:
    session = requests.Session()
    session.verify = False  # noqa: S501 (AFIP endpoint requirement)
    session.mount("https://", AfipTLSAdapter())
    return session


def _select_binding(client: Client, soap_version: str) -> str:
    wanted = Soap12Binding if soap_version == "1.2" else Soap11Binding
    bindings = list(client.wsdl.bindings.items())
    if not bindings:
        raise ValueError("WSDL defines no bindings")
    for name, binding in bindings:
        if isinstance(binding, wanted):
            return name
    return bindings[0][0]


class SoapClient:
    """One zeep client bound to a WSDL file and an explicit endpoint."""

    def __init__(
        self,
        wsdl: Union[str, Path],
        endpoint: str,
        *,
        soap_version: str = "1.2",
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        service=None,
    ):
        self.wsdl = str(wsdl)
        self.endpoint = endpoint
        self._history = HistoryPlugin() if service is None else None

        if service is not None:
            self._client = None
            self.service = service
        else:
            transport = Transport(session=session or build_session(), timeout=timeout)
            settings = Settings(strict=False, xml_huge_tree=True)
            self._client = Client(
                self.wsdl,
                transport=transport,
                plugins=[self._history],
                settings=settings,
            )
            binding = _select_binding(self._client, soap_version)
            self.service = self._client.create_service(binding, endpoint)

        logger.info("Initialized SOAP client %s @ %s", Path(self.wsdl).name, endpoint)

    def operation(self, name: str) -> Optional[Callable]:
        try:
            return getattr(self.service, name)
        except AttributeError:
            return None

    @property
    def last_exchange(self):
        """(sent, received) envelopes of the last call, when history is recorded."""
        if self._history is None:
            return None, None
        try:
            return self._history.last_sent, self._history.last_received
        except IndexError:
            return None, None
