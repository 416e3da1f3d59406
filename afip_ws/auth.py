import datetime as _dt
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests
from lxml import etree
from zeep.exceptions import Error as ZeepError
from zeep.exceptions import Fault, TransportError

from .config import RESOURCES_DIR, AfipConfig
from .errors import AuthenticationError, CertificateError, ConfigurationError, ErrorCode, FileError
from .soap.client import SoapClient
from .soap.envelope import build_login_request, parse_login_response
from .utils import tz_buenos_aires
from .utils_crypto import extract_cms, load_file, save_file, sign_cms

logger = logging.getLogger(__name__)

WSAA_URL_PRODUCTION = "https://wsaa.afip.gov.ar/ws/services/LoginCms"
WSAA_URL_TEST = "https://wsaahomo.afip.gov.ar/ws/services/LoginCms"
WSAA_WSDL = RESOURCES_DIR / "wsaa.wsdl"

# Tickets this close to expiring are treated as expired.
TICKET_MARGIN = 600


@dataclass(frozen=True)
class TokenAuthorization:
    """Token + sign pair issued by WSAA for one service."""

    token: str
    sign: str
    expiration_time: Optional[_dt.datetime] = None
    generation_time: Optional[_dt.datetime] = None

    def is_expired(self, margin_seconds: int = 0, now: Optional[_dt.datetime] = None) -> bool:
        if self.expiration_time is None:
            return False
        now = now or _dt.datetime.now(tz=tz_buenos_aires())
        return now + _dt.timedelta(seconds=margin_seconds) >= self.expiration_time

    @classmethod
    def from_xml(cls, xml, service: str = "") -> "TokenAuthorization":
        try:
            token, sign, generation, expiration = parse_login_response(xml)
        except ValueError as exc:
            raise AuthenticationError(
                f"Access ticket for {service or 'service'} is malformed: {exc}",
                service=service,
                step="response",
                code=ErrorCode.AUTH_TICKET_CORRUPT,
            ) from exc
        return cls(token=token, sign=sign, expiration_time=expiration, generation_time=generation)


class TicketManager:
    """Obtains WSAA access tickets and caches them as TA-*.xml files.

    A cached ticket is reused until it is within ``TICKET_MARGIN`` seconds of
    expiring; then exactly one login round-trip is attempted per call.
    """

    def __init__(self, cfg: AfipConfig, *, session: Optional[requests.Session] = None, service=None):
        self.cfg = cfg
        self._session = session
        self._wsaa_service = service
        self._soap_client: Optional[SoapClient] = None

    @property
    def wsaa_url(self) -> str:
        return WSAA_URL_PRODUCTION if self.cfg.production else WSAA_URL_TEST

    def ticket_path(self, service: str) -> Path:
        return self.cfg.ta_dir / f"TA-{self.cfg.cuit}-{service}{self.cfg.environment_suffix}.xml"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_ticket(self, service: str) -> TokenAuthorization:
        path = self.ticket_path(service)
        ticket = self._load(path, service)
        if ticket is not None and not ticket.is_expired(TICKET_MARGIN):
            logger.debug("Reusing cached access ticket %s", path.name)
            return ticket

        logger.info(
            "Requesting access ticket for %s (%s)",
            service,
            "production" if self.cfg.production else "testing",
        )
        self._renew(service, path)

        ticket = self._load(path, service, strict=True)
        if ticket is None or ticket.is_expired(TICKET_MARGIN):
            raise AuthenticationError(
                f"Could not obtain a valid access ticket for {service}",
                service=service,
                step="renewal",
                code=ErrorCode.AUTH_TICKET_CREATION,
            )
        return ticket

    def clear(self, service: str) -> None:
        """Drop the cached ticket for ``service`` so the next call logs in again."""
        self.ticket_path(service).unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self, path: Path, service: str, strict: bool = False) -> Optional[TokenAuthorization]:
        if not path.exists():
            return None
        content = load_file(path)
        try:
            return TokenAuthorization.from_xml(content, service)
        except AuthenticationError as exc:
            if strict:
                raise
            logger.warning("Discarding corrupt access ticket %s: %s", path.name, exc)
            return None

    def _renew(self, service: str, path: Path) -> None:
        self._ensure_ta_dir()
        tra = build_login_request(service)
        cms = self._sign(tra, service)
        response = self._login(cms, service)
        # Validate before it replaces whatever is cached.
        TokenAuthorization.from_xml(response, service)
        self._store(path, response)

    def _ensure_ta_dir(self) -> None:
        try:
            self.cfg.ta_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FileError(
                f"Cannot create ticket directory {self.cfg.ta_dir}",
                path=self.cfg.ta_dir,
                operation="mkdir",
                code=ErrorCode.FILE_WRITE,
            ) from exc

    def _sign(self, tra: bytes, service: str) -> str:
        suffix = uuid.uuid4().hex
        tra_path = self.cfg.ta_dir / f"TRA-{suffix}.xml"
        signed_path = self.cfg.ta_dir / f"TRA-signed-{suffix}.tmp"
        try:
            save_file(tra, tra_path)
            try:
                signed = sign_cms(
                    tra_path.read_bytes(),
                    self.cfg.certificate_path,
                    self.cfg.private_key_path,
                    self.cfg.passphrase,
                )
            except CertificateError as exc:
                raise AuthenticationError(
                    f"Signing the login request for {service} failed: {exc}",
                    service=service,
                    step="sign",
                    code=ErrorCode.AUTH_TRA_SIGNING,
                ) from exc
            save_file(signed, signed_path)
            try:
                return extract_cms(load_file(signed_path))
            except AuthenticationError as exc:
                raise AuthenticationError(str(exc), service=service, step="sign", code=exc.code) from exc
        finally:
            tra_path.unlink(missing_ok=True)
            signed_path.unlink(missing_ok=True)

    def _wsaa_client(self) -> SoapClient:
        if self._soap_client is None:
            try:
                self._soap_client = SoapClient(
                    WSAA_WSDL,
                    self.wsaa_url,
                    soap_version="1.1",
                    session=self._session,
                    timeout=self.cfg.timeout,
                    service=self._wsaa_service,
                )
            except (OSError, ValueError, etree.XMLSyntaxError, ZeepError) as exc:
                raise ConfigurationError(
                    f"WSAA WSDL could not be loaded: {exc}",
                    field="wsaa_wsdl",
                    value=str(WSAA_WSDL),
                    code=ErrorCode.CONFIG_FILE_NOT_FOUND,
                ) from exc
        return self._soap_client

    def _login(self, cms: str, service: str) -> str:
        client = self._wsaa_client()
        try:
            result = client.service.loginCms(in0=cms)
        except Fault as exc:
            raise AuthenticationError(
                f"WSAA rejected the login for {service}: {exc.code} - {exc.message}",
                service=service,
                step="login",
                code=ErrorCode.AUTH_WSAA,
            ) from exc
        except (requests.RequestException, TransportError) as exc:
            raise AuthenticationError(
                f"WSAA login round-trip for {service} failed: {exc}",
                service=service,
                step="login",
                code=ErrorCode.AUTH_WSAA,
            ) from exc
        except ZeepError as exc:
            # 200 answers that are not a SOAP envelope (proxy, maintenance page)
            raise AuthenticationError(
                f"WSAA returned an unusable response for {service}: {exc}",
                service=service,
                step="response",
                code=ErrorCode.AUTH_WSAA,
            ) from exc

        if isinstance(result, Fault):
            raise AuthenticationError(
                f"WSAA rejected the login for {service}: {result.code} - {result.message}",
                service=service,
                step="login",
                code=ErrorCode.AUTH_WSAA,
            )
        if isinstance(result, bytes):
            result = result.decode("utf-8")
        if isinstance(result, dict):
            result = result.get("loginCmsReturn")
        elif not isinstance(result, str):
            result = getattr(result, "loginCmsReturn", None)
        if not result:
            raise AuthenticationError(
                f'WSAA response for {service} has no "loginCmsReturn"',
                service=service,
                step="response",
                code=ErrorCode.AUTH_WSAA,
            )
        return result

    def _store(self, path: Path, content: str) -> None:
        tmp = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp.write_text(content, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise FileError(
                f"Cannot write access ticket {path}", path=path, operation="write", code=ErrorCode.FILE_WRITE
            ) from exc
        logger.info("Stored access ticket %s", path.name)
