import datetime as _dt
from typing import Optional, Tuple

from dateutil import parser as date_parser
from lxml import etree

from ..utils import tz_buenos_aires

# WSAA accepts requests generated at most 10 minutes ago / expiring within 10 minutes.
TRA_WINDOW = _dt.timedelta(seconds=600)


def build_login_request(service: str, now: Optional[_dt.datetime] = None) -> bytes:
    """Builds the loginTicketRequest (TRA) for ``service``.

    ``uniqueId`` is the current unix time; generation/expiration bracket
    ``now`` by ten minutes on each side to absorb clock skew.
    """
    now = now or _dt.datetime.now(tz=tz_buenos_aires())
    root = etree.Element("loginTicketRequest", version="1.0")
    header = etree.SubElement(root, "header")
    etree.SubElement(header, "uniqueId").text = str(int(now.timestamp()))
    etree.SubElement(header, "generationTime").text = (now - TRA_WINDOW).isoformat(timespec="seconds")
    etree.SubElement(header, "expirationTime").text = (now + TRA_WINDOW).isoformat(timespec="seconds")
    etree.SubElement(root, "service").text = service
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8")


def _parse_time(text: Optional[str]) -> Optional[_dt.datetime]:
    if not text or not text.strip():
        return None
    value = date_parser.isoparse(text.strip())
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz_buenos_aires())
    return value


def parse_login_response(
    xml: str | bytes,
) -> Tuple[str, str, Optional[_dt.datetime], Optional[_dt.datetime]]:
    """Returns (token, sign, generation_time, expiration_time) from a loginTicketResponse.

    Raises ``ValueError`` on malformed XML, missing credentials or bad timestamps.
    """
    data = xml.encode("utf-8") if isinstance(xml, str) else xml
    try:
        root = etree.fromstring(data.strip())
    except etree.XMLSyntaxError as exc:
        raise ValueError(f"malformed ticket XML: {exc}") from exc
    token = root.findtext("credentials/token")
    sign = root.findtext("credentials/sign")
    if not token or not sign:
        raise ValueError("ticket has no token/sign credentials")
    generation = _parse_time(root.findtext("header/generationTime"))
    expiration = _parse_time(root.findtext("header/expirationTime"))
    if expiration is None:
        raise ValueError("ticket has no expirationTime")
    return token.strip(), sign.strip(), generation, expiration
