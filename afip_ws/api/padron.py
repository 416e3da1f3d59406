from typing import Any, Iterable, Mapping, Optional

from zeep.helpers import serialize_object


def get_server_status(ws) -> Mapping[str, Any]:
    return serialize_object(ws.execute("dummy")) or {}


def get_taxpayer(ws, tax_id: int, *, operation: str = "getPersona") -> Optional[Mapping[str, Any]]:
    """Registry record for one CUIT/CUIL, or None when the service returns nothing."""
    params = dict(ws.padron_auth(), idPersona=int(tax_id))
    return serialize_object(ws.execute(operation, params))


def get_taxpayers(
    ws, tax_ids: Iterable[int], *, operation: str = "getPersonaList"
) -> Optional[Mapping[str, Any]]:
    params = dict(ws.padron_auth(), idPersona=[int(i) for i in tax_ids])
    return serialize_object(ws.execute(operation, params))


def get_tax_id_by_document(ws, document_number: str) -> Optional[Mapping[str, Any]]:
    """CUIT(s) registered for a national ID (DNI) number."""
    params = dict(ws.padron_auth(), documento=str(document_number))
    return serialize_object(ws.execute("getIdPersonaListByDocumento", params))
