from typing import Any, List, Mapping, Sequence

from zeep.helpers import serialize_object

from ..errors import BillingError, ErrorCode, ValidationError


def _raise_for_errors(response: Mapping[str, Any], operation: str) -> Mapping[str, Any]:
    """wsfe reports rejected requests in an ``Errors/Err`` block, not as SOAP Faults."""
    errors = (response.get("Errors") or {}).get("Err") or []
    if isinstance(errors, dict):
        errors = [errors]
    if errors:
        summary = "; ".join(f"{e.get('Code')}: {e.get('Msg')}" for e in errors)
        raise BillingError(f"{operation} rejected by AFIP: {summary}", operation=operation, errors=errors)
    return response


def _call(ws, operation: str, params=None) -> Mapping[str, Any]:
    response = serialize_object(ws.execute(operation, params)) or {}
    return _raise_for_errors(response, operation)


def get_server_status(ws) -> Mapping[str, Any]:
    """Application, database and auth server status (``FEDummy``)."""
    return serialize_object(ws.execute("FEDummy")) or {}


def get_last_voucher(ws, sales_point: int, voucher_type: int) -> int:
    """Number of the last authorised voucher for a sales point and type."""
    response = _call(
        ws,
        "FECompUltimoAutorizado",
        {"Auth": ws.auth_header(), "PtoVta": sales_point, "CbteTipo": voucher_type},
    )
    return int(response.get("CbteNro") or 0)


def create_voucher(ws, vouchers: Sequence[Mapping[str, Any]]) -> Mapping[str, Any]:
    """Request a CAE for one or more vouchers of the same sales point and type."""
    vouchers = list(vouchers)
    if not vouchers:
        raise ValidationError(
            "At least one voucher is required",
            field="vouchers",
            value=vouchers,
            rule="required",
            code=ErrorCode.VALIDATION_REQUIRED_PARAMETER,
        )
    first = vouchers[0]
    params = {
        "Auth": ws.auth_header(),
        "FeCAEReq": {
            "FeCabReq": {
                "CantReg": len(vouchers),
                "PtoVta": first.get("PtoVta", 1),
                "CbteTipo": first.get("CbteTipo", 11),
            },
            "FeDetReq": {"FECAEDetRequest": vouchers},
        },
    }
    return _call(ws, "FECAESolicitar", params)


def _param_list(ws, operation: str, item_key: str) -> List[Mapping[str, Any]]:
    response = _call(ws, operation, {"Auth": ws.auth_header()})
    items = (response.get("ResultGet") or {}).get(item_key) or []
    if isinstance(items, dict):
        return [items]
    return list(items)


def get_voucher_types(ws) -> List[Mapping[str, Any]]:
    return _param_list(ws, "FEParamGetTiposCbte", "CbteTipo")


def get_document_types(ws) -> List[Mapping[str, Any]]:
    return _param_list(ws, "FEParamGetTiposDoc", "DocTipo")


def get_currency_types(ws) -> List[Mapping[str, Any]]:
    return _param_list(ws, "FEParamGetTiposMonedas", "Moneda")
