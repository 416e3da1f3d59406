from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .api import billing, padron
from .errors import ErrorCode, WebServiceError
from .webservice import SERVICES, WebService

PADRON_SERVICES = (
    "ws_sr_padron_a4",
    "ws_sr_padron_a5",
    "ws_sr_padron_a10",
    "ws_sr_padron_a13",
    "ws_sr_constancia_inscripcion",
)


class ElectronicBilling(WebService):
    """Electronic invoicing (wsfe)."""

    def __init__(self, afip, *, service=None):
        super().__init__(afip, SERVICES["wsfe"], service=service)

    def get_server_status(self) -> Mapping[str, Any]:
        return billing.get_server_status(self)

    def get_last_voucher(self, sales_point: int, voucher_type: int) -> int:
        return billing.get_last_voucher(self, sales_point, voucher_type)

    def create_voucher(self, vouchers: Sequence[Mapping[str, Any]]) -> Mapping[str, Any]:
        """Request a CAE; ``vouchers`` are FECAEDetRequest dicts."""
        return billing.create_voucher(self, vouchers)

    def get_voucher_types(self) -> List[Mapping[str, Any]]:
        return billing.get_voucher_types(self)

    def get_document_types(self) -> List[Mapping[str, Any]]:
        return billing.get_document_types(self)

    def get_currency_types(self) -> List[Mapping[str, Any]]:
        return billing.get_currency_types(self)


class TaxpayerRegistry(WebService):
    """Taxpayer registry lookups (padron A4/A5/A10/A13 and constancia de inscripcion).

    The constancia service exposes ``_v2`` operation names; A13 additionally
    resolves CUITs from a national ID number.
    """

    def __init__(self, afip, name: str, *, service=None):
        if name not in PADRON_SERVICES:
            raise WebServiceError(
                f"{name} is not a taxpayer registry service",
                service=name,
                code=ErrorCode.WEB_SERVICE_GENERAL,
            )
        super().__init__(afip, SERVICES[name], service=service)
        self._suffix = "_v2" if name == "ws_sr_constancia_inscripcion" else ""

    def get_server_status(self) -> Mapping[str, Any]:
        return padron.get_server_status(self)

    def get_taxpayer(self, tax_id: int) -> Optional[Mapping[str, Any]]:
        return padron.get_taxpayer(self, tax_id, operation=f"getPersona{self._suffix}")

    def get_taxpayers(self, tax_ids: Iterable[int]) -> Optional[Mapping[str, Any]]:
        return padron.get_taxpayers(self, tax_ids, operation=f"getPersonaList{self._suffix}")

    def get_tax_id_by_document(self, document_number: str) -> Optional[Mapping[str, Any]]:
        if self.service_name != "ws_sr_padron_a13":
            raise WebServiceError(
                f"{self.service_name} does not support lookups by document",
                service=self.service_name,
                operation="getIdPersonaListByDocumento",
                code=ErrorCode.WEB_SERVICE_UNKNOWN_OPERATION,
            )
        return padron.get_tax_id_by_document(self, document_number)
