"""Keys, CSRs, certificates and CMS signatures for the AFIP onboarding flow.

AFIP certificates are requested with a PKCS#10 CSR whose subject carries the
taxpayer CUIT in ``serialNumber`` ("CUIT 20123456789"). The same certificate
and key later sign the WSAA login request as a CMS (PKCS#7) blob.
"""
import logging
import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs7
from cryptography.x509.oid import NameOID

from .errors import AuthenticationError, CertificateError, ErrorCode, FileError, ValidationError

logger = logging.getLogger(__name__)

PemInput = Union[str, bytes, Path]

MIN_KEY_BITS = 2048

DN_FIELDS = (
    "countryName",
    "stateOrProvinceName",
    "localityName",
    "organizationName",
    "commonName",
    "serialNumber",
)

_DN_OIDS = {
    "countryName": NameOID.COUNTRY_NAME,
    "stateOrProvinceName": NameOID.STATE_OR_PROVINCE_NAME,
    "localityName": NameOID.LOCALITY_NAME,
    "organizationName": NameOID.ORGANIZATION_NAME,
    "commonName": NameOID.COMMON_NAME,
    "serialNumber": NameOID.SERIAL_NUMBER,
}
_OID_NAMES = {oid: name for name, oid in _DN_OIDS.items()}

_CUIT_RE = re.compile(r"[0-9]{11}")
_DN_SERIAL_RE = re.compile(r"CUIT [0-9]{11}")
_PKCS7_PEM_RE = re.compile(r"-----BEGIN PKCS7-----\s*(.*?)\s*-----END PKCS7-----", re.S)
_B64_RE = re.compile(r"[A-Za-z0-9+/=]+")


def _read_pem(value: PemInput, operation: str, code: ErrorCode) -> bytes:
    """Return PEM/DER bytes from inline content or from a file path."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str) and "-----BEGIN" in value:
        return value.encode("utf-8")
    try:
        return Path(value).read_bytes()
    except (OSError, ValueError) as exc:
        raise CertificateError(f"Cannot read {value}", operation=operation, code=code) from exc


def _load_private_key(private_key: PemInput, passphrase: Optional[str], operation: str):
    data = _read_pem(private_key, operation, ErrorCode.CERT_INVALID_KEY)
    password = passphrase.encode("utf-8") if passphrase else None
    try:
        return serialization.load_pem_private_key(data, password=password)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise CertificateError(
            "Private key could not be loaded", operation=operation, code=ErrorCode.CERT_INVALID_KEY
        ) from exc


def _load_certificate(certificate: PemInput, operation: str) -> x509.Certificate:
    data = _read_pem(certificate, operation, ErrorCode.CERT_CERTIFICATE_READ)
    try:
        if b"-----BEGIN" in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as exc:
        raise CertificateError(
            "X.509 certificate could not be parsed", operation=operation, code=ErrorCode.CERT_CERTIFICATE_READ
        ) from exc


# ---------------------------------------------------------------------------
# Keys and CSRs
# ---------------------------------------------------------------------------


def generate_private_key(bits: int = MIN_KEY_BITS, passphrase: Optional[str] = None) -> str:
    """Generate an RSA key (PKCS#1 PEM). AFIP rejects keys under 2048 bits."""
    if bits < MIN_KEY_BITS:
        raise ValidationError(
            f"Private key must be at least {MIN_KEY_BITS} bits",
            field="bits",
            value=bits,
            rule=f"min:{MIN_KEY_BITS}",
            code=ErrorCode.VALIDATION_INVALID_PARAMETER,
        )
    key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    encryption = (
        serialization.BestAvailableEncryption(passphrase.encode("utf-8"))
        if passphrase
        else serialization.NoEncryption()
    )
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=encryption,
    ).decode("ascii")


def generate_csr(private_key: PemInput, dn: Mapping[str, str], passphrase: Optional[str] = None) -> str:
    """Build and sign a PKCS#10 request for ``dn``; returns PEM text."""
    key = _load_private_key(private_key, passphrase, "load_private_key")
    attributes = []
    for name, value in dn.items():
        oid = _DN_OIDS.get(name)
        if oid is None:
            raise CertificateError(f"Unsupported DN attribute: {name}", operation="build_subject")
        try:
            attributes.append(x509.NameAttribute(oid, str(value)))
        except ValueError as exc:
            raise CertificateError(f"Invalid value for DN attribute {name}", operation="build_subject") from exc
    try:
        csr = (
            x509.CertificateSigningRequestBuilder()
            .subject_name(x509.Name(attributes))
            .sign(key, hashes.SHA256())
        )
    except (ValueError, TypeError) as exc:
        raise CertificateError("CSR signing failed", operation="sign_csr") from exc
    return csr.public_bytes(serialization.Encoding.PEM).decode("ascii")


def extract_csr_dn(csr: PemInput) -> Dict[str, str]:
    """Return the CSR subject keyed by friendly names (unknown OIDs stay dotted)."""
    data = _read_pem(csr, "read_csr", ErrorCode.CERT_CSR_READ)
    try:
        if b"-----BEGIN" in data:
            request = x509.load_pem_x509_csr(data)
        else:
            request = x509.load_der_x509_csr(data)
        subject = request.subject
    except ValueError as exc:
        raise CertificateError(
            "CSR subject could not be decoded", operation="extract_csr_dn", code=ErrorCode.CERT_CSR_READ
        ) from exc
    result = {}
    for attribute in subject:
        key = _OID_NAMES.get(attribute.oid, attribute.oid.dotted_string)
        result[key] = attribute.value
    return result


def extract_certificate_info(certificate: PemInput) -> Dict[str, object]:
    cert = _load_certificate(certificate, "extract_certificate_info")
    try:
        hash_algorithm = cert.signature_hash_algorithm
    except UnsupportedAlgorithm:
        hash_algorithm = None
    return {
        "version": cert.version.value + 1,
        "serialNumber": str(cert.serial_number),
        "issuer": cert.issuer.rfc4514_string(),
        "subject": cert.subject.rfc4514_string(),
        "validFrom": int(cert.not_valid_before_utc.timestamp()),
        "validTo": int(cert.not_valid_after_utc.timestamp()),
        "signatureAlgorithm": cert.signature_algorithm_oid.dotted_string,
        "signatureHash": hash_algorithm.name if hash_algorithm else None,
    }


# ---------------------------------------------------------------------------
# Distinguished Names
# ---------------------------------------------------------------------------


def validate_dn(dn: Mapping[str, str]) -> bool:
    for name in DN_FIELDS:
        value = dn.get(name)
        if value is None or not str(value).strip():
            raise ValidationError(
                f'Field "{name}" is required in the Distinguished Name',
                field=name,
                value=value,
                rule="required",
                code=ErrorCode.VALIDATION_INCOMPLETE_DN,
            )
    serial = str(dn["serialNumber"]).strip()
    if not _DN_SERIAL_RE.fullmatch(serial):
        raise ValidationError(
            'serialNumber must look like "CUIT XXXXXXXXXXX"',
            field="serialNumber",
            value=serial,
            rule="format:CUIT_XXXXXXXXXXX",
            code=ErrorCode.VALIDATION_CUIT_FORMAT,
        )
    return True


def build_dn(
    cuit: str,
    organization: str,
    common_name: str,
    province: str = "Buenos Aires",
    locality: str = "Ciudad Autónoma de Buenos Aires",
    country: str = "AR",
) -> Dict[str, str]:
    """Assemble the minimal DN AFIP expects for a CSR."""
    cuit = str(cuit)
    if not _CUIT_RE.fullmatch(cuit):
        raise ValidationError(
            "CUIT must contain exactly 11 digits",
            field="cuit",
            value=cuit,
            rule="numeric|size:11",
            code=ErrorCode.VALIDATION_INVALID_CUIT,
        )
    dn = {
        "countryName": country,
        "stateOrProvinceName": province,
        "localityName": locality,
        "organizationName": organization,
        "commonName": common_name,
        "serialNumber": f"CUIT {cuit}",
    }
    validate_dn(dn)
    return dn


# ---------------------------------------------------------------------------
# CMS signing (WSAA login)
# ---------------------------------------------------------------------------


def sign_cms(
    data: bytes,
    certificate: PemInput,
    private_key: PemInput,
    passphrase: Optional[str] = None,
) -> bytes:
    """Sign ``data`` as attached CMS signed-data and return it as PEM."""
    cert = _load_certificate(certificate, "sign_cms")
    key = _load_private_key(private_key, passphrase, "sign_cms")
    try:
        return (
            pkcs7.PKCS7SignatureBuilder()
            .set_data(data)
            .add_signer(cert, key, hashes.SHA256())
            .sign(serialization.Encoding.PEM, [pkcs7.PKCS7Options.Binary])
        )
    except (ValueError, TypeError) as exc:
        raise CertificateError("CMS signing failed", operation="sign_cms", code=ErrorCode.CERT_INVALID_KEY) from exc


def extract_cms(signed: Union[str, bytes]) -> str:
    """Pull the base64 CMS body out of PEM or S/MIME signer output."""
    text = signed.decode("ascii", errors="replace") if isinstance(signed, bytes) else signed
    match = _PKCS7_PEM_RE.search(text)
    if match:
        body = match.group(1)
    else:
        parts = re.split(r"\r\n\r\n|\n\n", text, maxsplit=1)
        body = parts[1] if len(parts) == 2 else ""
    cms = re.sub(r"\s+", "", body)
    if not cms or not _B64_RE.fullmatch(cms):
        raise AuthenticationError(
            "Could not extract the CMS from the signed login request",
            step="sign",
            code=ErrorCode.AUTH_TRA_SIGNING,
        )
    return cms


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def save_file(content: Union[str, bytes], path: Union[str, Path]) -> Path:
    target = Path(path)
    try:
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise FileError(f"Cannot write {target}", path=target, operation="write", code=ErrorCode.FILE_WRITE) from exc
    logger.debug("Wrote %s", target)
    return target


def load_file(path: Union[str, Path]) -> str:
    target = Path(path)
    try:
        return target.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise FileError(f"File not found: {target}", path=target, operation="read", code=ErrorCode.FILE_NOT_FOUND) from exc
    except OSError as exc:
        raise FileError(f"Cannot read {target}", path=target, operation="read", code=ErrorCode.FILE_READ) from exc
