import os
import logging
from pathlib import Path
from afip_ws import ValidationError
from afip_ws.utils_crypto import build_dn, generate_csr, generate_private_key, extract_csr_dn, save_file

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("example_csr")

def main():
    cuit = os.getenv("AFIP_CUIT", "20294192345")
    out_dir = Path(os.getenv("AFIP_OUT_DIR", "."))
    passphrase = os.getenv("AFIP_KEY_PASSPHRASE") or None

    try:
        dn = build_dn(
            cuit,
            organization=os.getenv("AFIP_ORGANIZATION", "Mi Empresa SA"),
            common_name=os.getenv("AFIP_ALIAS", "facturacion"),
        )
    except ValidationError as e:
        logger.error(f"Invalid DN field {e.field}: {e}")
        return

    key = generate_private_key(2048, passphrase=passphrase)
    save_file(key, out_dir / "key")
    csr = generate_csr(key, dn, passphrase=passphrase)
    save_file(csr, out_dir / f"{cuit}.csr")

    logger.info(f"CSR subject: {extract_csr_dn(csr)}")
    logger.info("Upload the CSR in the AFIP 'Administración de Certificados Digitales' service")

if __name__ == "__main__":
    main()
