import sys
import logging
from datetime import datetime, timezone
from afip_ws import CertificateError
from afip_ws.utils_crypto import extract_certificate_info

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("example_cert_info")

def main(path: str):
    try:
        info = extract_certificate_info(path)
    except CertificateError as e:
        logger.error(f"Cannot read certificate: {e}")
        return
    for key, value in info.items():
        if key in ("validFrom", "validTo"):
            value = datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
        logger.info(f"{key}: {value}")

if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "cert")
