import os
import logging
from pathlib import Path
from afip_ws import Afip, AfipConfig, AfipError

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("example_wsfe")

def main():
    # cert/key and the wsfe WSDLs are read from AFIP_RESOURCES
    cfg = AfipConfig(
        cuit=os.getenv("AFIP_CUIT", "20294192345"),
        resources_dir=Path(os.getenv("AFIP_RESOURCES", "resources")),
        passphrase=os.getenv("AFIP_KEY_PASSPHRASE") or None,
        production=os.getenv("AFIP_PRODUCTION") == "1",
    )
    afip = Afip(cfg)
    billing = afip.get_service("wsfe")

    try:
        status = billing.get_server_status()
        logger.info(f"Server status: {status}")
        last = billing.get_last_voucher(sales_point=1, voucher_type=6)
        logger.info(f"Last authorised Factura B: {last}")
    except AfipError as e:
        logger.error(f"AFIP call failed [{e.code}] {e}: {e.context}")

if __name__ == "__main__":
    main()
