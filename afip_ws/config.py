import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .errors import ConfigurationError, ErrorCode

RESOURCES_DIR = Path(__file__).resolve().parent / "resources"

_DIGITS_RE = re.compile(r"[0-9]+")


@dataclass
class AfipConfig:
    """Credentials and local paths for the AFIP web services."""

    cuit: Union[int, str]
    certificate: Path = Path("cert")
    private_key: Path = Path("key")
    passphrase: Optional[str] = None
    production: bool = False
    # Relative certificate / key paths are resolved against this directory.
    resources_dir: Path = RESOURCES_DIR
    # Ticket cache (TA-*.xml); defaults to resources_dir
    ta_dir: Optional[Path] = None
    # Custom WSDL directory, searched before the bundled resources
    wsdl_dir: Optional[Path] = None
    # SOAP Faults are always raised as SoapError; see DESIGN.md
    soap_exceptions: bool = True
    timeout: int = 30

    certificate_path: Path = field(init=False)
    private_key_path: Path = field(init=False)

    def __post_init__(self):
        if isinstance(self.cuit, bool) or not _DIGITS_RE.fullmatch(str(self.cuit).strip()):
            raise ConfigurationError(
                "CUIT must be numeric",
                field="cuit",
                value=self.cuit,
                code=ErrorCode.CONFIG_INVALID_VALUE,
            )
        self.cuit = int(str(self.cuit).strip())
        self.resources_dir = Path(self.resources_dir)
        self.ta_dir = Path(self.ta_dir) if self.ta_dir else self.resources_dir
        self.wsdl_dir = Path(self.wsdl_dir) if self.wsdl_dir else None
        self.certificate_path = self._resolve(self.certificate, "certificate")
        self.private_key_path = self._resolve(self.private_key, "private_key")

    def _resolve(self, path: Union[str, Path], name: str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.resources_dir / candidate
        if not candidate.is_file():
            raise ConfigurationError(
                f"{name} file not found or not accessible: {candidate}",
                field=name,
                value=str(candidate),
                code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            )
        return candidate.resolve()

    @property
    def environment_suffix(self) -> str:
        return "-production" if self.production else ""
