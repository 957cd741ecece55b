import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv

DEFAULT_OUTPUT_DIR = "reports"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ReportConfig:
    """Settings for one report run, fixed at startup."""
    target_name: str
    output_dir: str = DEFAULT_OUTPUT_DIR
    server: Optional[str] = None
    search_base: Optional[str] = None
    credential: Optional[str] = None
    keyring_service: Optional[str] = None
    port: Optional[int] = None
    use_ssl: bool = True
    include_alternate_type: bool = False
    show_nodes: bool = False
    log_file: Optional[str] = None
    verbose: bool = False

    @classmethod
    def from_args(cls, args) -> "ReportConfig":
        """
        Build configuration from parsed CLI arguments over environment defaults.

        Command-line values win; unset options fall back to AD_* variables,
        which may come from a .env file.
        """
        load_dotenv()

        port = args.port if args.port is not None else os.getenv("AD_PORT")

        return cls(
            target_name=args.target_name.strip(),
            output_dir=args.output_dir or os.getenv("AD_REPORT_OUTPUT_DIR", DEFAULT_OUTPUT_DIR),
            server=args.server or os.getenv("AD_SERVER") or None,
            search_base=args.search_base or os.getenv("AD_SEARCH_BASE") or None,
            credential=args.credential or os.getenv("AD_USER") or None,
            keyring_service=args.keyring_service or os.getenv("AD_KEYRING_SERVICE") or None,
            port=int(port) if port else None,
            use_ssl=False if args.no_ssl else _env_flag("AD_USE_SSL", True),
            include_alternate_type=(
                args.include_containers or _env_flag("AD_INCLUDE_CONTAINERS", False)
            ),
            show_nodes=args.show_nodes,
            log_file=args.log_file or os.getenv("AD_REPORT_LOG_FILE") or None,
            verbose=args.verbose,
        )

    def ldap_config(self) -> Dict[str, Any]:
        """Connection settings in the form LDAPAdapter expects."""
        return {
            "server": self.server,
            "search_base": self.search_base,
            "user": self.credential,
            "password": os.getenv("AD_PASSWORD") if self.credential else None,
            "keyring_service": self.keyring_service,
            "port": self.port,
            "use_ssl": self.use_ssl,
        }
