#!/usr/bin/env python3
"""
Active Directory Computer Count by Location

Finds every organizational unit (and optionally every container) named after
a target, counts the computer objects beneath each one, and groups the counts
by location, the DN element directly above the matched node. Prints a
console summary and writes AD_<name>_Summary.txt to the output directory.

Examples:
    ad-computer-count ADM
    ad-computer-count Kiosks --include-containers --credential "EXAMPLE\\admin"
    ad-computer-count ADM --server dc01.example.com --output-dir /tmp/reports

Connection settings not given on the command line are read from AD_* environment
variables (a .env file is honored). Without --credential the current Kerberos
identity is used.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ldap.exceptions import (
    CredentialError,
    DirectoryEnvironmentError,
    DirectoryReportError,
    NoCountsObtainedError,
    NoNodesFoundError,
    OutputPathError,
)
from services.config import ReportConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

REMEDIATION = {
    DirectoryEnvironmentError: (
        "Check --server/--search-base (or AD_SERVER/AD_SEARCH_BASE), network access "
        "to the domain controller, and that a Kerberos ticket exists when no "
        "--credential is given."
    ),
    OutputPathError: (
        "Choose a writable --output-dir/--log-file or fix the directory's permissions."
    ),
    CredentialError: "Re-run and enter the password, or store it in the keyring.",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Count AD computers under every node with a given name, grouped by location"
    )
    parser.add_argument(
        "target_name",
        help="Exact name of the organizational unit to search for (e.g. ADM)",
    )
    parser.add_argument(
        "--output-dir",
        help="Directory for the text report (default: $AD_REPORT_OUTPUT_DIR or ./reports)",
    )
    parser.add_argument(
        "--server", help="Domain controller to query (default: $AD_SERVER or the search base domain)"
    )
    parser.add_argument(
        "--search-base",
        help="Root DN to search under (default: $AD_SEARCH_BASE or the domain's naming context)",
    )
    parser.add_argument(
        "--credential",
        help="Bind as this user and prompt for the password (default: $AD_USER or current identity)",
    )
    parser.add_argument(
        "--keyring-service",
        help="Keyring service to look up the --credential password in before prompting",
    )
    parser.add_argument("--port", type=int, help="LDAP port (default: 636, or 389 with --no-ssl)")
    parser.add_argument("--no-ssl", action="store_true", help="Connect without SSL/TLS")
    parser.add_argument(
        "--include-containers",
        action="store_true",
        help="Also match plain containers (CN=<name>), not just organizational units",
    )
    parser.add_argument(
        "--show-nodes",
        action="store_true",
        help="List each matched node with its location and count",
    )
    parser.add_argument("--log-file", help="Also write log output to this file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def configure_logging(config: ReportConfig) -> None:
    """
    Route log output to stdout and, when configured, to a log file.

    Raises:
        OutputPathError: If the log file or its directory cannot be created
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
        except OSError as e:
            raise OutputPathError(f"Cannot open log file {log_path}: {e}") from e

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )


def run(config: ReportConfig) -> Optional[str]:
    """
    Execute one discover/count/group/report pass.

    Returns:
        Optional[str]: Path of the written report, or None when there was nothing to report

    Raises:
        DirectoryEnvironmentError: If ldap3 is unavailable or the directory cannot be reached
        OutputPathError: If the output directory or report file cannot be written
        CredentialError: If the bind password cannot be acquired
    """
    try:
        from ldap.facade.directory_facade import DirectoryFacade
        from reports.summary_report import prepare_output_directory, print_summary, write_report
        from services.computer_count_service import aggregate
    except ImportError as e:
        raise DirectoryEnvironmentError(
            f"Directory client modules unavailable ({e}). "
            f"Install the report's dependencies with: pip install ldap3 keyring pandas"
        ) from e

    prepare_output_directory(config.output_dir)

    facade = DirectoryFacade(config.ldap_config())
    connection_info = facade.get_connection_info()

    logger.info("=" * 80)
    logger.info(f"🚀 Counting computers under nodes named '{config.target_name}'")
    logger.info(f"   Server: {connection_info['server']}:{connection_info['port']}")
    logger.info(f"   Bind Identity: {connection_info['user']}")
    logger.info(f"   Search Base: {facade.search_base}")
    logger.info(f"   Include Containers: {config.include_alternate_type}")
    logger.info("=" * 80)

    nodes = facade.find_nodes_by_name(
        config.target_name, include_alternate_type=config.include_alternate_type
    )

    try:
        result = aggregate(nodes, config.target_name, facade)
    except NoNodesFoundError as e:
        logger.warning(f"⚠️  {e}. No report written.")
        return None
    except NoCountsObtainedError as e:
        logger.warning(f"⚠️  {e}. No report written.")
        return None

    print_summary(result, show_nodes=config.show_nodes)

    report_path = write_report(result, config.output_dir)
    print(f"\n✅ Report saved to: {report_path}")
    return str(report_path)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main function to run the computer count report from the command line.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.target_name.strip():
        parser.error("target_name must not be blank")

    try:
        config = ReportConfig.from_args(args)
    except ValueError as e:
        parser.error(f"Invalid configuration: {e}")

    try:
        configure_logging(config)
        run(config)
    except DirectoryReportError as e:
        logger.error(f"❌ {type(e).__name__}: {e}")
        print(f"❌ Report failed: {e}")
        hint = REMEDIATION.get(type(e))
        if hint:
            print(f"   {hint}")
        sys.exit(1)


if __name__ == "__main__":
    main()
