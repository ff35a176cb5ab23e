"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from ..client import GedClient, GedError
from ..config import ConfigValidationError, GedConfig, create_default_config, load_config

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _key_value(raw: str) -> tuple[str, str]:
    """Parse a KEY=VALUE argument."""
    if "=" not in raw:
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got '{raw}'")
    key, value = raw.split("=", 1)
    return key, value


def _iso_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM-DD, got '{raw}'")


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ged-client",
        description="Query and manage documents on the GED service",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init-config", help="Write a default config file")
    subparsers.add_parser("connect", help="Check the API key handshake")
    subparsers.add_parser("profiles", help="List user profiles")

    doctypes_parser = subparsers.add_parser("doctypes", help="List the doctypes of a workspace")
    doctypes_parser.add_argument("workspace", type=str)

    metadata_parser = subparsers.add_parser("metadata", help="List the metadata of a doctype")
    metadata_parser.add_argument("doctype_id", type=str)

    documents_parser = subparsers.add_parser(
        "documents", help="List the documents of a workspace grouped by doctype"
    )
    documents_parser.add_argument("workspace", type=str)
    documents_parser.add_argument(
        "--filter",
        dest="filters",
        type=_key_value,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Metadata filter; repeat a key to OR its values",
    )
    documents_parser.add_argument(
        "--with-metadata",
        action="store_true",
        help="Include document metadata",
    )

    search_parser = subparsers.add_parser(
        "search", help="Search documents by modification date"
    )
    search_parser.add_argument("workspace", type=str)
    search_parser.add_argument("--from", dest="from_date", type=_iso_date, metavar="YYYY-MM-DD")
    search_parser.add_argument("--to", dest="to_date", type=_iso_date, metavar="YYYY-MM-DD")
    search_parser.add_argument(
        "--with-deleted",
        action="store_true",
        help="Include deleted documents",
    )

    download_parser = subparsers.add_parser("download", help="Download a document")
    download_parser.add_argument("document_id", type=str)
    download_parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory to write the file to (default: current directory)",
    )

    upload_parser = subparsers.add_parser("upload", help="Upload a document")
    upload_parser.add_argument("path", type=Path)
    upload_parser.add_argument("workspace", type=str)
    upload_parser.add_argument("doctype", type=str)
    upload_parser.add_argument(
        "--metadata",
        type=_key_value,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Document metadata value (label defaults to the value)",
    )
    upload_parser.add_argument("--mime-type", type=str, default="application/pdf")
    upload_parser.add_argument("--extension", type=str, default="pdf")
    upload_parser.add_argument(
        "--keep",
        action="store_true",
        help="Keep the local file after upload",
    )

    url_parser = subparsers.add_parser("url", help="Print the direct download URL of a document")
    url_parser.add_argument("document_id", type=str)

    return parser


def group_filters(pairs: list[tuple[str, str]]) -> dict:
    """Group repeated KEY=VALUE filters; repeated keys become value lists."""
    filters: dict = {}
    for key, value in pairs:
        if key not in filters:
            filters[key] = value
        elif isinstance(filters[key], list):
            filters[key].append(value)
        else:
            filters[key] = [filters[key], value]
    return filters


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def cmd_connect(client: GedClient) -> int:
    """Check the handshake."""
    try:
        client.get_token()
    except GedError as e:
        print(f"❌ Failed to connect to GED: {e}")
        return 1

    print(f"✓ Connected to {client.base_url} as '{client.identity}'")
    return 0


def cmd_query(result) -> int:
    """Print a JSON result; None means the call failed."""
    if result is None:
        print("❌ GED request failed (see log for details)")
        return 1
    _print_json(result)
    return 0


def cmd_download(client: GedClient, document_id: str, output_dir: Path) -> int:
    """Download a document to output_dir."""
    try:
        downloaded = client.download_document(document_id)
    except GedError as e:
        print(f"❌ {e}")
        return 1

    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / Path(downloaded.file_name).name
    target.write_bytes(downloaded.file_content)
    print(f"✓ Saved {target} ({len(downloaded.file_content)} bytes)")
    return 0


def cmd_upload(
    client: GedClient,
    path: Path,
    workspace: str,
    doctype: str,
    metadata_pairs: list[tuple[str, str]],
    mime_type: str,
    extension: str,
    keep: bool,
) -> int:
    """Upload a local file."""
    if not path.is_file():
        print(f"❌ File not found: {path}")
        return 1

    metadata = {key: {"value": value, "label": value} for key, value in metadata_pairs}

    try:
        response = client.post_document(
            str(path),
            workspace,
            metadata,
            doctype,
            mime_type=mime_type,
            extension=extension,
            delete_file_after=not keep,
        )
    except GedError as e:
        print(f"❌ {e}")
        return 1

    return cmd_query(response)


def run_command(client: GedClient, parsed: argparse.Namespace) -> int:
    """Route a parsed command to the client."""
    if parsed.command == "connect":
        return cmd_connect(client)
    elif parsed.command == "profiles":
        return cmd_query(client.get_user_profiles())
    elif parsed.command == "doctypes":
        return cmd_query(client.get_doctypes_by_workspace(parsed.workspace))
    elif parsed.command == "metadata":
        return cmd_query(client.get_metadata_by_doctype(parsed.doctype_id))
    elif parsed.command == "documents":
        return cmd_query(
            client.get_documents(
                parsed.workspace,
                group_filters(parsed.filters),
                with_metadata=parsed.with_metadata,
            )
        )
    elif parsed.command == "search":
        return cmd_query(
            client.search_documents(
                parsed.workspace,
                from_date=parsed.from_date,
                to_date=parsed.to_date,
                with_deleted=parsed.with_deleted,
            )
        )
    elif parsed.command == "download":
        return cmd_download(client, parsed.document_id, parsed.output_dir)
    elif parsed.command == "upload":
        return cmd_upload(
            client,
            parsed.path,
            parsed.workspace,
            parsed.doctype,
            parsed.metadata,
            parsed.mime_type,
            parsed.extension,
            parsed.keep,
        )
    elif parsed.command == "url":
        print(client.get_document_url(parsed.document_id))
        return 0

    return 1


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        if parsed.config.exists():
            print(f"❌ Config file already exists: {parsed.config}")
            return 1
        create_default_config(parsed.config)
        print(f"✓ Wrote {parsed.config}")
        return 0

    # Load config
    try:
        config: GedConfig = load_config(parsed.config)
        config.ensure_valid()
    except ConfigValidationError as e:
        print(f"❌ Invalid config: {e}")
        return 1
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    with GedClient.from_config(config) as client:
        try:
            return run_command(client, parsed)
        except GedError as e:
            logger.exception("GED command %s failed", parsed.command)
            print(f"❌ {e}")
            return 1


if __name__ == "__main__":
    sys.exit(main())
