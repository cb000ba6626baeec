"""CLI entry point."""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from cli.config import DEFAULT_CONFIG_PATH, Config
from cli.upload_client import UploadClient
from cli.utils import format_file_size
from common.exceptions import IntegrityMismatchError, UploadError
from common.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='chunk-upload', description='Chunked file upload client')
    parser.add_argument('--config', type=Path, default=DEFAULT_CONFIG_PATH, help='Path to config JSON file')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    upload_parser = subparsers.add_parser('upload', help='Upload one or more files')
    upload_parser.add_argument('paths', nargs='+', type=Path)

    subparsers.add_parser('list', help='List files stored on the server')

    verify_parser = subparsers.add_parser('verify', help='Verify the server copy of local files')
    verify_parser.add_argument('paths', nargs='+', type=Path)

    return parser


def _print_progress(done: int, total: int) -> None:
    sys.stdout.write(f"\r  chunks: {done}/{total}")
    if done == total:
        sys.stdout.write('\n')
    sys.stdout.flush()


def run_upload(client: UploadClient, paths: List[Path]) -> int:
    failures = 0
    for path in paths:
        print(f"Uploading {path.name}")
        try:
            summary = client.upload_file(path, on_progress=_print_progress)
        except IntegrityMismatchError as e:
            print(f"Error: {e} (expected {e.expected}, actual {e.actual})")
            failures += 1
            continue
        except (UploadError, ConnectionError) as e:
            print(f"Error uploading {path}: {e}")
            failures += 1
            continue

        if summary.instant:
            print(f"Already on server: {summary.url}")
        else:
            print(
                f"Uploaded: {summary.url} ({format_file_size(summary.size)}, "
                f"{summary.chunks_sent} chunks sent, {summary.chunks_skipped} resumed)"
            )
    return 1 if failures else 0


def run_list(client: UploadClient) -> int:
    try:
        files = client.list_files()
    except (UploadError, ConnectionError) as e:
        print(f"Error: {e}")
        return 1

    if not files:
        print("No files on server.")
        return 0

    for entry in files:
        print(f"{entry['name']}\t{format_file_size(entry['size'])}\t{entry['createTime']}")
    return 0


def run_verify(client: UploadClient, paths: List[Path]) -> int:
    failures = 0
    for path in paths:
        try:
            result = client.verify_local_file(path)
        except (UploadError, ConnectionError) as e:
            print(f"Error verifying {path}: {e}")
            failures += 1
            continue

        if result.get('verified'):
            print(f"OK: {path.name}")
        else:
            details = result.get('details', {})
            print(f"MISMATCH: {path.name} (expected {details.get('expected')}, actual {details.get('actual')})")
            failures += 1
    return 1 if failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for CLI."""
    args = build_parser().parse_args(argv)

    log_level = 'DEBUG' if args.debug else os.getenv('LOG_LEVEL', 'WARNING')
    logger = setup_logging('cli', log_level=log_level)

    with UploadClient(Config(args.config)) as client:
        try:
            if args.command == 'upload':
                return run_upload(client, args.paths)
            if args.command == 'list':
                return run_list(client)
            return run_verify(client, args.paths)
        except Exception as e:
            logger.error(f"CLI error: {e}", exc_info=True)
            raise


if __name__ == "__main__":
    sys.exit(main())
