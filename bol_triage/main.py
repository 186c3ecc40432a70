import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path

from bol_triage.config.settings import Settings
from bol_triage.export.models import ExportFormat
from bol_triage.logging.logger import Log
from bol_triage.triage.service import build_service


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="bol-triage",
        description="Triage Bill of Lading files and print the export of processed records.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="PDF or image files to process")
    parser.add_argument(
        "--format",
        dest="fmt",
        choices=[fmt.value for fmt in ExportFormat],
        default=ExportFormat.JSON.value,
        help="export format written to stdout (default: json)",
    )
    return parser.parse_args(argv)


async def run(files: list[Path], fmt: str, settings: Settings) -> bytes:
    """Upload each file, wait for triage, and return the bulk export."""
    service = await build_service(settings)
    try:
        for path in files:
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            await service.upload(path.read_bytes(), path.name, mime_type)
        await service.drain()
        for document in await service.list_all():
            Log.info(
                f"{document.filename}: {document.status}",
                document_id=document.id,
                confidence=document.confidence,
            )
        return await service.bulk_export(fmt)
    finally:
        await service.close()


def main(argv: list[str] | None = None) -> None:
    """Entry point: load settings -> build service -> triage files -> export."""
    args = parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level, stream=sys.stderr)
    missing = [str(path) for path in args.files if not path.is_file()]
    if missing:
        Log.error(f"Files not found: {', '.join(missing)}")
        sys.exit(2)
    sys.stdout.buffer.write(asyncio.run(run(args.files, args.fmt, settings)))


if __name__ == "__main__":
    main()
