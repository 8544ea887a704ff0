"""Main script for verifying label images from the command line."""

import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import List, Optional

from .domain.services.image_acquisition import DEFAULT_MIME_TYPE, ImageSource
from .domain.services.label_verification_service import LabelVerificationService
from .infrastructure.dependencies import get_service_container


async def verify_file(service: LabelVerificationService, image_path: Path) -> Optional[str]:
    """Verify one image file and print its event stream.

    Returns:
        The final result, None if the verification failed
    """
    mime_type = mimetypes.guess_type(image_path.name)[0] or DEFAULT_MIME_TYPE
    source = ImageSource(upload=image_path.read_bytes(), mime_type=mime_type)

    result = None
    async for event in service.stream(source):
        if event.type == "progress":
            print(f"[{event.progress:3d}%] {event.message}")
        elif event.type == "error":
            print(f"\nError: {event.message}")
        else:
            record = event.data
            print(f"\nResult: {record['result']} ({record['match_percent']}%)")
            reference = record.get("reference")
            if reference:
                print(f"Reference: {reference['name']} ({reference['producer'] or 'N/A'})")

            print("\nViolations:")
            for i, violation in enumerate(record["violations"], 1):
                print(f"{i}. {violation}")
            result = record["result"]
    return result


async def main(paths: List[str]):
    """Run the label checker on the given paths, or interactively."""
    print("Label Checker - DOP/IGP olive oil label verification")
    print("-----------------------------------------------------")

    container = get_service_container()
    service = await container.get_label_verification_service()

    try:
        for path in paths:
            await verify_file(service, Path(path))

        while not paths:
            path = input("\nEnter a label image path (or 'quit' to exit): ").strip()
            if path.lower() in ('quit', 'exit', 'q'):
                break

            image_path = Path(path)
            if not image_path.is_file():
                print(f"\nFile not found: {image_path}")
                continue

            await verify_file(service, image_path)

    finally:
        # Clean up
        await container.shutdown()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
