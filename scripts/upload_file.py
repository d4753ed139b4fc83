#!/usr/bin/env python3
# =============================================================================
# Upload Script
# =============================================================================
"""
Upload a patient file through the GIC Connector Upload Gateway.

Asks the gateway for a presigned URL under a fresh UUID scope, then PUTs
the local file straight to S3 with that URL. Any number of uploads can run
at once; each one gets its own scope.

Usage:
    python upload_file.py --url https://GATEWAY_URL/presigned-url \
        --bucket acct-cumulus-gic-connector-dev --file patients.txt

Requirements:
    pip install httpx
"""

import argparse
import asyncio
import sys
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import httpx


@dataclass
class UploadResult:
    """Result of a single upload."""
    success: bool
    object_key: str
    status_code: int
    latency_ms: float
    error: Optional[str] = None


# =============================================================================
# Upload
# =============================================================================

async def request_grant(
    client: httpx.AsyncClient,
    gateway_url: str,
    bucket: str,
    object_key: str,
) -> str:
    """Ask the gateway for a presigned upload URL."""
    response = await client.post(
        gateway_url,
        json={"bucket_name": bucket, "object_key": object_key},
    )
    data = response.json()

    # Lambda responses carry the status in the payload
    status_code = data.get("statusCode", response.status_code)
    if status_code != 200:
        error = data.get("error") or data.get("body") or response.text
        raise RuntimeError(f"gateway refused upload ({status_code}): {error}")

    return data["presigned_url"]


async def upload_file(
    client: httpx.AsyncClient,
    gateway_url: str,
    bucket: str,
    path: Path,
    file_name: str,
) -> UploadResult:
    """Request a grant for a new scope and PUT the file to it."""
    object_key = f"{uuid.uuid4()}/{file_name}"
    start = time.perf_counter()

    try:
        presigned_url = await request_grant(client, gateway_url, bucket, object_key)
        response = await client.put(presigned_url, content=path.read_bytes())
        latency = (time.perf_counter() - start) * 1000

        return UploadResult(
            success=response.status_code == 200,
            object_key=object_key,
            status_code=response.status_code,
            latency_ms=latency,
            error=None if response.status_code == 200 else response.text,
        )
    except (httpx.HTTPError, RuntimeError, KeyError, ValueError) as e:
        return UploadResult(
            success=False,
            object_key=object_key,
            status_code=0,
            latency_ms=0,
            error=str(e),
        )


async def run_uploads(
    gateway_url: str,
    bucket: str,
    path: Path,
    file_name: str,
    count: int,
) -> List[UploadResult]:
    """Run ``count`` concurrent uploads of the same file."""
    async with httpx.AsyncClient(timeout=30.0) as client:
        return await asyncio.gather(
            *(upload_file(client, gateway_url, bucket, path, file_name) for _ in range(count))
        )


def print_results(results: List[UploadResult]) -> None:
    """Print one line per upload and a summary."""
    for r in results:
        if r.success:
            print(f"  OK   {r.object_key} ({r.latency_ms:.0f}ms)")
        else:
            print(f"  FAIL {r.object_key}: {r.error}")

    successful = sum(1 for r in results if r.success)
    print(f"\n{successful}/{len(results)} uploads succeeded")


# =============================================================================
# Main
# =============================================================================

def main():
    parser = argparse.ArgumentParser(description="Upload a patient file via the GIC gateway")
    parser.add_argument("--url", required=True, help="Gateway presigned-url endpoint")
    parser.add_argument("--bucket", required=True, help="Permitted bucket name")
    parser.add_argument("--file", required=True, type=Path, help="Local file to upload")
    parser.add_argument("--name", help="Remote file name (defaults to the local name)")
    parser.add_argument("--count", type=int, default=1, help="Number of uploads")

    args = parser.parse_args()

    if not args.file.is_file():
        parser.error(f"{args.file} is not a file")

    results = asyncio.run(
        run_uploads(
            args.url,
            args.bucket,
            args.file,
            args.name or args.file.name,
            args.count,
        )
    )

    print_results(results)
    sys.exit(0 if all(r.success for r in results) else 1)


if __name__ == "__main__":
    main()
