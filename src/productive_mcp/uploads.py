"""File sources and storage upload for attachments.

Productive attachments are uploaded in two hops: the API hands out a signed
S3 POST policy, the file goes straight to S3, and the API is then told
where it landed. S3 and download traffic never passes through the
rate-limited Productive gateway.
"""
import base64
import binascii
import logging
import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path

import httpx

from .schemas import UploadAttachmentArgs

logger = logging.getLogger("productive-mcp.uploads")

S3_UPLOAD_URL = "https://productive-files-production.s3.eu-west-1.amazonaws.com"
DOWNLOAD_TIMEOUT = 30.0
UPLOAD_TIMEOUT = 300.0
MAX_DOWNLOAD_BYTES = 50 * 1024 * 1024

# S3 rejects the POST unless the policy fields precede the file
AWS_POLICY_FIELDS = (
    "key",
    "success_action_status",
    "Content-Type",
    "x-amz-credential",
    "x-amz-algorithm",
    "x-amz-date",
    "x-amz-signature",
    "x-amz-security-token",
    "policy",
)


class FileSourceError(ValueError):
    """A file could not be read, downloaded, decoded or stored."""


@dataclass
class ResolvedFile:
    content: bytes
    filename: str
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def guess_content_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"


async def resolve_file(args: UploadAttachmentArgs, http: httpx.AsyncClient) -> ResolvedFile:
    """Load the bytes of whichever source the arguments name.

    Raises:
        FileSourceError: the source cannot be read or is not valid
    """
    content_type = args.content_type or guess_content_type(args.filename)

    if args.file_path:
        try:
            content = Path(args.file_path).read_bytes()
        except OSError as e:
            raise FileSourceError(f"Failed to read file at {args.file_path}: {e}") from e
        return ResolvedFile(content, args.filename, content_type)

    if args.url:
        content, header_type = await _download(args.url, http)
        return ResolvedFile(content, args.filename, args.content_type or header_type or content_type)

    encoded = re.sub(r"\s", "", args.base64_content or "")
    try:
        content = base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise FileSourceError("Failed to decode base64 content: Invalid base64 encoding") from e
    return ResolvedFile(content, args.filename, content_type)


async def _download(url: str, http: httpx.AsyncClient) -> tuple[bytes, str]:
    too_large = f"Failed to download file from {url}: file exceeds {MAX_DOWNLOAD_BYTES // (1024 * 1024)} MB"
    try:
        async with http.stream("GET", url, timeout=DOWNLOAD_TIMEOUT) as response:
            response.raise_for_status()
            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > MAX_DOWNLOAD_BYTES:
                raise FileSourceError(too_large)

            chunks = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > MAX_DOWNLOAD_BYTES:
                    raise FileSourceError(too_large)
                chunks.append(chunk)
            return b"".join(chunks), response.headers.get("content-type", "")
    except httpx.HTTPError as e:
        raise FileSourceError(f"Failed to download file from {url}: {e}") from e


async def upload_to_storage(policy: dict, file: ResolvedFile, http: httpx.AsyncClient) -> str:
    """POST the file to S3 under a signed policy and return its temporary URL.

    Raises:
        FileSourceError: S3 refused the upload or could not be reached
    """
    fields = {name: str(policy.get(name) or "") for name in AWS_POLICY_FIELDS}
    try:
        response = await http.post(
            S3_UPLOAD_URL,
            data=fields,
            files={"file": (file.filename, file.content, file.content_type)},
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise FileSourceError(f"Failed to upload {file.filename} to storage: {e}") from e

    logger.info(f"Uploaded {file.filename} ({file.size} bytes) to storage")
    return response.headers.get("location") or f"{S3_UPLOAD_URL}/{policy.get('key')}"
