"""
Delivery upload adapter — checksummed, chunked transfer of the package binary.

Adapter layer — implements the DeliveryUploader port over the HttpTransport port.

Flow (each step one blocking round trip):
  1. read the whole file, MD5 it                 → size + sourceFileChecksum
  2. POST {iris}/buildDeliveryFiles              → delivery-file id + uploadOperations
  3. for each operation: seek(offset), read(length), PUT the bytes to its url
  4. PATCH {iris}/buildDeliveryFiles/{id}        → uploaded: true

The operations must partition [0, file_size) exactly; that is checked before
the first byte is sent. Any failure stops the upload before finalize; the
half-uploaded delivery file is left on the backend as is.
"""

from __future__ import annotations

import dataclasses
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, BinaryIO

import structlog
from railway import ErrorCode, ResultFailures
from railway.result import Result

from asc_uploader.adapters.http_transport import bearer_headers, claim_failure
from asc_uploader.domain.canonical import canonical_json, md5_hex
from asc_uploader.domain.models import DeliveryFile, UploadOperation
from asc_uploader.domain.ports import HttpTransport, TokenProvider

log = structlog.get_logger()

ASSET_TYPE = "ASSET_DESCRIPTION"
BINARY_UTI = "public.binary"


def delivery_file_document(build_id: str, file_name: str, file_size: int, checksum: str) -> dict:
    return {
        "data": {
            "type": "buildDeliveryFiles",
            "attributes": {
                "assetType": ASSET_TYPE,
                "fileName": file_name,
                "fileSize": file_size,
                "sourceFileChecksum": checksum,
                "uti": BINARY_UTI,
            },
            "relationships": {
                "build": {"data": {"id": build_id, "type": "builds"}},
            },
        }
    }


def finalize_document(delivery_file_id: str) -> dict:
    return {
        "data": {
            "id": delivery_file_id,
            "type": "buildDeliveryFiles",
            "attributes": {"uploaded": True},
        }
    }


def _parse_delivery_file(
    document: Any, file_name: str, file_size: int, checksum: str
) -> DeliveryFile:
    data = document["data"]
    operations = tuple(
        UploadOperation(offset=int(op["offset"]), length=int(op["length"]), url=op["url"])
        for op in data["attributes"]["uploadOperations"]
    )
    return DeliveryFile(
        delivery_file_id=str(data["id"]),
        file_name=file_name,
        file_size=file_size,
        checksum=checksum,
        upload_operations=operations,
    )


def partition_gap(operations: tuple[UploadOperation, ...], file_size: int) -> str | None:
    """
    Describe why `operations` do not partition [0, file_size), or None if they do.

    Order does not matter; overlaps, gaps, empty ranges and overruns all count.
    """
    expected = 0
    for op in sorted(operations, key=lambda o: o.offset):
        if op.length <= 0:
            return f"operation at offset {op.offset} has length {op.length}"
        if op.offset != expected:
            kind = "overlap" if op.offset < expected else "gap"
            return f"{kind} at byte {min(op.offset, expected)}"
        expected = op.end
    if expected != file_size:
        return f"operations cover {expected} of {file_size} bytes"
    return None


class ChunkedDeliveryUploader:
    """
    Implements the DeliveryUploader port.

    `max_concurrency` bounds how many byte ranges are in flight at once; 1 (the
    default) transfers them strictly in the order the backend listed them.
    """

    def __init__(
        self,
        transport: HttpTransport,
        token_provider: TokenProvider,
        iris_url: str,
        max_concurrency: int = 1,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._transport = transport
        self._token_provider = token_provider
        self._delivery_files_url = f"{iris_url.rstrip('/')}/buildDeliveryFiles"
        self._max_concurrency = max_concurrency

    def upload(self, build_id: str, file_path: Path) -> Result[DeliveryFile]:
        """
        Transfer `file_path` as the binary of `build_id`.

        Returns the finalized DeliveryFile (uploaded=True), or
        Result.failure(UPLOAD_ERROR | TRANSPORT_ERROR, ...) without finalizing.
        """
        path = Path(file_path)
        try:
            handle = path.open("rb")
        except OSError as e:
            return ResultFailures.upload_error(f"Cannot open {path}", e)
        with handle:
            return self._upload_from(handle, build_id, path.name)

    def _upload_from(self, handle: BinaryIO, build_id: str, file_name: str) -> Result[DeliveryFile]:
        return (
            Result.from_computation(
                handle.read, ErrorCode.UPLOAD_ERROR, f"Cannot read {file_name}"
            )
            .flat_map(lambda data: self._create(build_id, file_name, data))
            .flat_map(self._check_partition)
            .flat_map(
                lambda delivery: self._transfer_all(handle, delivery.upload_operations).map(
                    lambda _: delivery
                )
            )
            .flat_map(self._finalize)
        )

    # ──────────────────────── Step 2: create ────────────────────────

    def _create(self, build_id: str, file_name: str, data: bytes) -> Result[DeliveryFile]:
        file_size = len(data)
        checksum = md5_hex(data)
        body = canonical_json(delivery_file_document(build_id, file_name, file_size, checksum))
        return (
            self._token_provider.get_token()
            .flat_map(
                lambda token: self._transport.execute(
                    "POST", self._delivery_files_url, bearer_headers(token.value), body
                )
                .flat_map(
                    lambda response: Result.from_computation(
                        lambda: _parse_delivery_file(response.json(), file_name, file_size, checksum),
                        ErrorCode.BACKEND_ERROR,
                        "Delivery file response lacks data.id or uploadOperations",
                    )
                )
                .map_failure(claim_failure(ErrorCode.UPLOAD_ERROR, "Delivery file creation failed"))
            )
            .peek(
                lambda delivery: log.info(
                    "delivery.created",
                    build_id=build_id,
                    delivery_file_id=delivery.delivery_file_id,
                    file_size=file_size,
                    checksum=checksum,
                    operations=len(delivery.upload_operations),
                )
            )
        )

    @staticmethod
    def _check_partition(delivery: DeliveryFile) -> Result[DeliveryFile]:
        problem = partition_gap(delivery.upload_operations, delivery.file_size)
        if problem is not None:
            return ResultFailures.upload_error(
                f"Upload operations for {delivery.delivery_file_id} do not cover the file: {problem}"
            )
        return Result.success(delivery)

    # ──────────────────────── Step 3: transfer ────────────────────────

    def _transfer_all(
        self, handle: BinaryIO, operations: tuple[UploadOperation, ...]
    ) -> Result[int]:
        read_lock = threading.Lock()
        if self._max_concurrency == 1 or len(operations) <= 1:
            transferred = 0
            for op in operations:
                result = self._transfer(handle, op, read_lock)
                if result.is_failure():
                    return result
                transferred += result.value()
            return Result.success(transferred)
        return self._transfer_concurrently(handle, operations, read_lock)

    def _transfer_concurrently(
        self,
        handle: BinaryIO,
        operations: tuple[UploadOperation, ...],
        read_lock: threading.Lock,
    ) -> Result[int]:
        """Fan out over a thread pool; the pool's exit is the join barrier."""
        aborted = threading.Event()

        def run(op: UploadOperation) -> Result[int] | None:
            if aborted.is_set():
                return None
            result = self._transfer(handle, op, read_lock)
            if result.is_failure():
                aborted.set()
            return result

        with ThreadPoolExecutor(max_workers=self._max_concurrency) as pool:
            futures = [pool.submit(run, op) for op in operations]
        results = [future.result() for future in futures]

        failures = [r for r in results if r is not None and r.is_failure()]
        if failures:
            return failures[0]
        return Result.success(sum(r.value() for r in results if r is not None))

    def _transfer(
        self, handle: BinaryIO, op: UploadOperation, read_lock: threading.Lock
    ) -> Result[int]:
        """Read exactly op.length bytes at op.offset and PUT them to op.url."""
        return (
            Result.from_computation(
                lambda: self._read_range(handle, op, read_lock),
                ErrorCode.UPLOAD_ERROR,
                f"Cannot read bytes {op.offset}..{op.end}",
            )
            .ensure(
                lambda chunk: len(chunk) == op.length,
                ErrorCode.UPLOAD_ERROR,
                f"Short read at offset {op.offset}: expected {op.length} bytes",
            )
            .flat_map(
                lambda chunk: self._transport.execute("PUT", op.url, None, chunk)
                .map_failure(
                    claim_failure(ErrorCode.UPLOAD_ERROR, f"Chunk transfer at offset {op.offset} failed")
                )
                .map(lambda _: len(chunk))
            )
            .peek(
                lambda sent: log.debug("delivery.chunk_transferred", offset=op.offset, length=sent)
            )
        )

    @staticmethod
    def _read_range(handle: BinaryIO, op: UploadOperation, read_lock: threading.Lock) -> bytes:
        with read_lock:
            handle.seek(op.offset)
            return handle.read(op.length)

    # ──────────────────────── Step 4: finalize ────────────────────────

    def _finalize(self, delivery: DeliveryFile) -> Result[DeliveryFile]:
        body = canonical_json(finalize_document(delivery.delivery_file_id))
        url = f"{self._delivery_files_url}/{delivery.delivery_file_id}"
        return (
            self._token_provider.get_token()
            .flat_map(
                lambda token: self._transport.execute(
                    "PATCH", url, bearer_headers(token.value), body
                ).map_failure(claim_failure(ErrorCode.UPLOAD_ERROR, "Finalize failed"))
            )
            .map(lambda _: dataclasses.replace(delivery, uploaded=True))
            .peek(
                lambda finalized: log.info(
                    "delivery.finalized", delivery_file_id=finalized.delivery_file_id
                )
            )
        )
