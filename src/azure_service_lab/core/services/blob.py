# -*- coding: utf-8 -*-

"""
Block blob upload over the Storage REST API (Shared Key).

Small files go up in one ``Put Blob``. Larger files are cut into fixed-size
blocks uploaded in parallel with ``Put Block`` and committed, in order, with
one ``Put Block List``.
"""

import base64
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import NamedTuple
from urllib.parse import quote
from xml.sax.saxutils import escape

from tqdm.auto import tqdm

from ..transport.client import ApiClient
from ..utils.misc import assert_required_path, mask_path

DEFAULT_BLOCK_SIZE = 4 * 1024 * 1024
DEFAULT_MAX_CONCURRENCY = 4


class UploadResult(NamedTuple):
    container: str
    blob_name: str
    size: int
    etag: str | None
    block_count: int = 1


def block_id(index: int) -> str:
    """Base64 block id; every id of one blob has the same length."""
    return base64.b64encode(f"block-{index:08d}".encode("ascii")).decode("ascii")


def block_list_xml(block_ids) -> bytes:
    latest = "".join(f"<Latest>{escape(bid)}</Latest>" for bid in block_ids)
    return f'<?xml version="1.0" encoding="utf-8"?><BlockList>{latest}</BlockList>'.encode("utf-8")


def _read_block(path: Path, index: int, block_size: int) -> bytes:
    with open(path, "rb") as handle:
        handle.seek(index * block_size)
        return handle.read(block_size)


def _put_block(client, blob_url, path, index, block_size):
    data = _read_block(path, index, block_size)
    client.request("PUT", blob_url, data, params={"comp": "block", "blockid": block_id(index)})
    return len(data)


def upload_file(
        client: ApiClient,
        local_path,
        container: str,
        blob_name: str | None = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        show_progress: bool = True
    ) -> UploadResult:
    """
    Upload a local file as a block blob.

    Args:
        client (ApiClient): Client bound to ``https://<account>.blob.core.windows.net``
            with a SharedKeyCredential.
        local_path (str | Path): File to upload.
        container (str): Target container (must exist).
        blob_name (str): Blob name, defaults to the file's base name.
        block_size (int): Block size in bytes; files up to this size use a single Put Blob.
        max_concurrency (int): Parallel Put Block calls.
        show_progress (bool): Display a tqdm progress bar.

    Returns:
        UploadResult: Container, blob name, size in bytes, ETag and block count.
    """
    if block_size <= 0:
        raise ValueError(f"block_size must be positive, got {block_size}")
    if max_concurrency <= 0:
        raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")

    path = Path(local_path)
    assert_required_path(path, "Upload file")
    size = path.stat().st_size
    blob_name = blob_name or path.name
    blob_url = f"/{quote(container)}/{quote(blob_name)}"

    logging.info(f"Uploading {mask_path(path)} ({size} bytes) to {container}/{blob_name}...")

    if size <= block_size:
        response = client.request("PUT", blob_url, path.read_bytes(), headers={"x-ms-blob-type": "BlockBlob"})
        logging.info(f"Upload of {blob_name} complete.")
        return UploadResult(container, blob_name, size, response.header("ETag"), 1)

    block_count = (size + block_size - 1) // block_size
    with tqdm(total=size, unit="B", unit_scale=True, desc=f"Uploading {blob_name}",
              disable=not show_progress) as progress:
        with ThreadPoolExecutor(max_workers=max_concurrency) as executor:
            futures = [
                executor.submit(_put_block, client, blob_url, path, index, block_size)
                for index in range(block_count)
            ]
            for future in as_completed(futures):
                progress.update(future.result())

    response = client.request(
        "PUT",
        blob_url,
        block_list_xml(block_id(index) for index in range(block_count)),
        params={"comp": "blocklist"},
        headers={"Content-Type": "application/xml"},
    )
    logging.info(f"Upload of {blob_name} complete ({block_count} blocks).")
    return UploadResult(container, blob_name, size, response.header("ETag"), block_count)
