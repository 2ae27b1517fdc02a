"""
HTTP and file operation utilities

This module handles page downloads with retry logic and atomic output writes.
"""
import logging
import os
from pathlib import Path
import asyncio

import aiofiles
import httpx


logger = logging.getLogger(__name__)


async def fetch_text(
    client: httpx.AsyncClient,
    url: str,
    max_retries: int = 3,
    backoff_factor: float = 2.0
) -> str:
    """
    Fetch a page from URL with exponential backoff retry logic

    Retries on transient network errors (timeouts, connection errors) and
    5xx responses. Does NOT retry on 4xx HTTP errors (client errors).

    Args:
        client: Shared HTTP client (timeout and headers configured by caller)
        url: URL to fetch
        max_retries: Maximum number of attempts
        backoff_factor: Exponential backoff multiplier (wait = backoff_factor ^ attempt)

    Returns:
        Response body as text

    Raises:
        httpx.HTTPError: If the fetch fails after all retries
    """
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            response = await client.get(url)
            response.raise_for_status()
            return response.text

        except (httpx.TimeoutException, httpx.ConnectError) as e:
            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Fetch attempt {attempt + 1}/{max_retries} for {url} failed (transient error): "
                    f"{type(e).__name__}. Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Fetch of {url} failed after {max_retries} attempts (transient error)")

        except httpx.HTTPStatusError as e:
            if 400 <= e.response.status_code < 500:
                logger.error(f"HTTP {e.response.status_code} (client error) for {url}")
                raise

            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Fetch attempt {attempt + 1}/{max_retries} for {url} failed "
                    f"(HTTP {e.response.status_code} server error). "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Fetch of {url} failed after {max_retries} attempts (HTTP {e.response.status_code})")

    if last_error:
        raise last_error

    raise RuntimeError(f"Failed to fetch {url} after {max_retries} attempts")


async def write_file_atomic(path: Path | str, content: bytes) -> Path:
    """
    Write content next to the target and swap it into place

    Readers never observe a half-written file.

    Args:
        path: Destination path (parent directories are created)
        content: Bytes to write

    Returns:
        Destination path
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_file = target.with_name(f".{target.name}.tmp")

    try:
        async with aiofiles.open(temp_file, 'wb') as f:
            await f.write(content)
        os.replace(temp_file, target)
    except OSError:
        cleanup_temp_file(temp_file)
        raise

    logger.info(f"Wrote {len(content) / 1024:.1f} KB to {target}")
    return target


def cleanup_temp_file(file_path: Path) -> bool:
    """
    Safely delete a temporary file

    Args:
        file_path: Path to file to delete

    Returns:
        True if deleted successfully, False otherwise
    """
    if not file_path or not file_path.exists():
        return False

    try:
        file_path.unlink()
        logger.debug(f"Cleaned up temporary file: {file_path}")
        return True
    except (OSError, PermissionError) as e:
        logger.warning(f"Failed to delete temporary file {file_path}: {e}")
        return False
