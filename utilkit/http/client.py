"""
HTTP client for utilkit.

Synchronous calls go through a ``requests.Session``; the ``*_async``
variants open one ``aiohttp.ClientSession`` per call, so a client can be
shared across event loops. Non-2xx responses raise ``HttpError``,
transport failures ``NetworkError``.
"""

import asyncio
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union
from urllib.parse import urlparse

import aiofiles
import aiohttp
import requests

from ..core.config import HttpConfig, get_config
from ..errors import FileOperationError, HttpError, NetworkError, ValidationError
from ..util.serialization import from_json, to_json

logger = logging.getLogger(__name__)

Timeout = Union[int, float, timedelta]
ProgressCallback = Callable[[float], None]


def _seconds(timeout: Timeout) -> float:
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    return float(timeout)


def validate_url(url: str) -> str:
    """Require an absolute http(s) URL."""
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("URL cannot be None or empty", field="url")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"Invalid URL: {url}", field="url")
    return url


def _is_success(status: int) -> bool:
    return 200 <= status < 300


def _discard_partial(target: Path, started: bool) -> None:
    if started:
        try:
            target.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial download {target}: {e}")


class HttpClient:
    """
    HTTP client with synchronous and asyncio request methods.

    Bodies that are not ``str``/``bytes`` are JSON encoded; a JSON
    Content-Type is added to any request body unless the caller set one.
    Responses are returned as text, or decoded into ``response_type``
    (dict, list, a dataclass, ...).
    """

    def __init__(self, timeout: Optional[Timeout] = None, config: Optional[HttpConfig] = None,
                 session: Optional[requests.Session] = None):
        self.config = config or get_config().http
        self.timeout = _seconds(timeout if timeout is not None else self.config.timeout)
        self._session = session or requests.Session()
        self._owns_session = session is None

    # Request preparation

    def _prepare(self, body: Any, headers: Optional[Dict[str, str]]) -> Tuple[Optional[bytes], Dict[str, str]]:
        headers = dict(headers or {})
        if body is None:
            return None, headers
        if isinstance(body, bytes):
            data = body
        elif isinstance(body, str):
            data = body.encode("utf-8")
        else:
            data = to_json(body).encode("utf-8")
        if not any(key.lower() == "content-type" for key in headers):
            headers["Content-Type"] = self.config.default_content_type
        return data, headers

    def _decode(self, text: str, response_type: Optional[type]) -> Any:
        if response_type is None or response_type is str:
            return text
        return from_json(text, response_type)

    # Synchronous API

    def request(self, method: str, url: str, body: Any = None,
                headers: Optional[Dict[str, str]] = None,
                response_type: Optional[type] = None,
                params: Optional[Dict[str, Any]] = None) -> Any:
        validate_url(url)
        data, headers = self._prepare(body, headers)
        logger.debug(f"{method} {url}")
        try:
            response = self._session.request(
                method, url, data=data, headers=headers, params=params,
                timeout=self.timeout, allow_redirects=self.config.follow_redirects,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise NetworkError(f"{method} {url} failed: {e}", url=url, cause=e)

        if not _is_success(response.status_code):
            raise HttpError(response.status_code, response.text, url=url)
        return self._decode(response.text, response_type)

    def get(self, url: str, headers: Optional[Dict[str, str]] = None,
            response_type: Optional[type] = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", url, headers=headers, response_type=response_type, params=params)

    def post(self, url: str, body: Any = None, headers: Optional[Dict[str, str]] = None,
             response_type: Optional[type] = None) -> Any:
        return self.request("POST", url, body, headers, response_type)

    def put(self, url: str, body: Any = None, headers: Optional[Dict[str, str]] = None,
            response_type: Optional[type] = None) -> Any:
        return self.request("PUT", url, body, headers, response_type)

    def patch(self, url: str, body: Any = None, headers: Optional[Dict[str, str]] = None,
              response_type: Optional[type] = None) -> Any:
        return self.request("PATCH", url, body, headers, response_type)

    def delete(self, url: str, headers: Optional[Dict[str, str]] = None,
               response_type: Optional[type] = None) -> Any:
        return self.request("DELETE", url, headers=headers, response_type=response_type)

    def download_file(self, url: str, destination: Union[str, os.PathLike],
                      progress: Optional[ProgressCallback] = None) -> str:
        """
        Stream ``url`` to ``destination``, creating parent directories.

        ``progress`` receives the completed fraction (0..1) after each chunk
        when the server announces a Content-Length, and 1.0 at the end.
        A download that fails midway leaves no partial file behind.
        """
        validate_url(url)
        target = Path(destination)
        received = 0
        writing = False
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with self._session.get(url, stream=True,
                                   timeout=_seconds(self.config.download_timeout),
                                   allow_redirects=self.config.follow_redirects) as response:
                if not _is_success(response.status_code):
                    raise HttpError(response.status_code, response.text, url=url)
                total = int(response.headers.get("Content-Length") or 0)
                writing = True
                with open(target, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.config.download_chunk_size):
                        if not chunk:
                            continue
                        f.write(chunk)
                        received += len(chunk)
                        if progress and total > 0:
                            progress(min(received / total, 1.0))
        except requests.RequestException as e:
            _discard_partial(target, writing)
            logger.error(f"Download of {url} failed: {e}")
            raise NetworkError(f"Download of {url} failed: {e}", url=url, cause=e)
        except OSError as e:
            _discard_partial(target, writing)
            raise FileOperationError(f"Cannot write {target}: {e}", path=str(target), cause=e)

        if progress:
            progress(1.0)
        logger.info(f"Downloaded {url} to {target} ({received} bytes)")
        return str(target)

    # Asyncio API

    def _client_session(self, timeout: Optional[float] = None) -> aiohttp.ClientSession:
        # A ClientSession is bound to the loop it was created on, so each call gets its own.
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=timeout if timeout is not None else self.timeout))

    async def request_async(self, method: str, url: str, body: Any = None,
                            headers: Optional[Dict[str, str]] = None,
                            response_type: Optional[type] = None,
                            params: Optional[Dict[str, Any]] = None) -> Any:
        validate_url(url)
        data, headers = self._prepare(body, headers)
        logger.debug(f"{method} {url} (async)")
        try:
            async with self._client_session() as session:
                async with session.request(method, url, data=data, headers=headers, params=params,
                                           allow_redirects=self.config.follow_redirects) as response:
                    status = response.status
                    text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"{method} {url} failed: {e}")
            raise NetworkError(f"{method} {url} failed: {e}", url=url, cause=e)

        if not _is_success(status):
            raise HttpError(status, text, url=url)
        return self._decode(text, response_type)

    async def get_async(self, url: str, headers: Optional[Dict[str, str]] = None,
                        response_type: Optional[type] = None,
                        params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request_async("GET", url, headers=headers,
                                        response_type=response_type, params=params)

    async def post_async(self, url: str, body: Any = None,
                         headers: Optional[Dict[str, str]] = None,
                         response_type: Optional[type] = None) -> Any:
        return await self.request_async("POST", url, body, headers, response_type)

    async def put_async(self, url: str, body: Any = None,
                        headers: Optional[Dict[str, str]] = None,
                        response_type: Optional[type] = None) -> Any:
        return await self.request_async("PUT", url, body, headers, response_type)

    async def patch_async(self, url: str, body: Any = None,
                          headers: Optional[Dict[str, str]] = None,
                          response_type: Optional[type] = None) -> Any:
        return await self.request_async("PATCH", url, body, headers, response_type)

    async def delete_async(self, url: str, headers: Optional[Dict[str, str]] = None,
                           response_type: Optional[type] = None) -> Any:
        return await self.request_async("DELETE", url, headers=headers,
                                        response_type=response_type)

    async def download_file_async(self, url: str, destination: Union[str, os.PathLike],
                                  progress: Optional[ProgressCallback] = None) -> str:
        validate_url(url)
        target = Path(destination)
        received = 0
        writing = False
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with self._client_session(_seconds(self.config.download_timeout)) as session:
                async with session.get(url, allow_redirects=self.config.follow_redirects) as response:
                    if not _is_success(response.status):
                        raise HttpError(response.status, await response.text(), url=url)
                    total = response.content_length or 0
                    writing = True
                    async with aiofiles.open(target, "wb") as f:
                        async for chunk in response.content.iter_chunked(self.config.download_chunk_size):
                            await f.write(chunk)
                            received += len(chunk)
                            if progress and total > 0:
                                progress(min(received / total, 1.0))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            _discard_partial(target, writing)
            logger.error(f"Download of {url} failed: {e}")
            raise NetworkError(f"Download of {url} failed: {e}", url=url, cause=e)
        except OSError as e:
            _discard_partial(target, writing)
            raise FileOperationError(f"Cannot write {target}: {e}", path=str(target), cause=e)

        if progress:
            progress(1.0)
        logger.info(f"Downloaded {url} to {target} ({received} bytes)")
        return str(target)

    # Lifecycle

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    async def aclose(self) -> None:
        self.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
