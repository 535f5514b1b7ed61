"""Shared HTTP helpers used by the repository index and archive fetchers.

Encapsulates common request/timeout error handling so modules avoid
duplicating try/except blocks. Failures are raised as ``HttpFetchError`` so
callers decide whether they are fatal for the run or for a single task.
"""
from __future__ import annotations

import logging
import os
from typing import Any

import requests

from constants import Constants
from common.errors import HttpFetchError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def safe_get(url: str, *, context: str, **kwargs: Any) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Raises:
        HttpFetchError: On timeout, connection error or a non-200 status.
    """
    safe_target = safe_url(url)
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context
                )
            )
        try:
            res = requests.get(url, timeout=Constants.REQUEST_TIMEOUT, **kwargs)
        except requests.Timeout as exc:
            logger.warning(
                "%s request timed out after %s seconds",
                context,
                Constants.REQUEST_TIMEOUT,
            )
            raise HttpFetchError(safe_target, "timeout") from exc
        except requests.RequestException as exc:  # includes ConnectionError
            logger.warning("%s connection error: %s", context, exc)
            raise HttpFetchError(safe_target, str(exc)) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context
                )
            )
    if res.status_code != 200:
        res.close()
        raise HttpFetchError(safe_target, f"HTTP {res.status_code}", res.status_code)
    return res


def get_text(url: str, *, context: str) -> str:
    """GET ``url`` and return the decoded body."""
    res = safe_get(url, context=context)
    return res.text


def download_file(url: str, dest: str, *, context: str) -> str:
    """Stream ``url`` to ``dest``.

    The body is written to ``dest + '.part'`` and renamed on completion so an
    interrupted download never leaves a file that looks complete.

    Returns:
        The destination path.
    """
    partial = dest + ".part"
    res = safe_get(url, context=context, stream=True)
    try:
        with open(partial, "wb") as fh:
            for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    fh.write(chunk)
    except requests.RequestException as exc:
        _discard(partial)
        raise HttpFetchError(safe_url(url), str(exc)) from exc
    except OSError:
        _discard(partial)
        raise
    finally:
        res.close()
    os.replace(partial, dest)
    logger.debug("Downloaded %s to %s", safe_url(url), dest)
    return dest


def _discard(path: str) -> None:
    try:
        os.unlink(path)
    except OSError:
        logger.debug("Failed to remove partial download: %s", path)
