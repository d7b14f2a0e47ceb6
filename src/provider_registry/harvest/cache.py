"""
Cache Store for Version Cache Records

This module provides the file-backed CacheStore: one JSON document per record
key, replaced atomically so concurrent readers never observe a partially
written record.
"""

import json
import os
import tempfile
from typing import Any, Callable, Optional
from urllib.parse import quote

from provider_registry.constants import CACHE_FILE_SUFFIX
from provider_registry.exceptions import CacheUnavailableError
from provider_registry.log_utils import logger
from provider_registry.utils import track_api_cache_hit, track_api_cache_miss

from .interfaces import CacheStore
from .records import CacheRecord


def _atomic_write(
    file_path: str, writer_func: Callable[[Any], None], suffix: str = ".tmp"
) -> bool:
    """
    Write data to a file atomically by writing to a temporary file and atomically replacing the target on success.

    Parameters:
        file_path (str): Destination file path to be written.
        writer_func (Callable[[Any], None]): Callable that receives an open text file-like object and writes the desired content to it.
        suffix (str): Suffix to use for the temporary file name (default ".tmp").

    Returns:
        bool: `True` if the temporary write and atomic replace succeeded, `False` on any error.
    """
    try:
        temp_fd, temp_path = tempfile.mkstemp(
            dir=os.path.dirname(file_path), prefix="tmp-", suffix=suffix
        )
    except OSError as e:
        logger.error(f"Could not create temporary file for {file_path}: {e}")
        return False

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as temp_f:
            writer_func(temp_f)
        os.replace(temp_path, file_path)
    except (IOError, UnicodeEncodeError, OSError, TypeError, ValueError) as e:
        logger.error(f"Could not write to {file_path}: {e}")
        return False
    finally:
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError:
                pass
    return True


def _atomic_write_json(file_path: str, data: dict) -> bool:
    """
    Atomically write the given dictionary to the target file as pretty-printed JSON.

    Returns:
        bool: `True` if the file was written and moved into place successfully, `False` on error.
    """
    return _atomic_write(
        file_path, lambda f: json.dump(data, f, indent=2), suffix=".tmp"
    )


class FileCacheStore(CacheStore):
    """
    Stores CacheRecords as JSON files in a cache directory.

    Keys such as "hashicorp/aws" are percent-encoded into flat file names.
    """

    def __init__(self, cache_dir: str):
        """
        Initialize the store.

        Parameters:
            cache_dir (str): Directory holding the record files; created if missing.

        Raises:
            CacheUnavailableError: If the directory cannot be created.
        """
        self.cache_dir = cache_dir
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
        except OSError as e:
            logger.error(f"Could not create cache directory {self.cache_dir}: {e}")
            raise CacheUnavailableError(
                "Could not create cache directory", details=str(e)
            ) from e

    def get_cache_file_path(self, key: str) -> str:
        return os.path.join(self.cache_dir, f"{quote(key, safe='')}{CACHE_FILE_SUFFIX}")

    def get(self, key: str) -> Optional[CacheRecord]:
        """
        Read the record stored under `key`.

        Returns:
            Optional[CacheRecord]: The record, or None if no file exists for the key.

        Raises:
            CacheUnavailableError: If the file cannot be read or decoded.
        """
        file_path = self.get_cache_file_path(key)
        if not os.path.exists(file_path):
            track_api_cache_miss()
            return None

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                record = CacheRecord.from_dict(json.load(f))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CacheUnavailableError(
                "Could not read cache record", key=key, details=str(e)
            ) from e
        except (KeyError, TypeError, ValueError) as e:
            raise CacheUnavailableError(
                "Could not decode cache record", key=key, details=str(e)
            ) from e

        if record.key != key:
            raise CacheUnavailableError(
                "Cache record key mismatch", key=key, details=record.key
            )

        track_api_cache_hit()
        return record

    def put(self, key: str, record: CacheRecord) -> None:
        """
        Replace the record stored under `key`.

        Raises:
            CacheUnavailableError: If the record cannot be written.
        """
        if record.key != key:
            raise CacheUnavailableError(
                "Cache record key mismatch", key=key, details=record.key
            )

        file_path = self.get_cache_file_path(key)
        logger.info(f"Storing {len(record.versions)} versions for {key}")
        if not _atomic_write_json(file_path, record.to_dict()):
            raise CacheUnavailableError("Could not write cache record", key=key)
        logger.info(f"Successfully stored {len(record.versions)} versions for {key}")

    def clear(self) -> bool:
        """
        Remove every record file from the cache directory.

        Returns:
            bool: `True` if all record files were removed (or none existed), `False` if any removal failed.
        """
        try:
            with os.scandir(self.cache_dir) as it:
                for entry in it:
                    if entry.name.endswith((CACHE_FILE_SUFFIX, ".tmp")):
                        try:
                            os.remove(entry.path)
                        except OSError as e:
                            logger.error(
                                f"Could not remove cache file {entry.name}: {e}"
                            )
                            return False
            return True
        except OSError as e:
            logger.error(f"Could not clear cache directory {self.cache_dir}: {e}")
            return False
