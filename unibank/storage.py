"""
Storage Backend Module

Provides an abstract line-oriented storage interface and implementations for
in-memory (testing) and plain text files (persistence). Each named file is a
list of newline-terminated records. Full rewrites replace the file
atomically; appends only ever add lines.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Union
import os
import tempfile
import threading

from .exceptions import StorageError
from .logging_config import get_logger


logger = get_logger("unibank.storage")


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def read_lines(self, name: str) -> List[str]:
        """Return every record line of a file; empty list if it does not exist"""
        pass

    @abstractmethod
    def write_lines(self, name: str, lines: Iterable[str]) -> None:
        """Replace the whole file with these lines"""
        pass

    @abstractmethod
    def append_lines(self, name: str, lines: Iterable[str]) -> None:
        """Add lines to the end of a file, creating it if needed"""
        pass

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Check if a file exists"""
        pass

    def close(self) -> None:
        """Release resources (default no-op)"""
        pass


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._files: Dict[str, List[str]] = {}
        self._lock = threading.RLock()

    def read_lines(self, name: str) -> List[str]:
        with self._lock:
            return list(self._files.get(name, []))

    def write_lines(self, name: str, lines: Iterable[str]) -> None:
        with self._lock:
            self._files[name] = [_check_line(line) for line in lines]

    def append_lines(self, name: str, lines: Iterable[str]) -> None:
        with self._lock:
            new_lines = [_check_line(line) for line in lines]
            self._files.setdefault(name, []).extend(new_lines)

    def exists(self, name: str) -> bool:
        with self._lock:
            return name in self._files

    def get_all_data(self) -> Dict[str, List[str]]:
        """Get all files for debugging/inspection"""
        with self._lock:
            return {name: list(lines) for name, lines in self._files.items()}


class TextFileStorage(StorageInterface):
    """
    Text file storage under one data directory

    write_lines() writes a temporary file in the same directory, fsyncs it
    and renames it over the target, so readers see either the old or the new
    file and never a partial one.
    """

    def __init__(self, data_dir: Union[str, Path] = "data"):
        self.data_dir = Path(data_dir)
        self._lock = threading.RLock()
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create data directory: {e}", self.data_dir) from e

    def path_for(self, name: str) -> Path:
        return self.data_dir / name

    def read_lines(self, name: str) -> List[str]:
        path = self.path_for(name)
        with self._lock:
            try:
                with open(path, "r", encoding="utf-8") as handle:
                    return [line.rstrip("\r\n") for line in handle if line.strip()]
            except FileNotFoundError:
                return []
            except UnicodeDecodeError as e:
                raise StorageError(f"Failed to decode {path}: {e}", path) from e
            except OSError as e:
                raise StorageError(f"Failed to read {path}: {e}", path) from e

    def write_lines(self, name: str, lines: Iterable[str]) -> None:
        path = self.path_for(name)
        content = "".join(_check_line(line) + "\n" for line in lines)
        with self._lock:
            tmp_name = None
            try:
                fd, tmp_name = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=self.data_dir)
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(content)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, path)
                tmp_name = None
            except OSError as e:
                raise StorageError(f"Failed to open {path} for writing: {e}", path) from e
            finally:
                if tmp_name is not None:
                    try:
                        os.unlink(tmp_name)
                    except OSError:
                        logger.warning(f"Could not remove temporary file {tmp_name}")

    def append_lines(self, name: str, lines: Iterable[str]) -> None:
        path = self.path_for(name)
        content = "".join(_check_line(line) + "\n" for line in lines)
        with self._lock:
            try:
                with open(path, "a", encoding="utf-8") as handle:
                    handle.write(content)
                    handle.flush()
            except OSError as e:
                raise StorageError(f"Failed to open {path} for appending: {e}", path) from e

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()


def _check_line(line: str) -> str:
    if "\n" in line or "\r" in line:
        raise StorageError(f"Record contains a line break: {line!r}")
    return line
