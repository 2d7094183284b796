from __future__ import annotations
import glob
import os
from typing import Optional

from shik.shik_errors import CustomError
from shik.shik_runtime import StdLibModule, shik_native, expect_string


def resolve_path(path: str, base_dir: Optional[str]) -> str:
    """Absolute and `~` paths as given; relative ones against the script's directory."""
    path = os.path.expanduser(path)
    if os.path.isabs(path):
        return path
    return os.path.normpath(os.path.join(base_dir or os.getcwd(), path))


class FileLib(StdLibModule):
    """File system builtins. Failures surface as `FileError`."""

    def _path(self, path) -> str:
        return resolve_path(expect_string(path), self.runner.source_dir)

    @shik_native("file.read")
    def _read(self, path):
        full = self._path(path)
        try:
            with open(full, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, ValueError) as e:
            raise CustomError("FileError", f"Cannot open file: {e}") from None

    @shik_native("file.try-read")
    def _try_read(self, path):
        full = self._path(path)
        try:
            with open(full, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, ValueError):
            return None

    @shik_native("file.glob")
    def _glob(self, pattern):
        pattern = expect_string(pattern)
        base = self.runner.source_dir
        if base and not os.path.isabs(os.path.expanduser(pattern)):
            matches = glob.glob(pattern, root_dir=base, recursive=True)
        else:
            matches = glob.glob(os.path.expanduser(pattern), recursive=True)
        return sorted(matches)

    @shik_native("file.write")
    def _write(self, path, content):
        full = self._path(path)
        try:
            with open(full, "w", encoding="utf-8") as f:
                f.write(expect_string(content))
        except (OSError, ValueError) as e:
            raise CustomError("FileError", f"cannot write file {full}: {e}") from None
        return None

    @shik_native("file.append")
    def _append(self, path, content):
        full = self._path(path)
        try:
            with open(full, "a", encoding="utf-8") as f:
                f.write(expect_string(content))
        except (OSError, ValueError) as e:
            raise CustomError("FileError", f"cannot write to file {full}: {e}") from None
        return None

    @shik_native("file.exists")
    def _exists(self, path): return os.path.exists(self._path(path))

    @shik_native("file.is-dir")
    def _is_dir(self, path): return os.path.isdir(self._path(path))

    @shik_native("file.is-file")
    def _is_file(self, path): return os.path.isfile(self._path(path))
