"""Virtual file store — the in-memory project every pipeline consumer reads.

Paths map to full file contents. One entry path (``App.tsx`` by default)
always exists and is evaluated last in the combined preview.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field

from config.defaults import DEFAULTS

MULTIFILE_TAG = "__multifile"

DEFAULT_ENTRY_CONTENT = """const { useState } = React;

function App() {
  return (
    <div className="min-h-screen bg-[#050505] text-white flex items-center justify-center">
      <h1 className="text-lg font-semibold">Describe the app you want to build.</h1>
    </div>
  );
}

const root = ReactDOM.createRoot(document.getElementById('root'));
root.render(React.createElement(App));
"""


@dataclass
class Patch:
    """Atomic set of writes (path, content) followed by deletes."""
    writes: list[tuple[str, str]] = field(default_factory=list)
    deletes: list[str] = field(default_factory=list)

    @classmethod
    def from_result(cls, files, deleted_files):
        """Build a patch from a turn result's ``files`` / ``deletedFiles``."""
        writes = []
        for f in files:
            if isinstance(f, dict):
                writes.append((f["path"], f["content"]))
            else:
                writes.append((f.path, f.content))
        return cls(writes=writes, deletes=list(deleted_files))


class VirtualFileStore:
    """Ordered map from path to content with a protected entry path."""

    def __init__(self, initial=None, entry_path=None):
        self.entry_path = entry_path or DEFAULTS["entry_path"]
        self._lock = threading.RLock()
        self._files: dict[str, str] = {}
        if initial:
            for path, content in initial.items():
                self._files[path] = content
        if self.entry_path not in self._files:
            self._files[self.entry_path] = DEFAULT_ENTRY_CONTENT

    # ------------------------------------------------------------------
    # Single-file operations
    # ------------------------------------------------------------------

    def write(self, path: str, content: str) -> None:
        _check_entry(path, content)
        with self._lock:
            self._files[path] = content

    def read(self, path: str) -> str | None:
        """Return the file content, or None when the path does not exist."""
        with self._lock:
            return self._files.get(path)

    def exists(self, path: str) -> bool:
        with self._lock:
            return path in self._files

    def delete(self, path: str) -> bool:
        """Remove a file. The entry path is silently kept."""
        if path == self.entry_path:
            return False
        with self._lock:
            return self._files.pop(path, None) is not None

    def list_paths(self) -> list[str]:
        """Paths sorted lexicographically with the entry path last."""
        with self._lock:
            others = sorted(p for p in self._files if p != self.entry_path)
        return others + [self.entry_path]

    def __len__(self):
        with self._lock:
            return len(self._files)

    def __contains__(self, path):
        return self.exists(path)

    # ------------------------------------------------------------------
    # Patches
    # ------------------------------------------------------------------

    def apply_patch(self, patch: Patch) -> None:
        """Apply all writes then all deletes, or nothing.

        Works on a private copy that replaces the live map in one step, so a
        failure part-way leaves the store exactly as it was.
        """
        with self._lock:
            staged = dict(self._files)
            for path, content in patch.writes:
                _check_entry(path, content)
                staged[path] = content
            for path in patch.deletes:
                if not isinstance(path, str):
                    raise ValueError(f"Delete path must be a string, got {type(path).__name__}")
                if path != self.entry_path:
                    staged.pop(path, None)
            self._files = staged

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._files)

    def file_tree(self) -> str:
        return "\n".join(self.list_paths())

    def build_preview_code(self) -> str:
        """Concatenate every file for the combined preview, entry file last."""
        files = self.snapshot()
        return "\n\n".join(files[p] for p in self.list_paths())

    def to_project_context(self, max_chars=None) -> str:
        """Render files as ``--- path ---`` sections, optionally truncated."""
        files = self.snapshot()
        text = "\n\n".join(f"--- {p} ---\n{files[p]}" for p in self.list_paths())
        if max_chars is not None and len(text) > max_chars:
            return text[:max_chars]
        return text

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def serialize(self) -> str:
        """Single-file projects store the bare entry content; others a tagged JSON map."""
        files = self.snapshot()
        if len(files) == 1 and self.entry_path in files:
            return files[self.entry_path]
        return json.dumps({MULTIFILE_TAG: True, "files": files})

    @classmethod
    def deserialize(cls, raw, entry_path=None) -> "VirtualFileStore":
        """Inverse of serialize(). Never raises: bad input becomes the entry file."""
        entry_path = entry_path or DEFAULTS["entry_path"]
        if not raw:
            return cls(entry_path=entry_path)
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            return cls({entry_path: raw}, entry_path=entry_path)

        if isinstance(parsed, dict) and parsed.get(MULTIFILE_TAG):
            files = parsed.get("files")
            if isinstance(files, dict) and all(
                isinstance(k, str) and isinstance(v, str) for k, v in files.items()
            ):
                return cls(files, entry_path=entry_path)
        return cls({entry_path: raw}, entry_path=entry_path)


def _check_entry(path, content):
    if not isinstance(path, str) or not path:
        raise ValueError(f"File path must be a non-empty string, got {path!r}")
    if not isinstance(content, str):
        raise ValueError(f"Content for {path} must be a string, got {type(content).__name__}")
