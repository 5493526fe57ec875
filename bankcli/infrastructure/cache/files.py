"""Owner-only JSON files written by whole-document replacement"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

SECURE_FILE_MODE = 0o600
SECURE_DIR_MODE = 0o700


class JsonDocumentFile:
    """Durable accessor for a single JSON document on disk"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Read the document.

        Returns None when the file does not exist. Raises OSError when the
        file cannot be read and ValueError when it is not a JSON object.
        """
        if not self.path.exists():
            return None
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path.name} does not contain a JSON object")
        return data

    def save(self, document: Dict[str, Any]) -> None:
        """Replace the whole file; readers see the old or the new document, never a mix"""
        self.path.parent.mkdir(parents=True, exist_ok=True, mode=SECURE_DIR_MODE)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                os.fchmod(handle.fileno(), SECURE_FILE_MODE)
                json.dump(document, handle, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        os.chmod(self.path, SECURE_FILE_MODE)
