# --- Standard library imports ---
import json
from pathlib import Path

# --- Project imports ---
from .logger import get_logger
from .config import Config, DEFAULT_DOCUMENT, FailoverConfig


logger = get_logger("config_store")


def _defaults() -> dict:
    return {**DEFAULT_DOCUMENT, "priorityList": list(DEFAULT_DOCUMENT["priorityList"])}


class ConfigStore:
    """
    Flat JSON document holding the failover configuration.

    A missing file is created with defaults. A corrupt or unreadable file is
    treated as defaults (logged, never raised) so the engine can still start.
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else Config.CONFIG_PATH

    def load_document(self) -> dict:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                self._write(DEFAULT_DOCUMENT)
                logger.info(f"Created default failover config at {self.path}")
                return _defaults()

            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value is not an object")

            return {**_defaults(), **data}

        except (OSError, ValueError) as e:
            logger.error(f"Config load error ({type(e).__name__}: {e}); using defaults")
            return _defaults()

    def load(self) -> FailoverConfig:
        """Snapshot of the current document; used as the engine's loader."""
        return FailoverConfig.from_document(self.load_document())

    def save(self, partial: dict) -> dict:
        """
        Merge `partial` over the current document and persist it.

        Returns:
            The document as written.
        """
        doc = {**self.load_document(), **partial}
        self._write(doc)
        logger.info(f"Failover config saved ({len(doc.get('priorityList') or [])} profiles)")
        return doc

    def _write(self, doc: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(doc, indent=2), encoding="utf-8")
