import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# access_token, refresh_token, expires_in, token_type (+ scope) as returned by Spotify
Credential = Dict[str, Any]


class TokenStore:
    """Single JSON file holding the Spotify credential.

    The file is either missing, empty, or one JSON object. Writes overwrite it
    in place; there is no rename step, so a crash mid-write leaves it corrupt.
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[Credential]:
        # FileNotFoundError propagates: callers decide what "no file" means
        with open(self.path, "r", encoding="utf8") as fh:
            raw = fh.read()
        if not raw.strip():
            return None
        return json.loads(raw)

    def save(self, record: Credential) -> None:
        with open(self.path, "w", encoding="utf8") as fh:
            json.dump(record, fh)

    def update(self, fields: Credential) -> Credential:
        """Merge `fields` over the stored record, so omitted keys survive."""
        try:
            previous = self.load() or {}
        except FileNotFoundError:
            previous = {}
        merged = {**previous, **fields}
        self.save(merged)
        return merged

    def reset(self) -> None:
        logger.info("Recreating empty credential file at %s", self.path)
        with open(self.path, "w", encoding="utf8"):
            pass
