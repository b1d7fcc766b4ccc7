"""
Serialization of event batches and snapshot state.

Event batches are stored as a single JSON document. When an encryption key is
configured the document is encrypted at rest with Fernet. Snapshot state is the
bytes from a `StateSerializer`, compressed with zlib and base64 encoded so
it fits a string attribute.
"""
import base64
import json
import zlib
from typing import Any, Dict, List, Optional

from cryptography.fernet import Fernet


class Codec:
    def __init__(self, encryption_key: Optional[bytes] = None):
        self.fernet = Fernet(encryption_key) if encryption_key else None

    def encode_events(self, events: List[Dict[str, Any]]) -> str:
        payload = json.dumps(events, separators=(",", ":"))
        if self.fernet:
            return self.fernet.encrypt(payload.encode("utf-8")).decode("ascii")
        return payload

    def decode_events(self, blob: str) -> List[Dict[str, Any]]:
        # Raises cryptography.fernet.InvalidToken if the key does not match.
        if self.fernet:
            blob = self.fernet.decrypt(blob.encode("ascii")).decode("utf-8")
        return json.loads(blob)

    def encode_state(self, data: bytes) -> str:
        return base64.b64encode(zlib.compress(data)).decode("ascii")

    def decode_state(self, blob: str) -> bytes:
        return zlib.decompress(base64.b64decode(blob))


class JsonStateSerializer:
    """
    Default snapshot serializer. JSON turns int keys into strings and tuples
    into lists, so states that do not survive the round trip are never cached.
    """

    def dumps(self, state: Any) -> bytes:
        return json.dumps(state).encode("utf-8")

    def loads(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))
