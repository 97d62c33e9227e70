# stakepool/crypto.py

from cryptography.fernet import Fernet, InvalidToken
from pathlib import Path
import json

# bumped whenever the stored pool layout changes
STORE_VERSION = 1


def load_or_create_key(key_file: Path):
    if key_file.exists():
        return key_file.read_bytes()

    key_file.parent.mkdir(parents=True, exist_ok=True)
    key = Fernet.generate_key()
    key_file.write_bytes(key)
    return key


class CryptoStore:
    """Fernet-encrypted JSON records, tagged with the store version."""

    def __init__(self, data_dir: Path):
        self.key = load_or_create_key(Path(data_dir) / "ledger.fernet.key")
        self.fernet = Fernet(self.key)

    def encrypt(self, obj) -> bytes:
        record = {"version": STORE_VERSION, "data": obj}
        raw = json.dumps(record, sort_keys=True).encode()
        return self.fernet.encrypt(raw)

    def decrypt(self, data: bytes):
        try:
            raw = self.fernet.decrypt(data)
        except InvalidToken as e:
            raise ValueError("Cannot decrypt ledger data, wrong key or corrupted file") from e

        record = json.loads(raw)
        if record.get("version") != STORE_VERSION:
            raise ValueError(f"Unsupported ledger data version {record.get('version')}, expected {STORE_VERSION}")

        return record["data"]
