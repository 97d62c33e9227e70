# stakepool/storage.py
from pathlib import Path

from stakepool.crypto import CryptoStore
from stakepool.ledger import OperatorCap
from stakepool.state import Pool


class LedgerStorage:
    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.pool_file = self.data_dir / "pool.enc"
        self.cap_file = self.data_dir / "operator.cap.enc"
        self.crypto = CryptoStore(self.data_dir)

    def save(self, pool: Pool, book=None):
        payload = {"pool": pool.to_dict()}
        if book is not None:
            payload["book"] = book.dump()

        encrypted = self.crypto.encrypt(payload)
        self.pool_file.write_bytes(encrypted)

    def load(self):
        """Returns (pool, book_state), (None, None) on a fresh data dir"""
        if not self.pool_file.exists():
            return None, None

        payload = self.crypto.decrypt(self.pool_file.read_bytes())
        return Pool.from_dict(payload["pool"]), payload.get("book")

    def save_cap(self, cap: OperatorCap):
        self.cap_file.write_bytes(self.crypto.encrypt({"secret": cap.secret}))

    def load_cap(self):
        if not self.cap_file.exists():
            return None
        return OperatorCap(self.crypto.decrypt(self.cap_file.read_bytes())["secret"])
