# stakepool/operator_keystore.py

from cryptography.fernet import Fernet
from pathlib import Path
from nacl.signing import SigningKey, VerifyKey
from nacl.encoding import RawEncoder
from nacl.exceptions import BadSignatureError
from hashlib import sha256

from stakepool.utils import canonical_json


def load_or_create_fernet_key(data_dir: Path):
    key_file = Path(data_dir) / "operator.node.key"
    if key_file.exists():
        return key_file.read_bytes()

    key_file.parent.mkdir(parents=True, exist_ok=True)
    key = Fernet.generate_key()
    key_file.write_bytes(key)
    return key


def load_or_create_operator_key(data_dir: Path) -> SigningKey:
    fernet = Fernet(load_or_create_fernet_key(data_dir))
    operator_key_file = Path(data_dir) / "operator.key"

    if operator_key_file.exists():
        raw = fernet.decrypt(operator_key_file.read_bytes())
        return SigningKey(raw, encoder=RawEncoder)

    sk = SigningKey.generate()
    operator_key_file.write_bytes(fernet.encrypt(sk.encode(encoder=RawEncoder)))
    return sk


def pubkey_to_address(pubkey_bytes: bytes) -> str:
    digest = sha256(pubkey_bytes).digest()
    return "0x" + digest[-20:].hex()


def admin_message(command: str, payload: dict) -> bytes:
    return canonical_json({"command": command, "payload": payload})


def sign_admin_command(sk: SigningKey, command: str, payload: dict) -> str:
    return sk.sign(admin_message(command, payload)).signature.hex()


def verify_admin_signature(pubkey: bytes, command: str, payload: dict, signature: str) -> bool:
    try:
        vk = VerifyKey(pubkey, encoder=RawEncoder)
        vk.verify(admin_message(command, payload), bytes.fromhex(signature))
        return True
    except (BadSignatureError, ValueError):
        return False
