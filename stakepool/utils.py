# stakepool/utils.py
import json

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
BURN_ADDRESS = "0x000000000000000000000000000000000000dead"

BPS_DENOMINATOR = 10_000


def norm(addr):
    return addr.lower() if addr else addr


def is_zero_address(addr) -> bool:
    return not addr or norm(addr) == ZERO_ADDRESS


def k(addr, asset):
    """Balance book key, one entry per (holder, asset)."""
    return f"{norm(addr)}:{asset}"


def bps(amount: int, rate: int) -> int:
    return amount * rate // BPS_DENOMINATOR


def canonical_json(obj):
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode()


def canonical_deposit(tx: dict) -> str:
    """
    Canonical text of a deposit request, signed by the depositor
    (key order MUST match the frontend)
    """
    ordered = {
        "action": "deposit",
        "amount": tx.get("amount"),
        "referrer": norm(tx.get("referrer")),
        "nonce": tx.get("nonce"),
        "chainId": tx.get("chainId"),
    }

    return json.dumps(ordered, separators=(",", ":"))


def loading(operator_address):
    print(r'  ____  _        _          ____             _ ')
    print(r' / ___|| |_ __ _| | _____  |  _ \ ___   ___ | |')
    print(r' \___ \| __/ _` | |/ / _ \ | |_) / _ \ / _ \| |')
    print(r'  ___) | || (_| |   <  __/ |  __/ (_) | (_) | |')
    print(r' |____/ \__\__,_|_|\_\___| |_|   \___/ \___/|_|')

    print("🚀 Ledger Starting... ")
    print(f"🆔 Operator: {operator_address}")
