from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import BLOCK_TIME, CHAIN_ID
from stakepool.errors import LedgerError
from stakepool.operator_keystore import verify_admin_signature
from stakepool.state import compute_referrals
from stakepool.utils import canonical_deposit, norm

import logging
import threading
import time

from eth_account import Account
from eth_account.messages import encode_defunct

log = logging.getLogger(__name__)


def get_head():
    """(timestamp, block height) of the current slot"""
    now = int(time.time())
    return now, now // BLOCK_TIME


class NodeContext:
    def __init__(self):
        self.ledger = None
        self.cap = None
        self.operator_pubkey = None
        self.storage = None
        self.book = None
        self.head = get_head
        self.nonces = {}
        self.admin_nonce = 0
        self.lock = threading.Lock()

    def bind(self, ledger, cap, operator_pubkey: bytes, storage=None, book=None, head=None):
        self.ledger = ledger
        self.cap = cap
        self.operator_pubkey = operator_pubkey
        self.storage = storage
        self.book = book
        self.head = head or get_head
        self.nonces = {}
        self.admin_nonce = 0

    def persist(self):
        if self.storage is not None:
            self.storage.save(self.ledger.pool, self.book)


node = NodeContext()

app = FastAPI(
    title="Stake Pool API",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "*"
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def position_view(address: str) -> dict:
    position = node.ledger.position(address)
    if position is None:
        return None

    return {
        "amount": position.amount,
        "reward_debt": position.reward_debt,
        "referrer": position.referrer,
        "referral_commission_earned": position.referral_commission_earned,
        "total_earned": position.total_earned,
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/pool")
def get_pool():
    now, block = node.head()
    with node.lock:
        stats = node.ledger.stats()

    return {
        "block": block,
        "timestamp": now,
        **stats
    }


@app.get("/position/{address}")
def get_position(address: str):
    address = norm(address)
    with node.lock:
        referrals = compute_referrals(node.ledger.committed_pool).get(address, [])
        position = position_view(address)

    return {
        "address": address,
        "position": position,
        "referrals": referrals
    }


@app.get("/pending/{address}")
def get_pending(address: str):
    address = norm(address)
    now, block = node.head()
    with node.lock:
        pending = node.ledger.pending_reward(address, now=now, block=block)

    return {
        "address": address,
        "block": block,
        "pending": pending
    }


@app.get("/events")
def get_events(limit: int = 50):
    with node.lock:
        events = list(node.ledger.events)[-limit:] if limit > 0 else []
    return {
        "count": len(events),
        "events": [event.to_dict() for event in events]
    }


@app.get("/nonce/{address}")
def get_nonce(address: str):
    address = norm(address)
    return {
        "address": address,
        "nonce": node.nonces.get(address, 0)
    }


@app.post("/deposit")
def deposit(payload: dict):
    tx = payload["tx"]
    signature = payload["signature"]

    message = canonical_deposit(tx)

    try:
        recovered = Account.recover_message(
            encode_defunct(text=message),
            signature=signature
        )
    except Exception:
        return {"ok": False, "error": "Invalid signature format"}

    sender = recovered.lower()

    if tx.get("chainId") != CHAIN_ID:
        return {"ok": False, "error": "Invalid chainId"}

    try:
        amount = int(tx.get("amount", 0))
    except (TypeError, ValueError):
        return {"ok": False, "error": "Invalid amount"}

    if amount < 0:
        return {"ok": False, "error": "Invalid amount"}

    with node.lock:
        expected_nonce = node.nonces.get(sender, 0)
        if tx.get("nonce") != expected_nonce:
            return {"ok": False, "error": f"Invalid nonce. Expected {expected_nonce}"}

        now, block = node.head()

        try:
            net = node.ledger.deposit(sender, amount, tx.get("referrer"), now=now, block=block)
        except LedgerError as e:
            log.warning(f"Deposit rejected for {sender}: {e}")
            return {"ok": False, "error": str(e)}

        node.nonces[sender] = expected_nonce + 1
        node.persist()

    return {
        "ok": True,
        "sender": sender,
        "credited": net,
        "block": block
    }


def _admin_dispatch(command: str, args: dict, now: int, block: int):
    ledger = node.ledger
    cap = node.cap

    if command == "update_reward_per_block":
        ledger.update_reward_per_block(cap, int(args["reward_per_block"]), now=now, block=block)
    elif command == "update_deposit_fee":
        ledger.update_deposit_fee(cap, int(args["deposit_fee_bps"]))
    elif command == "update_addresses":
        ledger.update_addresses(cap, fee_address=args.get("fee_address"), dev_address=args.get("dev_address"))
    elif command == "update_allocation":
        ledger.update_allocation(cap, int(args["buyback_bps"]), int(args["liquidity_bps"]))
    elif command == "update_referral_allocation":
        ledger.update_referral_allocation(
            cap,
            int(args["buyback_bps"]),
            int(args["upline_bps"]),
            int(args["liquidity_bps"]),
        )
    elif command == "update_pool_limit":
        ledger.update_pool_limit(cap, bool(args["has_user_limit"]), int(args.get("pool_limit_per_user", 0)))
    elif command == "update_start_and_end_blocks":
        ledger.update_start_and_end_blocks(cap, int(args["start_block"]), int(args["end_block"]), block=block)
    elif command == "stop_reward":
        ledger.stop_reward(cap, block=block)
    elif command == "emergency_reward_withdraw":
        ledger.emergency_reward_withdraw(cap, int(args["amount"]), block=block)
    else:
        raise ValueError(f"Unknown command {command}")


@app.post("/admin/{command}")
def admin(command: str, payload: dict):
    args = payload.get("payload", {})
    signature = payload.get("signature", "")

    if not verify_admin_signature(node.operator_pubkey, command, args, signature):
        return {"ok": False, "error": "Invalid operator signature"}

    with node.lock:
        if args.get("nonce") != node.admin_nonce:
            return {"ok": False, "error": f"Invalid nonce. Expected {node.admin_nonce}"}

        now, block = node.head()

        try:
            _admin_dispatch(command, args, now, block)
        except (KeyError, TypeError, ValueError) as e:
            return {"ok": False, "error": f"Invalid admin payload: {e}"}
        except LedgerError as e:
            return {"ok": False, "error": str(e)}

        node.admin_nonce += 1
        node.persist()

    log.info(f"Admin command applied: {command}")
    return {"ok": True, "command": command, "block": block}
