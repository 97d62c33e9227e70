# main.py
import logging
import time

import uvicorn

from api.server import app, get_head, node
from config.settings import DATA_DIR, HOST_IP, HOST_PORT, LOG_LEVEL, SWAP_DEADLINE, SWAP_TIMEOUT, SWAP_URL
from stakepool import genesis
from stakepool.operator_keystore import load_or_create_operator_key, pubkey_to_address
from stakepool.storage import LedgerStorage
from stakepool.utils import loading


def bootstrap_operator():
    sk = load_or_create_operator_key(DATA_DIR)
    address = pubkey_to_address(sk.verify_key.encode())
    return sk, address


def build_node():
    SIGNING_KEY, OPERATOR_ADDRESS = bootstrap_operator()

    #🔹Print Logo
    loading(OPERATOR_ADDRESS)

    storage = LedgerStorage(DATA_DIR)
    pool, book_state = storage.load()

    fresh = not book_state
    world = genesis.build_world(
        seed_staked=genesis.PROTOCOL_PARAMS["seed_staked"] if fresh else 0,
        clock=lambda: get_head()[0],
    )
    if book_state:
        world.book.load(book_state)

    swap = None
    if SWAP_URL:
        inventory = genesis.PROTOCOL_PARAMS["seed_reward"] if fresh else 0
        swap = genesis.build_remote_swap(world, SWAP_URL, timeout=SWAP_TIMEOUT, inventory=inventory)
    ledger = genesis.build_ledger(world, pool=pool, swap=swap, swap_deadline=SWAP_DEADLINE)

    #🔹Generate or Load
    if pool is None:
        now, block = get_head()
        cap = genesis.generate(ledger, OPERATOR_ADDRESS, block=block, now=now)
        storage.save_cap(cap)
        storage.save(ledger.pool, world.book)
    else:
        cap = storage.load_cap()
        if cap is None:
            raise ValueError("Missing operator capability, please clean the data dir")
        print(f"✅ Pool loaded: {len(pool.users)} positions, {pool.total_staked} staked")

    node.bind(
        ledger,
        cap,
        SIGNING_KEY.verify_key.encode(),
        storage=storage,
        book=world.book,
    )

    return ledger


def main():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ledger = build_node()

    print(f"🕐 Started at {time.strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📡 Serving pool {ledger.pool.address} on {HOST_IP}:{HOST_PORT}")

    uvicorn.run(app, host=HOST_IP, port=HOST_PORT)


if __name__ == "__main__":
    main()
