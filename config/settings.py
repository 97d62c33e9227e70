# config/settings.py
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

HOST_IP = os.getenv("HOST_IP", "0.0.0.0")
HOST_PORT = int(os.getenv("HOST_PORT", "8000"))

DATA_DIR = Path(os.getenv("DATA_DIR", "data"))

CHAIN_ID = int(os.getenv("CHAIN_ID", "1"))

# external swap router, empty = in-memory constant product router
SWAP_URL = os.getenv("SWAP_URL", "")
SWAP_TIMEOUT = float(os.getenv("SWAP_TIMEOUT", "3"))
SWAP_DEADLINE = int(os.getenv("SWAP_DEADLINE", "300"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# seconds per block, block height = now // BLOCK_TIME
BLOCK_TIME = int(os.getenv("BLOCK_TIME", "3"))
