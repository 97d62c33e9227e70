# stakepool/remote_swap.py
import logging

import requests

from stakepool.errors import ExternalCallFailure
from stakepool.utils import norm

log = logging.getLogger(__name__)


class RemoteSwap:
    """
    Swap capability priced by an external router over HTTP.

    The router only quotes and confirms the order; settlement happens in
    the local books through the router's settlement account, which takes
    the input and pays the confirmed output from its own inventory.
    """

    def __init__(self, base_url: str, tokens: list, address: str, timeout: float = 3):
        self.base_url = base_url.rstrip("/")
        self.tokens = {norm(token.address): token for token in tokens}
        self.address = norm(address)
        self.timeout = timeout

    def _token(self, address):
        token = self.tokens.get(norm(address))
        if token is None:
            raise ExternalCallFailure(f"Unknown token {address}")
        return token

    def _post_order(self, order: dict) -> int:
        try:
            response = requests.post(f"{self.base_url}/swap", json=order, timeout=self.timeout)
        except requests.RequestException as e:
            raise ExternalCallFailure(f"Swap router unreachable: {e}") from e

        if response.status_code != 200:
            raise ExternalCallFailure(f"Swap router returned {response.status_code}")

        data = response.json()
        if not data.get("ok", False):
            raise ExternalCallFailure(f"Swap rejected: {data.get('error', 'unknown')}")

        return int(data["amount_out"])

    def exact_input(self, payer: str, amount_in: int, token_in: str, token_out: str,
                    recipient: str, deadline: int) -> int:
        token_in, token_out = self._token(token_in), self._token(token_out)

        received = token_in.transfer_from(payer, self.address, amount_in)

        amount_out = self._post_order({
            "payer": norm(payer),
            "amount_in": str(received),
            "token_in": token_in.address,
            "token_out": token_out.address,
            "recipient": norm(recipient),
            "deadline": deadline,
        })

        if amount_out <= 0:
            return 0

        before = token_out.balance_of(recipient)
        token_out.transfer(self.address, recipient, amount_out)
        delivered = token_out.balance_of(recipient) - before

        log.debug(f"Remote swap {received} {token_in.address} -> {delivered} {token_out.address}")
        return delivered
