"""Randomness oracle boundary.

The reveal needs one random word from an external verifiable-randomness
service. The exchange is a request/callback pair:

    request_id = oracle.request_random_words(consumer)
    ... later, independently ...
    consumer.on_randomness_fulfilled(oracle.address, request_id, random_word)

The oracle identifies itself by address on every callback; consumers
reject callbacks from any other sender.

``LocalRandomnessOracle`` implements the oracle side in-process for
simulations and tests: requests queue up until ``fulfill`` is called.
"""

from __future__ import annotations

from typing import Dict, Optional, Protocol

from eth_account import Account
from web3 import Web3

LOCAL_ORACLE_SEED = "monuverse.local-randomness-oracle"


class RandomnessConsumer(Protocol):
    def on_randomness_fulfilled(self, sender: str, request_id: int, random_word: int) -> None: ...


class RandomnessOracle(Protocol):
    address: str

    def request_random_words(self, consumer: RandomnessConsumer) -> int: ...


class LocalRandomnessOracle:
    """In-process oracle with sequential request ids starting at 1.

    Without an explicit ``address`` the oracle uses a fixed account
    derived from ``LOCAL_ORACLE_SEED``.
    """

    def __init__(self, address: Optional[str] = None) -> None:
        if address is None:
            address = Account.from_key(Web3.keccak(text=LOCAL_ORACLE_SEED)).address
        self.address = Web3.to_checksum_address(address)
        self._next_id = 1
        self._pending: Dict[int, RandomnessConsumer] = {}

    @property
    def pending_requests(self) -> list[int]:
        return sorted(self._pending)

    def request_random_words(self, consumer: RandomnessConsumer) -> int:
        request_id = self._next_id
        self._next_id += 1
        self._pending[request_id] = consumer
        return request_id

    def fulfill(self, request_id: int, random_word: Optional[int] = None) -> int:
        """Deliver a random word for a pending request. Returns the word.

        Without an explicit word, one is derived from the request id so
        runs are reproducible. The request stays pending if the consumer
        rejects the callback.
        """
        consumer = self._pending.get(request_id)
        if consumer is None:
            raise ValueError(f"Unknown randomness request: {request_id}")
        if random_word is None:
            random_word = int.from_bytes(Web3.keccak(request_id.to_bytes(32, "big")), "big")
        consumer.on_randomness_fulfilled(self.address, request_id, random_word)
        del self._pending[request_id]
        return random_word
