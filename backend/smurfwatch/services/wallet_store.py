"""
Wallet store for SmurfWatch.
"""

from typing import Dict, Iterator, List, Optional

from smurfwatch.models.schemas import Wallet


class WalletStore:
    """Caller-owned address -> Wallet mapping shared by the analysis stages.

    Stages create entries and mutate wallet fields in place. Nothing in the
    engine removes entries; ``clear`` is only for the owner.
    """

    def __init__(self, wallets: Optional[Dict[str, Wallet]] = None):
        self._wallets: Dict[str, Wallet] = dict(wallets or {})

    def get(self, address: str) -> Optional[Wallet]:
        return self._wallets.get(address)

    def get_or_create(self, address: str, entity_type: str = "unknown") -> Wallet:
        wallet = self._wallets.get(address)
        if wallet is None:
            wallet = Wallet(address=address, entity_type=entity_type or "unknown")
            self._wallets[address] = wallet
        return wallet

    def put(self, wallet: Wallet) -> None:
        self._wallets[wallet.address] = wallet

    def addresses(self) -> List[str]:
        return list(self._wallets.keys())

    def values(self) -> List[Wallet]:
        return list(self._wallets.values())

    def items(self):
        return self._wallets.items()

    def clear(self) -> None:
        self._wallets.clear()

    def __contains__(self, address: object) -> bool:
        return address in self._wallets

    def __iter__(self) -> Iterator[str]:
        return iter(self._wallets)

    def __len__(self) -> int:
        return len(self._wallets)
