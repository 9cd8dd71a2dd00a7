"""In-memory token ledger."""

from fairnomics.errors import LedgerError


class InMemoryLedger:
    """Balances keyed by lowercase address. Transfers either fully apply or raise LedgerError."""

    def __init__(self, token: str = "FAIR", balances: dict[str, int] | None = None) -> None:
        self.token = token
        self.balances: dict[str, int] = {}
        for holder, amount in (balances or {}).items():
            self.mint(holder, amount)

    def mint(self, holder: str, amount: int) -> None:
        if amount < 0:
            raise LedgerError("mint amount must be >= 0")
        key = holder.lower()
        self.balances[key] = self.balances.get(key, 0) + amount

    def balance_of(self, holder: str) -> int:
        return self.balances.get(holder.lower(), 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if amount <= 0:
            raise LedgerError(f"transfer amount must be > 0, got {amount}")
        if not recipient:
            raise LedgerError("transfer to empty recipient")
        have = self.balance_of(sender)
        if have < amount:
            raise LedgerError(f"insufficient balance: {sender} has {have}, needs {amount}")
        self.balances[sender.lower()] = have - amount
        self.mint(recipient, amount)

    def total_supply(self) -> int:
        return sum(self.balances.values())
