from typing import Optional


class TxError(Exception):
    """Base exception for transaction errors."""
    pass


class BroadcastTxError(TxError):
    """Raised when the chain rejects a broadcast transaction."""
    def __init__(self, codespace: str, code: int, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.codespace = codespace
        self.code = code
        self.message = message
        self.tx_hash = tx_hash

    def __str__(self):
        tx_info = f"tx_hash={self.tx_hash}" if self.tx_hash else "check_tx"
        return f"BroadcastTxError: codespace={self.codespace} code={self.code} {tx_info} {self.message}"


class TxNotFoundError(TxError):
    pass


class TxTimeoutError(TxError):
    """Raised when a broadcast transaction is not included in time."""
    def __init__(self, tx_hash: Optional[str] = None, timeout_secs: Optional[float] = None):
        super().__init__(f"Transaction {tx_hash} was not included within {timeout_secs}s")
        self.tx_hash = tx_hash
        self.timeout_secs = timeout_secs


class FeeOracleError(Exception):
    """Raised when the chain's ISCN fee-per-byte rate cannot be queried."""
    pass
